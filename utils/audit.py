import json
from flask import current_app, has_request_context, request
from models import db
from models.audit_log import AuditLog

def _request_origin():
    if not has_request_context():
        return None, None
    ip = request.headers.get("X-Forwarded-For", request.remote_addr)
    user_agent = request.headers.get("User-Agent") or None
    return ip, user_agent[:255] if user_agent else None

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None):
    """Persists one audit row and mirrors it to the app logger."""
    ip, user_agent = _request_origin()

    db.session.add(AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    ))
    db.session.commit()

    current_app.logger.info(
        "audit %s user=%s %s=%s %s", action, user_id, entity or "-", entity_id, metadata or ""
    )
