from datetime import datetime

from flask import Blueprint, jsonify, g

from models import db
from models.service import Service
from security.rbac import require_roles, STAFF_ROLES
from utils.audit import log_event
from utils.errors import NotFoundOrIneligible, ValidationError
from utils.serializers import service_json
from utils.validation import json_body, optional_text, positive_int, required_text

services_bp = Blueprint("services", __name__, url_prefix="/services")


def _get_service(service_id: int, active_only=False) -> Service:
    service = db.session.get(Service, service_id)
    if not service or (active_only and not service.is_active):
        raise NotFoundOrIneligible("Service not found")
    return service


# ---------- PUBLIC: catalog ----------
@services_bp.get("")
def list_services():
    services = Service.query.filter_by(is_active=True).order_by(Service.name.asc()).all()
    return jsonify([service_json(s) for s in services]), 200


@services_bp.get("/<int:service_id>")
def get_service(service_id: int):
    return jsonify(service_json(_get_service(service_id, active_only=True))), 200


# ---------- STAFF/ADMIN: manage catalog ----------
@services_bp.post("")
@require_roles(*STAFF_ROLES)
def create_service():
    data = json_body()
    service = Service(
        name=required_text(data, "name", max_len=255),
        description=optional_text(data, "description"),
        duration=positive_int(data.get("duration"), "duration"),
        is_active=True,
    )
    db.session.add(service)
    db.session.commit()

    log_event("SERVICE_CREATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(service_json(service)), 201


@services_bp.put("/<int:service_id>")
@require_roles(*STAFF_ROLES)
def update_service(service_id: int):
    service = _get_service(service_id)
    data = json_body()

    changed = []
    if "name" in data:
        service.name = required_text(data, "name", max_len=255)
        changed.append("name")
    if "description" in data:
        service.description = optional_text(data, "description")
        changed.append("description")
    if "duration" in data:
        service.duration = positive_int(data.get("duration"), "duration")
        changed.append("duration")
    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            raise ValidationError(details={"is_active": "must be a boolean"})
        service.is_active = data["is_active"]
        changed.append("is_active")

    if not changed:
        raise ValidationError("No updatable fields provided")

    service.updated_at = datetime.utcnow()
    db.session.commit()

    log_event("SERVICE_UPDATE", user_id=g.user.id, entity="service", entity_id=service.id, metadata={"fields": changed})
    return jsonify(service_json(service)), 200


@services_bp.delete("/<int:service_id>")
@require_roles(*STAFF_ROLES)
def delete_service(service_id: int):
    # soft-disable: slots and reservations keep pointing at it
    service = _get_service(service_id)
    service.is_active = False
    service.updated_at = datetime.utcnow()
    db.session.commit()

    log_event("SERVICE_DISABLE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(message="Service disabled"), 200
