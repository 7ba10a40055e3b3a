"""Server-side login sessions keyed by a hashed cookie token."""
import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "queueline_session")


def _client_ip():
    return request.headers.get("X-Forwarded-For", request.remote_addr)


def open_session(user_id: int) -> str:
    """
    Stores a new session row and returns the raw token for the cookie.
    The raw token never reaches the database.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)

    db.session.add(Session(
        user_id=user_id,
        token_hash=_token_digest(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=_client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token


def _is_live(sess: Session, now: datetime) -> bool:
    if sess.expires_at <= now:
        return False
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 1200)
    last_seen = sess.last_seen_at or sess.created_at
    return last_seen + timedelta(seconds=idle_seconds) > now


def session_from_request():
    """Returns the live Session for the request cookie, or None."""
    raw_token = request.cookies.get(_cookie_name())
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_token_digest(raw_token), revoked=False).first()
    now = datetime.utcnow()
    if not sess or not _is_live(sess, now):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def set_session_cookie(resp, raw_token: str):
    resp.set_cookie(
        _cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return resp


def clear_session_cookie(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp


def revoke_request_session() -> bool:
    raw_token = request.cookies.get(_cookie_name())
    if not raw_token:
        return False
    updated = Session.query.filter_by(token_hash=_token_digest(raw_token)).update({"revoked": True})
    db.session.commit()
    return updated > 0


def revoke_user_sessions(user_id: int) -> int:
    updated = Session.query.filter_by(user_id=user_id, revoked=False).update({"revoked": True})
    db.session.commit()
    return updated
