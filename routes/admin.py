from datetime import timedelta

from flask import Blueprint, jsonify, g, request

from models import db
from models.audit_log import AuditLog
from models.reservation import Reservation
from models.time_slot import TimeSlot
from models.user import User, Role
from security.rbac import require_roles, STAFF_ROLES
from utils.audit import log_event
from utils.errors import Forbidden, NotFoundOrIneligible, ValidationError
from utils.serializers import reservation_json
from utils.validation import parse_date

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.created_at.desc()).limit(200).all()
    return jsonify([
        {
            "id": u.id,
            "email": u.email,
            "full_name": u.full_name,
            "roles": sorted(u.role_names()),
            "created_at": u.created_at.isoformat(),
        }
        for u in users
    ]), 200


@admin_bp.post("/users/<int:user_id>/roles")
@require_roles("ADMIN")
def update_user_roles(user_id: int):
    data = request.get_json(silent=True) or {}
    roles = data.get("roles")
    if not isinstance(roles, list) or not roles:
        raise ValidationError(details={"roles": "must be a non-empty list"})

    role_names = {name.strip().upper() for name in roles if isinstance(name, str) and name.strip()}
    if not role_names:
        raise ValidationError(details={"roles": "must include valid role names"})

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundOrIneligible("User not found")

    available_roles = Role.query.filter(Role.name.in_(role_names)).all()
    missing = role_names - {r.name for r in available_roles}
    if missing:
        raise ValidationError("Unknown role(s)", details={"roles": sorted(missing)})

    if user.id == g.user.id and "ADMIN" not in role_names:
        raise Forbidden("Cannot remove your own ADMIN role")

    user.roles = available_roles
    db.session.commit()

    log_event("ROLE_GRANT", user_id=g.user.id, entity="user", entity_id=user.id, metadata={"roles": sorted(role_names)})
    return jsonify(message="Roles updated", roles=sorted(role_names)), 200


@admin_bp.get("/reservations")
@require_roles(*STAFF_ROLES)
def list_all_reservations():
    status = request.args.get("status")
    date_str = request.args.get("date")  # YYYY-MM-DD

    q = Reservation.query.join(TimeSlot, Reservation.time_slot_id == TimeSlot.id)
    if status:
        q = q.filter(Reservation.status == status)
    if date_str:
        start = parse_date(date_str)
        q = q.filter(TimeSlot.start_time >= start, TimeSlot.start_time < start + timedelta(days=1))

    rows = q.order_by(TimeSlot.start_time.asc(), Reservation.id.asc()).limit(200).all()
    return jsonify([reservation_json(r, detailed=True) for r in rows]), 200


@admin_bp.get("/audit-logs")
@require_roles("ADMIN")
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    action = request.args.get("action")
    user_id = request.args.get("user_id", type=int)

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "created_at": r.timestamp.isoformat(),
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "user_agent": r.user_agent,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
