from flask import Blueprint, current_app, jsonify, g

from security.rbac import require_roles, is_staff, STAFF_ROLES
from utils import queue_engine
from utils.audit import log_event
from utils.auth_context import login_required
from utils.errors import NotFoundOrIneligible
from utils.serializers import queue_entry_json, queue_row_json
from utils.validation import json_body, positive_int
from models import db
from models.queue_entry import QueueEntry

queue_bp = Blueprint("queue", __name__, url_prefix="/queue")


# ---------- STAFF/ADMIN: live line ----------
@queue_bp.get("")
@require_roles(*STAFF_ROLES)
def list_queue():
    rows = queue_engine.current_queue()
    return jsonify(
        entries=[queue_row_json(*row) for row in rows],
        poll_seconds=current_app.config.get("QUEUE_POLL_SECONDS", 30),
    ), 200


# ---------- CUSTOMERS: check in / own status ----------
@queue_bp.post("/checkin")
@login_required
def check_in():
    data = json_body()
    reservation_id = positive_int(data.get("reservation_id"), "reservation_id")

    entry = queue_engine.check_in(reservation_id, g.user.id)

    log_event(
        "QUEUE_CHECKIN", user_id=g.user.id, entity="queue_entry", entity_id=entry.id,
        metadata={"reservation_id": reservation_id, "position": entry.position},
    )
    return jsonify(queue_entry_json(entry)), 201


@queue_bp.get("/me")
@login_required
def my_queue():
    entries = queue_engine.entries_for_user(g.user.id)
    return jsonify(
        entries=[queue_entry_json(e) for e in entries],
        poll_seconds=current_app.config.get("QUEUE_POLL_SECONDS", 30),
    ), 200


# ---------- STAFF/ADMIN: move the line ----------
@queue_bp.post("/advance")
@require_roles(*STAFF_ROLES)
def advance_next():
    entry = queue_engine.advance_next()
    log_event("QUEUE_ADVANCE", user_id=g.user.id, entity="queue_entry", entity_id=entry.id, metadata={"head": True})
    return jsonify(queue_entry_json(entry)), 200


@queue_bp.post("/<int:entry_id>/advance")
@require_roles(*STAFF_ROLES)
def advance(entry_id: int):
    entry = queue_engine.advance(entry_id)
    log_event("QUEUE_ADVANCE", user_id=g.user.id, entity="queue_entry", entity_id=entry.id)
    return jsonify(queue_entry_json(entry)), 200


@queue_bp.post("/<int:entry_id>/complete")
@require_roles(*STAFF_ROLES)
def complete(entry_id: int):
    entry = queue_engine.complete(entry_id)
    log_event("QUEUE_COMPLETE", user_id=g.user.id, entity="queue_entry", entity_id=entry.id)
    return jsonify(queue_entry_json(entry)), 200


# staff, or the customer leaving their own place in line
@queue_bp.post("/<int:entry_id>/cancel")
@login_required
def cancel(entry_id: int):
    if not is_staff():
        entry = db.session.get(QueueEntry, entry_id)
        if entry is None or entry.reservation.user_id != g.user.id:
            raise NotFoundOrIneligible("Queue entry not found or not cancellable")

    entry = queue_engine.cancel_entry(entry_id)
    log_event("QUEUE_CANCEL", user_id=g.user.id, entity="queue_entry", entity_id=entry.id)
    return jsonify(queue_entry_json(entry)), 200
