from datetime import timedelta

from flask import Blueprint, jsonify, g, request
from sqlalchemy.exc import IntegrityError

from models import db
from models.service import Service
from models.time_slot import TimeSlot
from security.rbac import require_roles, STAFF_ROLES
from utils import slot_allocator
from utils.audit import log_event
from utils.errors import Conflict, NotFoundOrIneligible, ValidationError
from utils.serializers import slot_json
from utils.validation import json_body, parse_date, parse_iso, positive_int

timeslots_bp = Blueprint("timeslots", __name__, url_prefix="/timeslots")


# ---------- PUBLIC: open slots for a service ----------
@timeslots_bp.get("/<int:service_id>")
def list_timeslots(service_id: int):
    day = parse_date(request.args.get("date"))

    rows = slot_allocator.open_slots(service_id, day)
    taken = slot_allocator.spots_taken([t.id for t, _ in rows])

    out = []
    for t, s in rows:
        item = slot_json(t, slot_allocator.available_spots(t, taken.get(t.id, 0)))
        item["service_name"] = s.name
        item["service_duration"] = s.duration
        out.append(item)
    return jsonify(out), 200


# ---------- STAFF/ADMIN: provision slots ----------
@timeslots_bp.post("")
@require_roles(*STAFF_ROLES)
def create_timeslot():
    data = json_body()
    service_id = positive_int(data.get("service_id"), "service_id")
    start = parse_iso(data.get("start_time"), "start_time")
    capacity = positive_int(data.get("capacity", 1), "capacity")

    service = db.session.get(Service, service_id)
    if not service or not service.is_active:
        raise NotFoundOrIneligible("Service not found")

    if data.get("end_time"):
        end = parse_iso(data.get("end_time"), "end_time")
    else:
        end = start + timedelta(minutes=service.duration)
    if end <= start:
        raise ValidationError(details={"end_time": "must be after start_time"})

    slot = TimeSlot(service_id=service.id, start_time=start, end_time=end, capacity=capacity)
    db.session.add(slot)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Time slot already exists for that service and time")

    log_event("TIMESLOT_CREATE", user_id=g.user.id, entity="time_slot", entity_id=slot.id)
    return jsonify(slot_json(slot, capacity)), 201


@timeslots_bp.post("/<int:slot_id>/deactivate")
@require_roles(*STAFF_ROLES)
def deactivate_timeslot(slot_id: int):
    slot = db.session.get(TimeSlot, slot_id)
    if not slot:
        raise NotFoundOrIneligible("Time slot not found")

    slot.is_available = False
    db.session.commit()

    log_event("TIMESLOT_DEACTIVATE", user_id=g.user.id, entity="time_slot", entity_id=slot_id)
    return jsonify(message="Time slot deactivated"), 200
