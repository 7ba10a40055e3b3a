from flask import Blueprint, jsonify, g

from models.reservation import RESERVATION_STATUSES, Reservation
from utils import slot_allocator
from utils.audit import log_event
from utils.auth_context import login_required
from utils.errors import Conflict
from utils.serializers import reservation_json
from utils.validation import json_body, one_of, optional_text, positive_int

reservations_bp = Blueprint("reservations", __name__, url_prefix="/reservations")


# ---------- CUSTOMERS: book a slot (capacity-safe) ----------
@reservations_bp.post("")
@login_required
def create_reservation():
    data = json_body()
    service_id = positive_int(data.get("service_id"), "service_id")
    time_slot_id = positive_int(data.get("time_slot_id"), "time_slot_id")
    notes = optional_text(data, "notes")

    try:
        reservation = slot_allocator.book_slot(g.user.id, service_id, time_slot_id, notes)
    except Conflict:
        log_event("RESERVATION_FAIL_SLOT_FULL", user_id=g.user.id, entity="time_slot", entity_id=time_slot_id)
        raise

    log_event(
        "RESERVATION_CREATE", user_id=g.user.id, entity="reservation", entity_id=reservation.id,
        metadata={"time_slot_id": time_slot_id},
    )
    return jsonify(reservation_json(reservation)), 201


# ---------- CUSTOMERS: own reservations only ----------
@reservations_bp.get("")
@login_required
def list_reservations():
    rows = (
        Reservation.query
        .filter_by(user_id=g.user.id)
        .order_by(Reservation.created_at.asc(), Reservation.id.asc())
        .all()
    )
    return jsonify([reservation_json(r, detailed=True) for r in rows]), 200


@reservations_bp.get("/<int:reservation_id>")
@login_required
def get_reservation(reservation_id: int):
    reservation = slot_allocator.owned_reservation(reservation_id, g.user.id)
    return jsonify(reservation_json(reservation, detailed=True)), 200


@reservations_bp.patch("/<int:reservation_id>")
@login_required
def update_reservation(reservation_id: int):
    data = json_body()
    status = one_of(data.get("status"), "status", RESERVATION_STATUSES)
    notes = optional_text(data, "notes", keep_blank=True)

    reservation = slot_allocator.owned_reservation(reservation_id, g.user.id)
    previous = reservation.status
    slot_allocator.update_reservation(reservation, status, notes)

    log_event(
        "RESERVATION_UPDATE", user_id=g.user.id, entity="reservation", entity_id=reservation.id,
        metadata={"from": previous, "to": status},
    )
    return jsonify(reservation_json(reservation)), 200


def _cancel(reservation_id: int):
    reservation = slot_allocator.owned_reservation(reservation_id, g.user.id)
    if slot_allocator.cancel_reservation(reservation):
        log_event("RESERVATION_CANCEL", user_id=g.user.id, entity="reservation", entity_id=reservation.id)
    return jsonify(message="Reservation cancelled successfully", reservation=reservation_json(reservation)), 200


@reservations_bp.delete("/<int:reservation_id>")
@login_required
def cancel_reservation(reservation_id: int):
    return _cancel(reservation_id)


@reservations_bp.post("/<int:reservation_id>/cancel")
@login_required
def cancel_reservation_post(reservation_id: int):
    return _cancel(reservation_id)
