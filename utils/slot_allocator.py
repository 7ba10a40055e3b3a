"""Time slot availability and the reservation ledger."""
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from models import db
from models.reservation import (
    ACTIVE_STATUSES, CANCELLED, COMPLETED, CONFIRMED, Reservation,
)
from models.queue_entry import COMPLETED as ENTRY_COMPLETED, IN_PROGRESS
from models.service import Service
from models.time_slot import TimeSlot
from utils import queue_engine
from utils.errors import Conflict, Ineligible, NotFoundOrIneligible, ValidationError
from utils.locking import atomic, lock_queue, lock_slot

# allowed reservation status changes from the customer surface
TRANSITIONS = {
    CONFIRMED: {CONFIRMED, CANCELLED, COMPLETED},
    CANCELLED: {CANCELLED},
    COMPLETED: {COMPLETED},
}


def spots_taken(slot_ids) -> dict:
    if not slot_ids:
        return {}
    rows = (
        db.session.query(Reservation.time_slot_id, func.count(Reservation.id))
        .filter(
            Reservation.time_slot_id.in_(slot_ids),
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        .group_by(Reservation.time_slot_id)
        .all()
    )
    return {slot_id: count for slot_id, count in rows}


def available_spots(slot: TimeSlot, taken: int = None) -> int:
    if taken is None:
        taken = spots_taken([slot.id]).get(slot.id, 0)
    return max(slot.capacity - taken, 0)


def open_slots(service_id: int, day: datetime):
    """Available slots of a service starting on or after ``day``."""
    return (
        db.session.query(TimeSlot, Service)
        .join(Service, TimeSlot.service_id == Service.id)
        .filter(
            TimeSlot.service_id == service_id,
            TimeSlot.is_available.is_(True),
            TimeSlot.start_time >= day,
        )
        .order_by(TimeSlot.start_time.asc())
        .all()
    )


def book_slot(user_id: int, service_id: int, time_slot_id: int, notes=None) -> Reservation:
    """
    Creates a confirmed reservation if the slot still has room.
    The count and the insert run under the slot row lock.
    """
    service = db.session.get(Service, service_id)
    if not service or not service.is_active:
        raise NotFoundOrIneligible("Service not found")

    with atomic():
        if not lock_slot(time_slot_id):
            raise NotFoundOrIneligible("Time slot not found")

        slot = db.session.get(TimeSlot, time_slot_id, populate_existing=True)
        if slot.service_id != service.id:
            raise ValidationError(details={"time_slot_id": "does not belong to this service"})
        if not slot.is_available:
            raise Ineligible("Time slot is not available")
        if not current_app.config.get("ALLOW_PAST_BOOKINGS") and slot.start_time <= datetime.utcnow():
            raise Ineligible("Cannot book past/started time slots")

        if available_spots(slot) <= 0:
            raise Conflict("Time slot is already booked")

        reservation = Reservation(
            user_id=user_id,
            service_id=service.id,
            time_slot_id=slot.id,
            status=CONFIRMED,
            notes=notes,
        )
        db.session.add(reservation)

    return reservation


def owned_reservation(reservation_id: int, user_id: int) -> Reservation:
    # another user's reservation looks exactly like a missing one
    reservation = Reservation.query.filter_by(id=reservation_id, user_id=user_id).first()
    if not reservation:
        raise NotFoundOrIneligible("Reservation not found")
    return reservation


def _lock_reservation(reservation: Reservation):
    # status checks below see whatever other writers committed before the lock
    lock_queue()
    Reservation.query.filter_by(id=reservation.id).populate_existing().one()


def _release(reservation: Reservation, now: datetime):
    entry = queue_engine.entry_for_reservation(reservation.id)
    if entry is not None and entry.status in (IN_PROGRESS, ENTRY_COMPLETED):
        raise Ineligible("Reservation is already being served")

    # a cancelled booking gives up its place in the line
    queue_engine.withdraw_reservation(reservation.id)
    reservation.status = CANCELLED
    reservation.updated_at = now


def cancel_reservation(reservation: Reservation) -> bool:
    """Returns False when the reservation was already cancelled."""
    with atomic():
        _lock_reservation(reservation)
        if reservation.status == CANCELLED:
            return False
        if reservation.status != CONFIRMED:
            raise Ineligible("Reservation not cancellable")
        _release(reservation, datetime.utcnow())
    return True


def update_reservation(reservation: Reservation, status: str, notes=None) -> Reservation:
    """``notes=None`` leaves the notes alone; an empty string clears them."""
    with atomic():
        _lock_reservation(reservation)
        if status not in TRANSITIONS.get(reservation.status, ()):
            raise Ineligible(f"Cannot change reservation from {reservation.status} to {status}")

        now = datetime.utcnow()
        if reservation.status == CONFIRMED and status == CANCELLED:
            _release(reservation, now)
        elif reservation.status == CONFIRMED and status == COMPLETED:
            entry = queue_engine.entry_for_reservation(reservation.id)
            if entry is not None and entry.status in queue_engine.OPEN_STATUSES:
                raise Ineligible("Reservation is still in the queue")

        reservation.status = status
        if notes is not None:
            reservation.notes = notes or None
        reservation.updated_at = now
    return reservation
