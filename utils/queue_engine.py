"""The walk-in waiting line.

Checked-in reservations wait in a single global line. Waiting entries
hold positions 1..N with no gaps and no duplicates, in check-in order.
Every function that changes positions takes the queue lock first
(``utils.locking.lock_queue``) and commits before returning, so two
request handlers can never compute positions from the same snapshot.

Reads (``current_queue``, ``entries_for_user``) take no lock and may be
one commit behind; clients poll them.
"""
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import db
from models.queue_entry import CANCELLED, COMPLETED, IN_PROGRESS, WAITING, QueueEntry
from models.reservation import COMPLETED as RESERVATION_COMPLETED
from models.reservation import CONFIRMED, Reservation
from models.service import Service
from models.time_slot import TimeSlot
from models.user import User
from utils.errors import Ineligible, NotFoundOrIneligible
from utils.locking import atomic, lock_queue

OPEN_STATUSES = (WAITING, IN_PROGRESS)


def _waiting():
    return QueueEntry.query.filter(
        QueueEntry.status == WAITING,
        QueueEntry.actual_start_time.is_(None),
    )


def next_position() -> int:
    """Tail position for a new check-in. Caller must hold the queue lock."""
    current_max = (
        db.session.query(func.max(QueueEntry.position))
        .filter(QueueEntry.status == WAITING)
        .scalar()
    )
    return (current_max or 0) + 1


def _close_gap(old_position: int, now: datetime) -> int:
    # everyone behind the vacated position moves up by one
    return (
        _waiting()
        .filter(QueueEntry.position > old_position)
        .update(
            {
                QueueEntry.position: QueueEntry.position - 1,
                QueueEntry.updated_at: now,
            },
            synchronize_session="fetch",
        )
    )


def _refresh_estimates(now: datetime):
    rows = (
        db.session.query(QueueEntry, Service.duration)
        .join(Reservation, QueueEntry.reservation_id == Reservation.id)
        .join(Service, Reservation.service_id == Service.id)
        .filter(QueueEntry.status == WAITING, QueueEntry.actual_start_time.is_(None))
        .order_by(QueueEntry.position.asc())
        .all()
    )
    ahead = 0
    for entry, duration in rows:
        entry.estimated_start_time = now + timedelta(minutes=ahead)
        ahead += duration or 0


def _leave_line(entry: QueueEntry, status: str, now: datetime):
    old_position = entry.position
    entry.status = status
    entry.updated_at = now
    if status == IN_PROGRESS:
        entry.actual_start_time = now
    db.session.flush()

    _close_gap(old_position, now)
    _refresh_estimates(now)


def _locked_entry(entry_id: int) -> QueueEntry:
    lock_queue()
    return db.session.get(QueueEntry, entry_id, populate_existing=True)


def check_in(reservation_id: int, user_id: int) -> QueueEntry:
    """Appends the caller's confirmed reservation to the tail of the line."""
    try:
        with atomic():
            lock_queue()
            reservation = (
                Reservation.query
                .filter_by(id=reservation_id, user_id=user_id, status=CONFIRMED)
                .populate_existing()
                .first()
            )
            if not reservation:
                raise NotFoundOrIneligible("Reservation not found or not eligible for check-in")
            if QueueEntry.query.filter_by(reservation_id=reservation.id).first():
                raise Ineligible("Already checked in")

            now = datetime.utcnow()
            entry = QueueEntry(
                reservation_id=reservation.id,
                position=next_position(),
                status=WAITING,
                check_in_time=now,
            )
            db.session.add(entry)
            db.session.flush()
            _refresh_estimates(now)
    except IntegrityError:
        # uq_queue_entry_reservation
        raise Ineligible("Already checked in")

    return entry


def advance(entry_id: int) -> QueueEntry:
    """
    Starts service for a waiting entry and moves every entry behind it up
    by one, whichever position it held.
    """
    with atomic():
        entry = _locked_entry(entry_id)
        if entry is None or entry.status != WAITING or entry.actual_start_time is not None:
            raise NotFoundOrIneligible("Queue entry not found or not eligible to advance")
        _leave_line(entry, IN_PROGRESS, datetime.utcnow())
    return entry


def advance_next() -> QueueEntry:
    with atomic():
        lock_queue()
        entry = _waiting().order_by(QueueEntry.position.asc()).populate_existing().first()
        if entry is None:
            raise NotFoundOrIneligible("Queue is empty")
        _leave_line(entry, IN_PROGRESS, datetime.utcnow())
    return entry


def complete(entry_id: int) -> QueueEntry:
    with atomic():
        entry = _locked_entry(entry_id)
        if entry is None or entry.status != IN_PROGRESS:
            raise NotFoundOrIneligible("Queue entry not found or not in progress")

        reservation = (
            Reservation.query
            .filter_by(id=entry.reservation_id)
            .populate_existing()
            .one()
        )
        if reservation.status != CONFIRMED:
            raise Ineligible("Reservation is no longer confirmed")

        now = datetime.utcnow()
        entry.status = COMPLETED
        entry.completed_time = now
        entry.updated_at = now

        reservation.status = RESERVATION_COMPLETED
        reservation.updated_at = now

    return entry


def cancel_entry(entry_id: int) -> QueueEntry:
    with atomic():
        entry = _locked_entry(entry_id)
        if entry is None or entry.status != WAITING:
            raise NotFoundOrIneligible("Queue entry not found or not cancellable")
        _leave_line(entry, CANCELLED, datetime.utcnow())
    return entry


def entry_for_reservation(reservation_id: int):
    """The reservation's queue entry, if any. Caller must hold the queue lock."""
    return (
        QueueEntry.query
        .filter_by(reservation_id=reservation_id)
        .populate_existing()
        .first()
    )


def withdraw_reservation(reservation_id: int):
    """
    Cancels the waiting entry of a reservation, if any, inside the caller's
    transaction. The caller holds the queue lock and commits.
    """
    entry = entry_for_reservation(reservation_id)
    if entry is None or entry.status != WAITING:
        return None
    _leave_line(entry, CANCELLED, datetime.utcnow())
    return entry


def current_queue():
    """Waiting entries with their reservation, user, service and slot, head first."""
    return (
        db.session.query(QueueEntry, Reservation, User, Service, TimeSlot)
        .join(Reservation, QueueEntry.reservation_id == Reservation.id)
        .join(User, Reservation.user_id == User.id)
        .join(TimeSlot, Reservation.time_slot_id == TimeSlot.id)
        .join(Service, Reservation.service_id == Service.id)
        .filter(QueueEntry.status == WAITING, QueueEntry.actual_start_time.is_(None))
        .order_by(QueueEntry.position.asc())
        .all()
    )


def entries_for_user(user_id: int):
    return (
        QueueEntry.query
        .join(Reservation, QueueEntry.reservation_id == Reservation.id)
        .filter(Reservation.user_id == user_id, QueueEntry.status.in_(OPEN_STATUSES))
        .order_by(QueueEntry.check_in_time.asc())
        .all()
    )
