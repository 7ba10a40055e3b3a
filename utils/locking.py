"""Transactions and row locks used by the booking and queue writers.

Both lock helpers open the transaction with an UPDATE on a known row, so
the write lock is held from the first statement until commit or rollback.
On PostgreSQL that is a row lock; on SQLite it is the database RESERVED
lock. Any concurrent writer blocks at the same UPDATE and then reads the
committed state.
"""
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import update

from models import db
from models.queue_entry import QueueState
from models.time_slot import TimeSlot

QUEUE_STATE_ID = 1


@contextmanager
def atomic():
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def lock_queue():
    result = db.session.execute(
        update(QueueState)
        .where(QueueState.id == QUEUE_STATE_ID)
        .values(version=QueueState.version + 1, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # first writer on an unseeded database
        db.session.add(QueueState(id=QUEUE_STATE_ID, version=1))
        db.session.flush()


def lock_slot(slot_id: int) -> bool:
    """Returns False when the slot does not exist."""
    result = db.session.execute(
        update(TimeSlot)
        .where(TimeSlot.id == slot_id)
        .values(updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0
