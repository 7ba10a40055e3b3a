from datetime import datetime
from models.db import db

WAITING = "waiting"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"

QUEUE_STATUSES = (WAITING, IN_PROGRESS, COMPLETED, CANCELLED)

class QueueEntry(db.Model):
    __tablename__ = "queue_entries"

    id = db.Column(db.Integer, primary_key=True)

    reservation_id = db.Column(db.Integer, db.ForeignKey("reservations.id"), nullable=False)

    # 1-based and dense among waiting entries; frozen once the entry leaves the line
    position = db.Column(db.Integer, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=WAITING, index=True)

    check_in_time = db.Column(db.DateTime, nullable=True)
    estimated_start_time = db.Column(db.DateTime, nullable=True)
    actual_start_time = db.Column(db.DateTime, nullable=True)
    completed_time = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    reservation = db.relationship("Reservation", back_populates="queue_entry")

    __table_args__ = (
        # one check-in per reservation
        db.UniqueConstraint("reservation_id", name="uq_queue_entry_reservation"),
    )


class QueueState(db.Model):
    """Single row locked by every writer of the waiting line."""
    __tablename__ = "queue_state"

    id = db.Column(db.Integer, primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
