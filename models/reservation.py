from datetime import datetime
from models.db import db

CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"

RESERVATION_STATUSES = (CONFIRMED, CANCELLED, COMPLETED)

# statuses that hold a spot in their time slot
ACTIVE_STATUSES = (CONFIRMED, COMPLETED)

class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    time_slot_id = db.Column(db.Integer, db.ForeignKey("time_slots.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=CONFIRMED)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User")
    service = db.relationship("Service")
    time_slot = db.relationship("TimeSlot")
    queue_entry = db.relationship("QueueEntry", back_populates="reservation", uselist=False)
