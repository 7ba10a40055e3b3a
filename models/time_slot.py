from datetime import datetime
from models.db import db

class TimeSlot(db.Model):
    __tablename__ = "time_slots"

    id = db.Column(db.Integer, primary_key=True)

    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    capacity = db.Column(db.Integer, nullable=False, default=1)
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    # also bumped by the allocator to take the row lock before counting bookings
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    service = db.relationship("Service", back_populates="time_slots")

    __table_args__ = (
        db.UniqueConstraint("service_id", "start_time", name="uq_service_timeslot"),
        db.CheckConstraint("capacity >= 1", name="ck_timeslot_capacity"),
        db.CheckConstraint("end_time > start_time", name="ck_timeslot_range"),
    )
