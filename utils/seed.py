from datetime import datetime, timedelta

from models import db
from models.queue_entry import QueueState
from models.service import Service
from models.time_slot import TimeSlot
from models.user import Role
from utils.locking import QUEUE_STATE_ID

DEFAULT_ROLES = ["CUSTOMER", "STAFF", "ADMIN"]

DEMO_SERVICES = [
    ("Haircut", "Professional haircut and styling", 30),
    ("Hair Color", "Full hair coloring service", 120),
    ("Beard Trim", "Professional beard trimming and shaping", 15),
    ("Consultation", "Initial consultation for new clients", 20),
]

OPENING_HOUR = 9
CLOSING_HOUR = 17

def seed_defaults():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    if db.session.get(QueueState, QUEUE_STATE_ID) is None:
        db.session.add(QueueState(id=QUEUE_STATE_ID, version=0))
    db.session.commit()

def seed_demo_catalog(days: int = 7, now: datetime = None):
    """
    Creates the demo services and hourly slots for the next ``days`` days.
    Slots ending after closing time or already started are skipped.
    Returns (services_created, slots_created).
    """
    now = now or datetime.utcnow()
    services = []
    services_created = 0
    for name, description, duration in DEMO_SERVICES:
        service = Service.query.filter_by(name=name).first()
        if service is None:
            service = Service(name=name, description=description, duration=duration, is_active=True)
            db.session.add(service)
            services_created += 1
        services.append(service)
    db.session.flush()

    slots_created = 0
    for offset in range(days):
        day = datetime(now.year, now.month, now.day) + timedelta(days=offset)
        closing = day.replace(hour=CLOSING_HOUR)
        for service in services:
            for hour in range(OPENING_HOUR, CLOSING_HOUR):
                start = day.replace(hour=hour)
                end = start + timedelta(minutes=service.duration)
                if start <= now or end > closing:
                    continue
                if TimeSlot.query.filter_by(service_id=service.id, start_time=start).first():
                    continue
                db.session.add(TimeSlot(
                    service_id=service.id,
                    start_time=start,
                    end_time=end,
                    capacity=1,
                    is_available=True,
                ))
                slots_created += 1

    db.session.commit()
    return services_created, slots_created
