from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .service import Service
from .time_slot import TimeSlot
from .reservation import Reservation
from .queue_entry import QueueEntry, QueueState
