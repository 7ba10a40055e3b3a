"""pytest configuration: app factory, schema and logged-in clients."""
from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Ensure the project root is available on sys.path so tests can import the app modules.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.service import Service  # noqa: E402
from models.time_slot import TimeSlot  # noqa: E402
from models.user import Role, User  # noqa: E402
from security.password import hash_password  # noqa: E402
from utils.seed import seed_defaults  # noqa: E402

PASSWORD = "correct-horse-42"


class SqliteMemoryConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    BCRYPT_ROUNDS = 4
    SEED_ON_STARTUP = False


def build_app(config_object):
    flask_app = create_app(config_object)
    with flask_app.app_context():
        db.create_all()
        seed_defaults()
    return flask_app


@pytest.fixture
def app():
    flask_app = build_app(SqliteMemoryConfig)
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(app, email: str, roles=("CUSTOMER",), full_name=None) -> int:
    with app.app_context():
        user = User(email=email, password_hash=hash_password(PASSWORD), full_name=full_name)
        user.roles = Role.query.filter(Role.name.in_(roles)).all()
        db.session.add(user)
        db.session.commit()
        return user.id


def login(app, email: str):
    """Returns a test client holding the session cookie and sending the CSRF header."""
    test_client = app.test_client()
    response = test_client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.get_json()
    csrf_cookie = test_client.get_cookie("csrf_token")
    test_client.environ_base["HTTP_X_CSRF_TOKEN"] = csrf_cookie.value
    return test_client


@pytest.fixture
def make_client(app):
    def _make(email: str, roles=("CUSTOMER",), full_name=None):
        user_id = create_user(app, email, roles, full_name)
        test_client = login(app, email)
        test_client.user_id = user_id
        return test_client
    return _make


@pytest.fixture
def customer(make_client):
    return make_client("alice@example.com", full_name="Alice")


@pytest.fixture
def other_customer(make_client):
    return make_client("bob@example.com", full_name="Bob")


@pytest.fixture
def staff(make_client):
    return make_client("staff@example.com", roles=("STAFF",), full_name="Sam Staff")


@pytest.fixture
def admin(make_client):
    return make_client("admin@example.com", roles=("ADMIN",), full_name="Ada Admin")


def tomorrow_at(hour: int, minute: int = 0) -> datetime:
    day = datetime.utcnow() + timedelta(days=1)
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def make_service(app):
    def _make(name="Haircut", duration=30, is_active=True) -> int:
        with app.app_context():
            service = Service(name=name, description=f"{name} service", duration=duration, is_active=is_active)
            db.session.add(service)
            db.session.commit()
            return service.id
    return _make


@pytest.fixture
def make_slot(app):
    def _make(service_id: int, start: datetime = None, capacity=1, minutes=30, is_available=True) -> int:
        start = start or tomorrow_at(10)
        with app.app_context():
            slot = TimeSlot(
                service_id=service_id,
                start_time=start,
                end_time=start + timedelta(minutes=minutes),
                capacity=capacity,
                is_available=is_available,
            )
            db.session.add(slot)
            db.session.commit()
            return slot.id
    return _make


@pytest.fixture
def haircut(make_service, make_slot):
    """Haircut (30 min) with one open 10:00 slot of capacity 1."""
    service_id = make_service("Haircut", 30)
    slot_id = make_slot(service_id, tomorrow_at(10))
    return {"service_id": service_id, "slot_id": slot_id}


@pytest.fixture
def book(make_slot):
    """Books a fresh slot for the client and returns the reservation id."""
    def _book(test_client, service_id: int, hour: int = 11) -> int:
        slot_id = make_slot(service_id, tomorrow_at(hour))
        response = test_client.post(
            "/reservations", json={"service_id": service_id, "time_slot_id": slot_id}
        )
        assert response.status_code == 201, response.get_json()
        return response.get_json()["id"]
    return _book
