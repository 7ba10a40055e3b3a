"""Concurrent writers against a file-backed SQLite database.

Each thread drives its own test client, so every request runs in its own
app context and database connection.
"""
import threading
from datetime import timedelta

import pytest

from models import db
from models.queue_entry import QueueEntry
from models.reservation import Reservation
from models.service import Service
from models.time_slot import TimeSlot

from conftest import SqliteMemoryConfig, build_app, create_user, login, tomorrow_at


@pytest.fixture
def file_app(tmp_path):
    class FileConfig(SqliteMemoryConfig):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "concurrency.db")

    flask_app = build_app(FileConfig)
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.engine.dispose()


def _run_together(fns):
    barrier = threading.Barrier(len(fns))
    results = [None] * len(fns)

    def worker(i, fn):
        barrier.wait()
        results[i] = fn()

    threads = [threading.Thread(target=worker, args=(i, fn)) for i, fn in enumerate(fns)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results


def _service(app) -> int:
    with app.app_context():
        service = Service(name="Haircut", duration=30)
        db.session.add(service)
        db.session.commit()
        return service.id


def _slot(app, service_id: int, hour: int) -> int:
    with app.app_context():
        start = tomorrow_at(hour)
        slot = TimeSlot(service_id=service_id, start_time=start, end_time=start + timedelta(minutes=30), capacity=1)
        db.session.add(slot)
        db.session.commit()
        return slot.id


def _customers(app, count: int):
    out = []
    for i in range(count):
        create_user(app, f"racer{i}@example.com")
        out.append(login(app, f"racer{i}@example.com"))
    return out


def test_concurrent_bookings_of_last_spot(file_app):
    service_id = _service(file_app)
    slot_id = _slot(file_app, service_id, 10)
    clients = _customers(file_app, 2)

    payload = {"service_id": service_id, "time_slot_id": slot_id}
    responses = _run_together([lambda c=c: c.post("/reservations", json=payload) for c in clients])

    assert sorted(r.status_code for r in responses) == [201, 400]
    loser = next(r for r in responses if r.status_code == 400)
    assert loser.get_json()["code"] == "conflict"
    with file_app.app_context():
        assert Reservation.query.filter_by(time_slot_id=slot_id).count() == 1


def test_concurrent_check_ins_get_distinct_dense_positions(file_app):
    service_id = _service(file_app)
    clients = _customers(file_app, 4)

    reservation_ids = []
    for hour, c in enumerate(clients, start=9):
        slot_id = _slot(file_app, service_id, hour)
        response = c.post("/reservations", json={"service_id": service_id, "time_slot_id": slot_id})
        assert response.status_code == 201
        reservation_ids.append(response.get_json()["id"])

    responses = _run_together([
        lambda c=c, r=r: c.post("/queue/checkin", json={"reservation_id": r})
        for c, r in zip(clients, reservation_ids)
    ])

    assert all(r.status_code == 201 for r in responses)
    assert sorted(r.get_json()["position"] for r in responses) == [1, 2, 3, 4]
    with file_app.app_context():
        positions = [e.position for e in QueueEntry.query.filter_by(status="waiting")]
        assert sorted(positions) == [1, 2, 3, 4]
