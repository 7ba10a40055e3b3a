from datetime import datetime, timedelta

from models import db
from models.reservation import Reservation

from conftest import tomorrow_at


def _reserve(test_client, service_id, slot_id, **extra):
    payload = {"service_id": service_id, "time_slot_id": slot_id}
    payload.update(extra)
    return test_client.post("/reservations", json=payload)


def test_create_reservation_201_confirmed(customer, haircut):
    response = _reserve(customer, haircut["service_id"], haircut["slot_id"], notes="Short on the sides")
    data = response.get_json()
    assert response.status_code == 201
    assert data["status"] == "confirmed"
    assert data["notes"] == "Short on the sides"
    assert data["user_id"] == customer.user_id


def test_create_reservation_requires_login(client, haircut):
    response = _reserve(client, haircut["service_id"], haircut["slot_id"])
    assert response.status_code == 401


def test_create_reservation_missing_slot_404(customer, haircut):
    response = _reserve(customer, haircut["service_id"], 999)
    assert response.status_code == 404
    assert response.get_json()["error"] == "Time slot not found"


def test_create_reservation_invalid_payload_400(customer):
    response = customer.post("/reservations", json={"service_id": "abc"})
    data = response.get_json()
    assert response.status_code == 400
    assert data["code"] == "invalid_payload"


def test_create_reservation_slot_of_other_service_400(customer, haircut, make_service):
    other_service = make_service("Beard Trim", 15)
    response = _reserve(customer, other_service, haircut["slot_id"])
    assert response.status_code == 400
    assert "time_slot_id" in response.get_json()["details"]


def test_create_reservation_unavailable_slot_400(customer, make_service, make_slot):
    service_id = make_service()
    slot_id = make_slot(service_id, tomorrow_at(14), is_available=False)
    response = _reserve(customer, service_id, slot_id)
    assert response.status_code == 400
    assert response.get_json()["error"] == "Time slot is not available"


def test_create_reservation_past_slot_400(customer, make_service, make_slot):
    service_id = make_service()
    slot_id = make_slot(service_id, datetime.utcnow() - timedelta(hours=2))
    response = _reserve(customer, service_id, slot_id)
    assert response.status_code == 400


def test_second_booking_of_full_slot_is_conflict(app, customer, other_customer, haircut):
    assert _reserve(customer, haircut["service_id"], haircut["slot_id"]).status_code == 201

    response = _reserve(other_customer, haircut["service_id"], haircut["slot_id"])
    data = response.get_json()
    assert response.status_code == 400
    assert data["code"] == "conflict"
    assert data["error"] == "Time slot is already booked"
    with app.app_context():
        assert Reservation.query.count() == 1


def test_capacity_above_one_is_enforced(customer, other_customer, make_client, make_service, make_slot):
    service_id = make_service("Workshop", 60)
    slot_id = make_slot(service_id, tomorrow_at(16), capacity=2, minutes=60)
    third = make_client("carol@example.com")

    assert _reserve(customer, service_id, slot_id).status_code == 201
    assert _reserve(other_customer, service_id, slot_id).status_code == 201
    assert _reserve(third, service_id, slot_id).get_json()["code"] == "conflict"


def test_list_reservations_own_only_oldest_first(customer, other_customer, make_service, book):
    service_id = make_service()
    first = book(customer, service_id, hour=9)
    second = book(customer, service_id, hour=10)
    book(other_customer, service_id, hour=11)

    response = customer.get("/reservations")
    data = response.get_json()
    assert response.status_code == 200
    assert [r["id"] for r in data] == [first, second]
    assert data[0]["service"]["name"] == "Haircut"
    assert data[0]["time_slot"]["start_time"] == tomorrow_at(9).isoformat()
    assert data[0]["queue_entry"] is None


def test_other_users_reservation_is_invisible(app, customer, other_customer, make_service, book):
    service_id = make_service()
    reservation_id = book(customer, service_id)

    assert other_customer.get(f"/reservations/{reservation_id}").status_code == 404
    assert other_customer.patch(
        f"/reservations/{reservation_id}", json={"status": "cancelled"}
    ).status_code == 404
    assert other_customer.delete(f"/reservations/{reservation_id}").status_code == 404

    with app.app_context():
        assert db.session.get(Reservation, reservation_id).status == "confirmed"


def test_update_reservation_notes_and_status(customer, make_service, book):
    reservation_id = book(customer, make_service())
    response = customer.patch(f"/reservations/{reservation_id}", json={"status": "confirmed", "notes": "Running late"})
    data = response.get_json()
    assert response.status_code == 200
    assert data["notes"] == "Running late"
    assert data["status"] == "confirmed"


def test_update_reservation_rejects_unknown_status(customer, make_service, book):
    reservation_id = book(customer, make_service())
    response = customer.patch(f"/reservations/{reservation_id}", json={"status": "no_show"})
    assert response.status_code == 400
    assert "status" in response.get_json()["details"]


def test_cancelled_reservation_cannot_be_reconfirmed(customer, make_service, book):
    reservation_id = book(customer, make_service())
    customer.delete(f"/reservations/{reservation_id}")
    response = customer.patch(f"/reservations/{reservation_id}", json={"status": "confirmed"})
    assert response.status_code == 400
    assert response.get_json()["code"] == "ineligible"


def test_cancel_reservation_is_idempotent(app, customer, make_service, book):
    reservation_id = book(customer, make_service())

    first = customer.delete(f"/reservations/{reservation_id}")
    second = customer.post(f"/reservations/{reservation_id}/cancel")
    assert first.status_code == 200
    assert second.status_code == 200
    assert second.get_json()["reservation"]["status"] == "cancelled"

    with app.app_context():
        # status flip, never a delete
        assert db.session.get(Reservation, reservation_id).status == "cancelled"


def test_update_reservation_clears_notes_with_empty_string(customer, make_service, book):
    reservation_id = book(customer, make_service())
    customer.patch(f"/reservations/{reservation_id}", json={"status": "confirmed", "notes": "Running late"})

    response = customer.patch(f"/reservations/{reservation_id}", json={"status": "confirmed"})
    assert response.get_json()["notes"] == "Running late"

    response = customer.patch(f"/reservations/{reservation_id}", json={"status": "confirmed", "notes": ""})
    assert response.status_code == 200
    assert response.get_json()["notes"] is None
