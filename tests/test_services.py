from models import db
from models.service import Service


def test_list_services_active_sorted_by_name(client, make_service):
    make_service("Haircut", 30)
    make_service("Beard Trim", 15)
    make_service("Retired", 10, is_active=False)

    response = client.get("/services")
    assert response.status_code == 200
    assert [s["name"] for s in response.get_json()] == ["Beard Trim", "Haircut"]


def test_create_service_201(app, staff):
    response = staff.post("/services", json={"name": "Consultation", "description": "First visit", "duration": 20})
    data = response.get_json()
    assert response.status_code == 201
    assert data["name"] == "Consultation"
    assert data["duration"] == 20
    assert data["is_active"] is True
    with app.app_context():
        assert Service.query.count() == 1


def test_create_service_requires_staff_role(customer):
    response = customer.post("/services", json={"name": "Haircut", "duration": 30})
    assert response.status_code == 403


def test_create_service_requires_login(client):
    response = client.post("/services", json={"name": "Haircut", "duration": 30})
    assert response.status_code == 401


def test_create_service_invalid_duration_400(staff):
    response = staff.post("/services", json={"name": "Zero", "duration": 0})
    data = response.get_json()
    assert response.status_code == 400
    assert data["code"] == "invalid_payload"
    assert "duration" in data["details"]


def test_create_service_missing_name_400(admin):
    response = admin.post("/services", json={"duration": 30})
    assert response.status_code == 400
    assert "name" in response.get_json()["details"]


def test_update_service(staff, make_service):
    service_id = make_service("Haircut", 30)
    response = staff.put(f"/services/{service_id}", json={"duration": 45, "description": "Longer"})
    data = response.get_json()
    assert response.status_code == 200
    assert data["duration"] == 45
    assert data["description"] == "Longer"


def test_update_service_not_found_404(staff):
    response = staff.put("/services/999", json={"duration": 45})
    assert response.status_code == 404
    assert response.get_json()["code"] == "not_found"


def test_delete_service_soft_disables(app, staff, make_service):
    service_id = make_service("Haircut", 30)
    response = staff.delete(f"/services/{service_id}")
    assert response.status_code == 200

    with app.app_context():
        service = db.session.get(Service, service_id)
        assert service is not None
        assert service.is_active is False
    assert staff.get(f"/services/{service_id}").status_code == 404
