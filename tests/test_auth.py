"""Registration, login sessions and the CSRF check."""
from models import db
from models.audit_log import AuditLog
from models.session import Session

from conftest import PASSWORD, create_user


def test_register_assigns_customer_role(client):
    response = client.post(
        "/auth/register",
        json={"email": "New@Example.com", "password": PASSWORD, "full_name": "New Person"},
    )
    data = response.get_json()
    assert response.status_code == 201
    assert data["email"] == "new@example.com"
    assert data["roles"] == ["CUSTOMER"]


def test_register_rejects_short_password_and_bad_email(client):
    response = client.post("/auth/register", json={"email": "nope", "password": "short"})
    data = response.get_json()
    assert response.status_code == 400
    assert data["code"] == "invalid_payload"
    assert set(data["details"]) == {"email", "password"}


def test_register_duplicate_email_409(client):
    payload = {"email": "dup@example.com", "password": PASSWORD}
    assert client.post("/auth/register", json=payload).status_code == 201
    assert client.post("/auth/register", json=payload).status_code == 409


def test_login_sets_session_and_me_returns_user(app, client):
    create_user(app, "carol@example.com", full_name="Carol")
    response = client.post("/auth/login", json={"email": "carol@example.com", "password": PASSWORD})
    assert response.status_code == 200
    assert client.get_cookie("queueline_session") is not None
    assert client.get_cookie("csrf_token") is not None

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.get_json()["email"] == "carol@example.com"

    with app.app_context():
        # only the hash is stored
        stored = Session.query.one()
        assert stored.token_hash != client.get_cookie("queueline_session").value


def test_login_wrong_password_401_and_audited(app, client):
    create_user(app, "dave@example.com")
    response = client.post("/auth/login", json={"email": "dave@example.com", "password": "wrong-password"})
    assert response.status_code == 401
    with app.app_context():
        assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == 1


def test_me_requires_authentication(client):
    response = client.get("/auth/me")
    assert response.status_code == 401
    assert response.get_json()["error"] == "Authentication required"


def test_write_without_csrf_header_is_rejected(app, make_service, customer):
    service_id = make_service()
    del customer.environ_base["HTTP_X_CSRF_TOKEN"]
    response = customer.post("/reservations", json={"service_id": service_id, "time_slot_id": 1})
    assert response.status_code == 403
    assert response.get_json()["error"] == "CSRF validation failed"


def test_logout_revokes_session(app, customer):
    assert customer.post("/auth/logout").status_code == 200
    assert customer.get("/auth/me").status_code == 401
    with app.app_context():
        assert db.session.query(Session).filter_by(revoked=False).count() == 0
