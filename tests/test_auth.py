import pytest

from tracker_app import create_app, db


def test_login_returns_user_and_csrf_token(client, make_user):
    make_user("fac@example.edu", role="facilitator")
    resp = client.post("/login", json={"email": "FAC@example.edu", "password": "secret"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["role"] == "facilitator"
    assert user["home"] == "/facilitator/dashboard"
    assert "mark_portions" in user["capabilities"]
    assert body["data"]["csrf_token"]


def test_login_accepts_form_data(client, make_user):
    make_user("form@example.edu")
    resp = client.post("/login", data={"email": "form@example.edu", "password": "secret"})
    assert resp.status_code == 200


def test_login_rejects_bad_credentials(client, make_user):
    make_user("s@example.edu")
    resp = client.post("/login", json={"email": "s@example.edu", "password": "nope"})
    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "invalid_credentials"

    resp = client.post("/login", json={"email": ""})
    assert resp.status_code == 400


def test_inactive_user_cannot_log_in(client, make_user):
    make_user("gone@example.edu", is_active=False)
    resp = client.post("/login", json={"email": "gone@example.edu", "password": "secret"})
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "account_disabled"


def test_login_records_last_login(app, client, make_user):
    from tracker_app.models import User
    uid = make_user("seen@example.edu")
    client.post("/login", json={"email": "seen@example.edu", "password": "secret"})
    with app.app_context():
        assert db.session.get(User, uid).last_login is not None


def test_anonymous_requests_get_401(client):
    for path in ("/me", "/dashboard", "/admin/summary", "/student/dashboard", "/academics/leaderboard/assessment"):
        resp = client.get(path)
        assert resp.status_code == 401, path
        assert resp.get_json()["error"]["code"] == "unauthorized"


def test_me_and_dashboard_follow_role(client, make_user, login):
    make_user("boss@example.edu", role="super_admin")
    login(client, "boss@example.edu")
    me = client.get("/me").get_json()["data"]["user"]
    assert me["role_label"] == "Super Admin"
    assert client.get("/dashboard").get_json()["data"]["home"] == "/admin/super-summary"


def test_unknown_role_is_treated_as_student(client, make_user, login):
    make_user("odd@example.edu", role="janitor")
    login(client, "odd@example.edu")
    assert client.get("/dashboard").get_json()["data"]["role"] == "student"
    assert client.get("/admin/summary").status_code == 403


def test_logout_ends_session(client, make_user, login):
    make_user("bye@example.edu")
    login(client, "bye@example.edu")
    assert client.get("/logout").status_code == 200
    assert client.get("/me").status_code == 401


def test_mutations_require_csrf_token(client, make_user, login):
    make_user("root@example.edu", role="super_admin")
    token = login(client, "root@example.edu")

    resp = client.post("/admin/departments", json={"name": "Physics", "code": "PHY"})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "csrf_missing"

    resp = client.post("/admin/departments", json={"name": "Physics", "code": "PHY"},
                       headers={"X-CSRF-Token": "wrong"})
    assert resp.get_json()["error"]["code"] == "csrf_mismatch"

    resp = client.post("/admin/departments", json={"name": "Physics", "code": "PHY"},
                       headers={"X-CSRF-Token": token})
    assert resp.status_code == 201


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"status": "ok", "database": "ok"}


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False
    assert resp.get_json()["error"]["code"] == "not_found"

    resp = client.delete("/health")
    assert resp.status_code == 405
    assert resp.get_json()["error"]["code"] == "method_not_allowed"


@pytest.fixture
def limited_app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "RATELIMIT_ENABLED": True,
        "LOGIN_RATE_LIMIT": "3 per minute",
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def test_login_is_rate_limited(limited_app):
    client = limited_app.test_client()
    statuses = [client.post("/login", json={"email": "x@example.edu", "password": "bad"}).status_code
                for _ in range(6)]
    assert statuses[0] == 401
    assert statuses[-1] == 429
