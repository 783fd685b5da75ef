import logging
from datetime import date

import pytest

from tracker_app import db
from tracker_app.models import Department, User, user_departments


@pytest.fixture
def root(client, make_user, login):
    make_user("root@example.edu", role="super_admin", first_name="Root", last_name="Admin")
    return login(client, "root@example.edu")


def test_department_crud(client, root):
    headers = {"X-CSRF-Token": root}
    resp = client.post("/admin/departments", json={"name": "Mathematics", "code": "math"}, headers=headers)
    assert resp.status_code == 201
    dept = resp.get_json()["data"]
    assert dept["code"] == "MATH"

    resp = client.put(f"/admin/departments/{dept['id']}", json={"name": "Applied Mathematics"}, headers=headers)
    assert resp.get_json()["data"]["name"] == "Applied Mathematics"

    listing = client.get("/admin/departments").get_json()["data"]
    assert [d["code"] for d in listing] == ["MATH"]
    assert listing[0]["student_count"] == 0

    assert client.delete(f"/admin/departments/{dept['id']}", headers=headers).status_code == 200
    assert client.get("/admin/departments").get_json()["data"] == []


def test_duplicate_department_code_is_rejected(client, root, make_department):
    make_department("Physics", "PHY")
    resp = client.post("/admin/departments", json={"name": "Physics II", "code": "PHY"},
                       headers={"X-CSRF-Token": root})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "invalid"

    other = make_department("Chemistry", "CHEM")
    resp = client.put(f"/admin/departments/{other}", json={"code": "phy"}, headers={"X-CSRF-Token": root})
    assert resp.status_code == 400


def test_department_requires_name_and_code(client, root):
    resp = client.post("/admin/departments", json={"name": "Nameless"}, headers={"X-CSRF-Token": root})
    assert resp.status_code == 400


def test_department_with_subjects_cannot_be_deleted(app, client, root, make_department, make_year, make_subject,
                                                    caplog):
    dept = make_department()
    make_subject(dept, make_year(), portions=[("Intro", date(2024, 1, 1), False)])
    caplog.set_level(logging.WARNING, logger="tracker_app.data_access")
    resp = client.delete(f"/admin/departments/{dept}", headers={"X-CSRF-Token": root})
    assert resp.status_code == 400
    assert "still has 1 subject(s)" in resp.get_json()["error"]["message"]
    assert "Refused to delete department CS" in caplog.text
    with app.app_context():
        assert db.session.get(Department, dept) is not None


def test_deleting_department_detaches_its_users(app, client, root, make_department, make_user, caplog):
    dept = make_department()
    student = make_user("kid@example.edu", department_id=dept)
    facilitator = make_user("fac@example.edu", role="facilitator", department_id=dept, department_ids=[dept])
    caplog.set_level(logging.WARNING, logger="tracker_app.data_access")
    resp = client.delete(f"/admin/departments/{dept}", headers={"X-CSRF-Token": root})
    assert resp.status_code == 200
    assert "detaches 2 user(s)" in caplog.text
    with app.app_context():
        assert db.session.get(Department, dept) is None
        assert db.session.get(User, student).department_id is None
        fac = db.session.get(User, facilitator)
        assert fac.department_id is None
        assert fac.departments == []


def test_admin_cannot_manage_departments(client, make_user, login, make_department):
    make_user("admin@example.edu", role="admin")
    token = login(client, "admin@example.edu")
    make_department()
    assert client.get("/admin/departments").status_code == 200
    resp = client.post("/admin/departments", json={"name": "X", "code": "X"}, headers={"X-CSRF-Token": token})
    assert resp.status_code == 403


def test_create_facilitator_links_departments(app, client, root, make_department):
    first = make_department("Commerce", "COM")
    second = make_department("Economics", "ECO")
    resp = client.post("/admin/users", json={
        "email": "New.Fac@example.edu",
        "password": "pw12345",
        "first_name": "Nia",
        "last_name": "Fac",
        "role": "facilitator",
        "department_ids": [second, first],
    }, headers={"X-CSRF-Token": root})
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["email"] == "new.fac@example.edu"
    assert data["department_id"] == second
    assert sorted(d["id"] for d in data["departments"]) == sorted([first, second])

    # Listed under either linked department
    listed = client.get(f"/admin/users?role=facilitator&department_id={first}").get_json()["data"]
    assert [u["email"] for u in listed] == ["new.fac@example.edu"]


def test_facilitator_needs_a_department(client, root):
    resp = client.post("/admin/users", json={
        "email": "f@example.edu", "password": "pw", "first_name": "F", "last_name": "L", "role": "facilitator",
    }, headers={"X-CSRF-Token": root})
    assert resp.status_code == 400


def test_create_student_with_department(client, root, make_department):
    dept = make_department()
    resp = client.post("/admin/users", json={
        "email": "stu@example.edu", "password": "pw", "first_name": "S", "last_name": "T",
        "role": "student", "department_id": str(dept),
    }, headers={"X-CSRF-Token": root})
    assert resp.status_code == 201
    assert resp.get_json()["data"]["department_id"] == dept

    resp = client.post("/admin/users", json={
        "email": "stu@example.edu", "password": "pw", "first_name": "S", "last_name": "T", "role": "student",
    }, headers={"X-CSRF-Token": root})
    assert resp.status_code == 400


def test_admin_cannot_create_admins(client, make_user, login):
    make_user("admin@example.edu", role="admin")
    token = login(client, "admin@example.edu")
    for role in ("admin", "super_admin"):
        resp = client.post("/admin/users", json={
            "email": f"{role}2@example.edu", "password": "pw", "first_name": "A", "last_name": "B", "role": role,
        }, headers={"X-CSRF-Token": token})
        assert resp.status_code == 403


def test_delete_user_removes_links(app, client, root, make_user, make_department):
    dept = make_department()
    uid = make_user("fac@example.edu", role="facilitator", department_id=dept, department_ids=[dept])
    resp = client.delete(f"/admin/users/{uid}", headers={"X-CSRF-Token": root})
    assert resp.status_code == 200
    with app.app_context():
        assert db.session.get(User, uid) is None
        links = db.session.execute(
            user_departments.select().where(user_departments.c.user_id == uid)
        ).all()
        assert links == []


def test_cannot_delete_self_or_higher_roles(app, client, make_user, login):
    admin_id = make_user("admin@example.edu", role="admin")
    boss_id = make_user("boss@example.edu", role="super_admin")
    token = login(client, "admin@example.edu")
    assert client.delete(f"/admin/users/{admin_id}", headers={"X-CSRF-Token": token}).status_code == 400
    assert client.delete(f"/admin/users/{boss_id}", headers={"X-CSRF-Token": token}).status_code == 403
    assert client.delete("/admin/users/9999", headers={"X-CSRF-Token": token}).status_code == 404


def test_roles_page(client, root, make_user):
    make_user("s1@example.edu")
    make_user("s2@example.edu", role="whatever")
    rows = client.get("/admin/roles").get_json()["data"]
    by_role = {r["role"]: r for r in rows}
    assert list(by_role) == ["super_admin", "admin", "facilitator", "student"]
    assert by_role["student"]["user_count"] == 2
    assert by_role["super_admin"]["user_count"] == 1
    assert by_role["admin"]["label"] == "Admin"
    assert by_role["facilitator"]["permissions"]


def test_roles_page_is_super_admin_only(client, make_user, login):
    make_user("admin@example.edu", role="admin")
    login(client, "admin@example.edu")
    assert client.get("/admin/roles").status_code == 403
