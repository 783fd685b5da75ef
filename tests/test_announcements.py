from datetime import date, timedelta

import pytest

from tracker_app import db
from tracker_app.data_access import ValidationError, create_announcement, list_announcements
from tracker_app.models import Announcement


@pytest.fixture
def people(make_department, make_user):
    dept = make_department()
    return {
        "admin": make_user("admin@example.edu", role="admin", first_name="Ann", last_name="Admin"),
        "root": make_user("root@example.edu", role="super_admin"),
        "fac": make_user("fac@example.edu", role="facilitator", department_id=dept, department_ids=[dept]),
        "kid": make_user("kid@example.edu", department_id=dept),
    }


def _post(client, login, email, **fields):
    token = login(client, email)
    return client.post("/announcements", json=fields, headers={"X-CSRF-Token": token})


def test_admin_posts_and_everyone_reads(client, login, people):
    resp = _post(client, login, "admin@example.edu", title="Exam week", content="IA-2 starts Monday",
                 priority="high", target_audience="all")
    assert resp.status_code == 201
    posted = resp.get_json()["data"]
    assert posted["author"] == "Ann Admin"
    assert posted["priority"] == "high"

    login(client, "kid@example.edu")
    body = client.get("/announcements").get_json()
    assert [a["title"] for a in body["data"]] == ["Exam week"]
    assert body["meta"]["can_manage"] is False


def test_defaults_to_medium_for_everyone(app, people):
    with app.app_context():
        announcement = create_announcement({"title": "Library", "content": "Open late"}, people["admin"])
        assert announcement.priority == "medium"
        assert announcement.target_audience == "all"
        assert announcement.is_active is True


@pytest.mark.parametrize("fields", [
    {"content": "No title"},
    {"title": "No content"},
    {"title": "T", "content": "C", "priority": "urgent"},
    {"title": "T", "content": "C", "target_audience": "parents"},
    {"title": "T", "content": "C", "expires_at": "next week"},
])
def test_invalid_announcements_are_rejected(client, login, people, fields):
    assert _post(client, login, "admin@example.edu", **fields).status_code == 400


@pytest.mark.parametrize("email", ["fac@example.edu", "kid@example.edu"])
def test_only_admins_post(client, login, people, email):
    assert _post(client, login, email, title="Hi", content="There").status_code == 403


def test_readers_see_their_audience_and_unexpired_only(app, people):
    today = date(2024, 3, 1)
    with app.app_context():
        for title, audience, expires in [
            ("Everyone", "all", None),
            ("Students", "students", None),
            ("Staff", "facilitators", None),
            ("Admins", "admins", None),
            ("Old news", "all", today - timedelta(days=1)),
            ("Last day", "students", today),
        ]:
            db.session.add(Announcement(title=title, content="...", target_audience=audience, expires_at=expires,
                                        author_id=people["admin"]))
        db.session.add(Announcement(title="Withdrawn", content="...", is_active=False))
        db.session.commit()

        titles = {a.title for a in list_announcements(role="student", today=today)}
        assert titles == {"Everyone", "Students", "Last day"}
        titles = {a.title for a in list_announcements(role="facilitator", today=today)}
        assert titles == {"Everyone", "Staff"}
        titles = {a.title for a in list_announcements(role="super_admin", today=today)}
        assert titles == {"Everyone", "Admins"}
        assert len(list_announcements(today=today)) == 7


def test_newest_first(app, people):
    with app.app_context():
        create_announcement({"title": "First", "content": "a"}, people["admin"])
        create_announcement({"title": "Second", "content": "b"}, people["admin"])
        assert [a.title for a in list_announcements(role="student")] == ["Second", "First"]


def test_managers_see_expired_posts_flagged(client, login, people):
    _post(client, login, "admin@example.edu", title="Gone", content="x",
          expires_at=(date.today() - timedelta(days=3)).isoformat())
    body = client.get("/announcements").get_json()
    assert body["meta"]["can_manage"] is True
    assert body["data"][0]["expired"] is True

    login(client, "kid@example.edu")
    assert client.get("/announcements").get_json()["data"] == []


def test_delete_announcement(client, login, people):
    aid = _post(client, login, "admin@example.edu", title="Oops", content="typo").get_json()["data"]["id"]

    token = login(client, "fac@example.edu")
    assert client.delete(f"/announcements/{aid}", headers={"X-CSRF-Token": token}).status_code == 403

    token = login(client, "root@example.edu")
    assert client.delete(f"/announcements/{aid}", headers={"X-CSRF-Token": token}).status_code == 200
    assert client.delete(f"/announcements/{aid}", headers={"X-CSRF-Token": token}).status_code == 404
    assert client.get("/announcements").get_json()["data"] == []


def test_deleting_the_author_keeps_the_announcement(app, client, login, people):
    _post(client, login, "admin@example.edu", title="Stays", content="x")
    token = login(client, "root@example.edu")
    assert client.delete(f"/admin/users/{people['admin']}", headers={"X-CSRF-Token": token}).status_code == 200
    (row,) = client.get("/announcements").get_json()["data"]
    assert row["title"] == "Stays"
    assert row["author"] is None


def test_bad_input_raises_validation_error(app, people):
    with app.app_context():
        with pytest.raises(ValidationError):
            create_announcement({"title": "T", "content": "C", "priority": "HIGH!"}, people["admin"])
