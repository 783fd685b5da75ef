from datetime import date, datetime
from types import SimpleNamespace as NS

from tracker_app.progress import reports

TODAY = date(2024, 1, 15)


def portion(pid, planned, done=False, name=None):
    return NS(id=pid, name=name or f"P{pid}", sequence_order=pid, planned_date=planned,
              completed_date=planned if done else None, is_completed=done, notes=None)


def person(pid, role="facilitator", dept=None, active=True, created=None):
    return NS(id=pid, first_name=f"F{pid}", last_name="L", email=f"u{pid}@x.edu", role=role,
              department_id=dept, department=NS(name=f"Dept{dept}") if dept else None,
              is_active=active, created_at=created)


def subject(sid, dept, fac, portions):
    return NS(id=sid, name=f"S{sid}", code=f"C{sid}", department_id=dept, facilitator_id=fac,
              department=NS(name=f"Dept{dept}"), facilitator=person(fac) if fac else None, portions=portions)


def test_department_progress_sorted_and_skips_empty():
    depts = [NS(id=1, name="A", code="A"), NS(id=2, name="B", code="B"), NS(id=3, name="C", code="C")]
    subjects = [
        subject(1, 1, 10, [portion(1, date(2024, 1, 1), done=True), portion(2, date(2024, 1, 1))]),
        subject(2, 2, 11, [portion(3, date(2024, 1, 1), done=True)]),
        subject(3, 3, 12, []),
    ]
    facilitators = [person(10, dept=1), person(11, dept=2), person(12, dept=2)]
    rows = reports.department_progress(depts, subjects, facilitators, TODAY)
    assert [r["code"] for r in rows] == ["B", "A"]
    assert rows[0]["facilitator_count"] == 2
    assert rows[1]["progress"] == {"total": 2, "completed": 1, "overdue": 1, "percentage": 50}


def test_facilitator_progress_skips_inactive_and_idle():
    subjects = [
        subject(1, 1, 10, [portion(1, date(2024, 2, 1))]),
        subject(2, 1, 11, [portion(2, date(2024, 2, 1), done=True)]),
        subject(3, 1, 12, [portion(3, date(2024, 2, 1), done=True)]),
    ]
    facilitators = [person(10, dept=1), person(11, dept=1), person(12, active=False), person(13)]
    rows = reports.facilitator_progress(facilitators, subjects, TODAY)
    assert [r["id"] for r in rows] == [11, 10]
    assert rows[1]["progress"]["pending"] == 1
    assert rows[0]["department_name"] == "Dept1"


def test_subject_progress_bands():
    subjects = [
        subject(1, 1, None, [portion(1, date(2024, 1, 1), done=True)]),                      # 100
        subject(2, 1, None, [portion(2, date(2024, 1, 1), done=True), portion(3, date(2024, 3, 1))]),  # 50
        subject(3, 1, None, [portion(4, date(2024, 1, 1))]),                                 # 0, overdue
    ]
    ids = lambda band: [r["id"] for r in reports.subject_progress(subjects, TODAY, band=band)]
    assert ids(None) == [1, 2, 3]
    assert ids("on-track") == [1]
    assert ids("moderate") == [2]
    assert ids("behind") == [3]
    assert ids("overdue") == [3]
    assert reports.subject_progress(subjects, TODAY)[2]["facilitator_name"] == "Unassigned"


def test_overdue_portions_most_overdue_first():
    subjects = [
        subject(1, 1, 10, [portion(1, date(2024, 1, 13)), portion(2, date(2024, 1, 1)), portion(3, TODAY)]),
        subject(2, 1, 10, [portion(4, date(2024, 1, 10)), portion(5, None)]),
    ]
    rows = reports.overdue_portions(subjects, TODAY)
    assert [(r["id"], r["days_overdue"]) for r in rows] == [(2, 14), (4, 5), (1, 2)]


def test_facilitator_dashboard_upcoming_by_date_limited():
    portions = [portion(i, date(2024, 1, 22 - i)) for i in range(1, 8)]
    data = reports.facilitator_dashboard([subject(1, 1, 10, portions)], TODAY, limit=5)
    assert [u["planned_date"] for u in data["upcoming"]] == [
        "2024-01-15", "2024-01-16", "2024-01-17", "2024-01-18", "2024-01-19",
    ]
    assert data["upcoming"][0]["label"] == "today"
    assert data["progress"]["pending"] == 7
    assert data["subjects"][0]["portions"][-1]["status"] == "due-today"


def test_student_dashboard_upcoming_by_days_until():
    s1 = subject(1, 1, 10, [portion(1, date(2024, 1, 20)), portion(2, date(2024, 1, 1), done=True)])
    s2 = subject(2, 1, 11, [portion(3, date(2024, 1, 16))])
    data = reports.student_dashboard([s2, s1], TODAY)
    assert [u["portion_id"] for u in data["upcoming"]] == [3, 1]
    assert [u["days_until"] for u in data["upcoming"]] == [1, 5]
    assert [s["id"] for s in data["subjects"]] == [1, 2]
    assert data["progress"]["percentage"] == 33


def test_super_admin_summary_counts_roles_and_recent_users():
    users = [
        person(1, role="super_admin", created=datetime(2024, 1, 1)),
        person(2, role="facilitator", created=datetime(2024, 1, 3)),
        person(3, role="student", created=datetime(2024, 1, 2)),
        person(4, role="mystery", created=None),
    ]
    data = reports.super_admin_summary([NS(id=1)], users, [], TODAY, recent_limit=2)
    assert data["users"]["by_role"] == {"super_admin": 1, "admin": 0, "facilitator": 1, "student": 2}
    assert data["facilitators"] == 1
    assert [u["id"] for u in data["recent_users"]] == [2, 3]
    assert data["progress"]["percentage"] == 0


def test_department_directory_counts_by_primary_department():
    depts = [NS(id=1, name="A", code="A"), NS(id=2, name="B", code="B")]
    users = [person(1, "facilitator", dept=1), person(2, "student", dept=1), person(3, "student", dept=1),
             person(4, "student", dept=2)]
    subjects = [subject(1, 2, None, [])]
    rows = reports.department_directory(depts, users, subjects)
    assert rows[0] == {"id": 1, "name": "A", "code": "A", "facilitator_count": 1, "student_count": 2, "subject_count": 0}
    assert rows[1]["subject_count"] == 1
