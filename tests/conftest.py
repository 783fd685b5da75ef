from datetime import date

import pytest
from werkzeug.security import generate_password_hash

from tracker_app import create_app, db
from tracker_app.models import AcademicYear, Department, Portion, Subject, User


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "RATELIMIT_ENABLED": False,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_department(app):
    def _make(name="Computer Science", code="CS"):
        with app.app_context():
            dept = Department(name=name, code=code)
            db.session.add(dept)
            db.session.commit()
            return dept.id
    return _make


@pytest.fixture
def make_year(app):
    def _make(name="2024-2025", is_active=True):
        with app.app_context():
            year = AcademicYear(name=name, start_date=date(2024, 6, 1), end_date=date(2025, 5, 31), is_active=is_active)
            db.session.add(year)
            db.session.commit()
            return year.id
    return _make


@pytest.fixture
def make_user(app):
    def _make(email, role="student", password="secret", department_id=None, department_ids=(), is_active=True,
              first_name="Test", last_name="User"):
        with app.app_context():
            user = User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                password_hash=generate_password_hash(password),
                role=role,
                department_id=department_id,
                is_active=is_active,
            )
            user.departments = [db.session.get(Department, d) for d in department_ids]
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make


@pytest.fixture
def make_subject(app):
    """Create a subject with portions given as (name, planned_date, is_completed) tuples."""
    def _make(department_id, academic_year_id, facilitator_id=None, name="Data Structures", code="CS201", portions=()):
        with app.app_context():
            subject = Subject(
                name=name,
                code=code,
                department_id=department_id,
                academic_year_id=academic_year_id,
                facilitator_id=facilitator_id,
            )
            db.session.add(subject)
            db.session.flush()
            for order, (portion_name, planned, done) in enumerate(portions, start=1):
                db.session.add(Portion(
                    subject_id=subject.id,
                    name=portion_name,
                    sequence_order=order,
                    planned_date=planned,
                    is_completed=done,
                    completed_date=planned if done else None,
                ))
            db.session.commit()
            return subject.id
    return _make


@pytest.fixture
def login():
    """Log ``client`` in and return the session CSRF token."""
    def _login(client, email, password="secret"):
        resp = client.post("/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()["data"]["csrf_token"]
    return _login
