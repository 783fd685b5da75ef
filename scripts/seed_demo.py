import os
import sys
from datetime import date, timedelta
from werkzeug.security import generate_password_hash

# Ensure project root is on sys.path when running from scripts/
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from tracker_app import create_app, db
from tracker_app.models import AcademicYear, Department, Portion, Subject, User
from sqlalchemy import select


def ensure_department(name: str, code: str):
    dept = db.session.execute(select(Department).filter_by(code=code)).scalars().first()
    if dept is None:
        dept = Department(name=name, code=code)
        db.session.add(dept)
        db.session.commit()
    return dept


def ensure_active_year(name: str, start: date, end: date):
    year = db.session.execute(select(AcademicYear).filter_by(name=name)).scalars().first()
    if year is None:
        year = AcademicYear(name=name, start_date=start, end_date=end)
        db.session.add(year)
    year.is_active = True
    db.session.commit()
    return year


def ensure_user(email: str, password: str, role: str, first_name: str, last_name: str, department=None):
    user = db.session.execute(select(User).filter_by(email=email)).scalars().first()
    created = user is None
    if created:
        user = User(email=email, first_name=first_name, last_name=last_name)
        db.session.add(user)
    # Reset password and role to ensure known credentials
    user.password_hash = generate_password_hash(password)
    user.role = role
    user.is_active = True
    if department is not None:
        user.department_id = department.id
        if department not in user.departments:
            user.departments.append(department)
    db.session.commit()
    return user, created


def ensure_subject(name: str, code: str, department, year, facilitator, portion_names):
    subject = db.session.execute(
        select(Subject).filter_by(code=code, academic_year_id=year.id)
    ).scalars().first()
    if subject is not None:
        return subject, False
    subject = Subject(
        name=name,
        code=code,
        department_id=department.id,
        academic_year_id=year.id,
        facilitator_id=facilitator.id,
    )
    db.session.add(subject)
    db.session.flush()
    today = date.today()
    # Spread portions a week apart around today so every status shows up
    for idx, portion_name in enumerate(portion_names):
        planned = today + timedelta(days=7 * (idx - 1))
        done = idx == 0
        db.session.add(Portion(
            subject_id=subject.id,
            name=portion_name,
            sequence_order=idx + 1,
            planned_date=planned,
            is_completed=done,
            completed_date=planned if done else None,
        ))
    db.session.commit()
    return subject, True


def main():
    app = create_app()
    with app.app_context():
        today = date.today()
        start_year = today.year if today.month >= 6 else today.year - 1
        year = ensure_active_year(
            f"{start_year}-{start_year + 1}",
            date(start_year, 6, 1),
            date(start_year + 1, 5, 31),
        )
        dept = ensure_department("Computer Science", "CS")

        accounts = [
            ("superadmin@example.edu", "super123", "super_admin", "Sam", "Super", None),
            ("admin@example.edu", "admin123", "admin", "Ann", "Admin", None),
            ("facilitator@example.edu", "facil123", "facilitator", "Fay", "Cilitator", dept),
            ("student@example.edu", "student123", "student", "Stu", "Dent", dept),
        ]
        users = {}
        for email, password, role, first, last, department in accounts:
            user, created = ensure_user(email, password, role, first, last, department)
            users[role] = user
            print(f"{role} -> email: {email}, password: {password}, created={created}")

        subject, created = ensure_subject(
            "Data Structures", "CS201", dept, year, users["facilitator"],
            ["Arrays and lists", "Stacks and queues", "Trees", "Graphs"],
        )
        print(f"Academic year {year.name} active; subject {subject.code} created={created}")


if __name__ == "__main__":
    main()
