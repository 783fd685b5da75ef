"""
Database reads and writes used by the routes.

Reads swallow database errors (logged) and hand back empty results so a page
degrades to zeros. Writes commit once; on failure the session is rolled back
and ``WriteError`` is raised.
"""
import logging
from datetime import date, datetime, timezone

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from werkzeug.security import check_password_hash, generate_password_hash

from . import db
from .models import (
    ANNOUNCEMENT_AUDIENCES,
    ANNOUNCEMENT_PRIORITIES,
    PROJECT_TYPES,
    SUBMISSION_STATUSES,
    AcademicYear,
    Announcement,
    Department,
    InternalAssessment,
    Portion,
    Project,
    StudentAssessmentMark,
    StudentProjectSubmission,
    Subject,
    User,
    user_departments,
)
from .roles import AUDIENCE, Role

logger = logging.getLogger(__name__)

KIND_ASSESSMENT = "assessment"
KIND_PROJECT = "project"
SUBMISSION_KINDS = (KIND_ASSESSMENT, KIND_PROJECT)

DEFAULT_MAX = 100.0
MIN_PASSWORD_LENGTH = 8
SEARCH_LIMITS = {"users": 5, "subjects": 5, "departments": 3, "portions": 5}


class ValidationError(ValueError):
    """Bad input from the caller; rendered as a 400."""


class NotFoundError(LookupError):
    """A referenced row does not exist; rendered as a 404."""


class WriteError(RuntimeError):
    """A commit failed and was rolled back; rendered as a 500."""


def _now():
    return datetime.now(timezone.utc)


def _commit(action):
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("Integrity error while trying to %s: %s", action, e.orig)
        raise ValidationError(f"Could not {action}: conflicting record") from e
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to %s", action)
        raise WriteError(f"Could not {action}") from e


def _read(what, stmt, first=False):
    try:
        result = db.session.execute(stmt).scalars()
        return result.first() if first else list(result.all())
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to load %s", what)
        return None if first else []


def _number(value, name):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def _required(fields, *names):
    missing = [n for n in names if not str(fields.get(n) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))


def _check_kind(kind):
    if kind not in SUBMISSION_KINDS:
        raise ValidationError(f"Unknown submission kind: {kind}")


def _parse_date(value, name):
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{name} must be a YYYY-MM-DD date")


# ==========================================
# READS
# ==========================================

def get_active_academic_year():
    stmt = select(AcademicYear).filter_by(is_active=True).order_by(AcademicYear.id)
    return _read("active academic year", stmt, first=True)


def list_subjects(academic_year_id, department_id=None, facilitator_id=None):
    """Subjects of a year with portions (by sequence_order), department and facilitator loaded."""
    if academic_year_id is None:
        return []
    stmt = (
        select(Subject)
        .filter_by(academic_year_id=academic_year_id)
        .options(
            selectinload(Subject.portions),
            selectinload(Subject.department),
            selectinload(Subject.facilitator),
        )
        .order_by(Subject.name)
    )
    if department_id is not None:
        stmt = stmt.filter(Subject.department_id == department_id)
    if facilitator_id is not None:
        stmt = stmt.filter(Subject.facilitator_id == facilitator_id)
    return _read("subjects", stmt)


def list_users(role=None, department_id=None, active_only=False):
    stmt = select(User).options(selectinload(User.department)).order_by(User.first_name, User.last_name)
    if role is not None:
        stmt = stmt.filter(User.role == Role.parse(role).value)
    if department_id is not None:
        stmt = stmt.filter(or_(
            User.department_id == department_id,
            User.departments.any(Department.id == department_id),
        ))
    if active_only:
        stmt = stmt.filter(User.is_active.is_(True))
    return _read("users", stmt)


def list_departments():
    return _read("departments", select(Department).order_by(Department.name))


def list_verified_submissions(kind):
    """Verified assessment marks, or verified project submissions that are also completed."""
    _check_kind(kind)
    if kind == KIND_ASSESSMENT:
        stmt = (
            select(StudentAssessmentMark)
            .filter(StudentAssessmentMark.verified.is_(True))
            .options(selectinload(StudentAssessmentMark.student))
            .order_by(StudentAssessmentMark.id)
        )
    else:
        stmt = (
            select(StudentProjectSubmission)
            .filter(StudentProjectSubmission.verified.is_(True))
            .filter(StudentProjectSubmission.status == "completed")
            .options(selectinload(StudentProjectSubmission.student))
            .order_by(StudentProjectSubmission.id)
        )
    return _read(f"verified {kind} submissions", stmt)


def list_submissions_for_student(kind, student_id):
    _check_kind(kind)
    model = StudentAssessmentMark if kind == KIND_ASSESSMENT else StudentProjectSubmission
    stmt = select(model).filter_by(student_id=student_id).order_by(model.id)
    return _read(f"{kind} submissions of student {student_id}", stmt)


def list_assessments(subject_ids=None):
    stmt = select(InternalAssessment).order_by(InternalAssessment.scheduled_date, InternalAssessment.id)
    if subject_ids is not None:
        if not subject_ids:
            return []
        stmt = stmt.filter(InternalAssessment.subject_id.in_(subject_ids))
    return _read("assessments", stmt)


def list_projects(subject_ids=None):
    stmt = select(Project).order_by(Project.due_date, Project.id)
    if subject_ids is not None:
        if not subject_ids:
            return []
        stmt = stmt.filter(Project.subject_id.in_(subject_ids))
    return _read("projects", stmt)


def get_or_404(model, pk):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(f"{model.__name__} {pk} not found")
    return obj


# ==========================================
# PORTIONS
# ==========================================

def set_portion_complete(portion_id, completed, notes=None, today=None):
    """
    Mark a portion complete (stamping ``today``) or revert it.

    Reverting clears the completion date and discards notes.
    """
    portion = get_or_404(Portion, portion_id)
    if completed:
        portion.is_completed = True
        portion.completed_date = today or date.today()
        portion.notes = (notes or "").strip() or None
    else:
        portion.is_completed = False
        portion.completed_date = None
        portion.notes = None
    _commit(f"update portion {portion_id}")
    logger.info("Portion %s marked %s", portion_id, "complete" if completed else "incomplete")
    return portion


# ==========================================
# SUBMISSIONS
# ==========================================

def _assessment_fields(fields):
    marks = _number(fields.get("marks_obtained"), "marks_obtained")
    if marks is None:
        raise ValidationError("marks_obtained is required")
    max_marks = _number(fields.get("max_marks"), "max_marks")
    if max_marks is None:
        max_marks = DEFAULT_MAX
    if max_marks <= 0:
        raise ValidationError("max_marks must be positive")
    if marks < 0 or marks > max_marks:
        raise ValidationError(f"marks_obtained must be between 0 and {max_marks:g}")
    paper_url = str(fields.get("paper_url") or "").strip()
    if not paper_url:
        raise ValidationError("paper_url is required: upload the answer paper first")
    return {
        "marks_obtained": marks,
        "max_marks": max_marks,
        "paper_url": paper_url,
        "paper_file_name": fields.get("paper_file_name"),
    }


def _project_fields(fields):
    status = (fields.get("status") or "").strip()
    if status not in SUBMISSION_STATUSES:
        raise ValidationError("status must be one of: " + ", ".join(SUBMISSION_STATUSES))
    # Every (re-)submission starts ungraded
    return {
        "status": status,
        "document_url": fields.get("document_url"),
        "document_file_name": fields.get("document_file_name"),
        "remarks": fields.get("remarks"),
        "score": None,
        "max_score": DEFAULT_MAX,
    }


def upsert_submission(kind, entity_id, student_id, fields):
    """
    Create or overwrite the single submission of ``student_id`` for an assessment or project.

    Re-submitting resets verification.
    """
    _check_kind(kind)
    if kind == KIND_ASSESSMENT:
        get_or_404(InternalAssessment, entity_id)
        values = _assessment_fields(fields)
        row = db.session.execute(
            select(StudentAssessmentMark).filter_by(assessment_id=entity_id, student_id=student_id)
        ).scalars().first()
        if not row:
            row = StudentAssessmentMark(assessment_id=entity_id, student_id=student_id)
            db.session.add(row)
    else:
        get_or_404(Project, entity_id)
        values = _project_fields(fields)
        row = db.session.execute(
            select(StudentProjectSubmission).filter_by(project_id=entity_id, student_id=student_id)
        ).scalars().first()
        if not row:
            row = StudentProjectSubmission(project_id=entity_id, student_id=student_id)
            db.session.add(row)

    for key, value in values.items():
        setattr(row, key, value)
    row.submitted_at = _now()
    row.verified = False
    row.verified_by = None
    row.verified_at = None
    _commit(f"save {kind} submission")
    return row


def verify_submission(kind, submission_id, verifier_id, amount=None, remarks=None):
    """Mark a submission verified, optionally setting the marks/score awarded."""
    _check_kind(kind)
    if kind == KIND_ASSESSMENT:
        row = get_or_404(StudentAssessmentMark, submission_id)
        amount_attr, max_attr = "marks_obtained", "max_marks"
    else:
        row = get_or_404(StudentProjectSubmission, submission_id)
        amount_attr, max_attr = "score", "max_score"

    value = _number(amount, amount_attr)
    if value is not None:
        ceiling = getattr(row, max_attr) or DEFAULT_MAX
        if value < 0 or value > ceiling:
            raise ValidationError(f"{amount_attr} must be between 0 and {ceiling:g}")
        setattr(row, amount_attr, value)
    if remarks is not None:
        row.remarks = remarks

    row.verified = True
    row.verified_by = verifier_id
    row.verified_at = _now()
    _commit(f"verify {kind} submission {submission_id}")
    logger.info("%s submission %s verified by user %s", kind.capitalize(), submission_id, verifier_id)
    return row


# ==========================================
# ASSESSMENTS & PROJECTS
# ==========================================

def create_assessment(subject_id, ia_number, scheduled_date=None, notes=None):
    get_or_404(Subject, subject_id)
    try:
        number = int(ia_number)
    except (TypeError, ValueError):
        raise ValidationError("ia_number must be an integer")
    assessment = InternalAssessment(
        subject_id=subject_id,
        ia_number=number,
        scheduled_date=_parse_date(scheduled_date, "scheduled_date"),
        notes=notes,
    )
    db.session.add(assessment)
    _commit("create assessment")
    return assessment


def create_project(subject_id, fields):
    get_or_404(Subject, subject_id)
    _required(fields, "title", "type")
    if fields["type"] not in PROJECT_TYPES:
        raise ValidationError("type must be one of: " + ", ".join(PROJECT_TYPES))
    project = Project(
        subject_id=subject_id,
        type=fields["type"],
        title=fields["title"].strip(),
        description=fields.get("description"),
        assigned_date=_parse_date(fields.get("assigned_date"), "assigned_date"),
        due_date=_parse_date(fields.get("due_date"), "due_date"),
    )
    db.session.add(project)
    _commit("create project")
    return project


# ==========================================
# DEPARTMENTS
# ==========================================

def _code_taken(code, exclude_id=None):
    stmt = select(Department.id).filter(Department.code == code)
    if exclude_id is not None:
        stmt = stmt.filter(Department.id != exclude_id)
    return db.session.execute(stmt).first() is not None


def create_department(name, code):
    name = (name or "").strip()
    code = (code or "").strip().upper()
    if not name or not code:
        raise ValidationError("Department name and code are required")
    if _code_taken(code):
        raise ValidationError(f"Department code {code} already exists")
    dept = Department(name=name, code=code)
    db.session.add(dept)
    _commit("create department")
    return dept


def update_department(department_id, name=None, code=None):
    dept = get_or_404(Department, department_id)
    if name is not None:
        if not name.strip():
            raise ValidationError("Department name cannot be empty")
        dept.name = name.strip()
    if code is not None:
        code = code.strip().upper()
        if not code:
            raise ValidationError("Department code cannot be empty")
        if _code_taken(code, exclude_id=department_id):
            raise ValidationError(f"Department code {code} already exists")
        dept.code = code
    _commit(f"update department {department_id}")
    return dept


def delete_department(department_id):
    """
    Delete a department that owns no subjects.

    Users whose primary department it was keep their account with no primary
    department; linked facilitators lose the link.
    """
    dept = get_or_404(Department, department_id)
    subject_count = db.session.execute(
        select(func.count(Subject.id)).where(Subject.department_id == department_id)
    ).scalar_one()
    if subject_count:
        logger.warning("Refused to delete department %s: %d subject(s) still belong to it", dept.code, subject_count)
        raise ValidationError(
            f"Department {dept.code} still has {subject_count} subject(s); move or remove them first"
        )
    detached = db.session.execute(
        update(User).where(User.department_id == department_id).values(department_id=None)
    ).rowcount
    if detached:
        logger.warning("Deleting department %s detaches %d user(s) from it", dept.code, detached)
    db.session.execute(delete(user_departments).where(user_departments.c.department_id == department_id))
    db.session.delete(dept)
    _commit(f"delete department {department_id}")


# ==========================================
# USERS
# ==========================================

def create_user(fields):
    """
    Create an account. Facilitators need at least one department (the first is
    their primary); students take ``department_id`` directly.
    """
    _required(fields, "email", "password", "first_name", "last_name", "role")
    email = fields["email"].strip().lower()
    role = Role.parse(fields["role"])
    if db.session.execute(select(User.id).where(User.email == email)).first():
        raise ValidationError(f"A user with email {email} already exists")

    try:
        department_ids = [int(d) for d in (fields.get("department_ids") or [])]
        primary = fields.get("department_id")
        primary = int(primary) if primary not in (None, "") else None
    except (TypeError, ValueError):
        raise ValidationError("Department ids must be integers")

    if role is Role.FACILITATOR:
        if not department_ids:
            raise ValidationError("Select at least one department for a facilitator")
        primary = department_ids[0]
    else:
        if primary is not None and not department_ids:
            department_ids = [primary]

    departments = [get_or_404(Department, d) for d in dict.fromkeys(department_ids)]
    user = User(
        email=email,
        first_name=fields["first_name"].strip(),
        last_name=fields["last_name"].strip(),
        password_hash=generate_password_hash(fields["password"]),
        role=role.value,
        department_id=primary,
        is_active=True,
    )
    user.departments = departments
    db.session.add(user)
    _commit("create user")
    logger.info("Created %s account %s", role.value, email)
    return user


def delete_user(user_id):
    user = get_or_404(User, user_id)
    user.departments = []
    db.session.execute(update(Announcement).where(Announcement.author_id == user_id).values(author_id=None))
    db.session.delete(user)
    _commit(f"delete user {user_id}")


def update_profile(user_id, first_name, last_name):
    user = get_or_404(User, user_id)
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise ValidationError("First and last name are required")
    user.first_name = first_name
    user.last_name = last_name
    _commit(f"update profile of user {user_id}")
    return user


def change_password(user_id, current, new, confirm):
    """Replace a user's password after checking the current one."""
    user = get_or_404(User, user_id)
    if not user.password_hash or not check_password_hash(user.password_hash, current or ""):
        raise ValidationError("Current password is incorrect")
    new = new or ""
    if new != (confirm or ""):
        raise ValidationError("New passwords do not match")
    if len(new) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    user.password_hash = generate_password_hash(new)
    _commit(f"change password of user {user_id}")
    logger.info("Password changed for user %s", user_id)
    return user


# ==========================================
# ANNOUNCEMENTS
# ==========================================

def list_announcements(role=None, today=None):
    """
    Announcements, newest first.

    With ``role`` only active, unexpired announcements addressed to everyone or
    to that role's audience are returned; without it every row is.
    """
    stmt = (
        select(Announcement)
        .options(selectinload(Announcement.author))
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
    )
    if role is not None:
        today = today or date.today()
        stmt = (
            stmt.filter(Announcement.is_active.is_(True))
            .filter(Announcement.target_audience.in_(("all", AUDIENCE[Role.parse(role)])))
            .filter(or_(Announcement.expires_at.is_(None), Announcement.expires_at >= today))
        )
    return _read("announcements", stmt)


def create_announcement(fields, author_id):
    _required(fields, "title", "content")
    priority = (fields.get("priority") or "medium").strip()
    if priority not in ANNOUNCEMENT_PRIORITIES:
        raise ValidationError("priority must be one of: " + ", ".join(ANNOUNCEMENT_PRIORITIES))
    audience = (fields.get("target_audience") or "all").strip()
    if audience not in ANNOUNCEMENT_AUDIENCES:
        raise ValidationError("target_audience must be one of: " + ", ".join(ANNOUNCEMENT_AUDIENCES))
    announcement = Announcement(
        title=fields["title"].strip(),
        content=fields["content"].strip(),
        priority=priority,
        target_audience=audience,
        expires_at=_parse_date(fields.get("expires_at"), "expires_at"),
        author_id=author_id,
        is_active=True,
    )
    db.session.add(announcement)
    _commit("create announcement")
    logger.info("Announcement %s posted by user %s for %s", announcement.id, author_id, audience)
    return announcement


def delete_announcement(announcement_id):
    announcement = get_or_404(Announcement, announcement_id)
    db.session.delete(announcement)
    _commit(f"delete announcement {announcement_id}")


# ==========================================
# SEARCH
# ==========================================

def _like(query):
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search(query):
    """
    Case-insensitive substring search over users, subjects, departments and
    portions, at most ``SEARCH_LIMITS[kind]`` rows of each kind.
    """
    query = (query or "").strip()
    if not query:
        return {kind: [] for kind in SEARCH_LIMITS}
    pattern = _like(query)

    def match(column):
        return column.ilike(pattern, escape="\\")

    statements = {
        "users": select(User)
        .filter(or_(match(User.first_name), match(User.last_name), match(User.email)))
        .order_by(User.first_name, User.last_name),
        "subjects": select(Subject)
        .options(selectinload(Subject.department))
        .filter(or_(match(Subject.name), match(Subject.code)))
        .order_by(Subject.name),
        "departments": select(Department)
        .filter(or_(match(Department.name), match(Department.code)))
        .order_by(Department.name),
        "portions": select(Portion)
        .options(selectinload(Portion.subject))
        .filter(match(Portion.name))
        .order_by(Portion.name, Portion.id),
    }
    return {
        kind: _read(f"{kind} matching {query!r}", stmt.limit(SEARCH_LIMITS[kind]))
        for kind, stmt in statements.items()
    }


def subject_of_submission(kind, submission_id):
    """The subject an assessment mark or project submission belongs to."""
    _check_kind(kind)
    if kind == KIND_ASSESSMENT:
        row = get_or_404(StudentAssessmentMark, submission_id)
        parent = get_or_404(InternalAssessment, row.assessment_id)
    else:
        row = get_or_404(StudentProjectSubmission, submission_id)
        parent = get_or_404(Project, row.project_id)
    return parent.subject
