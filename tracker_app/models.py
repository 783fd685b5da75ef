from datetime import datetime, timezone
from . import db

def utc_now():
    return datetime.now(timezone.utc)

from flask_login import UserMixin

# ==========================================
# ORGANIZATION
# ==========================================

class Department(db.Model):
    __tablename__ = "departments"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(32), nullable=False, unique=True)  # e.g. BSC-CT
    created_at = db.Column(db.DateTime, default=utc_now)

    subjects = db.relationship("Subject", back_populates="department", lazy=True)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "code": self.code}


class AcademicYear(db.Model):
    __tablename__ = "academic_years"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False)  # e.g. 2024-2025
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    # Only one row is expected to be active at a time
    is_active = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=utc_now)


user_departments = db.Table(
    "user_departments",
    db.Column("id", db.Integer, primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), nullable=False),
    db.Column("department_id", db.Integer, db.ForeignKey("departments.id"), nullable=False),
    db.Column("created_at", db.DateTime, default=utc_now),
    db.UniqueConstraint("user_id", "department_id", name="uq_user_department"),
)


class User(UserMixin, db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(128), unique=True, nullable=False)
    first_name = db.Column(db.String(64), nullable=False)
    last_name = db.Column(db.String(64), nullable=False)
    password_hash = db.Column(db.String(256))
    role = db.Column(db.String(32), default="student")  # super_admin, admin, facilitator, student
    # Primary department; facilitators may also be linked to others via user_departments
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"))
    is_active = db.Column(db.Boolean, default=True)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, onupdate=utc_now)

    department = db.relationship("Department", foreign_keys=[department_id])
    departments = db.relationship("Department", secondary=user_departments, lazy="selectin")

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "department_id": self.department_id,
            "department": self.department.to_dict() if self.department else None,
            "departments": [d.to_dict() for d in self.departments],
            "is_active": bool(self.is_active),
        }


# ==========================================
# CURRICULUM
# ==========================================

class Subject(db.Model):
    __tablename__ = "subjects"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(64), nullable=False)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=False)
    academic_year_id = db.Column(db.Integer, db.ForeignKey("academic_years.id"), nullable=False)
    facilitator_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=utc_now)

    department = db.relationship("Department", back_populates="subjects")
    facilitator = db.relationship("User", foreign_keys=[facilitator_id])
    academic_year = db.relationship("AcademicYear")
    portions = db.relationship(
        "Portion",
        back_populates="subject",
        order_by="Portion.sequence_order",
        lazy="selectin",
    )


class Portion(db.Model):
    __tablename__ = "portions"
    id = db.Column(db.Integer, primary_key=True)
    subject_id = db.Column(db.Integer, db.ForeignKey("subjects.id"), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    sequence_order = db.Column(db.Integer, default=0)
    planned_date = db.Column(db.Date)
    # Set if and only if is_completed; maintained by data_access.set_portion_complete
    completed_date = db.Column(db.Date)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, onupdate=utc_now)

    subject = db.relationship("Subject", back_populates="portions")

    def to_dict(self):
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "name": self.name,
            "sequence_order": self.sequence_order,
            "planned_date": self.planned_date.isoformat() if self.planned_date else None,
            "completed_date": self.completed_date.isoformat() if self.completed_date else None,
            "is_completed": bool(self.is_completed),
            "notes": self.notes,
        }


# ==========================================
# ASSESSMENTS & PROJECTS
# ==========================================

class InternalAssessment(db.Model):
    __tablename__ = "internal_assessments"
    id = db.Column(db.Integer, primary_key=True)
    subject_id = db.Column(db.Integer, db.ForeignKey("subjects.id"), nullable=False)
    ia_number = db.Column(db.Integer, nullable=False)
    scheduled_date = db.Column(db.Date)
    conducted_date = db.Column(db.Date)
    is_completed = db.Column(db.Boolean, default=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utc_now)

    subject = db.relationship("Subject")

    def to_dict(self):
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "subject": {"id": self.subject.id, "name": self.subject.name, "code": self.subject.code} if self.subject else None,
            "ia_number": self.ia_number,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "is_completed": bool(self.is_completed),
        }


PROJECT_TYPES = ("case_study", "seminar", "reportage")


class Project(db.Model):
    __tablename__ = "projects"
    id = db.Column(db.Integer, primary_key=True)
    subject_id = db.Column(db.Integer, db.ForeignKey("subjects.id"), nullable=False)
    type = db.Column(db.String(16), nullable=False)  # case_study, seminar, reportage
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    assigned_date = db.Column(db.Date)
    due_date = db.Column(db.Date)
    is_completed = db.Column(db.Boolean, default=False)
    completed_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, onupdate=utc_now)

    subject = db.relationship("Subject")

    def to_dict(self):
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "subject": {"id": self.subject.id, "name": self.subject.name, "code": self.subject.code} if self.subject else None,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "is_completed": bool(self.is_completed),
        }


class StudentAssessmentMark(db.Model):
    __tablename__ = "student_assessment_marks"
    id = db.Column(db.Integer, primary_key=True)
    assessment_id = db.Column(db.Integer, db.ForeignKey("internal_assessments.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    marks_obtained = db.Column(db.Float)
    max_marks = db.Column(db.Float, default=100)
    paper_url = db.Column(db.String(255))
    paper_file_name = db.Column(db.String(255))
    submitted_at = db.Column(db.DateTime, default=utc_now)
    verified = db.Column(db.Boolean, default=False, nullable=False)
    verified_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    verified_at = db.Column(db.DateTime)
    remarks = db.Column(db.Text)

    student = db.relationship("User", foreign_keys=[student_id])

    __table_args__ = (
        db.UniqueConstraint("assessment_id", "student_id", name="uq_assessment_student"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "assessment_id": self.assessment_id,
            "student_id": self.student_id,
            "marks_obtained": self.marks_obtained,
            "max_marks": self.max_marks,
            "paper_url": self.paper_url,
            "paper_file_name": self.paper_file_name,
            "verified": bool(self.verified),
            "remarks": self.remarks,
        }


SUBMISSION_STATUSES = ("pending", "in_progress", "completed")


class StudentProjectSubmission(db.Model):
    __tablename__ = "student_project_submissions"
    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    document_url = db.Column(db.String(255))
    document_file_name = db.Column(db.String(255))
    status = db.Column(db.String(16), default="pending")  # pending, in_progress, completed
    submitted_at = db.Column(db.DateTime, default=utc_now)
    score = db.Column(db.Float)
    max_score = db.Column(db.Float, default=100)
    remarks = db.Column(db.Text)
    verified = db.Column(db.Boolean, default=False, nullable=False)
    verified_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    verified_at = db.Column(db.DateTime)

    student = db.relationship("User", foreign_keys=[student_id])

    __table_args__ = (
        db.UniqueConstraint("project_id", "student_id", name="uq_project_student"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "student_id": self.student_id,
            "document_url": self.document_url,
            "document_file_name": self.document_file_name,
            "status": self.status,
            "score": self.score,
            "max_score": self.max_score,
            "verified": bool(self.verified),
            "remarks": self.remarks,
        }


# ==========================================
# ANNOUNCEMENTS
# ==========================================

ANNOUNCEMENT_PRIORITIES = ("low", "medium", "high")
ANNOUNCEMENT_AUDIENCES = ("all", "students", "facilitators", "admins")


class Announcement(db.Model):
    __tablename__ = "announcements"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    priority = db.Column(db.String(16), default="medium", nullable=False)  # low, medium, high
    target_audience = db.Column(db.String(16), default="all", nullable=False)  # all, students, facilitators, admins
    # Hidden from readers after this date
    expires_at = db.Column(db.Date)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now)

    author = db.relationship("User", foreign_keys=[author_id])

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "priority": self.priority,
            "target_audience": self.target_audience,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "author": self.author.full_name if self.author else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
