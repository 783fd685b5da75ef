from flask import request
from flask_login import login_required, current_user

from . import academics_bp
from .. import csrf_required
from ..api_utils import api_success, api_error, request_payload
from ..decorators import capability_required
from ..roles import Capability, Role
from .. import data_access as dal
from ..models import InternalAssessment, Project
from ..progress import leaderboard

_ADAPTERS = {
    dal.KIND_ASSESSMENT: leaderboard.from_assessment_mark,
    dal.KIND_PROJECT: leaderboard.from_project_submission,
}


def _visible_subject_ids():
    """Subjects of the active year the current user can see assessments and projects for."""
    year = dal.get_active_academic_year()
    role = Role.parse(current_user.role)
    if role is Role.STUDENT:
        if current_user.department_id is None:
            return []
        subjects = dal.list_subjects(year.id if year else None, department_id=current_user.department_id)
    elif role is Role.FACILITATOR:
        subjects = dal.list_subjects(year.id if year else None, facilitator_id=current_user.id)
    else:
        subjects = dal.list_subjects(year.id if year else None)
    return [s.id for s in subjects]


def _mine(kind, key):
    if Role.parse(current_user.role) is not Role.STUDENT:
        return {}
    return {getattr(row, key): row.to_dict() for row in dal.list_submissions_for_student(kind, current_user.id)}


@academics_bp.route("/assessments")
@login_required
@capability_required(Capability.VIEW_ASSESSMENTS)
def assessments():
    mine = _mine(dal.KIND_ASSESSMENT, "assessment_id")
    rows = []
    for assessment in dal.list_assessments(_visible_subject_ids()):
        row = assessment.to_dict()
        row["my_submission"] = mine.get(assessment.id)
        rows.append(row)
    return api_success(rows, meta={
        "count": len(rows),
        "submitted": len(mine),
        "verified": sum(1 for m in mine.values() if m["verified"]),
    })


@academics_bp.route("/projects")
@login_required
@capability_required(Capability.VIEW_PROJECTS)
def projects():
    mine = _mine(dal.KIND_PROJECT, "project_id")
    rows = []
    for project in dal.list_projects(_visible_subject_ids()):
        row = project.to_dict()
        row["my_submission"] = mine.get(project.id)
        rows.append(row)
    return api_success(rows, meta={"count": len(rows), "submitted": len(mine)})


def _submit(kind, model, entity_id):
    entity = dal.get_or_404(model, entity_id)
    subject = entity.subject
    if subject is None or subject.department_id != current_user.department_id:
        return api_error("forbidden", "This item is not offered to your department.", 403)
    row = dal.upsert_submission(kind, entity_id, current_user.id, request_payload(request))
    return api_success(row.to_dict(), status=201)


@academics_bp.route("/assessments/<int:assessment_id>/submit", methods=["POST"])
@login_required
@capability_required(Capability.SUBMIT_WORK)
@csrf_required
def submit_assessment(assessment_id):
    return _submit(dal.KIND_ASSESSMENT, InternalAssessment, assessment_id)


@academics_bp.route("/projects/<int:project_id>/submit", methods=["POST"])
@login_required
@capability_required(Capability.SUBMIT_WORK)
@csrf_required
def submit_project(project_id):
    return _submit(dal.KIND_PROJECT, Project, project_id)


@academics_bp.route("/leaderboard/<kind>")
@login_required
@capability_required(Capability.VIEW_LEADERBOARDS)
def leaderboard_view(kind):
    adapter = _ADAPTERS.get(kind)
    if adapter is None:
        return api_error("not_found", f"Unknown leaderboard: {kind}", 404)
    entries = leaderboard.rank([adapter(row) for row in dal.list_verified_submissions(kind)])
    return api_success(
        [leaderboard.display_entry(e) for e in entries],
        meta={"count": len(entries), "my_rank": leaderboard.my_rank(entries, current_user.id)},
    )
