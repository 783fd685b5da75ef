from datetime import date

from flask import request, current_app
from flask_login import login_required, current_user

from . import facilitator_bp
from .. import csrf_required
from ..api_utils import api_success, api_error, request_payload
from ..decorators import capability_required
from ..roles import Capability, Role
from .. import data_access as dal
from ..models import Portion, Subject
from ..progress import reports
from ..progress.classifier import classify

_TRUE = {"1", "true", "yes", "on"}


def _owns(subject):
    """Facilitators may only act on their own subjects; other roles with the capability are unrestricted."""
    if Role.parse(current_user.role) is not Role.FACILITATOR:
        return True
    return subject is not None and subject.facilitator_id == current_user.id


def _flag(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE


@facilitator_bp.route("/dashboard")
@login_required
@capability_required(Capability.VIEW_FACILITATOR_DASHBOARD)
def dashboard():
    facilitator_id = current_user.id
    if Role.parse(current_user.role) is not Role.FACILITATOR:
        facilitator_id = request.args.get("facilitator_id", type=int) or current_user.id

    year = dal.get_active_academic_year()
    subjects = dal.list_subjects(year.id if year else None, facilitator_id=facilitator_id)
    data = reports.facilitator_dashboard(
        subjects,
        date.today(),
        window_days=current_app.config["UPCOMING_WINDOW_DAYS"],
        limit=current_app.config["DASHBOARD_UPCOMING_LIMIT"],
    )
    return api_success(data, meta={
        "facilitator_id": facilitator_id,
        "academic_year": year.name if year else None,
    })


@facilitator_bp.route("/portions/<int:portion_id>/toggle", methods=["POST"])
@login_required
@capability_required(Capability.MARK_PORTIONS)
@csrf_required
def toggle_portion(portion_id):
    portion = dal.get_or_404(Portion, portion_id)
    if not _owns(portion.subject):
        return api_error("forbidden", "You can only update portions of your own subjects.", 403)

    payload = request_payload(request)
    completed = _flag(payload["completed"]) if "completed" in payload else not portion.is_completed
    today = date.today()
    portion = dal.set_portion_complete(portion_id, completed, notes=payload.get("notes"), today=today)
    current_app.logger.info(
        "User %s set portion %s (%s) to %s",
        current_user.id, portion.id, portion.name, "complete" if completed else "incomplete",
    )
    data = portion.to_dict()
    data["status"] = classify(portion, today).value
    return api_success(data)


@facilitator_bp.route("/assessments", methods=["POST"])
@login_required
@capability_required(Capability.MANAGE_ASSESSMENTS)
@csrf_required
def create_assessment():
    payload = request_payload(request)
    subject = dal.get_or_404(Subject, _subject_id(payload))
    if not _owns(subject):
        return api_error("forbidden", "You can only add assessments to your own subjects.", 403)
    assessment = dal.create_assessment(
        subject.id,
        payload.get("ia_number"),
        scheduled_date=payload.get("scheduled_date"),
        notes=payload.get("notes"),
    )
    return api_success(assessment.to_dict(), status=201)


@facilitator_bp.route("/projects", methods=["POST"])
@login_required
@capability_required(Capability.MANAGE_ASSESSMENTS)
@csrf_required
def create_project():
    payload = request_payload(request)
    subject = dal.get_or_404(Subject, _subject_id(payload))
    if not _owns(subject):
        return api_error("forbidden", "You can only add projects to your own subjects.", 403)
    project = dal.create_project(subject.id, payload)
    return api_success(project.to_dict(), status=201)


@facilitator_bp.route("/submissions/<kind>/<int:submission_id>/verify", methods=["POST"])
@login_required
@capability_required(Capability.VERIFY_SUBMISSIONS)
@csrf_required
def verify_submission(kind, submission_id):
    if kind not in dal.SUBMISSION_KINDS:
        return api_error("not_found", f"Unknown submission kind: {kind}", 404)
    if not _owns(dal.subject_of_submission(kind, submission_id)):
        return api_error("forbidden", "You can only verify submissions for your own subjects.", 403)
    payload = request_payload(request)
    row = dal.verify_submission(
        kind, submission_id, current_user.id,
        amount=payload.get("amount"),
        remarks=payload.get("remarks"),
    )
    return api_success(row.to_dict())


def _subject_id(payload):
    try:
        return int(payload.get("subject_id"))
    except (TypeError, ValueError):
        raise dal.ValidationError("subject_id is required")
