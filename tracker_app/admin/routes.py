from datetime import date

from flask import request, current_app
from flask_login import login_required, current_user

from . import admin_bp
from .. import csrf_required
from ..api_utils import api_success, api_error, request_payload
from ..decorators import capability_required
from ..roles import Capability, Role, ROLE_DESCRIPTIONS, can_create, capabilities_for
from .. import data_access as dal
from ..models import User
from ..progress import reports


def _active_year_subjects():
    year = dal.get_active_academic_year()
    subjects = dal.list_subjects(year.id if year else None)
    return year, subjects


def _year_meta(year):
    return {"academic_year": year.name if year else None, "today": date.today().isoformat()}


def _int_arg(name):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise dal.ValidationError(f"{name} must be an integer")


@admin_bp.route("/summary")
@login_required
@capability_required(Capability.VIEW_ADMIN_DASHBOARD)
def summary():
    today = date.today()
    year, subjects = _active_year_subjects()
    departments = dal.list_departments()
    facilitators = dal.list_users(role=Role.FACILITATOR, active_only=True)
    overdue = reports.overdue_portions(subjects, today)
    return api_success(
        {
            "summary": reports.institution_summary(departments, facilitators, subjects, today),
            "departments": reports.department_progress(departments, subjects, facilitators, today),
            "facilitators": reports.facilitator_progress(facilitators, subjects, today),
            "overdue_count": len(overdue),
        },
        meta=_year_meta(year),
    )


@admin_bp.route("/super-summary")
@login_required
@capability_required(Capability.VIEW_SUPER_ADMIN_DASHBOARD)
def super_summary():
    today = date.today()
    year, subjects = _active_year_subjects()
    departments = dal.list_departments()
    users = dal.list_users()
    facilitators = [u for u in users if Role.parse(u.role) is Role.FACILITATOR and u.is_active]
    return api_success(
        {
            "summary": reports.super_admin_summary(departments, users, subjects, today),
            "departments": reports.department_progress(departments, subjects, facilitators, today),
        },
        meta=_year_meta(year),
    )


# ==========================================
# DEPARTMENTS
# ==========================================

@admin_bp.route("/departments", methods=["GET"])
@login_required
@capability_required(Capability.MANAGE_DEPARTMENTS, Capability.MANAGE_USERS)
def departments_list():
    year, subjects = _active_year_subjects()
    rows = reports.department_directory(dal.list_departments(), dal.list_users(), subjects)
    return api_success(rows, meta=_year_meta(year))


@admin_bp.route("/departments", methods=["POST"])
@login_required
@capability_required(Capability.MANAGE_DEPARTMENTS)
@csrf_required
def departments_create():
    payload = request_payload(request)
    dept = dal.create_department(payload.get("name"), payload.get("code"))
    current_app.logger.info("Department %s created by user %s", dept.code, current_user.id)
    return api_success(dept.to_dict(), status=201)


@admin_bp.route("/departments/<int:department_id>", methods=["PUT"])
@login_required
@capability_required(Capability.MANAGE_DEPARTMENTS)
@csrf_required
def departments_update(department_id):
    payload = request_payload(request)
    dept = dal.update_department(department_id, name=payload.get("name"), code=payload.get("code"))
    return api_success(dept.to_dict())


@admin_bp.route("/departments/<int:department_id>", methods=["DELETE"])
@login_required
@capability_required(Capability.MANAGE_DEPARTMENTS)
@csrf_required
def departments_delete(department_id):
    dal.delete_department(department_id)
    current_app.logger.info("Department %s deleted by user %s", department_id, current_user.id)
    return api_success({"deleted": department_id})


# ==========================================
# USERS
# ==========================================

@admin_bp.route("/users", methods=["GET"])
@login_required
@capability_required(Capability.MANAGE_USERS)
def users_list():
    role = (request.args.get("role") or "").strip() or None
    users = dal.list_users(role=role, department_id=_int_arg("department_id"))
    return api_success([u.to_dict() for u in users], meta={"count": len(users)})


@admin_bp.route("/users", methods=["POST"])
@login_required
@capability_required(Capability.MANAGE_USERS)
@csrf_required
def users_create():
    payload = request_payload(request)
    if "department_ids" not in payload and request.form:
        payload["department_ids"] = request.form.getlist("department_ids")
    target = Role.parse(payload.get("role"))
    if not can_create(current_user.role, target):
        return api_error("forbidden", f"You cannot create {target.label} accounts.", 403)
    user = dal.create_user(payload)
    return api_success(user.to_dict(), status=201)


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@login_required
@capability_required(Capability.MANAGE_USERS)
@csrf_required
def users_delete(user_id):
    if user_id == current_user.id:
        return api_error("invalid", "You cannot delete your own account.", 400)
    target = dal.get_or_404(User, user_id)
    if not can_create(current_user.role, target.role):
        return api_error("forbidden", f"You cannot delete {Role.parse(target.role).label} accounts.", 403)
    dal.delete_user(user_id)
    current_app.logger.info("User %s deleted by user %s", user_id, current_user.id)
    return api_success({"deleted": user_id})


@admin_bp.route("/facilitators")
@login_required
@capability_required(Capability.VIEW_FACILITATORS)
def facilitators():
    today = date.today()
    year, subjects = _active_year_subjects()
    users = dal.list_users(role=Role.FACILITATOR, department_id=_int_arg("department_id"), active_only=True)
    return api_success(reports.facilitator_progress(users, subjects, today), meta=_year_meta(year))


@admin_bp.route("/students")
@login_required
@capability_required(Capability.VIEW_STUDENTS)
def students():
    users = dal.list_users(role=Role.STUDENT, department_id=_int_arg("department_id"))
    return api_success([u.to_dict() for u in users], meta={"count": len(users)})


@admin_bp.route("/portions")
@login_required
@capability_required(Capability.VIEW_PORTION_OVERVIEW)
def portions():
    today = date.today()
    band = (request.args.get("band") or "").strip() or None
    if band and band not in reports.BANDS:
        return api_error("invalid", "band must be one of: " + ", ".join(reports.BANDS), 400)
    year, subjects = _active_year_subjects()
    department_id = _int_arg("department_id")
    if department_id is not None:
        subjects = [s for s in subjects if s.department_id == department_id]
    return api_success(
        {
            "summary": reports.institution_summary(
                {s.department_id for s in subjects}, {s.facilitator_id for s in subjects if s.facilitator_id}, subjects, today
            ),
            "subjects": reports.subject_progress(subjects, today, band=band),
            "overdue": reports.overdue_portions(subjects, today),
        },
        meta=_year_meta(year),
    )


@admin_bp.route("/roles")
@login_required
@capability_required(Capability.VIEW_ROLES)
def roles():
    users = dal.list_users()
    counts = {role: 0 for role in Role}
    for user in users:
        counts[Role.parse(user.role)] += 1
    rows = []
    for role in Role:
        description, permissions = ROLE_DESCRIPTIONS[role]
        rows.append({
            "role": role.value,
            "label": role.label,
            "description": description,
            "permissions": permissions,
            "capabilities": capabilities_for(role),
            "user_count": counts[role],
        })
    return api_success(rows)
