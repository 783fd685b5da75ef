from datetime import date

from flask import request, current_app
from flask_login import login_required, current_user

from . import student_bp
from ..api_utils import api_success
from ..decorators import capability_required
from ..roles import Capability, Role
from .. import data_access as dal
from ..progress import reports


@student_bp.route("/dashboard")
@login_required
@capability_required(Capability.VIEW_STUDENT_DASHBOARD)
def dashboard():
    department_id = current_user.department_id
    if Role.parse(current_user.role) is not Role.STUDENT:
        department_id = request.args.get("department_id", type=int) or department_id

    year = dal.get_active_academic_year()
    subjects = []
    if department_id is not None:
        subjects = dal.list_subjects(year.id if year else None, department_id=department_id)
    data = reports.student_dashboard(
        subjects,
        date.today(),
        window_days=current_app.config["UPCOMING_WINDOW_DAYS"],
        limit=current_app.config["DASHBOARD_UPCOMING_LIMIT"],
    )
    return api_success(data, meta={
        "department_id": department_id,
        "academic_year": year.name if year else None,
    })
