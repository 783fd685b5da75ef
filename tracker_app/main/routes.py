from datetime import datetime, timezone

from flask import Blueprint, request, current_app, session
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash

from .. import db, limiter, issue_csrf_token, csrf_required
from ..api_utils import api_success, api_error, request_payload
from ..decorators import capability_required
from ..models import User
from ..roles import Capability, Role, HOME_DASHBOARD, capabilities_for
from .. import data_access as dal

main_bp = Blueprint("main", __name__)


def _session_user_payload(user):
    role = Role.parse(user.role)
    data = user.to_dict()
    data["role"] = role.value
    data["role_label"] = role.label
    data["capabilities"] = capabilities_for(role)
    data["home"] = HOME_DASHBOARD[role]
    return data


@main_bp.route("/login", methods=["POST"])
@limiter.limit(lambda: current_app.config["LOGIN_RATE_LIMIT"], methods=["POST"])
def login():
    payload = request_payload(request)
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    if not email or not password:
        return api_error("invalid", "Email and password are required.", 400)

    user = db.session.execute(select(User).filter_by(email=email)).scalars().first()
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
        current_app.logger.info("Failed login for %s", email)
        return api_error("invalid_credentials", "Invalid credentials.", 401)
    if not login_user(user):
        return api_error("account_disabled", "This account has been deactivated.", 403)

    user.last_login = datetime.now(timezone.utc)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Could not record last login for user %s", user.id)

    return api_success({"user": _session_user_payload(user), "csrf_token": issue_csrf_token()})


@main_bp.route("/logout")
def logout():
    if current_user.is_authenticated:
        logout_user()
    session.pop("csrf_token", None)
    session.pop("csrf_token_issued_at", None)
    return api_success({"logged_out": True})


@main_bp.route("/me")
@login_required
def me():
    return api_success({"user": _session_user_payload(current_user), "csrf_token": issue_csrf_token()})


@main_bp.route("/me", methods=["PUT"])
@login_required
@csrf_required
def update_me():
    payload = request_payload(request)
    user = dal.update_profile(current_user.id, payload.get("first_name"), payload.get("last_name"))
    return api_success({"user": _session_user_payload(user)})


@main_bp.route("/me/password", methods=["POST"])
@login_required
@csrf_required
def change_my_password():
    payload = request_payload(request)
    dal.change_password(
        current_user.id,
        payload.get("current_password"),
        payload.get("new_password"),
        payload.get("confirm_password"),
    )
    return api_success({"password_changed": True})


def _search_hit(kind, row):
    if kind == "users":
        return {"id": row.id, "title": row.full_name, "subtitle": f"{row.role} • {row.email}"}
    if kind == "subjects":
        department = row.department.name if row.department else "No department"
        return {"id": row.id, "title": row.name, "subtitle": f"{row.code} • {department}"}
    if kind == "departments":
        return {"id": row.id, "title": row.name, "subtitle": row.code}
    return {"id": row.id, "title": row.name, "subtitle": row.subject.name if row.subject else "Unknown subject"}


@main_bp.route("/search")
@login_required
@capability_required(Capability.SEARCH)
def search():
    query = (request.args.get("q") or "").strip()
    found = dal.search(query)
    data = {kind: [_search_hit(kind, row) for row in rows] for kind, rows in found.items()}
    return api_success(data, meta={"query": query, "count": sum(len(rows) for rows in data.values())})


@main_bp.route("/dashboard")
@login_required
def dashboard():
    role = Role.parse(current_user.role)
    return api_success({"role": role.value, "home": HOME_DASHBOARD[role]})


@main_bp.route("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Health check could not reach the database")
        database = "unavailable"
    status = 200 if database == "ok" else 503
    return api_success({"status": "ok" if status == 200 else "degraded", "database": database}, status=status)
