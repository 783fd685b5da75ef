import os
import secrets
import time
import logging
from flask import Flask, session, request, current_app
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from functools import wraps
from flask_migrate import Migrate
from datetime import timedelta
from flask_limiter import Limiter
from werkzeug.exceptions import HTTPException
from flask_limiter.errors import RateLimitExceeded

# Global extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
def _rate_key():
    try:
        ip = (request.headers.get("X-Forwarded-For") or request.remote_addr or "local")
        token = (session.get("rlid") or "")
        path = (getattr(request, "path", "/") or "/")
        return f"{ip}|{token}|{path}"
    except Exception:
        return "local"

limiter = Limiter(key_func=_rate_key)


def create_app(test_config=None):
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-key")

    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(
        minutes=int(os.environ.get("SESSION_LIFETIME_MINUTES", "60"))
    )
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO").upper()
    # Progress views
    app.config["UPCOMING_WINDOW_DAYS"] = int(os.environ.get("UPCOMING_WINDOW_DAYS", "7"))
    app.config["DASHBOARD_UPCOMING_LIMIT"] = int(os.environ.get("DASHBOARD_UPCOMING_LIMIT", "5"))
    # CSRF token TTL (seconds)
    app.config["CSRF_TOKEN_TTL"] = int(os.environ.get("CSRF_TOKEN_TTL", "7200"))
    app.config["LOGIN_RATE_LIMIT"] = os.environ.get("LOGIN_RATE_LIMIT", "10 per minute")

    # Database configuration: use DATABASE_URL if provided, else sqlite file
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        db_path = os.path.join(os.path.dirname(__file__), "..", "tracker.db")
        database_url = f"sqlite:///{os.path.abspath(db_path)}"

    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config.setdefault("RATELIMIT_STORAGE_URI", os.environ.get("RATELIMIT_STORAGE_URI", "memory://"))

    if test_config:
        app.config.update(test_config)

    level = getattr(logging, app.config["LOG_LEVEL"], logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("tracker_app").setLevel(level)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    # Auth: Flask-Login
    login_manager.init_app(app)

    # Import models so they are registered with SQLAlchemy
    from . import models  # noqa: F401

    @app.before_request
    def ensure_rate_key():
        if not session.get("rlid"):
            session["rlid"] = secrets.token_urlsafe(16)

    @login_manager.user_loader
    def load_user(user_id: str):
        try:
            from .models import User
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        from .api_utils import api_error
        return api_error("unauthorized", "Login required", 401)

    # Blueprints
    from .main.routes import main_bp
    app.register_blueprint(main_bp)

    from .admin import admin_bp
    app.register_blueprint(admin_bp, url_prefix="/admin")

    from .facilitator import facilitator_bp
    app.register_blueprint(facilitator_bp, url_prefix="/facilitator")

    from .student import student_bp
    app.register_blueprint(student_bp, url_prefix="/student")

    from .academics import academics_bp
    app.register_blueprint(academics_bp, url_prefix="/academics")

    from .announcements import announcements_bp
    app.register_blueprint(announcements_bp, url_prefix="/announcements")

    from .data_access import NotFoundError, ValidationError, WriteError
    from .api_utils import api_error, api_http_error

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return api_error("invalid", str(e), 400)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return api_error("not_found", str(e), 404)

    @app.errorhandler(WriteError)
    def handle_write_error(e):
        return api_error("write_failed", str(e), 500)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(e):
        return api_error("rate_limited", "Too many requests", 429)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return api_http_error(e)

    # Create tables on first run (dev convenience)
    with app.app_context():
        db.create_all()

    return app


def issue_csrf_token():
    """Return the session CSRF token, regenerating it when missing or expired."""
    token = session.get("csrf_token")
    issued_at = session.get("csrf_token_issued_at")
    ttl = current_app.config.get("CSRF_TOKEN_TTL", 7200)
    now = int(time.time())
    if (not token) or (not issued_at) or (ttl > 0 and (now - int(issued_at)) > ttl):
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
        session["csrf_token_issued_at"] = now
    return token


def csrf_required(view_func):
    @wraps(view_func)
    def _wrapped(*args, **kwargs):
        from .api_utils import api_error
        method = (request.method or "GET").upper()
        if method in ("POST", "PUT", "PATCH", "DELETE"):
            token = (request.headers.get("X-CSRF-Token") or request.form.get("csrf_token") or "").strip()
            sess_token = (session.get("csrf_token") or "")
            issued_at = session.get("csrf_token_issued_at")
            ttl = current_app.config.get("CSRF_TOKEN_TTL", 7200)
            now = int(time.time())
            # Expired token
            if not issued_at or (ttl > 0 and (now - int(issued_at)) > ttl):
                return api_error("csrf_expired", "Refresh the page or login again", 400)
            # Missing token in request
            if not token:
                return api_error("csrf_missing", "Refresh the page or login again", 400)
            # Mismatch
            if not secrets.compare_digest(token, sess_token):
                return api_error("csrf_mismatch", "Refresh the page or login again", 400)
        return view_func(*args, **kwargs)
    return _wrapped
