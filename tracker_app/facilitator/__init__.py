from flask import Blueprint

facilitator_bp = Blueprint("facilitator", __name__)

from . import routes  # noqa: E402,F401
