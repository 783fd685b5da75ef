from functools import wraps
from flask import current_app
from flask_login import current_user
from .api_utils import api_error
from .roles import has_capability

def capability_required(*capabilities):
    """
    Decorator to ensure the current user's role grants at least one of the capabilities.
    Must be placed *after* @login_required.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return current_app.login_manager.unauthorized()

            user_role = getattr(current_user, "role", "")
            if not any(has_capability(user_role, c) for c in capabilities):
                return api_error("forbidden", "You do not have permission to access this resource.", 403)

            return func(*args, **kwargs)
        return wrapper
    return decorator
