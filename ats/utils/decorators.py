from functools import wraps

from flask_login import current_user, login_required

from ..errors import Unauthorized


def roles_required(*roles):
    """Reject the request unless the logged-in user holds one of ``roles``."""
    def decorator(view):
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if getattr(current_user, "role", None) not in roles:
                raise Unauthorized(f"This action requires one of the roles: {', '.join(roles)}")
            return view(*args, **kwargs)
        return wrapped
    return decorator


def actor():
    """The logged-in user, unwrapped from the Flask-Login proxy."""
    return current_user._get_current_object()
