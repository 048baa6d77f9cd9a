"""
Authentication and authorization decorators.

Each decorator delegates to the access gate chosen at startup
(current_app.access_gate) and raises ApiError subclasses, which the app's
error handlers render as JSON envelopes.
"""

from functools import wraps
from flask import current_app, g
from flask_login import current_user

from propertytime.web.errors import AuthenticationError
from propertytime.web.models.staff_directory import STAFF_ROLES


def get_identity():
    """The Identity resolved for this request (not the LocalProxy)."""
    return current_user._get_current_object()


def _ensure_authenticated():
    if not current_user.is_authenticated:
        raise g.get('auth_error') or AuthenticationError('Authentication required')


def require_auth(f):
    """
    Decorator to require an authenticated identity.

    Usage:
        @api_bp.route('/my-submissions')
        @require_auth
        def my_submissions():
            identity = get_identity()
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        _ensure_authenticated()
        return f(*args, **kwargs)
    return decorated


def require_roles(allowed_roles=STAFF_ROLES):
    """
    Decorator factory to require one of the directory role ids.

    Role 1 satisfies the check only when it is listed in allowed_roles.

    Usage:
        @require_roles([2, 3])
        def submit_time():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            _ensure_authenticated()
            current_app.access_gate.authorize_roles(get_identity(), allowed_roles)
            return f(*args, **kwargs)
        return decorated
    return decorator


def admin_required(f):
    """Decorator to require directory admin role (id 1)."""
    @wraps(f)
    def decorated(*args, **kwargs):
        _ensure_authenticated()
        current_app.access_gate.authorize_admin(get_identity())
        return f(*args, **kwargs)
    return decorated
