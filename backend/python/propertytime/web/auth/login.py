"""
Flask-Login wiring for stateless API requests.

Identities are resolved per request by the access gate through Flask-Login's
request_loader; nothing is stored in the session.
"""

from flask import g
from flask_login import LoginManager

from propertytime.web.errors import AuthenticationError


def init_login_manager(app, gate):
    """
    Initialize Flask-Login for the app.

    Args:
        app: Flask application
        gate: AccessGate resolving identities

    Returns:
        LoginManager bound to app
    """
    login_manager = LoginManager()
    login_manager.session_protection = None
    login_manager.init_app(app)

    @login_manager.request_loader
    def load_identity(request):
        """Authenticate the request; remember the failure for require_auth."""
        try:
            identity = gate.authenticate(request)
        except AuthenticationError as e:
            g.auth_error = e
            return None
        g.identity_email = identity.email
        return identity

    @login_manager.user_loader
    def load_user(user_id):
        """No server-side sessions: a session cookie never yields a user."""
        return None

    return login_manager
