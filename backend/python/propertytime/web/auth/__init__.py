"""Authentication module for the Flask app."""
# Gate selection and per-request identity
from .gates import AccessGate, StrictGate, OpenGate, build_gate
from .login import init_login_manager

# Decorators for role-based access
from .decorators import require_auth, require_roles, admin_required, get_identity

# Admin override
from .admin_secret import verify_admin_password
