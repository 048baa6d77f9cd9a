"""
Admin API: all-communities dashboard, directory browsing for impersonation
and the admin-mode secret check.
"""

from flask import Blueprint, jsonify, request, current_app

from propertytime.web.auth.admin_secret import verify_admin_password
from propertytime.web.auth.decorators import admin_required
from propertytime.web.errors import ValidationError
from propertytime.web.routes.helpers import get_json_body, period_from_query
from propertytime.web.utils.audit import audit_log, AuditEvent
from propertytime.web.utils.rate_limit import rate_limited
from propertytime.web.utils.validators import is_valid_email

admin_bp = Blueprint('api_admin', __name__, url_prefix='/api/admin')


@admin_bp.route('/dashboard')
@admin_required
def dashboard():
    """Every user's entries for a month."""
    period = period_from_query()
    data = current_app.dashboard.admin_dashboard(period)
    return jsonify({'success': True, **data})


@admin_bp.route('/all-communities')
@admin_required
def all_communities():
    """Every community in the directory, for admin mode."""
    return jsonify({'success': True, 'communities': current_app.directory.all_communities()})


@admin_bp.route('/all-users')
@admin_required
def all_users():
    """Directory users with their properties, for the impersonation picker."""
    return jsonify({'success': True, 'users': current_app.directory.all_users()})


@admin_bp.route('/user-communities')
@admin_required
def user_communities():
    """Communities of one user, looked up by ?email=."""
    email = (request.args.get('email') or '').strip()
    if not email:
        raise ValidationError('Email parameter is required', field='email')
    if not is_valid_email(email):
        raise ValidationError('Invalid email', field='email')
    return jsonify({'success': True, 'communities': current_app.directory.user_communities(email)})


@admin_bp.route('/validate', methods=['POST'])
@admin_bp.route('/verify-password', methods=['POST'])
@rate_limited('auth')
def validate_admin_password():
    """
    Check the admin-mode secret.

    A wrong password is a normal 200 with success false. The result only
    unlocks admin mode in the client; admin routes re-check the directory.
    """
    payload = get_json_body()
    password = payload.get('password')

    if verify_admin_password(password, current_app.settings.security.admin_password):
        audit_log(AuditEvent.ADMIN_OVERRIDE_SUCCESS, 'Admin password accepted')
        return jsonify({'success': True})

    audit_log(AuditEvent.ADMIN_OVERRIDE_FAILED, 'Invalid admin password', level='WARNING')
    return jsonify({'success': False, 'message': 'Invalid admin password'})
