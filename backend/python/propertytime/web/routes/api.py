"""
Staff REST API: communities, submissions, dashboards and duplicate checks.
"""

from datetime import datetime

import pytz
from flask import Blueprint, jsonify, request, current_app

from propertytime.web.auth.decorators import get_identity, require_auth, require_roles
from propertytime.web.errors import NotFoundError, StoreError, ValidationError
from propertytime.web.models.staff_directory import STAFF_ROLES
from propertytime.web.routes.helpers import (
    get_json_body,
    local_today,
    period_from_query,
    requested_user,
)
from propertytime.web.utils.audit import audit_log, AuditEvent
from propertytime.web.utils.rate_limit import rate_limited
from propertytime.web.utils.validators import (
    normalize_community_id,
    is_valid_community_id,
    sanitize_text,
    validate_assessment_submission,
    validate_community_ids,
    validate_period,
    validate_submission_type,
    validate_time_submission,
)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _gate():
    return current_app.access_gate


def _limits():
    return current_app.settings.security.validation


def _authorize_entries(identity, target, community_ids, admin_mode):
    """Admin mode skips the per-community check but needs an admin caller."""
    if admin_mode:
        _gate().authorize_admin(identity)
    else:
        _gate().check_community_access(target, community_ids)


def _stored_user_name(payload, identity, target):
    name = payload.get('userName')
    if isinstance(name, str) and sanitize_text(name):
        return sanitize_text(name)[:255]
    if target == identity.email:
        return identity.display_name
    return target.split('@')[0]


# =============================================================================
# Status
# =============================================================================

@api_bp.route('/health')
def health():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now(pytz.UTC).isoformat()
    })


@api_bp.route('/client-settings')
def client_settings():
    """Question set text and whether answers are required."""
    questions = current_app.settings.questions
    return jsonify({
        'success': True,
        'questionsRequired': questions.questions_required,
        'questionSets': {name: list(texts) for name, texts in questions.question_sets.items()},
        'limits': {
            'maxEntriesPerSubmission': _limits().max_entries_per_submission,
            'maxNoteLength': _limits().max_note_length,
            'maxHoursPerEntry': _limits().max_hours_per_entry,
        },
    })


# =============================================================================
# Communities & users
# =============================================================================

@api_bp.route('/user-communities')
@require_auth
def user_communities():
    """
    Communities and roles for the caller.

    With ?adminOverride=true an admin caller gets every community without
    role annotation. Users without an Accountant or Manager role get
    redirectToAdmin and no communities.
    """
    identity = get_identity()
    directory = current_app.directory
    questions_required = current_app.settings.questions.questions_required

    if request.args.get('adminOverride') == 'true':
        _gate().authorize_admin(identity)
        return jsonify({
            'success': True,
            'communities': directory.all_communities(),
            'availableRoles': [],
            'redirectToAdmin': False,
            'questionsRequired': questions_required,
        })

    target = _gate().resolve_target_email(identity, request.args.get('email'))
    communities = directory.communities_with_roles(target)
    valid_roles = sorted({
        c['userRoleId'] for c in communities if c['userRoleId'] in {int(r) for r in STAFF_ROLES}
    })

    redirect_to_admin = not valid_roles
    if redirect_to_admin:
        current_app.logger.info(f"User {target} has no valid roles, redirecting to admin panel")
        communities = []

    return jsonify({
        'success': True,
        'communities': communities,
        'availableRoles': valid_roles,
        'redirectToAdmin': redirect_to_admin,
        'questionsRequired': questions_required,
    })


@api_bp.route('/user')
@require_auth
def user_info():
    """Directory lookup by email."""
    target = _gate().resolve_target_email(get_identity(), request.args.get('email'))
    user = current_app.directory.find_user(target)
    if user is None:
        raise NotFoundError('User not found')
    return jsonify({'success': True, 'user': user})


# =============================================================================
# Submissions
# =============================================================================

@api_bp.route('/submit-time', methods=['POST'])
@rate_limited('submissions')
@require_roles(STAFF_ROLES)
def submit_time():
    """Legacy single-date time entry batch."""
    identity = get_identity()
    payload = get_json_body()
    submission = validate_time_submission(payload, _limits())

    target = _gate().resolve_target_email(identity, requested_user(payload))
    _authorize_entries(identity, target, [e.community_id for e in submission.entries],
                       payload.get('adminMode') is True)

    try:
        result = current_app.submission_writer.submit_time(
            target, target.split('@')[0], submission
        )
    except StoreError as e:
        audit_log(AuditEvent.SUBMISSION_FAILED, f"Time entries for {target}: {e.debug}", level='ERROR')
        raise StoreError('Failed to submit time entries', debug=e.debug) from e

    audit_log(AuditEvent.SUBMISSION_CREATED,
              f"{result.count} time entries for {target} on {submission.date.isoformat()}")
    return jsonify({
        'success': True,
        'message': f'Successfully submitted {result.count} time entries',
        'count': result.count,
        'submissionDate': result.submission_date.isoformat(),
    })


@api_bp.route('/submit-assessment', methods=['POST'])
@rate_limited('submissions')
@require_roles(STAFF_ROLES)
def submit_assessment():
    """Monthly assessment: one row per community, all or nothing."""
    identity = get_identity()
    payload = get_json_body()
    submission = validate_assessment_submission(
        payload,
        _limits(),
        questions_required=current_app.settings.questions.questions_required,
        today=local_today(),
    )

    target = _gate().resolve_target_email(identity, requested_user(payload))
    _authorize_entries(identity, target, [e.community_id for e in submission.entries],
                       payload.get('adminMode') is True)

    try:
        result = current_app.submission_writer.submit_assessment(
            target, _stored_user_name(payload, identity, target), submission
        )
    except StoreError as e:
        audit_log(AuditEvent.SUBMISSION_FAILED, f"Assessment for {target}: {e.debug}", level='ERROR')
        raise StoreError('Failed to submit assessment', debug=e.debug) from e

    audit_log(
        AuditEvent.SUBMISSION_CREATED,
        f"{submission.submission_type.value} assessment with {result.count} entries for {target} "
        f"({submission.period.month}/{submission.period.year})"
    )
    return jsonify({
        'success': True,
        'message': f'{submission.submission_type.value} assessment submitted successfully',
        'count': result.count,
        'submissionDate': result.submission_date.isoformat(),
    })


# =============================================================================
# Dashboards
# =============================================================================

@api_bp.route('/my-submissions')
@require_auth
def my_submissions():
    """Dashboard of the caller's own entries for a month."""
    target = _gate().resolve_target_email(get_identity(), request.args.get('email'))
    period = period_from_query()
    data = current_app.dashboard.user_dashboard(target, period)
    return jsonify({'success': True, **data})


@api_bp.route('/my-communities')
@require_auth
def my_communities():
    """Dashboard of every entry on the caller's communities for a month."""
    target = _gate().resolve_target_email(get_identity(), request.args.get('email'))
    period = period_from_query()
    data = current_app.dashboard.community_dashboard(target, period)
    return jsonify({'success': True, **data})


@api_bp.route('/time-entries')
@require_roles(STAFF_ROLES)
def time_entries():
    """Newest 50 raw time entries for a user."""
    target = _gate().resolve_target_email(get_identity(), request.args.get('email'))
    entries = current_app.dashboard.recent_entries(target)
    return jsonify({'success': True, 'entries': entries, 'count': len(entries)})


# =============================================================================
# Duplicate checks (advisory)
# =============================================================================

def _duplicate_query(payload):
    """Common (target, period, type) of the duplicate endpoints."""
    target = _gate().resolve_target_email(get_identity(), requested_user(payload))
    period = validate_period(payload.get('month'), payload.get('year'), local_today())
    submission_type = validate_submission_type(payload.get('submissionType'))
    return target, period, submission_type


@api_bp.route('/check-duplicates', methods=['POST'])
@require_roles(STAFF_ROLES)
def check_duplicates():
    """Names of the given communities that already have a submission."""
    payload = get_json_body()
    target, period, submission_type = _duplicate_query(payload)
    community_ids = validate_community_ids(payload.get('communityIds'), _limits())
    if not community_ids:
        return jsonify({'success': True, 'duplicates': []})

    duplicates = current_app.duplicate_checker.submitted_names(
        target, period, submission_type, community_ids
    )
    current_app.logger.info(f"Found {len(duplicates)} duplicate submissions for {target}")
    return jsonify({'success': True, 'duplicates': duplicates})


@api_bp.route('/check-community-duplicate', methods=['POST'])
@require_roles(STAFF_ROLES)
def check_community_duplicate():
    """Whether one community already has a submission."""
    payload = get_json_body()
    target, period, submission_type = _duplicate_query(payload)
    community_id = normalize_community_id(payload.get('communityId'))
    if not is_valid_community_id(community_id):
        raise ValidationError('Invalid community ID', field='communityId')

    is_duplicate = current_app.duplicate_checker.has_submission(
        target, period, submission_type, community_id
    )
    return jsonify({'success': True, 'isDuplicate': is_duplicate})


@api_bp.route('/check-all-communities-status', methods=['POST'])
@require_roles(STAFF_ROLES)
def check_all_communities_status():
    """Every community id with a submission for the period and type."""
    payload = get_json_body()
    target, period, submission_type = _duplicate_query(payload)
    submitted = current_app.duplicate_checker.submitted_ids(target, period, submission_type)
    return jsonify({'success': True, 'submittedCommunityIds': submitted})
