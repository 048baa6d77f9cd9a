"""
Audit logging for security-relevant events.

Logs authentication outcomes, access denials, admin override attempts and
submissions to a dedicated audit log.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from flask import g, has_request_context

from propertytime.web.utils.rate_limit import get_client_ip


# Configure audit logger
audit_logger = logging.getLogger('security.audit')

_handlers = []


def setup_audit_logging(app):
    """
    Set up audit logging for the application.

    Creates a dedicated rotating log file for security audit events. Calling
    it again (a second app in the same process) replaces the handlers.
    """
    log_dir = app.settings.app.log_dir or str(Path(__file__).resolve().parents[4] / 'logs')
    os.makedirs(log_dir, exist_ok=True)

    while _handlers:
        handler = _handlers.pop()
        audit_logger.removeHandler(handler)
        handler.close()

    # 10MB max, keep 5 backups
    log_file = os.path.join(log_dir, 'audit.log')
    handler = RotatingFileHandler(log_file, maxBytes=10*1024*1024, backupCount=5)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    audit_logger.addHandler(handler)
    _handlers.append(handler)
    audit_logger.setLevel(logging.INFO)

    if app.settings.app.is_development:
        stream = logging.StreamHandler()
        audit_logger.addHandler(stream)
        _handlers.append(stream)


def get_current_username():
    """Email of the identity resolved for this request, or 'anonymous'."""
    if has_request_context():
        return g.get('identity_email') or 'anonymous'
    return 'anonymous'


def audit_log(event_type, details, user=None, level='INFO'):
    """
    Log a security audit event.

    Args:
        event_type: Type of event (e.g., 'AUTH_SUCCESS', 'SUBMISSION_CREATED')
        details: Description of what happened
        user: Email (defaults to the current identity)
        level: Log level ('INFO', 'WARNING', 'ERROR')
    """
    username = user or get_current_username()
    ip_address = get_client_ip() if has_request_context() else '-'

    message = f"{event_type} | User: {username} | IP: {ip_address} | {details}"

    if level == 'WARNING':
        audit_logger.warning(message)
    elif level == 'ERROR':
        audit_logger.error(message)
    else:
        audit_logger.info(message)


class AuditEvent:
    """Audit event type constants."""
    # Authentication
    AUTH_SUCCESS = 'AUTH_SUCCESS'
    AUTH_FAILED = 'AUTH_FAILED'

    # Access control
    ACCESS_DENIED = 'ACCESS_DENIED'
    ADMIN_ACCESS_GRANTED = 'ADMIN_ACCESS_GRANTED'
    IMPERSONATION = 'IMPERSONATION'

    # Admin override
    ADMIN_OVERRIDE_SUCCESS = 'ADMIN_OVERRIDE_SUCCESS'
    ADMIN_OVERRIDE_FAILED = 'ADMIN_OVERRIDE_FAILED'

    # Submissions
    SUBMISSION_CREATED = 'SUBMISSION_CREATED'
    SUBMISSION_FAILED = 'SUBMISSION_FAILED'
