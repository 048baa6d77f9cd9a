"""
Access control gates.

One gate is chosen when the app is created, from security.strict_auth:

- StrictGate verifies a bearer ID token and checks directory roles.
- OpenGate trusts the email the client sends (local/demo deployments).
  Staff role checks pass; admin-only operations still require role 1
  in the directory.

Routes never branch on the auth mode themselves; they call the gate.
"""

import logging

from propertytime.web.errors import AuthenticationError, AuthorizationError
from propertytime.web.schemas import Identity
from propertytime.web.utils.audit import audit_log, AuditEvent
from propertytime.web.utils.validators import is_valid_email

logger = logging.getLogger(__name__)

# Where an open-mode client may name itself, in priority order:
# header, ?email=, then these JSON body fields
OPEN_IDENTITY_HEADER = 'X-User-Email'
OPEN_IDENTITY_FIELDS = ('email', 'userEmail', 'userId')


def get_token_from_header(request):
    """
    Extract bearer token from Authorization header.

    Returns:
        str: Token string or None
    """
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[7:].strip() or None
    return None


def _same_user(a, b):
    return a.strip().lower() == b.strip().lower()


class AccessGate:
    """
    Interface shared by both gates.

    Args:
        directory: DirectoryService used for role lookups
    """
    strict = False

    def __init__(self, directory):
        self.directory = directory

    def authenticate(self, request):
        """Resolve the caller Identity or raise AuthenticationError."""
        raise NotImplementedError

    def authorize_roles(self, identity, allowed_roles):
        """
        Check identity holds one of allowed_roles. Role 1 counts only when
        listed; an admin acting for staff must hold a staff role too.

        Returns:
            list: The caller's directory role ids
        """
        raise NotImplementedError

    def authorize_admin(self, identity):
        """Require directory role 1. Evaluated in both modes."""
        if not self.directory.is_admin(identity.email):
            audit_log(AuditEvent.ACCESS_DENIED, 'Admin privileges required', user=identity.email,
                      level='WARNING')
            raise AuthorizationError('Admin privileges required')
        audit_log(AuditEvent.ADMIN_ACCESS_GRANTED, 'Admin check passed', user=identity.email)

    def resolve_target_email(self, identity, requested_email=None):
        """
        Email of the user an operation acts on.

        Acting on someone else (impersonation) requires admin privileges.
        """
        raise NotImplementedError

    def check_community_access(self, email, community_ids):
        """Raise AuthorizationError naming the first inaccessible entry."""
        raise NotImplementedError


class StrictGate(AccessGate):
    """
    Token-verifying gate.

    Args:
        directory: DirectoryService
        verifier: Object with verify(token) -> Identity
    """
    strict = True

    def __init__(self, directory, verifier):
        super().__init__(directory)
        self.verifier = verifier

    def authenticate(self, request):
        token = get_token_from_header(request)
        if not token:
            raise AuthenticationError('Authentication required - Bearer token missing')

        try:
            identity = self.verifier.verify(token)
        except AuthenticationError as e:
            audit_log(AuditEvent.AUTH_FAILED, f"Token rejected: {e.message}", level='WARNING')
            raise

        audit_log(AuditEvent.AUTH_SUCCESS, f"Token verified (sub={identity.subject_id})",
                  user=identity.email)
        return identity

    def authorize_roles(self, identity, allowed_roles):
        roles = self.directory.role_ids_for(identity.email)
        allowed = {int(r) for r in allowed_roles}

        if not allowed.intersection(roles):
            logger.warning(
                f"Access denied for user: {identity.email}. "
                f"Required roles: {sorted(allowed)}, User roles: {roles}"
            )
            audit_log(AuditEvent.ACCESS_DENIED, f"Insufficient privileges (roles={roles})",
                      user=identity.email, level='WARNING')
            raise AuthorizationError('Insufficient privileges')
        return roles

    def resolve_target_email(self, identity, requested_email=None):
        if not requested_email or _same_user(requested_email, identity.email):
            return identity.email

        self.authorize_admin(identity)
        audit_log(AuditEvent.IMPERSONATION, f"Acting as {requested_email}", user=identity.email)
        return requested_email

    def check_community_access(self, email, community_ids):
        accessible = self.directory.accessible_property_ids(email)
        for index, community_id in enumerate(community_ids, start=1):
            if community_id not in accessible:
                logger.warning(f"Access denied for user {email} to community {community_id}")
                audit_log(AuditEvent.ACCESS_DENIED, f"No access to community {community_id}",
                          user=email, level='WARNING')
                raise AuthorizationError(f'Access denied for community in entry {index}')


class OpenGate(AccessGate):
    """
    Gate for deployments with strict auth disabled.

    The caller names itself via the X-User-Email header, ``email`` in the
    query string or ``email``/``userEmail``/``userId`` in the JSON body.
    """
    strict = False

    def authenticate(self, request):
        body = request.get_json(silent=True) if request.is_json else None
        email = request.headers.get(OPEN_IDENTITY_HEADER) or request.args.get('email')
        if not email and isinstance(body, dict):
            for name in OPEN_IDENTITY_FIELDS:
                if isinstance(body.get(name), str) and body.get(name):
                    email = body[name]
                    break

        if not email:
            audit_log(AuditEvent.AUTH_FAILED, 'No email supplied', level='WARNING')
            raise AuthenticationError('Email is required')
        email = email.strip()
        if not is_valid_email(email):
            audit_log(AuditEvent.AUTH_FAILED, f"Invalid email supplied: {email[:100]}",
                      level='WARNING')
            raise AuthenticationError('Invalid email')

        audit_log(AuditEvent.AUTH_SUCCESS, 'Client-supplied email accepted', user=email)
        return Identity(subject_id=email, email=email, display_name=email.split('@')[0])

    def authorize_roles(self, identity, allowed_roles):
        return self.directory.role_ids_for(identity.email)

    def resolve_target_email(self, identity, requested_email=None):
        return identity.email

    def check_community_access(self, email, community_ids):
        return None


def build_gate(settings, directory, token_verifier=None):
    """
    Select the gate for this process.

    Args:
        settings: Settings
        directory: DirectoryService
        token_verifier: Verifier override (tests); defaults to Google
    """
    if not settings.security.strict_auth:
        logger.warning('Strict authentication is disabled: trusting client-supplied email')
        return OpenGate(directory)

    if token_verifier is None:
        from propertytime.web.auth.google_token import GoogleTokenVerifier
        token_verifier = GoogleTokenVerifier(settings.identity)
    return StrictGate(directory, token_verifier)
