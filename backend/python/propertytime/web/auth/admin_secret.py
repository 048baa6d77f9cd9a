"""
Admin override secret check.

The admin secret only unlocks the client's admin mode. Every admin-only
request is authorized again against the directory by the access gate.
"""

import hmac
import bcrypt

BCRYPT_PREFIXES = ('$2a$', '$2b$', '$2y$')


def verify_admin_password(candidate, configured):
    """
    Compare candidate with the configured admin secret in constant time.

    The configured value may be a bcrypt hash (checked with bcrypt) or a
    plain secret (compared with hmac.compare_digest). An unset secret never
    matches.

    Args:
        candidate: Password submitted by the client
        configured: Secret from settings

    Returns:
        bool: True if the password matches
    """
    if not configured or not isinstance(candidate, str) or not candidate:
        return False

    if configured.startswith(BCRYPT_PREFIXES):
        stored_hash = configured
        # PHP-style $2y$ hashes are the same algorithm as $2b$
        if stored_hash.startswith('$2y$'):
            stored_hash = '$2b$' + stored_hash[4:]
        try:
            return bcrypt.checkpw(candidate.encode('utf-8'), stored_hash.encode('utf-8'))
        except ValueError:
            return False

    return hmac.compare_digest(candidate.encode('utf-8'), configured.encode('utf-8'))
