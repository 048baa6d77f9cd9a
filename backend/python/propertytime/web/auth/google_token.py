"""
Google ID token verification for strict-auth deployments.

Tokens are RS256 JWTs signed with Google's published keys. PyJWT's
PyJWKClient fetches and caches the key set.
"""

import logging
from datetime import datetime, timezone

import jwt

from propertytime.web.errors import AuthenticationError, UpstreamError
from propertytime.web.schemas import Identity

logger = logging.getLogger(__name__)

ALGORITHMS = ['RS256']
REQUIRED_CLAIMS = ['exp', 'iat', 'sub', 'aud', 'iss']


class GoogleTokenVerifier:
    """
    Verify ID tokens issued to our OAuth client.

    Args:
        identity_settings: IdentityProviderSettings
        jwks_client: Object with get_signing_key_from_jwt(token); defaults to
            a caching PyJWKClient on identity_settings.jwks_url
    """

    def __init__(self, identity_settings, jwks_client=None):
        if not identity_settings.client_id:
            raise ValueError(
                'Identity provider client_id is not configured. '
                'Set GOOGLE_CLIENT_ID or disable strict_auth.'
            )
        self.client_id = identity_settings.client_id
        self.issuers = tuple(identity_settings.issuers)
        self.leeway = identity_settings.leeway_seconds
        self._jwks_client = jwks_client or jwt.PyJWKClient(identity_settings.jwks_url)

    def decode(self, token):
        """
        Decode and validate an ID token.

        Returns:
            dict: Verified claims

        Raises:
            UpstreamError: If signing keys cannot be obtained
            AuthenticationError: If the token or its claims are invalid
        """
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
        except jwt.PyJWKClientError as e:
            raise UpstreamError('Unable to verify authentication token', debug=str(e))
        except jwt.InvalidTokenError as e:
            raise AuthenticationError('Invalid authentication token', debug=str(e))

        try:
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=ALGORITHMS,
                audience=self.client_id,
                leeway=self.leeway,
                options={'require': REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError('Token has expired')
        except jwt.InvalidTokenError as e:
            raise AuthenticationError('Invalid authentication token', debug=str(e))

        if payload.get('iss') not in self.issuers:
            raise AuthenticationError('Invalid token claims', debug=f"issuer {payload.get('iss')}")

        if not payload.get('email') or payload.get('email_verified') not in (True, 'true'):
            raise AuthenticationError('Email not verified')

        return payload

    def verify(self, token):
        """Verify token and return the caller Identity."""
        payload = self.decode(token)
        email = payload['email']
        expiry = datetime.fromtimestamp(payload['exp'], tz=timezone.utc)
        return Identity(
            subject_id=payload['sub'],
            email=email,
            display_name=payload.get('name') or email.split('@')[0],
            picture_url=payload.get('picture'),
            token_expiry=expiry,
            verified=True,
        )
