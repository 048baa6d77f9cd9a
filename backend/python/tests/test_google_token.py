"""
ID token verification tests.
"""

import time

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from propertytime.common.config import IdentityProviderSettings
from propertytime.web.auth.google_token import GoogleTokenVerifier
from propertytime.web.errors import AuthenticationError, UpstreamError


class FailingJWKClient:
    def get_signing_key_from_jwt(self, token):
        raise jwt.PyJWKClientError('Fail to fetch data from the url')


class TestGoogleTokenVerifier:

    def test_valid_token(self, token_verifier, mint_token):
        identity = token_verifier.verify(mint_token('manager@example.com', name='Mary Manager',
                                                    picture='https://example.com/m.png'))

        assert identity.email == 'manager@example.com'
        assert identity.subject_id == 'sub-manager@example.com'
        assert identity.display_name == 'Mary Manager'
        assert identity.picture_url == 'https://example.com/m.png'
        assert identity.verified is True
        assert identity.token_expiry.tzinfo is not None

    def test_string_email_verified_claim(self, token_verifier, mint_token):
        identity = token_verifier.verify(mint_token(email_verified='true'))
        assert identity.email == 'manager@example.com'

    def test_expired(self, token_verifier, mint_token):
        now = int(time.time())
        token = mint_token(iat=now - 7200, exp=now - 3600)
        with pytest.raises(AuthenticationError) as exc:
            token_verifier.verify(token)
        assert exc.value.message == 'Token has expired'

    def test_wrong_audience(self, token_verifier, mint_token):
        with pytest.raises(AuthenticationError) as exc:
            token_verifier.verify(mint_token(aud='someone-else'))
        assert exc.value.message == 'Invalid authentication token'

    def test_wrong_issuer(self, token_verifier, mint_token):
        with pytest.raises(AuthenticationError) as exc:
            token_verifier.verify(mint_token(iss='https://evil.example.com'))
        assert exc.value.message == 'Invalid token claims'

    def test_missing_subject(self, token_verifier, mint_token):
        with pytest.raises(AuthenticationError):
            token_verifier.verify(mint_token(sub=None))

    @pytest.mark.parametrize('verified', [False, 'false', None])
    def test_unverified_email(self, token_verifier, mint_token, verified):
        with pytest.raises(AuthenticationError) as exc:
            token_verifier.verify(mint_token(email_verified=verified))
        assert exc.value.message == 'Email not verified'

    def test_foreign_signing_key(self, token_verifier, mint_token):
        other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        with pytest.raises(AuthenticationError) as exc:
            token_verifier.verify(mint_token(signing_key=other_key))
        assert exc.value.message == 'Invalid authentication token'

    def test_garbage_token(self, token_verifier):
        with pytest.raises(AuthenticationError):
            token_verifier.verify('not.a.jwt')

    def test_key_fetch_failure_is_upstream_error(self, mint_token):
        verifier = GoogleTokenVerifier(
            IdentityProviderSettings(client_id='test-client.apps.googleusercontent.com'),
            jwks_client=FailingJWKClient(),
        )
        with pytest.raises(UpstreamError) as exc:
            verifier.verify(mint_token())
        assert exc.value.status_code == 401

    def test_client_id_required(self):
        with pytest.raises(ValueError):
            GoogleTokenVerifier(IdentityProviderSettings(client_id=None))
