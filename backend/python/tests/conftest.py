"""
Shared fixtures: an in-memory SQLite store seeded with directory rows, apps in
both auth modes and PyJWT-signed ID tokens for the strict gate.
"""

import time
from types import SimpleNamespace

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy.orm import sessionmaker

from propertytime.common.config import (
    AppSettings,
    IdentityProviderSettings,
    QuestionSettings,
    RateLimitSettings,
    SecuritySettings,
    Settings,
)
from propertytime.common.engine import create_engine_from_url
from propertytime.web.app import create_app
from propertytime.web.auth.google_token import GoogleTokenVerifier
from propertytime.web.models import StaffDirectoryEntry, create_tables
from propertytime.web.services import DirectoryService

CLIENT_ID = 'test-client.apps.googleusercontent.com'
ADMIN_PASSWORD = 'open-sesame'

# (property_id, property_name, email, user_name, user_id, user_role, user_role_id)
DIRECTORY_ROWS = [
    ('P1', 'Alpha Towers', 'manager@example.com', 'Mary Manager', 'u-100', 'Manager', 3),
    ('P2', 'Bayview', 'manager@example.com', 'Mary Manager', 'u-100', 'Manager', 3),
    ('P2', 'Bayview', 'accountant@example.com', 'Alan Accountant', 'u-200', 'Accountant', 2),
    ('P3', 'Cedar Court', 'accountant@example.com', 'Alan Accountant', 'u-200', 'Accountant', 2),
    ('P1', 'Alpha Towers', 'admin@example.com', 'Ada Admin', 'u-1', 'Admin', 1),
    ('P1', 'Alpha Towers', 'lead@example.com', 'Lee Lead', 'u-2', 'Admin', 1),
    ('P1', 'Alpha Towers', 'lead@example.com', 'Lee Lead', 'u-2', 'Manager', 3),
    ('P3', 'Cedar Court', 'viewer@example.com', 'Vic Viewer', 'u-400', 'Board Member', 4),
    ('P1', 'Alpha Towers', 'multi@example.com', 'Max Multi', 'u-500', 'Accountant', 2),
    ('P1', 'Alpha Towers', 'multi@example.com', 'Max Multi', 'u-500', 'Manager', 3),
]


def seed_directory(session_factory):
    session = session_factory()
    try:
        for pid, pname, email, uname, uid, role, role_id in DIRECTORY_ROWS:
            session.add(StaffDirectoryEntry(
                property_id=pid,
                property_name=pname,
                email_address=email,
                user_name=uname,
                user_id=uid,
                user_role=role,
                user_role_id=role_id,
            ))
        session.commit()
    finally:
        session.close()


def build_test_settings(log_dir, strict_auth=False, admin_password=ADMIN_PASSWORD,
                        questions_required=False, rate_limits=None, env='testing'):
    return Settings(
        app=AppSettings(env=env, log_dir=log_dir),
        security=SecuritySettings(
            strict_auth=strict_auth,
            admin_password=admin_password,
            rate_limits=rate_limits or RateLimitSettings(),
        ),
        identity=IdentityProviderSettings(client_id=CLIENT_ID),
        questions=QuestionSettings(
            questions_required=questions_required,
            question_sets={'Manager': ('Board time?', 'Resident time?'), 'Accounting': ('Reporting time?',)},
        ),
    )


class StaticJWKClient:
    """Stands in for PyJWKClient: always returns the test public key."""

    def __init__(self, public_key):
        self._signing_key = SimpleNamespace(key=public_key)

    def get_signing_key_from_jwt(self, token):
        return self._signing_key


# =============================================================================
# Store
# =============================================================================

@pytest.fixture
def session_factory():
    """Fresh in-memory database with the directory seeded."""
    engine = create_engine_from_url('sqlite://')
    create_tables(engine, include_views=True)
    factory = sessionmaker(bind=engine)
    seed_directory(factory)
    yield factory
    engine.dispose()


@pytest.fixture
def directory(session_factory):
    return DirectoryService(session_factory)


# =============================================================================
# Identity tokens
# =============================================================================

@pytest.fixture(scope='session')
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def token_verifier(rsa_key):
    return GoogleTokenVerifier(
        IdentityProviderSettings(client_id=CLIENT_ID),
        jwks_client=StaticJWKClient(rsa_key.public_key()),
    )


@pytest.fixture
def mint_token(rsa_key):
    """
    Build a signed ID token for email. Claim overrides set to None are removed.
    """
    def _mint(email='manager@example.com', signing_key=None, **overrides):
        now = int(time.time())
        claims = {
            'iss': 'https://accounts.google.com',
            'aud': CLIENT_ID,
            'sub': f'sub-{email}',
            'email': email,
            'email_verified': True,
            'name': email.split('@')[0].title(),
            'iat': now,
            'exp': now + 3600,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(claims, signing_key or rsa_key, algorithm='RS256')
    return _mint


# =============================================================================
# Apps
# =============================================================================

@pytest.fixture
def make_app(tmp_path, token_verifier):
    """Factory for seeded apps; keyword arguments go to build_test_settings."""
    def _make(**kwargs):
        settings = build_test_settings(str(tmp_path / 'logs'), **kwargs)
        app = create_app(settings, db_url='sqlite://', token_verifier=token_verifier)
        app.config['TESTING'] = True
        create_tables(app.db_engine, include_views=True)
        seed_directory(app.get_db_session)
        return app
    return _make


@pytest.fixture
def app(make_app):
    """App with the open gate."""
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def strict_app(make_app):
    return make_app(strict_auth=True)


@pytest.fixture
def strict_client(strict_app):
    return strict_app.test_client()


@pytest.fixture
def as_user():
    """Headers naming the caller to the open gate."""
    def _headers(email):
        return {'X-User-Email': email}
    return _headers


@pytest.fixture
def bearer(mint_token):
    """Authorization headers carrying a fresh token for email."""
    def _headers(email, **overrides):
        return {'Authorization': f'Bearer {mint_token(email, **overrides)}'}
    return _headers
