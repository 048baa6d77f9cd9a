"""
Immutable runtime settings.

A single Settings instance is built once at process start by
common.config_loader and handed to every component that needs it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class DatabaseType(Enum):
    """Supported database types"""
    AZURE_SQL = "azure_sql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database connection configuration.
    Supports Azure SQL Server, PostgreSQL and SQLite (local/demo and tests).
    """
    db_type: DatabaseType = DatabaseType.SQLITE
    host: str = ''
    port: int = 0
    database: str = ''
    username: str = ''
    password: str = ''
    driver: Optional[str] = None  # Required for Azure SQL (ODBC driver)

    # Connection pool settings
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True

    def __repr__(self) -> str:
        """Safe representation without password"""
        return (f"DatabaseConfig(db_type={self.db_type.value}, host={self.host}, "
                f"database={self.database}, username={self.username})")


@dataclass(frozen=True)
class RateLimit:
    """Budget for one fixed-window limiter."""
    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitSettings:
    general: RateLimit = RateLimit(100, 15 * 60)
    auth: RateLimit = RateLimit(5, 15 * 60)
    submissions: RateLimit = RateLimit(20, 5 * 60)


@dataclass(frozen=True)
class ValidationSettings:
    max_entries_per_submission: int = 20
    max_note_length: int = 500
    max_hours_per_entry: float = 24


@dataclass(frozen=True)
class SecuritySettings:
    """
    Authentication and request-guard settings.

    strict_auth selects the access gate once at startup: True verifies
    identity tokens, False trusts the email supplied with the request.
    """
    strict_auth: bool = False
    admin_password: Optional[str] = None
    allowed_origins: Tuple[str, ...] = ()
    rate_limits: RateLimitSettings = RateLimitSettings()
    validation: ValidationSettings = ValidationSettings()

    def __repr__(self) -> str:
        return (f"SecuritySettings(strict_auth={self.strict_auth}, "
                f"allowed_origins={list(self.allowed_origins)})")


@dataclass(frozen=True)
class IdentityProviderSettings:
    """Google sign-in client registration."""
    client_id: Optional[str] = None
    jwks_url: str = 'https://www.googleapis.com/oauth2/v3/certs'
    issuers: Tuple[str, ...] = ('accounts.google.com', 'https://accounts.google.com')
    leeway_seconds: int = 10

    def __repr__(self) -> str:
        return f"IdentityProviderSettings(client_id={self.client_id})"


@dataclass(frozen=True)
class QuestionSettings:
    """Assessment question text shown by the client, keyed by submission type."""
    questions_required: bool = False
    question_sets: Dict[str, Tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class AppSettings:
    env: str = 'production'
    host: str = '0.0.0.0'
    port: int = 5000
    timezone: str = 'America/Chicago'
    log_level: str = 'INFO'
    log_dir: Optional[str] = None

    @property
    def is_development(self) -> bool:
        return self.env == 'development'

    @property
    def is_production(self) -> bool:
        return self.env == 'production'


@dataclass(frozen=True)
class Settings:
    """Top-level settings object passed into create_app and the services."""
    app: AppSettings = AppSettings()
    security: SecuritySettings = SecuritySettings()
    database: DatabaseConfig = DatabaseConfig()
    identity: IdentityProviderSettings = IdentityProviderSettings()
    questions: QuestionSettings = QuestionSettings()
