"""
Configuration loader for the time submission backend.

Loads YAML files from the config directory, resolves secrets from the
environment and builds the immutable Settings object used by the app.

Any key ending in ``_env`` names an environment variable, e.g.::

    admin_password_env: ADMIN_PASSWORD

resolves to ``admin_password`` with the value of ``$ADMIN_PASSWORD``.
"""

import os
import yaml
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .config import (
    AppSettings,
    DatabaseConfig,
    DatabaseType,
    IdentityProviderSettings,
    QuestionSettings,
    RateLimit,
    RateLimitSettings,
    SecuritySettings,
    Settings,
    ValidationSettings,
)

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = 'PROPERTYTIME_CONFIG_DIR'

# Environment variables accepted when the YAML does not name one
_FALLBACK_SECRETS = {
    'admin_password': ('ADMIN_PASSWORD', 'REACT_APP_ADMIN_PASSWORD'),
    'client_id': ('GOOGLE_CLIENT_ID',),
}


def _load_root_env():
    """Load root .env file for bootstrap secrets."""
    from dotenv import load_dotenv
    # backend/python/propertytime/common -> repo root
    root_env = Path(__file__).resolve().parents[4] / '.env'
    if root_env.exists():
        load_dotenv(root_env)
        logger.debug(f"Loaded root .env from {root_env}")


def find_config_dir() -> Optional[Path]:
    """Find config directory by searching from current location."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)

    # Try relative to this file first
    base = Path(__file__).resolve().parents[3]  # backend/
    config_path = base / 'config'
    if config_path.exists():
        return config_path

    current = Path.cwd()
    for _ in range(5):
        for candidate in (current / 'backend' / 'config', current / 'config'):
            if candidate.exists():
                return candidate
        if current.parent == current:
            break
        current = current.parent

    return None


def resolve_env_keys(data: Dict[str, Any], environ=None) -> Dict[str, Any]:
    """
    Replace ``<name>_env`` keys with ``<name>`` holding the environment value.

    Nested dictionaries are resolved recursively. A missing environment
    variable resolves to None.
    """
    environ = os.environ if environ is None else environ
    resolved = {}
    for key, value in data.items():
        if isinstance(value, dict):
            resolved[key] = resolve_env_keys(value, environ)
        elif key.endswith('_env') and isinstance(value, str):
            resolved[key[:-len('_env')]] = environ.get(value)
        else:
            resolved[key] = value
    return resolved


def load_yaml_sections(config_dir: Optional[Path]) -> Dict[str, Dict[str, Any]]:
    """Load every ``*.yaml`` file in config_dir keyed by file stem."""
    sections = {}
    if config_dir is None or not config_dir.exists():
        logger.warning(f"Config directory not found: {config_dir}, using defaults")
        return sections

    for yaml_file in sorted(config_dir.glob('*.yaml')):
        with open(yaml_file, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {yaml_file} must contain a mapping")
        sections[yaml_file.stem] = data
        logger.debug(f"Loaded config: {yaml_file.stem}")
    return sections


def _secret(section: Dict[str, Any], name: str, environ) -> Optional[str]:
    value = section.get(name)
    if value:
        return value
    for var in _FALLBACK_SECRETS.get(name, ()):
        if environ.get(var):
            return environ[var]
    return None


def _rate_limit(data: Dict[str, Any], default: RateLimit) -> RateLimit:
    if not data:
        return default
    return RateLimit(
        max_requests=int(data.get('max_requests', default.max_requests)),
        window_seconds=int(data.get('window_seconds', default.window_seconds)),
    )


def _build_database(data: Dict[str, Any]) -> DatabaseConfig:
    if not data:
        return DatabaseConfig()
    return DatabaseConfig(
        db_type=DatabaseType(data.get('type', DatabaseType.SQLITE.value)),
        host=data.get('host') or '',
        port=int(data.get('port') or 0),
        database=data.get('name') or '',
        username=data.get('username') or '',
        password=data.get('password') or '',
        driver=data.get('driver'),
        pool_size=int(data.get('pool_size', 5)),
        max_overflow=int(data.get('max_overflow', 10)),
        pool_timeout=int(data.get('pool_timeout', 30)),
        pool_recycle=int(data.get('pool_recycle', 1800)),
    )


def build_settings(sections: Dict[str, Dict[str, Any]], environ=None) -> Settings:
    """
    Build Settings from raw YAML sections.

    Args:
        sections: Mapping of section name to parsed YAML content
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Settings instance
    """
    environ = os.environ if environ is None else environ
    sections = {name: resolve_env_keys(data, environ) for name, data in sections.items()}

    app_cfg = sections.get('app', {})
    security_cfg = sections.get('security', {})
    identity_cfg = sections.get('identity', {})
    questions_cfg = sections.get('questions', {})
    database_cfg = sections.get('database', {})

    app = AppSettings(
        env=environ.get('APP_ENV') or app_cfg.get('env', 'production'),
        host=app_cfg.get('host', '0.0.0.0'),
        port=int(app_cfg.get('port', 5000)),
        timezone=app_cfg.get('timezone', 'America/Chicago'),
        log_level=app_cfg.get('log_level', 'INFO'),
        log_dir=app_cfg.get('log_dir'),
    )

    limits_cfg = security_cfg.get('rate_limits') or {}
    defaults = RateLimitSettings()
    rate_limits = RateLimitSettings(
        general=_rate_limit(limits_cfg.get('general'), defaults.general),
        auth=_rate_limit(limits_cfg.get('auth'), defaults.auth),
        submissions=_rate_limit(limits_cfg.get('submissions'), defaults.submissions),
    )

    validation_cfg = security_cfg.get('validation') or {}
    validation = ValidationSettings(
        max_entries_per_submission=int(validation_cfg.get('max_entries_per_submission', 20)),
        max_note_length=int(validation_cfg.get('max_note_length', 500)),
        max_hours_per_entry=float(validation_cfg.get('max_hours_per_entry', 24)),
    )

    strict_env = environ.get('STRICT_AUTH')
    strict_auth = security_cfg.get('strict_auth', False)
    if strict_env is not None:
        strict_auth = strict_env.strip().lower() in ('1', 'true', 'yes', 'on')

    security = SecuritySettings(
        strict_auth=bool(strict_auth),
        admin_password=_secret(security_cfg, 'admin_password', environ),
        allowed_origins=tuple(security_cfg.get('allowed_origins') or ()),
        rate_limits=rate_limits,
        validation=validation,
    )

    identity = IdentityProviderSettings(
        client_id=_secret(identity_cfg, 'client_id', environ),
        jwks_url=identity_cfg.get('jwks_url', IdentityProviderSettings.jwks_url),
        issuers=tuple(identity_cfg.get('issuers') or IdentityProviderSettings.issuers),
        leeway_seconds=int(identity_cfg.get('leeway_seconds', 10)),
    )

    question_sets = {
        name: tuple(texts or ())
        for name, texts in (questions_cfg.get('question_sets') or {}).items()
    }
    questions = QuestionSettings(
        questions_required=bool(questions_cfg.get('questions_required', False)),
        question_sets=question_sets,
    )

    return Settings(
        app=app,
        security=security,
        database=_build_database(database_cfg),
        identity=identity,
        questions=questions,
    )


def load_settings(config_dir: str = None) -> Settings:
    """
    Load settings from YAML + environment.

    Called once at process start; the returned object is passed explicitly
    to create_app rather than read from a module global.
    """
    _load_root_env()
    path = Path(config_dir) if config_dir else find_config_dir()
    settings = build_settings(load_yaml_sections(path))
    logger.info(
        f"Settings loaded from {path} (env={settings.app.env}, "
        f"strict_auth={settings.security.strict_auth}, db={settings.database.db_type.value})"
    )
    return settings
