"""
Flask Web Application for the property time submission backend.
Provides the JSON API consumed by the submission and dashboard client.
"""

import logging
import secrets
import time
from datetime import datetime

import pytz
from flask import Flask, g, request, jsonify
from flask_cors import CORS
from sqlalchemy.orm import sessionmaker

from propertytime.common.config_loader import load_settings
from propertytime.common.engine import create_engine_from_config, create_engine_from_url


def setup_logging(settings):
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, settings.app.log_level.upper(), logging.INFO),
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def create_app(settings=None, db_url=None, token_verifier=None):
    """
    Create Flask application with all blueprints registered.

    Args:
        settings: Settings instance (optional, loaded from config files if not provided)
        db_url: Database URL (optional, built from settings.database if not provided)
        token_verifier: ID token verifier override for strict auth (optional)

    Returns:
        Flask application
    """
    if settings is None:
        settings = load_settings()
    setup_logging(settings)

    app = Flask(__name__)
    app.settings = settings

    # Stateless API: the key only signs Flask's own cookies, never identities
    app.config.update(
        SECRET_KEY=secrets.token_hex(32),
        DEBUG=settings.app.is_development,
        MAX_CONTENT_LENGTH=10 * 1024 * 1024,
    )

    # Database engine and session factory
    if db_url:
        app.db_engine = create_engine_from_url(db_url, settings.database)
    else:
        app.db_engine = create_engine_from_config(settings.database)
    session_factory = sessionmaker(bind=app.db_engine)
    app.get_db_session = session_factory

    # CORS: every origin in development, the allow-list otherwise
    origins = '*' if settings.app.is_development else list(settings.security.allowed_origins)
    CORS(
        app,
        resources={r'/api/*': {'origins': origins}},
        supports_credentials=True,
        methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
        allow_headers=['Content-Type', 'Authorization', 'X-Requested-With', 'X-User-Email'],
        max_age=86400,
    )

    # Services
    from propertytime.web.services import (
        DashboardAggregator,
        DirectoryService,
        DuplicateChecker,
        SubmissionWriter,
    )
    app.directory = DirectoryService(session_factory)
    app.submission_writer = SubmissionWriter(session_factory)
    app.duplicate_checker = DuplicateChecker(session_factory)
    app.dashboard = DashboardAggregator(session_factory, app.directory)

    # Access gate, selected once for the lifetime of the app
    from propertytime.web.auth.gates import build_gate
    from propertytime.web.auth.login import init_login_manager
    app.access_gate = build_gate(settings, app.directory, token_verifier)
    init_login_manager(app, app.access_gate)

    from propertytime.web.utils.rate_limit import build_rate_limiters, check_rate_limit
    app.rate_limiters = build_rate_limiters(settings.security.rate_limits)

    # Initialize audit logging
    from propertytime.web.utils.audit import setup_audit_logging
    setup_audit_logging(app)

    from propertytime.web.errors import register_error_handlers
    register_error_handlers(app)

    app.web_started_at = datetime.now()

    @app.before_request
    def start_request():
        g.request_started = time.perf_counter()
        if request.path.startswith('/api/') and request.method != 'OPTIONS':
            check_rate_limit('general')

    @app.after_request
    def add_security_headers(response):
        # Cache control for API endpoints
        if request.path.startswith('/api/'):
            response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
            response.headers['Pragma'] = 'no-cache'
            response.headers['Expires'] = '0'

        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-XSS-Protection'] = '1; mode=block'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    @app.after_request
    def log_api_request(response):
        # Writes and failures only
        if request.path.startswith('/api/') and (response.status_code >= 400 or request.method != 'GET'):
            started = g.get('request_started')
            duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
            app.logger.info(
                f"API Request: {request.method} {request.path} | status={response.status_code} | "
                f"ip={request.headers.get('X-Forwarded-For', request.remote_addr)} | "
                f"duration={duration_ms:.0f}ms"
            )
        return response

    # Register blueprints
    from propertytime.web.routes.api import api_bp
    from propertytime.web.routes.admin import admin_bp

    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now(pytz.UTC).isoformat()
        })

    app.logger.info(
        f"App created (env={settings.app.env}, gate={type(app.access_gate).__name__})"
    )
    return app


def run_app(host=None, port=None, debug=None):
    """Run the Flask development server."""
    settings = load_settings()
    app = create_app(settings)

    host = host or settings.app.host
    port = port or settings.app.port
    debug = settings.app.is_development if debug is None else debug

    app.run(host=host, port=port, debug=debug)


if __name__ == '__main__':
    run_app()
