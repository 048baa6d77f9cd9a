"""
API error types and the JSON envelope they render to.

Every failure leaves the server as ``{success: false, message, ...}``.
"""

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base API error with status code."""
    status_code = 500

    def __init__(self, message, status_code=None, debug=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.debug = debug

    def to_dict(self):
        return {'success': False, 'message': self.message}


class AuthenticationError(ApiError):
    """Missing or invalid identity."""
    status_code = 401


class UpstreamError(AuthenticationError):
    """Identity provider rejected or could not verify the token."""


class AuthorizationError(ApiError):
    """Valid identity without the required role or admin privilege."""
    status_code = 403


class ValidationError(ApiError):
    """
    Malformed or out-of-range input.

    Args:
        message: Human readable message
        field: Name of the offending field
        entry: 1-based index of the offending entry, if any
    """
    status_code = 400

    def __init__(self, message, field=None, entry=None):
        super().__init__(message)
        self.field = field
        self.entry = entry

    def to_dict(self):
        payload = super().to_dict()
        if self.field:
            payload['field'] = self.field
        if self.entry is not None:
            payload['entry'] = self.entry
        return payload


class NotFoundError(ApiError):
    status_code = 404


class StoreError(ApiError):
    """Query or transaction failure. Raised after rollback."""
    status_code = 500


class RateLimitError(ApiError):
    status_code = 429

    def __init__(self, message, retry_after):
        super().__init__(message)
        self.retry_after = retry_after


def error_response(error, expose_debug=False):
    """Render an ApiError as a Flask response tuple."""
    payload = error.to_dict()
    if expose_debug and error.debug:
        payload['error'] = error.debug
    response = jsonify(payload)
    response.status_code = error.status_code
    if isinstance(error, RateLimitError):
        response.headers['Retry-After'] = str(error.retry_after)
    return response


def register_error_handlers(app):
    """
    Install handlers converting exceptions to the standard envelope.

    Internal messages are only exposed outside production.
    """
    expose_debug = not app.settings.app.is_production

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{type(error).__name__} on {request.path}: {error.message} ({error.debug})")
        return error_response(error, expose_debug)

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(error):
        app.logger.exception(f"Database error on {request.path}")
        return error_response(StoreError('Database error', debug=str(error)), expose_debug)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if not request.path.startswith('/api'):
            return error
        return error_response(ApiError(error.description or error.name, error.code), False)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        app.logger.exception(f"Unhandled error on {request.path}")
        return error_response(ApiError('Internal server error', 500, debug=str(error)), expose_debug)
