"""Request parsing shared by the API blueprints."""

from datetime import datetime

import pytz
from flask import current_app, request

from propertytime.web.errors import ValidationError
from propertytime.web.utils.validators import validate_period


def get_json_body():
    """Request JSON as a dict; anything else is a 400."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object', field='body')
    return payload


def local_today():
    """Today's date in the configured timezone (for display and defaults)."""
    tz = pytz.timezone(current_app.settings.app.timezone)
    return datetime.now(tz).date()


def period_from_query():
    """
    Month/year from the query string, defaulting to the current month.
    """
    today = local_today()
    month = request.args.get('month') or today.month
    year = request.args.get('year') or today.year
    return validate_period(month, year, today)


def requested_user(payload):
    """The user a request body says it acts on, if any."""
    for name in ('userEmail', 'userId'):
        value = payload.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
