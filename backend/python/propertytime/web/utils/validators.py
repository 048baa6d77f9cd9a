"""
Input validation utilities.

The is_valid_* predicates and sanitize_text never raise: any input, of any
type, yields a boolean (or the cleaned text). The validate_* functions build
on them to check whole request payloads and raise ValidationError naming the
offending field and 1-based entry index.
"""

import math
import re
from datetime import datetime, date as date_type

from propertytime.web.errors import ValidationError
from propertytime.web.models.property_time import SubmissionType
from propertytime.web.schemas import (
    AssessmentEntry,
    AssessmentSubmission,
    Period,
    TimeEntry,
    TimeSubmission,
)

EMAIL_RE = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')
DATE_RE = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}')
MAX_COMMUNITY_ID_LENGTH = 50

MIN_YEAR = 2000

# Allowed ranges per response index: (kind, low, high)
RESPONSE_RANGES = {
    0: (int, 0, 4),
    1: (int, 0, 4),
    2: (int, 0, 4),
    3: (int, 0, 4),
    4: (int, 1, 5),
    5: (int, 1, 5),
    6: (float, 0, 168),
}
STORED_RESPONSE_INDEXES = (0, 1, 2, 3, 4)

_SANITIZE_PATTERNS = (
    (re.compile(r'[<>]'), ''),
    (re.compile(r'[\'"]'), ''),
    (re.compile(r'javascript:', re.IGNORECASE), ''),
    (re.compile(r'on\w+\s*=', re.IGNORECASE), ''),
)


# =============================================================================
# Predicates
# =============================================================================

def is_valid_email(email):
    """Light RFC check: something@something.tld with no whitespace."""
    return isinstance(email, str) and EMAIL_RE.fullmatch(email) is not None


def is_valid_date(value):
    """True for an exact YYYY-MM-DD string naming a real calendar date."""
    if not isinstance(value, str) or DATE_RE.fullmatch(value) is None:
        return False
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return True


def to_number(value):
    """Parse an int, float or numeric string; None for anything else."""
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (OverflowError, ValueError):
        # ints beyond float range overflow
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def is_valid_hours(hours, max_hours=24):
    """True when hours is numeric and 0 <= hours <= max_hours."""
    number = to_number(hours)
    return number is not None and 0 <= number <= max_hours


def is_valid_community_id(community_id):
    """True for a non-empty string of at most 50 characters."""
    return (
        isinstance(community_id, str)
        and 0 < len(community_id) <= MAX_COMMUNITY_ID_LENGTH
    )


def sanitize_text(text):
    """
    Strip markup-ish characters from free text before storage.

    Removes angle brackets, quotes, ``javascript:`` and inline ``onxxx=``
    handlers, then trims whitespace. Non-string input is returned unchanged.
    """
    if not isinstance(text, str):
        return text
    for pattern, replacement in _SANITIZE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text.strip()


def normalize_community_id(value):
    """Accept integer ids from JSON clients; everything else passes through."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _as_int(value):
    number = to_number(value)
    if number is None or number != int(number):
        return None
    return int(number)


# =============================================================================
# Payload validation
# =============================================================================

def validate_period(month, year, today=None):
    """
    Validate month (1-12) and year (2000 .. next year).

    Returns:
        Period with integer month and year
    """
    today = today or date_type.today()
    month_value = _as_int(month)
    if month_value is None or not 1 <= month_value <= 12:
        raise ValidationError('Invalid month. Must be between 1 and 12.', field='month')
    year_value = _as_int(year)
    if year_value is None or not MIN_YEAR <= year_value <= today.year + 1:
        raise ValidationError('Invalid year', field='year')
    return Period(month=month_value, year=year_value)


def validate_submission_type(value):
    try:
        return SubmissionType(value)
    except ValueError:
        raise ValidationError(
            'Valid submissionType is required (Manager or Accounting)', field='submissionType'
        ) from None


def _validate_entries_list(entries, limits):
    if not isinstance(entries, list) or not entries:
        raise ValidationError('Entries must be a non-empty array', field='entries')
    if len(entries) > limits.max_entries_per_submission:
        raise ValidationError(
            f'Maximum {limits.max_entries_per_submission} entries allowed per submission',
            field='entries',
        )
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f'Entry {index} must be an object', field='entries', entry=index)


def _validate_note(value, limits, field, index):
    if value is None or value == '':
        return None
    if not isinstance(value, str):
        raise ValidationError(f'Invalid {field} in entry {index}', field=field, entry=index)
    if len(value) > limits.max_note_length:
        raise ValidationError(
            f'{field[0].upper()}{field[1:]} too long in entry {index}. '
            f'Maximum {limits.max_note_length} characters.',
            field=field,
            entry=index,
        )
    return sanitize_text(value) or None


def _validate_community(entry, index):
    community_id = normalize_community_id(entry.get('communityId'))
    if not is_valid_community_id(community_id):
        raise ValidationError(
            f'Invalid community ID in entry {index}', field='communityId', entry=index
        )
    return community_id


def validate_time_submission(payload, limits):
    """
    Validate a legacy time entry batch.

    Args:
        payload: Request JSON ({date, entries: [{communityId, hours, notes}]})
        limits: ValidationSettings

    Returns:
        TimeSubmission with sanitized notes and float hours
    """
    entry_date = payload.get('date')
    if not is_valid_date(entry_date):
        raise ValidationError('Valid date in YYYY-MM-DD format is required', field='date')

    entries = payload.get('entries')
    _validate_entries_list(entries, limits)

    validated = []
    for index, entry in enumerate(entries, start=1):
        community_id = _validate_community(entry, index)

        hours = entry.get('hours')
        if not is_valid_hours(hours, limits.max_hours_per_entry):
            raise ValidationError(
                f'Invalid hours value in entry {index}. '
                f'Must be between 0 and {limits.max_hours_per_entry:g}.',
                field='hours',
                entry=index,
            )

        notes = _validate_note(entry.get('notes'), limits, 'notes', index)
        validated.append(TimeEntry(community_id=community_id, hours=to_number(hours), notes=notes))

    return TimeSubmission(
        date=datetime.strptime(entry_date, '%Y-%m-%d').date(),
        entries=tuple(validated),
    )


def validate_responses(responses, index, required=False):
    """
    Normalize an entry's responses into {question_index: value}.

    Accepts a list (position = question index) or an object keyed by index.
    Missing and null answers are dropped unless required is set, in which
    case indices 0-4 must be present.
    """
    if responses is None:
        responses = {}
    if isinstance(responses, list):
        items = list(enumerate(responses))
    elif isinstance(responses, dict):
        items = list(responses.items())
    else:
        raise ValidationError(
            f'Invalid responses in entry {index}', field='responses', entry=index
        )

    normalized = {}
    for key, value in items:
        question = _as_int(key)
        if question is None or question not in RESPONSE_RANGES:
            raise ValidationError(
                f'Unknown question {key!r} in entry {index}', field='responses', entry=index
            )
        if value is None or value == '':
            continue
        kind, low, high = RESPONSE_RANGES[question]
        number = _as_int(value) if kind is int else to_number(value)
        if number is None or not low <= number <= high:
            raise ValidationError(
                f'Invalid answer to question {question + 1} in entry {index}. '
                f'Must be between {low} and {high}.',
                field=f'responses[{question}]',
                entry=index,
            )
        normalized[question] = number

    if required:
        missing = [q for q in STORED_RESPONSE_INDEXES if q not in normalized]
        if missing:
            raise ValidationError(
                f'Question {missing[0] + 1} is required in entry {index}',
                field=f'responses[{missing[0]}]',
                entry=index,
            )
    return normalized


def validate_assessment_submission(payload, limits, questions_required=False, today=None):
    """
    Validate a monthly assessment.

    Args:
        payload: Request JSON
        limits: ValidationSettings
        questions_required: Require answers to questions 1-5
        today: Reference date for the year range check

    Returns:
        AssessmentSubmission (user fields are resolved by the caller)
    """
    period = validate_period(payload.get('month'), payload.get('year'), today)
    submission_type = validate_submission_type(payload.get('submissionType'))

    entries = payload.get('entries')
    _validate_entries_list(entries, limits)

    validated = []
    seen = set()
    for index, entry in enumerate(entries, start=1):
        community_id = _validate_community(entry, index)
        if community_id in seen:
            raise ValidationError(
                f'Duplicate community in entry {index}', field='communityId', entry=index
            )
        seen.add(community_id)

        responses = validate_responses(entry.get('responses'), index, questions_required)
        other_text = _validate_note(entry.get('otherText'), limits, 'otherText', index)

        percentage = _as_int(entry.get('timePercentage'))
        if percentage is None or not 0 <= percentage <= 100:
            raise ValidationError(
                f'Invalid time percentage in entry {index}. Must be a whole number between 0 and 100.',
                field='timePercentage',
                entry=index,
            )

        validated.append(AssessmentEntry(
            community_id=community_id,
            responses=responses,
            other_text=other_text,
            time_percentage=percentage,
        ))

    return AssessmentSubmission(
        period=period,
        submission_type=submission_type,
        entries=tuple(validated),
    )


def validate_community_ids(values, limits):
    """Validate the communityIds list of a batch duplicate check."""
    if values is None:
        return ()
    if not isinstance(values, list):
        raise ValidationError('communityIds must be an array', field='communityIds')
    if len(values) > limits.max_entries_per_submission:
        raise ValidationError(
            f'Maximum {limits.max_entries_per_submission} communities per check',
            field='communityIds',
        )
    ids = []
    for index, value in enumerate(values, start=1):
        community_id = normalize_community_id(value)
        if not is_valid_community_id(community_id):
            raise ValidationError(
                f'Invalid community ID in entry {index}', field='communityIds', entry=index
            )
        ids.append(community_id)
    return tuple(ids)
