"""
Transactional writer for time entries and assessments.

Each submission is written in one transaction: either every entry row is
committed or none is. The writer does not deduplicate; callers use the
DuplicateChecker beforehand.
"""

import logging
from datetime import datetime

import pytz
from sqlalchemy.exc import SQLAlchemyError

from propertytime.web.errors import StoreError
from propertytime.web.models.property_time import (
    OTHER_TEXT_COLUMNS,
    QUESTION_COLUMNS,
    PropertyTime,
    SubmissionType,
)
from propertytime.web.schemas import SubmissionResult

logger = logging.getLogger(__name__)


def utc_now():
    """Current time in UTC (for database storage)."""
    return datetime.now(pytz.UTC)


def assessment_columns(submission_type, responses, other_text):
    """
    Map responses 0-4 onto the question group of submission_type.

    The other group is returned as all-None so a row only ever carries one
    submission type's answers.
    """
    columns = {}
    for kind in SubmissionType:
        for column in QUESTION_COLUMNS[kind]:
            columns[column] = None
        columns[OTHER_TEXT_COLUMNS[kind]] = None

    for position, column in enumerate(QUESTION_COLUMNS[submission_type]):
        value = responses.get(position)
        columns[column] = int(value) if value is not None else None
    columns[OTHER_TEXT_COLUMNS[submission_type]] = other_text
    return columns


class SubmissionWriter:
    """
    Insert submission rows.

    Args:
        session_factory: Callable returning a new SQLAlchemy session
        clock: Callable returning an aware datetime; one value is taken per
            submission and shared by all of its rows
    """

    def __init__(self, session_factory, clock=utc_now):
        self._session_factory = session_factory
        self._clock = clock

    def submit_time(self, email, user_name, submission):
        """
        Write a legacy time entry batch.

        Args:
            email: Target user email
            user_name: Stored user name
            submission: Validated TimeSubmission

        Returns:
            SubmissionResult
        """
        submitted_at = self._clock()
        rows = [
            PropertyTime(
                property_id=entry.community_id,
                user_name=user_name,
                email_address=email,
                date=submission.date,
                hours=entry.hours,
                notes=entry.notes,
                submission_date=submitted_at.replace(tzinfo=None),
            )
            for entry in submission.entries
        ]
        return self._write(rows, submitted_at, f"time entries for {email} on {submission.date}")

    def submit_assessment(self, email, user_name, submission):
        """
        Write a monthly assessment, one row per community.

        Args:
            email: Target user email
            user_name: Stored user name
            submission: Validated AssessmentSubmission

        Returns:
            SubmissionResult
        """
        submitted_at = self._clock()
        rows = [
            PropertyTime(
                property_id=entry.community_id,
                user_name=user_name,
                email_address=email,
                month=submission.period.month,
                year=submission.period.year,
                submission_type=submission.submission_type.value,
                time_percentage=entry.time_percentage,
                submission_date=submitted_at.replace(tzinfo=None),
                **assessment_columns(submission.submission_type, entry.responses, entry.other_text),
            )
            for entry in submission.entries
        ]
        description = (
            f"{submission.submission_type.value} assessment for {email} "
            f"({submission.period.month}/{submission.period.year})"
        )
        return self._write(rows, submitted_at, description)

    def _write(self, rows, submitted_at, description):
        """Insert rows in order inside one transaction."""
        logger.info(f"Writing {len(rows)} {description}")
        session = self._session_factory()
        try:
            for index, row in enumerate(rows, start=1):
                session.add(row)
                try:
                    session.flush()
                except SQLAlchemyError:
                    logger.error(f"Insert failed at entry {index} ({row.property_id}) of {description}")
                    raise
            session.commit()
            logger.info(f"Committed {len(rows)} {description}")
            return SubmissionResult(count=len(rows), submission_date=submitted_at)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Rolled back {description}: {e}")
            raise StoreError('Failed to save submission', debug=str(e)) from e
        finally:
            session.close()
