"""
Advisory duplicate checks for assessments.

These only report existing rows; the writer never blocks a duplicate.
"""

from sqlalchemy import func

from propertytime.web.models.property_time import PropertyTime
from propertytime.web.models.staff_directory import StaffDirectoryEntry


class DuplicateChecker:
    """
    Args:
        session_factory: Callable returning a new SQLAlchemy session
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @staticmethod
    def _period_filter(email, period, submission_type):
        return (
            PropertyTime.email_address == email,
            PropertyTime.month == period.month,
            PropertyTime.year == period.year,
            PropertyTime.submission_type == submission_type.value,
        )

    def has_submission(self, email, period, submission_type, community_id):
        """True if at least one row exists for the tuple."""
        session = self._session_factory()
        try:
            count = (
                session.query(func.count(PropertyTime.id))
                .filter(*self._period_filter(email, period, submission_type))
                .filter(PropertyTime.property_id == community_id)
                .scalar()
            )
            return count > 0
        finally:
            session.close()

    def submitted_names(self, email, period, submission_type, community_ids):
        """
        Display names of the given communities that already have a submission.

        Communities missing from the directory are named ``Property <id>``.
        """
        if not community_ids:
            return []

        session = self._session_factory()
        try:
            submitted = (
                session.query(PropertyTime.property_id)
                .filter(*self._period_filter(email, period, submission_type))
                .filter(PropertyTime.property_id.in_(list(community_ids)))
                .distinct()
                .subquery()
            )
            rows = (
                session.query(submitted.c.property_id, StaffDirectoryEntry.property_name)
                .select_from(submitted)
                .outerjoin(
                    StaffDirectoryEntry,
                    StaffDirectoryEntry.property_id == submitted.c.property_id,
                )
                .distinct()
                .all()
            )
            names = {}
            for row in rows:
                if row.property_name or row.property_id not in names:
                    names[row.property_id] = row.property_name or f'Property {row.property_id}'
            return sorted(names.values())
        finally:
            session.close()

    def submitted_ids(self, email, period, submission_type):
        """All community ids with a submission for the period and type."""
        session = self._session_factory()
        try:
            rows = (
                session.query(PropertyTime.property_id)
                .filter(*self._period_filter(email, period, submission_type))
                .distinct()
                .order_by(PropertyTime.property_id)
                .all()
            )
            return [row.property_id for row in rows]
        finally:
            session.close()
