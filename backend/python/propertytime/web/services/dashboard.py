"""
Dashboard aggregation over time entries.

Fetches the month's rows for a scope (one user, the communities a user
belongs to, or everything), joins property names from the directory and
folds them into summary statistics.
"""

import logging
from sqlalchemy import extract

from propertytime.web.models.property_time import PropertyTime

logger = logging.getLogger(__name__)

LATEST_DATE_FORMAT = '%m/%d/%Y'
RECENT_ENTRIES_LIMIT = 50


def _property_label(property_id, names):
    return names.get(property_id) or f'Property {property_id}'


def aggregate_entries(entries, property_names):
    """
    Fold time entries into the dashboard payload.

    Args:
        entries: Iterable of PropertyTime rows
        property_names: Mapping property_id -> name

    Returns:
        dict: {summaryStats, entries, communityBreakdown}
    """
    total_hours = 0.0
    communities = set()
    latest = None
    breakdown = {}
    rendered = []

    for entry in entries:
        hours = float(entry.hours or 0)
        name = _property_label(entry.property_id, property_names)

        total_hours += hours
        communities.add(entry.property_id)
        if entry.date is not None and (latest is None or entry.date > latest):
            latest = entry.date

        bucket = breakdown.setdefault(str(entry.property_id), {'name': name, 'hours': 0.0})
        bucket['hours'] += hours

        item = entry.to_entry_dict()
        item['property_name'] = name
        rendered.append(item)

    for bucket in breakdown.values():
        bucket['hours'] = round(bucket['hours'], 2)

    return {
        'summaryStats': {
            'totalHours': round(total_hours, 2),
            'communityCount': len(communities),
            'latestEntryDate': latest.strftime(LATEST_DATE_FORMAT) if latest else None,
        },
        'entries': rendered,
        'communityBreakdown': breakdown,
    }


class DashboardAggregator:
    """
    Read-only dashboard queries.

    Args:
        session_factory: Callable returning a new SQLAlchemy session
        directory: DirectoryService for property names and memberships
    """

    def __init__(self, session_factory, directory):
        self._session_factory = session_factory
        self._directory = directory

    def _month_entries(self, period, *criteria):
        session = self._session_factory()
        try:
            return (
                session.query(PropertyTime)
                .filter(
                    PropertyTime.date.isnot(None),
                    extract('month', PropertyTime.date) == period.month,
                    extract('year', PropertyTime.date) == period.year,
                    *criteria
                )
                .order_by(PropertyTime.date.desc(), PropertyTime.id.desc())
                .all()
            )
        finally:
            session.close()

    def _aggregate(self, entries):
        names = self._directory.property_name_map({e.property_id for e in entries})
        return aggregate_entries(entries, names)

    def user_dashboard(self, email, period):
        """Entries the user submitted in the period."""
        entries = self._month_entries(period, PropertyTime.email_address == email)
        logger.info(f"Found {len(entries)} time entries for {email} ({period.month}/{period.year})")
        return self._aggregate(entries)

    def community_dashboard(self, email, period):
        """Entries by anyone for the communities the user belongs to."""
        property_ids = self._directory.accessible_property_ids(email)
        if not property_ids:
            return aggregate_entries([], {})
        entries = self._month_entries(period, PropertyTime.property_id.in_(sorted(property_ids)))
        logger.info(
            f"Found {len(entries)} time entries across {len(property_ids)} communities of {email}"
        )
        return self._aggregate(entries)

    def admin_dashboard(self, period):
        """Every entry in the period."""
        entries = self._month_entries(period)
        logger.info(f"Found {len(entries)} time entries for admin dashboard ({period.month}/{period.year})")
        return self._aggregate(entries)

    def recent_entries(self, email, limit=RECENT_ENTRIES_LIMIT):
        """
        The user's newest time entries, named from the user's own communities.

        Returns:
            list of entry dicts with property_name (None if not in the directory)
        """
        session = self._session_factory()
        try:
            entries = (
                session.query(PropertyTime)
                .filter(PropertyTime.email_address == email, PropertyTime.date.isnot(None))
                .order_by(PropertyTime.date.desc(), PropertyTime.id.desc())
                .limit(limit)
                .all()
            )
        finally:
            session.close()

        names = self._directory.property_name_map(self._directory.accessible_property_ids(email))
        rendered = []
        for entry in entries:
            item = entry.to_entry_dict()
            item['property_name'] = names.get(entry.property_id)
            rendered.append(item)
        return rendered
