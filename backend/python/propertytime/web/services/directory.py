"""
Read-only queries against the staff/property directory view.
"""

import logging
from sqlalchemy import func

from propertytime.web.models.staff_directory import RoleId, StaffDirectoryEntry

logger = logging.getLogger(__name__)


class DirectoryService:
    """
    Lookups of users, properties and roles.

    Every call opens its own session and closes it before returning.

    Args:
        session_factory: Callable returning a new SQLAlchemy session
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def role_ids_for(self, email):
        """All distinct role ids the directory lists for email, sorted."""
        session = self._session_factory()
        try:
            rows = (
                session.query(StaffDirectoryEntry.user_role_id)
                .filter(StaffDirectoryEntry.email_address == email)
                .distinct()
                .all()
            )
            return sorted(row.user_role_id for row in rows if row.user_role_id is not None)
        finally:
            session.close()

    def is_admin(self, email):
        """True when email has at least one role 1 row."""
        session = self._session_factory()
        try:
            count = (
                session.query(func.count())
                .select_from(StaffDirectoryEntry)
                .filter(
                    StaffDirectoryEntry.email_address == email,
                    StaffDirectoryEntry.user_role_id == int(RoleId.ADMIN),
                )
                .scalar()
            )
            return count > 0
        finally:
            session.close()

    def accessible_property_ids(self, email):
        """Set of property ids the user has any directory row for."""
        session = self._session_factory()
        try:
            rows = (
                session.query(StaffDirectoryEntry.property_id)
                .filter(StaffDirectoryEntry.email_address == email)
                .distinct()
                .all()
            )
            return {row.property_id for row in rows}
        finally:
            session.close()

    def communities_with_roles(self, email):
        """
        The user's (property, role) rows ordered by property name.

        Returns:
            list of dicts {ID, Name, DisplayName, userRoleId}
        """
        session = self._session_factory()
        try:
            rows = (
                session.query(
                    StaffDirectoryEntry.property_id,
                    StaffDirectoryEntry.property_name,
                    StaffDirectoryEntry.user_role_id,
                )
                .filter(StaffDirectoryEntry.email_address == email)
                .order_by(StaffDirectoryEntry.property_name, StaffDirectoryEntry.user_role_id)
                .all()
            )
            return [
                {
                    'ID': row.property_id,
                    'Name': row.property_name,
                    'DisplayName': row.property_name,
                    'userRoleId': row.user_role_id,
                }
                for row in rows
            ]
        finally:
            session.close()

    def all_communities(self):
        """Every distinct property, ordered by name, without role info."""
        session = self._session_factory()
        try:
            rows = (
                session.query(StaffDirectoryEntry.property_id, StaffDirectoryEntry.property_name)
                .distinct()
                .order_by(StaffDirectoryEntry.property_name)
                .all()
            )
            return [
                {'ID': row.property_id, 'Name': row.property_name, 'DisplayName': row.property_name}
                for row in rows
            ]
        finally:
            session.close()

    def user_communities(self, email):
        """Distinct properties for one user as [{id, name}]."""
        session = self._session_factory()
        try:
            rows = (
                session.query(StaffDirectoryEntry.property_id, StaffDirectoryEntry.property_name)
                .filter(StaffDirectoryEntry.email_address == email)
                .distinct()
                .order_by(StaffDirectoryEntry.property_name)
                .all()
            )
            return [{'id': row.property_id, 'name': row.property_name} for row in rows]
        finally:
            session.close()

    def all_users(self):
        """
        Users de-duplicated by email, each with the properties they appear on.

        The first row seen for a user supplies its name and role.
        """
        session = self._session_factory()
        try:
            rows = (
                session.query(StaffDirectoryEntry)
                .filter(
                    StaffDirectoryEntry.email_address.isnot(None),
                    StaffDirectoryEntry.email_address != '',
                )
                .order_by(
                    StaffDirectoryEntry.user_name,
                    StaffDirectoryEntry.email_address,
                    StaffDirectoryEntry.property_name,
                )
                .all()
            )
            users = {}
            for row in rows:
                user = users.setdefault(row.email_address, {
                    'user_name': row.user_name,
                    'email_address': row.email_address,
                    'user_role': row.user_role,
                    'user_role_id': row.user_role_id,
                    'properties': [],
                })
                if not any(p['property_id'] == row.property_id for p in user['properties']):
                    user['properties'].append({
                        'property_id': row.property_id,
                        'property_name': row.property_name,
                    })
            return list(users.values())
        finally:
            session.close()

    def find_user(self, email):
        """Directory user {email, name, id} or None."""
        session = self._session_factory()
        try:
            row = (
                session.query(
                    StaffDirectoryEntry.email_address,
                    StaffDirectoryEntry.user_name,
                    StaffDirectoryEntry.user_id,
                )
                .filter(StaffDirectoryEntry.email_address == email)
                .order_by(StaffDirectoryEntry.property_id)
                .first()
            )
            if row is None:
                return None
            return {'email': row.email_address, 'name': row.user_name, 'id': row.user_id}
        finally:
            session.close()

    def property_name_map(self, property_ids=None):
        """
        property_id -> property_name, optionally restricted to property_ids.
        """
        session = self._session_factory()
        try:
            query = session.query(
                StaffDirectoryEntry.property_id, StaffDirectoryEntry.property_name
            ).distinct()
            if property_ids is not None:
                if not property_ids:
                    return {}
                query = query.filter(StaffDirectoryEntry.property_id.in_(list(property_ids)))
            return {row.property_id: row.property_name for row in query.all()}
        finally:
            session.close()
