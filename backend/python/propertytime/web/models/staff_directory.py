"""Read-only mapping of the upstream staff/property directory view."""

from enum import IntEnum
from sqlalchemy import Column, Integer, String

from propertytime.web.models.base import Base


class RoleId(IntEnum):
    """Directory role ids."""
    ADMIN = 1
    ACCOUNTANT = 2
    MANAGER = 3


# Roles allowed to submit time and assessments
STAFF_ROLES = (RoleId.ACCOUNTANT, RoleId.MANAGER)


class StaffDirectoryEntry(Base):
    """
    One row per (user, property, role) from vw_PropertyStaffDirectory.

    The view is maintained upstream. This service only reads it and never
    creates it in a production database (see init_db).
    """
    __tablename__ = 'vw_PropertyStaffDirectory'
    __table_args__ = {'info': {'is_view': True}}

    property_id = Column(String(50), primary_key=True)
    email_address = Column(String(255), primary_key=True)
    user_role_id = Column(Integer, primary_key=True)
    property_name = Column(String(255))
    user_name = Column(String(255))
    user_id = Column(String(50))
    user_role = Column(String(50))

    def to_dict(self):
        return {
            'property_id': self.property_id,
            'property_name': self.property_name,
            'email_address': self.email_address,
            'user_name': self.user_name,
            'user_id': self.user_id,
            'user_role': self.user_role,
            'user_role_id': self.user_role_id,
        }

    def __repr__(self):
        return f"<StaffDirectoryEntry {self.email_address} @ {self.property_id} ({self.user_role_id})>"
