"""Database models for the time submission app."""
from propertytime.web.models.base import Base
from propertytime.web.models.property_time import PropertyTime, SubmissionType
from propertytime.web.models.staff_directory import StaffDirectoryEntry, RoleId


def create_tables(engine, include_views=False):
    """
    Create application tables.

    The directory is a view owned upstream; it is only created as a plain
    table when include_views is set (local SQLite demos and tests).
    """
    tables = [
        table for table in Base.metadata.sorted_tables
        if include_views or not table.info.get('is_view')
    ]
    Base.metadata.create_all(engine, tables=tables)
    return [table.name for table in tables]
