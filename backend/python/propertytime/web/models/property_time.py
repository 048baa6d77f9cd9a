"""PropertyTime model: append-only time entries and assessment submissions."""

from enum import Enum
from sqlalchemy import Column, Integer, String, Date, DateTime, Float, Index

from propertytime.web.models.base import Base


class SubmissionType(str, Enum):
    MANAGER = 'Manager'
    ACCOUNTING = 'Accounting'


# Question columns per submission type, in response-index order
QUESTION_COLUMNS = {
    SubmissionType.MANAGER: ('cq1', 'cq2', 'cq3', 'cq4', 'cq5'),
    SubmissionType.ACCOUNTING: ('aq1', 'aq2', 'aq3', 'aq4', 'aq5'),
}
OTHER_TEXT_COLUMNS = {
    SubmissionType.MANAGER: 'cq5_other',
    SubmissionType.ACCOUNTING: 'aq5_other',
}


class PropertyTime(Base):
    """
    A single submitted row.

    Two kinds of rows share the table:
    - time entries: date, hours, notes
    - assessments: month, year, submission_type, one question group
      (cq* for Manager, aq* for Accounting) and time_percentage

    Rows are only ever inserted by the submission writer.
    """
    __tablename__ = 'PropertyTime'
    __table_args__ = (
        Index('ix_propertytime_period', 'email_address', 'year', 'month', 'submission_type'),
        Index('ix_propertytime_date', 'date'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(String(50), nullable=False)
    user_name = Column(String(255))
    email_address = Column(String(255), nullable=False)

    # Time entry columns
    date = Column(Date)
    hours = Column(Float)
    notes = Column(String(500))

    # Assessment columns
    month = Column(Integer)
    year = Column(Integer)
    submission_type = Column(String(50))
    cq1 = Column(Integer)
    cq2 = Column(Integer)
    cq3 = Column(Integer)
    cq4 = Column(Integer)
    cq5 = Column(Integer)
    cq5_other = Column(String(500))
    aq1 = Column(Integer)
    aq2 = Column(Integer)
    aq3 = Column(Integer)
    aq4 = Column(Integer)
    aq5 = Column(Integer)
    aq5_other = Column(String(500))
    time_percentage = Column(Integer)

    submission_date = Column(DateTime, nullable=False)

    def to_entry_dict(self):
        """Time entry fields as returned by the dashboard endpoints."""
        return {
            'property_id': self.property_id,
            'user_name': self.user_name,
            'email_address': self.email_address,
            'date': self.date.isoformat() if self.date else None,
            'hours': self.hours,
            'notes': self.notes,
        }

    def __repr__(self):
        kind = self.submission_type or 'time'
        return f"<PropertyTime {self.email_address} @ {self.property_id} ({kind})>"
