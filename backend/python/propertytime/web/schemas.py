"""Validated request payloads passed from the routes to the services."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from flask_login import UserMixin

from propertytime.web.models.property_time import SubmissionType


@dataclass(frozen=True)
class Identity(UserMixin):
    """
    Caller identity for one request.

    Built from a verified ID token (strict auth) or from the email the
    client supplied (open auth). Never persisted.
    """
    subject_id: str
    email: str
    display_name: str
    picture_url: Optional[str] = None
    token_expiry: Optional[datetime] = None
    verified: bool = False

    def get_id(self):
        return self.subject_id


@dataclass(frozen=True)
class Period:
    month: int
    year: int


@dataclass(frozen=True)
class TimeEntry:
    community_id: str
    hours: float
    notes: Optional[str] = None


@dataclass(frozen=True)
class TimeSubmission:
    date: date
    entries: Tuple[TimeEntry, ...]


@dataclass(frozen=True)
class AssessmentEntry:
    community_id: str
    responses: Dict[int, float] = field(default_factory=dict)
    other_text: Optional[str] = None
    time_percentage: int = 0


@dataclass(frozen=True)
class AssessmentSubmission:
    period: Period
    submission_type: SubmissionType
    entries: Tuple[AssessmentEntry, ...]


@dataclass(frozen=True)
class SubmissionResult:
    count: int
    submission_date: datetime
