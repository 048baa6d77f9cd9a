"""
Submission writer tests: row mapping, shared timestamps and all-or-nothing writes.
"""

from datetime import date, datetime

import pytest
import pytz
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from propertytime.web.errors import StoreError
from propertytime.web.models import PropertyTime, SubmissionType
from propertytime.web.schemas import (
    AssessmentEntry,
    AssessmentSubmission,
    Period,
    TimeEntry,
    TimeSubmission,
)
from propertytime.web.services import SubmissionWriter
from propertytime.web.services.submissions import assessment_columns

FIXED_NOW = datetime(2025, 5, 31, 17, 30, tzinfo=pytz.UTC)


@pytest.fixture
def writer(session_factory):
    return SubmissionWriter(session_factory, clock=lambda: FIXED_NOW)


def _rows(session_factory):
    session = session_factory()
    try:
        return session.query(PropertyTime).order_by(PropertyTime.id).all()
    finally:
        session.close()


def _assessment(submission_type, *entries):
    return AssessmentSubmission(
        period=Period(month=5, year=2025),
        submission_type=submission_type,
        entries=tuple(entries),
    )


class TestAssessmentColumns:

    def test_manager_group(self):
        columns = assessment_columns(SubmissionType.MANAGER, {0: 0, 1: 4, 4: 5}, 'extra')

        assert columns['cq1'] == 0
        assert columns['cq2'] == 4
        assert columns['cq3'] is None
        assert columns['cq5'] == 5
        assert columns['cq5_other'] == 'extra'
        assert all(columns[c] is None for c in ('aq1', 'aq2', 'aq3', 'aq4', 'aq5', 'aq5_other'))

    def test_accounting_group(self):
        columns = assessment_columns(SubmissionType.ACCOUNTING, {3: 2}, None)

        assert columns['aq4'] == 2
        assert columns['cq4'] is None

    def test_unstored_answers_ignored(self):
        columns = assessment_columns(SubmissionType.MANAGER, {5: 3, 6: 40.0}, None)
        assert all(columns[f'cq{i}'] is None for i in range(1, 6))


class TestSubmitTime:

    def test_writes_one_row_per_entry(self, writer, session_factory):
        submission = TimeSubmission(
            date=date(2024, 3, 15),
            entries=(TimeEntry('P1', 2.5, 'Board prep'), TimeEntry('P2', 3.0)),
        )

        result = writer.submit_time('manager@example.com', 'manager', submission)

        assert result.count == 2
        assert result.submission_date == FIXED_NOW
        rows = _rows(session_factory)
        assert [(r.property_id, r.hours, r.notes) for r in rows] == [
            ('P1', 2.5, 'Board prep'),
            ('P2', 3.0, None),
        ]
        assert all(r.date == date(2024, 3, 15) for r in rows)
        assert all(r.submission_date == FIXED_NOW.replace(tzinfo=None) for r in rows)
        assert all(r.submission_type is None for r in rows)


class TestSubmitAssessment:

    def test_manager_assessment(self, writer, session_factory):
        submission = _assessment(
            SubmissionType.MANAGER,
            AssessmentEntry('P1', {0: 0, 1: 1, 2: 2, 3: 3, 4: 4}, 'Pool repairs', 70),
            AssessmentEntry('P2', {}, None, 30),
        )

        result = writer.submit_assessment('manager@example.com', 'Mary Manager', submission)

        assert result.count == 2
        first, second = _rows(session_factory)
        assert (first.month, first.year, first.submission_type) == (5, 2025, 'Manager')
        assert (first.cq1, first.cq2, first.cq5) == (0, 1, 4)
        assert first.cq5_other == 'Pool repairs'
        assert first.aq1 is None
        assert first.time_percentage == 70
        assert first.user_name == 'Mary Manager'
        assert first.date is None
        assert second.cq1 is None
        assert second.time_percentage == 30
        assert first.submission_date == second.submission_date

    def test_accounting_assessment(self, writer, session_factory):
        submission = _assessment(
            SubmissionType.ACCOUNTING,
            AssessmentEntry('P3', {0: 4}, 'Audit', 100),
        )

        writer.submit_assessment('accountant@example.com', 'Alan Accountant', submission)

        (row,) = _rows(session_factory)
        assert row.submission_type == 'Accounting'
        assert (row.aq1, row.aq5_other) == (4, 'Audit')
        assert row.cq1 is None

    def test_duplicates_are_not_blocked(self, writer, session_factory):
        submission = _assessment(SubmissionType.MANAGER, AssessmentEntry('P1', {}, None, 100))

        writer.submit_assessment('manager@example.com', 'manager', submission)
        writer.submit_assessment('manager@example.com', 'manager', submission)

        assert len(_rows(session_factory)) == 2


class TestAtomicity:
    """A failing row rolls back the whole submission."""

    def test_failure_writes_nothing(self, writer, session_factory):
        def reject_bad_rows(mapper, connection, target):
            if target.property_id == 'BAD':
                raise SQLAlchemyError('simulated insert failure')

        submission = _assessment(
            SubmissionType.MANAGER,
            AssessmentEntry('P1', {}, None, 50),
            AssessmentEntry('BAD', {}, None, 25),
            AssessmentEntry('P2', {}, None, 25),
        )

        event.listen(PropertyTime, 'before_insert', reject_bad_rows)
        try:
            with pytest.raises(StoreError) as exc:
                writer.submit_assessment('manager@example.com', 'manager', submission)
        finally:
            event.remove(PropertyTime, 'before_insert', reject_bad_rows)

        assert exc.value.message == 'Failed to save submission'
        assert 'simulated insert failure' in exc.value.debug
        assert _rows(session_factory) == []

    def test_writer_usable_after_failure(self, writer, session_factory):
        def reject_all(mapper, connection, target):
            raise SQLAlchemyError('down')

        submission = TimeSubmission(date=date(2024, 3, 15), entries=(TimeEntry('P1', 1.0),))

        event.listen(PropertyTime, 'before_insert', reject_all)
        try:
            with pytest.raises(StoreError):
                writer.submit_time('manager@example.com', 'manager', submission)
        finally:
            event.remove(PropertyTime, 'before_insert', reject_all)

        assert writer.submit_time('manager@example.com', 'manager', submission).count == 1
