"""
Advisory duplicate check tests.
"""

import pytest

from propertytime.web.models import SubmissionType
from propertytime.web.schemas import AssessmentEntry, AssessmentSubmission, Period
from propertytime.web.services import DuplicateChecker, SubmissionWriter

MAY = Period(month=5, year=2025)


@pytest.fixture
def checker(session_factory):
    writer = SubmissionWriter(session_factory)
    writer.submit_assessment('manager@example.com', 'manager', AssessmentSubmission(
        period=MAY,
        submission_type=SubmissionType.MANAGER,
        entries=(
            AssessmentEntry('P2', {}, None, 50),
            AssessmentEntry('P1', {}, None, 30),
            AssessmentEntry('P999', {}, None, 20),
        ),
    ))
    writer.submit_assessment('accountant@example.com', 'accountant', AssessmentSubmission(
        period=MAY,
        submission_type=SubmissionType.ACCOUNTING,
        entries=(AssessmentEntry('P3', {}, None, 100),),
    ))
    return DuplicateChecker(session_factory)


class TestHasSubmission:

    def test_matching_tuple(self, checker):
        assert checker.has_submission('manager@example.com', MAY, SubmissionType.MANAGER, 'P1')

    @pytest.mark.parametrize('email, period, submission_type, community_id', [
        ('manager@example.com', MAY, SubmissionType.ACCOUNTING, 'P1'),
        ('manager@example.com', Period(month=6, year=2025), SubmissionType.MANAGER, 'P1'),
        ('manager@example.com', Period(month=5, year=2024), SubmissionType.MANAGER, 'P1'),
        ('manager@example.com', MAY, SubmissionType.MANAGER, 'P3'),
        ('accountant@example.com', MAY, SubmissionType.MANAGER, 'P1'),
    ])
    def test_other_tuples(self, checker, email, period, submission_type, community_id):
        assert not checker.has_submission(email, period, submission_type, community_id)


class TestSubmittedNames:

    def test_names_sorted_with_fallback(self, checker):
        names = checker.submitted_names(
            'manager@example.com', MAY, SubmissionType.MANAGER, ['P1', 'P2', 'P3', 'P999']
        )
        assert names == ['Alpha Towers', 'Bayview', 'Property P999']

    def test_restricted_to_requested_ids(self, checker):
        names = checker.submitted_names('manager@example.com', MAY, SubmissionType.MANAGER, ['P2'])
        assert names == ['Bayview']

    def test_empty_request(self, checker):
        assert checker.submitted_names('manager@example.com', MAY, SubmissionType.MANAGER, []) == []


class TestSubmittedIds:

    def test_ids_for_period_and_type(self, checker):
        ids = checker.submitted_ids('manager@example.com', MAY, SubmissionType.MANAGER)
        assert ids == ['P1', 'P2', 'P999']

    def test_none(self, checker):
        assert checker.submitted_ids('manager@example.com', MAY, SubmissionType.ACCOUNTING) == []
