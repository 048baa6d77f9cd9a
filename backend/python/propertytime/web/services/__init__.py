"""Directory lookups, submission writing, duplicate checks and dashboards."""
from .directory import DirectoryService
from .submissions import SubmissionWriter
from .duplicates import DuplicateChecker
from .dashboard import DashboardAggregator, aggregate_entries
