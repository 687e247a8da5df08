"""Report job system package."""

from session_reports.jobs.models import Report, ReportJob, RunDetail, RunResult
from session_reports.jobs.retry import RetryDecision, RetryPolicy
from session_reports.jobs.types import JobStatus, ReportStatus, RunDetailStatus

__all__ = [
    "JobStatus",
    "ReportStatus",
    "RunDetailStatus",
    "ReportJob",
    "Report",
    "RunDetail",
    "RunResult",
    "RetryPolicy",
    "RetryDecision",
]
