"""Report job type definitions."""

from enum import Enum


class JobStatus(str, Enum):
    """Report job lifecycle statuses (report_jobs.status)."""

    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    FAILED = "FAILED"


class ReportStatus(str, Enum):
    """AI report statuses (ai_reports.status)."""

    PENDING = "PENDING"
    READY = "READY"
    FAILED = "FAILED"


class RunDetailStatus(str, Enum):
    """Per-job outcome reported back to the trigger of a run."""

    DONE = "DONE"
    RETRY_SCHEDULED = "RETRY_SCHEDULED"
    FAILED = "FAILED"
    DRY_RUN = "DRY_RUN"
    ERROR = "ERROR"  # outcome could not be persisted; job left PROCESSING
