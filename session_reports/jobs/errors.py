"""Errors raised while executing a report job.

Every subclass flows into the same retry path; the classes exist so logs and
last_error messages say what went wrong, not to change retry behaviour.
"""

from typing import Optional
from uuid import UUID


class JobExecutionError(Exception):
    """Base error for a failed report job attempt."""


class ReportNotFoundError(JobExecutionError):
    """The ai_reports row for the job's session does not exist."""

    def __init__(self, session_id: UUID):
        self.session_id = session_id
        super().__init__("ai_reports row not found")


class SessionNotFoundError(JobExecutionError):
    """The play session referenced by the job does not exist."""

    def __init__(self, session_id: UUID):
        self.session_id = session_id
        super().__init__("session not found")


class ReportGenerationError(JobExecutionError):
    """The generator answered, but not with usable report content."""


class ReportGenerationTimeout(ReportGenerationError):
    """The generator did not answer within the configured bound."""

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"report generation timed out after {timeout_seconds}s")


class ClaimLostError(Exception):
    """The job is no longer PROCESSING under this run's lock.

    Not an execution failure: whoever holds the job now owns its outcome.
    """

    def __init__(self, job_id: UUID, locked_by: str):
        self.job_id = job_id
        self.locked_by = locked_by
        super().__init__(f"job {job_id} is no longer held by {locked_by}")
