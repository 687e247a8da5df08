"""Pydantic schemas for API responses."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from session_reports.jobs.models import Report, ReportJob
from session_reports.jobs.types import JobStatus, ReportStatus, RunDetailStatus


class RunDetailResponse(BaseModel):
    """Outcome of one job in a run."""

    job_id: UUID
    session_id: UUID
    status: RunDetailStatus
    error: Optional[str] = Field(None, description="Truncated failure message")


class RunJobsResponse(BaseModel):
    """Response for POST /internal/jobs/run."""

    processed: int = Field(..., description="Jobs claimed and handled in this run")
    succeeded: int = Field(..., description="Jobs that reached DONE")
    failed: int = Field(..., description="Jobs whose attempt did not succeed")
    dry_run: bool = Field(..., description="True when jobs were only claimed and released")
    locked_by: str = Field(..., description="Lock identity used for this run")
    details: list[RunDetailResponse] = Field(default_factory=list)


class ReportJobResponse(BaseModel):
    """A report_jobs row."""

    job_id: UUID
    session_id: UUID
    status: JobStatus
    attempts: int
    max_attempts: int
    run_at: datetime
    locked_at: Optional[datetime] = None
    locked_by: Optional[str] = None
    last_error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_job(cls, job: ReportJob) -> "ReportJobResponse":
        return cls(
            job_id=job.job_id,
            session_id=job.session_id,
            status=job.status,
            attempts=job.attempts,
            max_attempts=job.max_attempts,
            run_at=job.run_at,
            locked_at=job.locked_at,
            locked_by=job.locked_by,
            last_error=job.last_error,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class ReportResponse(BaseModel):
    """An ai_reports row."""

    session_id: UUID
    status: ReportStatus
    content_json: Optional[dict[str, Any]] = None
    failure_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_report(cls, report: Report) -> "ReportResponse":
        return cls(
            session_id=report.session_id,
            status=report.status,
            content_json=report.content_json,
            failure_reason=report.failure_reason,
            updated_at=report.updated_at,
        )


class ReportJobListResponse(BaseModel):
    """Paginated job listing."""

    items: list[ReportJobResponse]
    total: int
    limit: int
    offset: int


class SessionReportStateResponse(BaseModel):
    """Job and report state for one session."""

    session_id: UUID
    job: Optional[ReportJobResponse] = None
    report: Optional[ReportResponse] = None


class EnqueueResponse(BaseModel):
    """Response for an enqueue request."""

    session_id: UUID
    queued: bool = Field(..., description="False when the job was PROCESSING or DONE")
    job: Optional[ReportJobResponse] = None


class DependencyHealth(BaseModel):
    """Health status for a dependency."""

    status: str = Field(..., description="Dependency status (ok/error)")
    latency_ms: Optional[float] = Field(None, description="Response latency in ms")
    error: Optional[str] = Field(None, description="Error message if unhealthy")


class HealthResponse(BaseModel):
    """Response for health endpoint."""

    status: str = Field(..., description="Overall service status")
    database: DependencyHealth = Field(..., description="PostgreSQL health")
    generator_configured: bool = Field(
        ..., description="True when an OpenAI API key is configured"
    )
    version: str = Field(..., description="Service version")
