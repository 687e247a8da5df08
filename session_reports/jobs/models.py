"""Report job data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from session_reports.jobs.types import JobStatus, ReportStatus, RunDetailStatus

# Truncation limits for diagnostics persisted to the database / returned to triggers
ERROR_MESSAGE_MAX_CHARS = 500
DETAIL_ERROR_MAX_CHARS = 80


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReportJob:
    """A row of report_jobs: produce a report for one session."""

    job_id: UUID
    session_id: UUID
    status: JobStatus

    # Retry handling
    attempts: int = 0
    max_attempts: int = 5
    run_at: datetime = field(default_factory=_utcnow)

    # Lock info
    locked_at: Optional[datetime] = None
    locked_by: Optional[str] = None

    # Diagnostics only, never used for control flow
    last_error: Optional[str] = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class Report:
    """A row of ai_reports, 1:1 with a session."""

    session_id: UUID
    status: ReportStatus
    content_json: Optional[dict[str, Any]] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class SessionFacts:
    """Facts about one play session, as handed to the report generator."""

    session_id: UUID
    user_id: UUID
    device_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_sec: Optional[int] = None
    calories: Optional[float] = None
    battery_start: Optional[int] = None
    battery_end: Optional[int] = None
    metrics_json: Optional[dict[str, Any]] = None
    device_nickname: Optional[str] = None

    @property
    def battery_delta(self) -> Optional[int]:
        if self.battery_start is None or self.battery_end is None:
            return None
        return self.battery_end - self.battery_start


@dataclass
class ReportStats:
    duration_sec: float
    calories: Optional[float] = None
    battery_delta: Optional[float] = None


@dataclass
class ReportContent:
    """Structured report content returned by the generator."""

    summary_title: str
    summary: str
    highlights: list[str]
    stats: ReportStats
    recommendations: list[str]
    generated_at: str

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase document stored in ai_reports.content_json."""
        return {
            "summaryTitle": self.summary_title,
            "summary": self.summary,
            "highlights": list(self.highlights),
            "stats": {
                "durationSec": self.stats.duration_sec,
                "calories": self.stats.calories,
                "batteryDelta": self.stats.battery_delta,
            },
            "recommendations": list(self.recommendations),
            "generatedAt": self.generated_at,
        }


@dataclass
class RunDetail:
    """Outcome of one claimed job within a run."""

    job_id: UUID
    session_id: UUID
    status: RunDetailStatus
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "job_id": str(self.job_id),
            "session_id": str(self.session_id),
            "status": self.status.value,
        }
        if self.error:
            data["error"] = self.error[:DETAIL_ERROR_MAX_CHARS]
        return data


@dataclass
class RunResult:
    """Aggregate outcome of one Run Coordinator pass."""

    locked_by: str
    dry_run: bool = False
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    details: list[RunDetail] = field(default_factory=list)

    def record(self, detail: RunDetail) -> None:
        """Count a job outcome and append its detail."""
        self.processed += 1
        if detail.status == RunDetailStatus.DONE:
            self.succeeded += 1
        elif detail.status != RunDetailStatus.DRY_RUN:
            self.failed += 1
        self.details.append(detail)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API response."""
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "dry_run": self.dry_run,
            "locked_by": self.locked_by,
            "details": [d.to_dict() for d in self.details],
        }
