"""Internal report job endpoints.

Trigger and diagnostics surface for the report job queue. Every route is
guarded by the X-Cron-Secret header; these are called by schedulers and
operators, never by end users.
"""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from session_reports.config import Settings, get_settings
from session_reports.deps import require_cron_secret, require_db_pool
from session_reports.jobs.coordinator import MAX_JOBS_PER_RUN, build_coordinator
from session_reports.jobs.enqueue import enqueue_report_job
from session_reports.jobs.types import JobStatus
from session_reports.repositories.report_jobs import ReportJobRepository
from session_reports.repositories.reports import ReportRepository
from session_reports.schemas import (
    EnqueueResponse,
    ReportJobListResponse,
    ReportJobResponse,
    ReportResponse,
    RunDetailResponse,
    RunJobsResponse,
    SessionReportStateResponse,
)

router = APIRouter(prefix="/internal/jobs", tags=["internal-jobs"])
logger = structlog.get_logger(__name__)

# Global connection pool (set during app startup)
_db_pool = None


def set_db_pool(pool):
    """Set the database pool for internal job routes."""
    global _db_pool
    _db_pool = pool


def _get_db_pool():
    """Get the database pool, raising 503 if not available."""
    return require_db_pool(_db_pool, "Database")


@router.post("/run", response_model=RunJobsResponse)
async def run_report_jobs(
    limit: int = Query(
        MAX_JOBS_PER_RUN,
        ge=1,
        description=f"Jobs to process; values above {MAX_JOBS_PER_RUN} are clamped",
    ),
    dry_run: bool = Query(False, description="Claim and release without executing"),
    settings: Settings = Depends(get_settings),
    _: bool = Depends(require_cron_secret),
) -> RunJobsResponse:
    """
    Run one pass of the report job queue.

    Claims up to `limit` due jobs and generates their reports sequentially.
    Safe to call concurrently: overlapping runs receive disjoint batches.

    Returns:
        200: Run summary with per-job details
        401/403: Missing or invalid cron secret
        503: Database not available
    """
    pool = _get_db_pool()
    coordinator = build_coordinator(pool, settings)

    result = await coordinator.run(limit, dry_run=dry_run, worker_id="http")

    return RunJobsResponse(
        processed=result.processed,
        succeeded=result.succeeded,
        failed=result.failed,
        dry_run=result.dry_run,
        locked_by=result.locked_by,
        details=[RunDetailResponse(**d.to_dict()) for d in result.details],
    )


@router.get("", response_model=ReportJobListResponse)
async def list_report_jobs(
    job_status: Optional[JobStatus] = Query(
        None, alias="status", description="Filter by job status"
    ),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: bool = Depends(require_cron_secret),
) -> ReportJobListResponse:
    """List report jobs newest first."""
    pool = _get_db_pool()
    jobs, total = await ReportJobRepository(pool).list_jobs(
        status=job_status, limit=limit, offset=offset
    )
    return ReportJobListResponse(
        items=[ReportJobResponse.from_job(j) for j in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/sessions/{session_id}", response_model=SessionReportStateResponse)
async def get_session_report_state(
    session_id: UUID,
    _: bool = Depends(require_cron_secret),
) -> SessionReportStateResponse:
    """Show the job and report rows for one session."""
    pool = _get_db_pool()
    job = await ReportJobRepository(pool).get_by_session(session_id)
    report = await ReportRepository(pool).get(session_id)

    if job is None and report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No report job for session {session_id}",
        )

    return SessionReportStateResponse(
        session_id=session_id,
        job=ReportJobResponse.from_job(job) if job else None,
        report=ReportResponse.from_report(report) if report else None,
    )


@router.post("/sessions/{session_id}/enqueue", response_model=EnqueueResponse)
async def enqueue_session_report(
    session_id: UUID,
    settings: Settings = Depends(get_settings),
    _: bool = Depends(require_cron_secret),
) -> EnqueueResponse:
    """
    Queue (or re-queue) report generation for a session.

    Idempotent. A FAILED job is reset with a fresh attempt budget; a
    PROCESSING or DONE job is left alone and `queued` is false.
    """
    pool = _get_db_pool()
    job = await enqueue_report_job(
        pool, session_id, max_attempts=settings.report_job_max_attempts
    )
    logger.info(
        "report_enqueue_requested",
        session_id=str(session_id),
        queued=job is not None,
    )
    return EnqueueResponse(
        session_id=session_id,
        queued=job is not None,
        job=ReportJobResponse.from_job(job) if job else None,
    )
