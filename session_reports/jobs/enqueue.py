"""Enqueue boundary used by session-completion logic."""

from typing import Optional
from uuid import UUID

import structlog

from session_reports.jobs.models import ReportJob
from session_reports.repositories.report_jobs import ReportJobRepository
from session_reports.repositories.reports import ReportRepository

logger = structlog.get_logger(__name__)


async def enqueue_report_job(
    pool,
    session_id: UUID,
    *,
    max_attempts: int = 5,
) -> Optional[ReportJob]:
    """Queue report generation for a completed session.

    Idempotent: the PENDING report is created if missing, then the job is
    upserted (insert, or reset when QUEUED/FAILED; PROCESSING/DONE are left
    alone). Both happen in one transaction so a job never exists without its
    report.

    Returns:
        The queued job, or None when the call was a no-op
    """
    jobs = ReportJobRepository(pool)
    reports = ReportRepository(pool)

    async with pool.acquire() as conn:
        async with conn.transaction():
            await reports.ensure_pending(conn, session_id)
            job = await jobs.enqueue(session_id, max_attempts, conn=conn)
            if job is not None:
                # A previously failed session is being retried from scratch
                if await reports.reset_failed(conn, session_id):
                    logger.info(
                        "report_reset_to_pending",
                        session_id=str(session_id),
                        job_id=str(job.job_id),
                    )
    return job
