"""Run Coordinator - one claim-and-execute pass over the report job queue.

A run is a pure function of (limit, dry_run): no timers, no in-process
locking. Cron, HTTP and the local loop all call the same entry point and may
do so concurrently; mutual exclusion comes entirely from the claim protocol.
"""

from typing import Optional
from uuid import uuid4

import structlog

from session_reports.config import Settings
from session_reports.jobs.errors import ClaimLostError
from session_reports.jobs.executor import JobExecutor, describe_error
from session_reports.jobs.models import RunDetail, RunResult
from session_reports.jobs.retry import RetryPolicy
from session_reports.jobs.types import RunDetailStatus
from session_reports.repositories.report_jobs import ReportJobRepository
from session_reports.routers.metrics import record_job_outcome, record_reclaimed, record_run
from session_reports.services.report_generator import (
    ReportGenerator,
    build_report_generator,
)

logger = structlog.get_logger(__name__)

# Hard ceiling on jobs per run, regardless of what the trigger asks for
MAX_JOBS_PER_RUN = 10


def clamp_limit(limit: int) -> int:
    """Bound a caller-supplied batch size to [1, MAX_JOBS_PER_RUN]."""
    if limit < 1:
        raise ValueError("limit must be a positive integer")
    return min(limit, MAX_JOBS_PER_RUN)


class RunCoordinator:
    """Claims a batch of report jobs and executes them sequentially."""

    def __init__(
        self,
        pool,
        executor: JobExecutor,
        stale_timeout_minutes: Optional[int] = None,
    ):
        self._pool = pool
        self._executor = executor
        self._jobs = ReportJobRepository(pool)
        self._stale_timeout_minutes = stale_timeout_minutes

    async def run(
        self,
        limit: int,
        dry_run: bool = False,
        worker_id: str = "anonymous",
    ) -> RunResult:
        """Process up to `limit` due jobs.

        Args:
            limit: Requested batch size, clamped to MAX_JOBS_PER_RUN
            dry_run: Claim and immediately release without executing anything
            worker_id: Identity of the trigger; a per-run suffix is appended

        Returns:
            RunResult with counts and per-job details

        Raises:
            ValueError: limit < 1
            Exception: Claim failures (e.g. database unavailable) abort the run
        """
        limit = clamp_limit(limit)
        locked_by = f"{worker_id}#{uuid4().hex[:8]}"
        result = RunResult(locked_by=locked_by, dry_run=dry_run)
        log = logger.bind(locked_by=locked_by, dry_run=dry_run)

        if self._stale_timeout_minutes and not dry_run:
            record_reclaimed(await self._jobs.reclaim_stale(self._stale_timeout_minutes))

        jobs = await self._jobs.claim(limit, locked_by)
        record_run(dry_run, len(jobs))

        if not jobs:
            return result

        if dry_run:
            for job in jobs:
                result.record(
                    RunDetail(job.job_id, job.session_id, RunDetailStatus.DRY_RUN)
                )
            await self._jobs.release([j.job_id for j in jobs], locked_by)
            log.info("report_run_dry_run_released", claimed=len(jobs))
            return result

        for job in jobs:
            try:
                detail = await self._executor.execute(job, locked_by)
            except ClaimLostError as e:
                logger.warning(
                    "report_job_claim_lost", job_id=str(job.job_id), error=str(e)
                )
                detail = RunDetail(
                    job.job_id, job.session_id, RunDetailStatus.ERROR, error=str(e)
                )
            except Exception as e:
                # Outcome could not be persisted; job stays PROCESSING
                logger.exception(
                    "report_job_outcome_not_persisted",
                    job_id=str(job.job_id),
                    session_id=str(job.session_id),
                )
                detail = RunDetail(
                    job.job_id,
                    job.session_id,
                    RunDetailStatus.ERROR,
                    error=describe_error(e),
                )
            record_job_outcome(detail.status.value)
            result.record(detail)

        log.info(
            "report_run_finished",
            processed=result.processed,
            succeeded=result.succeeded,
            failed=result.failed,
        )
        return result


def build_coordinator(
    pool,
    settings: Settings,
    generator: Optional[ReportGenerator] = None,
) -> RunCoordinator:
    """Wire a RunCoordinator from explicit settings."""
    executor = JobExecutor(
        pool,
        generator or build_report_generator(settings),
        retry_policy=RetryPolicy(
            base_seconds=settings.report_job_backoff_base_s,
            cap_seconds=settings.report_job_backoff_cap_s,
        ),
        generation_timeout_s=settings.report_generation_timeout_s,
    )
    return RunCoordinator(
        pool,
        executor,
        stale_timeout_minutes=settings.job_stale_timeout_minutes,
    )
