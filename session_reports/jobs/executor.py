"""Job executor - drives one claimed report job to DONE, a retry or FAILED."""

import asyncio
import time
from typing import Optional

import structlog

from session_reports.jobs.errors import (
    ClaimLostError,
    JobExecutionError,
    ReportGenerationTimeout,
    ReportNotFoundError,
    SessionNotFoundError,
)
from session_reports.jobs.models import ReportContent, ReportJob, RunDetail, SessionFacts
from session_reports.jobs.retry import RetryPolicy
from session_reports.jobs.types import ReportStatus, RunDetailStatus
from session_reports.repositories.report_jobs import ReportJobRepository
from session_reports.repositories.reports import ReportRepository
from session_reports.repositories.sessions import SessionRepository
from session_reports.routers.metrics import observe_generation
from session_reports.services.report_generator import ReportGenerator

logger = structlog.get_logger(__name__)

DEFAULT_GENERATION_TIMEOUT_S = 90.0


def describe_error(error: BaseException) -> str:
    """Human-readable message for last_error / failure_reason.

    Postgres text columns reject NUL bytes, and provider error bodies are
    embedded verbatim, so they are stripped here.
    """
    message = str(error).replace("\x00", "").strip()
    return message or error.__class__.__name__


class JobExecutor:
    """Executes exactly one claimed job per call.

    Steps:
    1. Report already READY: stale/duplicate job, mark DONE without generating.
    2. Load session facts (missing session is an ordinary failure).
    3. Call the generator, bounded by `generation_timeout_s`.
    4. Write report READY and job DONE in one transaction.
    5. Any failure goes through the retry policy.
    """

    def __init__(
        self,
        pool,
        generator: ReportGenerator,
        retry_policy: Optional[RetryPolicy] = None,
        generation_timeout_s: float = DEFAULT_GENERATION_TIMEOUT_S,
    ):
        self._pool = pool
        self._generator = generator
        self._retry_policy = retry_policy or RetryPolicy()
        self._generation_timeout_s = generation_timeout_s
        self._jobs = ReportJobRepository(pool)
        self._reports = ReportRepository(pool)
        self._sessions = SessionRepository(pool)

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def execute(self, job: ReportJob, locked_by: str) -> RunDetail:
        """Run one attempt of `job`, held by `locked_by`.

        Raises:
            ClaimLostError: The job was no longer held by this run
            Exception: Persisting the failure outcome itself failed
        """
        log = logger.bind(
            job_id=str(job.job_id),
            session_id=str(job.session_id),
            attempts=job.attempts,
        )
        log.info("report_job_executing")

        try:
            report_status = await self._reports.get_status(job.session_id)
            if report_status is None:
                raise ReportNotFoundError(job.session_id)

            if report_status == ReportStatus.READY:
                await self._mark_done(job, locked_by)
                log.info("report_job_already_ready")
                return RunDetail(job.job_id, job.session_id, RunDetailStatus.DONE)

            facts = await self._sessions.get_facts(job.session_id)
            if facts is None:
                raise SessionNotFoundError(job.session_id)

            content = await self._generate(facts)
            await self._complete(job, locked_by, content)
            log.info("report_job_done")
            return RunDetail(job.job_id, job.session_id, RunDetailStatus.DONE)

        except ClaimLostError:
            raise
        except Exception as e:
            error = describe_error(e)
            log.warning(
                "report_job_attempt_failed",
                error=error,
                error_type=e.__class__.__name__,
            )
            return await self._handle_failure(job, locked_by, error)

    async def _generate(self, facts: SessionFacts) -> ReportContent:
        """Invoke the generator once, bounded by the configured timeout."""
        start = time.perf_counter()
        outcome = "error"
        try:
            content = await asyncio.wait_for(
                self._generator.generate(facts),
                timeout=self._generation_timeout_s,
            )
            outcome = "ok"
            return content
        except asyncio.TimeoutError as e:
            outcome = "timeout"
            raise ReportGenerationTimeout(self._generation_timeout_s) from e
        finally:
            observe_generation(outcome, time.perf_counter() - start)

    async def _mark_done(self, job: ReportJob, locked_by: str) -> None:
        async with self._pool.acquire() as conn:
            if not await self._jobs.mark_done(conn, job.job_id, locked_by):
                raise ClaimLostError(job.job_id, locked_by)

    async def _complete(
        self, job: ReportJob, locked_by: str, content: ReportContent
    ) -> None:
        """Report READY and job DONE, visible together or not at all."""
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                if not await self._jobs.mark_done(conn, job.job_id, locked_by):
                    raise ClaimLostError(job.job_id, locked_by)
                if not await self._reports.mark_ready(
                    conn, job.session_id, content.to_json_dict()
                ):
                    # Rolls back the DONE above; handled as a failed attempt
                    raise JobExecutionError("ai_reports row is not PENDING")

    async def _handle_failure(
        self, job: ReportJob, locked_by: str, error: str
    ) -> RunDetail:
        """Apply the retry policy to a failed attempt."""
        decision = self._retry_policy.decide(job.attempts, job.max_attempts)
        log = logger.bind(
            job_id=str(job.job_id),
            session_id=str(job.session_id),
            attempts=decision.attempts,
            max_attempts=job.max_attempts,
        )

        async with self._pool.acquire() as conn:
            async with conn.transaction():
                if decision.terminal:
                    if not await self._jobs.mark_failed(
                        conn, job.job_id, locked_by, decision.attempts, error
                    ):
                        raise ClaimLostError(job.job_id, locked_by)
                    if not await self._reports.mark_failed(
                        conn, job.session_id, error
                    ):
                        log.warning("report_not_pending_on_job_failure")
                else:
                    if not await self._jobs.schedule_retry(
                        conn,
                        job.job_id,
                        locked_by,
                        decision.attempts,
                        decision.backoff_seconds,
                        error,
                    ):
                        raise ClaimLostError(job.job_id, locked_by)

        if decision.terminal:
            log.warning("report_job_failed_max_attempts", error=error)
            status = RunDetailStatus.FAILED
        else:
            log.warning(
                "report_job_retry_scheduled",
                backoff_seconds=decision.backoff_seconds,
            )
            status = RunDetailStatus.RETRY_SCHEDULED

        return RunDetail(job.job_id, job.session_id, status, error=error)
