"""Repository for report job queue operations.

Every status change is a conditional UPDATE so concurrent writers can never
resurrect a terminal job or steal a job claimed by another run.
"""

from typing import Any, Optional
from uuid import UUID

import structlog

from session_reports.jobs.models import ERROR_MESSAGE_MAX_CHARS, ReportJob
from session_reports.jobs.types import JobStatus

logger = structlog.get_logger(__name__)


class ReportJobRepository:
    """Repository for report_jobs operations."""

    def __init__(self, pool):
        self._pool = pool

    async def enqueue(
        self,
        session_id: UUID,
        max_attempts: int,
        conn=None,
    ) -> Optional[ReportJob]:
        """Insert or reset the job for a session in a single upsert.

        - No job yet: insert QUEUED.
        - QUEUED/FAILED: reset to QUEUED with run_at = now (FAILED also gets
          a fresh attempt budget).
        - PROCESSING/DONE: untouched; returns None.
        """
        query = """
            INSERT INTO report_jobs (session_id, status, run_at, max_attempts)
            VALUES ($1, 'QUEUED', now(), $2)
            ON CONFLICT (session_id) DO UPDATE SET
                status = 'QUEUED',
                run_at = now(),
                attempts = CASE WHEN report_jobs.status = 'FAILED'
                                THEN 0 ELSE report_jobs.attempts END,
                last_error = CASE WHEN report_jobs.status = 'FAILED'
                                  THEN NULL ELSE report_jobs.last_error END,
                locked_at = NULL,
                locked_by = NULL,
                updated_at = now()
            WHERE report_jobs.status IN ('QUEUED', 'FAILED')
            RETURNING *
        """
        if conn is not None:
            row = await conn.fetchrow(query, session_id, max_attempts)
        else:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(query, session_id, max_attempts)

        if row is None:
            logger.info("report_job_enqueue_noop", session_id=str(session_id))
            return None

        logger.info(
            "report_job_enqueued",
            job_id=str(row["job_id"]),
            session_id=str(session_id),
        )
        return self._row_to_job(row)

    async def claim(self, limit: int, locked_by: str) -> list[ReportJob]:
        """Claim up to `limit` due QUEUED jobs using FOR UPDATE SKIP LOCKED.

        Rows locked by a concurrent claim are skipped rather than waited on, so
        parallel callers walk away with disjoint batches. Once committed the
        row locks are gone but the jobs stay claimed through their status.

        Returns jobs oldest-created first; an empty list when nothing is due.
        """
        query = """
            WITH claimable AS (
                SELECT job_id FROM report_jobs
                WHERE status = 'QUEUED' AND run_at <= now()
                ORDER BY created_at ASC
                LIMIT $1
                FOR UPDATE SKIP LOCKED
            )
            UPDATE report_jobs j SET
                status = 'PROCESSING',
                locked_at = now(),
                locked_by = $2,
                updated_at = now()
            FROM claimable
            WHERE j.job_id = claimable.job_id
            RETURNING j.*
        """
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                rows = await conn.fetch(query, limit, locked_by)

        if not rows:
            logger.info("report_jobs_none_queued", locked_by=locked_by)
            return []

        # UPDATE ... RETURNING does not preserve the CTE ordering
        jobs = sorted((self._row_to_job(r) for r in rows), key=lambda j: j.created_at)
        logger.info(
            "report_jobs_claimed",
            count=len(jobs),
            job_ids=[str(j.job_id) for j in jobs],
            locked_by=locked_by,
        )
        return jobs

    async def mark_done(self, conn, job_id: UUID, locked_by: str) -> bool:
        """PROCESSING -> DONE for a job held by `locked_by`."""
        query = """
            UPDATE report_jobs SET
                status = 'DONE',
                updated_at = now()
            WHERE job_id = $1 AND status = 'PROCESSING' AND locked_by = $2
            RETURNING job_id
        """
        return await conn.fetchval(query, job_id, locked_by) is not None

    async def schedule_retry(
        self,
        conn,
        job_id: UUID,
        locked_by: str,
        attempts: int,
        backoff_seconds: int,
        error: str,
    ) -> bool:
        """PROCESSING -> QUEUED with run_at pushed out by the backoff delay."""
        query = """
            UPDATE report_jobs SET
                status = 'QUEUED',
                attempts = $3,
                run_at = now() + ($4::int * interval '1 second'),
                last_error = $5,
                locked_at = NULL,
                locked_by = NULL,
                updated_at = now()
            WHERE job_id = $1 AND status = 'PROCESSING' AND locked_by = $2
            RETURNING job_id
        """
        row_id = await conn.fetchval(
            query,
            job_id,
            locked_by,
            attempts,
            backoff_seconds,
            error[:ERROR_MESSAGE_MAX_CHARS],
        )
        return row_id is not None

    async def mark_failed(
        self,
        conn,
        job_id: UUID,
        locked_by: str,
        attempts: int,
        error: str,
    ) -> bool:
        """PROCESSING -> FAILED (terminal)."""
        query = """
            UPDATE report_jobs SET
                status = 'FAILED',
                attempts = $3,
                last_error = $4,
                updated_at = now()
            WHERE job_id = $1 AND status = 'PROCESSING' AND locked_by = $2
            RETURNING job_id
        """
        row_id = await conn.fetchval(
            query, job_id, locked_by, attempts, error[:ERROR_MESSAGE_MAX_CHARS]
        )
        return row_id is not None

    async def release(self, job_ids: list[UUID], locked_by: str) -> int:
        """Hand claimed jobs back to the queue untouched (dry runs).

        attempts and run_at are left as they were.
        """
        if not job_ids:
            return 0
        query = """
            UPDATE report_jobs SET
                status = 'QUEUED',
                locked_at = NULL,
                locked_by = NULL,
                updated_at = now()
            WHERE job_id = ANY($1::uuid[])
              AND status = 'PROCESSING'
              AND locked_by = $2
            RETURNING job_id
        """
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                rows = await conn.fetch(query, job_ids, locked_by)
        logger.info("report_jobs_released", count=len(rows), locked_by=locked_by)
        return len(rows)

    async def reclaim_stale(self, stale_minutes: int) -> int:
        """Return PROCESSING jobs whose claim is older than `stale_minutes` to the queue.

        Jobs that already used their whole attempt budget are left for manual
        inspection.
        """
        query = """
            UPDATE report_jobs SET
                status = 'QUEUED',
                locked_at = NULL,
                locked_by = NULL,
                updated_at = now()
            WHERE status = 'PROCESSING'
              AND locked_at < now() - make_interval(mins => $1)
              AND attempts < max_attempts
            RETURNING job_id
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, stale_minutes)
        count = len(rows)
        if count > 0:
            logger.warning(
                "stale_report_jobs_reclaimed",
                count=count,
                job_ids=[str(r["job_id"]) for r in rows],
            )
        return count

    async def get_by_session(self, session_id: UUID) -> Optional[ReportJob]:
        """Get the job for a session."""
        query = "SELECT * FROM report_jobs WHERE session_id = $1"
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, session_id)
        return self._row_to_job(row) if row else None

    async def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ReportJob], int]:
        """List jobs newest first, optionally filtered by status.

        Returns:
            Tuple of (jobs list, total count)
        """
        params: list[Any] = []
        where_clause = ""
        if status:
            where_clause = "WHERE status = $1"
            params.append(status.value)

        idx = len(params) + 1
        query = f"""
            SELECT * FROM report_jobs
            {where_clause}
            ORDER BY created_at DESC
            LIMIT ${idx} OFFSET ${idx + 1}
        """
        count_query = f"SELECT COUNT(*) AS total FROM report_jobs {where_clause}"

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, *params, limit, offset)
            count_row = await conn.fetchrow(count_query, *params)

        jobs = [self._row_to_job(row) for row in rows]
        total = count_row["total"] if count_row else 0
        return jobs, total

    def _row_to_job(self, row) -> ReportJob:
        """Convert a database row to a ReportJob model."""
        return ReportJob(
            job_id=row["job_id"],
            session_id=row["session_id"],
            status=JobStatus(row["status"]),
            attempts=row["attempts"],
            max_attempts=row["max_attempts"],
            run_at=row["run_at"],
            locked_at=row["locked_at"],
            locked_by=row["locked_by"],
            last_error=row["last_error"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
