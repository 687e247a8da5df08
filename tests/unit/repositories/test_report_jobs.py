"""Tests for report job repository."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from session_reports.jobs.types import JobStatus
from session_reports.repositories.report_jobs import ReportJobRepository


def _row(**overrides):
    now = datetime.now(timezone.utc)
    row = {
        "job_id": uuid4(),
        "session_id": uuid4(),
        "status": "QUEUED",
        "attempts": 0,
        "max_attempts": 5,
        "run_at": now,
        "locked_at": None,
        "locked_by": None,
        "last_error": None,
        "created_at": now,
        "updated_at": now,
    }
    row.update(overrides)
    return row


class TestReportJobRepository:
    def test_repository_creation(self):
        mock_pool = MagicMock()
        repo = ReportJobRepository(mock_pool)
        assert repo._pool == mock_pool

    def test_row_to_job(self):
        row = _row(status="PROCESSING", locked_by="w#1", attempts=2)
        job = ReportJobRepository(MagicMock())._row_to_job(row)

        assert job.job_id == row["job_id"]
        assert job.status == JobStatus.PROCESSING
        assert job.attempts == 2
        assert job.locked_by == "w#1"


class TestEnqueue:
    @pytest.mark.asyncio
    async def test_insert_or_reset(self, mock_pool):
        pool, conn = mock_pool
        row = _row()
        conn.fetchrow = AsyncMock(return_value=row)

        job = await ReportJobRepository(pool).enqueue(row["session_id"], 5)

        assert job.status == JobStatus.QUEUED
        sql, session_id, max_attempts = conn.fetchrow.await_args.args
        assert session_id == row["session_id"]
        assert max_attempts == 5
        # Single upsert, guarded so PROCESSING/DONE are untouched
        assert "INSERT INTO report_jobs" in sql
        assert "ON CONFLICT (session_id) DO UPDATE" in sql
        assert "WHERE report_jobs.status IN ('QUEUED', 'FAILED')" in sql
        conn.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_noop_returns_none(self, mock_pool):
        pool, conn = mock_pool
        conn.fetchrow = AsyncMock(return_value=None)

        assert await ReportJobRepository(pool).enqueue(uuid4(), 5) is None

    @pytest.mark.asyncio
    async def test_uses_given_connection(self):
        pool = MagicMock()
        conn = AsyncMock()
        conn.fetchrow = AsyncMock(return_value=_row())

        await ReportJobRepository(pool).enqueue(uuid4(), 5, conn=conn)

        pool.acquire.assert_not_called()
        conn.fetchrow.assert_awaited_once()


class TestClaim:
    @pytest.mark.asyncio
    async def test_claim_uses_skip_locked(self, mock_pool):
        pool, conn = mock_pool
        conn.fetch = AsyncMock(return_value=[_row(status="PROCESSING", locked_by="w#1")])

        jobs = await ReportJobRepository(pool).claim(3, "w#1")

        assert len(jobs) == 1
        sql, limit, locked_by = conn.fetch.await_args.args
        assert "FOR UPDATE SKIP LOCKED" in sql
        assert "status = 'QUEUED' AND run_at <= now()" in sql
        assert "ORDER BY created_at ASC" in sql
        assert limit == 3
        assert locked_by == "w#1"
        conn.transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_claim_returns_oldest_first(self, mock_pool):
        pool, conn = mock_pool
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        newer = _row(created_at=base + timedelta(minutes=5))
        older = _row(created_at=base)
        conn.fetch = AsyncMock(return_value=[newer, older])

        jobs = await ReportJobRepository(pool).claim(2, "w#1")

        assert [j.job_id for j in jobs] == [older["job_id"], newer["job_id"]]

    @pytest.mark.asyncio
    async def test_claim_empty(self, mock_pool):
        pool, conn = mock_pool
        conn.fetch = AsyncMock(return_value=[])

        assert await ReportJobRepository(pool).claim(3, "w#1") == []


class TestTransitions:
    @pytest.mark.asyncio
    async def test_mark_done_is_conditional(self):
        conn = AsyncMock()
        conn.fetchval = AsyncMock(return_value=uuid4())
        job_id = uuid4()

        assert await ReportJobRepository(MagicMock()).mark_done(conn, job_id, "w#1")

        sql, arg_job_id, locked_by = conn.fetchval.await_args.args
        assert "status = 'PROCESSING' AND locked_by = $2" in sql
        assert arg_job_id == job_id
        assert locked_by == "w#1"

    @pytest.mark.asyncio
    async def test_mark_done_lost(self):
        conn = AsyncMock()
        conn.fetchval = AsyncMock(return_value=None)

        assert not await ReportJobRepository(MagicMock()).mark_done(conn, uuid4(), "w#1")

    @pytest.mark.asyncio
    async def test_schedule_retry(self):
        conn = AsyncMock()
        conn.fetchval = AsyncMock(return_value=uuid4())
        job_id = uuid4()

        ok = await ReportJobRepository(MagicMock()).schedule_retry(
            conn, job_id, "w#1", attempts=2, backoff_seconds=120, error="boom"
        )

        assert ok
        sql, *args = conn.fetchval.await_args.args
        assert args == [job_id, "w#1", 2, 120, "boom"]
        assert "status = 'QUEUED'" in sql
        assert "locked_by = NULL" in sql
        assert "interval '1 second'" in sql

    @pytest.mark.asyncio
    async def test_schedule_retry_truncates_error(self):
        conn = AsyncMock()
        conn.fetchval = AsyncMock(return_value=uuid4())

        await ReportJobRepository(MagicMock()).schedule_retry(
            conn, uuid4(), "w#1", 1, 60, "x" * 2000
        )

        assert len(conn.fetchval.await_args.args[5]) == 500

    @pytest.mark.asyncio
    async def test_mark_failed(self):
        conn = AsyncMock()
        conn.fetchval = AsyncMock(return_value=uuid4())
        job_id = uuid4()

        ok = await ReportJobRepository(MagicMock()).mark_failed(
            conn, job_id, "w#1", attempts=5, error="boom"
        )

        assert ok
        sql, *args = conn.fetchval.await_args.args
        assert "status = 'FAILED'" in sql
        assert args == [job_id, "w#1", 5, "boom"]


class TestRelease:
    @pytest.mark.asyncio
    async def test_release_leaves_attempts_and_run_at(self, mock_pool):
        pool, conn = mock_pool
        ids = [uuid4(), uuid4()]
        conn.fetch = AsyncMock(return_value=[{"job_id": i} for i in ids])

        released = await ReportJobRepository(pool).release(ids, "w#1")

        assert released == 2
        sql, arg_ids, locked_by = conn.fetch.await_args.args
        assert arg_ids == ids
        assert locked_by == "w#1"
        assert "status = 'QUEUED'" in sql
        assert "attempts" not in sql
        assert "run_at" not in sql

    @pytest.mark.asyncio
    async def test_release_nothing(self, mock_pool):
        pool, _ = mock_pool

        assert await ReportJobRepository(pool).release([], "w#1") == 0
        pool.acquire.assert_not_called()


class TestReclaimStale:
    @pytest.mark.asyncio
    async def test_reclaim(self, mock_pool):
        pool, conn = mock_pool
        conn.fetch = AsyncMock(return_value=[{"job_id": uuid4()}])

        count = await ReportJobRepository(pool).reclaim_stale(15)

        assert count == 1
        sql, minutes = conn.fetch.await_args.args
        assert minutes == 15
        assert "status = 'PROCESSING'" in sql
        assert "attempts < max_attempts" in sql


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_by_session_not_found(self, mock_pool):
        pool, conn = mock_pool
        conn.fetchrow = AsyncMock(return_value=None)

        assert await ReportJobRepository(pool).get_by_session(uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_by_session(self, mock_pool):
        pool, conn = mock_pool
        row = _row()
        conn.fetchrow = AsyncMock(return_value=row)

        job = await ReportJobRepository(pool).get_by_session(row["session_id"])

        assert job.session_id == row["session_id"]

    @pytest.mark.asyncio
    async def test_list_jobs_with_status(self, mock_pool):
        pool, conn = mock_pool
        conn.fetch = AsyncMock(return_value=[_row(status="FAILED")])
        conn.fetchrow = AsyncMock(return_value={"total": 7})

        jobs, total = await ReportJobRepository(pool).list_jobs(
            status=JobStatus.FAILED, limit=10, offset=20
        )

        assert total == 7
        assert jobs[0].status == JobStatus.FAILED
        assert conn.fetch.await_args.args[1:] == ("FAILED", 10, 20)
        assert "LIMIT $2 OFFSET $3" in conn.fetch.await_args.args[0]

    @pytest.mark.asyncio
    async def test_list_jobs_without_status(self, mock_pool):
        pool, conn = mock_pool
        conn.fetch = AsyncMock(return_value=[])
        conn.fetchrow = AsyncMock(return_value={"total": 0})

        jobs, total = await ReportJobRepository(pool).list_jobs()

        assert jobs == []
        assert total == 0
        assert conn.fetch.await_args.args[1:] == (50, 0)
