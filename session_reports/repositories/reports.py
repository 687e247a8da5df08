"""Repository for ai_reports rows.

READY and FAILED are only ever written inside the same transaction as the
owning job's terminal transition; callers pass that transaction's connection.
"""

import json
from typing import Any, Optional
from uuid import UUID

import structlog

from session_reports.jobs.models import ERROR_MESSAGE_MAX_CHARS, Report
from session_reports.jobs.types import ReportStatus

logger = structlog.get_logger(__name__)


class ReportRepository:
    """Repository for ai_reports operations."""

    def __init__(self, pool):
        self._pool = pool

    async def ensure_pending(self, conn, session_id: UUID) -> bool:
        """Create the PENDING report for a session if none exists.

        Returns True when a row was inserted.
        """
        query = """
            INSERT INTO ai_reports (session_id, status)
            VALUES ($1, 'PENDING')
            ON CONFLICT (session_id) DO NOTHING
            RETURNING session_id
        """
        return await conn.fetchval(query, session_id) is not None

    async def reset_failed(self, conn, session_id: UUID) -> bool:
        """FAILED -> PENDING, used when a failed session is enqueued again."""
        query = """
            UPDATE ai_reports SET
                status = 'PENDING',
                failure_reason = NULL,
                updated_at = now()
            WHERE session_id = $1 AND status = 'FAILED'
            RETURNING session_id
        """
        return await conn.fetchval(query, session_id) is not None

    async def get(self, session_id: UUID) -> Optional[Report]:
        """Get the report for a session."""
        query = "SELECT * FROM ai_reports WHERE session_id = $1"
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, session_id)
        return self._row_to_report(row) if row else None

    async def get_status(self, session_id: UUID) -> Optional[ReportStatus]:
        """Get only the status of a session's report."""
        query = "SELECT status FROM ai_reports WHERE session_id = $1"
        async with self._pool.acquire() as conn:
            value = await conn.fetchval(query, session_id)
        return ReportStatus(value) if value is not None else None

    async def mark_ready(
        self, conn, session_id: UUID, content_json: dict[str, Any]
    ) -> bool:
        """PENDING -> READY with the generated content."""
        query = """
            UPDATE ai_reports SET
                status = 'READY',
                content_json = $2::jsonb,
                failure_reason = NULL,
                updated_at = now()
            WHERE session_id = $1 AND status = 'PENDING'
            RETURNING session_id
        """
        row_id = await conn.fetchval(query, session_id, json.dumps(content_json))
        return row_id is not None

    async def mark_failed(self, conn, session_id: UUID, reason: str) -> bool:
        """PENDING -> FAILED with a truncated, human-readable reason."""
        query = """
            UPDATE ai_reports SET
                status = 'FAILED',
                failure_reason = $2,
                updated_at = now()
            WHERE session_id = $1 AND status = 'PENDING'
            RETURNING session_id
        """
        row_id = await conn.fetchval(
            query, session_id, reason[:ERROR_MESSAGE_MAX_CHARS]
        )
        return row_id is not None

    def _row_to_report(self, row) -> Report:
        """Convert a database row to a Report model."""
        content = row["content_json"]
        if isinstance(content, str):
            content = json.loads(content)
        return Report(
            session_id=row["session_id"],
            status=ReportStatus(row["status"]),
            content_json=content,
            failure_reason=row["failure_reason"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
