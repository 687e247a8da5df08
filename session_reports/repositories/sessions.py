"""Read-only access to play session facts for report generation."""

import json
from typing import Optional
from uuid import UUID

import structlog

from session_reports.jobs.models import SessionFacts

logger = structlog.get_logger(__name__)


class SessionRepository:
    """Session facts provider backed by play_sessions / user_devices."""

    def __init__(self, pool):
        self._pool = pool

    async def get_facts(self, session_id: UUID) -> Optional[SessionFacts]:
        """Fetch timing, device and metrics for a session, or None if missing."""
        query = """
            SELECT s.session_id, s.user_id, s.device_id, s.started_at, s.ended_at,
                   s.duration_sec, s.calories, s.battery_start, s.battery_end,
                   s.metrics_json, ud.nickname
            FROM play_sessions s
            LEFT JOIN user_devices ud
                   ON ud.user_id = s.user_id AND ud.device_id = s.device_id
            WHERE s.session_id = $1
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, session_id)

        if row is None:
            return None

        metrics = row["metrics_json"]
        if isinstance(metrics, str):
            metrics = json.loads(metrics)

        return SessionFacts(
            session_id=row["session_id"],
            user_id=row["user_id"],
            device_id=row["device_id"],
            started_at=row["started_at"],
            ended_at=row["ended_at"],
            duration_sec=row["duration_sec"],
            calories=row["calories"],
            battery_start=row["battery_start"],
            battery_end=row["battery_end"],
            metrics_json=metrics,
            device_nickname=row["nickname"],
        )
