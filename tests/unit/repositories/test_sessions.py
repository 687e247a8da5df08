"""Tests for session facts repository."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from session_reports.repositories.sessions import SessionRepository


@pytest.mark.asyncio
async def test_get_facts(mock_pool):
    pool, conn = mock_pool
    session_id = uuid4()
    conn.fetchrow = AsyncMock(
        return_value={
            "session_id": session_id,
            "user_id": uuid4(),
            "device_id": "dev-1",
            "started_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "ended_at": datetime(2024, 1, 1, 0, 5, tzinfo=timezone.utc),
            "duration_sec": 300,
            "calories": 8.5,
            "battery_start": 80,
            "battery_end": 75,
            "metrics_json": json.dumps({"steps": 120}),
            "nickname": "Biscuit's ball",
        }
    )

    facts = await SessionRepository(pool).get_facts(session_id)

    assert facts.session_id == session_id
    assert facts.metrics_json == {"steps": 120}
    assert facts.device_nickname == "Biscuit's ball"
    assert facts.battery_delta == -5
    assert "LEFT JOIN user_devices" in conn.fetchrow.await_args.args[0]


@pytest.mark.asyncio
async def test_get_facts_missing(mock_pool):
    pool, conn = mock_pool
    conn.fetchrow = AsyncMock(return_value=None)

    assert await SessionRepository(pool).get_facts(uuid4()) is None
