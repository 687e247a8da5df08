"""Root conftest for test suite.

Auto-skips e2e, smoke and slow tests unless requested, and live-database
tests unless DATABASE_URL is set.
Run explicitly with: pytest -m slow
                  or: DATABASE_URL=postgresql://... pytest tests/integration
"""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_collection_modifyitems(config, items):
    """Skip marked tests whose prerequisites are missing."""
    markexpr = config.getoption("-m", default="")
    explicit_e2e = "e2e" in markexpr
    explicit_smoke = "smoke" in markexpr
    explicit_slow = "slow" in markexpr
    has_database = bool(os.environ.get("DATABASE_URL"))

    skip_e2e = pytest.mark.skip(reason="e2e tests require running server. Run with: -m e2e")
    skip_smoke = pytest.mark.skip(
        reason="smoke tests require running server. Run with: -m smoke"
    )
    skip_slow = pytest.mark.skip(reason="slow tests skipped by default. Run with: pytest -m slow")
    skip_db = pytest.mark.skip(reason="DATABASE_URL not set")

    for item in items:
        if "e2e" in item.keywords and not explicit_e2e:
            item.add_marker(skip_e2e)

        if "smoke" in item.keywords and not explicit_smoke:
            item.add_marker(skip_smoke)

        if "slow" in item.keywords and not explicit_slow:
            item.add_marker(skip_slow)

        if "requires_db" in item.keywords and not has_database:
            item.add_marker(skip_db)


def make_mock_pool(conn=None):
    """Build an asyncpg-shaped pool mock around a single connection mock.

    Supports `async with pool.acquire() as conn` and
    `async with conn.transaction()`.
    """
    if conn is None:
        conn = AsyncMock()
    # transaction() is a sync call returning an async context manager
    conn.transaction = MagicMock(return_value=MagicMock())
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool, conn


@pytest.fixture
def mock_pool():
    """(pool, conn) pair with a fresh AsyncMock connection."""
    return make_mock_pool()
