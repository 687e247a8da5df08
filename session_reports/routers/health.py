"""Health check endpoint."""

import time

import structlog
from fastapi import APIRouter, Depends

from session_reports import __version__
from session_reports.config import Settings, get_settings
from session_reports.routers.metrics import set_service_health
from session_reports.schemas import DependencyHealth, HealthResponse

router = APIRouter()
logger = structlog.get_logger(__name__)

_db_pool = None


def set_db_pool(pool):
    """Set the database pool for health checks."""
    global _db_pool
    _db_pool = pool


async def check_database_health() -> DependencyHealth:
    """Check PostgreSQL connectivity with a trivial query."""
    if _db_pool is None:
        return DependencyHealth(status="error", error="Database pool not initialized")

    start = time.perf_counter()
    try:
        async with _db_pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        latency = (time.perf_counter() - start) * 1000
        return DependencyHealth(status="ok", latency_ms=latency)
    except Exception as e:
        latency = (time.perf_counter() - start) * 1000
        return DependencyHealth(status="error", latency_ms=latency, error=str(e))


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Check health of the service and its database.

    The service is "degraded" when the database is unreachable or no report
    generator is configured.
    """
    database = await check_database_health()
    generator_configured = bool(settings.openai_api_key)
    set_service_health("database", database.status == "ok")

    overall = "ok" if database.status == "ok" and generator_configured else "degraded"
    if overall != "ok":
        logger.warning(
            "Health check degraded",
            database=database.status,
            generator_configured=generator_configured,
        )

    return HealthResponse(
        status=overall,
        database=database,
        generator_configured=generator_configured,
        version=__version__,
    )
