"""Application lifespan management - startup and shutdown logic."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import asyncpg
import structlog
from fastapi import FastAPI

from session_reports import __version__
from session_reports.config import Settings, get_settings
from session_reports.routers import health, internal_jobs
from session_reports.routers.metrics import set_service_health

logger = structlog.get_logger(__name__)

# Global clients - accessed by other modules
_db_pool: Optional[asyncpg.Pool] = None


async def _init_database(settings: Settings) -> Optional[asyncpg.Pool]:
    """Initialize the asyncpg connection pool."""
    if not settings.database_url:
        logger.warning("Database connection not configured. Set DATABASE_URL in .env")
        return None

    try:
        # Short timeouts: the service still starts (degraded) if the DB is down
        pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            ssl="require" if settings.db_ssl_required else None,
            timeout=10,
            command_timeout=30,
            statement_cache_size=0,  # pgbouncer transaction mode
        )
    except Exception as e:
        logger.error(
            "Failed to initialize database pool - job endpoints will be unavailable",
            error=str(e),
        )
        return None

    logger.info(
        "Database pool initialized",
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )

    # Wire up database pool to routers
    internal_jobs.set_db_pool(pool)
    health.set_db_pool(pool)
    return pool


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    global _db_pool

    settings = get_settings()
    logger.info(
        "Starting Session Reports Service",
        version=__version__,
        host=settings.service_host,
        port=settings.service_port,
        openai_model=settings.openai_model,
        generator_configured=bool(settings.openai_api_key),
    )

    _db_pool = await _init_database(settings)
    set_service_health("database", _db_pool is not None)

    yield

    logger.info("Shutting down Session Reports Service")
    if _db_pool is not None:
        await _db_pool.close()
        internal_jobs.set_db_pool(None)
        health.set_db_pool(None)
        _db_pool = None
        logger.info("Database pool closed")
