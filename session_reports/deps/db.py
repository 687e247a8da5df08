"""Database pool helpers for routes."""

from typing import Any

from fastapi import HTTPException, status


def require_db_pool(pool: Any, service_name: str = "Database") -> Any:
    """Validate that database pool is available.

    Raises:
        HTTPException: 503 if pool is None
    """
    if pool is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{service_name} connection not available",
        )
    return pool
