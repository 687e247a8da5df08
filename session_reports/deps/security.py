"""Security dependencies for FastAPI routes.

Trigger endpoints are called by schedulers, not users, and are guarded by a
shared secret in the X-Cron-Secret header.
"""

import hmac

import structlog
from fastapi import Depends, HTTPException, Request, status

from session_reports.config import Settings, get_settings

logger = structlog.get_logger(__name__)

CRON_SECRET_HEADER = "X-Cron-Secret"


def require_cron_secret(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> bool:
    """
    Require a valid cron secret for internal trigger routes.

    Security guarantees:
    - Uses hmac.compare_digest() for constant-time comparison
    - No bypass when the secret is unset: the route answers 500
    - Returns 401 for a missing header, 403 for a wrong secret

    Usage:
        @router.post("/internal/jobs/run")
        async def run(..., _: bool = Depends(require_cron_secret)):
            ...
    """
    expected = (settings.cron_secret or "").strip()
    if not expected:
        logger.error("CRON_SECRET is not configured", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="CRON_SECRET is not configured",
        )

    provided = request.headers.get(CRON_SECRET_HEADER)
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {CRON_SECRET_HEADER} header",
        )

    if not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning(
            "Invalid cron secret attempt",
            path=request.url.path,
            client=request.client.host if request.client else "unknown",
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Invalid {CRON_SECRET_HEADER}",
        )

    return True
