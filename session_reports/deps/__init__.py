"""FastAPI dependencies for trigger authentication and database access."""

from session_reports.deps.db import require_db_pool
from session_reports.deps.security import CRON_SECRET_HEADER, require_cron_secret

__all__ = ["CRON_SECRET_HEADER", "require_cron_secret", "require_db_pool"]
