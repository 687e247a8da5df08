"""Database repositories for the report job pipeline."""

from session_reports.repositories.report_jobs import ReportJobRepository
from session_reports.repositories.reports import ReportRepository
from session_reports.repositories.sessions import SessionRepository

__all__ = ["ReportJobRepository", "ReportRepository", "SessionRepository"]
