"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from session_reports.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("CRON_SECRET", "OPENAI_API_KEY", "JOB_STALE_TIMEOUT_MINUTES"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.report_job_max_attempts == 5
        assert settings.report_job_backoff_base_s == 30
        assert settings.report_job_backoff_cap_s == 1800
        assert settings.report_generation_timeout_s == 90.0
        assert settings.job_stale_timeout_minutes is None
        assert settings.worker_batch_limit == 3
        assert settings.openai_model == "gpt-4o-mini"
        assert settings.cron_secret is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CRON_SECRET", "from-env")
        monkeypatch.setenv("REPORT_JOB_MAX_ATTEMPTS", "3")
        monkeypatch.setenv("JOB_STALE_TIMEOUT_MINUTES", "30")

        settings = Settings(_env_file=None)

        assert settings.cron_secret == "from-env"
        assert settings.report_job_max_attempts == 3
        assert settings.job_stale_timeout_minutes == 30

    def test_rejects_zero_attempt_budget(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, report_job_max_attempts=0)
