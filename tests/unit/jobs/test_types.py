"""Tests for report job status enums."""

from session_reports.jobs.types import JobStatus, ReportStatus, RunDetailStatus


class TestJobStatus:
    def test_values_match_database(self):
        assert [s.value for s in JobStatus] == ["QUEUED", "PROCESSING", "DONE", "FAILED"]

    def test_status_is_string(self):
        assert JobStatus("QUEUED") == "QUEUED"


class TestReportStatus:
    def test_values_match_database(self):
        assert [s.value for s in ReportStatus] == ["PENDING", "READY", "FAILED"]

    def test_parses_database_value(self):
        assert ReportStatus("READY") is ReportStatus.READY


def test_run_detail_statuses():
    assert {s.value for s in RunDetailStatus} == {
        "DONE",
        "RETRY_SCHEDULED",
        "FAILED",
        "DRY_RUN",
        "ERROR",
    }
