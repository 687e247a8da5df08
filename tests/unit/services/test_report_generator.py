"""Tests for session report generation."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from session_reports.config import Settings
from session_reports.jobs.errors import ReportGenerationError
from session_reports.jobs.models import SessionFacts
from session_reports.services.llm_base import LLMNotConfiguredError
from session_reports.services.llm_openai import OpenAILLMClient
from session_reports.services.report_generator import (
    SYSTEM_PROMPT,
    SessionReportGenerator,
    build_report_generator,
    build_user_prompt,
    parse_report_content,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def facts():
    return SessionFacts(
        session_id=uuid4(),
        user_id=uuid4(),
        device_id="dev-42",
        started_at=datetime(2024, 3, 1, 11, 0, tzinfo=timezone.utc),
        ended_at=datetime(2024, 3, 1, 11, 10, tzinfo=timezone.utc),
        duration_sec=600,
        calories=14.0,
        battery_start=90,
        battery_end=80,
        metrics_json={"rolls": 42},
        device_nickname="Bouncy",
    )


class TestBuildUserPrompt:
    def test_includes_session_values(self, facts):
        prompt = build_user_prompt(facts)

        assert str(facts.session_id) in prompt
        assert "Device: Bouncy" in prompt
        assert "Duration (sec): 600" in prompt
        assert "Battery delta: -10" in prompt
        assert '"rolls": 42' in prompt

    def test_missing_values_are_marked(self, facts):
        facts.calories = None
        facts.device_nickname = None

        prompt = build_user_prompt(facts)

        assert "Calories: N/A" in prompt
        assert "Device: dev-42" in prompt


class TestParseReportContent:
    def test_full_document(self, facts):
        text = json.dumps(
            {
                "summaryTitle": "Rolling star",
                "summary": "Great energy today.",
                "highlights": ["42 rolls"],
                "stats": {"durationSec": 600, "calories": 14, "batteryDelta": -10},
                "recommendations": ["Try a new toy"],
                "generatedAt": "2024-03-01T12:00:00Z",
            }
        )

        content = parse_report_content(text, facts, now=NOW)

        assert content.summary_title == "Rolling star"
        assert content.highlights == ["42 rolls"]
        assert content.stats.calories == 14
        assert content.generated_at == "2024-03-01T12:00:00Z"

    def test_missing_fields_fall_back_to_facts(self, facts):
        content = parse_report_content('{"summary": "ok", "highlights": [1, "a"]}', facts, now=NOW)

        assert content.summary_title == ""
        assert content.summary == "ok"
        assert content.highlights == ["a"]
        assert content.recommendations == []
        assert content.stats.duration_sec == 600
        assert content.stats.calories == 14.0
        assert content.stats.battery_delta == -10
        assert content.generated_at == NOW.isoformat()

    def test_invalid_json(self, facts):
        with pytest.raises(ReportGenerationError, match="invalid_json"):
            parse_report_content("not json", facts)

    def test_non_object(self, facts):
        with pytest.raises(ReportGenerationError, match="expected an object"):
            parse_report_content("[1, 2]", facts)


class TestSessionReportGenerator:
    @pytest.mark.asyncio
    async def test_generate(self, facts):
        client = MagicMock()
        client.model = "gpt-4o-mini"
        client.generate_text = AsyncMock(
            return_value=json.dumps({"summaryTitle": "Nice", "summary": "Good"})
        )

        content = await SessionReportGenerator(client, max_tokens=500).generate(facts)

        assert content.summary_title == "Nice"
        kwargs = client.generate_text.await_args.kwargs
        assert kwargs["system"] == SYSTEM_PROMPT
        assert kwargs["max_tokens"] == 500
        assert kwargs["json_mode"] is True

    @pytest.mark.asyncio
    async def test_unconfigured_generator_fails(self, facts):
        with pytest.raises(LLMNotConfiguredError):
            await SessionReportGenerator(None).generate(facts)


class TestBuildReportGenerator:
    def test_without_key(self):
        generator = build_report_generator(Settings(_env_file=None, openai_api_key=None))
        assert generator._client is None

    def test_blank_key_counts_as_missing(self):
        generator = build_report_generator(Settings(_env_file=None, openai_api_key="  "))
        assert generator._client is None

    def test_with_key(self):
        generator = build_report_generator(
            Settings(_env_file=None, openai_api_key="sk-test", openai_model="gpt-4o")
        )
        assert isinstance(generator._client, OpenAILLMClient)
        assert generator._client.model == "gpt-4o"
