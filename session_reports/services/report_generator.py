"""AI report generation for a single play session.

The generator is the slow, fallible external call of the pipeline: it turns
SessionFacts into ReportContent or raises. Timeouts are enforced by the caller.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from session_reports.config import Settings
from session_reports.jobs.errors import ReportGenerationError
from session_reports.jobs.models import ReportContent, ReportStats, SessionFacts
from session_reports.services.llm_base import BaseLLMClient, LLMNotConfiguredError
from session_reports.services.llm_openai import OpenAILLMClient

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = """
You are a supportive pet activity coach. You analyze one play session and write a
short, motivating report for the pet owner.

OUTPUT RULES:
- Respond with a single valid JSON object. No markdown, no code fences, no extra keys.
- Follow the schema below exactly.
- Never invent stats. If a value is missing or unknown, keep the provided value or use null.
- Keep the language friendly, simple and action-oriented.
- Refer to the animal as "pet" unless the session data names a species.

CONTENT:
- summaryTitle: short and positive, about 6 words at most.
- summary: 2-3 sentences. First encouragement, then one insight grounded in the
  session stats, optionally a safety or enrichment note.
- highlights: 3-5 items drawn from the session data (steps, rolls, distance...).
  Do not mention distance unless it is provided.
- recommendations: 3-6 items. Each names a concrete next action (frequency,
  duration, variety, environment) and a short reason tied to this session.
  Keep each under roughly 120 characters.

SCHEMA:
{
  "summaryTitle": "string",
  "summary": "string",
  "highlights": ["string"],
  "stats": {
    "durationSec": number,
    "calories": number|null,
    "batteryDelta": number|null
  },
  "recommendations": ["string"],
  "generatedAt": "ISO8601 string"
}

Very short sessions (durationSec < 30): focus on making play easier to start,
more frequent micro-sessions, novelty and owner engagement.
Medium or long sessions: focus on progression, variety and rest.
A large batteryDelta: suggest a charging routine and shorter sessions.
If unsure about any stat, stay conservative and still return valid JSON.
""".strip()


def _na(value: Any) -> Any:
    return "N/A" if value is None else value


def build_user_prompt(facts: SessionFacts) -> str:
    """Render session facts into the user message."""
    started = facts.started_at.isoformat() if facts.started_at else "N/A"
    ended = facts.ended_at.isoformat() if facts.ended_at else "N/A"
    return (
        "Session data:\n"
        f"- Session ID: {facts.session_id}\n"
        f"- Device: {facts.device_nickname or facts.device_id}\n"
        f"- Started: {started}\n"
        f"- Ended: {ended}\n"
        f"- Duration (sec): {_na(facts.duration_sec)}\n"
        f"- Calories: {_na(facts.calories)}\n"
        f"- Battery start: {_na(facts.battery_start)}\n"
        f"- Battery end: {_na(facts.battery_end)}\n"
        f"- Battery delta: {_na(facts.battery_delta)}\n"
        f"- Metrics: {json.dumps(facts.metrics_json or {}, default=str)}\n"
        "\n"
        "Use only the values above. For any stat marked N/A, use null in stats. "
        "Generate the report JSON."
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def parse_report_content(
    text: str,
    facts: SessionFacts,
    now: Optional[datetime] = None,
) -> ReportContent:
    """Parse generator output leniently, falling back to known session facts.

    Raises:
        ReportGenerationError: Output is not a JSON object
    """
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ReportGenerationError("invalid_json") from e
    if not isinstance(parsed, dict):
        raise ReportGenerationError("invalid_json: expected an object")

    stats = parsed.get("stats") if isinstance(parsed.get("stats"), dict) else {}

    duration = stats.get("durationSec")
    calories = stats.get("calories")
    battery_delta = stats.get("batteryDelta")

    generated_at = parsed.get("generatedAt")
    if not isinstance(generated_at, str):
        generated_at = (now or datetime.now(timezone.utc)).isoformat()

    return ReportContent(
        summary_title=parsed.get("summaryTitle") if isinstance(parsed.get("summaryTitle"), str) else "",
        summary=parsed.get("summary") if isinstance(parsed.get("summary"), str) else "",
        highlights=_string_list(parsed.get("highlights")),
        stats=ReportStats(
            duration_sec=duration if _is_number(duration) else (facts.duration_sec or 0),
            calories=calories if _is_number(calories) else facts.calories,
            battery_delta=battery_delta if _is_number(battery_delta) else facts.battery_delta,
        ),
        recommendations=_string_list(parsed.get("recommendations")),
        generated_at=generated_at,
    )


class ReportGenerator(ABC):
    """Turns session facts into report content; may fail."""

    @abstractmethod
    async def generate(self, facts: SessionFacts) -> ReportContent:
        ...


class SessionReportGenerator(ReportGenerator):
    """LLM-backed report generator."""

    def __init__(self, client: Optional[BaseLLMClient], max_tokens: int = 1200):
        """
        Args:
            client: LLM client, or None when no provider key is configured.
                Every call then fails with LLMNotConfiguredError.
            max_tokens: Response token budget
        """
        self._client = client
        self._max_tokens = max_tokens

    async def generate(self, facts: SessionFacts) -> ReportContent:
        if self._client is None:
            raise LLMNotConfiguredError("OPENAI_API_KEY is not set")

        logger.info(
            "Generating session report",
            session_id=str(facts.session_id),
            model=self._client.model,
        )
        text = await self._client.generate_text(
            build_user_prompt(facts),
            system=SYSTEM_PROMPT,
            max_tokens=self._max_tokens,
            json_mode=True,
        )
        return parse_report_content(text, facts)


def build_report_generator(settings: Settings) -> SessionReportGenerator:
    """Create the report generator from settings."""
    api_key = (settings.openai_api_key or "").strip() or None
    if api_key is None:
        logger.warning("OPENAI_API_KEY not set; report jobs will fail until it is configured")
        return SessionReportGenerator(None)

    client = OpenAILLMClient(
        api_key=api_key,
        model=settings.openai_model,
        timeout=settings.llm_timeout,
        base_url=settings.openai_base_url,
    )
    return SessionReportGenerator(client)
