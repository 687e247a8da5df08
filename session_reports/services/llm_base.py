"""Chat-completion client contract used by the report generator.

Provider adapters translate their transport and HTTP failures into the
LLMError family below, so the job executor only ever sees one error shape
(and records its message as last_error).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, TypedDict


class Message(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class LLMResponse:
    """One completion plus the accounting the provider returned with it."""

    text: str
    model: str
    provider: str
    usage: dict | None = None  # input_tokens / output_tokens
    latency_ms: float | None = None


class LLMError(Exception):
    """A completion call failed; the attempt counts as a failed report attempt."""

    def __init__(self, message: str, provider: str, model: str | None = None):
        super().__init__(message)
        self.provider = provider
        self.model = model


class LLMNotConfiguredError(Exception):
    """No provider credentials; every report attempt fails until configured."""


class LLMTimeoutError(LLMError):
    def __init__(
        self,
        message: str = "completion request timed out",
        provider: str = "unknown",
        model: str | None = None,
        timeout_seconds: float | None = None,
    ):
        super().__init__(message, provider, model)
        self.timeout_seconds = timeout_seconds


class LLMRateLimitError(LLMError):
    """HTTP 429. retry_after_seconds is informational; job backoff still applies."""

    def __init__(
        self,
        message: str = "completion request rate limited",
        provider: str = "unknown",
        model: str | None = None,
        retry_after_seconds: int | None = None,
    ):
        super().__init__(message, provider, model)
        self.retry_after_seconds = retry_after_seconds


class LLMAPIError(LLMError):
    """Any other non-2xx answer from the provider."""

    def __init__(
        self,
        message: str = "completion request rejected",
        provider: str = "unknown",
        model: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, provider, model)
        self.status_code = status_code


class BaseLLMClient(ABC):
    """Provider-agnostic chat completion client."""

    provider: str = "base"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    async def generate(
        self,
        *,
        messages: list[Message],
        model: str | None = None,
        max_tokens: int = 2000,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Run one completion.

        json_mode asks the provider to constrain the answer to a single JSON
        object. Implementations raise LLMError subclasses on failure.
        """

    async def generate_text(
        self,
        prompt: str,
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 2000,
        json_mode: bool = False,
    ) -> str:
        """Single-turn shortcut: optional system message, one user message, text back."""
        messages: list[Message] = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})

        response = await self.generate(
            messages=messages,
            model=model,
            max_tokens=max_tokens,
            json_mode=json_mode,
        )
        return response.text
