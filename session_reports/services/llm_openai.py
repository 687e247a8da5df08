"""OpenAI Chat Completions adapter for report generation."""

import time

import httpx
import structlog

from session_reports.services.llm_base import (
    BaseLLMClient,
    LLMAPIError,
    LLMError,
    LLMRateLimitError,
    LLMResponse,
    LLMTimeoutError,
    Message,
)

logger = structlog.get_logger(__name__)


class OpenAILLMClient(BaseLLMClient):
    """LLM client using the OpenAI Chat Completions API."""

    OPENAI_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: int = 60,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Build a client bound to one API key and default model.

        Args:
            api_key: OpenAI API key
            model: Default chat model (e.g., gpt-4o-mini)
            timeout: Request timeout in seconds
            base_url: Override the API base URL
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        super().__init__(model)
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = (base_url or self.OPENAI_BASE_URL).rstrip("/")
        self.provider = "openai"
        self._transport = transport

    async def generate(
        self,
        *,
        messages: list[Message],
        model: str | None = None,
        max_tokens: int = 2000,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        POST one chat completion and map failures onto the LLMError family.

        Raises:
            LLMTimeoutError: Request exceeded the client timeout
            LLMRateLimitError: HTTP 429 from OpenAI
            LLMAPIError: Any other non-2xx response
            LLMError: Transport failures and empty responses
        """
        model = model or self.model

        body: dict = {
            "model": model,
            "messages": [
                {"role": msg["role"], "content": msg["content"]} for msg in messages
            ],
            "max_tokens": max_tokens,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        try:
            start = time.perf_counter()
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
            latency_ms = (time.perf_counter() - start) * 1000
        except httpx.TimeoutException as e:
            logger.error("OpenAI request timed out", model=model, timeout=self.timeout)
            raise LLMTimeoutError(
                f"OpenAI request timed out after {self.timeout}s",
                provider=self.provider,
                model=model,
                timeout_seconds=self.timeout,
            ) from e
        except httpx.HTTPStatusError as e:
            error_body = e.response.text[:200]
            logger.error(
                "OpenAI API HTTP error",
                model=model,
                status_code=e.response.status_code,
                error=error_body or str(e),
            )
            if e.response.status_code == 429:
                retry_after = e.response.headers.get("retry-after")
                raise LLMRateLimitError(
                    f"OpenAI API error 429: {error_body}",
                    provider=self.provider,
                    model=model,
                    retry_after_seconds=int(retry_after)
                    if retry_after and retry_after.isdigit()
                    else None,
                ) from e
            raise LLMAPIError(
                f"OpenAI API error {e.response.status_code}: {error_body}",
                provider=self.provider,
                model=model,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error("OpenAI request error", model=model, error=str(e))
            raise LLMError(
                f"OpenAI request failed: {e}",
                provider=self.provider,
                model=model,
            ) from e

        choices = data.get("choices") or []
        text = choices[0].get("message", {}).get("content") if choices else None
        if not text or not isinstance(text, str):
            raise LLMError(
                "OpenAI returned empty or invalid response",
                provider=self.provider,
                model=model,
            )

        usage_data = data.get("usage", {})
        usage = None
        if usage_data:
            usage = {
                "input_tokens": usage_data.get("prompt_tokens", 0),
                "output_tokens": usage_data.get("completion_tokens", 0),
            }

        actual_model = data.get("model", model)

        logger.debug(
            "OpenAI generation complete",
            model=actual_model,
            input_tokens=usage.get("input_tokens") if usage else None,
            output_tokens=usage.get("output_tokens") if usage else None,
            latency_ms=round(latency_ms, 2),
        )

        return LLMResponse(
            text=text,
            model=actual_model,
            provider=self.provider,
            usage=usage,
            latency_ms=latency_ms,
        )
