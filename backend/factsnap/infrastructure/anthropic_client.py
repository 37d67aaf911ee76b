"""Resilient Anthropic Client — summarizer collaborator with retry, backoff, and error mapping.

Invariants:
    - Retried: rate limits (429, honoring Retry-After), 5xx, 529 overloaded,
      and connection failures; at most max_retries extra attempts
    - Not retried: timeouts and every other 4xx
    - All failures surface as ExternalServiceError("anthropic", ...)
    - prompt() returns the concatenated text blocks as an opaque string

Design Decisions:
    - Retry policy is a pure classifier (_retry_delay_ms) so the loop stays flat
    - ±25% jitter on backoff: concurrent summaries do not retry in lockstep
"""

import asyncio
import logging
import random

import anthropic
from anthropic import (
    APIConnectionError, APIError, APIStatusError, APITimeoutError, RateLimitError,
)

from factsnap.core.errors import ErrorContext, ExternalServiceError

logger = logging.getLogger(__name__)

_SERVICE = "anthropic"
_OVERLOADED_STATUS = 529


class ResilientAnthropicClient:
    """Satisfies core.repository_protocols.Summarizer."""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 1024,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 60_000,
        timeout_seconds: int = 60,
    ):
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
            # Retries are ours; the SDK's own would multiply them.
            max_retries=0,
        )
        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def prompt(self, text: str) -> str:
        """Single-turn completion returning only the text blocks."""
        response = await self.create_message(
            messages=[{"role": "user", "content": text}],
        )
        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

    async def create_message(
        self,
        *,
        messages: list,
        system: str | None = None,
        context: ErrorContext | None = None,
    ):
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system

        attempt = 0
        while True:
            try:
                response = await self.client.messages.create(**kwargs)
            except APIError as e:
                delay_ms = self._retry_delay_ms(e, attempt)
                if delay_ms is None:
                    raise ExternalServiceError(
                        _SERVICE, self._describe(e, attempt), context=context,
                    ) from e
                logger.warning(
                    f"Anthropic call failed ({type(e).__name__}), retrying in {delay_ms}ms",
                    extra={"attempt": attempt + 1},
                )
                await asyncio.sleep(delay_ms / 1000)
                attempt += 1
                continue

            usage = response.usage
            logger.info(
                "Anthropic API success",
                extra={
                    "attempt": attempt + 1,
                    "input_tokens": usage.input_tokens,
                    "output_tokens": usage.output_tokens,
                },
            )
            return response

    def _retry_delay_ms(self, error: APIError, attempt: int) -> int | None:
        """Milliseconds to wait before the next attempt, or None to give up."""
        if attempt >= self.max_retries or isinstance(error, APITimeoutError):
            return None
        if isinstance(error, RateLimitError):
            return self._retry_after_ms(error) or self._backoff(attempt)
        if isinstance(error, APIConnectionError):
            return self._backoff(attempt)
        if isinstance(error, APIStatusError) and (
            error.status_code >= 500 or error.status_code == _OVERLOADED_STATUS
        ):
            return self._backoff(attempt)
        return None

    def _describe(self, error: APIError, attempt: int) -> str:
        if isinstance(error, APITimeoutError):
            return "API timeout"
        if attempt >= self.max_retries and attempt > 0:
            return f"failed after {self.max_retries} retries: {error}"
        return str(error)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    @staticmethod
    def _retry_after_ms(error: RateLimitError) -> int | None:
        response = getattr(error, "response", None)
        if response is None:
            return None
        value = response.headers.get("retry-after")
        if value and value.isdigit():
            return int(value) * 1000
        return None
