"""Language model client — single-turn Anthropic Messages API calls over httpx.

Every call is bounded by an overall timeout (settings.llm_timeout_seconds).
Transport errors, HTTP errors, timeouts, malformed payloads, and an open
circuit all surface as LLMError so callers have one thing to catch before
falling back to their deterministic paths.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

import httpx
import mlflow
from mlflow.entities import SpanType

from mncodes.config import settings

logger = logging.getLogger(__name__)

# Granular timeouts: fail fast on connect; the overall cap is enforced separately
LLM_TIMEOUT = httpx.Timeout(connect=5.0, read=30.0, write=5.0, pool=5.0)
ANTHROPIC_VERSION = "2023-06-01"

MAX_RETRIES = 1
BASE_DELAY = 0.5


class LLMError(Exception):
    """A language model call failed; callers fall back."""


# ---------------------------------------------------------------------------
# Circuit Breaker
# States: CLOSED (normal) → OPEN (failing) → HALF_OPEN (testing recovery)
# ---------------------------------------------------------------------------

@dataclass
class CircuitBreaker:
    """Skips calls to a provider that keeps failing."""

    failure_threshold: int = 5
    reset_seconds: int = 60
    _failure_count: int = field(default=0, repr=False)
    _last_failure_time: float = field(default=0.0, repr=False)
    _state: str = field(default="closed", repr=False)  # closed, open, half_open

    @property
    def state(self) -> str:
        if self._state == "open":
            if time.monotonic() - self._last_failure_time >= self.reset_seconds:
                self._state = "half_open"
        return self._state

    def allow_request(self) -> bool:
        return self.state != "open"

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = "closed"

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()
        if self._failure_count >= self.failure_threshold:
            self._state = "open"
            logger.warning(
                "Circuit breaker OPEN after %d failures (reset in %ds)",
                self._failure_count, self.reset_seconds,
            )


class LLMClient:
    """Prompt-in, text-out client for one model."""

    def __init__(
        self,
        api_key: str,
        model: str,
        api_url: str = "https://api.anthropic.com/v1/messages",
        timeout: float = 8.0,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout
        self.breaker = CircuitBreaker()

    @classmethod
    def from_settings(cls) -> "LLMClient":
        return cls(
            api_key=settings.anthropic_api_key,
            model=settings.llm_model,
            api_url=settings.llm_api_url,
            timeout=settings.llm_timeout_seconds,
        )

    @mlflow.trace(name="llm_complete", span_type=SpanType.CHAT_MODEL)
    async def complete(self, prompt: str, max_tokens: int) -> str | None:
        """Send one user message and return the first text block.

        Returns None when the reply's first content block is not text.

        Raises:
            LLMError: on any transport, HTTP, timeout, or payload failure.
        """
        if not self.api_key:
            raise LLMError("No language model API key configured")
        if not self.breaker.allow_request():
            raise LLMError("Circuit breaker open, skipping language model call")

        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            data = await asyncio.wait_for(self._post(payload), timeout=self.timeout)
            block = data["content"][0]
            block_type = block["type"]
        except asyncio.TimeoutError as e:
            self.breaker.record_failure()
            raise LLMError(f"Language model call timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            self.breaker.record_failure()
            raise LLMError(f"Language model request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            self.breaker.record_failure()
            raise LLMError(f"Unexpected language model response structure: {e!r}") from e

        self.breaker.record_success()
        usage = data.get("usage") or {}
        logger.info(
            "LLM response (model=%s, input_tokens=%s, output_tokens=%s)",
            self.model, usage.get("input_tokens", 0), usage.get("output_tokens", 0),
        )
        if block_type != "text":
            return None
        return block.get("text", "")

    async def _post(self, payload: dict) -> dict:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        async with httpx.AsyncClient(timeout=LLM_TIMEOUT) as client:
            for attempt in range(MAX_RETRIES + 1):
                try:
                    resp = await client.post(self.api_url, json=payload, headers=headers)
                    resp.raise_for_status()
                    return resp.json()
                except httpx.HTTPStatusError as e:
                    status = e.response.status_code
                    if (status == 429 or status >= 500) and attempt < MAX_RETRIES:
                        delay = BASE_DELAY * (2 ** attempt)
                        logger.warning(
                            "LLM %d (attempt %d/%d), retrying in %.1fs",
                            status, attempt + 1, MAX_RETRIES + 1, delay,
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise
        raise LLMError("Language model retries exhausted")
