"""LLM clients used for session and recap summaries.

Every call returns a ``SummaryResult``. Network errors, timeouts, non-2xx
responses, malformed bodies and empty text are reported as failures so the
caller can move on to its next fallback.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

LLM_TIMEOUT_SECONDS = 25.0
DEFAULT_MAX_TOKENS = 280

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-haiku-20241022"

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class SummaryResult:
    """Outcome of one summarization call."""

    text: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None

    @classmethod
    def success(cls, text: str) -> SummaryResult:
        return cls(text=text)

    @classmethod
    def failure(cls, reason: str) -> SummaryResult:
        return cls(error=reason)


class SummarizerClient(Protocol):
    """Anything that can turn a prompt into a SummaryResult."""

    name: str

    async def complete(self, prompt: str) -> SummaryResult: ...


class HttpSummarizerClient(ABC):
    """Shared request/timeout handling for JSON-over-HTTP chat APIs.

    Subclasses provide the endpoint, headers, request body and a way to
    pull the text out of the response body.
    """

    name = "http"
    url = ""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Provider API key.
            model: Model ID sent with every request.
            max_tokens: Output token cap per call.
            timeout: Seconds before a call is abandoned.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.transport = transport

    @abstractmethod
    def _headers(self) -> dict[str, str]:
        """Request headers, including authentication."""

    def _body(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    @abstractmethod
    def _extract_text(self, data: Any) -> str | None:
        """Pull the reply text out of a decoded response body."""

    async def _post(self, prompt: str) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            return await client.post(self.url, headers=self._headers(), json=self._body(prompt))

    async def complete(self, prompt: str) -> SummaryResult:
        try:
            response = await asyncio.wait_for(self._post(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug(f"{self.name}: request timed out after {self.timeout}s")
            return SummaryResult.failure("timeout")
        except httpx.HTTPError as e:
            logger.debug(f"{self.name}: request failed: {e}")
            return SummaryResult.failure(f"http error: {e}")

        if not response.is_success:
            logger.debug(f"{self.name}: HTTP {response.status_code}")
            return SummaryResult.failure(f"status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            logger.debug(f"{self.name}: malformed response body: {e}")
            return SummaryResult.failure("malformed body")

        text = self._extract_text(data)
        if text is None or not text.strip():
            return SummaryResult.failure("empty response")
        return SummaryResult.success(text)


class AnthropicClient(HttpSummarizerClient):
    """Anthropic Messages API."""

    name = "anthropic"
    url = ANTHROPIC_URL

    def __init__(self, api_key: str, model: str | None = None, **kwargs):
        super().__init__(api_key, model or DEFAULT_ANTHROPIC_MODEL, **kwargs)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def _extract_text(self, data: Any) -> str | None:
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, list) or not content:
            return None
        first = content[0]
        text = first.get("text") if isinstance(first, dict) else None
        return text if isinstance(text, str) else None


class OpenAIClient(HttpSummarizerClient):
    """OpenAI Chat Completions API."""

    name = "openai"
    url = OPENAI_URL

    def __init__(self, api_key: str, model: str | None = None, **kwargs):
        super().__init__(api_key, model or DEFAULT_OPENAI_MODEL, **kwargs)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _extract_text(self, data: Any) -> str | None:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        text = message.get("content") if isinstance(message, dict) else None
        return text if isinstance(text, str) else None


def build_client(config, transport: httpx.AsyncBaseTransport | None = None) -> SummarizerClient | None:
    """Create the client for the configured provider.

    Args:
        config: DevDayConfig with provider choice and API keys.
        transport: Optional httpx transport passed through to the client.

    Returns:
        A client, or None if summarization is disabled or has no key.
    """
    kwargs = {
        "max_tokens": config.summary_max_tokens,
        "timeout": config.summary_timeout,
        "transport": transport,
    }
    if config.preferred_summarizer == "anthropic" and config.anthropic_api_key:
        return AnthropicClient(config.anthropic_api_key, config.summarizer_model, **kwargs)
    if config.preferred_summarizer == "openai" and config.openai_api_key:
        return OpenAIClient(config.openai_api_key, config.summarizer_model, **kwargs)
    return None
