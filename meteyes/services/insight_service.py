"""Insight proxy core: validate, check cache, call upstream, map errors.

Status mapping:
  - 400  prompt missing or blank
  - 429  upstream quota / rate limit exhausted
  - 500  credential absent or rejected, or any other upstream failure

Error messages are fixed strings; upstream details stay in the server log.
"""

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

import anthropic

from meteyes.config import settings
from meteyes.services import llm_client
from meteyes.services.cache import InsightCache

logger = logging.getLogger(__name__)

RATE_LIMIT_MARKERS = ("quota", "rate limit", "rate_limit", "resource exhausted", "resource_exhausted")
CREDENTIAL_MARKERS = ("api key", "api_key", "x-api-key")

MSG_PROMPT_REQUIRED = "Invalid request: prompt is required"
MSG_NO_KEY = "Server configuration error: API key not found"
MSG_BAD_KEY = "API key configuration error"
MSG_RATE_LIMITED = "Rate limit exceeded. Please try again later."
MSG_FAILED = "Failed to generate AI insights. Please try again."


class InsightServiceError(Exception):
    """A request that must be answered with an error status."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


@dataclass
class InsightResult:
    text: str
    cached: bool = False


TextGenerator = Callable[[str], Awaitable[str]]


class InsightService:
    """Answers one prompt, at most one upstream call per cache window and key."""

    def __init__(
        self,
        cache: InsightCache | None = None,
        text_generator: TextGenerator | None = None,
    ):
        self.cache = cache or InsightCache()
        self.text_generator = text_generator or llm_client.generate_text

    async def generate(self, prompt: str, object_id: int | str | None = None) -> InsightResult:
        if not isinstance(prompt, str) or not prompt.strip():
            raise InsightServiceError(400, MSG_PROMPT_REQUIRED)

        cache_key = self.cache.make_key(object_id, prompt)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached insight | id=%s", object_id)
            return InsightResult(text=cached, cached=True)

        if not settings.has_anthropic_key:
            logger.error("ANTHROPIC_API_KEY not configured")
            raise InsightServiceError(500, MSG_NO_KEY)

        logger.info("Generating insight | id=%s | prompt_chars=%d", object_id, len(prompt))
        start = time.monotonic()
        try:
            text = await self.text_generator(prompt)
            if not text:
                raise ValueError("Empty response from upstream model")
        except Exception as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error("Insight generation failed | id=%s | %dms | %s", object_id, elapsed_ms, str(e)[:200])
            raise classify_upstream_error(e) from e

        self.cache.set(cache_key, text)
        logger.info("Insight generated | id=%s | chars=%d", object_id, len(text))
        return InsightResult(text=text)


def classify_upstream_error(error: Exception) -> InsightServiceError:
    """Map an upstream failure onto the proxy's status classes."""
    if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return InsightServiceError(500, MSG_BAD_KEY)
    if isinstance(error, anthropic.RateLimitError):
        return InsightServiceError(429, MSG_RATE_LIMITED)

    message = str(error).lower()
    if any(marker in message for marker in CREDENTIAL_MARKERS):
        return InsightServiceError(500, MSG_BAD_KEY)
    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return InsightServiceError(429, MSG_RATE_LIMITED)
    return InsightServiceError(500, MSG_FAILED)
