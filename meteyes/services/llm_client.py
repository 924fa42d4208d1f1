"""Async Anthropic API wrapper used by the insight proxy.

The proxy never retries: one upstream call per request, bounded by a hard timeout.
"""

import asyncio
import logging
import time

import anthropic
import httpx

from meteyes.config import settings

logger = logging.getLogger(__name__)

# Singleton client, initialized lazily, rebuilt if the key changes
_client: anthropic.AsyncAnthropic | None = None
_client_key: str | None = None


def _get_client() -> anthropic.AsyncAnthropic:
    global _client, _client_key
    if _client is None or _client_key != settings.anthropic_api_key:
        _client = anthropic.AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            timeout=httpx.Timeout(settings.llm_timeout_seconds, connect=10.0),
            max_retries=0,
        )
        _client_key = settings.anthropic_api_key
    return _client


async def generate_text(prompt: str, max_tokens: int | None = None) -> str:
    """Send ``prompt`` as a single user message and return the response text."""
    client = _get_client()
    model = settings.insight_model
    hard_timeout = settings.llm_timeout_seconds

    start = time.monotonic()
    try:
        response = await asyncio.wait_for(
            client.messages.create(
                model=model,
                max_tokens=max_tokens or settings.insight_max_tokens,
                messages=[{"role": "user", "content": prompt}],
            ),
            timeout=hard_timeout,
        )
    except asyncio.TimeoutError:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.warning("LLM timeout | model=%s | %dms (hard limit %ds)", model, elapsed_ms, hard_timeout)
        raise TimeoutError(f"LLM timeout after {elapsed_ms}ms")
    except anthropic.APIStatusError as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.warning("LLM error | model=%s | status=%d | %dms", model, e.status_code, elapsed_ms)
        raise

    elapsed_ms = int((time.monotonic() - start) * 1000)
    text = extract_text(response.content)
    usage = response.usage
    logger.info(
        "LLM OK | model=%s | tokens_in=%d tokens_out=%d | %dms",
        model, usage.input_tokens, usage.output_tokens, elapsed_ms,
    )
    return text


def extract_text(blocks) -> str:
    """Concatenate the text blocks of a Messages API response."""
    parts = [getattr(b, "text", "") for b in blocks or [] if getattr(b, "type", "") == "text"]
    return "".join(parts).strip()
