"""Client for the insight proxy (POST /api/gemini).

Builds the artwork prompt locally and never talks to the text-generation
backend directly; the proxy holds the credential.
"""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import httpx

from meteyes.config import settings
from meteyes.errors import NetworkError, UpstreamError, ValidationError
from meteyes.schemas import ArtworkRecord

logger = logging.getLogger(__name__)


def load_prompt(name: str) -> str:
    """Load a prompt template from meteyes/prompts/{name}.txt."""
    prompt_path = Path(__file__).parent.parent / "prompts" / f"{name}.txt"
    return prompt_path.read_text(encoding="utf-8").strip()


def build_prompt(record: ArtworkRecord) -> str:
    """Deterministic insight prompt for an artwork."""
    title = record.title if isinstance(record.title, str) else ""
    if not title.strip():
        raise ValidationError("artwork must have a valid title")

    return load_prompt("artwork_insight").format(
        title=title,
        artist=record.artistDisplayName or "an unknown artist",
        date=record.objectDate or "an unknown date",
    )


class InsightProxyClient:
    """Async, stateless client for the insight proxy."""

    def __init__(
        self,
        proxy_url: str | None = None,
        timeout: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.proxy_url = proxy_url or settings.insight_proxy_url
        self.timeout = timeout or settings.insight_timeout_seconds
        self._http_client = http_client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def request_insight(self, record: ArtworkRecord) -> str:
        """Ask the proxy for a short commentary about ``record``.

        Raises ValidationError before any request when the title is empty,
        UpstreamError (with status) on a non-2xx answer and NetworkError when
        no response arrives.
        """
        prompt = build_prompt(record)
        payload = {"prompt": prompt, "objectID": record.objectID}

        start = time.monotonic()
        try:
            async with self._session() as client:
                resp = await client.post(self.proxy_url, json=payload)
        except httpx.RequestError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error("Insight proxy network error | %dms | %s", elapsed_ms, str(e)[:200])
            raise NetworkError(f"Insight proxy unreachable: {type(e).__name__}") from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        data = _json_or_empty(resp)

        if not resp.is_success:
            logger.warning(
                "Insight proxy | status=%d | %dms | id=%s",
                resp.status_code, elapsed_ms, record.objectID,
            )
            message = data.get("error") or f"HTTP error! Status: {resp.status_code}"
            raise UpstreamError(str(message), resp.status_code)

        text = data.get("text")
        if not isinstance(text, str) or not text:
            raise UpstreamError("Invalid response structure from proxy.", resp.status_code)

        logger.info(
            "Insight OK | id=%s | chars=%d | cached=%s | %dms",
            record.objectID, len(text), bool(data.get("cached")), elapsed_ms,
        )
        return text


def _json_or_empty(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
