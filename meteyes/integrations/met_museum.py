"""Met Museum Collection API integration (search + object lookup).

Docs: https://metmuseum.github.io/
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from pydantic import ValidationError as PydanticValidationError

from meteyes.config import settings
from meteyes.errors import NetworkError, UpstreamError, ValidationError
from meteyes.schemas import ArtworkRecord, SearchResult

logger = logging.getLogger(__name__)


class MetMuseumClient:
    """Async, stateless client for the Met collection API.

    ``search`` raises on failure; ``get_object`` never does, so a batch of
    lookups can lose single items without losing the rest.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or settings.met_api_base_url).rstrip("/")
        self.timeout = timeout or settings.met_timeout_seconds
        self._http_client = http_client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def search(self, query: str) -> SearchResult:
        """Search the collection for artworks with images."""
        query = (query or "").strip()
        if not query:
            raise ValidationError("Please enter a search term.")

        params = {"q": query, "hasImages": "true"}
        start = time.monotonic()
        try:
            async with self._session() as client:
                resp = await client.get(f"{self.base_url}/search", params=params)
        except httpx.RequestError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error("Met search network error | %dms | %s", elapsed_ms, str(e)[:200])
            raise NetworkError(f"Met search failed: {type(e).__name__}") from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if not resp.is_success:
            logger.warning(
                "Met search | status=%d | %dms | query=%s",
                resp.status_code, elapsed_ms, query[:80],
            )
            raise UpstreamError(f"HTTP error! Status: {resp.status_code}", resp.status_code)

        try:
            result = SearchResult.model_validate(resp.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error("Met search malformed body | %s", str(e)[:200])
            raise UpstreamError("Malformed search response", resp.status_code) from e

        logger.info(
            "Met search OK | ids=%d | total=%d | %dms | query=%s",
            len(result.objectIDs), result.total, elapsed_ms, query[:80],
        )
        return result

    async def get_object(self, object_id: int) -> ArtworkRecord | None:
        """Fetch one artwork. Any failure is logged and returned as None."""
        start = time.monotonic()
        try:
            async with self._session() as client:
                resp = await client.get(f"{self.base_url}/objects/{object_id}")
            elapsed_ms = int((time.monotonic() - start) * 1000)

            if not resp.is_success:
                logger.warning(
                    "Met object | id=%s | status=%d | %dms",
                    object_id, resp.status_code, elapsed_ms,
                )
                return None

            record = ArtworkRecord.model_validate(resp.json())
            logger.debug("Met object OK | id=%s | %dms", object_id, elapsed_ms)
            return record

        except httpx.TimeoutException:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("Met object timeout | id=%s | %dms", object_id, elapsed_ms)
            return None
        except Exception as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error("Met object error | id=%s | %dms | %s", object_id, elapsed_ms, str(e)[:200])
            return None
