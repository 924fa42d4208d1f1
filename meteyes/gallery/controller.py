"""Gallery controller: owns the result set, paging, view mode and favorites view.

Modes:
  - gallery:   one page of the current search result set
  - favorites: every favorite, unpaged
  - detail:    a single artwork; back() returns to the mode it was opened from

The view layer reads state from the controller (records, pager, error, ...)
and only ever calls its commands. Commands that replace the visible records
take a ticket; a response whose ticket is no longer current is discarded, so
a slow page load can never overwrite the results of a newer search.
"""

import asyncio
import logging
from enum import Enum
from typing import Protocol

from meteyes.config import settings
from meteyes.errors import InvalidStateError, MetEyesError, UpstreamError, ValidationError
from meteyes.gallery.favorites import FavoritesStore
from meteyes.schemas import ArtworkRecord, PagerInfo, SearchResult

logger = logging.getLogger(__name__)

SEARCH_ERROR = "Error loading art. Please check your connection and try again."
DETAIL_ERROR = "Could not load details for this artwork."
INSIGHT_ERROR = "Error connecting to the AI assistant."
INSIGHT_RATE_LIMITED = "The AI assistant is busy right now. Please try again later."
NO_RESULTS = "No results found. Try a different search term."
NO_FAVORITES = "You haven't favorited any art yet."


class ViewMode(str, Enum):
    GALLERY = "gallery"
    FAVORITES = "favorites"
    DETAIL = "detail"


class CollectionSource(Protocol):
    async def search(self, query: str) -> SearchResult: ...

    async def get_object(self, object_id: int) -> ArtworkRecord | None: ...


class InsightSource(Protocol):
    async def request_insight(self, record: ArtworkRecord) -> str: ...


class GalleryController:
    """Single-session state machine over search results, favorites and detail."""

    def __init__(
        self,
        collection: CollectionSource,
        favorites: FavoritesStore,
        insight: InsightSource | None = None,
        page_size: int | None = None,
    ):
        self.collection = collection
        self.favorites = favorites
        self.insight = insight
        self.page_size = page_size or settings.page_size
        if self.page_size < 1:
            raise ValueError("page_size must be positive")

        self.query = ""
        self.all_ids: list[int] = []
        self.current_page = 0
        self.view_mode = ViewMode.GALLERY
        self.records: list[ArtworkRecord] = []
        self.error: str | None = None

        self.current_detail_id: int | None = None
        self.current_record: ArtworkRecord | None = None
        self.insight_text: str | None = None
        self.insight_error: str | None = None

        self._previous_mode = ViewMode.GALLERY
        self._ticket = 0
        self._detail_ticket = 0

    # ═══════════════ QUERIES ═══════════════

    @property
    def total(self) -> int:
        return len(self.all_ids)

    @property
    def last_page(self) -> int:
        if not self.all_ids:
            return 0
        return (len(self.all_ids) - 1) // self.page_size

    @property
    def pager(self) -> PagerInfo:
        total = len(self.all_ids)
        if self.view_mode != ViewMode.GALLERY or total <= self.page_size:
            return PagerInfo(total=total)
        start = self.current_page * self.page_size + 1
        end = min((self.current_page + 1) * self.page_size, total)
        return PagerInfo(
            start=start,
            end=end,
            total=total,
            has_prev=self.current_page > 0,
            has_next=end < total,
            visible=True,
        )

    @property
    def empty_message(self) -> str | None:
        """Placeholder text when the current list has nothing to show."""
        if self.view_mode == ViewMode.DETAIL or self.records or self.error:
            return None
        if self.view_mode == ViewMode.FAVORITES:
            return NO_FAVORITES if not self.favorites.list() else NO_RESULTS
        return NO_RESULTS

    def page_ids(self, page: int) -> list[int]:
        return self.all_ids[page * self.page_size:(page + 1) * self.page_size]

    def is_favorite(self, object_id: int) -> bool:
        return self.favorites.has(object_id)

    # ═══════════════ COMMANDS ═══════════════

    async def search(self, query: str) -> list[ArtworkRecord]:
        """Start a new result set and load its first page."""
        query = (query or "").strip()
        if not query:
            self.error = "Please enter a search term."
            raise ValidationError(self.error)

        ticket = self._next_ticket()
        self.query = query
        self.all_ids = []
        self.current_page = 0
        self.records = []
        self.error = None
        self.view_mode = ViewMode.GALLERY
        self._clear_detail()

        try:
            result = await self.collection.search(query)
        except MetEyesError as e:
            if ticket != self._ticket:
                return self.records
            logger.warning("Search failed | query=%s | %s", query[:80], e.message[:200])
            self.error = SEARCH_ERROR
            return self.records

        if ticket != self._ticket:
            logger.info("Stale search discarded | query=%s", query[:80])
            return self.records

        self.all_ids = list(result.objectIDs) if result.total > 0 else []
        logger.info("Search | query=%s | ids=%d", query[:80], len(self.all_ids))
        return await self._load_page(0)

    async def load_page(self, page: int) -> list[ArtworkRecord]:
        """Fetch the records of ``page`` in parallel, keeping result-set order."""
        if self.view_mode != ViewMode.GALLERY:
            raise InvalidStateError(f"cannot load a page in {self.view_mode.value} mode")
        if page < 0 or page > self.last_page:
            raise ValidationError(f"page {page} out of range 0..{self.last_page}")
        return await self._load_page(page)

    async def _load_page(self, page: int) -> list[ArtworkRecord]:
        ticket = self._next_ticket()
        records = await self._fetch_all(self.page_ids(page))

        if ticket != self._ticket:
            logger.info("Stale page discarded | page=%d", page)
            return self.records

        self.current_page = page
        self.records = records
        logger.info("Page loaded | page=%d/%d | records=%d", page, self.last_page, len(records))
        return self.records

    async def next_page(self) -> list[ArtworkRecord]:
        self._require_gallery("next page")
        if self.current_page >= self.last_page:
            return self.records
        return await self.load_page(self.current_page + 1)

    async def prev_page(self) -> list[ArtworkRecord]:
        self._require_gallery("previous page")
        if self.current_page <= 0:
            return self.records
        return await self.load_page(self.current_page - 1)

    async def show_gallery(self) -> list[ArtworkRecord]:
        """Leave the favorites view and reload the current result page."""
        self._clear_detail()
        self.view_mode = ViewMode.GALLERY
        self.error = None
        return await self.load_page(self.current_page)

    async def show_favorites(self) -> list[ArtworkRecord]:
        """Show every favorite as one unpaged list (snapshot taken now)."""
        ticket = self._next_ticket()
        self._clear_detail()
        self.view_mode = ViewMode.FAVORITES
        self.error = None
        self.records = []

        ids = sorted(self.favorites.list())
        records = await self._fetch_all(ids)

        if ticket != self._ticket:
            logger.info("Stale favorites load discarded")
            return self.records

        self.records = records
        logger.info("Favorites loaded | ids=%d | records=%d", len(ids), len(records))
        return self.records

    async def show_detail(self, object_id: int) -> ArtworkRecord | None:
        """Open one artwork. On failure the current view stays and ``error`` is set."""
        self._detail_ticket += 1
        ticket = self._detail_ticket

        record = await self.collection.get_object(object_id)
        if ticket != self._detail_ticket:
            return None
        if record is None:
            logger.warning("Detail unavailable | id=%s", object_id)
            self.error = DETAIL_ERROR
            return None

        if self.view_mode != ViewMode.DETAIL:
            self._previous_mode = self.view_mode
        self.view_mode = ViewMode.DETAIL
        self.current_detail_id = object_id
        self.current_record = record
        self.insight_text = None
        self.insight_error = None
        self.error = None
        return record

    def back(self) -> ViewMode:
        """Return to the view the detail page was opened from."""
        if self.view_mode == ViewMode.DETAIL:
            self.view_mode = self._previous_mode
            self._clear_detail()
        return self.view_mode

    def toggle_favorite(self, object_id: int) -> bool:
        return self.favorites.toggle(object_id)

    async def request_insight(self) -> str | None:
        """Ask for an AI commentary on the artwork shown in detail view."""
        if self.view_mode != ViewMode.DETAIL or self.current_record is None:
            raise InvalidStateError("no artwork is open")
        if self.insight is None:
            raise InvalidStateError("no insight client configured")

        record = self.current_record
        self.insight_text = None
        self.insight_error = None
        try:
            text = await self.insight.request_insight(record)
        except UpstreamError as e:
            if self.current_record is record:
                self.insight_error = INSIGHT_RATE_LIMITED if e.is_rate_limited else f"{INSIGHT_ERROR} {e.message}"
            return None
        except MetEyesError as e:
            if self.current_record is record:
                self.insight_error = f"{INSIGHT_ERROR} {e.message}"
            return None

        if self.current_record is not record:
            logger.info("Stale insight discarded | id=%s", record.objectID)
            return None
        self.insight_text = text
        return text

    # ═══════════════ HELPERS ═══════════════

    def _next_ticket(self) -> int:
        self._ticket += 1
        return self._ticket

    def _require_gallery(self, action: str) -> None:
        if self.view_mode != ViewMode.GALLERY:
            raise InvalidStateError(f"cannot go to {action} in {self.view_mode.value} mode")

    def _clear_detail(self) -> None:
        self._detail_ticket += 1
        self.current_detail_id = None
        self.current_record = None
        self.insight_text = None
        self.insight_error = None

    async def _fetch_all(self, ids: list[int]) -> list[ArtworkRecord]:
        """Fetch all ids concurrently; drop failures, keep input order."""
        if not ids:
            return []
        results = await asyncio.gather(
            *(self.collection.get_object(object_id) for object_id in ids),
            return_exceptions=True,
        )
        records = []
        for object_id, result in zip(ids, results):
            if isinstance(result, Exception):
                logger.warning("Object fetch raised | id=%s | %s", object_id, str(result)[:200])
            elif result is not None:
                records.append(result)
        return records
