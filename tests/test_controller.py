"""Tests for the gallery controller: paging, favorites view, detail and stale results."""

import asyncio

import pytest

from meteyes.errors import InvalidStateError, NetworkError, UpstreamError, ValidationError
from meteyes.gallery.controller import (
    DETAIL_ERROR,
    INSIGHT_RATE_LIMITED,
    NO_FAVORITES,
    NO_RESULTS,
    SEARCH_ERROR,
    GalleryController,
    ViewMode,
)
from meteyes.gallery.favorites import FavoritesStore
from meteyes.gallery.storage import MemoryStorage
from meteyes.schemas import ArtworkRecord, SearchResult

PAGE_SIZE = 21


class FakeCollection:
    """In-memory collection API with per-id failures, delays and search gates."""

    def __init__(self, results: dict[str, list[int]] | None = None, missing: set[int] | None = None):
        self.results = results or {}
        self.missing = missing or set()
        self.delays: dict[int, float] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.search_error: Exception | None = None
        self.searches: list[str] = []
        self.fetched: list[int] = []

    async def search(self, query: str) -> SearchResult:
        self.searches.append(query)
        if query in self.gates:
            await self.gates[query].wait()
        if self.search_error is not None:
            raise self.search_error
        ids = self.results.get(query, [])
        return SearchResult(total=len(ids), objectIDs=ids or None)

    async def get_object(self, object_id: int) -> ArtworkRecord | None:
        self.fetched.append(object_id)
        await asyncio.sleep(self.delays.get(object_id, 0))
        if object_id in self.missing:
            return None
        return ArtworkRecord(objectID=object_id, title=f"Artwork {object_id}")


class FakeInsight:
    def __init__(self, text: str = "A fine painting.", error: Exception | None = None):
        self.text = text
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls = 0

    async def request_insight(self, record: ArtworkRecord) -> str:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return f"{self.text} ({record.objectID})"


@pytest.fixture
def favorites():
    return FavoritesStore(MemoryStorage(), key="favs")


@pytest.fixture
def collection():
    return FakeCollection(results={
        "sunflowers": [1, 2, 3],
        "many": list(range(100, 150)),       # 50 ids: pages of 21, 21, 8
        "exact": list(range(200, 242)),      # 42 ids: pages of 21, 21
        "few": list(range(300, 310)),
    })


@pytest.fixture
def insight():
    return FakeInsight()


@pytest.fixture
def controller(collection, favorites, insight):
    return GalleryController(collection, favorites, insight=insight, page_size=PAGE_SIZE)


def _ids(records):
    return [r.objectID for r in records]


class TestSearch:
    @pytest.mark.asyncio
    async def test_partial_page_failure_keeps_order(self, controller, collection):
        """sunflowers -> [1, 2, 3] with 2 missing shows [1, 3]."""
        collection.missing = {2}
        records = await controller.search("sunflowers")

        assert _ids(records) == [1, 3]
        assert controller.all_ids == [1, 2, 3]
        assert controller.view_mode == ViewMode.GALLERY
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_order_independent_of_arrival(self, controller, collection):
        collection.delays = {1: 0.05, 2: 0.01}
        records = await controller.search("sunflowers")
        assert _ids(records) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_zero_results_is_not_an_error(self, controller):
        records = await controller.search("nothing-matches")
        assert records == []
        assert controller.all_ids == []
        assert controller.error is None
        assert controller.empty_message == NO_RESULTS

    @pytest.mark.asyncio
    async def test_new_search_resets_page(self, controller):
        await controller.search("many")
        await controller.next_page()
        assert controller.current_page == 1

        await controller.search("few")
        assert controller.current_page == 0
        assert controller.all_ids == list(range(300, 310))

    @pytest.mark.asyncio
    async def test_empty_query_fails_before_network(self, controller, collection):
        with pytest.raises(ValidationError):
            await controller.search("   ")
        assert collection.searches == []
        assert controller.error == "Please enter a search term."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [UpstreamError("HTTP error! Status: 500", 500), NetworkError("offline")])
    async def test_search_failure_is_user_visible(self, controller, collection, error):
        collection.search_error = error
        records = await controller.search("sunflowers")
        assert records == []
        assert controller.error == SEARCH_ERROR
        assert controller.empty_message is None

    @pytest.mark.asyncio
    async def test_stale_search_is_discarded(self, controller, collection):
        """A slow earlier search must not overwrite a newer one."""
        gate = asyncio.Event()
        collection.gates["sunflowers"] = gate

        slow = asyncio.create_task(controller.search("sunflowers"))
        await asyncio.sleep(0)
        await controller.search("few")

        gate.set()
        await slow

        assert controller.query == "few"
        assert controller.all_ids == list(range(300, 310))
        assert _ids(controller.records) == list(range(300, 310))


class TestPagination:
    @pytest.mark.asyncio
    async def test_last_page_partial(self, controller):
        await controller.search("many")
        assert controller.last_page == 2

        records = await controller.load_page(2)
        assert len(records) == 50 % PAGE_SIZE
        assert _ids(records) == list(range(142, 150))

    @pytest.mark.asyncio
    async def test_last_page_full(self, controller):
        await controller.search("exact")
        assert controller.last_page == 1
        records = await controller.load_page(controller.last_page)
        assert len(records) == PAGE_SIZE

    @pytest.mark.asyncio
    async def test_next_page_at_end_is_noop(self, controller, collection):
        await controller.search("many")
        await controller.load_page(2)
        fetched = len(collection.fetched)

        records = await controller.next_page()
        assert controller.current_page == 2
        assert len(records) == 8
        assert len(collection.fetched) == fetched

    @pytest.mark.asyncio
    async def test_prev_page_at_start_is_noop(self, controller, collection):
        await controller.search("many")
        fetched = len(collection.fetched)
        await controller.prev_page()
        assert controller.current_page == 0
        assert len(collection.fetched) == fetched

    @pytest.mark.asyncio
    async def test_next_then_prev(self, controller):
        await controller.search("many")
        records = await controller.next_page()
        assert _ids(records)[0] == 121
        records = await controller.prev_page()
        assert _ids(records)[0] == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page", [-1, 3])
    async def test_out_of_range_page(self, controller, page):
        await controller.search("many")
        with pytest.raises(ValidationError):
            await controller.load_page(page)

    @pytest.mark.asyncio
    async def test_page_on_empty_result_set(self, controller):
        await controller.search("nothing-matches")
        assert await controller.load_page(0) == []

    @pytest.mark.asyncio
    async def test_paging_only_in_gallery(self, controller):
        await controller.show_favorites()
        with pytest.raises(InvalidStateError):
            await controller.next_page()
        with pytest.raises(InvalidStateError):
            await controller.load_page(0)


class TestPager:
    @pytest.mark.asyncio
    async def test_first_page(self, controller):
        await controller.search("many")
        pager = controller.pager
        assert pager.visible
        assert pager.label == "Showing 1-21 of 50"
        assert not pager.has_prev
        assert pager.has_next

    @pytest.mark.asyncio
    async def test_last_page(self, controller):
        await controller.search("many")
        await controller.load_page(2)
        pager = controller.pager
        assert pager.label == "Showing 43-50 of 50"
        assert pager.has_prev
        assert not pager.has_next

    @pytest.mark.asyncio
    async def test_hidden_for_single_page(self, controller):
        await controller.search("few")
        assert controller.pager.visible is False

    @pytest.mark.asyncio
    async def test_hidden_outside_gallery(self, controller):
        await controller.search("many")
        await controller.show_detail(100)
        assert controller.pager.visible is False


class TestFavoritesView:
    @pytest.mark.asyncio
    async def test_failed_favorite_is_skipped(self, controller, collection, favorites):
        """favorites {5, 7} with 5 failing shows only 7."""
        favorites.toggle(5)
        favorites.toggle(7)
        collection.missing = {5}

        records = await controller.show_favorites()
        assert controller.view_mode == ViewMode.FAVORITES
        assert _ids(records) == [7]

    @pytest.mark.asyncio
    async def test_no_favorites(self, controller):
        records = await controller.show_favorites()
        assert records == []
        assert controller.empty_message == NO_FAVORITES

    @pytest.mark.asyncio
    async def test_favorites_are_unpaged(self, controller, favorites):
        for object_id in range(30):
            favorites.toggle(object_id)
        records = await controller.show_favorites()
        assert len(records) == 30

    @pytest.mark.asyncio
    async def test_back_to_gallery_keeps_result_set(self, controller):
        await controller.search("many")
        await controller.next_page()
        await controller.show_favorites()

        records = await controller.show_gallery()
        assert controller.view_mode == ViewMode.GALLERY
        assert controller.current_page == 1
        assert _ids(records)[0] == 121

    @pytest.mark.asyncio
    async def test_toggle_through_controller(self, controller, favorites):
        assert controller.toggle_favorite(3) is True
        assert controller.is_favorite(3)
        assert favorites.list() == {3}
        assert controller.toggle_favorite(3) is False
        assert not controller.is_favorite(3)


class TestDetail:
    @pytest.mark.asyncio
    async def test_show_detail_and_back_to_gallery(self, controller):
        await controller.search("many")
        await controller.next_page()
        page_records = list(controller.records)

        record = await controller.show_detail(125)
        assert record.objectID == 125
        assert controller.view_mode == ViewMode.DETAIL
        assert controller.current_detail_id == 125

        assert controller.back() == ViewMode.GALLERY
        assert controller.current_page == 1
        assert controller.records == page_records
        assert controller.current_detail_id is None

    @pytest.mark.asyncio
    async def test_back_to_favorites(self, controller, favorites):
        favorites.toggle(9)
        await controller.show_favorites()
        await controller.show_detail(9)
        assert controller.back() == ViewMode.FAVORITES
        assert _ids(controller.records) == [9]

    @pytest.mark.asyncio
    async def test_missing_detail_is_user_visible(self, controller, collection):
        await controller.search("sunflowers")
        collection.missing = {2}

        assert await controller.show_detail(2) is None
        assert controller.error == DETAIL_ERROR
        assert controller.view_mode == ViewMode.GALLERY

    @pytest.mark.asyncio
    async def test_back_outside_detail_is_noop(self, controller):
        await controller.search("few")
        assert controller.back() == ViewMode.GALLERY

    @pytest.mark.asyncio
    async def test_search_from_detail_leaves_detail(self, controller):
        await controller.search("few")
        await controller.show_detail(300)
        await controller.search("sunflowers")
        assert controller.view_mode == ViewMode.GALLERY
        assert controller.current_record is None


class TestInsight:
    @pytest.mark.asyncio
    async def test_request_insight(self, controller, insight):
        await controller.search("few")
        await controller.show_detail(301)
        text = await controller.request_insight()
        assert text == "A fine painting. (301)"
        assert controller.insight_text == text
        assert controller.insight_error is None

    @pytest.mark.asyncio
    async def test_rate_limited_message(self, controller, insight):
        insight.error = UpstreamError("Rate limit exceeded. Please try again later.", 429)
        await controller.search("few")
        await controller.show_detail(301)
        assert await controller.request_insight() is None
        assert controller.insight_error == INSIGHT_RATE_LIMITED

    @pytest.mark.asyncio
    async def test_generic_failure_message(self, controller, insight):
        insight.error = NetworkError("Insight proxy unreachable: ConnectError")
        await controller.search("few")
        await controller.show_detail(301)
        await controller.request_insight()
        assert controller.insight_error.startswith("Error connecting to the AI assistant.")

    @pytest.mark.asyncio
    async def test_requires_detail_mode(self, controller):
        await controller.search("few")
        with pytest.raises(InvalidStateError):
            await controller.request_insight()

    @pytest.mark.asyncio
    async def test_leaving_detail_clears_insight(self, controller):
        await controller.search("few")
        await controller.show_detail(301)
        await controller.request_insight()
        controller.back()
        assert controller.insight_text is None


class TestStaleResponses:
    """Responses that arrive after a newer command must not replace its state."""

    @pytest.mark.asyncio
    async def test_slow_page_load_overtaken_by_search(self, controller, collection):
        await controller.search("many")
        collection.delays = {121: 0.05}

        slow = asyncio.create_task(controller.next_page())
        await asyncio.sleep(0)
        await controller.search("few")
        await slow

        assert controller.current_page == 0
        assert controller.all_ids == list(range(300, 310))
        assert _ids(controller.records) == list(range(300, 310))

    @pytest.mark.asyncio
    async def test_slow_favorites_overtaken_by_search(self, controller, collection, favorites):
        favorites.toggle(5)
        collection.delays = {5: 0.05}

        slow = asyncio.create_task(controller.show_favorites())
        await asyncio.sleep(0)
        await controller.search("few")
        await slow

        assert controller.view_mode == ViewMode.GALLERY
        assert _ids(controller.records) == list(range(300, 310))

    @pytest.mark.asyncio
    async def test_slow_detail_overtaken_by_newer_detail(self, controller, collection):
        await controller.search("few")
        collection.delays = {300: 0.05}

        slow = asyncio.create_task(controller.show_detail(300))
        await asyncio.sleep(0)
        await controller.show_detail(301)

        assert await slow is None
        assert controller.current_detail_id == 301
        assert controller.current_record.objectID == 301

    @pytest.mark.asyncio
    async def test_slow_detail_overtaken_by_search(self, controller, collection):
        await controller.search("few")
        collection.delays = {300: 0.05}

        slow = asyncio.create_task(controller.show_detail(300))
        await asyncio.sleep(0)
        await controller.search("sunflowers")

        assert await slow is None
        assert controller.view_mode == ViewMode.GALLERY
        assert controller.current_record is None

    @pytest.mark.asyncio
    async def test_insight_for_previous_artwork_is_discarded(self, controller, insight):
        await controller.search("few")
        await controller.show_detail(301)
        insight.gate = asyncio.Event()

        slow = asyncio.create_task(controller.request_insight())
        await asyncio.sleep(0)
        await controller.show_detail(302)
        insight.gate.set()

        assert await slow is None
        assert controller.current_detail_id == 302
        assert controller.insight_text is None
        assert controller.insight_error is None
