"""Unit tests for the asyncio dispatcher.

A real controller is driven through the dispatcher while the aggregator
and the article store are stubs that fail or block on demand.
"""

import asyncio

import pytest

from rss_reader.errors import FetchError, StorageError
from rss_reader.models.schemas import ArticleRecord, FetchErrorKind
from rss_reader.tui.app import AsyncioDispatcher
from rss_reader.tui.controller import FeedListView, ItemListView, NavEvent, NavigationController
from tests.conftest import make_item, make_source

pytestmark = pytest.mark.anyio


FEED_A = make_source("Feed A", "https://a.example.com/rss")
FEED_B = make_source("Feed B", "https://b.example.com/rss")
FEED_C = make_source("Feed C", "https://c.example.com/rss")


class StubAggregator:
    """Answers fetches with items, raises ``error``, or blocks until released."""

    def __init__(self, error=None, block=False):
        self.error = error
        self.block = block
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.cancelled = False

    async def _wait_if_blocked(self):
        self.started.set()
        if self.block:
            try:
                await self.release.wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise

    async def fetch_items(self, source):
        await self._wait_if_blocked()
        if self.error is not None:
            raise self.error
        return [make_item(f"{source.name} {n}", source_name=source.name) for n in range(2)]

    async def fetch_all(self, sources):
        await self._wait_if_blocked()
        if self.error is not None:
            raise self.error
        return [(source, await self.fetch_items(source)) for source in sources]


class StubStore:
    def __init__(self, error=None):
        self.error = error

    async def store_item(self, item):
        if self.error is not None:
            raise self.error
        return ArticleRecord(
            fetched_at=make_item().published_at,
            article_name=item.title,
            source_name=item.source_name,
            storage_path="articles/stored.md",
        )


def build(aggregator, store=None):
    dispatcher = AsyncioDispatcher(aggregator, store or StubStore())
    controller = NavigationController([FEED_A, FEED_B, FEED_C], dispatcher)
    changes = []
    dispatcher.bind(controller, on_change=lambda: changes.append(controller.top))
    return controller, dispatcher, changes


class TestFetch:
    """Tests for single feed fetches."""

    async def test_success_pushes_item_list(self):
        """Test a completed fetch opens the feed's items."""
        controller, dispatcher, changes = build(StubAggregator())

        controller.handle_event(NavEvent.SELECT)
        await dispatcher.wait()

        assert isinstance(controller.top, ItemListView)
        assert [item.title for item in controller.top.items] == ["Feed A 0", "Feed A 1"]
        assert len(changes) == 1

    async def test_unexpected_exception_becomes_error_item(self):
        """Test a non-fetch exception is shown as a network error item."""
        controller, dispatcher, changes = build(StubAggregator(error=RuntimeError("boom")))

        controller.handle_event(NavEvent.SELECT)
        await dispatcher.wait()

        [entry] = controller.top.items
        assert isinstance(entry, FetchError)
        assert entry.kind == FetchErrorKind.NETWORK
        model = controller.current_render_model()
        assert model.notice == "Feed A: boom"
        assert model.feed_status[0] == "error: network"
        assert len(changes) == 1

    async def test_fetch_error_keeps_its_kind(self):
        """Test a FetchError from the aggregator is shown as is."""
        error = FetchError(FetchErrorKind.PARSE, "Feed A", "not a feed")
        controller, dispatcher, _ = build(StubAggregator(error=error))

        controller.handle_event(NavEvent.SELECT)
        await dispatcher.wait()

        assert controller.top.items == (error,)
        assert controller.current_render_model().feed_status[0] == "error: parse"

    async def test_late_result_after_back_is_discarded(self):
        """Test a fetch finishing after the user backed out changes nothing."""
        aggregator = StubAggregator(block=True)
        controller, dispatcher, changes = build(aggregator)

        controller.handle_event(NavEvent.SELECT)
        await aggregator.started.wait()
        controller.handle_event(NavEvent.BACK)
        aggregator.release.set()
        await dispatcher.wait()

        assert len(controller.stack) == 1
        assert controller.pending is None
        assert len(changes) == 1


class TestBatch:
    """Tests for refreshing every feed."""

    async def test_success_updates_all_statuses(self):
        """Test a refresh records an item count per feed."""
        controller, dispatcher, _ = build(StubAggregator())

        controller.handle_event(NavEvent.REFRESH)
        await dispatcher.wait()

        model = controller.current_render_model()
        assert model.feed_status == ("2 items", "2 items", "2 items")
        assert model.notice == "Refreshed 3 feeds (0 failed)"

    async def test_unexpected_exception_fails_every_feed(self):
        """Test a batch that raises marks every feed as failed."""
        controller, dispatcher, changes = build(StubAggregator(error=RuntimeError("down")))

        controller.handle_event(NavEvent.REFRESH)
        await dispatcher.wait()

        model = controller.current_render_model()
        assert model.feed_status == ("error: network",) * 3
        assert model.notice == "Refreshed 3 feeds (3 failed)"
        assert not model.loading
        assert len(changes) == 1


class TestSave:
    """Tests for saving the selected item."""

    async def open_items(self, controller, dispatcher):
        controller.handle_event(NavEvent.SELECT)
        await dispatcher.wait()

    async def test_success_reports_path(self):
        """Test a save reports where the article went."""
        controller, dispatcher, _ = build(StubAggregator())
        await self.open_items(controller, dispatcher)

        controller.handle_event(NavEvent.SAVE)
        await dispatcher.wait()

        assert controller.current_render_model().notice == (
            "Saved 'Feed A 0' to articles/stored.md"
        )

    @pytest.mark.parametrize(
        "error", [StorageError("index locked"), OSError("disk full"), RuntimeError("disk full")]
    )
    async def test_failure_becomes_notice(self, error):
        """Test any save failure is reported as a notice."""
        controller, dispatcher, changes = build(StubAggregator(), StubStore(error=error))
        await self.open_items(controller, dispatcher)

        controller.handle_event(NavEvent.SAVE)
        await dispatcher.wait()

        assert controller.current_render_model().notice == f"Save failed: {error}"
        assert isinstance(controller.top, ItemListView)
        assert len(changes) == 2


class TestCancellation:
    """Tests for cancelling outstanding work."""

    async def test_cancel_all_applies_nothing(self):
        """Test a cancelled fetch never reaches the controller."""
        aggregator = StubAggregator(block=True)
        controller, dispatcher, changes = build(aggregator)

        controller.handle_event(NavEvent.SELECT)
        request = controller.pending
        await aggregator.started.wait()
        dispatcher.cancel_all()
        await dispatcher.wait()

        assert aggregator.cancelled
        assert isinstance(controller.top, FeedListView)
        assert controller.pending == request
        assert changes == []

    async def test_quit_cancels_outstanding_work(self):
        """Test quitting cancels a blocked fetch and batch."""
        aggregator = StubAggregator(block=True)
        controller, dispatcher, changes = build(aggregator)

        controller.handle_event(NavEvent.REFRESH)
        controller.handle_event(NavEvent.SELECT)
        await aggregator.started.wait()
        controller.handle_event(NavEvent.QUIT)
        await dispatcher.wait()

        assert aggregator.cancelled
        assert not controller.running
        assert len(controller.stack) == 1
        assert controller.current_render_model().feed_status == ("", "", "")
        assert changes == []

    async def test_wait_without_tasks_returns(self):
        """Test waiting with nothing outstanding returns at once."""
        _, dispatcher, _ = build(StubAggregator())

        await dispatcher.wait()
