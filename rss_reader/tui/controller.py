"""Navigation controller for the terminal UI.

A view-stack state machine: Feed List -> Item List -> Article. The bottom
frame is always the feed list and the stack is never empty. Views are
immutable; every change replaces the top frame.

The controller never does I/O itself. Fetches and saves are handed to a
dispatcher, which reports back through ``apply_fetch_result``,
``apply_batch_result`` and ``apply_save_result``. Each fetch is tagged with
the generation it was issued for; a result arriving after the user has moved
on (back, another selection, quit) is dropped.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from rss_reader.errors import FetchError
from rss_reader.models.schemas import ArticleRecord, FeedItem, FeedSource
from rss_reader.services.content import item_markdown

logger = logging.getLogger(__name__)

PAGE_SIZE = 10

ItemEntry = Union[FeedItem, FetchError]


class NavEvent(Enum):
    UP = "up"
    DOWN = "down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    SELECT = "select"
    BACK = "back"
    REFRESH = "refresh"
    SAVE = "save"
    QUIT = "quit"


@dataclass(frozen=True)
class FeedListView:
    feeds: Tuple[FeedSource, ...]
    selected: int = 0


@dataclass(frozen=True)
class ItemListView:
    source: FeedSource
    items: Tuple[ItemEntry, ...]
    selected: int = 0


@dataclass(frozen=True)
class ArticleView:
    item: FeedItem
    lines: Tuple[str, ...]
    scroll_offset: int = 0


View = Union[FeedListView, ItemListView, ArticleView]


@dataclass(frozen=True)
class FetchRequest:
    """Fetch one feed for the view current at ``generation``.

    ``replace`` reloads the items of an open item list instead of pushing a
    new one.
    """

    source: FeedSource
    generation: int
    replace: bool = False


@dataclass(frozen=True)
class BatchRequest:
    sources: Tuple[FeedSource, ...]
    generation: int


@dataclass(frozen=True)
class SaveRequest:
    item: FeedItem


class TaskDispatcher(Protocol):
    """Runs the controller's side effects and reports their outcomes."""

    def request_fetch(self, request: FetchRequest) -> None: ...

    def request_batch(self, request: BatchRequest) -> None: ...

    def request_save(self, request: SaveRequest) -> None: ...

    def cancel_all(self) -> None: ...


@dataclass(frozen=True)
class RenderModel:
    """Read-only snapshot of what the presenter should draw."""

    view: View
    depth: int
    loading: bool = False
    loading_label: str = ""
    notice: Optional[str] = None
    feed_status: Tuple[str, ...] = field(default_factory=tuple)
    running: bool = True


def clamp(value: int, length: int) -> int:
    """Clamp an index into ``[0, max(0, length - 1)]``."""
    if length <= 0:
        return 0
    return max(0, min(value, length - 1))


def article_lines(item: FeedItem) -> Tuple[str, ...]:
    return tuple(item_markdown(item).splitlines()) or ("",)


class NavigationController:
    """Drives selection, scrolling and view transitions."""

    def __init__(
        self,
        sources: Sequence[FeedSource],
        dispatcher: TaskDispatcher,
        lines_for: Callable[[FeedItem], Tuple[str, ...]] = article_lines,
    ):
        self._stack: List[View] = [FeedListView(feeds=tuple(sources))]
        self._dispatcher = dispatcher
        self._lines_for = lines_for
        self._generation = 0
        self._pending: Optional[FetchRequest] = None
        self._batch_generation = 0
        self._pending_batch: Optional[BatchRequest] = None
        self._session: Dict[FeedSource, Tuple[FeedItem, ...]] = {}
        self._status: Dict[FeedSource, str] = {}
        self._notice: Optional[str] = None
        self.running = True

    @property
    def stack(self) -> Tuple[View, ...]:
        return tuple(self._stack)

    @property
    def top(self) -> View:
        return self._stack[-1]

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> Optional[FetchRequest]:
        return self._pending

    def seed(self, source: FeedSource, items: Sequence[FeedItem]) -> None:
        """Make already-fetched items available without another fetch."""
        self._session[source] = tuple(items)
        self._status[source] = _item_count(len(items))

    def current_render_model(self) -> RenderModel:
        feeds = self._stack[0].feeds
        if self._pending is not None:
            label = f"Loading {self._pending.source.name}..."
        elif self._pending_batch is not None:
            label = f"Refreshing {len(self._pending_batch.sources)} feeds..."
        else:
            label = ""

        return RenderModel(
            view=self.top,
            depth=len(self._stack),
            loading=bool(label),
            loading_label=label,
            notice=self._notice,
            feed_status=tuple(self._status.get(source, "") for source in feeds),
            running=self.running,
        )

    def handle_event(self, event: NavEvent) -> RenderModel:
        if not self.running:
            return self.current_render_model()

        self._notice = None
        if event is NavEvent.UP:
            self._move(-1)
        elif event is NavEvent.DOWN:
            self._move(1)
        elif event is NavEvent.PAGE_UP:
            self._move(-PAGE_SIZE)
        elif event is NavEvent.PAGE_DOWN:
            self._move(PAGE_SIZE)
        elif event is NavEvent.SELECT:
            self._select()
        elif event is NavEvent.BACK:
            self._back()
        elif event is NavEvent.REFRESH:
            self._refresh()
        elif event is NavEvent.SAVE:
            self._save()
        elif event is NavEvent.QUIT:
            self._quit()

        return self.current_render_model()

    # Results reported by the dispatcher

    def apply_fetch_result(
        self, request: FetchRequest, outcome: Union[Sequence[FeedItem], FetchError]
    ) -> bool:
        """Fold a finished fetch into state.

        Returns:
            False if the result was stale and discarded
        """
        if request != self._pending or request.generation != self._generation:
            logger.debug(
                "Discarding stale result for %s (generation %d, current %d)",
                request.source.name,
                request.generation,
                self._generation,
            )
            return False

        self._pending = None
        if isinstance(outcome, FetchError):
            entries: Tuple[ItemEntry, ...] = (outcome,)
            self._session.pop(request.source, None)
            self._status[request.source] = f"error: {outcome.kind.value}"
            self._notice = str(outcome)
        else:
            entries = tuple(outcome)
            self.seed(request.source, entries)

        top = self.top
        if request.replace and isinstance(top, ItemListView):
            self._stack[-1] = ItemListView(
                source=top.source,
                items=entries,
                selected=clamp(top.selected, len(entries)),
            )
        else:
            self._push(ItemListView(source=request.source, items=entries))
        return True

    def apply_batch_result(
        self,
        request: BatchRequest,
        results: Sequence[Tuple[FeedSource, Union[Sequence[FeedItem], FetchError]]],
    ) -> bool:
        if request != self._pending_batch or not self.running:
            logger.debug("Discarding stale batch result (generation %d)", request.generation)
            return False

        self._pending_batch = None
        failed = 0
        for source, outcome in results:
            if isinstance(outcome, FetchError):
                failed += 1
                self._session.pop(source, None)
                self._status[source] = f"error: {outcome.kind.value}"
            else:
                self.seed(source, outcome)

        self._notice = f"Refreshed {len(results)} feeds ({failed} failed)"
        return True

    def apply_save_result(
        self, request: SaveRequest, outcome: Union[ArticleRecord, Exception]
    ) -> None:
        if not self.running:
            return
        if isinstance(outcome, Exception):
            self._notice = f"Save failed: {outcome}"
        else:
            self._notice = f"Saved '{outcome.article_name}' to {outcome.storage_path}"

    # Transitions

    def _push(self, view: View) -> None:
        self._stack.append(view)
        self._generation += 1
        self._pending = None

    def _pop(self) -> None:
        if len(self._stack) > 1:
            self._stack.pop()
        self._generation += 1
        self._pending = None

    def _move(self, delta: int) -> None:
        top = self.top
        if isinstance(top, FeedListView):
            self._stack[-1] = replace(top, selected=clamp(top.selected + delta, len(top.feeds)))
        elif isinstance(top, ItemListView):
            self._stack[-1] = replace(top, selected=clamp(top.selected + delta, len(top.items)))
        else:
            self._stack[-1] = replace(
                top, scroll_offset=clamp(top.scroll_offset + delta, len(top.lines))
            )

    def _select(self) -> None:
        top = self.top
        if self._pending is not None:
            self._notice = f"Still loading {self._pending.source.name}"
            return

        if isinstance(top, FeedListView):
            if not top.feeds:
                return
            source = top.feeds[top.selected]
            cached = self._session.get(source)
            if cached is not None:
                self._push(ItemListView(source=source, items=cached))
                return
            self._issue_fetch(source, replace_items=False)

        elif isinstance(top, ItemListView):
            if not top.items:
                return
            entry = top.items[top.selected]
            if isinstance(entry, FetchError):
                self._notice = str(entry)
                return
            self._push(ArticleView(item=entry, lines=self._lines_for(entry)))

    def _back(self) -> None:
        if len(self._stack) > 1:
            self._pop()
        elif self._pending is not None:
            logger.info("Cancelled loading %s", self._pending.source.name)
            self._notice = f"Cancelled loading {self._pending.source.name}"
            self._generation += 1
            self._pending = None

    def _refresh(self) -> None:
        top = self.top
        if isinstance(top, FeedListView):
            if not top.feeds:
                return
            if self._pending_batch is not None:
                self._notice = "Still refreshing feeds"
                return
            self._batch_generation += 1
            request = BatchRequest(sources=top.feeds, generation=self._batch_generation)
            self._pending_batch = request
            self._dispatcher.request_batch(request)

        elif isinstance(top, ItemListView):
            if self._pending is not None:
                self._notice = f"Still loading {self._pending.source.name}"
                return
            self._issue_fetch(top.source, replace_items=True)

    def _save(self) -> None:
        top = self.top
        item: Optional[FeedItem] = None
        if isinstance(top, ArticleView):
            item = top.item
        elif isinstance(top, ItemListView) and top.items:
            entry = top.items[top.selected]
            if isinstance(entry, FeedItem):
                item = entry

        if item is None:
            return
        self._notice = f"Saving '{item.title}'..."
        self._dispatcher.request_save(SaveRequest(item=item))

    def _quit(self) -> None:
        self.running = False
        self._generation += 1
        self._pending = None
        self._pending_batch = None
        self._dispatcher.cancel_all()

    def _issue_fetch(self, source: FeedSource, replace_items: bool) -> None:
        self._generation += 1
        request = FetchRequest(source=source, generation=self._generation, replace=replace_items)
        self._pending = request
        self._dispatcher.request_fetch(request)


def _item_count(count: int) -> str:
    return "1 item" if count == 1 else f"{count} items"
