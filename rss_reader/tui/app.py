"""Terminal UI runtime.

Runs the navigation controller on an asyncio loop: keys arrive from the
KeyReader thread, fetches and saves run as tasks through
AsyncioDispatcher, and the screen is redrawn with rich's Live after every
change.
"""

import asyncio
import logging
from typing import Callable, Optional, Set

from rich.console import Console
from rich.live import Live

from rss_reader.errors import FetchError, StorageError
from rss_reader.models.schemas import FetchErrorKind
from rss_reader.services.aggregator import FeedAggregator
from rss_reader.storage.articles import ArticleStore
from rss_reader.tui.controller import (
    BatchRequest,
    FetchRequest,
    NavigationController,
    SaveRequest,
)
from rss_reader.tui.keys import KeyReader, key_to_event
from rss_reader.tui.render import build_screen

logger = logging.getLogger(__name__)


class AsyncioDispatcher:
    """Executes controller requests as asyncio tasks.

    Every outcome, including unexpected collaborator failures, is folded
    back into the controller; nothing propagates into the UI loop.
    """

    def __init__(self, aggregator: FeedAggregator, store: ArticleStore):
        self._aggregator = aggregator
        self._store = store
        self._controller: Optional[NavigationController] = None
        self._on_change: Callable[[], None] = lambda: None
        self._tasks: Set[asyncio.Task] = set()

    def bind(self, controller: NavigationController, on_change: Callable[[], None]) -> None:
        self._controller = controller
        self._on_change = on_change

    def request_fetch(self, request: FetchRequest) -> None:
        self._spawn(self._run_fetch(request))

    def request_batch(self, request: BatchRequest) -> None:
        self._spawn(self._run_batch(request))

    def request_save(self, request: SaveRequest) -> None:
        self._spawn(self._run_save(request))

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    async def wait(self) -> None:
        """Wait for outstanding tasks to finish or be cancelled."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_fetch(self, request: FetchRequest) -> None:
        try:
            outcome = await self._aggregator.fetch_items(request.source)
        except FetchError as e:
            outcome = e
        except Exception as e:
            logger.exception("Unexpected failure fetching %s", request.source.name)
            outcome = FetchError(FetchErrorKind.NETWORK, request.source.name, str(e))

        if self._controller is not None:
            self._controller.apply_fetch_result(request, outcome)
        self._on_change()

    async def _run_batch(self, request: BatchRequest) -> None:
        try:
            results = await self._aggregator.fetch_all(request.sources)
        except Exception as e:
            logger.exception("Unexpected failure refreshing feeds")
            results = [
                (source, FetchError(FetchErrorKind.NETWORK, source.name, str(e)))
                for source in request.sources
            ]
        if self._controller is not None:
            self._controller.apply_batch_result(request, results)
        self._on_change()

    async def _run_save(self, request: SaveRequest) -> None:
        try:
            outcome = await self._store.store_item(request.item)
        except StorageError as e:
            outcome = e
        except Exception as e:
            logger.exception("Unexpected failure saving '%s'", request.item.title)
            outcome = StorageError(str(e))

        if self._controller is not None:
            self._controller.apply_save_result(request, outcome)
        self._on_change()


async def run_tui(
    controller: NavigationController,
    dispatcher: AsyncioDispatcher,
    console: Optional[Console] = None,
    initial_select: bool = False,
) -> None:
    """Run the interactive UI until the user quits.

    Raises:
        TerminalError: If stdin is not an interactive terminal
    """
    console = console or Console()
    loop = asyncio.get_running_loop()
    # None is a redraw request, strings are key tokens
    events: asyncio.Queue = asyncio.Queue()

    dispatcher.bind(controller, on_change=lambda: events.put_nowait(None))

    def render():
        return build_screen(
            controller.current_render_model(),
            width=console.size.width,
            height=console.size.height,
        )

    with KeyReader(lambda token: loop.call_soon_threadsafe(events.put_nowait, token)):
        with Live(
            render(),
            console=console,
            screen=True,
            refresh_per_second=8,
            vertical_overflow="crop",
        ) as live:
            if initial_select:
                controller.handle_event(key_to_event("ENTER", controller.top))
                live.update(render())

            while controller.running:
                token = await events.get()
                if token is not None:
                    event = key_to_event(token, controller.top)
                    if event is None:
                        continue
                    controller.handle_event(event)
                live.update(render(), refresh=True)

    dispatcher.cancel_all()
    await dispatcher.wait()
    logger.info("Terminal UI closed")
