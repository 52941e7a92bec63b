"""Feed aggregator.

Fetches sources and normalises them into FeedItem lists. A failing source
never takes the others down with it: batch fetches report a result per
source, in source order.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Tuple, Union

import httpx

from rss_reader.config import Settings
from rss_reader.errors import FetchError
from rss_reader.models.schemas import FeedItem, FeedSource
from rss_reader.services.feed_parser import ParsedFeed, fetch_feed_bytes, parse_feed_document

logger = logging.getLogger(__name__)

FetchOutcome = Union[List[FeedItem], FetchError]

ClientFactory = Callable[[], httpx.AsyncClient]


class FeedAggregator:
    """Fetches and parses feeds. No retries; that is up to the caller."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "rss_reader/0.1 (Terminal RSS Reader)",
        client_factory: Optional[ClientFactory] = None,
    ):
        self._timeout = timeout
        self._user_agent = user_agent
        self._client_factory = client_factory or self._default_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeedAggregator":
        return cls(timeout=settings.fetch_timeout, user_agent=settings.user_agent)

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            follow_redirects=True,
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent},
        )

    async def fetch_document(self, source: FeedSource) -> ParsedFeed:
        """Fetch and parse one source, keeping the channel title.

        Raises:
            FetchError: On network or parse failure
        """
        logger.info("Fetching %s from %s", source.name, source.fetch_url)
        async with self._client_factory() as client:
            payload = await fetch_feed_bytes(client, source.fetch_url, source.name)
        return parse_feed_document(payload, source.name)

    async def fetch_items(self, source: FeedSource) -> List[FeedItem]:
        """Fetch one source.

        Returns:
            Items in the order the feed lists them (possibly empty)

        Raises:
            FetchError: On network or parse failure
        """
        document = await self.fetch_document(source)
        return document.items

    async def fetch_all(
        self, sources: Sequence[FeedSource]
    ) -> List[Tuple[FeedSource, FetchOutcome]]:
        """Fetch every source concurrently.

        Returns:
            One ``(source, items or FetchError)`` pair per source, in the
            order the sources were given
        """
        results = await asyncio.gather(
            *(self._fetch_outcome(source) for source in sources)
        )
        failed = sum(1 for outcome in results if isinstance(outcome, FetchError))
        logger.info("Fetched %d feeds (%d failed)", len(sources), failed)
        return list(zip(sources, results))

    async def _fetch_outcome(self, source: FeedSource) -> FetchOutcome:
        try:
            return await self.fetch_items(source)
        except FetchError as e:
            return e
