"""Shared fixtures for rss_reader tests."""

from datetime import datetime, timezone

import httpx
import pytest

from rss_reader.models.schemas import FeedItem
from rss_reader.services.aggregator import FeedAggregator
from rss_reader.services.registry import direct_source

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test Blog</title>
    <link>https://example.com</link>
    <description>A test feed</description>
    <item>
      <title>Post 1</title>
      <link>https://example.com/post1</link>
      <description>&lt;p&gt;First &lt;b&gt;post&lt;/b&gt;&lt;/p&gt;</description>
      <pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Post 2</title>
      <link>https://example.com/post2</link>
      <description>Second post</description>
    </item>
  </channel>
</rss>
"""

EMPTY_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Quiet Blog</title>
    <link>https://quiet.example.com</link>
    <description>Nothing here yet</description>
  </channel>
</rss>
"""


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_item(title: str = "Post", source_name: str = "Test Blog", **kwargs) -> FeedItem:
    defaults = {
        "link": f"https://example.com/{title.lower().replace(' ', '-')}",
        "summary": f"<p>{title} body</p>",
        "published_at": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
    }
    defaults.update(kwargs)
    return FeedItem(title=title, source_name=source_name, **defaults)


def make_source(name: str = "Test Blog", url: str = "https://example.com/feed.xml"):
    return direct_source(url, name)


def mock_aggregator(handler) -> FeedAggregator:
    """Aggregator whose HTTP requests are answered by ``handler``."""
    return FeedAggregator(
        client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
