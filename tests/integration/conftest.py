"""Fixtures for MCP integration tests.

The server runs in-process and the client talks to it over the SDK's
in-memory streams, exercising the full MCP protocol flow.
"""

import httpx
import pytest
from mcp import types
from mcp.shared.memory import create_connected_server_and_client_session

from rss_reader.server.app import create_mcp_server
from rss_reader.services.aggregator import FeedAggregator
from rss_reader.services.registry import direct_source
from rss_reader.storage.articles import ArticleStore
from tests.conftest import RSS_FEED


def feed_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "down.example.com":
        raise httpx.ConnectError("Connection refused", request=request)
    if request.url.host == "cdn.example.com":
        return httpx.Response(404)
    return httpx.Response(200, content=RSS_FEED)


def mock_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(feed_handler))


@pytest.fixture
def reader_sources():
    return [
        direct_source("https://example.com/feed.xml", "Test Blog"),
        direct_source("https://down.example.com/rss", "Down Feed"),
    ]


@pytest.fixture
def article_store(tmp_path):
    return ArticleStore(tmp_path, client_factory=mock_client)


@pytest.fixture
def mcp_server(reader_sources, article_store):
    return create_mcp_server(
        reader_sources,
        aggregator=FeedAggregator(client_factory=mock_client),
        store=article_store,
    )


@pytest.fixture
async def mcp_session(mcp_server):
    async with create_connected_server_and_client_session(mcp_server._mcp_server) as session:
        yield session


def extract_text_content(result: types.CallToolResult) -> str:
    """Return the first text block of a tool result."""
    for content in result.content:
        if isinstance(content, types.TextContent):
            return content.text
    raise AssertionError(f"No text content in result: {result}")
