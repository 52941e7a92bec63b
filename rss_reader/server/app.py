"""rss_reader - MCP server mode

Serves the configured feeds and the article archive over MCP with
multi-transport support (STDIO, SSE, and Streamable HTTP). Tools share the
article index with any terminal UI reading the same storage root.
"""

import logging
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from rss_reader.config import Settings, get_settings
from rss_reader.decorators import exception_handler
from rss_reader.models.schemas import FeedSource
from rss_reader.services.aggregator import FeedAggregator
from rss_reader.storage.articles import ArticleStore
from rss_reader.tools.feed_tools import ReaderContext, configure, feed_tools

logger = logging.getLogger(__name__)


def create_mcp_server(
    sources: List[FeedSource],
    settings: Optional[Settings] = None,
    aggregator: Optional[FeedAggregator] = None,
    store: Optional[ArticleStore] = None,
) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        sources: Resolved feed sources to serve
        settings: Optional process settings
        aggregator: Optional aggregator (built from settings if omitted)
        store: Optional article store (rooted at settings.data_dir if omitted)

    Returns:
        Configured FastMCP server instance
    """
    if settings is None:
        settings = get_settings()

    context = ReaderContext(
        sources=list(sources),
        aggregator=aggregator or FeedAggregator.from_settings(settings),
        store=store or ArticleStore(settings.data_dir, timeout=settings.fetch_timeout),
    )
    configure(context)

    mcp_server = FastMCP("rss_reader")
    register_tools(mcp_server)

    logger.info("Server initialization complete with %d feeds", len(sources))
    return mcp_server


def register_tools(mcp_server: FastMCP) -> None:
    """Register all feed tools, each wrapped in the exception handler."""
    for tool_func in feed_tools:
        tool_name = tool_func.__name__
        mcp_server.tool(name=tool_name)(exception_handler(tool_func))
        logger.info("Registered feed tool: %s", tool_name)


async def run_server(server: FastMCP, transport: str, host: str, port: int) -> None:
    """Run the server with the given transport until it is stopped."""
    if transport == "stdio":
        logger.info("Starting server with STDIO transport")
        await server.run_stdio_async()
    elif transport == "sse":
        logger.info("Starting server with SSE transport on %s:%d", host, port)
        server.settings.host = host
        server.settings.port = port
        await server.run_sse_async()
    elif transport == "streamable-http":
        logger.info("Starting server with Streamable HTTP transport on %s:%d", host, port)
        server.settings.host = host
        server.settings.port = port
        server.settings.streamable_http_path = "/mcp"
        await server.run_streamable_http_async()
    else:
        raise ValueError(f"Unknown transport: {transport}")
