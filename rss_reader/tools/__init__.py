"""MCP tools for rss_reader."""

from .feed_tools import ReaderContext, configure, feed_tools, get_context

__all__ = [
    "ReaderContext",
    "configure",
    "feed_tools",
    "get_context",
]
