"""Services for rss_reader."""

from .aggregator import FeedAggregator
from .feed_parser import parse_feed_bytes, parse_feed_document, ParsedFeed
from .registry import direct_source, resolve, resolve_route

__all__ = [
    "FeedAggregator",
    "parse_feed_bytes",
    "parse_feed_document",
    "ParsedFeed",
    "direct_source",
    "resolve",
    "resolve_route",
]
