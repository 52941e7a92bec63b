"""Data models for rss_reader."""

from .schemas import ArticleRecord, FeedItem, FeedKind, FeedSource, FetchErrorKind

__all__ = [
    "ArticleRecord",
    "FeedItem",
    "FeedKind",
    "FeedSource",
    "FetchErrorKind",
]
