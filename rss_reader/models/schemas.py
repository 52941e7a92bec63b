"""Data models for rss_reader.

This module defines the core data structures for feed sources, feed items
and persisted article records.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FeedKind(str, Enum):
    """How a configured feed is addressed."""

    RSS = "rss"
    RSSHUB = "rsshub"


class FetchErrorKind(str, Enum):
    """Why fetching a feed failed."""

    NETWORK = "network"
    PARSE = "parse"


@dataclass(frozen=True)
class FeedSource:
    """A fetchable feed resolved from configuration.

    ``fetch_url`` is computed once by the registry; nothing downstream
    looks at ``kind`` to decide where to fetch from.
    """

    name: str
    kind: FeedKind
    url_or_route: str
    resolved_host: Optional[str]
    fetch_url: str


@dataclass(frozen=True)
class FeedItem:
    """Represents a single entry parsed from a feed."""

    title: str
    link: str
    summary: Optional[str]
    published_at: Optional[datetime]
    source_name: str


@dataclass(frozen=True)
class ArticleRecord:
    """One line of the article index."""

    fetched_at: datetime
    article_name: str
    source_name: str
    storage_path: str

    def to_dict(self) -> dict:
        return {
            "time": self.fetched_at.isoformat(),
            "article_name": self.article_name,
            "rss_subscription_name": self.source_name,
            "path": self.storage_path,
        }
