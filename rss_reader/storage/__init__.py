"""Storage layer for rss_reader."""

from .article_index import INDEX_COLUMNS, ArticleIndex
from .articles import ArticleStore

__all__ = [
    "INDEX_COLUMNS",
    "ArticleIndex",
    "ArticleStore",
]
