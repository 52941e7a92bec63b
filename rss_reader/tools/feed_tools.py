"""Feed reader MCP tools.

This module provides MCP tools for browsing the configured feeds and the
saved article archive.

NOTE: Never use Optional parameters in MCP tools - they break MCP clients.
Use empty string "" for optional strings and 0 for optional integers.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rss_reader.errors import ConfigError
from rss_reader.models.schemas import FeedItem, FeedSource
from rss_reader.services.aggregator import FeedAggregator
from rss_reader.services.content import item_markdown
from rss_reader.storage.articles import ARTICLES_DIR, ArticleStore, item_filename

logger = logging.getLogger(__name__)


@dataclass
class ReaderContext:
    """Everything the tools need, plus the per-session feed cache."""

    sources: List[FeedSource]
    aggregator: FeedAggregator
    store: ArticleStore
    cache: Dict[int, List[FeedItem]] = field(default_factory=dict)


# Singleton context, set by the server at startup
_context: Optional[ReaderContext] = None


def configure(context: ReaderContext) -> None:
    global _context
    _context = context


def get_context() -> ReaderContext:
    if _context is None:
        raise ConfigError("Feed tools are not configured")
    return _context


def _item_summary(index: int, item: FeedItem) -> Dict[str, Any]:
    return {
        "id": index,
        "title": item.title,
        "link": item.link,
        "published": item.published_at.isoformat() if item.published_at else None,
    }


def _get_source(context: ReaderContext, feed_index: int) -> Optional[FeedSource]:
    if 0 <= feed_index < len(context.sources):
        return context.sources[feed_index]
    return None


async def _get_items(context: ReaderContext, feed_index: int, refresh: bool) -> List[FeedItem]:
    if not refresh and feed_index in context.cache:
        return context.cache[feed_index]
    items = await context.aggregator.fetch_items(context.sources[feed_index])
    context.cache[feed_index] = items
    return items


async def list_feeds() -> Dict[str, Any]:
    """List the configured feeds.

    Returns:
        Dictionary with:
        - success: bool
        - count: number of feeds
        - feeds: list of feed objects with id, name, kind, url
    """
    logger.info("list_feeds called")
    context = get_context()

    return {
        "success": True,
        "count": len(context.sources),
        "feeds": [
            {
                "id": index,
                "name": source.name,
                "kind": source.kind.value,
                "url": source.fetch_url,
            }
            for index, source in enumerate(context.sources)
        ],
    }


async def get_feed_items(feed_index: int, save: bool = True, refresh: bool = False) -> Dict[str, Any]:
    """Fetch a feed and list its items.

    Results are cached for the lifetime of the server; pass refresh=True to
    fetch again. With save=True every item is stored as Markdown and
    recorded in the article index.

    Args:
        feed_index: Position of the feed in list_feeds
        save: Persist the items to the article archive (default: True)
        refresh: Ignore the cached copy and fetch again (default: False)

    Returns:
        Dictionary with:
        - success: bool
        - feed: feed name
        - count: number of items
        - items: list of item objects with id, title, link, published
        - saved: number of items written to the archive
        - save_error: string if persisting failed (items are still returned)
        - error: string if success is False
    """
    logger.info("get_feed_items called: feed_index=%s, save=%s, refresh=%s", feed_index, save, refresh)
    context = get_context()

    source = _get_source(context, feed_index)
    if source is None:
        return {"success": False, "error": f"Feed {feed_index} not found"}

    items = await _get_items(context, feed_index, refresh)
    result: Dict[str, Any] = {
        "success": True,
        "feed": source.name,
        "count": len(items),
        "items": [_item_summary(index, item) for index, item in enumerate(items)],
        "saved": 0,
    }

    if save and items:
        try:
            records = await context.store.store_items(items)
            result["saved"] = len(records)
        except Exception as e:
            logger.error("Failed to save items of %s: %s", source.name, e)
            result["save_error"] = str(e)

    return result


async def get_article(feed_index: int, item_index: int) -> Dict[str, Any]:
    """Get the full content of one feed item as Markdown.

    Uses the archived copy when the item has been saved, otherwise converts
    the feed's HTML on the fly.

    Args:
        feed_index: Position of the feed in list_feeds
        item_index: Position of the item in get_feed_items

    Returns:
        Dictionary with:
        - success: bool
        - article: object with title, link, published, content_markdown, stored
        - error: string if success is False
    """
    logger.info("get_article called: feed_index=%s, item_index=%s", feed_index, item_index)
    context = get_context()

    if _get_source(context, feed_index) is None:
        return {"success": False, "error": f"Feed {feed_index} not found"}

    items = await _get_items(context, feed_index, refresh=False)
    if not 0 <= item_index < len(items):
        return {"success": False, "error": f"Item {item_index} not found"}

    item = items[item_index]
    stored_path = context.store.articles_dir / item_filename(item)
    stored = stored_path.exists()
    markdown = stored_path.read_text(encoding="utf-8") if stored else item_markdown(item)

    article = _item_summary(item_index, item)
    article["content_markdown"] = markdown
    article["stored"] = stored
    return {"success": True, "article": article}


async def list_saved_articles(article_name: str = "", limit: int = 50) -> Dict[str, Any]:
    """List records from the article index, oldest first.

    Args:
        article_name: Only records with exactly this article name (empty string for all)
        limit: Maximum number of records, counted from the newest (0 means no limit)

    Returns:
        Dictionary with:
        - success: bool
        - count: number of records returned
        - articles: list of records with time, article_name, rss_subscription_name, path
    """
    logger.info("list_saved_articles called: article_name=%s, limit=%s", article_name, limit)
    context = get_context()

    index = context.store.index
    records = index.find_by_name(article_name) if article_name else index.list()
    if limit > 0:
        records = records[-limit:]

    return {
        "success": True,
        "count": len(records),
        "articles": [record.to_dict() for record in records],
    }


async def read_saved_article(path: str) -> Dict[str, Any]:
    """Read a saved article by the path recorded in the article index.

    Args:
        path: The index's path column, e.g. "articles/<hash>.md"

    Returns:
        Dictionary with:
        - success: bool
        - path: the requested path
        - content_markdown: the article body
        - error: string if success is False
    """
    logger.info("read_saved_article called: path=%s", path)
    context = get_context()

    root = context.store.root.resolve()
    target = (root / path).resolve()
    articles_root = (root / ARTICLES_DIR).resolve()
    if not target.is_relative_to(articles_root) or target.suffix != ".md":
        return {"success": False, "error": f"Not an article path: {path}"}
    if not target.exists():
        return {"success": False, "error": f"Article not found: {path}"}

    return {
        "success": True,
        "path": path,
        "content_markdown": target.read_text(encoding="utf-8"),
    }


# List of feed tools for registration
feed_tools = [
    list_feeds,
    get_feed_items,
    get_article,
    list_saved_articles,
    read_saved_article,
]
