"""Feed parser service.

This module downloads RSS/Atom payloads and turns them into FeedItem
objects. Both halves raise FetchError so callers only deal with one
failure type.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional

import feedparser
import httpx

from rss_reader.errors import FetchError
from rss_reader.models.schemas import FeedItem, FetchErrorKind

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "No Title"


@dataclass
class ParsedFeed:
    """A parsed feed document: channel title plus its items."""

    title: str
    items: List[FeedItem]


async def fetch_feed_bytes(client: httpx.AsyncClient, url: str, source_name: str) -> bytes:
    """Download a feed payload.

    Args:
        client: HTTP client to use
        url: Feed URL
        source_name: Name used in error reports

    Returns:
        Raw response body

    Raises:
        FetchError: NETWORK on transport failures, non-2xx statuses and
            malformed URLs
    """
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.warning("Feed %s returned HTTP %s", url, e.response.status_code)
        raise FetchError(
            FetchErrorKind.NETWORK,
            source_name,
            f"HTTP {e.response.status_code} from {url}",
        ) from e
    except httpx.HTTPError as e:
        logger.warning("Failed to fetch feed %s: %s", url, e)
        raise FetchError(FetchErrorKind.NETWORK, source_name, f"{type(e).__name__}: {e}") from e
    except (httpx.InvalidURL, ValueError) as e:
        # Malformed URLs never reach the transport
        logger.warning("Invalid feed URL %s: %s", url, e)
        raise FetchError(FetchErrorKind.NETWORK, source_name, f"Invalid URL {url}: {e}") from e

    return response.content


def parse_feed_document(payload: bytes, source_name: str) -> ParsedFeed:
    """Parse an RSS/Atom payload.

    A well-formed feed with no entries yields an empty item list; only a
    payload that is not a feed at all is an error.

    Raises:
        FetchError: PARSE when the payload is not a recognisable feed
    """
    feed = feedparser.parse(payload)

    if not feed.entries and (feed.bozo or not feed.get("version")):
        reason = feed.get("bozo_exception") or "not an RSS or Atom document"
        logger.warning("Feed parsing error for %s: %s", source_name, reason)
        raise FetchError(FetchErrorKind.PARSE, source_name, f"Malformed feed: {reason}")

    items = [_entry_to_item(entry, source_name) for entry in feed.entries]
    title = (feed.feed.get("title") or "").strip()

    logger.info("Parsed %d items from %s", len(items), source_name)
    return ParsedFeed(title=title, items=items)


def parse_feed_bytes(payload: bytes, source_name: str) -> List[FeedItem]:
    """Parse an RSS/Atom payload into items, in document order."""
    return parse_feed_document(payload, source_name).items


def _entry_to_item(entry: dict, source_name: str) -> FeedItem:
    title = (entry.get("title") or "").strip() or DEFAULT_TITLE

    link = (entry.get("link") or "").strip()
    if not link:
        # Try alternate link
        for candidate in entry.get("links", []):
            if candidate.get("rel") == "alternate" and candidate.get("href"):
                link = candidate["href"]
                break

    return FeedItem(
        title=title,
        link=link,
        summary=_extract_body(entry),
        published_at=_parse_date(entry),
        source_name=source_name,
    )


def _extract_body(entry: dict) -> Optional[str]:
    """Prefer full content over the summary, like most readers do."""
    for content in entry.get("content", []):
        value = content.get("value")
        if value:
            return value
    return entry.get("summary") or entry.get("description") or None


def _parse_date(entry: dict) -> Optional[datetime]:
    """Parse the publication date from a feed entry.

    Args:
        entry: Feed entry dict

    Returns:
        UTC datetime if parsed successfully, None otherwise
    """
    for field in ["published", "updated", "created"]:
        # feedparser normalises these to UTC struct_time
        parsed = entry.get(f"{field}_parsed")
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (ValueError, TypeError):
                pass

        date_str = entry.get(field)
        if not date_str:
            continue

        # Try RFC 2822 format (common in RSS)
        try:
            return _as_utc(parsedate_to_datetime(date_str))
        except (ValueError, TypeError):
            pass

        # Try ISO format
        try:
            return _as_utc(datetime.fromisoformat(date_str.replace("Z", "+00:00")))
        except (ValueError, AttributeError):
            pass

    return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
