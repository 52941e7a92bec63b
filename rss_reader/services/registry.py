"""Feed source registry.

Turns the feeds configuration into the flat, ordered list of sources the
rest of the application works with. Pure: no network, no disk.
"""

from typing import List, Optional
from urllib.parse import urlparse

from rss_reader.config import FeedEntry, FeedsConfig
from rss_reader.errors import ConfigError
from rss_reader.models.schemas import FeedKind, FeedSource


def resolve(config: FeedsConfig) -> List[FeedSource]:
    """Resolve configured entries into fetchable sources.

    Plain RSS entries come first, then RSSHub entries, each group in
    declaration order.

    Args:
        config: Validated feeds configuration

    Returns:
        List of FeedSource objects

    Raises:
        ConfigError: If an entry is incomplete or not an http(s) URL, an
            RSSHub entry has no host to resolve against, or a route does not
            start with ``/``
    """
    sources = []

    for entry in config.rss:
        _require_fields(entry, "rss")
        sources.append(direct_source(entry.url.strip(), entry.name.strip()))

    for entry in config.rsshub_feeds:
        _require_fields(entry, "rsshub_feeds")
        host = _first_non_blank(entry.host, config.rsshub.host)
        if host is None:
            raise ConfigError(
                f"RSSHub feed '{entry.name}' has no host: set rsshub.host or a per-feed host"
            )
        sources.append(resolve_route(host, entry.url.strip(), entry.name.strip()))

    return sources


def resolve_route(host: str, route: str, name: Optional[str] = None) -> FeedSource:
    """Build an RSSHub source from a host and a route.

    Raises:
        ConfigError: If the host is not an http(s) URL or the route does not
            start with ``/``
    """
    host = host.strip()
    if not _is_http_url(host):
        raise ConfigError(f"Invalid RSSHub host: '{host}'")
    if not route.startswith("/"):
        raise ConfigError(f"RSSHub route must start with '/': '{route}'")

    return FeedSource(
        name=name or route,
        kind=FeedKind.RSSHUB,
        url_or_route=route,
        resolved_host=host,
        fetch_url=host.rstrip("/") + route,
    )


def direct_source(url: str, name: Optional[str] = None) -> FeedSource:
    """Build a plain RSS source for a feed URL.

    Raises:
        ConfigError: If the URL is not an http(s) URL with a host
    """
    if not _is_http_url(url):
        raise ConfigError(f"Invalid feed URL: '{url}'")
    return FeedSource(
        name=name or url,
        kind=FeedKind.RSS,
        url_or_route=url,
        resolved_host=None,
        fetch_url=url,
    )


def _require_fields(entry: FeedEntry, section: str) -> None:
    if not entry.name.strip():
        raise ConfigError(f"Entry in [{section}] is missing a name")
    if not entry.url.strip():
        raise ConfigError(f"Entry '{entry.name}' in [{section}] is missing a url")


def _is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
        return parsed.scheme in ("http", "https") and bool(parsed.hostname)
    except ValueError:
        return False


def _first_non_blank(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None
