"""Command line interface for rss_reader."""

import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import List

import click

from rss_reader.config import Settings, get_settings, load_or_create_feeds_config
from rss_reader.errors import ConfigError, FetchError, StorageError
from rss_reader.logging_config import logger, setup_logging
from rss_reader.models.schemas import FeedItem, FeedSource
from rss_reader.services.aggregator import FeedAggregator
from rss_reader.services.registry import direct_source, resolve, resolve_route
from rss_reader.storage.article_index import ArticleIndex
from rss_reader.storage.articles import INDEX_FILE, ArticleStore
from rss_reader.tui.app import AsyncioDispatcher, run_tui
from rss_reader.tui.controller import NavigationController
from rss_reader.tui.keys import TerminalError


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _print_items(title: str, items: List[FeedItem], limit: int) -> None:
    click.echo(f"\nTitle: {title}")
    click.echo("-" * 40)
    for number, item in enumerate(items[:limit], start=1):
        click.echo(f"{number}. {item.title}")
        if item.link:
            click.echo(f"   Link: {item.link}")
        if item.published_at:
            click.echo(f"   Date: {item.published_at.isoformat()}")
        click.echo()


async def _open_tui(settings: Settings, sources: List[FeedSource], seeded=None) -> None:
    aggregator = FeedAggregator.from_settings(settings)
    store = ArticleStore(settings.data_dir, timeout=settings.fetch_timeout)
    dispatcher = AsyncioDispatcher(aggregator, store)
    controller = NavigationController(sources, dispatcher)
    if seeded is not None:
        controller.seed(*seeded)
    await run_tui(controller, dispatcher, initial_select=seeded is not None)


async def _read_feed(
    settings: Settings, source: FeedSource, limit: int, tui: bool, save: bool
) -> None:
    aggregator = FeedAggregator.from_settings(settings)
    document = await aggregator.fetch_document(source)

    if document.title:
        source = replace(source, name=document.title)
    items = [replace(item, source_name=source.name) for item in document.items]

    if save and items:
        store = ArticleStore(settings.data_dir, timeout=settings.fetch_timeout)
        try:
            await store.store_items(items)
        except StorageError as e:
            click.echo(f"Warning: {e}", err=True)

    if tui:
        setup_logging(settings, to_file=True)
        await _open_tui(settings, [source], seeded=(source, items))
    else:
        _print_items(source.name, items, limit)


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except (ConfigError, FetchError, TerminalError) as e:
        _fail(str(e))
    except KeyboardInterrupt:
        logger.info("Stopped by user")


@click.group()
def main() -> None:
    """A terminal RSS reader with RSSHub support."""


@main.command()
@click.argument("url")
@click.option("-l", "--limit", default=5, show_default=True, help="Number of items to show")
@click.option("--tui", is_flag=True, help="Open in the terminal UI")
@click.option("--save/--no-save", default=True, show_default=True, help="Store items in the article archive")
def read(url: str, limit: int, tui: bool, save: bool) -> None:
    """Read a feed from a direct RSS/Atom URL."""
    settings = get_settings()
    setup_logging(settings)
    try:
        source = direct_source(url)
    except ConfigError as e:
        _fail(str(e))
    click.echo(f"Fetching RSS from: {url}")
    _run(_read_feed(settings, source, limit, tui, save))


@main.command()
@click.argument("route")
@click.option("--host", default=None, help="RSSHub instance URL (default: RSS_READER_DEFAULT_RSSHUB_HOST)")
@click.option("-l", "--limit", default=5, show_default=True, help="Number of items to show")
@click.option("--tui", is_flag=True, help="Open in the terminal UI")
@click.option("--save/--no-save", default=True, show_default=True, help="Store items in the article archive")
def rsshub(route: str, host: str, limit: int, tui: bool, save: bool) -> None:
    """Read an RSSHub route, e.g. /github/trending/daily."""
    settings = get_settings()
    setup_logging(settings)
    try:
        source = resolve_route(host or settings.default_rsshub_host, route)
    except ConfigError as e:
        _fail(str(e))
    click.echo(f"Fetching RSSHub route: {route} (full URL: {source.fetch_url})")
    _run(_read_feed(settings, source, limit, tui, save))


@main.command()
@click.option(
    "-c", "--config", "config_path",
    default="feeds.toml", show_default=True, type=click.Path(path_type=Path),
    help="Path to the feeds config file",
)
def ui(config_path: Path) -> None:
    """Open the terminal UI with the feeds from the config file."""
    settings = get_settings()
    setup_logging(settings, to_file=True)
    try:
        sources = resolve(load_or_create_feeds_config(config_path, settings.default_rsshub_host))
    except ConfigError as e:
        _fail(str(e))
    _run(_open_tui(settings, sources))


@main.command()
@click.option(
    "-c", "--config", "config_path",
    default="feeds.toml", show_default=True, type=click.Path(path_type=Path),
    help="Path to the feeds config file",
)
@click.option("--host", default="127.0.0.1", show_default=True, help="Host to bind to")
@click.option("--port", default=7878, show_default=True, help="Port for SSE or Streamable HTTP transport")
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    default="streamable-http",
    show_default=True,
    help="Transport type",
)
def server(config_path: Path, host: str, port: int, transport: str) -> None:
    """Serve the feeds and the article archive over MCP."""
    from rss_reader.server.app import create_mcp_server, run_server

    settings = get_settings()
    setup_logging(settings)
    try:
        sources = resolve(load_or_create_feeds_config(config_path, settings.default_rsshub_host))
    except ConfigError as e:
        _fail(str(e))

    mcp_server = create_mcp_server(sources, settings)
    _run(run_server(mcp_server, transport, host, port))


@main.command()
@click.option("-n", "--name", default="", help="Only articles with exactly this name")
def articles(name: str) -> None:
    """List articles recorded in the article index."""
    settings = get_settings()
    setup_logging(settings)
    index = ArticleIndex(settings.data_dir / INDEX_FILE)
    try:
        records = index.find_by_name(name) if name else index.list()
    except StorageError as e:
        _fail(str(e))

    for record in records:
        click.echo(
            f"{record.fetched_at.isoformat()}  {record.source_name}  "
            f"{record.article_name}  {record.storage_path}"
        )
    click.echo(f"{len(records)} article(s)")
