"""Article storage for rss_reader.

Persists feed items as Markdown files under ``<root>/articles`` with their
images localised into ``<root>/articles/images``, and records every stored
article in the index at ``<root>/index.csv``.
"""

import asyncio
import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from rss_reader.errors import StorageError
from rss_reader.models.schemas import ArticleRecord, FeedItem
from rss_reader.services.content import extract_image_urls, item_markdown, replace_image_urls
from rss_reader.storage.article_index import ArticleIndex

logger = logging.getLogger(__name__)

ARTICLES_DIR = "articles"
IMAGES_DIR = "images"
INDEX_FILE = "index.csv"

_EXTENSIONS = {
    "png": "png",
    "jpeg": "jpg",
    "jpg": "jpg",
    "webp": "webp",
    "gif": "gif",
    "svg": "svg",
    "svgz": "svg",
}

_CONTENT_TYPES = [
    ("image/png", "png"),
    ("image/jpeg", "jpg"),
    ("image/jpg", "jpg"),
    ("image/webp", "webp"),
    ("image/gif", "gif"),
    ("image/svg+xml", "svg"),
]


def hash_string(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def item_filename(item: FeedItem) -> str:
    published = item.published_at.isoformat() if item.published_at else ""
    return hash_string(f"{item.source_name}|{item.link}|{item.title}|{published}") + ".md"


def image_extension(url: str, content_type: Optional[str] = None) -> str:
    """Pick a file extension from the URL path, then the Content-Type."""
    suffix = PurePosixPath(urlparse(url).path).suffix.lstrip(".").lower()
    if suffix:
        return _EXTENSIONS.get(suffix, "img")
    if content_type:
        for mime, ext in _CONTENT_TYPES:
            if mime in content_type:
                return ext
    return "img"


def image_filename(url: str, content_type: Optional[str] = None) -> str:
    return f"{hash_string(url)}.{image_extension(url, content_type)}"


class ArticleStore:
    """Writes articles to disk and keeps the article index."""

    def __init__(
        self,
        root: Path,
        index: Optional[ArticleIndex] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        timeout: float = 30.0,
    ):
        self.root = Path(root)
        self.articles_dir = self.root / ARTICLES_DIR
        self.image_dir = self.articles_dir / IMAGES_DIR
        self.index = index or ArticleIndex(self.root / INDEX_FILE)
        self._timeout = timeout
        self._client_factory = client_factory or self._default_client

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(follow_redirects=True, timeout=self._timeout)

    async def store_item(self, item: FeedItem) -> ArticleRecord:
        """Persist one item and append its index record.

        The Markdown file is only written the first time; every call
        appends a new record.

        Raises:
            StorageError: If the article file or the index cannot be written
        """
        filename = item_filename(item)
        file_path = self.articles_dir / filename

        try:
            # Disk writes run off the event loop
            await asyncio.to_thread(self.image_dir.mkdir, parents=True, exist_ok=True)
            if not file_path.exists():
                markdown = await self.localize_images(item_markdown(item))
                await asyncio.to_thread(file_path.write_text, markdown, encoding="utf-8")
                logger.info("Stored article '%s' at %s", item.title, file_path)
        except OSError as e:
            logger.error("Failed to store article '%s': %s", item.title, e)
            raise StorageError(f"Failed to write {file_path}: {e}") from e

        record = ArticleRecord(
            fetched_at=datetime.now(timezone.utc),
            article_name=item.title,
            source_name=item.source_name,
            storage_path=f"{ARTICLES_DIR}/{filename}",
        )
        await asyncio.to_thread(self.index.append, record)
        return record

    async def store_items(self, items: List[FeedItem]) -> List[ArticleRecord]:
        records = []
        for item in items:
            records.append(await self.store_item(item))
        return records

    def read_markdown(self, record: ArticleRecord) -> str:
        """Read the Markdown an index record points to.

        Raises:
            StorageError: If the file cannot be read
        """
        path = self.root / record.storage_path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    async def localize_images(self, markdown: str) -> str:
        """Download referenced images and point the Markdown at local copies.

        Images that cannot be downloaded keep their remote URL.
        """
        urls = extract_image_urls(markdown)
        if not urls:
            return markdown

        replacements: Dict[str, str] = {}
        async with self._client_factory() as client:
            for url in urls:
                local = await self._download_image(client, url)
                if local:
                    replacements[url] = local

        return replace_image_urls(markdown, replacements)

    async def _download_image(self, client: httpx.AsyncClient, url: str) -> Optional[str]:
        if urlparse(url).scheme not in ("http", "https"):
            return None

        # Saved under whatever extension the first download resolved to
        existing = next(self.image_dir.glob(f"{hash_string(url)}.*"), None)
        if existing is not None:
            return f"{IMAGES_DIR}/{existing.name}"

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to download image %s: %s", url, e)
            return None

        filename = image_filename(url, response.headers.get("content-type"))
        target = self.image_dir / filename
        if not target.exists():
            await asyncio.to_thread(target.write_bytes, response.content)
        return f"{IMAGES_DIR}/{filename}"
