"""Article index storage for rss_reader.

The index is an append-only CSV log, one line per persisted article:

    time,article_name,rss_subscription_name,path

Records are never rewritten or reordered. Writers are serialised within the
process; across processes only one writer may run at a time. Readers stop at
the last complete line, so they tolerate a writer appending concurrently and
a line left half-written by a crash.
"""

import csv
import io
import logging
import os
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

from rss_reader.errors import StorageError
from rss_reader.models.schemas import ArticleRecord

logger = logging.getLogger(__name__)

INDEX_COLUMNS = ["time", "article_name", "rss_subscription_name", "path"]

_LINE_BREAK_RE = re.compile(r"\r\n|[\r\n]")

_locks: Dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _locks_guard:
        return _locks.setdefault(key, threading.Lock())


def _format_row(fields: List[str]) -> bytes:
    buffer = io.StringIO()
    # One record is always one physical line
    clean = [_LINE_BREAK_RE.sub(" ", field) for field in fields]
    csv.writer(buffer, lineterminator="\n").writerow(clean)
    return buffer.getvalue().encode("utf-8")


class ArticleIndex:
    """Append-only log of persisted articles."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def append(self, record: ArticleRecord) -> None:
        """Append one record and flush it to disk before returning.

        Raises:
            ValueError: If the record time is naive
            StorageError: If the index file cannot be written
        """
        if record.fetched_at.tzinfo is None:
            # Naive times are read back as UTC
            raise ValueError(f"Record time must be timezone-aware: {record.fetched_at!r}")

        line = _format_row(
            [
                record.fetched_at.isoformat(),
                record.article_name,
                record.source_name,
                record.storage_path,
            ]
        )

        with _lock_for(self.path):
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a+b") as f:
                    size = f.seek(0, os.SEEK_END)
                    prefix = b""
                    if size == 0:
                        prefix = _format_row(INDEX_COLUMNS)
                    else:
                        f.seek(size - 1)
                        if f.read(1) != b"\n":
                            # Close off a line truncated by an earlier crash
                            prefix = b"\n"
                    f.write(prefix + line)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                logger.error("Failed to append to article index %s: %s", self.path, e)
                raise StorageError(f"Failed to append to {self.path}: {e}") from e

        logger.debug("Indexed article '%s' -> %s", record.article_name, record.storage_path)

    def list(self) -> List[ArticleRecord]:
        """Read every well-formed record, in append order.

        Malformed lines are skipped and logged; a trailing incomplete line is
        ignored.

        Raises:
            StorageError: If the index exists but cannot be read
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e

        complete = raw[: raw.rfind(b"\n") + 1]
        if len(complete) != len(raw):
            logger.warning("Ignoring incomplete last line of %s", self.path)

        records = []
        lines = complete.decode("utf-8", errors="replace").split("\n")
        for number, line in enumerate(lines, start=1):
            line = line.rstrip("\r")
            if not line:
                continue
            try:
                row = next(csv.reader([line]))
            except csv.Error as e:
                logger.warning("Skipping malformed line %d of %s: %s", number, self.path, e)
                continue
            if number == 1 and row == INDEX_COLUMNS:
                continue

            record = _parse_row(row)
            if record is None:
                logger.warning("Skipping malformed line %d of %s", number, self.path)
                continue
            records.append(record)

        return records

    def find_by_name(self, name: str) -> List[ArticleRecord]:
        """All records whose article name equals ``name``, in append order."""
        return [record for record in self.list() if record.article_name == name]


def _parse_row(row: List[str]):
    if len(row) != len(INDEX_COLUMNS):
        return None
    time_text, article_name, source_name, storage_path = row
    try:
        fetched_at = datetime.fromisoformat(time_text)
    except ValueError:
        return None
    if fetched_at.tzinfo is None:
        fetched_at = fetched_at.replace(tzinfo=timezone.utc)
    return ArticleRecord(
        fetched_at=fetched_at,
        article_name=article_name,
        source_name=source_name,
        storage_path=storage_path,
    )
