"""Exceptions raised by rss_reader."""

from rss_reader.models.schemas import FetchErrorKind


class ConfigError(Exception):
    """Raised when the feed configuration cannot be turned into sources."""


class FetchError(Exception):
    """Raised when a single feed could not be fetched or parsed.

    Item lists carry instances of this class in place of items when the
    whole feed failed, so it also serves as the error variant of an item.
    """

    def __init__(self, kind: FetchErrorKind, source_name: str, message: str):
        super().__init__(f"{source_name}: {message}")
        self.kind = kind
        self.source_name = source_name
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FetchError):
            return NotImplemented
        return (self.kind, self.source_name, self.message) == (
            other.kind,
            other.source_name,
            other.message,
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.source_name, self.message))


class StorageError(Exception):
    """Raised when the article index or an article file cannot be read or written."""
