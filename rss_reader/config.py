"""Configuration management for rss_reader.

Two layers:

* ``Settings`` - process settings from ``RSS_READER_*`` environment
  variables (storage root, logging, HTTP behaviour), validated with
  pydantic-settings.
* ``FeedsConfig`` - the user's feed list from a TOML file, loaded once into
  an immutable value and handed to the registry.
"""

import tomllib
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from rss_reader.errors import ConfigError

DEFAULT_RSSHUB_HOST = "https://rsshub.app"

DEFAULT_FEEDS_TOML = """\
[rsshub]
host = "{host}"

[[rss]]
name = "Hacker News"
url = "https://news.ycombinator.com/rss"

[[rsshub_feeds]]
name = "GitHub Trending"
url = "/github/trending/daily"
"""


class Settings(BaseSettings):
    """Process settings loaded from environment variables."""

    data_dir: Path = Field(default=Path("data"), alias="RSS_READER_DATA_DIR")
    log_level: str = Field(default="INFO", alias="RSS_READER_LOG_LEVEL")
    log_file: Optional[Path] = Field(default=None, alias="RSS_READER_LOG_FILE")
    fetch_timeout: float = Field(default=30.0, alias="RSS_READER_FETCH_TIMEOUT")
    user_agent: str = Field(
        default="rss_reader/0.1 (Terminal RSS Reader)", alias="RSS_READER_USER_AGENT"
    )
    default_rsshub_host: str = Field(
        default=DEFAULT_RSSHUB_HOST, alias="RSS_READER_DEFAULT_RSSHUB_HOST"
    )

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def effective_log_file(self) -> Path:
        return self.log_file or self.data_dir / "rss_reader.log"


class RssHubConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: Optional[str] = DEFAULT_RSSHUB_HOST


class FeedEntry(BaseModel):
    """A ``[[rss]]`` or ``[[rsshub_feeds]]`` entry.

    For RSSHub entries ``url`` is the route and ``host`` optionally
    overrides the global RSSHub host.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    host: Optional[str] = None


class FeedsConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    rsshub: RssHubConfig = RssHubConfig()
    rss: List[FeedEntry] = []
    rsshub_feeds: List[FeedEntry] = []


def get_settings() -> Settings:
    """Load process settings from the environment."""
    return Settings()


def load_feeds_config(path: Path, default_host: str = DEFAULT_RSSHUB_HOST) -> FeedsConfig:
    """Load and validate a feeds TOML file.

    Args:
        path: Feeds file location
        default_host: RSSHub host used when the file does not set ``rsshub.host``

    Raises:
        ConfigError: If the file cannot be read, is not TOML, or does not
            match the expected shape.
    """
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    rsshub = raw.setdefault("rsshub", {})
    if isinstance(rsshub, dict):
        rsshub.setdefault("host", default_host)

    try:
        return FeedsConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def create_default_config(path: Path, host: str = DEFAULT_RSSHUB_HOST) -> None:
    """Write the default feeds file (Hacker News plus GitHub Trending)."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DEFAULT_FEEDS_TOML.format(host=host), encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to write config file {path}: {e}") from e


def load_or_create_feeds_config(
    path: Path, default_host: str = DEFAULT_RSSHUB_HOST
) -> FeedsConfig:
    if not path.exists():
        create_default_config(path, default_host)
    return load_feeds_config(path, default_host)
