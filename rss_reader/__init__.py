"""rss_reader - a terminal RSS reader with RSSHub support."""

__version__ = "0.1.0"
