"""Terminal UI for rss_reader."""

from .controller import (
    ArticleView,
    FeedListView,
    ItemListView,
    NavEvent,
    NavigationController,
    RenderModel,
)

__all__ = [
    "ArticleView",
    "FeedListView",
    "ItemListView",
    "NavEvent",
    "NavigationController",
    "RenderModel",
]
