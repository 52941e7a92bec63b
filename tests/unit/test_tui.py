"""Unit tests for key mapping and screen rendering."""

import io

import pytest
from rich.console import Console
from rich.layout import Layout

from rss_reader.errors import FetchError
from rss_reader.models.schemas import FetchErrorKind
from rss_reader.tui.controller import (
    ArticleView,
    FeedListView,
    ItemListView,
    NavEvent,
    RenderModel,
    article_lines,
)
from rss_reader.tui.keys import KeyReader, TerminalError, decode_escape, key_to_event
from rss_reader.tui.render import build_screen, truncate, visible_window
from tests.conftest import make_item, make_source

SOURCE = make_source("Test Blog")
ITEM = make_item("Readable Post")

FEED_LIST = FeedListView(feeds=(SOURCE,))
ITEM_LIST = ItemListView(source=SOURCE, items=(ITEM,))
ARTICLE = ArticleView(item=ITEM, lines=article_lines(ITEM))


def render_text(layout: Layout, width: int = 80, height: int = 24) -> str:
    console = Console(file=io.StringIO(), width=width, height=height, color_system=None)
    console.print(layout, height=height)
    return console.file.getvalue()


class TestKeyMapping:
    """Tests for turning key tokens into events."""

    @pytest.mark.parametrize(
        "token,event",
        [
            ("ENTER", NavEvent.SELECT),
            ("ESC", NavEvent.BACK),
            ("UP", NavEvent.UP),
            ("k", NavEvent.UP),
            ("DOWN", NavEvent.DOWN),
            ("j", NavEvent.DOWN),
            ("PGUP", NavEvent.PAGE_UP),
            ("u", NavEvent.PAGE_UP),
            ("PGDN", NavEvent.PAGE_DOWN),
            ("d", NavEvent.PAGE_DOWN),
            ("r", NavEvent.REFRESH),
            ("s", NavEvent.SAVE),
            ("QUIT", NavEvent.QUIT),
        ],
    )
    def test_keys(self, token, event):
        """Test every bound key maps to its event."""
        assert key_to_event(token, FEED_LIST) is event

    def test_q_quits_from_lists(self):
        """Test q quits from the feed and item lists."""
        assert key_to_event("q", FEED_LIST) is NavEvent.QUIT
        assert key_to_event("q", ITEM_LIST) is NavEvent.QUIT

    def test_q_closes_article(self):
        """Test q closes an open article instead of quitting."""
        assert key_to_event("q", ARTICLE) is NavEvent.BACK

    def test_unknown_key(self):
        """Test unbound keys map to nothing."""
        assert key_to_event("x", FEED_LIST) is None

    @pytest.mark.parametrize(
        "sequence,token",
        [
            ("[A", "UP"),
            ("OB", "DOWN"),
            ("[5~", "PGUP"),
            ("[6~", "PGDN"),
            ("", "ESC"),
            ("[Z", "ESC"),
        ],
    )
    def test_decode_escape(self, sequence, token):
        """Test escape sequences decode to key tokens."""
        assert decode_escape(sequence) == token

    def test_key_reader_requires_terminal(self):
        """Test the key reader refuses a non-terminal stream."""
        with pytest.raises(TerminalError):
            with KeyReader(lambda key: None, stream=io.StringIO()):
                pass


class TestWindowing:
    """Tests for list windowing and truncation."""

    @pytest.mark.parametrize(
        "selected,length,height,expected",
        [
            (0, 5, 10, (0, 5)),
            (0, 50, 10, (0, 10)),
            (25, 50, 10, (20, 30)),
            (49, 50, 10, (40, 50)),
            (0, 0, 10, (0, 0)),
        ],
    )
    def test_visible_window(self, selected, length, height, expected):
        """Test the visible window keeps the selection on screen."""
        assert visible_window(selected, length, height) == expected

    def test_truncate(self):
        """Test long text is cut with an ellipsis."""
        assert truncate("short", 10) == "short"
        assert truncate("a much longer title", 10) == "a much ..."


class TestBuildScreen:
    """Smoke tests for each view."""

    def test_feed_list(self):
        """Test the feed list shows names, statuses and help."""
        model = RenderModel(view=FEED_LIST, depth=1, feed_status=("2 items",))

        text = render_text(build_screen(model))

        assert "Feeds" in text
        assert "Test Blog" in text
        assert "2 items" in text
        assert "q quit" in text

    def test_item_list_with_error(self):
        """Test an error item shows its kind and message."""
        error = FetchError(FetchErrorKind.NETWORK, "Test Blog", "Connection refused")
        view = ItemListView(source=SOURCE, items=(error,))
        model = RenderModel(view=view, depth=2, notice=str(error))

        text = render_text(build_screen(model))

        assert "Error (network): Connection refused" in text

    def test_empty_item_list(self):
        """Test an empty feed shows a placeholder."""
        model = RenderModel(view=ItemListView(source=SOURCE, items=()), depth=2)

        assert "This feed has no items" in render_text(build_screen(model))

    def test_article(self):
        """Test an article shows its title and line position."""
        model = RenderModel(view=ARTICLE, depth=3)

        text = render_text(build_screen(model))

        assert "Readable Post" in text
        assert f"Lines 1-{len(ARTICLE.lines)}/{len(ARTICLE.lines)}" in text

    def test_loading_status(self):
        """Test the loading label appears in the status bar."""
        model = RenderModel(
            view=FEED_LIST, depth=1, loading=True, loading_label="Loading Test Blog..."
        )

        assert "Loading Test Blog..." in render_text(build_screen(model))
