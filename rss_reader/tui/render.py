"""Rendering of the navigation state with rich.

Everything here is a pure function of a RenderModel and the terminal size,
so the screen can be rebuilt from scratch after every event.
"""

from typing import Tuple

from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.markdown import Markdown
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from rss_reader.errors import FetchError
from rss_reader.tui.controller import ArticleView, FeedListView, ItemListView, RenderModel

SELECTED_STYLE = "bold bright_white on rgb(28,28,28)"

HELP_TEXT = {
    FeedListView: "Enter open | r refresh all | j/k move | q quit",
    ItemListView: "Enter read | s save | r reload | Esc back | q quit",
    ArticleView: "j/k scroll | d/u page | s save | Esc/q back",
}


def visible_window(selected: int, length: int, height: int) -> Tuple[int, int]:
    """Start/end indices of the rows to show so ``selected`` stays on screen."""
    height = max(1, height)
    if length <= height:
        return 0, length
    start = max(0, min(selected - height // 2, length - height))
    return start, start + height


def truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: max(0, width - 3)] + "..."


def render_feed_list(view: FeedListView, feed_status: Tuple[str, ...], height: int) -> Panel:
    table = Table(expand=True, show_edge=False)
    table.add_column("", width=1)
    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Feed")
    table.add_column("Kind", width=7)
    table.add_column("Status", width=16)

    start, end = visible_window(view.selected, len(view.feeds), height)
    for index in range(start, end):
        source = view.feeds[index]
        status = feed_status[index] if index < len(feed_status) else ""
        is_selected = index == view.selected
        table.add_row(
            ">" if is_selected else "",
            str(index + 1),
            source.name,
            source.kind.value,
            Text(status, style="red" if status.startswith("error") else "green"),
            style=SELECTED_STYLE if is_selected else "",
        )

    if not view.feeds:
        table.add_row("", "-", "No feeds configured", "", "")
    return Panel(table, title="Feeds", border_style="blue")


def render_item_list(view: ItemListView, height: int, width: int) -> Panel:
    table = Table(expand=True, show_edge=False)
    table.add_column("", width=1)
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Title")
    table.add_column("Published", width=16)

    start, end = visible_window(view.selected, len(view.items), height)
    for index in range(start, end):
        entry = view.items[index]
        is_selected = index == view.selected
        if isinstance(entry, FetchError):
            title: RenderableType = Text(f"Error ({entry.kind.value}): {entry.message}", style="red")
            published = ""
        else:
            title = truncate(entry.title, max(20, width - 32))
            published = entry.published_at.strftime("%Y-%m-%d %H:%M") if entry.published_at else ""
        table.add_row(
            ">" if is_selected else "",
            str(index + 1),
            title,
            published,
            style=SELECTED_STYLE if is_selected else "",
        )

    if not view.items:
        table.add_row("", "-", "This feed has no items", "")
    return Panel(table, title=view.source.name, border_style="cyan")


def render_article(view: ArticleView, height: int) -> Panel:
    visible = max(1, height)
    total = len(view.lines)
    window = view.lines[view.scroll_offset : view.scroll_offset + visible]
    end = min(view.scroll_offset + visible, total)
    return Panel(
        Markdown("\n".join(window)),
        title=view.item.title,
        subtitle=f"Lines {view.scroll_offset + 1}-{end}/{total}",
        border_style="green",
    )


def render_status(model: RenderModel) -> RenderableType:
    help_text = Text(HELP_TEXT[type(model.view)], style="dim")
    parts = []
    if model.loading:
        parts.append(Spinner("dots", text=Text(model.loading_label, style="yellow")))
    if model.notice:
        parts.append(Text(model.notice, style="magenta"))
    parts.append(help_text)
    return Panel(Group(*parts), border_style="white")


def build_screen(model: RenderModel, width: int = 80, height: int = 24) -> Layout:
    """Full-screen layout: current view on top, status bar below."""
    status_height = 3 + int(model.loading) + int(bool(model.notice))
    # Panel borders, table header and padding
    body_rows = max(1, height - status_height - 4)

    view = model.view
    if isinstance(view, FeedListView):
        body = render_feed_list(view, model.feed_status, body_rows)
    elif isinstance(view, ItemListView):
        body = render_item_list(view, body_rows, width)
    else:
        body = render_article(view, body_rows)

    layout = Layout()
    layout.split_column(
        Layout(body, name="body"),
        Layout(render_status(model), name="status", size=status_height),
    )
    return layout
