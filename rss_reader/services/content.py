"""Article body conversion.

Feed bodies arrive as HTML fragments. This module turns them into Markdown
for storage and display, using BeautifulSoup to walk the markup.
"""

import re
from typing import Dict, List

from bs4 import BeautifulSoup, NavigableString, Tag

from rss_reader.models.schemas import FeedItem

MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(([^)\s]+)\)")

_BLOCK_TAGS = {"p", "div", "section", "article", "header", "footer", "figure", "table"}
_SKIP_TAGS = {"script", "style", "head", "noscript"}
_WHITESPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def html_to_markdown(html: str) -> str:
    """Convert an HTML fragment to Markdown.

    Args:
        html: HTML (or plain text) body of a feed item

    Returns:
        Markdown text, empty string for an empty body
    """
    if not html or not html.strip():
        return ""

    soup = BeautifulSoup(html, "lxml")
    root = soup.body or soup
    markdown = "".join(_render_children(root))
    markdown = "\n".join(line.rstrip() for line in markdown.splitlines())
    return _BLANK_LINES_RE.sub("\n\n", markdown).strip()


def item_markdown(item: FeedItem) -> str:
    """Markdown document for an item: heading, metadata, body."""
    lines = [f"# {item.title}", ""]
    if item.link:
        lines.append(f"<{item.link}>")
    if item.published_at:
        lines.append(f"*{item.published_at.strftime('%Y-%m-%d %H:%M UTC')}*")
    if len(lines) > 2:
        lines.append("")

    body = html_to_markdown(item.summary or "")
    lines.append(body or "_No content._")
    return "\n".join(lines)


def extract_image_urls(markdown: str) -> List[str]:
    """Image URLs referenced by Markdown image syntax, first occurrence order."""
    seen: Dict[str, None] = {}
    for match in MARKDOWN_IMAGE_RE.finditer(markdown):
        seen.setdefault(match.group(1), None)
    return list(seen)


def replace_image_urls(markdown: str, replacements: Dict[str, str]) -> str:
    """Point Markdown images at new locations; unknown URLs are left alone."""

    def _swap(match: re.Match) -> str:
        url = match.group(1)
        target = replacements.get(url)
        if target is None:
            return match.group(0)
        return match.group(0).replace(f"({url})", f"({target})")

    return MARKDOWN_IMAGE_RE.sub(_swap, markdown)


def _render_children(node: Tag) -> List[str]:
    parts = []
    for child in node.children:
        parts.append(_render(child))
    return parts


def _inline_text(node: Tag) -> str:
    return _WHITESPACE_RE.sub(" ", "".join(_render_children(node))).strip()


def _render(node) -> str:
    if isinstance(node, NavigableString):
        if node.__class__ is not NavigableString:
            # Comments, CDATA, doctype and friends
            return ""
        return _WHITESPACE_RE.sub(" ", str(node))

    if not isinstance(node, Tag):
        return ""

    name = node.name
    if name in _SKIP_TAGS:
        return ""
    if name == "br":
        return "\n"
    if name == "hr":
        return "\n\n---\n\n"
    if name == "img":
        src = node.get("src", "").strip()
        if not src:
            return ""
        return f"![{node.get('alt', '').strip()}]({src})"
    if name == "a":
        text = _inline_text(node)
        href = node.get("href", "").strip()
        if not href or href.startswith("javascript:"):
            return text
        return f"[{text or href}]({href})"
    if name in ("strong", "b"):
        text = _inline_text(node)
        return f"**{text}**" if text else ""
    if name in ("em", "i"):
        text = _inline_text(node)
        return f"*{text}*" if text else ""
    if name == "code" and (node.parent is None or node.parent.name != "pre"):
        return f"`{node.get_text()}`"
    if name == "pre":
        return f"\n\n```\n{node.get_text().strip(chr(10))}\n```\n\n"
    if re.fullmatch(r"h[1-6]", name):
        return f"\n\n{'#' * int(name[1])} {_inline_text(node)}\n\n"
    if name in ("ul", "ol"):
        return "\n\n" + _render_list(node, ordered=name == "ol") + "\n\n"
    if name == "blockquote":
        inner = "".join(_render_children(node)).strip()
        quoted = "\n".join(f"> {line}" if line else ">" for line in inner.splitlines())
        return f"\n\n{quoted}\n\n"
    if name == "tr":
        cells = [_inline_text(cell) for cell in node.find_all(["td", "th"], recursive=False)]
        return "| " + " | ".join(cells) + " |\n"
    if name in _BLOCK_TAGS:
        return "\n\n" + "".join(_render_children(node)).strip() + "\n\n"

    return "".join(_render_children(node))


def _render_list(node: Tag, ordered: bool) -> str:
    lines = []
    for index, li in enumerate(node.find_all("li", recursive=False), start=1):
        marker = f"{index}." if ordered else "-"
        lines.append(f"{marker} {_inline_text(li)}")
    return "\n".join(lines)
