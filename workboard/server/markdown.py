"""Markdown -> HTML for work-item documentation and context bodies.

Only invoked when a caller asks for one item's ``doc`` or ``context``.
Raw HTML in the source is not passed through.
"""

from __future__ import annotations

import html
import logging

from markdown_it import MarkdownIt

logger = logging.getLogger(__name__)

_renderer = (
    MarkdownIt("commonmark", {"breaks": True, "html": False, "linkify": False})
    .enable("table")
    .enable("strikethrough")
)


def render_markdown(text: str | None) -> str:
    """Render markdown to an HTML fragment; empty input gives ``""``."""
    if not text:
        return ""
    try:
        return _renderer.render(text)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Error rendering markdown")
        return f"<p>Error rendering markdown: {html.escape(str(exc))}</p>"
