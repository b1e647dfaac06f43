"""Pass-through parser for pages authored directly in HTML."""

from __future__ import annotations

import typing as typ
from pathlib import PurePosixPath

from bs4 import BeautifulSoup

from pageflow._constants import TITLE_KEY

from .models import ParsedDocument, first_heading_text

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from pageflow.pages import PageSource

HTML_SUFFIXES = (".html", ".htm")


class HtmlParser:
    """Load HTML bodies into a node tree without transforming the markup."""

    name = "html"

    def __init__(self, *, suffixes: cabc.Sequence[str] = HTML_SUFFIXES) -> None:
        self.suffixes = tuple(suffix.lower() for suffix in suffixes)

    def matches(self, path: str) -> bool:
        """Return ``True`` for paths ending in an HTML suffix."""
        return PurePosixPath(path).suffix.lower() in self.suffixes

    def parse(self, text: str, *, source: PageSource) -> ParsedDocument:  # noqa: ARG002
        """Parse ``text`` and take a title from ``<title>`` or the first ``<h1>``."""
        nodes = BeautifulSoup(text, "html.parser")
        data: dict[str, typ.Any] = {}
        title_tag = nodes.find("title")
        title = title_tag.get_text(strip=True) if title_tag else None
        title = title or first_heading_text(nodes)
        if title:
            data[TITLE_KEY] = title
        return ParsedDocument(nodes=nodes, data=data)


__all__ = ["HTML_SUFFIXES", "HtmlParser"]
