"""Parsers turning pre-processed page text into a node tree plus data.

A parser is selected per page by matching the source path against the
configured parser list; the first parser whose :meth:`PageParser.matches`
accepts the path wins. The node tree is a BeautifulSoup document so page
extensions and layouts can inspect and rewrite it uniformly regardless of the
original markup.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from .html import HtmlParser
from .links import RelativeLinkExtension
from .markdown import MarkdownParser
from .models import ParsedDocument

if typ.TYPE_CHECKING:
    from pageflow.pages import PageSource


class PageParser(typ.Protocol):
    """Convert page text into a :class:`ParsedDocument`."""

    name: str

    def matches(self, path: str) -> bool:
        """Return ``True`` when this parser handles ``path``."""
        ...

    def parse(self, text: str, *, source: PageSource) -> ParsedDocument:
        """Parse ``text`` for ``source`` into nodes and derived data."""
        ...


def select_parser(
    parsers: cabc.Sequence[PageParser], path: str
) -> PageParser | None:
    """Return the first parser in ``parsers`` accepting ``path``."""
    for parser in parsers:
        if parser.matches(path):
            return parser
    return None


__all__ = [
    "HtmlParser",
    "MarkdownParser",
    "PageParser",
    "ParsedDocument",
    "RelativeLinkExtension",
    "select_parser",
]
