"""Page extensions: ordered transforms over a parsed node tree.

Extensions run after parsing and before layout. Each receives the current
BeautifulSoup tree and the page's accumulated data mapping; it may edit the
tree in place or return a replacement, and it may inject data keys for later
stages. The built-ins are idempotent, so re-running them over an already
processed tree yields the same result.

Example
-------
>>> from bs4 import BeautifulSoup
>>> from pageflow.extensions import TableOfContentsExtension
>>> nodes = BeautifulSoup("<h2>Intro</h2><h3>Setup</h3>", "html.parser")
>>> data = {}
>>> _ = TableOfContentsExtension().apply(nodes, data, source=None)
>>> [(entry.label, entry.anchor) for entry in data["toc"].entries]
[('Intro', 'intro')]
>>> data["toc"].entries[0].children[0].anchor
'setup'
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from pageflow._constants import TOC_KEY

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from bs4 import BeautifulSoup, Tag

    from pageflow.pages import PageSource

DEFAULT_HEADING_LEVELS = (2, 3)


class PageExtension(typ.Protocol):
    """Transform a page's node tree and optionally enrich its data."""

    name: str

    def apply(
        self,
        nodes: BeautifulSoup,
        data: dict[str, typ.Any],
        *,
        source: PageSource | None,
    ) -> BeautifulSoup | None:
        """Return a replacement tree, or ``None`` after editing in place."""
        ...


def slugify(value: str) -> str:
    """Convert a string into a lowercase hyphen-separated slug."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def _unique_anchor(base: str, used: set[str]) -> str:
    """Return a unique anchor, appending numeric suffixes and mutating ``used``."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def _headings(nodes: BeautifulSoup, levels: cabc.Iterable[int]) -> list[Tag]:
    return nodes.find_all([f"h{level}" for level in levels])


def assign_heading_ids(nodes: BeautifulSoup, levels: cabc.Iterable[int]) -> list[Tag]:
    """Give every heading of ``levels`` a unique ``id`` and return them.

    Existing ids anywhere in the tree are kept and reserved, which makes the
    assignment idempotent.
    """
    used = {str(tag["id"]) for tag in nodes.find_all(id=True)}
    headings = _headings(nodes, levels)
    for index, heading in enumerate(headings, start=1):
        if heading.get("id"):
            continue
        base = slugify(heading.get_text(" ", strip=True)) or f"section-{index}"
        heading["id"] = _unique_anchor(base, used)
    return headings


class HeadingAnchorsExtension:
    """Assign stable ``id`` attributes to headings so they can be linked."""

    name = "heading_anchors"

    def __init__(self, levels: cabc.Sequence[int] = (1, 2, 3, 4, 5, 6)) -> None:
        self.levels = tuple(levels)

    def apply(
        self,
        nodes: BeautifulSoup,
        data: dict[str, typ.Any],  # noqa: ARG002
        *,
        source: PageSource | None,  # noqa: ARG002
    ) -> BeautifulSoup | None:
        """Add missing heading ids in place."""
        assign_heading_ids(nodes, self.levels)
        return None


@dc.dataclass(slots=True)
class TocEntry:
    """One heading in a table of contents.

    Attributes
    ----------
    label : str
        Heading text.
    anchor : str
        Fragment identifier of the heading.
    level : int
        Heading level (``2`` for ``<h2>``).
    children : list[TocEntry]
        Deeper headings that follow this one.
    """

    label: str
    anchor: str
    level: int
    children: list[TocEntry] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class TableOfContents:
    """Nested table of contents extracted from a page's headings."""

    entries: list[TocEntry] = dc.field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.entries)

    def flatten(self) -> list[TocEntry]:
        """Return every entry in document order."""
        flat: list[TocEntry] = []
        stack = list(reversed(self.entries))
        while stack:
            entry = stack.pop()
            flat.append(entry)
            stack.extend(reversed(entry.children))
        return flat


class TableOfContentsExtension:
    """Collect headings into a :class:`TableOfContents` under the ``toc`` key."""

    name = "toc"

    def __init__(
        self,
        levels: cabc.Sequence[int] = DEFAULT_HEADING_LEVELS,
        *,
        key: str = TOC_KEY,
    ) -> None:
        self.levels = tuple(sorted(levels))
        self.key = key

    def apply(
        self,
        nodes: BeautifulSoup,
        data: dict[str, typ.Any],
        *,
        source: PageSource | None,  # noqa: ARG002
    ) -> BeautifulSoup | None:
        """Anchor headings and store the nested contents in ``data``."""
        toc = TableOfContents()
        open_entries: list[TocEntry] = []
        for heading in assign_heading_ids(nodes, self.levels):
            entry = TocEntry(
                label=heading.get_text(" ", strip=True),
                anchor=str(heading["id"]),
                level=int(heading.name[1]),
            )
            while open_entries and open_entries[-1].level >= entry.level:
                open_entries.pop()
            if open_entries:
                open_entries[-1].children.append(entry)
            else:
                toc.entries.append(entry)
            open_entries.append(entry)
        data[self.key] = toc
        return None


__all__ = [
    "HeadingAnchorsExtension",
    "PageExtension",
    "TableOfContents",
    "TableOfContentsExtension",
    "TocEntry",
    "assign_heading_ids",
    "slugify",
]
