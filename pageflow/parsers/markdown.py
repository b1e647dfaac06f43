"""Markdown parser with syntax-highlighted code blocks.

Markdown is converted with Python-Markdown (fenced code, tables, sane lists
and Pygments-backed ``codehilite``) and the resulting HTML is loaded into a
BeautifulSoup tree for the extension chain. Each highlighted block carries a
``data-language`` attribute naming its fence language (``text`` when the fence
has none). Relative links to sibling markdown files are rewritten to their
page URLs while the tree is built.
"""

from __future__ import annotations

import re
import typing as typ
from pathlib import PurePosixPath

from bs4 import BeautifulSoup
from markdown import Markdown

from pageflow._constants import TITLE_KEY

from .links import RelativeLinkExtension
from .models import ParsedDocument, first_heading_text

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from markdown.extensions import Extension

    from pageflow.pages import PageSource

MARKDOWN_SUFFIXES = (".md", ".markdown")
FENCE_LANGUAGE = r"[A-Za-z0-9_+#.-]+"

# An opening fence indented by up to three spaces, with an optional language
# and trailing attributes such as ``rust,no_run``.
_FENCE_OPEN = re.compile(
    rf"^[ ]{{0,3}}(?P<fence>`{{3,}}|~{{3,}})(?P<lang>{FENCE_LANGUAGE})?(?P<extra>[^\n]*)$",
    re.MULTILINE,
)


def normalize_fences(text: str) -> tuple[str, list[str]]:
    """Return ``text`` with fences dedented and relabelled, plus their languages.

    Opening fences lose their indentation and any attributes after the
    language so Python-Markdown recognizes them. Closing fences are left
    untouched. The returned list holds one language per fenced block, in
    document order.

    Examples
    --------
    >>> normalize_fences("  ```rust,no_run\\nfn main() {}\\n  ```\\n")
    ('```rust\\nfn main() {}\\n```\\n', ['rust'])
    """
    languages: list[str] = []
    lines: list[str] = []
    open_fence: str | None = None
    for line in text.splitlines(keepends=True):
        stripped = line.rstrip("\r\n")
        newline = line[len(stripped):]
        if open_fence is not None:
            if stripped.strip().startswith(open_fence):
                open_fence = None
                lines.append(f"{stripped.strip()}{newline}")
            else:
                lines.append(line)
            continue
        match = _FENCE_OPEN.match(stripped)
        if match is None:
            lines.append(line)
            continue
        open_fence = match["fence"]
        language = match["lang"] or ""
        languages.append(language or "text")
        lines.append(f"{open_fence}{language}{newline}")
    return "".join(lines), languages


def label_code_blocks(nodes: BeautifulSoup, languages: cabc.Sequence[str]) -> None:
    """Set ``data-language`` on each highlighted block from ``languages``."""
    labels = iter(languages)
    for block in nodes.select("div.codehilite"):
        block["data-language"] = next(labels, "text")


class MarkdownParser:
    """Parse markdown page bodies into BeautifulSoup node trees."""

    name = "markdown"

    def __init__(
        self,
        pygments_style: str = "monokai",
        *,
        suffixes: cabc.Sequence[str] = MARKDOWN_SUFFIXES,
        extensions: cabc.Sequence[Extension | str] = (),
        rewrite_links: bool = True,
    ) -> None:
        """Initialize the parser.

        Parameters
        ----------
        pygments_style : str, optional
            Pygments style used by ``codehilite``. Defaults to ``"monokai"``.
        suffixes : Sequence[str], optional
            File suffixes this parser accepts.
        extensions : Sequence[Extension | str], optional
            Additional Python-Markdown extensions appended to the defaults.
        rewrite_links : bool, optional
            Rewrite relative links to markdown files into page URLs.
        """
        self.pygments_style = pygments_style
        self.suffixes = tuple(suffix.lower() for suffix in suffixes)
        self.extra_extensions = tuple(extensions)
        self.rewrite_links = rewrite_links

    def matches(self, path: str) -> bool:
        """Return ``True`` for paths ending in a markdown suffix."""
        return PurePosixPath(path).suffix.lower() in self.suffixes

    def parse(self, text: str, *, source: PageSource) -> ParsedDocument:
        """Convert ``text`` into a node tree and derive a default title."""
        nodes = self.to_tree(text, source_path=source.path)
        data: dict[str, typ.Any] = {}
        title = first_heading_text(nodes)
        if title:
            data[TITLE_KEY] = title
        return ParsedDocument(nodes=nodes, data=data)

    def to_tree(self, text: str, *, source_path: str | None = None) -> BeautifulSoup:
        """Convert ``text`` into a labelled BeautifulSoup tree."""
        normalized, languages = normalize_fences(text)
        if not normalized.strip():
            return BeautifulSoup("", "html.parser")
        nodes = BeautifulSoup(
            self._converter(source_path).convert(normalized), "html.parser"
        )
        label_code_blocks(nodes, languages)
        return nodes

    def markdown(self, text: str, *, source_path: str | None = None) -> str:
        """Render markdown into an HTML string."""
        return str(self.to_tree(text, source_path=source_path))

    def _converter(self, source_path: str | None) -> Markdown:
        extensions: list[Extension | str] = [
            "fenced_code",
            "codehilite",
            "tables",
            "sane_lists",
            *self.extra_extensions,
        ]
        if self.rewrite_links and source_path is not None:
            extensions.append(RelativeLinkExtension(source_path))
        return Markdown(
            extensions=extensions,
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )


__all__ = [
    "MARKDOWN_SUFFIXES",
    "MarkdownParser",
    "label_code_blocks",
    "normalize_fences",
]
