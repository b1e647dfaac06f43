"""Helpers for rewriting relative markdown links to page URLs."""

from __future__ import annotations

import posixpath
import typing as typ
from urllib.parse import urlsplit

from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

from pageflow.paths import derive_url

if typ.TYPE_CHECKING:
    from xml.etree.ElementTree import Element

    from markdown import Markdown
else:  # pragma: no cover - type-checking fallback
    Markdown = typ.Any
    Element = typ.Any

LINKABLE_SUFFIXES = (".md", ".markdown")


class RelativeLinkExtension(Extension):
    """Rewrite relative markdown links to the URLs of the pages they name.

    Insert this extension into a ``markdown.Markdown`` instance so that
    intra-origin links (``./setup.md``, ``../reference/index.md#flags``) point
    at the routed page (``/guides/setup``, ``/reference#flags``) instead of the
    raw source file, keeping navigation working in served and static output.
    """

    def __init__(self, source_path: str) -> None:
        super().__init__()
        self.source_path = source_path

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the relative-link treeprocessor on the Markdown instance."""
        base_dir = posixpath.dirname(self.source_path.strip("/"))
        processor = RelativeLinkTreeprocessor(md, base_dir)
        md.treeprocessors.register(processor, "pageflow_relative_links", 15)


class RelativeLinkTreeprocessor(Treeprocessor):
    """Rewrite relative markdown links in the parsed tree to page URLs."""

    def __init__(self, md: Markdown, base_dir: str) -> None:
        super().__init__(md)
        self.base_dir = base_dir

    def run(self, root: Element) -> Element:
        """Rewrite relative anchors in the parsed markdown tree."""
        for anchor in root.iter("a"):
            if url := self._rewrite(anchor.get("href")):
                anchor.set("href", url)
        return root

    def _rewrite(self, target: str | None) -> str | None:
        """Return the page URL for a relative markdown link, else ``None``."""
        if not target or target.startswith(("#", "/")) or ":" in target.split("/", 1)[0]:
            return None
        parts = urlsplit(target)
        if parts.scheme or parts.netloc:
            return None
        if not parts.path.lower().endswith(LINKABLE_SUFFIXES):
            return None

        resolved = posixpath.normpath(posixpath.join(self.base_dir, parts.path))
        # Links climbing above the origin root are clamped to it.
        segments = [segment for segment in resolved.split("/") if segment != ".."]
        if not segments:
            return None

        url = derive_url("/".join(segments))
        if parts.query:
            url += f"?{parts.query}"
        if parts.fragment:
            url += f"#{parts.fragment}"
        return url


__all__ = ["LINKABLE_SUFFIXES", "RelativeLinkExtension", "RelativeLinkTreeprocessor"]
