"""Shared dataclasses used by the parse stage."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from bs4 import BeautifulSoup


@dc.dataclass(slots=True)
class ParsedDocument:
    """Node tree and parser-derived data for one page body.

    Attributes
    ----------
    nodes : BeautifulSoup
        Parsed content tree handed to the extension chain.
    data : dict[str, Any]
        Values derived from the markup (for example a ``title`` taken from
        the first heading). They never override keys the page already has.
    """

    nodes: BeautifulSoup
    data: dict[str, typ.Any] = dc.field(default_factory=dict)

    @classmethod
    def empty(cls) -> ParsedDocument:
        """Return a document with an empty node tree."""
        return cls(nodes=BeautifulSoup("", "html.parser"))


def first_heading_text(nodes: BeautifulSoup) -> str | None:
    """Return the stripped text of the first ``<h1>``, if any."""
    heading = nodes.find("h1")
    if heading is None:
        return None
    text = heading.get_text(" ", strip=True)
    return text or None


__all__ = ["ParsedDocument", "first_heading_text"]
