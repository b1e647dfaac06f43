"""Read-only page index exposed to every page under eager loading.

The index maps each page URL to that page's data (front-matter, loader data
and data-directory values; never the unrendered body). It is built once all
sources have been loaded and is handed to renders through the build context,
so cross-page listings such as "recent posts" can be produced from any page.

Outside eager mode pages receive :data:`MISSING_PAGE_INDEX` instead; touching
it raises :class:`~pageflow.errors.PageIndexUnavailableError`, which the
route boundary reports as a page-local error.
"""

from __future__ import annotations

import collections.abc as cabc
import types
import typing as typ

from pageflow.errors import PageIndexUnavailableError


class PageIndex(cabc.Mapping[str, cabc.Mapping[str, typ.Any]]):
    """Immutable mapping of page URL to read-only page data."""

    def __init__(self, entries: cabc.Mapping[str, cabc.Mapping[str, typ.Any]]) -> None:
        self._entries: dict[str, cabc.Mapping[str, typ.Any]] = {
            url: types.MappingProxyType(dict(data))
            for url, data in sorted(entries.items())
        }

    def __getitem__(self, url: str) -> cabc.Mapping[str, typ.Any]:
        return self._entries[url]

    def __iter__(self) -> cabc.Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PageIndex({list(self._entries)!r})"

    def under(self, prefix: str) -> list[tuple[str, cabc.Mapping[str, typ.Any]]]:
        """Return ``(url, data)`` pairs whose URL lies below ``prefix``."""
        base = prefix.rstrip("/")
        return [
            (url, data)
            for url, data in self._entries.items()
            if url.startswith(f"{base}/")
        ]


class _MissingPageIndex:
    """Placeholder that fails loudly when a lazily built page reads ``pages``."""

    _message = (
        "The 'pages' index is only available when eager loading is enabled."
    )

    def _fail(self, *_args: object, **_kwargs: object) -> typ.NoReturn:
        raise PageIndexUnavailableError(self._message)

    __getitem__ = _fail
    __iter__ = _fail
    __len__ = _fail
    __contains__ = _fail
    __bool__ = _fail

    def __getattr__(self, name: str) -> typ.NoReturn:
        if name.startswith("__"):
            raise AttributeError(name)
        self._fail()

    def __repr__(self) -> str:
        return "<page index unavailable>"


MISSING_PAGE_INDEX = _MissingPageIndex()


__all__ = ["MISSING_PAGE_INDEX", "PageIndex"]
