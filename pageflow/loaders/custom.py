"""Callable-backed route loader.

Adapts any origin to the loader protocol from two plain callables: one that
lists origin-relative paths and one that reads a path's raw content.
"""

from __future__ import annotations

import logging
import typing as typ

from pageflow._constants import IGNORE_PREFIXES
from pageflow.errors import (
    DiscoveryError,
    PartialNotFoundError,
    PipelineError,
    SourceReadError,
)
from pageflow.paths import is_ignored

from ._discovery import build_sources

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from pageflow.config.resolver import ConfigResolver
    from pageflow.pages import PageSource

logger = logging.getLogger(__name__)


class CustomLoader:
    """Discover pages through user-supplied callables.

    Parameters
    ----------
    name : str
        Loader name used in logs.
    list_paths : Callable[[], Iterable[str]]
        Returns origin-relative paths; ignore-prefix rules still apply.
    read : Callable[[str], str]
        Returns the raw content for a path.
    read_partial : Callable[[str], str], optional
        Returns the raw content of an include target.
    max_concurrency : int, optional
        Fan-out bound for eager loading.
    """

    def __init__(
        self,
        name: str,
        list_paths: cabc.Callable[[], cabc.Iterable[str]],
        read: cabc.Callable[[str], str],
        read_partial: cabc.Callable[[str], str] | None = None,
        *,
        keep_suffix: cabc.Sequence[str] = (),
        max_concurrency: int = 8,
    ) -> None:
        self.name = name
        self.max_concurrency = max_concurrency
        self.keep_suffix = tuple(keep_suffix)
        self._list_paths = list_paths
        self._read = read
        self._read_partial = read_partial

    def __repr__(self) -> str:
        return f"CustomLoader({self.name!r})"

    def discover(self, resolver: ConfigResolver) -> list[PageSource]:
        """List paths through the callable and return their sources.

        Raises
        ------
        DiscoveryError
            If listing raises; the original exception is chained.
        """
        try:
            listed = [str(path).strip("/") for path in self._list_paths()]
        except PipelineError:
            raise
        except Exception as exc:
            msg = f"Loader '{self.name}' failed to list paths: {exc}"
            raise DiscoveryError(msg) from exc
        paths = sorted(path for path in set(listed) if not is_ignored(path, IGNORE_PREFIXES))
        return build_sources(self, paths, resolver, keep_suffix=self.keep_suffix)

    def read(self, source: PageSource) -> str:
        """Return the raw content of ``source`` from the read callable.

        Raises
        ------
        SourceReadError
            If the callable raises; the original exception is chained.
        """
        try:
            return self._read(source.path)
        except PipelineError:
            raise
        except Exception as exc:
            msg = f"Loader '{self.name}' failed to read '{source.path}': {exc}"
            raise SourceReadError(msg) from exc

    def read_partial(self, name: str) -> str:
        """Return an include target, if a partial reader was supplied."""
        if self._read_partial is None:
            msg = f"Loader '{self.name}' does not serve partials"
            raise PartialNotFoundError(msg)
        return self._read_partial(name)


__all__ = ["CustomLoader"]
