"""Filesystem route loader.

Walks a content directory tree and discovers one page per file:

- entries whose name starts with ``_`` or ``.`` are skipped, files and
  directories alike, so ``_partials/`` can hold include targets;
- ``index.<ext>`` maps to its directory URL;
- other files append their stem to the URL path, unless their name matches a
  ``keep_suffix`` pattern, in which case the full file name is kept.

Modeled on the pages-directory walk of a routing framework, but for content
files instead of handler modules.
"""

from __future__ import annotations

import logging
import threading
import typing as typ
from pathlib import Path

from pageflow._constants import IGNORE_PREFIXES
from pageflow.errors import (
    DiscoveryError,
    PageNotFoundError,
    PartialNotFoundError,
    SourceReadError,
)

from ._discovery import build_sources

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from pageflow.config.resolver import ConfigResolver
    from pageflow.pages import PageSource
    from pageflow.watch import ChangeEvent, ContentWatcher

logger = logging.getLogger(__name__)


class FilesystemLoader:
    """Discover page sources below a local root directory.

    Parameters
    ----------
    root : Path | str
        Directory to walk.
    name : str, optional
        Loader name used in logs and route listings; defaults to the root.
    keep_suffix : Sequence[str], optional
        File-name globs that keep their suffix in the URL (``"*.xml"``).
    ignore_prefixes : Sequence[str], optional
        Name prefixes marking hidden or private entries.
    """

    max_concurrency = 16

    def __init__(
        self,
        root: Path | str,
        *,
        name: str | None = None,
        keep_suffix: cabc.Sequence[str] = (),
        ignore_prefixes: cabc.Sequence[str] = IGNORE_PREFIXES,
    ) -> None:
        self.root = Path(root)
        self.name = name or str(self.root)
        self.keep_suffix = tuple(keep_suffix)
        self.ignore_prefixes = tuple(ignore_prefixes)
        self._sources: dict[str, PageSource] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"FilesystemLoader({str(self.root)!r})"

    def discover(self, resolver: ConfigResolver) -> list[PageSource]:
        """Walk the root directory and return its page sources.

        Sources for paths discovered previously are reused so their cached
        builds survive a rediscovery triggered by an unrelated change.

        Raises
        ------
        DiscoveryError
            If the root directory does not exist or cannot be listed.
        """
        root = self.root.resolve()
        if not root.is_dir():
            msg = f"Content directory not found: {root}"
            raise DiscoveryError(msg)
        try:
            paths = list(self._walk(root, root))
        except OSError as exc:
            msg = f"Failed to walk content directory {root}: {exc}"
            raise DiscoveryError(msg) from exc

        with self._lock:
            previous = self._sources
            fresh = [path for path in paths if path not in previous]
            created = {
                source.path: source
                for source in build_sources(
                    self, fresh, resolver, keep_suffix=self.keep_suffix
                )
            }
            self._sources = {
                path: previous.get(path) or created[path] for path in paths
            }
            sources = list(self._sources.values())
        logger.debug("Discovered %d sources in %s", len(sources), root)
        return sources

    def _walk(self, directory: Path, root: Path) -> cabc.Iterator[str]:
        entries = sorted(directory.iterdir())
        for item in entries:
            if item.name.startswith(self.ignore_prefixes) or not item.is_file():
                continue
            yield item.relative_to(root).as_posix()
        for item in entries:
            if item.name.startswith(self.ignore_prefixes) or not item.is_dir():
                continue
            yield from self._walk(item, root)

    def read(self, source: PageSource) -> str:
        """Return the UTF-8 text of ``source``.

        Raises
        ------
        PageNotFoundError
            If the file disappeared after discovery.
        SourceReadError
            If the file cannot be read as UTF-8 text.
        """
        path = self.root / source.path
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            msg = f"Source file for {source.url} no longer exists: {path}"
            raise PageNotFoundError(msg) from exc
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Cannot read {path}: {exc}"
            raise SourceReadError(msg) from exc

    def read_partial(self, name: str) -> str:
        """Return the text of the partial ``name`` relative to the root.

        Raises
        ------
        PartialNotFoundError
            If the partial is missing or lies outside the root.
        """
        root = self.root.resolve()
        candidate = (root / name).resolve()
        if not candidate.is_relative_to(root) or not candidate.is_file():
            msg = f"Partial '{name}' not found under {root}"
            raise PartialNotFoundError(msg)
        return candidate.read_text(encoding="utf-8")

    def watch(
        self, callback: cabc.Callable[[ChangeEvent], None]
    ) -> ContentWatcher:
        """Start watching the root and forward change events to ``callback``."""
        from pageflow.watch import ContentWatcher

        watcher = ContentWatcher(self.root, callback)
        watcher.start()
        return watcher


__all__ = ["FilesystemLoader"]
