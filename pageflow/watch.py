"""Filesystem watching for content invalidation.

:class:`ContentWatcher` wraps a watchdog observer and translates raw
filesystem events into :class:`ChangeEvent` values carrying a root-relative
POSIX path and one of three kinds: ``added``, ``modified``, ``removed``.
Moves are reported as a removal followed by an addition.

The watcher only reports changes; the content app decides what to evict.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)

ChangeKind = typ.Literal["added", "modified", "removed"]


@dc.dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A change below a watched root.

    Attributes
    ----------
    kind : str
        ``"added"``, ``"modified"`` or ``"removed"``.
    path : str
        POSIX path relative to the watched root.
    is_directory : bool
        Whether the changed entry is a directory.
    """

    kind: ChangeKind
    path: str
    is_directory: bool = False


class _ForwardingHandler(FileSystemEventHandler):
    """Translate watchdog events into :class:`ChangeEvent` callbacks."""

    def __init__(
        self, root: Path, callback: cabc.Callable[[ChangeEvent], None]
    ) -> None:
        super().__init__()
        self.root = root
        self.callback = callback

    def _emit(self, kind: ChangeKind, raw_path: str | bytes, is_directory: bool) -> None:
        path = Path(raw_path.decode() if isinstance(raw_path, bytes) else raw_path)
        try:
            relative = path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return
        self.callback(ChangeEvent(kind=kind, path=relative, is_directory=is_directory))

    def on_created(self, event: FileSystemEvent) -> None:
        self._emit("added", event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._emit("modified", event.src_path, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._emit("removed", event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._emit("removed", event.src_path, event.is_directory)
        self._emit("added", event.dest_path, event.is_directory)


class ContentWatcher:
    """Observe a directory tree and report changes to a callback.

    Parameters
    ----------
    root : Path
        Directory to observe recursively.
    callback : Callable[[ChangeEvent], None]
        Invoked from the observer thread for every change.
    """

    def __init__(
        self, root: Path, callback: cabc.Callable[[ChangeEvent], None]
    ) -> None:
        self.root = root.resolve()
        self.handler = _ForwardingHandler(self.root, callback)
        self._observer: typ.Any = None

    @property
    def running(self) -> bool:
        """Return ``True`` while the observer thread is active."""
        return self._observer is not None

    def start(self) -> None:
        """Start the observer thread."""
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self.handler, str(self.root), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info("Watching %s for content changes", self.root)

    def stop(self) -> None:
        """Stop the observer thread and wait for it to exit."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None


__all__ = ["ChangeEvent", "ChangeKind", "ContentWatcher"]
