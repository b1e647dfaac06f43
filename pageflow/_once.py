"""Guarded lazy cell providing single-flight, build-once semantics."""

from __future__ import annotations

import threading
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

T = typ.TypeVar("T")


class OnceCell(typ.Generic[T]):
    """Hold a lazily computed value that is built at most once per generation.

    Concurrent callers of :meth:`get_or_init` serialize on a lock, so only the
    first caller runs ``factory``; the others wait and observe the same value.
    Exceptions raised by ``factory`` propagate and are not cached.

    :meth:`invalidate` bumps the generation without waiting for an in-flight
    build. A build that started under an older generation still returns its
    value to its callers but does not store it, so the next call rebuilds.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._generation = 0
        self._stored_generation = -1
        self._value: T | None = None

    @property
    def is_set(self) -> bool:
        """Return ``True`` when a value for the current generation is cached."""
        return self._stored_generation == self._generation

    def get_or_init(self, factory: cabc.Callable[[], T]) -> T:
        """Return the cached value, running ``factory`` once when empty."""
        with self._state_lock:
            if self._stored_generation == self._generation:
                return typ.cast("T", self._value)
        with self._lock:
            with self._state_lock:
                generation = self._generation
                if self._stored_generation == generation:
                    return typ.cast("T", self._value)
            value = factory()
            with self._state_lock:
                if generation == self._generation:
                    self._value = value
                    self._stored_generation = generation
            return value

    def invalidate(self) -> None:
        """Evict the cached value; the next access rebuilds it."""
        with self._state_lock:
            self._generation += 1
            self._value = None


__all__ = ["OnceCell"]
