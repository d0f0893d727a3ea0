"""Per-store reader/writer locking.

Backups, removals, combines and gc mutate the store and take the write
side; listing and fetching take the read side. The thread holding the
write side may re-enter either side, which is what lets combine call
remove and backup while it holds the store.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


class StoreLock:
    """Writer-preferring reader/writer lock with writer re-entry."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: int | None = None
        self._writer_depth = 0
        self._waiting_writers = 0
        self._local = threading.local()

    def _read_depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock shared for the duration of the block."""
        me = threading.get_ident()
        depth = self._read_depth()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                as_writer = True
            else:
                as_writer = False
                if depth == 0:
                    while self._writer is not None or self._waiting_writers:
                        self._cond.wait()
                    self._readers += 1
        self._local.depth = depth + 1
        try:
            yield
        finally:
            self._local.depth = depth
            with self._cond:
                if as_writer:
                    self._writer_depth -= 1
                elif depth == 0:
                    self._readers -= 1
                    if self._readers == 0:
                        self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock exclusively for the duration of the block.

        Raises:
            RuntimeError: The calling thread already holds the read side.
        """
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
            else:
                if self._read_depth():
                    raise RuntimeError("Cannot upgrade a store read lock to a write lock")
                self._waiting_writers += 1
                try:
                    while self._writer is not None or self._readers:
                        self._cond.wait()
                finally:
                    self._waiting_writers -= 1
                self._writer = me
                self._writer_depth = 1
        try:
            yield
        finally:
            with self._cond:
                self._writer_depth -= 1
                if self._writer_depth == 0:
                    self._writer = None
                    self._cond.notify_all()

    @property
    def is_write_locked(self) -> bool:
        return self._writer is not None


_registry: dict[str, StoreLock] = {}
_registry_lock = threading.Lock()


def store_lock(root: Path) -> StoreLock:
    """Return the lock shared by every user of the store at ``root``."""
    key = str(root.expanduser().resolve())
    with _registry_lock:
        lock = _registry.get(key)
        if lock is None:
            lock = _registry[key] = StoreLock()
        return lock
