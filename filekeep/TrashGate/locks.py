"""
Per-entry locking for the staging directory.

Restores, janitor reclaims and new soft-deletes each hold the staged name
they act on. Emptying the trash holds the whole registry exclusively.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Set

from .errors import EntryBusy


class EntryLockRegistry:
    """Thread-safe registry of staged names currently being mutated."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._held: Set[str] = set()
        self._exclusive = False

    def try_acquire(self, name: str) -> bool:
        """Claim a name without blocking. False if it (or the registry) is taken."""
        with self._cond:
            if self._exclusive or name in self._held:
                return False
            self._held.add(name)
            return True

    def release(self, name: str) -> None:
        with self._cond:
            self._held.discard(name)
            self._cond.notify_all()

    @contextmanager
    def hold(self, name: str) -> Iterator[str]:
        """
        Hold a name for the duration of the block.

        Raises:
            EntryBusy: If another operation already holds it
        """
        if not self.try_acquire(name):
            raise EntryBusy(f"Trash entry is busy: {name}")
        try:
            yield name
        finally:
            self.release(name)

    @contextmanager
    def exclusive(self, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Wait for in-flight entries to drain, then block new acquisitions.

        Raises:
            EntryBusy: If the registry does not drain within ``timeout``
        """
        with self._cond:
            drained = self._cond.wait_for(
                lambda: not self._held and not self._exclusive, timeout=timeout
            )
            if not drained:
                raise EntryBusy("Trash is busy")
            self._exclusive = True
        try:
            yield
        finally:
            with self._cond:
                self._exclusive = False
                self._cond.notify_all()

    def is_exclusive(self) -> bool:
        """True while the whole registry is held, as during EmptyAll."""
        with self._cond:
            return self._exclusive

    def is_held(self, name: str) -> bool:
        with self._cond:
            return name in self._held

    def in_flight(self) -> Set[str]:
        """Snapshot of currently held names."""
        with self._cond:
            return set(self._held)
