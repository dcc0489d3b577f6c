"""Single-flight guard for the automatic matching pass."""

from __future__ import annotations

import threading


class PassLease:
    """A non-blocking lease; at most one holder at a time.

    Each engine gets its own lease unless one is shared explicitly, so
    independent engines (and tests) never block each other.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        """Take the lease if free; never waits."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        """Give the lease back."""
        self._lock.release()

    @property
    def held(self) -> bool:
        return self._lock.locked()
