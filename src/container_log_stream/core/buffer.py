"""Bounded in-memory log buffer."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterator

from .models import LogEntry

DEFAULT_CAPACITY = 1000


class LogBuffer:
    """Append-only sequence of entries that evicts the oldest on overflow.

    One writer (the connection manager) appends; any number of readers take
    snapshots. Entries are immutable, so a snapshot is a consistent ordered
    view even while the writer keeps appending.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def snapshot(self) -> tuple[LogEntry, ...]:
        """Return the current entries, oldest first."""
        with self._lock:
            return tuple(self._entries)

    def last(self) -> LogEntry | None:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.snapshot())
