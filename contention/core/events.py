from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DEFAULT_LOG_CAPACITY = 12


@dataclass(frozen=True, slots=True)
class ActivityLogEntry:
    seq: int
    message: str
    ts: datetime

    @staticmethod
    def now(*, seq: int, message: str) -> "ActivityLogEntry":
        return ActivityLogEntry(seq=seq, message=message, ts=datetime.now(timezone.utc))


class ActivityLog:
    """Append-only log bounded to the most recent `capacity` entries.

    Owned by the Display. Workers and user actions append; the Display reads
    `entries()` when it redraws. Every entry is mirrored to the module logger.
    """

    def __init__(self, *, capacity: int = DEFAULT_LOG_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._entries: deque[ActivityLogEntry] = deque(maxlen=capacity)
        self._seq = itertools.count(1)
        self._listeners: list[Callable[[ActivityLogEntry], None]] = []

    def add_listener(self, listener: Callable[[ActivityLogEntry], None]) -> None:
        self._listeners.append(listener)

    def append(self, message: str) -> ActivityLogEntry:
        entry = ActivityLogEntry.now(seq=next(self._seq), message=message)
        self._entries.append(entry)
        logger.info("[%d] %s", entry.seq, message)
        for listener in self._listeners:
            listener(entry)
        return entry

    def entries(self) -> list[ActivityLogEntry]:
        return list(self._entries)

    def messages(self) -> list[str]:
        return [e.message for e in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
