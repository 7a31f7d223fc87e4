from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from contention.core.events import ActivityLog
from contention.core.snapshot import Snapshot


@dataclass(slots=True)
class DisplayState:
    """Display-owned buffers: the latest snapshot per source plus the activity log.

    Single-threaded by contract. `render` replaces a buffer wholesale; nothing
    here is mutated in place by workers.
    """

    log: ActivityLog
    latest: dict[str, Snapshot[Any]] = field(default_factory=dict)
    renders: int = 0

    def render(self, snapshot: Snapshot[Any]) -> None:
        current = self.latest.get(snapshot.source)
        # Listeners can run out of order; never replace a newer snapshot.
        if current is not None and current.seq > snapshot.seq:
            return
        self.latest[snapshot.source] = snapshot
        self.renders += 1

    def current(self, source: str) -> Snapshot[Any] | None:
        return self.latest.get(source)
