from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from contention.prim.array import ConcurrentArray
from contention.prim.errors import IndexOutOfBounds
from contention.prim.stack import ConcurrentStack

logger = logging.getLogger(__name__)

T = TypeVar("T")

Primitive = ConcurrentStack[Any] | ConcurrentArray[Any]
SnapshotListener = Callable[["Snapshot[Any]"], None]


@dataclass(frozen=True, slots=True)
class Snapshot(Generic[T]):
    """Immutable copy of a primitive's contents, for display only.

    Elements are read one at a time while workers keep mutating, so the copy
    may mix values from adjacent states. `observed_len` is the length read at
    the start of the scan; `len(items)` can be smaller if the primitive shrank
    mid-scan. For a stack both come from one observed top, so they always
    agree.
    """

    source: str
    seq: int
    observed_len: int
    items: tuple[T, ...]
    ts: datetime
    reason: str = ""

    def __len__(self) -> int:
        return len(self.items)


def read_items(primitive: Primitive) -> tuple[int, tuple[Any, ...]]:
    """Dirty-read a primitive.

    The stack is read as the chain under one observed top. The array is read
    with one len() read, then one read per index.
    """

    if isinstance(primitive, ConcurrentStack):
        height, values = primitive.snapshot()
        return height, tuple(values)

    observed = len(primitive)
    items: list[Any] = []
    for i in range(observed):
        try:
            items.append(primitive.read(i))
        except IndexOutOfBounds:
            # Shrunk under us; everything past this index is gone too.
            break
    return observed, tuple(items)


@dataclass(frozen=True, slots=True)
class Cadence:
    """Publish every `every` iterations and always on the final one."""

    every: int = 1

    def due(self, iteration: int, *, final: bool = False) -> bool:
        if final:
            return True
        if self.every <= 0:
            return False
        return (iteration + 1) % self.every == 0


class SnapshotSync:
    """Turns primitive state into snapshots and hands them to the Display.

    Sources are registered by name. `publish` takes a fresh snapshot and
    passes it to each listener; listeners must not block (the WebSocket hub
    schedules its broadcast rather than awaiting it).
    """

    def __init__(self) -> None:
        self._sources: dict[str, Primitive] = {}
        self._listeners: list[SnapshotListener] = []
        self._seq = itertools.count(1)

    def register(self, name: str, primitive: Primitive) -> None:
        self._sources[name] = primitive

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def source(self, name: str) -> Primitive:
        try:
            return self._sources[name]
        except KeyError as e:
            raise ValueError(f"Unknown source: {name}") from e

    def snapshot(self, name: str, *, reason: str = "") -> Snapshot[Any]:
        observed, items = read_items(self.source(name))
        return Snapshot(
            source=name,
            seq=next(self._seq),
            observed_len=observed,
            items=items,
            ts=datetime.now(timezone.utc),
            reason=reason,
        )

    def publish(self, name: str, *, reason: str = "") -> Snapshot[Any]:
        snap = self.snapshot(name, reason=reason)
        for listener in self._listeners:
            listener(snap)
        return snap
