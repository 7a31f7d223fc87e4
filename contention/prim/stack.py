from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Generic, TypeVar

from contention.lock import DEFAULT_TIMEOUT_S, bounded

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class StackNode(Generic[T]):
    """One stack entry.

    Nodes are immutable once linked: `below` never changes, so any reader that
    observed a top can walk the rest of the chain without locking.
    `height` is the number of nodes from this one to the bottom, inclusive.
    """

    value: T
    below: StackNode[T] | None
    height: int


class ConcurrentStack(Generic[T]):
    """LIFO stack shared by many workers.

    Contract:
      - `push` always succeeds and makes the value the new top.
      - `pop` hands any given top to at most one caller; returns None when empty.
      - `len()` is read from the top node's height, so it can never drift from
        the chain, but it is only a best-effort value under contention.
    """

    def __init__(self, *, lock_timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        self._top: StackNode[T] | None = None
        self._head_lock = threading.Lock()
        self._lock_timeout_s = lock_timeout_s

    def push(self, value: T) -> None:
        with bounded(self._head_lock, timeout_s=self._lock_timeout_s, what="stack head"):
            below = self._top
            self._top = StackNode(value=value, below=below, height=1 if below is None else below.height + 1)

    def pop(self) -> T | None:
        with bounded(self._head_lock, timeout_s=self._lock_timeout_s, what="stack head"):
            top = self._top
            if top is None:
                return None
            self._top = top.below
        return top.value

    def peek(self) -> T | None:
        top = self._top
        return None if top is None else top.value

    def values(self, *, limit: int | None = None) -> list[T]:
        """Return the values under one observed top, bottom first.

        With `limit`, only the topmost `limit` nodes are read.
        """

        out: list[T] = []
        node = self._top
        while node is not None and (limit is None or len(out) < limit):
            out.append(node.value)
            node = node.below
        out.reverse()
        return out

    def snapshot(self) -> tuple[int, list[T]]:
        """Return (length, values bottom first), both taken from one observed top.

        The pair always describes a state the stack really had.
        """

        top = self._top
        if top is None:
            return 0, []
        out: list[T] = []
        node: StackNode[T] | None = top
        while node is not None:
            out.append(node.value)
            node = node.below
        out.reverse()
        return top.height, out

    def __len__(self) -> int:
        top = self._top
        return 0 if top is None else top.height

    def __repr__(self) -> str:
        return f"ConcurrentStack(len={len(self)}, top={self.peek()!r})"
