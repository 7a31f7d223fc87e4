from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from contention.lock import DEFAULT_TIMEOUT_S, bounded
from contention.prim.errors import IndexOutOfBounds

T = TypeVar("T")


class _Slot(Generic[T]):
    __slots__ = ("value", "lock", "retired")

    def __init__(self, value: T) -> None:
        self.value = value
        self.lock = threading.Lock()
        # Set (under `lock`) when pop() detaches the slot from the array.
        self.retired = False


class ConcurrentArray(Generic[T]):
    """Growable, indexable collection with per-slot locking.

    Every slot carries its own lock. `inspect_element` only takes the lock of
    the slot it touches, so work on different indices never serializes. The
    structural lock guards the slot list itself and is held only for the
    append/remove of a slot, never while a mutator runs.
    """

    def __init__(self, values: Iterable[T] = (), *, lock_timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        self._slots: list[_Slot[T]] = [_Slot(v) for v in values]
        self._struct_lock = threading.Lock()
        self._lock_timeout_s = lock_timeout_s

    def push(self, value: T) -> None:
        slot = _Slot(value)
        with bounded(self._struct_lock, timeout_s=self._lock_timeout_s, what="array structure"):
            self._slots.append(slot)

    def extend(self, values: Iterable[T]) -> None:
        for v in values:
            self.push(v)

    def pop(self) -> T | None:
        with bounded(self._struct_lock, timeout_s=self._lock_timeout_s, what="array structure"):
            if not self._slots:
                return None
            slot = self._slots[-1]
            # Wait out any in-flight mutation of the last slot so the popped
            # value includes it, then detach.
            with bounded(slot.lock, timeout_s=self._lock_timeout_s):
                slot.retired = True
                self._slots.pop()
                return slot.value

    def inspect_element(self, index: int, mutator: Callable[[T], T]) -> None:
        """Atomically replace the value at `index` with `mutator(value)`.

        Raises IndexOutOfBounds if `index` is outside [0, len) at the time of
        the call, or if the slot is removed by a concurrent pop before its lock
        is acquired. The mutator is not applied in either case.
        """

        slot = self._slot_at(index)
        with bounded(slot.lock, timeout_s=self._lock_timeout_s):
            if slot.retired:
                raise IndexOutOfBounds(index, len(self._slots))
            slot.value = mutator(slot.value)

    def read(self, index: int) -> T:
        slot = self._slot_at(index)
        with bounded(slot.lock, timeout_s=self._lock_timeout_s):
            if slot.retired:
                raise IndexOutOfBounds(index, len(self._slots))
            return slot.value

    def _slot_at(self, index: int) -> _Slot[T]:
        if index < 0:
            raise IndexOutOfBounds(index, len(self._slots))
        try:
            return self._slots[index]
        except IndexError:
            raise IndexOutOfBounds(index, len(self._slots)) from None

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"ConcurrentArray(len={len(self)})"
