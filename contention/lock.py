from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from contention.prim.errors import ContentionTimeout

DEFAULT_TIMEOUT_S = 1.0


@contextmanager
def bounded(lock: threading.Lock, *, timeout_s: float = DEFAULT_TIMEOUT_S, what: str = "slot") -> Iterator[None]:
    """Acquire `lock` for a short critical section, giving up after `timeout_s`.

    Callers must not await (or do anything slow) while holding the lock.
    Under the asyncio scheduler the lock is never actually contended; it keeps
    the per-slot contract when the primitives are driven from real threads.
    """

    acquired = lock.acquire(timeout=timeout_s)
    if not acquired:
        raise ContentionTimeout(f"Could not acquire {what} lock within {timeout_s}s")
    try:
        yield
    finally:
        lock.release()
