from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from e


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number (got {raw!r})") from e


@dataclass(frozen=True, slots=True)
class Settings:
    # Activity log keeps this many most-recent entries.
    log_capacity: int = 12
    # Upper bound on any single lock wait inside the primitives.
    lock_timeout_s: float = 1.0
    burst_workers: int = 4
    burst_per_worker: int = 25
    # Drain yields (and publishes a jitter snapshot) every N pops.
    drain_yield_every: int = 50
    # Matrix-transform publishes every N iterations.
    snapshot_every: int = 5

    @classmethod
    def from_env(cls) -> "Settings":
        d = cls()
        return cls(
            log_capacity=_env_int("CONTENTION_LOG_CAPACITY", d.log_capacity),
            lock_timeout_s=_env_float("CONTENTION_LOCK_TIMEOUT_S", d.lock_timeout_s),
            burst_workers=_env_int("CONTENTION_BURST_WORKERS", d.burst_workers),
            burst_per_worker=_env_int("CONTENTION_BURST_PER_WORKER", d.burst_per_worker),
            drain_yield_every=_env_int("CONTENTION_DRAIN_YIELD_EVERY", d.drain_yield_every),
            snapshot_every=_env_int("CONTENTION_SNAPSHOT_EVERY", d.snapshot_every),
        )
