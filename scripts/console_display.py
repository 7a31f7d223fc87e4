"""Run the demo workloads against a fresh context and render them in the terminal.

Contract
- Inputs: none (all state is in-memory and starts empty).
- Outputs: a short text rendering of each snapshot the workers publish, plus
  the activity log after each workload.
- This is the same Core-to-Display boundary the HTTP app uses; the terminal
  just plays the part of the Display.

Usage:
    uv run python scripts/console_display.py

Output ordering between workers is nondeterministic by design.
"""

from __future__ import annotations

import asyncio
from typing import Any

from contention.config import Settings
from contention.core.context import create_context
from contention.core.snapshot import Snapshot

MAX_ITEMS = 16


def _render(snap: Snapshot[Any]) -> str:
    shown = list(snap.items[-MAX_ITEMS:])
    more = "" if len(snap.items) <= MAX_ITEMS else f" (+{len(snap.items) - MAX_ITEMS} more)"
    return f"#{snap.seq:<5} {snap.source:<5} len={snap.observed_len:<4} {snap.reason:<12} {shown}{more}"


async def _main() -> None:
    ctx = create_context(Settings.from_env())
    ctx.sync.add_listener(lambda snap: print(_render(snap)))

    ctx.orchestrator.seed_array(count=32, step=5)

    await ctx.orchestrator.burst()
    await ctx.orchestrator.matrix_transform(workers=4, iterations=3, snapshot_every=1)
    await ctx.orchestrator.pipeline()
    report = await ctx.orchestrator.sectioned_statistics()
    print(f"statistics consistent: {report.consistent}")

    # Burst and drain race each other; only the visible order changes.
    await asyncio.gather(ctx.orchestrator.burst(), ctx.orchestrator.drain(target="stack"))
    await ctx.orchestrator.drain(target="stack")
    await ctx.orchestrator.drain(target="array")

    print()
    for entry in ctx.log.entries():
        print(f"{entry.seq:>4} {entry.ts:%H:%M:%S.%f} {entry.message}")


if __name__ == "__main__":
    asyncio.run(_main())
