from __future__ import annotations

from dataclasses import dataclass

from contention.config import Settings
from contention.core.events import ActivityLog
from contention.core.snapshot import SnapshotSync
from contention.display import DisplayState
from contention.orchestrator import WorkerOrchestrator
from contention.prim.array import ConcurrentArray
from contention.prim.stack import ConcurrentStack


@dataclass(slots=True)
class AppContext:
    """Lifetime-scoped owner of the shared primitives and their observers.

    One per app (or per test). Workers and the Display receive this, or the
    pieces they need, explicitly; nothing lives in module globals.
    """

    settings: Settings
    stack: ConcurrentStack[int]
    array: ConcurrentArray[int]
    log: ActivityLog
    display: DisplayState
    sync: SnapshotSync
    orchestrator: WorkerOrchestrator


def create_context(settings: Settings | None = None) -> AppContext:
    settings = settings or Settings()
    stack: ConcurrentStack[int] = ConcurrentStack(lock_timeout_s=settings.lock_timeout_s)
    array: ConcurrentArray[int] = ConcurrentArray(lock_timeout_s=settings.lock_timeout_s)
    log = ActivityLog(capacity=settings.log_capacity)
    display = DisplayState(log=log)

    sync = SnapshotSync()
    sync.register("stack", stack)
    sync.register("array", array)
    sync.add_listener(display.render)

    orchestrator = WorkerOrchestrator(stack=stack, array=array, log=log, sync=sync, settings=settings)
    return AppContext(
        settings=settings,
        stack=stack,
        array=array,
        log=log,
        display=display,
        sync=sync,
        orchestrator=orchestrator,
    )
