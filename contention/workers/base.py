from __future__ import annotations

from dataclasses import dataclass, field

from contention.api.models import WorkerPhase, WorkerRole, WorkerSummary
from contention.workers.sections import Section


@dataclass(frozen=True, slots=True)
class Worker:
    """Everything a worker needs, copied by value at spawn time.

    - `budget`: fixed number of operations (pushes, passes, pops, ...).
    - `base`: value offset for workers that generate values.
    - `section`: index range for sectioned workloads.
    """

    worker_id: str
    role: WorkerRole
    ordinal: int = 0
    budget: int = 0
    base: int = 0
    section: Section | None = None


@dataclass(slots=True)
class WorkerRun:
    """Bookkeeping for one worker, owned by the orchestrator task that runs it."""

    worker: Worker
    phase: WorkerPhase = WorkerPhase.pending
    ops: int = 0
    skipped: int = 0
    empty: int = 0
    results: list[int] = field(default_factory=list)

    def summary(self) -> WorkerSummary:
        section = self.worker.section
        return WorkerSummary(
            worker_id=self.worker.worker_id,
            role=self.worker.role,
            phase=self.phase,
            ops=self.ops,
            skipped=self.skipped,
            section_start=section.start if section is not None else None,
            section_stop=section.stop if section is not None else None,
        )
