from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from contention.api.models import InspectOp, SourceName, WorkerRole, WorkloadReport
from contention.config import Settings
from contention.core.events import ActivityLog
from contention.core.snapshot import Cadence, SnapshotSync
from contention.fsm import WorkerFSM
from contention.prim.array import ConcurrentArray
from contention.prim.errors import IndexOutOfBounds
from contention.prim.stack import ConcurrentStack
from contention.workers.base import Worker, WorkerRun
from contention.workers.sections import partition_sections
from contention.workers.stats import RunningStats
from contention.workers.transforms import OPS, transform_for

logger = logging.getLogger(__name__)

WorkerBody = Callable[[WorkerRun], Awaitable[None]]

# Added by the pipeline transformer to the midpoint on each step.
PIPELINE_BUMP = 100


async def _yield() -> None:
    # The only scheduling knob: lets other workers (and the renderer) interleave.
    await asyncio.sleep(0)


class WorkerOrchestrator:
    """Turns Display actions into bounded, concurrently running workers.

    Workers are asyncio tasks. They share nothing but the two primitives, the
    activity log and the snapshot sync; each owns its budget and section by
    value. Workloads return a WorkloadReport once every worker has finished.
    """

    def __init__(
        self,
        *,
        stack: ConcurrentStack[int],
        array: ConcurrentArray[int],
        log: ActivityLog,
        sync: SnapshotSync,
        settings: Settings | None = None,
    ) -> None:
        self.stack = stack
        self.array = array
        self.log = log
        self.sync = sync
        self.settings = settings or Settings()

    # ---- supervision ----

    async def _supervise(self, run: WorkerRun, body: WorkerBody) -> None:
        fsm = WorkerFSM(run)
        fsm.begin()
        fsm.sync_phase_to_model()
        try:
            await body(run)
        except Exception:
            fsm.crash()
            fsm.sync_phase_to_model()
            logger.exception("worker %s failed", run.worker.worker_id)
            raise
        fsm.complete()
        fsm.sync_phase_to_model()

    async def _run_workers(self, runs: list[tuple[WorkerRun, WorkerBody]]) -> None:
        """Run every worker to completion, then re-raise the first failure.

        Siblings of a failed worker are never left running behind the caller.
        """

        results = await asyncio.gather(
            *(self._supervise(run, body) for run, body in runs),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    def _noop(self, workload: str, why: str) -> WorkloadReport:
        self.log.append(f"{workload}: no-op ({why})")
        return WorkloadReport(workload=workload, noop=True)

    # ---- single-shot actions ----

    def push_next(self) -> int:
        value = len(self.stack) + 1
        self.stack.push(value)
        self.sync.publish("stack", reason="push")
        self.log.append(f"push: {value}")
        return value

    def push_value(self, target: SourceName, value: int) -> None:
        self.sync.source(target).push(value)
        self.sync.publish(target, reason="push")
        self.log.append(f"push {target}: {value}")

    def pop_one(self, target: SourceName) -> int | None:
        value = self.sync.source(target).pop()
        self.sync.publish(target, reason="pop")
        if value is None:
            self.log.append(f"pop {target}: empty (no-op)")
        else:
            self.log.append(f"pop {target}: {value}")
        return value

    def inspect(self, index: int, op: InspectOp) -> int:
        """Apply a named single-index edit to the array and return the new value.

        IndexOutOfBounds is logged and re-raised for the caller to report.
        """

        transform = OPS[op]
        result: list[int] = []

        def _mutate(v: int) -> int:
            nv = transform(v)
            result.append(nv)
            return nv

        try:
            self.array.inspect_element(index, _mutate)
        except IndexOutOfBounds as e:
            self.log.append(f"inspect [{index}]: out of bounds (len={e.length})")
            raise
        self.sync.publish("array", reason="inspect")
        self.log.append(f"inspect [{index}] {op}: {result[0]}")
        return result[0]

    def seed_array(self, *, count: int = 32, step: int = 5) -> int:
        self.array.extend(i * step for i in range(count))
        self.sync.publish("array", reason="seed")
        self.log.append(f"seed: {count} elements (i*{step})")
        return len(self.array)

    # ---- burst ----

    async def burst(self, *, workers: int | None = None, per_worker: int | None = None) -> WorkloadReport:
        if workers is None:
            workers = self.settings.burst_workers
        if per_worker is None:
            per_worker = self.settings.burst_per_worker
        start = len(self.stack)
        self.log.append(f"burst: {workers} workers x {per_worker} from {start + 1}")

        runs = [
            WorkerRun(
                Worker(
                    worker_id=f"burst-{w}",
                    role=WorkerRole.pusher,
                    ordinal=w,
                    budget=per_worker,
                    base=start + w * per_worker,
                )
            )
            for w in range(workers)
        ]
        await self._run_workers([(run, self._burst_worker) for run in runs])

        pushed = sum(run.ops for run in runs)
        self.log.append(f"burst: {pushed} pushed, len={len(self.stack)}")
        return WorkloadReport(
            workload="burst",
            workers=[run.summary() for run in runs],
            counters={"pushed": pushed, "final_len": len(self.stack)},
        )

    async def _burst_worker(self, run: WorkerRun) -> None:
        w = run.worker
        for i in range(1, w.budget + 1):
            self.stack.push(w.base + i)
            run.ops += 1
            # Every burst worker competes to set the displayed snapshot.
            self.sync.publish("stack", reason=w.worker_id)
            await _yield()

    # ---- matrix-transform ----

    async def matrix_transform(
        self,
        *,
        workers: int = 4,
        iterations: int = 10,
        snapshot_every: int | None = None,
    ) -> WorkloadReport:
        length = len(self.array)
        if length == 0:
            return self._noop("matrix_transform", "array is empty")

        cadence = Cadence(every=self.settings.snapshot_every if snapshot_every is None else snapshot_every)
        sections = partition_sections(length=length, count=workers)
        self.log.append(f"matrix_transform: {len(sections)} workers over {length} elements x {iterations}")

        runs = [
            WorkerRun(
                Worker(
                    worker_id=f"matrix-{w}",
                    role=WorkerRole.transformer,
                    ordinal=w,
                    budget=iterations,
                    section=section,
                )
            )
            for w, section in enumerate(sections)
        ]

        def _body(run: WorkerRun) -> Awaitable[None]:
            return self._matrix_worker(run, cadence)

        await self._run_workers([(run, _body) for run in runs])

        skipped = sum(run.skipped for run in runs)
        self.log.append(f"matrix_transform: done ({skipped} skipped)")
        return WorkloadReport(
            workload="matrix_transform",
            workers=[run.summary() for run in runs],
            counters={"mutations": sum(run.ops for run in runs), "skipped": skipped},
        )

    async def _matrix_worker(self, run: WorkerRun, cadence: Cadence) -> None:
        w = run.worker
        assert w.section is not None
        transform = transform_for(w.ordinal)
        for it in range(w.budget):
            for idx in w.section.indices():
                try:
                    self.array.inspect_element(idx, transform)
                    run.ops += 1
                except IndexOutOfBounds:
                    # Section went stale (array shrank); skip and keep going.
                    run.skipped += 1
                    logger.debug("%s: index %d gone, skipping", w.worker_id, idx)
            if cadence.due(it, final=it == w.budget - 1):
                self.sync.publish("array", reason=w.worker_id)
            await _yield()

    # ---- pipeline ----

    async def pipeline(
        self,
        *,
        producers: int = 2,
        items_per_producer: int = 20,
        transforms: int = 20,
        pops: int = 20,
    ) -> WorkloadReport:
        start = len(self.array)
        self.log.append(
            f"pipeline: {producers} producers x {items_per_producer}, {transforms} transforms, {pops} pops"
        )

        runs: list[tuple[WorkerRun, WorkerBody]] = []
        for p in range(producers):
            run = WorkerRun(
                Worker(
                    worker_id=f"producer-{p}",
                    role=WorkerRole.producer,
                    ordinal=p,
                    budget=items_per_producer,
                    base=start + p * items_per_producer,
                )
            )
            runs.append((run, self._producer_worker))
        transformer = WorkerRun(Worker(worker_id="transformer", role=WorkerRole.transformer, budget=transforms))
        consumer = WorkerRun(Worker(worker_id="consumer", role=WorkerRole.consumer, budget=pops))
        runs.append((transformer, self._midpoint_worker))
        runs.append((consumer, self._consumer_worker))

        await self._run_workers(runs)
        self.sync.publish("array", reason="pipeline")

        pushed = sum(run.ops for run, _ in runs if run.worker.role == WorkerRole.producer)
        self.log.append(f"pipeline: +{pushed} -{consumer.ops}, len={len(self.array)}")
        return WorkloadReport(
            workload="pipeline",
            workers=[run.summary() for run, _ in runs],
            popped=list(consumer.results),
            counters={
                "pushed": pushed,
                "transformed": transformer.ops,
                "transform_skipped": transformer.skipped + transformer.empty,
                "popped": consumer.ops,
                "empty_pops": consumer.empty,
                "final_len": len(self.array),
            },
        )

    async def _producer_worker(self, run: WorkerRun) -> None:
        w = run.worker
        for i in range(1, w.budget + 1):
            self.array.push(w.base + i)
            run.ops += 1
            await _yield()

    async def _midpoint_worker(self, run: WorkerRun) -> None:
        for _ in range(run.worker.budget):
            n = len(self.array)
            if n == 0:
                run.empty += 1
            else:
                try:
                    self.array.inspect_element(n // 2, lambda v: v + PIPELINE_BUMP)
                    run.ops += 1
                except IndexOutOfBounds:
                    run.skipped += 1
            await _yield()

    async def _consumer_worker(self, run: WorkerRun) -> None:
        for _ in range(run.worker.budget):
            value = self.array.pop()
            if value is None:
                run.empty += 1
            else:
                run.ops += 1
                run.results.append(value)
            await _yield()

    # ---- sectioned statistics ----

    async def sectioned_statistics(self, *, sections: int = 4, aggregate_delay: float = 0.05) -> WorkloadReport:
        length = len(self.array)
        if length == 0:
            return self._noop("sectioned_statistics", "array is empty")

        parts = partition_sections(length=length, count=sections)
        self.log.append(f"sectioned_statistics: {len(parts)} sections over {length} elements")

        section_stats = [RunningStats(start=s.start, stop=s.stop) for s in parts]
        aggregate = RunningStats(start=0, stop=length)

        runs: list[tuple[WorkerRun, WorkerBody]] = []
        for w, (section, stats) in enumerate(zip(parts, section_stats)):
            run = WorkerRun(
                Worker(
                    worker_id=f"stats-{w}",
                    role=WorkerRole.statistician,
                    ordinal=w,
                    budget=len(section),
                    section=section,
                )
            )
            runs.append((run, self._stats_body(stats)))

        aggregator = WorkerRun(Worker(worker_id="aggregator", role=WorkerRole.aggregator))
        runs.append((aggregator, self._aggregate_body(aggregate, aggregate_delay)))

        await self._run_workers(runs)

        merged = section_stats[0]
        for stats in section_stats[1:]:
            merged = merged.merge(stats)
        consistent = merged.matches(aggregate)
        self.log.append(f"sectioned_statistics: sum={merged.total} vs aggregate={aggregate.total}")

        return WorkloadReport(
            workload="sectioned_statistics",
            workers=[run.summary() for run, _ in runs],
            counters={"reads": sum(run.ops for run, _ in runs), "skipped": sum(run.skipped for run, _ in runs)},
            sections=[s.to_model() for s in section_stats],
            merged=merged.to_model(),
            aggregate=aggregate.to_model(),
            consistent=consistent,
        )

    def _stats_body(self, stats: RunningStats) -> WorkerBody:
        async def _body(run: WorkerRun) -> None:
            assert run.worker.section is not None
            for idx in run.worker.section.indices():
                try:
                    stats.add(self.array.read(idx))
                    run.ops += 1
                except IndexOutOfBounds:
                    run.skipped += 1
                await _yield()

        return _body

    def _aggregate_body(self, stats: RunningStats, delay: float) -> WorkerBody:
        async def _body(run: WorkerRun) -> None:
            await asyncio.sleep(delay)
            n = len(self.array)
            stats.stop = n
            for idx in range(n):
                try:
                    stats.add(self.array.read(idx))
                    run.ops += 1
                except IndexOutOfBounds:
                    run.skipped += 1
                    break

        return _body

    # ---- drain ----

    async def drain(self, *, target: SourceName = "stack") -> WorkloadReport:
        primitive: Any = self.sync.source(target)
        if len(primitive) == 0:
            return self._noop("drain", f"{target} is empty")

        run = WorkerRun(Worker(worker_id=f"drain-{target}", role=WorkerRole.drainer))

        async def _body(r: WorkerRun) -> None:
            every = max(1, self.settings.drain_yield_every)
            while primitive.pop() is not None:
                r.ops += 1
                if r.ops % every == 0:
                    self.sync.publish(target, reason="drain")
                    await asyncio.sleep(0.001)

        await self._run_workers([(run, _body)])
        self.sync.publish(target, reason="drain")
        self.log.append(f"drain complete: {run.ops} nodes reclaimed")
        return WorkloadReport(
            workload="drain",
            workers=[run.summary()],
            counters={"popped": run.ops, "final_len": len(primitive)},
        )

    async def run_named(self, name: str, params: dict[str, Any]) -> WorkloadReport:
        """Dispatch a workload by name (used by the HTTP surface)."""

        workloads: dict[str, Callable[..., Awaitable[WorkloadReport]]] = {
            "burst": self.burst,
            "matrix_transform": self.matrix_transform,
            "pipeline": self.pipeline,
            "sectioned_statistics": self.sectioned_statistics,
            "drain": self.drain,
        }
        try:
            fn = workloads[name]
        except KeyError as e:
            raise ValueError(f"Unknown workload: {name}") from e
        return await fn(**params)
