from __future__ import annotations

import asyncio

import pytest

from contention.api.models import MatrixTransformRequest, WorkerPhase, WorkerRole
from contention.core.context import AppContext
from contention.fsm import WorkerFSM
from contention.workers.base import Worker, WorkerRun


@pytest.mark.asyncio
async def test_seed_then_single_worker_transform(ctx: AppContext) -> None:
    ctx.orchestrator.seed_array(count=32, step=5)
    assert ctx.sync.snapshot("array").items == tuple(i * 5 for i in range(32))

    report = await ctx.orchestrator.matrix_transform(workers=1, iterations=1)

    assert not report.noop
    assert ctx.sync.snapshot("array").items == tuple(i * 5 + 1 for i in range(32))
    assert report.counters["mutations"] == 32
    assert report.counters["skipped"] == 0


@pytest.mark.asyncio
async def test_burst_then_drain(ctx: AppContext) -> None:
    burst = await ctx.orchestrator.burst(workers=4, per_worker=25)
    assert burst.counters["pushed"] == 100
    assert sorted(ctx.stack.values()) == list(range(1, 101))

    drain = await ctx.orchestrator.drain(target="stack")

    assert len(ctx.stack) == 0
    assert drain.counters["popped"] == 100
    assert ctx.log.messages()[-1] == "drain complete: 100 nodes reclaimed"
    current = ctx.display.current("stack")
    assert current is not None and current.items == ()


@pytest.mark.asyncio
async def test_burst_workers_interleave_and_keep_their_own_order(ctx: AppContext) -> None:
    await ctx.orchestrator.burst(workers=4, per_worker=25)
    chain = ctx.stack.values()

    # Each worker yields after every push, so the first round has one value per worker.
    assert set(chain[:4]) == {1, 26, 51, 76}
    for w in range(4):
        mine = [v for v in chain if w * 25 < v <= (w + 1) * 25]
        assert mine == list(range(w * 25 + 1, (w + 1) * 25 + 1))


@pytest.mark.asyncio
async def test_burst_continues_from_current_length(ctx: AppContext) -> None:
    ctx.orchestrator.push_next()
    ctx.orchestrator.push_next()
    await ctx.orchestrator.burst(workers=2, per_worker=3)
    assert sorted(ctx.stack.values()) == [1, 2, 3, 4, 5, 6, 7, 8]


@pytest.mark.asyncio
async def test_matrix_transform_picks_transform_per_worker(ctx: AppContext) -> None:
    ctx.array.extend([10] * 8)

    report = await ctx.orchestrator.matrix_transform(workers=4, iterations=1)

    assert ctx.sync.snapshot("array").items == (11, 11, 20, 20, 7, 7, 5, 5)
    assert [(w.section_start, w.section_stop) for w in report.workers] == [(0, 2), (2, 4), (4, 6), (6, 8)]
    assert all(w.phase == WorkerPhase.finished for w in report.workers)


@pytest.mark.asyncio
async def test_matrix_transform_publishes_on_cadence(ctx: AppContext) -> None:
    ctx.array.extend([0] * 4)
    before = ctx.display.renders

    await ctx.orchestrator.matrix_transform(workers=1, iterations=6, snapshot_every=2)

    # iterations 1, 3, 5 (the last one is also the final publish)
    assert ctx.display.renders - before == 3
    assert ctx.sync.snapshot("array").items == (6, 6, 6, 6)


@pytest.mark.asyncio
async def test_matrix_transform_skips_indices_removed_mid_run(ctx: AppContext) -> None:
    ctx.array.extend([0] * 40)

    async def _shrink() -> None:
        for _ in range(30):
            ctx.array.pop()
            await asyncio.sleep(0)

    report, _ = await asyncio.gather(
        ctx.orchestrator.matrix_transform(workers=4, iterations=5),
        _shrink(),
    )

    assert report.counters["skipped"] > 0
    assert all(w.phase == WorkerPhase.finished for w in report.workers)
    assert len(ctx.array) == 10


@pytest.mark.asyncio
@pytest.mark.parametrize("workload", ["matrix_transform", "sectioned_statistics"])
async def test_empty_array_workloads_are_noops(ctx: AppContext, workload: str) -> None:
    report = await ctx.orchestrator.run_named(workload, {})
    assert report.noop
    assert report.workers == []
    assert "no-op" in ctx.log.messages()[-1]


@pytest.mark.asyncio
async def test_drain_on_empty_is_noop(ctx: AppContext) -> None:
    report = await ctx.orchestrator.drain(target="array")
    assert report.noop
    assert ctx.log.messages()[-1] == "drain: no-op (array is empty)"


@pytest.mark.asyncio
async def test_pipeline_accounts_for_every_element(ctx: AppContext) -> None:
    report = await ctx.orchestrator.pipeline(producers=3, items_per_producer=20, transforms=30, pops=25)

    c = report.counters
    assert c["pushed"] == 60
    assert c["popped"] + c["empty_pops"] == 25
    assert c["pushed"] - c["popped"] == c["final_len"] == len(ctx.array)
    assert c["transformed"] > 0
    roles = {w.role for w in report.workers}
    assert roles == {WorkerRole.producer, WorkerRole.transformer, WorkerRole.consumer}


@pytest.mark.asyncio
async def test_sectioned_statistics_match_the_aggregate_when_idle(ctx: AppContext) -> None:
    ctx.orchestrator.seed_array(count=32, step=5)

    report = await ctx.orchestrator.sectioned_statistics(sections=4, aggregate_delay=0)

    assert len(report.sections) == 4
    assert [s.count for s in report.sections] == [8, 8, 8, 8]
    assert report.merged is not None and report.aggregate is not None
    assert report.merged.sum == report.aggregate.sum == 5 * sum(range(32))
    assert (report.aggregate.min, report.aggregate.max) == (0, 155)
    assert report.consistent is True


@pytest.mark.asyncio
async def test_drain_racing_a_burst_loses_nothing(ctx: AppContext) -> None:
    for v in range(-10, 0):
        ctx.stack.push(v)

    burst, drain = await asyncio.gather(
        ctx.orchestrator.burst(workers=4, per_worker=50),
        ctx.orchestrator.drain(target="stack"),
    )

    drained = drain.counters["popped"]
    remaining = ctx.stack.values()
    assert drained + len(remaining) == 210
    assert len(set(remaining)) == len(remaining)
    assert len(ctx.stack) == len(remaining)
    assert burst.counters["pushed"] == 200


@pytest.mark.asyncio
async def test_worker_failure_propagates_and_is_logged(
    ctx: AppContext,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    ctx.array.extend([1, 2, 3, 4])

    def _boom(index: int) -> int:
        raise RuntimeError("boom")

    monkeypatch.setattr(ctx.array, "read", _boom)

    with pytest.raises(RuntimeError, match="boom"):
        await ctx.orchestrator.sectioned_statistics(sections=2, aggregate_delay=0)

    assert "failed" in caplog.text


def test_worker_fsm_lifecycle() -> None:
    run = WorkerRun(Worker(worker_id="w", role=WorkerRole.pusher))
    fsm = WorkerFSM(run)
    fsm.begin()
    fsm.sync_phase_to_model()
    assert run.phase == WorkerPhase.running

    fsm.crash()
    fsm.sync_phase_to_model()
    assert run.phase == WorkerPhase.failed


def test_single_shot_actions(ctx: AppContext) -> None:
    assert ctx.orchestrator.push_next() == 1
    assert ctx.orchestrator.push_next() == 2
    assert ctx.orchestrator.pop_one("stack") == 2
    assert ctx.orchestrator.pop_one("array") is None
    assert ctx.log.messages()[-1] == "pop array: empty (no-op)"

    ctx.orchestrator.seed_array(count=3, step=2)
    assert ctx.orchestrator.inspect(2, "double") == 8


@pytest.mark.asyncio
async def test_failed_worker_waits_for_its_siblings(
    ctx: AppContext,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    ctx.array.extend(range(8))
    real_read = ctx.array.read
    reads: list[int] = []

    def _read(index: int) -> int:
        if index == 0:
            raise RuntimeError("boom")
        reads.append(index)
        return real_read(index)

    monkeypatch.setattr(ctx.array, "read", _read)

    with pytest.raises(RuntimeError, match="boom"):
        await ctx.orchestrator.sectioned_statistics(sections=2, aggregate_delay=0)

    # The second section was read to the end before the error surfaced.
    assert {4, 5, 6, 7} <= set(reads)
    assert asyncio.all_tasks() == {asyncio.current_task()}


@pytest.mark.asyncio
async def test_pipeline_reports_the_values_it_popped(ctx: AppContext) -> None:
    report = await ctx.orchestrator.pipeline(producers=2, items_per_producer=10, transforms=5, pops=8)

    assert len(report.popped) == report.counters["popped"]
    assert len(set(report.popped)) == len(report.popped)
    assert not set(report.popped) & set(ctx.sync.snapshot("array").items)


@pytest.mark.asyncio
async def test_burst_with_zero_workers_pushes_nothing(ctx: AppContext) -> None:
    report = await ctx.orchestrator.burst(workers=0)
    assert report.counters["pushed"] == 0
    assert report.workers == []
    assert len(ctx.stack) == 0

    report = await ctx.orchestrator.burst(workers=2, per_worker=0)
    assert report.counters["pushed"] == 0
    assert len(ctx.stack) == 0


@pytest.mark.asyncio
async def test_matrix_transform_defaults_match_the_http_request(ctx: AppContext) -> None:
    ctx.array.extend([0] * 8)

    direct = await ctx.orchestrator.matrix_transform()
    assert direct.counters["mutations"] == 8 * MatrixTransformRequest().iterations
