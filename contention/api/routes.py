from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel

from contention.api.deps import get_context
from contention.api.models import (
    ActivityLogResponse,
    BurstRequest,
    DrainRequest,
    InspectRequest,
    LogEntryResponse,
    MatrixTransformRequest,
    PipelineRequest,
    PopResponse,
    PushRequest,
    SectionedStatisticsRequest,
    SeedRequest,
    SnapshotResponse,
    SourceName,
    WorkloadReport,
)
from contention.core.context import AppContext
from contention.core.snapshot import Snapshot
from contention.prim.errors import IndexOutOfBounds

router = APIRouter()

WORKLOAD_REQUESTS: dict[str, type[BaseModel]] = {
    "burst": BurstRequest,
    "matrix_transform": MatrixTransformRequest,
    "pipeline": PipelineRequest,
    "sectioned_statistics": SectionedStatisticsRequest,
    "drain": DrainRequest,
}


def _snapshot_response(snap: Snapshot[Any]) -> SnapshotResponse:
    return SnapshotResponse(
        source=snap.source,
        seq=snap.seq,
        observed_len=snap.observed_len,
        items=list(snap.items),
        ts=snap.ts,
        reason=snap.reason,
    )


@router.websocket("/ws/display")
async def display_updates_ws(websocket: WebSocket) -> None:
    hub = websocket.app.state.hub
    await hub.connect(websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(websocket)
    except Exception:
        await hub.disconnect(websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/log", response_model=ActivityLogResponse)
async def log_route(ctx: AppContext = Depends(get_context)) -> ActivityLogResponse:
    return ActivityLogResponse(
        capacity=ctx.log.capacity,
        entries=[LogEntryResponse(seq=e.seq, message=e.message, ts=e.ts) for e in ctx.log.entries()],
    )


@router.get("/{source}", response_model=SnapshotResponse)
async def snapshot_route(source: SourceName, ctx: AppContext = Depends(get_context)) -> SnapshotResponse:
    return _snapshot_response(ctx.sync.snapshot(source, reason="read"))


@router.get("/{source}/len")
async def len_route(source: SourceName, ctx: AppContext = Depends(get_context)) -> dict[str, object]:
    return {"source": source, "length": len(ctx.sync.source(source))}


@router.post("/stack/push", response_model=SnapshotResponse)
async def stack_push_route(payload: PushRequest, ctx: AppContext = Depends(get_context)) -> SnapshotResponse:
    if payload.value is None:
        ctx.orchestrator.push_next()
    else:
        ctx.orchestrator.push_value("stack", payload.value)
    return _snapshot_response(ctx.sync.snapshot("stack", reason="push"))


@router.post("/array/push", response_model=SnapshotResponse)
async def array_push_route(payload: PushRequest, ctx: AppContext = Depends(get_context)) -> SnapshotResponse:
    value = payload.value if payload.value is not None else len(ctx.array)
    ctx.orchestrator.push_value("array", value)
    return _snapshot_response(ctx.sync.snapshot("array", reason="push"))


@router.post("/{source}/pop", response_model=PopResponse)
async def pop_route(source: SourceName, ctx: AppContext = Depends(get_context)) -> PopResponse:
    value = ctx.orchestrator.pop_one(source)
    return PopResponse(source=source, value=value, empty=value is None, length=len(ctx.sync.source(source)))


@router.post("/array/seed", response_model=SnapshotResponse)
async def array_seed_route(payload: SeedRequest, ctx: AppContext = Depends(get_context)) -> SnapshotResponse:
    ctx.orchestrator.seed_array(count=payload.count, step=payload.step)
    return _snapshot_response(ctx.sync.snapshot("array", reason="seed"))


@router.post("/array/{index}/inspect")
async def array_inspect_route(
    index: int,
    payload: InspectRequest,
    ctx: AppContext = Depends(get_context),
) -> dict[str, object]:
    try:
        value = ctx.orchestrator.inspect(index, payload.op)
    except IndexOutOfBounds as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return {"index": index, "op": payload.op, "value": value}


@router.post("/workloads/{name}", response_model=WorkloadReport)
async def workload_route(
    name: str,
    body: dict[str, Any] | None = Body(None),
    ctx: AppContext = Depends(get_context),
) -> WorkloadReport:
    try:
        request_model = WORKLOAD_REQUESTS.get(name)
        if request_model is None:
            raise ValueError(f"Unknown workload: {name}")
        params = request_model.model_validate(body or {}).model_dump(exclude_none=True)
        return await ctx.orchestrator.run_named(name, params)
    except ValueError as e:
        # pydantic.ValidationError is a ValueError too.
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

