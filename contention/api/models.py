from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

SourceName = Literal["stack", "array"]
InspectOp = Literal["inc", "dec", "double", "halve"]


class WorkerPhase(StrEnum):
    pending = "pending"
    running = "running"
    finished = "finished"
    failed = "failed"


class WorkerRole(StrEnum):
    pusher = "pusher"
    transformer = "transformer"
    producer = "producer"
    consumer = "consumer"
    statistician = "statistician"
    aggregator = "aggregator"
    drainer = "drainer"


class PushRequest(BaseModel):
    # None means "next value": len(stack) + 1.
    value: int | None = None


class InspectRequest(BaseModel):
    op: InspectOp = "inc"


class SeedRequest(BaseModel):
    count: int = Field(32, ge=0, le=10_000)
    step: int = 5


class BurstRequest(BaseModel):
    workers: int | None = Field(None, ge=1, le=64)
    per_worker: int | None = Field(None, ge=1, le=10_000)


class MatrixTransformRequest(BaseModel):
    workers: int = Field(4, ge=1, le=64)
    iterations: int = Field(10, ge=1, le=10_000)
    snapshot_every: int | None = Field(None, ge=1)


class PipelineRequest(BaseModel):
    producers: int = Field(2, ge=1, le=64)
    items_per_producer: int = Field(20, ge=0, le=10_000)
    transforms: int = Field(20, ge=0, le=10_000)
    pops: int = Field(20, ge=0, le=10_000)


class SectionedStatisticsRequest(BaseModel):
    sections: int = Field(4, ge=1, le=64)
    aggregate_delay: float = Field(0.05, ge=0, le=10)


class DrainRequest(BaseModel):
    target: SourceName = "stack"


class PopResponse(BaseModel):
    source: SourceName
    value: int | None
    empty: bool
    length: int


class SnapshotResponse(BaseModel):
    source: str
    seq: int
    observed_len: int
    items: list[int]
    ts: datetime
    reason: str = ""


class LogEntryResponse(BaseModel):
    seq: int
    message: str
    ts: datetime


class ActivityLogResponse(BaseModel):
    capacity: int
    entries: list[LogEntryResponse]


class SectionStats(BaseModel):
    start: int
    stop: int
    count: int = 0
    sum: int = 0
    min: int | None = None
    max: int | None = None


class WorkerSummary(BaseModel):
    worker_id: str
    role: WorkerRole
    phase: WorkerPhase
    ops: int = 0
    skipped: int = 0
    section_start: int | None = None
    section_stop: int | None = None


class WorkloadReport(BaseModel):
    workload: str
    noop: bool = False
    workers: list[WorkerSummary] = Field(default_factory=list)
    counters: dict[str, int] = Field(default_factory=dict)

    # Pipeline only: values the consumer removed, in pop order.
    popped: list[int] = Field(default_factory=list)

    # Sectioned-statistics only.
    sections: list[SectionStats] = Field(default_factory=list)
    merged: SectionStats | None = None
    aggregate: SectionStats | None = None
    consistent: bool | None = None
