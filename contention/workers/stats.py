from __future__ import annotations

from dataclasses import dataclass

from contention.api.models import SectionStats


@dataclass(slots=True)
class RunningStats:
    start: int
    stop: int
    count: int = 0
    total: int = 0
    lo: int | None = None
    hi: int | None = None

    def add(self, value: int) -> None:
        self.count += 1
        self.total += value
        self.lo = value if self.lo is None else min(self.lo, value)
        self.hi = value if self.hi is None else max(self.hi, value)

    def merge(self, other: "RunningStats") -> "RunningStats":
        out = RunningStats(start=min(self.start, other.start), stop=max(self.stop, other.stop))
        out.count = self.count + other.count
        out.total = self.total + other.total
        los = [v for v in (self.lo, other.lo) if v is not None]
        his = [v for v in (self.hi, other.hi) if v is not None]
        out.lo = min(los) if los else None
        out.hi = max(his) if his else None
        return out

    def to_model(self) -> SectionStats:
        return SectionStats(start=self.start, stop=self.stop, count=self.count, sum=self.total, min=self.lo, max=self.hi)

    def matches(self, other: "RunningStats") -> bool:
        return (self.count, self.total, self.lo, self.hi) == (other.count, other.total, other.lo, other.hi)
