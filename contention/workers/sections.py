from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Section:
    """Half-open index range [start, stop) owned by one worker."""

    start: int
    stop: int

    def __len__(self) -> int:
        return max(0, self.stop - self.start)

    def indices(self) -> range:
        return range(self.start, self.stop)


def partition_sections(*, length: int, count: int) -> list[Section]:
    """Split [0, length) into contiguous, non-overlapping sections.

    Rules:
    - every section has `length // count` indices; the last one also takes the remainder.
    - `count` is clamped to `length` so no section is empty.
    - an empty range yields no sections.
    """

    if count < 1:
        raise ValueError("count must be >= 1")
    if length <= 0:
        return []

    count = min(count, length)
    size = length // count
    sections: list[Section] = []
    for w in range(count):
        start = w * size
        stop = length if w == count - 1 else start + size
        sections.append(Section(start=start, stop=stop))
    return sections
