from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from contention.api.models import InspectOp


@dataclass(frozen=True, slots=True)
class Transform:
    name: str
    fn: Callable[[int], int]

    def __call__(self, value: int) -> int:
        return self.fn(value)


TRANSFORMS: tuple[Transform, ...] = (
    Transform("inc", lambda v: v + 1),
    Transform("double", lambda v: v * 2),
    Transform("minus3", lambda v: v - 3),
    Transform("halve", lambda v: v // 2),
)

# Single-index edits a user can trigger from the Display.
OPS: dict[InspectOp, Transform] = {
    "inc": Transform("inc", lambda v: v + 1),
    "dec": Transform("dec", lambda v: v - 1),
    "double": Transform("double", lambda v: v * 2),
    "halve": Transform("halve", lambda v: v // 2),
}


def transform_for(worker_index: int) -> Transform:
    """Matrix-transform workers pick their transform by index modulo 4."""

    return TRANSFORMS[worker_index % len(TRANSFORMS)]
