from __future__ import annotations


class PrimitiveError(Exception):
    """Base class for errors raised by the shared primitives."""


class IndexOutOfBounds(PrimitiveError, IndexError):
    """Raised when an element access names an index outside [0, len).

    `length` is the length observed at the time of the check. It may already
    be stale when the caller sees the exception.
    """

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"index {index} out of bounds for length {length}")
        self.index = index
        self.length = length


class ContentionTimeout(PrimitiveError, RuntimeError):
    pass
