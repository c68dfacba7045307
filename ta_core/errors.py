"""Engine exception types."""

from __future__ import annotations

from pydantic import ValidationError


class FilterValidationError(ValueError):
    """Raised when screener filters are invalid.

    Attributes:
        problems: One human-readable message per rejected input.
    """

    def __init__(self, problems: list[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class EngineInvariantError(RuntimeError):
    """Raised when an internal invariant is broken (misaligned series,
    out-of-range bar index). Indicates a bug, not bad input."""


class ScreeningCancelled(Exception):
    """Raised when a cancellation token fires during a batch scan."""


def problems_from(error: ValidationError, prefix: str = "") -> list[str]:
    """Flatten a pydantic ValidationError into one message per failed field."""
    problems = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        where = ": ".join(part for part in (prefix, location) if part)
        problems.append(f"{where}: {err['msg']}" if where else err["msg"])
    return problems
