"""Bar-aligned indicator value series.

Uses a slotted dataclass instead of a pydantic model: series are created
for every indicator of every security on each request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from ta_core.errors import EngineInvariantError


@dataclass(frozen=True, slots=True)
class IndicatorSeries:
    """A named sequence of indicator values, one per bar.

    ``None`` marks an absent value (warm-up or undefined arithmetic);
    it is never substituted with zero.
    """

    name: str
    values: tuple[float | None, ...]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[float | None]:
        return iter(self.values)

    def __getitem__(self, index: int) -> float | None:
        return self.at(index)

    def at(self, index: int) -> float | None:
        """Value at a bar index.

        Raises:
            EngineInvariantError: If the index lies outside the series.
        """
        if index < 0 or index >= len(self.values):
            raise EngineInvariantError(
                f"index {index} out of range for series '{self.name}' "
                f"of length {len(self.values)}"
            )
        return self.values[index]

    @property
    def latest(self) -> float | None:
        """Value at the last bar, or None for an empty series."""
        return self.values[-1] if self.values else None

    @property
    def first_present_index(self) -> int | None:
        for i, value in enumerate(self.values):
            if value is not None:
                return i
        return None

    def present_values(self, upto: int) -> list[float]:
        """Present values at indices ``<= upto``, oldest first."""
        self.at(upto)
        return [v for v in self.values[: upto + 1] if v is not None]

    def ensure_aligned(self, bar_count: int) -> "IndicatorSeries":
        """Check that the series has exactly one value per bar."""
        if len(self.values) != bar_count:
            raise EngineInvariantError(
                f"series '{self.name}' has {len(self.values)} values "
                f"for {bar_count} bars"
            )
        return self

    @classmethod
    def absent(cls, name: str, length: int) -> "IndicatorSeries":
        return cls(name, (None,) * length)

    @classmethod
    def from_values(cls, name: str, values: Sequence[float | None]) -> "IndicatorSeries":
        return cls(name, tuple(values))
