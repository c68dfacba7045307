"""Price observation and OHLC bar models."""

from __future__ import annotations

import datetime as dt
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PriceObservation(BaseModel):
    """A single raw price sample supplied by a price-history source."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    price: float = Field(allow_inf_nan=False)
    volume: float | None = Field(default=None, ge=0, allow_inf_nan=False)


class OHLCBar(BaseModel):
    """One aggregated period (candlestick)."""

    model_config = ConfigDict(frozen=True)

    time: dt.date
    open: float = Field(allow_inf_nan=False)
    high: float = Field(allow_inf_nan=False)
    low: float = Field(allow_inf_nan=False)
    close: float = Field(allow_inf_nan=False)
    volume: float | None = Field(default=None, ge=0, allow_inf_nan=False)

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def body_size(self) -> float:
        """Get the absolute size of the candle body."""
        return abs(self.close - self.open)

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def midpoint(self) -> float:
        """Midpoint of the candle body."""
        return (self.open + self.close) / 2


class SecurityDescriptor(BaseModel):
    """Identity of a security, as handed to the price-history source."""

    model_config = ConfigDict(frozen=True)

    security_id: int
    name: str
    ticker: str | None = None
    isin: str | None = None
    currency: str = "EUR"


class SecurityData(SecurityDescriptor):
    """A security together with its OHLC bar history.

    Bars must be strictly ascending by time; duplicates are rejected.
    """

    bars: tuple[OHLCBar, ...] = ()

    @field_validator("bars")
    @classmethod
    def _check_order(cls, bars: tuple[OHLCBar, ...]) -> tuple[OHLCBar, ...]:
        for prev, curr in zip(bars, bars[1:]):
            if curr.time <= prev.time:
                raise ValueError(
                    f"bars must be strictly ascending by time: "
                    f"{curr.time} follows {prev.time}"
                )
        return bars

    @classmethod
    def from_observations(
        cls,
        descriptor: SecurityDescriptor,
        observations: Sequence[PriceObservation],
        tolerance: float = 1.5,
    ) -> "SecurityData":
        """Normalize raw observations into bars and attach them to a descriptor."""
        from ta_core.normalizer import normalize_observations

        bars = normalize_observations(observations, tolerance)
        return cls(**descriptor.model_dump(), bars=tuple(bars))

    @property
    def descriptor(self) -> SecurityDescriptor:
        return SecurityDescriptor(**self.model_dump(exclude={"bars"}))

    @property
    def last_bar(self) -> OHLCBar | None:
        return self.bars[-1] if self.bars else None

    def __len__(self) -> int:
        return len(self.bars)
