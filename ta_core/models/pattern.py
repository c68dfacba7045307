"""Candlestick pattern models."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ta_core.models.signal import SignalDirection


class CandlestickPattern(str, Enum):
    # Single candle
    DOJI = "doji"
    HAMMER = "hammer"
    INVERTED_HAMMER = "inverted_hammer"
    HANGING_MAN = "hanging_man"
    SHOOTING_STAR = "shooting_star"
    SPINNING_TOP = "spinning_top"
    MARUBOZU_BULLISH = "marubozu_bullish"
    MARUBOZU_BEARISH = "marubozu_bearish"
    # Two candles
    ENGULFING_BULLISH = "engulfing_bullish"
    ENGULFING_BEARISH = "engulfing_bearish"
    HARAMI_BULLISH = "harami_bullish"
    HARAMI_BEARISH = "harami_bearish"
    PIERCING_LINE = "piercing_line"
    DARK_CLOUD_COVER = "dark_cloud_cover"
    TWEEZER_TOP = "tweezer_top"
    TWEEZER_BOTTOM = "tweezer_bottom"
    # Three candles
    MORNING_STAR = "morning_star"
    EVENING_STAR = "evening_star"
    THREE_WHITE_SOLDIERS = "three_white_soldiers"
    THREE_BLACK_CROWS = "three_black_crows"
    THREE_INSIDE_UP = "three_inside_up"
    THREE_INSIDE_DOWN = "three_inside_down"


class PatternReliability(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PatternMatch(BaseModel):
    """A candlestick pattern found in a window of bars."""

    model_config = ConfigDict(frozen=True)

    pattern: CandlestickPattern
    name: str
    direction: SignalDirection
    reliability: PatternReliability
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)
    description: str

    @model_validator(mode="after")
    def _check_window(self) -> "PatternMatch":
        if self.start_index > self.end_index:
            raise ValueError(
                f"start_index {self.start_index} is after end_index {self.end_index}"
            )
        return self

    @property
    def width(self) -> int:
        return self.end_index - self.start_index + 1


class OutcomeStatus(str, Enum):
    """Result of checking a pattern's prediction against later prices."""

    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"


class PatternOutcome(BaseModel):
    """How price developed after a detected pattern."""

    model_config = ConfigDict(frozen=True)

    pattern: CandlestickPattern
    direction: SignalDirection
    detected_at: dt.date
    price_at_detection: float
    price_after: dict[int, float | None] = Field(default_factory=dict)
    change_pct: dict[int, float | None] = Field(default_factory=dict)
    status: OutcomeStatus | None = None  # None for neutral patterns


class PatternStatistics(BaseModel):
    """Aggregated outcome counts for one pattern type."""

    model_config = ConfigDict(frozen=True)

    pattern: CandlestickPattern
    total_count: int
    success_count: int
    failure_count: int
    pending_count: int
    success_rate: float
    avg_gain_on_success: float | None = None
    avg_loss_on_failure: float | None = None
