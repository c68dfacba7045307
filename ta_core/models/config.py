"""Component configuration models.

Every threshold that decides a strength or reliability tier lives here so
tests can pin it.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, Field, model_validator

from ta_core.config import EngineSettings
from ta_core.models.pattern import CandlestickPattern, PatternReliability


class IndicatorConfig(BaseModel):
    """Indicator periods."""

    rsi_period: int = Field(default=14, ge=1)

    macd_fast: int = Field(default=12, ge=1)
    macd_slow: int = Field(default=26, ge=2)
    macd_signal: int = Field(default=9, ge=1)

    bollinger_period: int = Field(default=20, ge=2)
    bollinger_std: float = Field(default=2.0, gt=0)

    stochastic_k_period: int = Field(default=14, ge=1)
    stochastic_k_smoothing: int = Field(default=3, ge=1)
    stochastic_d_period: int = Field(default=3, ge=1)

    adx_period: int = Field(default=14, ge=1)
    atr_period: int = Field(default=14, ge=1)

    # Trailing window for the volume ratio
    volume_period: int = Field(default=20, ge=1)

    # Periods behind the sma_20, sma_50 and sma_200 screener indicators
    sma_short_period: int = Field(default=20, ge=1)
    sma_medium_period: int = Field(default=50, ge=1)
    sma_long_period: int = Field(default=200, ge=1)

    @model_validator(mode="after")
    def _check_macd(self) -> "IndicatorConfig":
        if self.macd_fast >= self.macd_slow:
            raise ValueError("macd_fast must be shorter than macd_slow")
        return self


class ScreenerConfig(BaseModel):
    """Screener orchestration parameters."""

    min_bars: int = Field(default=20, ge=2)
    trend_lookback: int = Field(default=3, ge=2)
    indicators: IndicatorConfig = IndicatorConfig()

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "ScreenerConfig":
        return cls(
            min_bars=settings.min_screening_bars,
            trend_lookback=settings.trend_lookback,
        )


class SignalDetectionConfig(BaseModel):
    """Signal detector thresholds and strength tiers."""

    min_bars: int = Field(default=30, ge=2)
    # None scans the whole history; N scans only the trailing N bars
    scan_window: int | None = Field(default=None, ge=1)

    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    rsi_strong_oversold: float = 20.0
    rsi_strong_overbought: float = 80.0

    stochastic_oversold: float = 20.0
    stochastic_overbought: float = 80.0
    stochastic_strong_oversold: float = 10.0
    stochastic_strong_overbought: float = 90.0
    stochastic_cross_midline: float = 50.0

    adx_trend_threshold: float = 25.0
    adx_strong_threshold: float = 40.0

    # Bandwidth is (upper - lower) / middle
    bollinger_squeeze_period: int = Field(default=20, ge=1)
    bollinger_squeeze_width: float = 0.10
    bollinger_strong_squeeze_width: float = 0.05

    trend_sma_period: int = Field(default=50, ge=2)
    golden_cross_fast: int = Field(default=50, ge=2)
    golden_cross_slow: int = Field(default=200, ge=3)

    # Price distance beyond the moving average (in %) for a strong cross
    sma_cross_strong_pct: float = 2.0

    divergence_lookback: int = Field(default=20, ge=2)
    divergence_pivot_width: int = Field(default=3, ge=1)
    divergence_min_confidence: float = 0.3
    divergence_moderate_confidence: float = 0.5
    divergence_strong_confidence: float = 0.7

    indicators: IndicatorConfig = IndicatorConfig()

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "SignalDetectionConfig":
        return cls(min_bars=settings.min_signal_bars)


DEFAULT_RELIABILITY: Mapping[CandlestickPattern, PatternReliability] = MappingProxyType({
    CandlestickPattern.DOJI: PatternReliability.LOW,
    CandlestickPattern.HAMMER: PatternReliability.MEDIUM,
    CandlestickPattern.INVERTED_HAMMER: PatternReliability.LOW,
    CandlestickPattern.HANGING_MAN: PatternReliability.LOW,
    CandlestickPattern.SHOOTING_STAR: PatternReliability.MEDIUM,
    CandlestickPattern.SPINNING_TOP: PatternReliability.LOW,
    CandlestickPattern.MARUBOZU_BULLISH: PatternReliability.MEDIUM,
    CandlestickPattern.MARUBOZU_BEARISH: PatternReliability.MEDIUM,
    CandlestickPattern.ENGULFING_BULLISH: PatternReliability.HIGH,
    CandlestickPattern.ENGULFING_BEARISH: PatternReliability.HIGH,
    CandlestickPattern.HARAMI_BULLISH: PatternReliability.MEDIUM,
    CandlestickPattern.HARAMI_BEARISH: PatternReliability.MEDIUM,
    CandlestickPattern.PIERCING_LINE: PatternReliability.HIGH,
    CandlestickPattern.DARK_CLOUD_COVER: PatternReliability.HIGH,
    CandlestickPattern.TWEEZER_TOP: PatternReliability.MEDIUM,
    CandlestickPattern.TWEEZER_BOTTOM: PatternReliability.MEDIUM,
    CandlestickPattern.MORNING_STAR: PatternReliability.HIGH,
    CandlestickPattern.EVENING_STAR: PatternReliability.HIGH,
    CandlestickPattern.THREE_WHITE_SOLDIERS: PatternReliability.HIGH,
    CandlestickPattern.THREE_BLACK_CROWS: PatternReliability.HIGH,
    CandlestickPattern.THREE_INSIDE_UP: PatternReliability.HIGH,
    CandlestickPattern.THREE_INSIDE_DOWN: PatternReliability.HIGH,
})


class PatternConfig(BaseModel):
    """Candlestick geometry thresholds.

    Ratios compare body and wick sizes against the average body of the
    preceding ``avg_body_period`` bars.
    """

    min_bars: int = Field(default=10, ge=3)
    scan_window: int | None = Field(default=None, ge=1)

    avg_body_period: int = Field(default=10, ge=1)
    trend_period: int = Field(default=5, ge=1)
    trend_threshold_pct: float = Field(default=2.0, ge=0)

    doji_body_ratio: float = 0.1
    doji_min_range_ratio: float = 0.5
    # Hammer family: wick at least N x body, opposite wick at most M x body
    long_wick_ratio: float = 2.0
    short_wick_ratio: float = 0.3
    min_body_ratio: float = 0.3
    spinning_top_body_ratio: float = 0.5
    marubozu_body_ratio: float = 1.5
    marubozu_wick_ratio: float = 0.05
    harami_body_ratio: float = 0.5
    tweezer_tolerance_ratio: float = 0.05
    star_body_ratio: float = 0.5
    soldier_body_ratio: float = 0.7
    soldier_wick_ratio: float = 0.3

    reliability: dict[CandlestickPattern, PatternReliability] = Field(
        default_factory=lambda: dict(DEFAULT_RELIABILITY)
    )

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "PatternConfig":
        return cls(min_bars=settings.min_pattern_bars)
