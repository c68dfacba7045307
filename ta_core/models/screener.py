"""Screener filter, preset and result models."""

from __future__ import annotations

import math
from enum import Enum
from types import MappingProxyType
from typing import Mapping
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScreenerIndicator(str, Enum):
    """Indicators a screener filter can reference."""

    PRICE = "price"
    VOLUME = "volume"  # % of the trailing average volume
    RSI = "rsi"
    MACD = "macd"
    MACD_SIGNAL = "macd_signal"
    MACD_HISTOGRAM = "macd_histogram"
    BOLLINGER_UPPER = "bollinger_upper"  # price as % of the upper band
    BOLLINGER_LOWER = "bollinger_lower"  # price as % of the lower band
    BOLLINGER_WIDTH = "bollinger_width"  # band width as % of the middle band
    STOCHASTIC_K = "stochastic_k"
    STOCHASTIC_D = "stochastic_d"
    ADX = "adx"
    DI_PLUS = "di_plus"
    DI_MINUS = "di_minus"
    DI_SPREAD = "di_spread"  # +DI minus -DI
    OBV = "obv"
    SMA_20 = "sma_20"
    SMA_50 = "sma_50"
    SMA_200 = "sma_200"
    SMA_50_200_GAP = "sma_50_200_gap"  # % distance of SMA 50 from SMA 200
    CHANGE_1D = "change_1d"
    CHANGE_5D = "change_5d"
    CHANGE_20D = "change_20d"


class ScreenerCondition(str, Enum):
    """Predicates a filter applies to an indicator series."""

    ABOVE = "above"
    BELOW = "below"
    BETWEEN = "between"
    CROSSES_ABOVE = "crosses_above"
    CROSSES_BELOW = "crosses_below"
    INCREASING = "increasing"
    DECREASING = "decreasing"


INDICATOR_LABELS: Mapping[ScreenerIndicator, str] = MappingProxyType({
    ScreenerIndicator.PRICE: "Price",
    ScreenerIndicator.VOLUME: "Volume (% of average)",
    ScreenerIndicator.RSI: "RSI",
    ScreenerIndicator.MACD: "MACD",
    ScreenerIndicator.MACD_SIGNAL: "MACD signal",
    ScreenerIndicator.MACD_HISTOGRAM: "MACD histogram",
    ScreenerIndicator.BOLLINGER_UPPER: "Price vs upper Bollinger band (%)",
    ScreenerIndicator.BOLLINGER_LOWER: "Price vs lower Bollinger band (%)",
    ScreenerIndicator.BOLLINGER_WIDTH: "Bollinger width (%)",
    ScreenerIndicator.STOCHASTIC_K: "Stochastic %K",
    ScreenerIndicator.STOCHASTIC_D: "Stochastic %D",
    ScreenerIndicator.ADX: "ADX",
    ScreenerIndicator.DI_PLUS: "+DI",
    ScreenerIndicator.DI_MINUS: "-DI",
    ScreenerIndicator.DI_SPREAD: "+DI minus -DI",
    ScreenerIndicator.OBV: "OBV",
    ScreenerIndicator.SMA_20: "SMA 20",
    ScreenerIndicator.SMA_50: "SMA 50",
    ScreenerIndicator.SMA_200: "SMA 200",
    ScreenerIndicator.SMA_50_200_GAP: "SMA 50 vs SMA 200 (%)",
    ScreenerIndicator.CHANGE_1D: "1-day change (%)",
    ScreenerIndicator.CHANGE_5D: "5-day change (%)",
    ScreenerIndicator.CHANGE_20D: "20-day change (%)",
})

CONDITION_LABELS: Mapping[ScreenerCondition, str] = MappingProxyType({
    ScreenerCondition.ABOVE: "above",
    ScreenerCondition.BELOW: "below",
    ScreenerCondition.BETWEEN: "between",
    ScreenerCondition.CROSSES_ABOVE: "crosses above",
    ScreenerCondition.CROSSES_BELOW: "crosses below",
    ScreenerCondition.INCREASING: "increasing",
    ScreenerCondition.DECREASING: "decreasing",
})

# Conditions that ignore the threshold and look at the series' own trend
TREND_CONDITIONS = frozenset({ScreenerCondition.INCREASING, ScreenerCondition.DECREASING})


def filter_problems(
    condition: ScreenerCondition,
    value: float | None,
    value2: float | None,
) -> list[str]:
    """Return every reason a threshold combination is invalid."""
    problems = []
    if value is None:
        if condition not in TREND_CONDITIONS:
            problems.append(f"'{condition.value}' requires value")
    elif not math.isfinite(value):
        problems.append(f"value must be a finite number, got {value!r}")
    if condition == ScreenerCondition.BETWEEN:
        if value2 is None:
            problems.append("'between' requires value2")
        elif not math.isfinite(value2):
            problems.append(f"value2 must be a finite number, got {value2!r}")
        elif value is not None and math.isfinite(value) and value2 < value:
            problems.append(
                f"value2 ({format_threshold(value2)}) must not be below "
                f"value ({format_threshold(value)})"
            )
    elif value2 is not None:
        problems.append(f"value2 is only allowed for 'between', not '{condition.value}'")
    return problems


def format_threshold(value: float) -> str:
    """Whole numbers print without exponent or decimals, e.g. ``1500000``."""
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return f"{value:.10g}"


def describe_rule(
    label: str,
    condition: ScreenerCondition,
    value: float | None,
    value2: float | None = None,
) -> str:
    """Format a rule as text, e.g. ``RSI between 30 and 70``."""
    text = f"{label} {CONDITION_LABELS[condition]}"
    if condition in TREND_CONDITIONS or value is None:
        return text
    text += f" {format_threshold(value)}"
    if value2 is not None:
        text += f" and {format_threshold(value2)}"
    return text


class FilterTemplate(BaseModel):
    """A filter definition without identity, as stored in presets."""

    model_config = ConfigDict(frozen=True)

    indicator: ScreenerIndicator
    condition: ScreenerCondition
    # Required by every condition except increasing/decreasing
    value: float | None = None
    value2: float | None = None

    @model_validator(mode="after")
    def _check_thresholds(self) -> "FilterTemplate":
        problems = filter_problems(self.condition, self.value, self.value2)
        if problems:
            raise ValueError("; ".join(problems))
        return self


class ScreenerFilter(FilterTemplate):
    """One caller-defined screening rule."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    enabled: bool = True

    @property
    def description(self) -> str:
        """Human-readable rule, e.g. ``RSI below 30``."""
        return describe_rule(
            INDICATOR_LABELS[self.indicator], self.condition, self.value, self.value2
        )


class ScreenerPreset(BaseModel):
    """A named, pre-built filter list."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    filters: tuple[FilterTemplate, ...]


class ScreenerResult(BaseModel):
    """A security that satisfied every enabled filter."""

    model_config = ConfigDict(frozen=True)

    security_id: int
    name: str
    ticker: str | None = None
    isin: str | None = None
    currency: str
    last_price: float
    change_1d: float | None = None
    change_5d: float | None = None
    change_20d: float | None = None
    current_values: dict[str, float | None] = Field(default_factory=dict)
    matched_filters: list[str] = Field(min_length=1)
