"""Technical indicators (pure math, no I/O)."""

from ta_core.indicators.calculator import IndicatorCalculator
from ta_core.indicators.indicators import (
    ADXResult,
    BollingerResult,
    FIBONACCI_RATIOS,
    FibonacciLevel,
    FibonacciResult,
    IchimokuResult,
    MACDResult,
    PivotPointsResult,
    PivotType,
    StochasticResult,
    adx,
    atr,
    bollinger,
    change,
    ema,
    fibonacci,
    ichimoku,
    macd,
    obv,
    pivot_points,
    rsi,
    sma,
    stochastic,
    volume_ratio,
    vwap,
)

__all__ = [
    "ADXResult",
    "BollingerResult",
    "FIBONACCI_RATIOS",
    "FibonacciLevel",
    "FibonacciResult",
    "IchimokuResult",
    "IndicatorCalculator",
    "MACDResult",
    "PivotPointsResult",
    "PivotType",
    "StochasticResult",
    "adx",
    "atr",
    "bollinger",
    "change",
    "ema",
    "fibonacci",
    "ichimoku",
    "macd",
    "obv",
    "pivot_points",
    "rsi",
    "sma",
    "stochastic",
    "volume_ratio",
    "vwap",
]
