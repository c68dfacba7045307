"""Technical signal models."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SignalType(str, Enum):
    """Discrete events the signal detector can emit."""

    RSI_OVERSOLD = "rsi_oversold"
    RSI_OVERBOUGHT = "rsi_overbought"
    MACD_BULLISH_CROSS = "macd_bullish_cross"
    MACD_BEARISH_CROSS = "macd_bearish_cross"
    BOLLINGER_SQUEEZE = "bollinger_squeeze"
    BOLLINGER_BREAKOUT_UP = "bollinger_breakout_up"
    BOLLINGER_BREAKOUT_DOWN = "bollinger_breakout_down"
    STOCHASTIC_OVERSOLD = "stochastic_oversold"
    STOCHASTIC_OVERBOUGHT = "stochastic_overbought"
    STOCHASTIC_BULLISH_CROSS = "stochastic_bullish_cross"
    STOCHASTIC_BEARISH_CROSS = "stochastic_bearish_cross"
    ADX_TREND_START = "adx_trend_start"
    ADX_TREND_STRONG = "adx_trend_strong"
    GOLDEN_CROSS = "golden_cross"
    DEATH_CROSS = "death_cross"
    PRICE_CROSS_ABOVE_SMA = "price_cross_above_sma"
    PRICE_CROSS_BELOW_SMA = "price_cross_below_sma"
    DIVERGENCE_BULLISH = "divergence_bullish"
    DIVERGENCE_BEARISH = "divergence_bearish"


class SignalDirection(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class SignalStrength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class TechnicalSignal(BaseModel):
    """A discrete directional event on one bar."""

    model_config = ConfigDict(frozen=True)

    type: SignalType
    indicator: str
    date: dt.date
    direction: SignalDirection
    strength: SignalStrength
    description: str
    price: float
    value: float | None = None


class Divergence(BaseModel):
    """Price and oscillator moving in opposite directions between two pivots."""

    model_config = ConfigDict(frozen=True)

    direction: SignalDirection
    indicator: str
    start_date: dt.date
    end_date: dt.date
    start_index: int
    end_index: int
    price_start: float
    price_end: float
    indicator_start: float
    indicator_end: float
    confidence: float = Field(ge=0.0, le=1.0)
