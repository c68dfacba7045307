"""Technical indicators computed from OHLC bars.

Every public function maps a bar sequence to one or more IndicatorSeries
of the same length. Absent values (``None``) only appear during the warm-up
window of each indicator or where the arithmetic is undefined (division by
a zero price).

Internally the math runs on float64 NumPy arrays with NaN marking missing
values; NaN never leaves this module.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import NamedTuple, Sequence

import numpy as np

from ta_core.models.ohlc import OHLCBar
from ta_core.models.series import IndicatorSeries


class MACDResult(NamedTuple):
    line: IndicatorSeries
    signal: IndicatorSeries
    histogram: IndicatorSeries


class BollingerResult(NamedTuple):
    upper: IndicatorSeries
    middle: IndicatorSeries
    lower: IndicatorSeries
    width: IndicatorSeries  # (upper - lower) / middle


class StochasticResult(NamedTuple):
    k: IndicatorSeries
    d: IndicatorSeries


class ADXResult(NamedTuple):
    adx: IndicatorSeries
    di_plus: IndicatorSeries
    di_minus: IndicatorSeries


class IchimokuResult(NamedTuple):
    tenkan: IndicatorSeries
    kijun: IndicatorSeries
    senkou_a: IndicatorSeries
    senkou_b: IndicatorSeries
    chikou: IndicatorSeries


class PivotType(str, Enum):
    STANDARD = "standard"
    FIBONACCI = "fibonacci"
    WOODIE = "woodie"


class PivotPointsResult(NamedTuple):
    pivot: IndicatorSeries
    r1: IndicatorSeries
    r2: IndicatorSeries
    r3: IndicatorSeries
    s1: IndicatorSeries
    s2: IndicatorSeries
    s3: IndicatorSeries


class FibonacciLevel(NamedTuple):
    ratio: float
    price: float
    label: str  # e.g. "61.8%"


class FibonacciResult(NamedTuple):
    levels: tuple[FibonacciLevel, ...]
    swing_high: float
    swing_high_index: int
    swing_low: float
    swing_low_index: int
    uptrend: bool  # swing low came before swing high


FIBONACCI_RATIOS = (0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0)


# =============================================================================
# Array helpers
# =============================================================================

def closes_of(bars: Sequence[OHLCBar]) -> np.ndarray:
    return np.array([b.close for b in bars], dtype=np.float64)


def highs_of(bars: Sequence[OHLCBar]) -> np.ndarray:
    return np.array([b.high for b in bars], dtype=np.float64)


def lows_of(bars: Sequence[OHLCBar]) -> np.ndarray:
    return np.array([b.low for b in bars], dtype=np.float64)


def volumes_of(bars: Sequence[OHLCBar]) -> np.ndarray:
    """Volumes with NaN where a bar has none."""
    return np.array(
        [np.nan if b.volume is None else b.volume for b in bars], dtype=np.float64
    )


def to_series(name: str, values: np.ndarray) -> IndicatorSeries:
    """Convert a NaN-marked array into a series with explicit absent values."""
    return IndicatorSeries(
        name, tuple(v if math.isfinite(v) else None for v in values.tolist())
    )


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")


def sma_array(values: np.ndarray, period: int) -> np.ndarray:
    """Simple moving average; NaN anywhere in the window yields NaN."""
    _check_period(period)
    result = np.full(len(values), np.nan)
    for i in range(period - 1, len(values)):
        result[i] = np.mean(values[i - period + 1 : i + 1])
    return result


def ema_array(values: np.ndarray, period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the SMA of the first ``period``
    present values. Leading NaN (an upstream warm-up) is skipped.
    """
    _check_period(period)
    n = len(values)
    result = np.full(n, np.nan)
    present = np.flatnonzero(~np.isnan(values))
    if len(present) < period:
        return result

    start = int(present[0])
    seed = start + period - 1
    if np.isnan(values[start : seed + 1]).any():
        return result
    result[seed] = np.mean(values[start : seed + 1])

    multiplier = 2.0 / (period + 1)
    for i in range(seed + 1, n):
        result[i] = values[i] * multiplier + result[i - 1] * (1 - multiplier)
    return result


def rolling_max(values: np.ndarray, period: int) -> np.ndarray:
    _check_period(period)
    result = np.full(len(values), np.nan)
    for i in range(period - 1, len(values)):
        result[i] = np.max(values[i - period + 1 : i + 1])
    return result


def rolling_min(values: np.ndarray, period: int) -> np.ndarray:
    _check_period(period)
    result = np.full(len(values), np.nan)
    for i in range(period - 1, len(values)):
        result[i] = np.min(values[i - period + 1 : i + 1])
    return result


def true_range_array(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """
    True Range per bar.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close));
    the first bar uses high - low.
    """
    n = len(highs)
    result = np.empty(n)
    if n == 0:
        return result
    result[0] = highs[0] - lows[0]
    for i in range(1, n):
        result[i] = max(
            highs[i] - lows[i],
            abs(highs[i] - closes[i - 1]),
            abs(lows[i] - closes[i - 1]),
        )
    return result


def _safe_ratio(numerator: np.ndarray, denominator: np.ndarray) -> np.ndarray:
    """Elementwise division with NaN where the denominator is zero or NaN."""
    result = np.full(len(numerator), np.nan)
    mask = (denominator != 0) & ~np.isnan(denominator) & ~np.isnan(numerator)
    result[mask] = numerator[mask] / denominator[mask]
    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0.0:
        # No losses: flat is neutral, only gains is maximal
        return 50.0 if avg_gain == 0.0 else 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# =============================================================================
# Public API
# =============================================================================

def sma(bars: Sequence[OHLCBar], period: int = 20) -> IndicatorSeries:
    """
    Simple Moving Average of closes.

    Args:
        bars: OHLC bars
        period: SMA period

    Returns:
        Series with the first value at index ``period - 1``
    """
    return to_series(f"sma_{period}", sma_array(closes_of(bars), period))


def ema(bars: Sequence[OHLCBar], period: int = 20) -> IndicatorSeries:
    """Exponential Moving Average of closes, seeded with the SMA."""
    return to_series(f"ema_{period}", ema_array(closes_of(bars), period))


def rsi(bars: Sequence[OHLCBar], period: int = 14) -> IndicatorSeries:
    """
    Relative Strength Index with Wilder's smoothing.

    The first value (index ``period``) uses simple averages of the first
    ``period`` gains and losses. A series with neither gains nor losses
    reads 50.

    Returns:
        Series bounded to [0, 100]
    """
    _check_period(period)
    closes = closes_of(bars)
    n = len(closes)
    result = np.full(n, np.nan)
    if n < period + 1:
        return to_series("rsi", result)

    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, n):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return to_series("rsi", result)


def macd(
    bars: Sequence[OHLCBar],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """
    Moving Average Convergence Divergence.

    line      = EMA(fast) - EMA(slow)
    signal    = EMA(line, signal)
    histogram = line - signal
    """
    if fast >= slow:
        raise ValueError(f"fast period ({fast}) must be shorter than slow ({slow})")
    closes = closes_of(bars)
    line = ema_array(closes, fast) - ema_array(closes, slow)
    signal_line = ema_array(line, signal)
    histogram = line - signal_line
    return MACDResult(
        line=to_series("macd", line),
        signal=to_series("macd_signal", signal_line),
        histogram=to_series("macd_histogram", histogram),
    )


def bollinger(
    bars: Sequence[OHLCBar],
    period: int = 20,
    num_std: float = 2.0,
) -> BollingerResult:
    """
    Bollinger Bands using the population standard deviation.

    upper/lower = SMA +/- num_std * std, width = (upper - lower) / middle
    """
    closes = closes_of(bars)
    middle = sma_array(closes, period)
    std = np.full(len(closes), np.nan)
    for i in range(period - 1, len(closes)):
        std[i] = np.std(closes[i - period + 1 : i + 1])

    upper = middle + num_std * std
    lower = middle - num_std * std
    width = _safe_ratio(upper - lower, middle)
    return BollingerResult(
        upper=to_series("bollinger_upper", upper),
        middle=to_series("bollinger_middle", middle),
        lower=to_series("bollinger_lower", lower),
        width=to_series("bollinger_width", width),
    )


def stochastic(
    bars: Sequence[OHLCBar],
    k_period: int = 14,
    k_smoothing: int = 3,
    d_period: int = 3,
) -> StochasticResult:
    """
    Slow Stochastic Oscillator.

    raw %K = 100 * (close - lowest low) / (highest high - lowest low),
    50 when the range is zero. %K = SMA(raw %K, k_smoothing),
    %D = SMA(%K, d_period).
    """
    closes = closes_of(bars)
    highest = rolling_max(highs_of(bars), k_period)
    lowest = rolling_min(lows_of(bars), k_period)

    raw_k = np.full(len(closes), np.nan)
    for i in range(k_period - 1, len(closes)):
        span = highest[i] - lowest[i]
        raw_k[i] = 50.0 if span == 0 else 100.0 * (closes[i] - lowest[i]) / span

    k = sma_array(raw_k, k_smoothing)
    d = sma_array(k, d_period)
    return StochasticResult(k=to_series("stochastic_k", k), d=to_series("stochastic_d", d))


def atr(bars: Sequence[OHLCBar], period: int = 14) -> IndicatorSeries:
    """
    Average True Range with Wilder's smoothing.

    The first value (index ``period``) is the mean TR of bars 1..period.
    """
    _check_period(period)
    n = len(bars)
    result = np.full(n, np.nan)
    if n < period + 1:
        return to_series("atr", result)

    tr = true_range_array(highs_of(bars), lows_of(bars), closes_of(bars))
    result[period] = np.mean(tr[1 : period + 1])
    for i in range(period + 1, n):
        result[i] = (result[i - 1] * (period - 1) + tr[i]) / period
    return to_series("atr", result)


def adx(bars: Sequence[OHLCBar], period: int = 14) -> ADXResult:
    """
    Average Directional Index with +DI and -DI (Wilder).

    +DI/-DI start at index ``period``; ADX (the smoothed DX) starts at
    index ``2 * period - 1``.
    """
    _check_period(period)
    n = len(bars)
    adx_values = np.full(n, np.nan)
    di_plus = np.full(n, np.nan)
    di_minus = np.full(n, np.nan)
    if n < period + 1:
        return ADXResult(
            adx=to_series("adx", adx_values),
            di_plus=to_series("di_plus", di_plus),
            di_minus=to_series("di_minus", di_minus),
        )

    highs, lows, closes = highs_of(bars), lows_of(bars), closes_of(bars)

    # Directional movement; index j describes the move into bar j + 1
    tr = np.empty(n - 1)
    plus_dm = np.empty(n - 1)
    minus_dm = np.empty(n - 1)
    for i in range(1, n):
        up_move = highs[i] - highs[i - 1]
        down_move = lows[i - 1] - lows[i]
        tr[i - 1] = max(
            highs[i] - lows[i],
            abs(highs[i] - closes[i - 1]),
            abs(lows[i] - closes[i - 1]),
        )
        plus_dm[i - 1] = up_move if up_move > down_move and up_move > 0 else 0.0
        minus_dm[i - 1] = down_move if down_move > up_move and down_move > 0 else 0.0

    smoothed_tr = float(np.sum(tr[:period]))
    smoothed_plus = float(np.sum(plus_dm[:period]))
    smoothed_minus = float(np.sum(minus_dm[:period]))

    dx: list[float] = []
    for i in range(period, n):
        if i > period:
            smoothed_tr = smoothed_tr - smoothed_tr / period + tr[i - 1]
            smoothed_plus = smoothed_plus - smoothed_plus / period + plus_dm[i - 1]
            smoothed_minus = smoothed_minus - smoothed_minus / period + minus_dm[i - 1]

        plus_di = 0.0 if smoothed_tr == 0 else 100.0 * smoothed_plus / smoothed_tr
        minus_di = 0.0 if smoothed_tr == 0 else 100.0 * smoothed_minus / smoothed_tr
        di_plus[i] = plus_di
        di_minus[i] = minus_di

        di_sum = plus_di + minus_di
        dx.append(0.0 if di_sum == 0 else 100.0 * abs(plus_di - minus_di) / di_sum)

        if len(dx) == period:
            adx_values[i] = np.mean(dx)
        elif len(dx) > period:
            adx_values[i] = (adx_values[i - 1] * (period - 1) + dx[-1]) / period

    return ADXResult(
        adx=to_series("adx", adx_values),
        di_plus=to_series("di_plus", di_plus),
        di_minus=to_series("di_minus", di_minus),
    )


def obv(bars: Sequence[OHLCBar]) -> IndicatorSeries:
    """
    On-Balance Volume.

    Absent at every bar when any bar lacks a volume.
    """
    volumes = volumes_of(bars)
    n = len(bars)
    result = np.full(n, np.nan)
    if n == 0 or np.isnan(volumes).any():
        return to_series("obv", result)

    closes = closes_of(bars)
    result[0] = volumes[0]
    for i in range(1, n):
        if closes[i] > closes[i - 1]:
            result[i] = result[i - 1] + volumes[i]
        elif closes[i] < closes[i - 1]:
            result[i] = result[i - 1] - volumes[i]
        else:
            result[i] = result[i - 1]
    return to_series("obv", result)


def volume_ratio(bars: Sequence[OHLCBar], period: int = 20) -> IndicatorSeries:
    """
    Volume as a percentage of its trailing ``period``-bar average
    (current bar included). Absent where volume is missing or the average
    is zero.
    """
    volumes = volumes_of(bars)
    average = sma_array(volumes, period)
    return to_series("volume", _safe_ratio(volumes, average) * 100.0)


def change(bars: Sequence[OHLCBar], lookback: int = 1) -> IndicatorSeries:
    """
    Percentage change over ``lookback`` bars.

    change[i] = (close[i] - close[i - n]) / close[i - n] * 100
    """
    _check_period(lookback)
    closes = closes_of(bars)
    previous = np.full(len(closes), np.nan)
    if lookback < len(closes):
        previous[lookback:] = closes[:-lookback]
    return to_series(
        f"change_{lookback}d", _safe_ratio(closes - previous, previous) * 100.0
    )


def vwap(bars: Sequence[OHLCBar]) -> IndicatorSeries:
    """
    Cumulative Volume Weighted Average Price.

    typical = (high + low + close) / 3
    vwap[i] = sum(typical * volume) / sum(volume) over bars 0..i

    Bars without volume (missing or zero) add nothing and are absent.
    The average never resets, so on daily bars it spans the whole history.
    """
    volumes = np.nan_to_num(volumes_of(bars), nan=0.0)
    typical = (highs_of(bars) + lows_of(bars) + closes_of(bars)) / 3.0
    cumulative_pv = np.cumsum(typical * volumes)
    cumulative_volume = np.cumsum(volumes)

    result = np.full(len(bars), np.nan)
    traded = volumes > 0
    result[traded] = cumulative_pv[traded] / cumulative_volume[traded]
    return to_series("vwap", result)


def _midpoint_array(highs: np.ndarray, lows: np.ndarray, period: int) -> np.ndarray:
    return (rolling_max(highs, period) + rolling_min(lows, period)) / 2.0


def ichimoku(
    bars: Sequence[OHLCBar],
    tenkan_period: int = 9,
    kijun_period: int = 26,
    senkou_b_period: int = 52,
) -> IchimokuResult:
    """
    Ichimoku Cloud.

    Each line is a (highest high + lowest low) / 2 midpoint over its period;
    senkou A is the average of tenkan and kijun. All lines stay on the bar
    they were computed from: plotting senkou spans ahead or chikou behind
    by ``kijun_period`` is left to the caller.
    """
    highs, lows = highs_of(bars), lows_of(bars)
    tenkan = _midpoint_array(highs, lows, tenkan_period)
    kijun = _midpoint_array(highs, lows, kijun_period)
    return IchimokuResult(
        tenkan=to_series("ichimoku_tenkan", tenkan),
        kijun=to_series("ichimoku_kijun", kijun),
        senkou_a=to_series("ichimoku_senkou_a", (tenkan + kijun) / 2.0),
        senkou_b=to_series("ichimoku_senkou_b", _midpoint_array(highs, lows, senkou_b_period)),
        chikou=to_series("ichimoku_chikou", closes_of(bars)),
    )


def pivot_points(
    bars: Sequence[OHLCBar],
    pivot_type: PivotType | str = PivotType.STANDARD,
) -> PivotPointsResult:
    """
    Floor pivot points from the previous bar's high, low and close.

    The first bar has no previous bar and is absent in every level.

    Raises:
        ValueError: If ``pivot_type`` is not a known method
    """
    pivot_type = PivotType(pivot_type)
    n = len(bars)
    levels = {name: np.full(n, np.nan) for name in PivotPointsResult._fields}
    if n > 1:
        high, low, close = highs_of(bars)[:-1], lows_of(bars)[:-1], closes_of(bars)[:-1]
        span = high - low
        if pivot_type == PivotType.WOODIE:
            p = (high + low + 2 * close) / 4
        else:
            p = (high + low + close) / 3

        if pivot_type == PivotType.FIBONACCI:
            computed = {
                "r1": p + 0.382 * span, "r2": p + 0.618 * span, "r3": p + span,
                "s1": p - 0.382 * span, "s2": p - 0.618 * span, "s3": p - span,
            }
        else:
            r1, s1 = 2 * p - low, 2 * p - high
            computed = {"r1": r1, "r2": p + span, "s1": s1, "s2": p - span}
            if pivot_type == PivotType.WOODIE:
                computed.update(r3=r1 + span, s3=s1 - span)
            else:
                computed.update(r3=high + 2 * (p - low), s3=low - 2 * (high - p))
        computed["pivot"] = p

        for name, values in computed.items():
            levels[name][1:] = values

    return PivotPointsResult(
        **{name: to_series(f"pivot_{name}", values) for name, values in levels.items()}
    )


def fibonacci(bars: Sequence[OHLCBar], lookback: int = 50) -> FibonacciResult | None:
    """
    Fibonacci retracement levels between the swing high and swing low of
    the trailing ``lookback`` bars.

    In an uptrend (swing low before swing high) levels retrace down from
    the high, otherwise up from the low. The first bar wins ties.

    Returns:
        FibonacciResult with indices into ``bars``, or None without bars
    """
    _check_period(lookback)
    if not bars:
        return None

    offset = max(0, len(bars) - lookback)
    window = bars[offset:]
    high_index = max(range(len(window)), key=lambda i: (window[i].high, -i))
    low_index = min(range(len(window)), key=lambda i: (window[i].low, i))
    swing_high = window[high_index].high
    swing_low = window[low_index].low
    uptrend = low_index < high_index
    span = swing_high - swing_low

    levels = tuple(
        FibonacciLevel(
            ratio=ratio,
            price=swing_high - ratio * span if uptrend else swing_low + ratio * span,
            label=f"{ratio * 100:.1f}%",
        )
        for ratio in FIBONACCI_RATIOS
    )
    return FibonacciResult(
        levels=levels,
        swing_high=swing_high,
        swing_high_index=offset + high_index,
        swing_low=swing_low,
        swing_low_index=offset + low_index,
        uptrend=uptrend,
    )
