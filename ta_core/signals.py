"""Signal detector: discrete technical events on a bar history.

Each check compares an indicator's value at a bar with its value at the
previous bar, so an event fires on the bar where a threshold or line is
crossed. Divergences are found between consecutive indicator pivots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping, NamedTuple, Sequence

from ta_core.indicators import indicators as ind
from ta_core.models.config import SignalDetectionConfig
from ta_core.models.ohlc import OHLCBar, SecurityData
from ta_core.models.series import IndicatorSeries
from ta_core.models.signal import (
    Divergence,
    SignalDirection,
    SignalStrength,
    SignalType,
    TechnicalSignal,
)

logger = logging.getLogger(__name__)

# Display names for the indicators divergences are searched on
DIVERGENCE_LABELS: Mapping[str, str] = MappingProxyType({
    "rsi": "RSI",
    "macd": "MACD",
    "obv": "OBV",
    "stochastic": "Stochastic",
})


class Pivot(NamedTuple):
    index: int
    value: float
    is_high: bool


def find_pivots(series: IndicatorSeries, width: int = 3) -> list[Pivot]:
    """
    Find strict local extremes of a series.

    A pivot high is greater than the ``width`` values on each side, a pivot
    low is smaller. Any absent neighbour disqualifies the candidate.
    """
    values = series.values
    pivots: list[Pivot] = []
    for i in range(width, len(values) - width):
        current = values[i]
        if current is None:
            continue
        neighbours = values[i - width : i] + values[i + 1 : i + width + 1]
        if any(v is None for v in neighbours):
            continue
        if all(current > v for v in neighbours):
            pivots.append(Pivot(i, current, True))
        elif all(current < v for v in neighbours):
            pivots.append(Pivot(i, current, False))
    return pivots


def _relative_move(start: float, end: float) -> float:
    """(end - start) / |start|, with 1 as the denominator when start is zero."""
    return (end - start) / (abs(start) or 1.0)


def detect_divergences(
    bars: Sequence[OHLCBar],
    series: IndicatorSeries,
    indicator: str,
    *,
    lookback: int = 20,
    pivot_width: int = 3,
    min_confidence: float = 0.3,
) -> list[Divergence]:
    """
    Detect price/indicator divergences between consecutive pivots.

    Bearish: price makes a higher high while the indicator makes a lower
    high. Bullish: price makes a lower low while the indicator makes a
    higher low. Pivots further apart than ``lookback`` bars are not paired.

    confidence = min(1, (relative price move + relative indicator move) x 5)

    Returns:
        Divergences with confidence above ``min_confidence``, ordered by end
        index
    """
    series.ensure_aligned(len(bars))
    if len(bars) < lookback * 2:
        return []

    pivots = find_pivots(series, pivot_width)
    divergences: list[Divergence] = []
    for is_high in (True, False):
        same_kind = [p for p in pivots if p.is_high == is_high]
        for prev, curr in zip(same_kind, same_kind[1:]):
            if curr.index - prev.index > lookback:
                continue
            price_prev = bars[prev.index].close
            price_curr = bars[curr.index].close
            if price_prev == 0:
                continue

            if is_high and price_curr > price_prev and curr.value < prev.value:
                direction = SignalDirection.BEARISH
            elif not is_high and price_curr < price_prev and curr.value > prev.value:
                direction = SignalDirection.BULLISH
            else:
                continue

            price_move = abs(price_curr - price_prev) / price_prev
            indicator_move = abs(_relative_move(prev.value, curr.value))
            confidence = min(1.0, (price_move + indicator_move) * 5)
            if confidence <= min_confidence:
                continue

            divergences.append(
                Divergence(
                    direction=direction,
                    indicator=indicator,
                    start_date=bars[prev.index].time,
                    end_date=bars[curr.index].time,
                    start_index=prev.index,
                    end_index=curr.index,
                    price_start=price_prev,
                    price_end=price_curr,
                    indicator_start=prev.value,
                    indicator_end=curr.value,
                    confidence=confidence,
                )
            )

    divergences.sort(key=lambda d: d.end_index)
    return divergences


@dataclass(frozen=True, slots=True)
class _Indicators:
    """All series the detector reads, computed once per security."""

    rsi: IndicatorSeries
    macd: ind.MACDResult
    bollinger: ind.BollingerResult
    stochastic: ind.StochasticResult
    adx: ind.ADXResult
    obv: IndicatorSeries
    trend_sma: IndicatorSeries
    fast_sma: IndicatorSeries
    slow_sma: IndicatorSeries


def _pair(series: IndicatorSeries, i: int) -> tuple[float | None, float | None]:
    return series.at(i - 1), series.at(i)


class SignalDetector:
    """Detects technical signals for one security at a time."""

    def __init__(self, config: SignalDetectionConfig | None = None):
        self.config = config or SignalDetectionConfig()

    def detect(self, security: SecurityData | Sequence[OHLCBar]) -> list[TechnicalSignal]:
        """
        Detect signals over the bar history.

        Args:
            security: A security or its bars, ascending by time

        Returns:
            Signals ordered newest first; empty when fewer than ``min_bars``
            bars are available
        """
        bars = list(security.bars if isinstance(security, SecurityData) else security)
        if len(bars) < self.config.min_bars:
            return []

        data = self._compute(bars)
        start = 1
        if self.config.scan_window is not None:
            start = max(1, len(bars) - self.config.scan_window)

        signals: list[TechnicalSignal] = []
        for i in range(start, len(bars)):
            signals.extend(self._rsi_signals(bars, data, i))
            signals.extend(self._macd_signals(bars, data, i))
            signals.extend(self._bollinger_signals(bars, data, i))
            signals.extend(self._stochastic_signals(bars, data, i))
            signals.extend(self._adx_signals(bars, data, i))
            signals.extend(self._moving_average_signals(bars, data, i))
        signals.extend(self._divergence_signals(bars, data, start))

        # Stable sort keeps detection order within a date
        signals.sort(key=lambda s: s.date, reverse=True)
        logger.debug(f"Detected {len(signals)} signals over {len(bars)} bars")
        return signals

    def divergences(self, security: SecurityData | Sequence[OHLCBar]) -> list[Divergence]:
        """RSI, MACD, OBV and stochastic divergences over the whole history."""
        bars = list(security.bars if isinstance(security, SecurityData) else security)
        if len(bars) < self.config.min_bars:
            return []
        return self._divergences(bars, self._compute(bars))

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _compute(self, bars: Sequence[OHLCBar]) -> _Indicators:
        cfg = self.config
        periods = cfg.indicators
        return _Indicators(
            rsi=ind.rsi(bars, periods.rsi_period),
            macd=ind.macd(bars, periods.macd_fast, periods.macd_slow, periods.macd_signal),
            bollinger=ind.bollinger(bars, periods.bollinger_period, periods.bollinger_std),
            stochastic=ind.stochastic(
                bars,
                periods.stochastic_k_period,
                periods.stochastic_k_smoothing,
                periods.stochastic_d_period,
            ),
            adx=ind.adx(bars, periods.adx_period),
            obv=ind.obv(bars),
            trend_sma=ind.sma(bars, cfg.trend_sma_period),
            fast_sma=ind.sma(bars, cfg.golden_cross_fast),
            slow_sma=ind.sma(bars, cfg.golden_cross_slow),
        )

    @staticmethod
    def _signal(
        bar: OHLCBar,
        signal_type: SignalType,
        indicator: str,
        direction: SignalDirection,
        strength: SignalStrength,
        description: str,
        value: float | None = None,
    ) -> TechnicalSignal:
        return TechnicalSignal(
            type=signal_type,
            indicator=indicator,
            date=bar.time,
            direction=direction,
            strength=strength,
            description=description,
            price=bar.close,
            value=value,
        )

    def _rsi_signals(self, bars, data: _Indicators, i: int) -> Iterator[TechnicalSignal]:
        cfg = self.config
        prev, cur = _pair(data.rsi, i)
        if prev is None or cur is None:
            return

        if cur <= cfg.rsi_oversold < prev:
            strong = cur < cfg.rsi_strong_oversold
            yield self._signal(
                bars[i],
                SignalType.RSI_OVERSOLD,
                "RSI",
                SignalDirection.BULLISH,
                SignalStrength.STRONG if strong else SignalStrength.MODERATE,
                f"RSI is oversold ({cur:.1f})",
                cur,
            )
        if cur >= cfg.rsi_overbought > prev:
            strong = cur > cfg.rsi_strong_overbought
            yield self._signal(
                bars[i],
                SignalType.RSI_OVERBOUGHT,
                "RSI",
                SignalDirection.BEARISH,
                SignalStrength.STRONG if strong else SignalStrength.MODERATE,
                f"RSI is overbought ({cur:.1f})",
                cur,
            )

    def _macd_signals(self, bars, data: _Indicators, i: int) -> Iterator[TechnicalSignal]:
        prev_line, line = _pair(data.macd.line, i)
        prev_signal, signal = _pair(data.macd.signal, i)
        if None in (prev_line, line, prev_signal, signal):
            return

        # Crosses away from the zero line's side count as strong
        if line > signal and prev_line <= prev_signal:
            yield self._signal(
                bars[i],
                SignalType.MACD_BULLISH_CROSS,
                "MACD",
                SignalDirection.BULLISH,
                SignalStrength.STRONG if line < 0 else SignalStrength.MODERATE,
                "MACD crosses above its signal line",
                line,
            )
        if line < signal and prev_line >= prev_signal:
            yield self._signal(
                bars[i],
                SignalType.MACD_BEARISH_CROSS,
                "MACD",
                SignalDirection.BEARISH,
                SignalStrength.STRONG if line > 0 else SignalStrength.MODERATE,
                "MACD crosses below its signal line",
                line,
            )

    def _bollinger_signals(self, bars, data: _Indicators, i: int) -> Iterator[TechnicalSignal]:
        cfg = self.config
        bands = data.bollinger
        width = bands.width.at(i)
        if width is None:
            return

        window = bands.width.values[max(0, i - cfg.bollinger_squeeze_period) : i]
        is_narrowest = all(w is None or w >= width for w in window)
        if is_narrowest and width < cfg.bollinger_squeeze_width:
            strong = width < cfg.bollinger_strong_squeeze_width
            yield self._signal(
                bars[i],
                SignalType.BOLLINGER_SQUEEZE,
                "Bollinger",
                SignalDirection.NEUTRAL,
                SignalStrength.STRONG if strong else SignalStrength.MODERATE,
                f"Bollinger squeeze, bandwidth {width:.1%}",
                width,
            )

        close, prev_close = bars[i].close, bars[i - 1].close
        prev_upper, upper = _pair(bands.upper, i)
        if prev_upper is not None and close > upper and prev_close <= prev_upper:
            yield self._signal(
                bars[i],
                SignalType.BOLLINGER_BREAKOUT_UP,
                "Bollinger",
                SignalDirection.BULLISH,
                SignalStrength.MODERATE,
                "Price breaks above the upper Bollinger band",
                upper,
            )
        prev_lower, lower = _pair(bands.lower, i)
        if prev_lower is not None and close < lower and prev_close >= prev_lower:
            yield self._signal(
                bars[i],
                SignalType.BOLLINGER_BREAKOUT_DOWN,
                "Bollinger",
                SignalDirection.BEARISH,
                SignalStrength.MODERATE,
                "Price breaks below the lower Bollinger band",
                lower,
            )

    def _stochastic_signals(self, bars, data: _Indicators, i: int) -> Iterator[TechnicalSignal]:
        cfg = self.config
        prev_k, k = _pair(data.stochastic.k, i)
        prev_d, d = _pair(data.stochastic.d, i)
        if prev_k is None or k is None:
            return

        if k <= cfg.stochastic_oversold < prev_k:
            yield self._signal(
                bars[i],
                SignalType.STOCHASTIC_OVERSOLD,
                "Stochastic",
                SignalDirection.BULLISH,
                SignalStrength.STRONG
                if k < cfg.stochastic_strong_oversold
                else SignalStrength.MODERATE,
                f"Stochastic is oversold (%K {k:.1f})",
                k,
            )
        if k >= cfg.stochastic_overbought > prev_k:
            yield self._signal(
                bars[i],
                SignalType.STOCHASTIC_OVERBOUGHT,
                "Stochastic",
                SignalDirection.BEARISH,
                SignalStrength.STRONG
                if k > cfg.stochastic_strong_overbought
                else SignalStrength.MODERATE,
                f"Stochastic is overbought (%K {k:.1f})",
                k,
            )

        if prev_d is None or d is None:
            return
        # %K/%D crosses only count on their own side of the midline
        if k > d and prev_k <= prev_d and k < cfg.stochastic_cross_midline:
            yield self._signal(
                bars[i],
                SignalType.STOCHASTIC_BULLISH_CROSS,
                "Stochastic",
                SignalDirection.BULLISH,
                SignalStrength.STRONG
                if k < cfg.stochastic_oversold
                else SignalStrength.MODERATE,
                "%K crosses above %D",
                k,
            )
        if k < d and prev_k >= prev_d and k > cfg.stochastic_cross_midline:
            yield self._signal(
                bars[i],
                SignalType.STOCHASTIC_BEARISH_CROSS,
                "Stochastic",
                SignalDirection.BEARISH,
                SignalStrength.STRONG
                if k > cfg.stochastic_overbought
                else SignalStrength.MODERATE,
                "%K crosses below %D",
                k,
            )

    def _adx_signals(self, bars, data: _Indicators, i: int) -> Iterator[TechnicalSignal]:
        cfg = self.config
        prev, cur = _pair(data.adx.adx, i)
        if prev is None or cur is None:
            return

        di_plus, di_minus = data.adx.di_plus.at(i), data.adx.di_minus.at(i)
        if di_plus is None or di_minus is None or di_plus == di_minus:
            direction = SignalDirection.NEUTRAL
        elif di_plus > di_minus:
            direction = SignalDirection.BULLISH
        else:
            direction = SignalDirection.BEARISH

        if cur >= cfg.adx_trend_threshold > prev:
            yield self._signal(
                bars[i],
                SignalType.ADX_TREND_START,
                "ADX",
                direction,
                SignalStrength.MODERATE,
                f"Trend starting (ADX {cur:.1f}, {direction.value})",
                cur,
            )
        if cur >= cfg.adx_strong_threshold > prev:
            yield self._signal(
                bars[i],
                SignalType.ADX_TREND_STRONG,
                "ADX",
                direction,
                SignalStrength.STRONG,
                f"Strong trend (ADX {cur:.1f}, {direction.value})",
                cur,
            )

    def _moving_average_signals(self, bars, data: _Indicators, i: int) -> Iterator[TechnicalSignal]:
        cfg = self.config

        prev_fast, fast = _pair(data.fast_sma, i)
        prev_slow, slow = _pair(data.slow_sma, i)
        if None not in (prev_fast, fast, prev_slow, slow):
            if fast > slow and prev_fast <= prev_slow:
                yield self._signal(
                    bars[i],
                    SignalType.GOLDEN_CROSS,
                    "SMA",
                    SignalDirection.BULLISH,
                    SignalStrength.STRONG,
                    f"SMA {cfg.golden_cross_fast} crosses above SMA {cfg.golden_cross_slow}",
                    fast,
                )
            if fast < slow and prev_fast >= prev_slow:
                yield self._signal(
                    bars[i],
                    SignalType.DEATH_CROSS,
                    "SMA",
                    SignalDirection.BEARISH,
                    SignalStrength.STRONG,
                    f"SMA {cfg.golden_cross_fast} crosses below SMA {cfg.golden_cross_slow}",
                    fast,
                )

        prev_sma, sma = _pair(data.trend_sma, i)
        if prev_sma is None or sma is None or sma == 0:
            return
        close, prev_close = bars[i].close, bars[i - 1].close
        distance_pct = abs(close - sma) / sma * 100
        strength = (
            SignalStrength.STRONG
            if distance_pct >= cfg.sma_cross_strong_pct
            else SignalStrength.WEAK
        )
        if close > sma and prev_close <= prev_sma:
            yield self._signal(
                bars[i],
                SignalType.PRICE_CROSS_ABOVE_SMA,
                "SMA",
                SignalDirection.BULLISH,
                strength,
                f"Price crosses above SMA {cfg.trend_sma_period}",
                sma,
            )
        if close < sma and prev_close >= prev_sma:
            yield self._signal(
                bars[i],
                SignalType.PRICE_CROSS_BELOW_SMA,
                "SMA",
                SignalDirection.BEARISH,
                strength,
                f"Price crosses below SMA {cfg.trend_sma_period}",
                sma,
            )

    def _divergences(self, bars: Sequence[OHLCBar], data: _Indicators) -> list[Divergence]:
        cfg = self.config
        found: list[Divergence] = []
        for name, series in (
            ("rsi", data.rsi),
            ("macd", data.macd.line),
            ("obv", data.obv),
            ("stochastic", data.stochastic.k),
        ):
            found.extend(
                detect_divergences(
                    bars,
                    series,
                    name,
                    lookback=cfg.divergence_lookback,
                    pivot_width=cfg.divergence_pivot_width,
                    min_confidence=cfg.divergence_min_confidence,
                )
            )
        return found

    def _divergence_strength(self, confidence: float) -> SignalStrength:
        cfg = self.config
        if confidence > cfg.divergence_strong_confidence:
            return SignalStrength.STRONG
        if confidence > cfg.divergence_moderate_confidence:
            return SignalStrength.MODERATE
        return SignalStrength.WEAK

    def divergence_signal(self, bar: OHLCBar, divergence: Divergence) -> TechnicalSignal:
        """Turn a divergence into a signal dated at its ending bar."""
        bullish = divergence.direction == SignalDirection.BULLISH
        label = DIVERGENCE_LABELS.get(divergence.indicator, divergence.indicator)
        return self._signal(
            bar,
            SignalType.DIVERGENCE_BULLISH if bullish else SignalType.DIVERGENCE_BEARISH,
            label,
            divergence.direction,
            self._divergence_strength(divergence.confidence),
            f"{'Bullish' if bullish else 'Bearish'} {label} divergence "
            f"(confidence {divergence.confidence:.0%})",
            divergence.indicator_end,
        )

    def _divergence_signals(
        self,
        bars: Sequence[OHLCBar],
        data: _Indicators,
        start: int,
    ) -> Iterator[TechnicalSignal]:
        for divergence in self._divergences(bars, data):
            if divergence.end_index >= start:
                yield self.divergence_signal(bars[divergence.end_index], divergence)
