"""Computes screener indicator series for one bar history."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Sequence

from ta_core.indicators import indicators as ind
from ta_core.models.config import IndicatorConfig
from ta_core.models.ohlc import OHLCBar
from ta_core.models.screener import ScreenerIndicator
from ta_core.models.series import IndicatorSeries

logger = logging.getLogger(__name__)

# Per-call cache of indicator families (macd, bollinger, ...) keyed by name
_Memo = dict[str, Any]


def _cached(memo: _Memo, key: str, factory: Callable[[], Any]) -> Any:
    if key not in memo:
        memo[key] = factory()
    return memo[key]


def _percent_of(
    name: str,
    numerator: IndicatorSeries,
    denominator: IndicatorSeries,
) -> IndicatorSeries:
    """numerator / denominator * 100, absent where either side is absent or zero."""
    values = []
    for num, den in zip(numerator, denominator):
        if num is None or den is None or den == 0:
            values.append(None)
        else:
            values.append(num / den * 100.0)
    return IndicatorSeries.from_values(name, values)


def _difference(
    name: str,
    left: IndicatorSeries,
    right: IndicatorSeries,
) -> IndicatorSeries:
    return IndicatorSeries.from_values(
        name,
        [None if a is None or b is None else a - b for a, b in zip(left, right)],
    )


class IndicatorCalculator:
    """Calculator for the indicators referenced by screener filters.

    Each family (MACD, Bollinger, Stochastic, ADX, ...) is computed at most
    once per ``calculate`` call, however many of its outputs are requested.
    Instances hold only configuration and are safe to share across threads.
    """

    def __init__(self, config: IndicatorConfig | None = None):
        self.config = config or IndicatorConfig()

    def calculate(
        self,
        bars: Sequence[OHLCBar],
        indicators: Iterable[ScreenerIndicator],
    ) -> dict[ScreenerIndicator, IndicatorSeries]:
        """
        Compute the requested indicator series.

        Args:
            bars: OHLC bars, ascending by time
            indicators: Indicators to compute (duplicates are ignored)

        Returns:
            Dict mapping each requested indicator to a series with one value
            per bar
        """
        memo: _Memo = {}
        result: dict[ScreenerIndicator, IndicatorSeries] = {}
        for indicator in indicators:
            if indicator in result:
                continue
            builder = _BUILDERS[indicator]
            result[indicator] = builder(self, bars, memo).ensure_aligned(len(bars))
        logger.debug(
            f"Computed {len(result)} indicator series ({len(memo)} cached families) "
            f"over {len(bars)} bars"
        )
        return result

    def calculate_one(
        self,
        bars: Sequence[OHLCBar],
        indicator: ScreenerIndicator,
    ) -> IndicatorSeries:
        return self.calculate(bars, [indicator])[indicator]

    # -------------------------------------------------------------------------
    # Families
    # -------------------------------------------------------------------------

    def _macd(self, bars: Sequence[OHLCBar], memo: _Memo) -> ind.MACDResult:
        cfg = self.config
        return _cached(
            memo,
            "macd",
            lambda: ind.macd(bars, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal),
        )

    def _bollinger(self, bars: Sequence[OHLCBar], memo: _Memo) -> ind.BollingerResult:
        cfg = self.config
        return _cached(
            memo,
            "bollinger",
            lambda: ind.bollinger(bars, cfg.bollinger_period, cfg.bollinger_std),
        )

    def _stochastic(self, bars: Sequence[OHLCBar], memo: _Memo) -> ind.StochasticResult:
        cfg = self.config
        return _cached(
            memo,
            "stochastic",
            lambda: ind.stochastic(
                bars,
                cfg.stochastic_k_period,
                cfg.stochastic_k_smoothing,
                cfg.stochastic_d_period,
            ),
        )

    def _adx(self, bars: Sequence[OHLCBar], memo: _Memo) -> ind.ADXResult:
        return _cached(memo, "adx", lambda: ind.adx(bars, self.config.adx_period))

    def _sma(self, bars: Sequence[OHLCBar], memo: _Memo, period: int) -> IndicatorSeries:
        return _cached(memo, f"sma_{period}", lambda: ind.sma(bars, period))

    def _price(self, bars: Sequence[OHLCBar], memo: _Memo) -> IndicatorSeries:
        return _cached(
            memo,
            "price",
            lambda: IndicatorSeries.from_values("price", [b.close for b in bars]),
        )


_Builder = Callable[[IndicatorCalculator, Sequence[OHLCBar], _Memo], IndicatorSeries]

_BUILDERS: Mapping[ScreenerIndicator, _Builder] = MappingProxyType({
    ScreenerIndicator.PRICE: lambda calc, bars, memo: calc._price(bars, memo),
    ScreenerIndicator.VOLUME: lambda calc, bars, memo: ind.volume_ratio(
        bars, calc.config.volume_period
    ),
    ScreenerIndicator.RSI: lambda calc, bars, memo: ind.rsi(bars, calc.config.rsi_period),
    ScreenerIndicator.MACD: lambda calc, bars, memo: calc._macd(bars, memo).line,
    ScreenerIndicator.MACD_SIGNAL: lambda calc, bars, memo: calc._macd(bars, memo).signal,
    ScreenerIndicator.MACD_HISTOGRAM: lambda calc, bars, memo: calc._macd(bars, memo).histogram,
    ScreenerIndicator.BOLLINGER_UPPER: lambda calc, bars, memo: _percent_of(
        "bollinger_upper", calc._price(bars, memo), calc._bollinger(bars, memo).upper
    ),
    ScreenerIndicator.BOLLINGER_LOWER: lambda calc, bars, memo: _percent_of(
        "bollinger_lower", calc._price(bars, memo), calc._bollinger(bars, memo).lower
    ),
    ScreenerIndicator.BOLLINGER_WIDTH: lambda calc, bars, memo: IndicatorSeries.from_values(
        "bollinger_width",
        [None if w is None else w * 100.0 for w in calc._bollinger(bars, memo).width],
    ),
    ScreenerIndicator.STOCHASTIC_K: lambda calc, bars, memo: calc._stochastic(bars, memo).k,
    ScreenerIndicator.STOCHASTIC_D: lambda calc, bars, memo: calc._stochastic(bars, memo).d,
    ScreenerIndicator.ADX: lambda calc, bars, memo: calc._adx(bars, memo).adx,
    ScreenerIndicator.DI_PLUS: lambda calc, bars, memo: calc._adx(bars, memo).di_plus,
    ScreenerIndicator.DI_MINUS: lambda calc, bars, memo: calc._adx(bars, memo).di_minus,
    ScreenerIndicator.DI_SPREAD: lambda calc, bars, memo: _difference(
        "di_spread", calc._adx(bars, memo).di_plus, calc._adx(bars, memo).di_minus
    ),
    ScreenerIndicator.OBV: lambda calc, bars, memo: ind.obv(bars),
    ScreenerIndicator.SMA_20: lambda calc, bars, memo: calc._sma(
        bars, memo, calc.config.sma_short_period
    ),
    ScreenerIndicator.SMA_50: lambda calc, bars, memo: calc._sma(
        bars, memo, calc.config.sma_medium_period
    ),
    ScreenerIndicator.SMA_200: lambda calc, bars, memo: calc._sma(
        bars, memo, calc.config.sma_long_period
    ),
    ScreenerIndicator.SMA_50_200_GAP: lambda calc, bars, memo: _percent_of(
        "sma_50_200_gap",
        _difference(
            "sma_gap",
            calc._sma(bars, memo, calc.config.sma_medium_period),
            calc._sma(bars, memo, calc.config.sma_long_period),
        ),
        calc._sma(bars, memo, calc.config.sma_long_period),
    ),
    ScreenerIndicator.CHANGE_1D: lambda calc, bars, memo: ind.change(bars, 1),
    ScreenerIndicator.CHANGE_5D: lambda calc, bars, memo: ind.change(bars, 5),
    ScreenerIndicator.CHANGE_20D: lambda calc, bars, memo: ind.change(bars, 20),
})
