"""Tests for technical indicators."""

import datetime as dt
import math

import pytest

from ta_core.errors import EngineInvariantError
from ta_core.indicators import (
    IndicatorCalculator,
    adx,
    atr,
    bollinger,
    PivotType,
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
from ta_core.models import IndicatorConfig, OHLCBar, ScreenerIndicator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_bars(
    closes: list[float],
    spread: float = 1.0,
    volume: float | None = 1000.0,
) -> list[OHLCBar]:
    """Bars with open = previous close and a fixed high/low spread."""
    start = dt.date(2024, 1, 1)
    bars = []
    for i, close in enumerate(closes):
        open_ = closes[i - 1] if i else close
        bars.append(
            OHLCBar(
                time=start + dt.timedelta(days=i),
                open=open_,
                high=max(open_, close) + spread,
                low=min(open_, close) - spread,
                close=close,
                volume=volume,
            )
        )
    return bars


def zigzag(n: int, base: float = 100.0) -> list[float]:
    """Deterministic non-monotonic closes."""
    return [base + 5 * math.sin(i / 3) + i * 0.1 for i in range(n)]


def first_present(values) -> int | None:
    for i, v in enumerate(values):
        if v is not None:
            return i
    return None


def ohlc(day: int, high: float, low: float, close: float, volume: float | None = None) -> OHLCBar:
    return OHLCBar(
        time=dt.date(2024, 1, 1) + dt.timedelta(days=day),
        open=close,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


class TestSMA:
    """Tests for SMA calculation."""

    def test_sma_basic(self):
        bars = make_bars([float(i) for i in range(1, 11)])
        result = sma(bars, 3)

        assert result[0] is None
        assert result[1] is None
        assert result[2] == pytest.approx(2.0)
        assert result[3] == pytest.approx(3.0)
        assert len(result) == 10

    def test_sma_insufficient_data(self):
        result = sma(make_bars([100.0, 101.0]), 5)
        assert result.values == (None, None)


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_seeded_with_sma(self):
        bars = make_bars([float(i) for i in range(1, 11)])
        result = ema(bars, 5)

        assert result[3] is None
        # Seed is the SMA of the first five closes
        assert result[4] == pytest.approx(3.0)
        assert result[5] > result[4]

    def test_ema_insufficient_data(self):
        result = ema(make_bars([100.0, 101.0, 102.0]), 10)
        assert all(v is None for v in result)


class TestRSI:
    """Tests for RSI calculation."""

    def test_warm_up(self):
        """First value at index == period."""
        result = rsi(make_bars(zigzag(40)), 14)
        assert first_present(result) == 14

    def test_bounds(self):
        for closes in (zigzag(60), [100 + i for i in range(60)], [200 - i for i in range(60)]):
            values = [v for v in rsi(make_bars(closes), 14) if v is not None]
            assert values
            assert all(0.0 <= v <= 100.0 for v in values)

    def test_only_gains_is_100(self):
        result = rsi(make_bars([100.0 + i for i in range(30)]), 14)
        assert result.latest == pytest.approx(100.0)

    def test_only_losses_is_0(self):
        result = rsi(make_bars([200.0 - i for i in range(30)]), 14)
        assert result.latest == pytest.approx(0.0)

    def test_flat_series_is_neutral(self):
        result = rsi(make_bars([50.0] * 30), 14)
        assert result.latest == pytest.approx(50.0)

    def test_deterministic(self):
        bars = make_bars(zigzag(80))
        assert rsi(bars, 14) == rsi(bars, 14)

    def test_exactly_period_bars_is_all_absent(self):
        """Needs period + 1 bars for a first value."""
        result = rsi(make_bars(zigzag(14)), 14)
        assert all(v is None for v in result)


class TestMACD:
    """Tests for MACD calculation."""

    def test_warm_up_and_histogram(self):
        result = macd(make_bars(zigzag(80)), 12, 26, 9)

        assert first_present(result.line) == 25
        assert first_present(result.signal) == 33
        assert first_present(result.histogram) == 33
        i = 50
        assert result.histogram[i] == pytest.approx(result.line[i] - result.signal[i])

    def test_fast_must_be_shorter(self):
        with pytest.raises(ValueError):
            macd(make_bars(zigzag(40)), 26, 12, 9)


class TestBollinger:
    """Tests for Bollinger Bands."""

    def test_bands_ordered(self):
        result = bollinger(make_bars(zigzag(60)), 20, 2.0)

        assert first_present(result.middle) == 19
        for upper, middle, lower in zip(result.upper, result.middle, result.lower):
            if middle is None:
                continue
            assert lower <= middle <= upper

    def test_width_of_flat_series_is_zero(self):
        result = bollinger(make_bars([100.0] * 25), 20, 2.0)
        assert result.width.latest == pytest.approx(0.0)

    def test_population_std(self):
        closes = [float(i) for i in range(1, 21)]
        result = bollinger(make_bars(closes), 20, 2.0)

        mean = sum(closes) / 20
        std = math.sqrt(sum((c - mean) ** 2 for c in closes) / 20)
        assert result.upper.latest == pytest.approx(mean + 2 * std)


class TestStochastic:
    """Tests for the Stochastic Oscillator."""

    def test_warm_up(self):
        result = stochastic(make_bars(zigzag(40)), 14, 3, 3)

        assert first_present(result.k) == 15
        assert first_present(result.d) == 17

    def test_bounds(self):
        result = stochastic(make_bars(zigzag(60)), 14, 3, 3)
        for value in (v for v in result.k if v is not None):
            assert 0.0 <= value <= 100.0

    def test_zero_range_is_midpoint(self):
        bars = make_bars([100.0] * 20, spread=0.0)
        assert stochastic(bars, 14, 3, 3).k.latest == pytest.approx(50.0)


class TestADX:
    """Tests for ADX and directional indicators."""

    def test_warm_up(self):
        result = adx(make_bars(zigzag(60)), 14)

        assert first_present(result.di_plus) == 14
        assert first_present(result.di_minus) == 14
        assert first_present(result.adx) == 27

    def test_uptrend_has_positive_spread(self):
        result = adx(make_bars([100.0 + i * 2 for i in range(60)]), 14)

        assert result.di_plus.latest > result.di_minus.latest
        assert 0.0 <= result.adx.latest <= 100.0


class TestATR:
    """Tests for ATR calculation."""

    def test_atr_constant_range(self):
        """Constant range candles converge on that range."""
        bars = make_bars([100.0] * 30, spread=1.0)
        assert atr(bars, 14).latest == pytest.approx(2.0)

    def test_atr_insufficient_data(self):
        result = atr(make_bars([100.0] * 5), 14)
        assert all(v is None for v in result)


class TestVolumeIndicators:
    """Tests for OBV and volume ratio."""

    def test_obv_accumulates(self):
        result = obv(make_bars([10.0, 11.0, 10.5, 10.5, 12.0], volume=100.0))
        assert result.values == (100.0, 200.0, 100.0, 100.0, 200.0)

    def test_obv_absent_without_volume(self):
        result = obv(make_bars([10.0, 11.0, 12.0], volume=None))
        assert all(v is None for v in result)

    def test_constant_volume_ratio_is_100(self):
        result = volume_ratio(make_bars(zigzag(30), volume=500.0), 20)

        assert first_present(result) == 19
        assert result.latest == pytest.approx(100.0)


class TestChange:
    """Tests for percentage change."""

    def test_change_over_lookback(self):
        result = change(make_bars([100.0, 110.0, 99.0]), 1)

        assert result[0] is None
        assert result[1] == pytest.approx(10.0)
        assert result[2] == pytest.approx(-10.0)

    def test_identical_closes_give_zero(self):
        result = change(make_bars([42.0] * 10), 5)
        assert result.latest == 0.0

    def test_zero_price_is_absent(self):
        result = change(make_bars([0.0, 10.0], spread=0.0), 1)
        assert result[1] is None


class TestVWAP:
    """Tests for cumulative VWAP."""

    def test_cumulative_average(self):
        bars = [
            ohlc(0, 11, 9, 10),
            ohlc(1, 12, 10, 11, volume=100),
            ohlc(2, 14, 12, 13, volume=0),
            ohlc(3, 14, 12, 13, volume=300),
        ]
        result = vwap(bars)

        assert result[0] is None
        assert result[1] == pytest.approx(11.0)
        assert result[2] is None
        assert result[3] == pytest.approx((11 * 100 + 13 * 300) / 400)

    def test_empty(self):
        assert vwap([]).values == ()


class TestIchimoku:
    """Tests for the Ichimoku lines."""

    def test_warm_up(self):
        result = ichimoku(make_bars(zigzag(60)))

        assert first_present(result.tenkan) == 8
        assert first_present(result.kijun) == 25
        assert first_present(result.senkou_a) == 25
        assert first_present(result.senkou_b) == 51
        assert first_present(result.chikou) == 0

    def test_lines(self):
        bars = make_bars(zigzag(60))
        result = ichimoku(bars)
        window = bars[:9]

        expected_tenkan = (max(b.high for b in window) + min(b.low for b in window)) / 2
        assert result.tenkan[8] == pytest.approx(expected_tenkan)
        assert result.senkou_a[40] == pytest.approx((result.tenkan[40] + result.kijun[40]) / 2)
        assert list(result.chikou) == [b.close for b in bars]


class TestPivotPoints:
    """Tests for floor pivot points."""

    BARS = [ohlc(0, 110, 90, 100), ohlc(1, 110, 90, 104), ohlc(2, 120, 100, 110)]

    def test_first_bar_absent(self):
        result = pivot_points(self.BARS)
        assert all(level[0] is None for level in result)

    def test_standard(self):
        result = pivot_points(self.BARS)

        assert result.pivot[1] == pytest.approx(100.0)
        assert (result.r1[1], result.r2[1], result.r3[1]) == pytest.approx((110.0, 120.0, 130.0))
        assert (result.s1[1], result.s2[1], result.s3[1]) == pytest.approx((90.0, 80.0, 70.0))

    def test_fibonacci(self):
        result = pivot_points(self.BARS, PivotType.FIBONACCI)

        assert result.r1[1] == pytest.approx(100.0 + 0.382 * 20)
        assert result.s2[1] == pytest.approx(100.0 - 0.618 * 20)
        assert (result.r3[1], result.s3[1]) == pytest.approx((120.0, 80.0))

    def test_woodie_weights_close(self):
        result = pivot_points(self.BARS, "woodie")

        # Previous bar: high 110, low 90, close 104
        assert result.pivot[2] == pytest.approx(102.0)
        assert (result.r1[2], result.r3[2]) == pytest.approx((114.0, 134.0))
        assert (result.s1[2], result.s3[2]) == pytest.approx((94.0, 74.0))

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            pivot_points(self.BARS, "camarilla")


class TestFibonacci:
    """Tests for Fibonacci retracement levels."""

    def test_uptrend_retraces_from_high(self):
        bars = [ohlc(0, 95, 90, 92), ohlc(1, 110, 95, 108), ohlc(2, 105, 100, 102)]
        result = fibonacci(bars)

        assert result.uptrend
        assert (result.swing_low_index, result.swing_high_index) == (0, 1)
        prices = {level.label: level.price for level in result.levels}
        assert prices["0.0%"] == pytest.approx(110.0)
        assert prices["50.0%"] == pytest.approx(100.0)
        assert prices["61.8%"] == pytest.approx(110.0 - 0.618 * 20)
        assert prices["100.0%"] == pytest.approx(90.0)

    def test_downtrend_retraces_from_low(self):
        bars = [ohlc(0, 110, 105, 108), ohlc(1, 100, 90, 92)]
        result = fibonacci(bars)

        assert not result.uptrend
        assert result.levels[0].price == pytest.approx(90.0)
        assert result.levels[-1].price == pytest.approx(110.0)

    def test_lookback_limits_window(self):
        bars = [ohlc(0, 200, 10, 100)] + [ohlc(i, 105, 95, 100) for i in range(1, 60)]
        result = fibonacci(bars, lookback=50)

        assert result.swing_low == 95
        assert result.swing_high == 105
        assert result.swing_low_index >= 10

    def test_no_bars(self):
        assert fibonacci([]) is None


class TestIndicatorCalculator:
    """Tests for the screener-facing calculator."""

    def test_all_indicators_aligned(self):
        bars = make_bars(zigzag(250))
        result = IndicatorCalculator().calculate(bars, list(ScreenerIndicator))

        assert set(result) == set(ScreenerIndicator)
        assert all(len(series) == len(bars) for series in result.values())

    def test_derived_series(self):
        bars = make_bars([100.0 + i for i in range(60)])
        calc = IndicatorCalculator()
        result = calc.calculate(
            bars,
            [
                ScreenerIndicator.PRICE,
                ScreenerIndicator.BOLLINGER_UPPER,
                ScreenerIndicator.DI_SPREAD,
                ScreenerIndicator.DI_PLUS,
                ScreenerIndicator.DI_MINUS,
            ],
        )
        upper = bollinger(bars, 20, 2.0).upper.latest

        assert result[ScreenerIndicator.PRICE].latest == 159.0
        assert result[ScreenerIndicator.BOLLINGER_UPPER].latest == pytest.approx(159.0 / upper * 100)
        assert result[ScreenerIndicator.DI_SPREAD].latest == pytest.approx(
            result[ScreenerIndicator.DI_PLUS].latest - result[ScreenerIndicator.DI_MINUS].latest
        )

    def test_short_history_is_absent(self):
        """A history one bar short of the lookback never has a value."""
        bars = make_bars(zigzag(14))
        series = IndicatorCalculator().calculate_one(bars, ScreenerIndicator.RSI)
        assert all(v is None for v in series)

    def test_config_periods_used(self):
        bars = make_bars(zigzag(40))
        series = IndicatorCalculator(IndicatorConfig(rsi_period=7)).calculate_one(
            bars, ScreenerIndicator.RSI
        )
        assert first_present(series) == 7

    def test_series_index_out_of_range(self):
        series = sma(make_bars(zigzag(5)), 2)
        with pytest.raises(EngineInvariantError):
            series.at(5)

    def test_all_series_deterministic(self):
        bars = make_bars(zigzag(250))
        calc = IndicatorCalculator()
        assert calc.calculate(bars, list(ScreenerIndicator)) == calc.calculate(
            bars, list(ScreenerIndicator)
        )

    def test_flat_history(self):
        """25 identical closes: RSI is exactly neutral and every change is zero."""
        bars = make_bars([100.0] * 25)
        result = IndicatorCalculator().calculate(
            bars,
            [
                ScreenerIndicator.RSI,
                ScreenerIndicator.CHANGE_1D,
                ScreenerIndicator.CHANGE_5D,
                ScreenerIndicator.CHANGE_20D,
            ],
        )

        rsi_values = result[ScreenerIndicator.RSI]
        assert all(v is None for v in rsi_values.values[:14])
        assert all(v == 50.0 for v in rsi_values.values[14:])
        for key, lookback in (
            (ScreenerIndicator.CHANGE_1D, 1),
            (ScreenerIndicator.CHANGE_5D, 5),
            (ScreenerIndicator.CHANGE_20D, 20),
        ):
            values = result[key].values
            assert all(v is None for v in values[:lookback])
            assert all(v == 0.0 for v in values[lookback:])

    def test_sma_periods_configurable(self):
        bars = make_bars(zigzag(40))
        config = IndicatorConfig(sma_short_period=5, sma_medium_period=10, sma_long_period=30)
        result = IndicatorCalculator(config).calculate(
            bars,
            [
                ScreenerIndicator.SMA_20,
                ScreenerIndicator.SMA_50,
                ScreenerIndicator.SMA_200,
                ScreenerIndicator.SMA_50_200_GAP,
            ],
        )

        assert first_present(result[ScreenerIndicator.SMA_20]) == 4
        assert first_present(result[ScreenerIndicator.SMA_50]) == 9
        assert first_present(result[ScreenerIndicator.SMA_200]) == 29
        assert first_present(result[ScreenerIndicator.SMA_50_200_GAP]) == 29
