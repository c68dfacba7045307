"""Tests for OHLC normalization and Heikin-Ashi conversion."""

import datetime as dt

import pytest
from pydantic import ValidationError

from ta_core.models import OHLCBar, PriceObservation, SecurityData, SecurityDescriptor
from ta_core.normalizer import heikin_ashi, normalize_observations


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

START = dt.date(2024, 1, 1)


def obs(day: int, price: float, volume: float | None = None) -> PriceObservation:
    """Observation ``day`` days after START."""
    return PriceObservation(date=START + dt.timedelta(days=day), price=price, volume=volume)


class TestNormalizeObservations:
    """Tests for grouping observations into bars."""

    def test_fewer_than_two_observations(self):
        """Less than two observations yields no bars."""
        assert normalize_observations([]) == []
        assert normalize_observations([obs(0, 100)]) == []

    def test_daily_feed_one_bar_per_day(self):
        """Default tolerance keeps a daily feed at one bar per day."""
        prices = [100, 101, 99, 102, 103]
        bars = normalize_observations([obs(i, p) for i, p in enumerate(prices)])

        assert len(bars) == 5
        assert [b.close for b in bars] == prices
        assert all(b.open == b.high == b.low == b.close for b in bars)

    def test_unsorted_input_is_ordered(self):
        """Bars come out strictly ascending regardless of input order."""
        bars = normalize_observations([obs(2, 102), obs(0, 100), obs(1, 101)])

        times = [b.time for b in bars]
        assert times == sorted(times)
        assert len(set(times)) == len(times)

    def test_same_day_observations_collapse(self):
        """Observations sharing a date form one bar in input order."""
        bars = normalize_observations(
            [obs(0, 100), obs(0, 104), obs(0, 98), obs(0, 101), obs(1, 105)]
        )

        assert len(bars) == 2
        first = bars[0]
        assert first.open == 100
        assert first.high == 104
        assert first.low == 98
        assert first.close == 101

    def test_wider_tolerance_pairs_days(self):
        """Tolerance 2.0 groups consecutive days into one bar."""
        prices = [100, 102, 101, 99]
        bars = normalize_observations(
            [obs(i, p) for i, p in enumerate(prices)], tolerance=2.0
        )

        assert len(bars) == 2
        assert (bars[0].open, bars[0].high, bars[0].low, bars[0].close) == (100, 102, 100, 102)
        assert (bars[1].open, bars[1].high, bars[1].low, bars[1].close) == (101, 101, 99, 99)

    def test_ohlc_invariant(self):
        """low <= min(open, close) <= max(open, close) <= high for every bar."""
        prices = [100, 103, 97, 105, 99, 101, 98, 104]
        bars = normalize_observations(
            [obs(i // 2, p) for i, p in enumerate(prices)], tolerance=1.5
        )

        for bar in bars:
            assert bar.low <= min(bar.open, bar.close)
            assert max(bar.open, bar.close) <= bar.high

    def test_volume_summed_when_all_present(self):
        bars = normalize_observations([obs(0, 100, 10), obs(0, 101, 5), obs(1, 102, 7)])
        assert bars[0].volume == 15
        assert bars[1].volume == 7

    def test_volume_absent_when_any_missing(self):
        bars = normalize_observations([obs(0, 100, 10), obs(0, 101), obs(1, 102, 7)])
        assert bars[0].volume is None

    def test_tolerance_below_one_rejected(self):
        with pytest.raises(ValueError):
            normalize_observations([obs(0, 100), obs(1, 101)], tolerance=0.5)

    def test_deterministic(self):
        """Same input, same bars."""
        data = [obs(i, 100 + (i % 3)) for i in range(10)]
        assert normalize_observations(data) == normalize_observations(data)


class TestSecurityData:
    """Tests for the SecurityData model."""

    def test_from_observations(self):
        descriptor = SecurityDescriptor(security_id=1, name="ACME", ticker="ACM")
        security = SecurityData.from_observations(
            descriptor, [obs(i, 100 + i) for i in range(5)]
        )

        assert len(security) == 5
        assert security.descriptor == descriptor
        assert security.last_bar.close == 104

    def test_duplicate_bar_times_rejected(self):
        bar = OHLCBar(time=START, open=1, high=1, low=1, close=1)
        with pytest.raises(ValidationError):
            SecurityData(security_id=1, name="X", bars=(bar, bar))

    def test_non_finite_price_rejected(self):
        with pytest.raises(ValidationError):
            PriceObservation(date=START, price=float("nan"))


class TestHeikinAshi:
    """Tests for Heikin-Ashi conversion."""

    def test_first_bar(self):
        bars = [OHLCBar(time=START, open=10, high=14, low=8, close=12)]
        ha = heikin_ashi(bars)[0]

        assert ha.close == pytest.approx((10 + 14 + 8 + 12) / 4)
        assert ha.open == pytest.approx(11)
        assert ha.high == 14
        assert ha.low == 8

    def test_open_uses_previous_ha_bar(self):
        bars = [
            OHLCBar(time=START, open=10, high=14, low=8, close=12),
            OHLCBar(time=START + dt.timedelta(days=1), open=12, high=15, low=11, close=14),
        ]
        first, second = heikin_ashi(bars)

        assert second.open == pytest.approx((first.open + first.close) / 2)
        assert second.high >= max(second.open, second.close)
        assert second.low <= min(second.open, second.close)
