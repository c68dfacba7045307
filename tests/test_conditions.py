"""Tests for the condition evaluator."""

import pytest

from ta_core.conditions import evaluate
from ta_core.errors import EngineInvariantError, FilterValidationError
from ta_core.models import IndicatorSeries, ScreenerCondition


def series(*values, name: str = "rsi") -> IndicatorSeries:
    return IndicatorSeries.from_values(name, values)


class TestStaticConditions:
    """Tests for above/below/between."""

    def test_above_is_strict(self):
        s = series(None, 29.0, 30.0, 31.0)

        assert not evaluate(s, 2, ScreenerCondition.ABOVE, 30).matched
        assert evaluate(s, 3, ScreenerCondition.ABOVE, 30).matched

    def test_below_is_strict(self):
        s = series(29.0, 30.0)

        assert evaluate(s, 0, ScreenerCondition.BELOW, 30).matched
        assert not evaluate(s, 1, ScreenerCondition.BELOW, 30).matched

    def test_between_is_inclusive(self):
        s = series(30.0, 50.0, 70.0, 70.5)

        for i in range(3):
            assert evaluate(s, i, ScreenerCondition.BETWEEN, 30, 70).matched
        assert not evaluate(s, 3, ScreenerCondition.BETWEEN, 30, 70).matched

    def test_absent_value_never_matches(self):
        s = series(None, None)
        for condition in (ScreenerCondition.ABOVE, ScreenerCondition.BELOW):
            assert not evaluate(s, 1, condition, 0).matched
        assert not evaluate(s, 1, ScreenerCondition.BETWEEN, -1, 1).matched

    def test_between_without_value2_rejected(self):
        with pytest.raises(FilterValidationError) as exc_info:
            evaluate(series(50.0), 0, ScreenerCondition.BETWEEN, 30)
        assert "value2" in str(exc_info.value)

    def test_missing_threshold_rejected(self):
        with pytest.raises(FilterValidationError) as exc_info:
            evaluate(series(50.0), 0, ScreenerCondition.ABOVE)
        assert "requires value" in str(exc_info.value)

    def test_index_out_of_range(self):
        with pytest.raises(EngineInvariantError):
            evaluate(series(1.0, 2.0), 2, ScreenerCondition.ABOVE, 0)


class TestCrossingConditions:
    """Tests for crosses_above/crosses_below."""

    def test_crosses_above_fires_once_on_rising_series(self):
        """A monotonically rising series crosses the threshold at exactly one bar."""
        s = series(*[float(v) for v in range(20, 41)])
        hits = [
            i
            for i in range(len(s))
            if evaluate(s, i, ScreenerCondition.CROSSES_ABOVE, 30).matched
        ]
        # prev (30) <= 30 < cur (31)
        assert hits == [11]

    def test_crosses_below(self):
        s = series(32.0, 30.0, 29.0, 28.0)
        hits = [i for i in range(4) if evaluate(s, i, ScreenerCondition.CROSSES_BELOW, 30).matched]
        assert hits == [2]

    def test_first_bar_cannot_cross(self):
        assert not evaluate(series(50.0), 0, ScreenerCondition.CROSSES_ABOVE, 30).matched

    def test_absent_previous_does_not_cross(self):
        s = series(None, 35.0)
        assert not evaluate(s, 1, ScreenerCondition.CROSSES_ABOVE, 30).matched


class TestTrendConditions:
    """Tests for increasing/decreasing."""

    def test_increasing_non_strict(self):
        s = series(None, 1.0, 2.0, 2.0, 3.0)

        assert evaluate(s, 4, ScreenerCondition.INCREASING, 0).matched
        assert not evaluate(s, 4, ScreenerCondition.DECREASING, 0).matched

    def test_decreasing(self):
        s = series(5.0, 4.0, 4.0)
        assert evaluate(s, 2, ScreenerCondition.DECREASING, 0).matched

    def test_too_few_present_values(self):
        s = series(None, None, 1.0, 2.0)
        assert not evaluate(s, 3, ScreenerCondition.INCREASING, 0).matched

    def test_custom_lookback(self):
        s = series(5.0, 1.0, 2.0, 3.0, 4.0)

        assert evaluate(s, 4, ScreenerCondition.INCREASING, 0, lookback=4).matched
        assert not evaluate(s, 4, ScreenerCondition.INCREASING, 0, lookback=5).matched

    def test_threshold_optional(self):
        assert evaluate(series(1.0, 2.0, 3.0), 2, ScreenerCondition.INCREASING).matched

    def test_no_lookahead(self):
        """Later values do not influence an earlier index."""
        s = series(1.0, 2.0, 3.0, 0.0)
        assert evaluate(s, 2, ScreenerCondition.INCREASING, 0).matched


class TestExplanation:
    """Tests for human-readable explanations."""

    def test_label(self):
        result = evaluate(series(25.0), 0, ScreenerCondition.BELOW, 30, label="RSI")
        assert result.explanation == "RSI below 30"

    def test_between_and_default_label(self):
        result = evaluate(series(25.0, name="sma_gap"), 0, ScreenerCondition.BETWEEN, -2, 2)
        assert result.explanation == "sma_gap between -2 and 2"

    def test_trend_omits_value(self):
        result = evaluate(series(1.0, 2.0, 3.0), 2, ScreenerCondition.INCREASING, 0, label="MACD histogram")
        assert result.explanation == "MACD histogram increasing"

    def test_explanation_present_when_not_matched(self):
        result = evaluate(series(35.0), 0, ScreenerCondition.BELOW, 30, label="RSI")
        assert not result
        assert result.explanation == "RSI below 30"

    def test_large_threshold_written_out(self):
        result = evaluate(series(2e6), 0, ScreenerCondition.ABOVE, 1_500_000, label="OBV")
        assert result.explanation == "OBV above 1500000"

    def test_fractional_threshold(self):
        result = evaluate(series(1.0), 0, ScreenerCondition.BELOW, 0.25, label="MACD")
        assert result.explanation == "MACD below 0.25"
