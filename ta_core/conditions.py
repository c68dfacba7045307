"""Condition evaluator: applies one screener condition to a series at a bar.

Only values at or before the evaluated index are read, so evaluating a
historical bar never looks ahead.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping

from ta_core.errors import FilterValidationError
from ta_core.models.screener import ScreenerCondition, describe_rule, filter_problems
from ta_core.models.series import IndicatorSeries

DEFAULT_TREND_LOOKBACK = 3


@dataclass(frozen=True, slots=True)
class ConditionResult:
    matched: bool
    explanation: str

    def __bool__(self) -> bool:
        return self.matched


# (series, index, value, value2, lookback) -> matched
_Predicate = Callable[[IndicatorSeries, int, float, "float | None", int], bool]


def _previous(series: IndicatorSeries, index: int) -> float | None:
    return series.at(index - 1) if index > 0 else None


def _above(series: IndicatorSeries, index: int, value: float, value2, lookback) -> bool:
    current = series.at(index)
    return current is not None and current > value


def _below(series: IndicatorSeries, index: int, value: float, value2, lookback) -> bool:
    current = series.at(index)
    return current is not None and current < value


def _between(series: IndicatorSeries, index: int, value: float, value2, lookback) -> bool:
    current = series.at(index)
    return current is not None and value <= current <= value2


def _crosses_above(series: IndicatorSeries, index: int, value: float, value2, lookback) -> bool:
    current = series.at(index)
    previous = _previous(series, index)
    if current is None or previous is None:
        return False
    return previous <= value < current


def _crosses_below(series: IndicatorSeries, index: int, value: float, value2, lookback) -> bool:
    current = series.at(index)
    previous = _previous(series, index)
    if current is None or previous is None:
        return False
    return previous >= value > current


def _trend_window(series: IndicatorSeries, index: int, lookback: int) -> list[float] | None:
    """The last ``lookback`` present values up to ``index``, or None."""
    if series.at(index) is None:
        return None
    present = series.present_values(index)
    if len(present) < lookback:
        return None
    return present[-lookback:]


def _increasing(series: IndicatorSeries, index: int, value: float, value2, lookback) -> bool:
    window = _trend_window(series, index, lookback)
    if window is None:
        return False
    return all(a <= b for a, b in zip(window, window[1:]))


def _decreasing(series: IndicatorSeries, index: int, value: float, value2, lookback) -> bool:
    window = _trend_window(series, index, lookback)
    if window is None:
        return False
    return all(a >= b for a, b in zip(window, window[1:]))


_PREDICATES: Mapping[ScreenerCondition, _Predicate] = MappingProxyType({
    ScreenerCondition.ABOVE: _above,
    ScreenerCondition.BELOW: _below,
    ScreenerCondition.BETWEEN: _between,
    ScreenerCondition.CROSSES_ABOVE: _crosses_above,
    ScreenerCondition.CROSSES_BELOW: _crosses_below,
    ScreenerCondition.INCREASING: _increasing,
    ScreenerCondition.DECREASING: _decreasing,
})


def evaluate(
    series: IndicatorSeries,
    index: int,
    condition: ScreenerCondition,
    value: float | None = None,
    value2: float | None = None,
    *,
    lookback: int = DEFAULT_TREND_LOOKBACK,
    label: str | None = None,
) -> ConditionResult:
    """
    Evaluate a condition on a series at a bar index.

    Args:
        series: Bar-aligned indicator series
        index: Bar index to evaluate (0-based)
        condition: Condition to apply
        value: Threshold (lower bound for ``between``), not used by
            increasing/decreasing
        value2: Upper bound, required for ``between``
        lookback: Number of present values checked by increasing/decreasing
        label: Indicator label used in the explanation, defaults to the
            series name

    Returns:
        ConditionResult; absent operands never match

    Raises:
        FilterValidationError: If the thresholds are invalid for the condition
        EngineInvariantError: If the index lies outside the series
    """
    problems = filter_problems(condition, value, value2)
    if lookback < 2:
        problems.append(f"lookback must be >= 2, got {lookback}")
    if problems:
        raise FilterValidationError(problems)

    matched = _PREDICATES[condition](series, index, value, value2, lookback)
    explanation = describe_rule(label or series.name, condition, value, value2)
    return ConditionResult(matched=matched, explanation=explanation)
