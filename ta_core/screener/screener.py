"""Screener orchestrator.

Applies a set of filters to every security of a universe and returns the
securities that satisfy all of them at their most recent bar.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Sequence

from pydantic import ValidationError

from ta_core.conditions import evaluate
from ta_core.errors import EngineInvariantError, FilterValidationError, problems_from
from ta_core.indicators.calculator import IndicatorCalculator
from ta_core.models.config import ScreenerConfig
from ta_core.models.ohlc import SecurityData
from ta_core.models.screener import (
    INDICATOR_LABELS,
    ScreenerFilter,
    ScreenerIndicator,
    ScreenerResult,
)
from ta_core.models.series import IndicatorSeries
from ta_core.screener.universe import CancellationToken

logger = logging.getLogger(__name__)

# Always reported in ScreenerResult.current_values
SNAPSHOT_INDICATORS = (
    ScreenerIndicator.PRICE,
    ScreenerIndicator.RSI,
    ScreenerIndicator.MACD,
    ScreenerIndicator.ADX,
    ScreenerIndicator.VOLUME,
    ScreenerIndicator.CHANGE_1D,
    ScreenerIndicator.CHANGE_5D,
    ScreenerIndicator.CHANGE_20D,
)

FilterInput = ScreenerFilter | Mapping[str, Any]


def validate_filters(filters: Iterable[FilterInput]) -> list[ScreenerFilter]:
    """
    Validate a complete filter set.

    Args:
        filters: ScreenerFilter models or plain mappings with the same fields

    Returns:
        The filters as models, in input order

    Raises:
        FilterValidationError: Listing every problem found in the set
    """
    problems: list[str] = []
    validated: list[ScreenerFilter] = []
    seen_ids: set[str] = set()

    for position, raw in enumerate(filters):
        prefix = f"filter {position}"
        if isinstance(raw, ScreenerFilter):
            screener_filter = raw
        elif isinstance(raw, Mapping):
            try:
                screener_filter = ScreenerFilter.model_validate(dict(raw))
            except ValidationError as e:
                problems.extend(problems_from(e, prefix))
                continue
        else:
            problems.append(
                f"{prefix}: expected a ScreenerFilter or mapping, got {type(raw).__name__}"
            )
            continue

        if screener_filter.id in seen_ids:
            problems.append(f"{prefix}: duplicate filter id '{screener_filter.id}'")
        seen_ids.add(screener_filter.id)
        validated.append(screener_filter)

    if problems:
        raise FilterValidationError(problems)
    return validated


class Screener:
    """Runs filter sets over a universe of securities.

    Holds only configuration; concurrent ``run`` calls share nothing.
    """

    def __init__(self, config: ScreenerConfig | None = None):
        self.config = config or ScreenerConfig()
        self._calculator = IndicatorCalculator(self.config.indicators)

    def run(
        self,
        universe: Iterable[SecurityData],
        filters: Iterable[FilterInput],
        cancel: CancellationToken | None = None,
    ) -> list[ScreenerResult]:
        """
        Screen a universe.

        Args:
            universe: Securities with their bar histories
            filters: Filter set; disabled filters are ignored
            cancel: Optional token, checked between securities

        Returns:
            Matching securities in universe order. Empty when no filter is
            enabled.

        Raises:
            FilterValidationError: If the filter set is invalid (raised before
                any computation)
            ScreeningCancelled: If the token fired
        """
        active = [f for f in validate_filters(filters) if f.enabled]
        if not active:
            return []

        needed = list(dict.fromkeys([*SNAPSHOT_INDICATORS, *(f.indicator for f in active)]))

        results: list[ScreenerResult] = []
        screened = 0
        skipped = 0
        for security in universe:
            if cancel is not None:
                cancel.raise_if_cancelled()

            if len(security.bars) < self.config.min_bars:
                logger.debug(
                    f"Skipping {security.name}: {len(security.bars)} bars, "
                    f"need {self.config.min_bars}"
                )
                skipped += 1
                continue

            screened += 1
            try:
                result = self.screen_security(security, active, needed)
            except EngineInvariantError:
                raise
            except (ArithmeticError, ValueError) as e:
                logger.warning(f"Screening failed for {security.name}: {e}")
                skipped += 1
                continue

            if result is not None:
                results.append(result)

        logger.info(
            f"Screened {screened} securities with {len(active)} filters: "
            f"{len(results)} matched, {skipped} skipped"
        )
        return results

    def screen_security(
        self,
        security: SecurityData,
        filters: Sequence[ScreenerFilter],
        indicators: Sequence[ScreenerIndicator] | None = None,
    ) -> ScreenerResult | None:
        """
        Evaluate filters against one security at its latest bar.

        Returns:
            A result when every filter matches, otherwise None
        """
        if indicators is None:
            indicators = list(dict.fromkeys([*SNAPSHOT_INDICATORS, *(f.indicator for f in filters)]))

        series = self._calculator.calculate(security.bars, indicators)
        index = len(security.bars) - 1

        matched: list[str] = []
        for screener_filter in filters:
            outcome = evaluate(
                series[screener_filter.indicator],
                index,
                screener_filter.condition,
                screener_filter.value,
                screener_filter.value2,
                lookback=self.config.trend_lookback,
                label=INDICATOR_LABELS[screener_filter.indicator],
            )
            if not outcome.matched:
                return None
            matched.append(outcome.explanation)

        return self._build_result(security, series, matched)

    @staticmethod
    def _build_result(
        security: SecurityData,
        series: Mapping[ScreenerIndicator, IndicatorSeries],
        matched: list[str],
    ) -> ScreenerResult:
        current_values = {indicator.value: s.latest for indicator, s in series.items()}
        return ScreenerResult(
            **security.descriptor.model_dump(),
            last_price=security.bars[-1].close,
            change_1d=current_values.get(ScreenerIndicator.CHANGE_1D.value),
            change_5d=current_values.get(ScreenerIndicator.CHANGE_5D.value),
            change_20d=current_values.get(ScreenerIndicator.CHANGE_20D.value),
            current_values=current_values,
            matched_filters=matched,
        )


def _abs_or_none(value: float | None) -> float | None:
    return None if value is None else abs(value)


_SORT_KEYS: Mapping[str, Callable[[ScreenerResult], Any]] = MappingProxyType({
    "abs_change_1d": lambda r: _abs_or_none(r.change_1d),
    "change_1d": lambda r: r.change_1d,
    "change_5d": lambda r: r.change_5d,
    "change_20d": lambda r: r.change_20d,
    "last_price": lambda r: r.last_price,
    "name": lambda r: r.name.casefold(),
})


def sort_results(
    results: Iterable[ScreenerResult],
    by: str = "abs_change_1d",
    descending: bool | None = None,
) -> list[ScreenerResult]:
    """
    Sort screener results for display.

    Args:
        results: Screener output
        by: One of abs_change_1d, change_1d, change_5d, change_20d,
            last_price, name
        descending: Defaults to True for numeric keys, False for name

    Returns:
        New sorted list; results without a value for the key come last
    """
    key = _SORT_KEYS.get(by)
    if key is None:
        available = ", ".join(_SORT_KEYS)
        raise ValueError(f"Unknown sort key '{by}'. Available: {available}")
    if descending is None:
        descending = by != "name"

    items = list(results)
    present = [r for r in items if key(r) is not None]
    missing = [r for r in items if key(r) is None]
    return sorted(present, key=key, reverse=descending) + missing
