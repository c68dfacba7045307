"""Pattern outcome tracking.

Checks whether a detected pattern's predicted direction played out over the
following bars, and aggregates success rates per pattern type.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from ta_core.models.ohlc import OHLCBar
from ta_core.models.pattern import (
    CandlestickPattern,
    OutcomeStatus,
    PatternMatch,
    PatternOutcome,
    PatternStatistics,
)
from ta_core.models.signal import SignalDirection

DEFAULT_HORIZONS = (5, 10)
DEFAULT_THRESHOLD_PCT = 1.0


def evaluate_outcome(
    bars: Sequence[OHLCBar],
    match: PatternMatch,
    horizons: Sequence[int] = DEFAULT_HORIZONS,
    threshold_pct: float = DEFAULT_THRESHOLD_PCT,
) -> PatternOutcome:
    """
    Measure price development after a pattern.

    The reference price is the close of the pattern's last bar. For each
    horizon N the close N bars later is recorded, or None when the history
    ends earlier. The first horizon decides the status:

    - bullish: success if the change exceeds ``threshold_pct``
    - bearish: success if the change is below ``-threshold_pct``
    - neutral patterns carry no prediction and get no status

    Args:
        bars: The bar history the match was found in
        match: Pattern match to evaluate
        horizons: Bar offsets after the pattern, first one decides the status
        threshold_pct: Minimum move in percent for a success

    Returns:
        PatternOutcome; PENDING while the first horizon lies in the future
    """
    if not horizons:
        raise ValueError("at least one horizon is required")
    if match.end_index >= len(bars):
        raise ValueError(
            f"match ends at bar {match.end_index} but only {len(bars)} bars were given"
        )

    detected = bars[match.end_index]
    base = detected.close

    price_after: dict[int, float | None] = {}
    change_pct: dict[int, float | None] = {}
    for horizon in horizons:
        target = match.end_index + horizon
        if target < len(bars):
            price = bars[target].close
            price_after[horizon] = price
            change_pct[horizon] = (price - base) / base * 100 if base != 0 else None
        else:
            price_after[horizon] = None
            change_pct[horizon] = None

    status: OutcomeStatus | None = None
    if match.direction != SignalDirection.NEUTRAL:
        decisive = change_pct[horizons[0]]
        if decisive is None:
            status = OutcomeStatus.PENDING
        elif match.direction == SignalDirection.BULLISH:
            status = OutcomeStatus.SUCCESS if decisive > threshold_pct else OutcomeStatus.FAILURE
        else:
            status = OutcomeStatus.SUCCESS if decisive < -threshold_pct else OutcomeStatus.FAILURE

    return PatternOutcome(
        pattern=match.pattern,
        direction=match.direction,
        detected_at=detected.time,
        price_at_detection=base,
        price_after=price_after,
        change_pct=change_pct,
        status=status,
    )


def evaluate_outcomes(
    bars: Sequence[OHLCBar],
    matches: Iterable[PatternMatch],
    horizons: Sequence[int] = DEFAULT_HORIZONS,
    threshold_pct: float = DEFAULT_THRESHOLD_PCT,
) -> list[PatternOutcome]:
    return [evaluate_outcome(bars, m, horizons, threshold_pct) for m in matches]


def _mean(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


def summarize_outcomes(outcomes: Iterable[PatternOutcome]) -> list[PatternStatistics]:
    """
    Aggregate outcomes per pattern type.

    The success rate is successes / (successes + failures) in percent, 0 when
    nothing was evaluated yet. Average gain and loss use the change at the
    decisive (first) horizon.

    Returns:
        Statistics ordered by total count descending, then pattern name
    """
    grouped: dict[CandlestickPattern, list[PatternOutcome]] = defaultdict(list)
    for outcome in outcomes:
        grouped[outcome.pattern].append(outcome)

    stats = []
    for pattern, items in grouped.items():
        gains: list[float] = []
        losses: list[float] = []
        pending = 0
        for outcome in items:
            decisive = next(iter(outcome.change_pct.values()), None)
            if outcome.status == OutcomeStatus.SUCCESS and decisive is not None:
                gains.append(decisive)
            elif outcome.status == OutcomeStatus.FAILURE and decisive is not None:
                losses.append(decisive)
            elif outcome.status == OutcomeStatus.PENDING:
                pending += 1

        evaluated = len(gains) + len(losses)
        stats.append(
            PatternStatistics(
                pattern=pattern,
                total_count=len(items),
                success_count=len(gains),
                failure_count=len(losses),
                pending_count=pending,
                success_rate=len(gains) / evaluated * 100 if evaluated else 0.0,
                avg_gain_on_success=_mean(gains),
                avg_loss_on_failure=_mean(losses),
            )
        )

    stats.sort(key=lambda s: (-s.total_count, s.pattern.value))
    return stats
