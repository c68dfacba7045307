"""OHLC normalizer: turns raw price observations into OHLC bars.

Price feeds often deliver a single value per day. Observations are grouped
into bars by date proximity:

- The typical spacing is the median positive gap (in days) between
  consecutive distinct observation dates.
- The grouping window is ``(tolerance - 1) x typical spacing``.
- An observation joins the current bar while its distance from the bar's
  first observation does not exceed the window. Observations sharing a date
  always share a bar.

With the default tolerance of 1.5 a daily feed yields one bar per day while
same-day duplicates collapse into one bar; a tolerance of 2.0 pairs up
consecutive days.
"""

from __future__ import annotations

import logging
import statistics
from typing import Sequence

from ta_core.models.ohlc import OHLCBar, PriceObservation

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1.5


def _grouping_window(ordered: Sequence[PriceObservation], tolerance: float) -> float:
    """Grouping window in days for date-sorted observations."""
    gaps = [
        (curr.date - prev.date).days
        for prev, curr in zip(ordered, ordered[1:])
        if curr.date > prev.date
    ]
    if not gaps:
        return 0.0
    return (tolerance - 1.0) * statistics.median(gaps)


def _to_bar(group: Sequence[PriceObservation]) -> OHLCBar:
    prices = [obs.price for obs in group]
    volumes = [obs.volume for obs in group]
    volume = None if any(v is None for v in volumes) else float(sum(volumes))
    return OHLCBar(
        time=group[0].date,
        open=prices[0],
        high=max(prices),
        low=min(prices),
        close=prices[-1],
        volume=volume,
    )


def normalize_observations(
    observations: Sequence[PriceObservation],
    tolerance: float = DEFAULT_TOLERANCE,
) -> list[OHLCBar]:
    """
    Group raw observations into OHLC bars.

    Args:
        observations: Raw samples in any order
        tolerance: Aggregation tolerance factor (>= 1)

    Returns:
        Bars ordered ascending by time with unique times. Empty when fewer
        than two observations are supplied.

    Raises:
        ValueError: If tolerance is below 1
    """
    if tolerance < 1.0:
        raise ValueError(f"tolerance must be >= 1, got {tolerance}")
    if len(observations) < 2:
        return []

    # sorted() is stable, so same-date observations keep caller order
    ordered = sorted(observations, key=lambda obs: obs.date)
    window = _grouping_window(ordered, tolerance)

    groups: list[list[PriceObservation]] = [[ordered[0]]]
    for obs in ordered[1:]:
        elapsed = (obs.date - groups[-1][0].date).days
        if elapsed == 0 or elapsed <= window:
            groups[-1].append(obs)
        else:
            groups.append([obs])

    bars = [_to_bar(group) for group in groups]
    logger.debug(
        f"Normalized {len(observations)} observations into {len(bars)} bars "
        f"(window={window:.2f} days)"
    )
    return bars


def heikin_ashi(bars: Sequence[OHLCBar]) -> list[OHLCBar]:
    """
    Convert bars to Heikin-Ashi bars.

    HA close = (O + H + L + C) / 4
    HA open  = (prev HA open + prev HA close) / 2, first bar (O + C) / 2
    HA high  = max(H, HA open, HA close)
    HA low   = min(L, HA open, HA close)
    """
    result: list[OHLCBar] = []
    for i, bar in enumerate(bars):
        ha_close = (bar.open + bar.high + bar.low + bar.close) / 4
        if i == 0:
            ha_open = (bar.open + bar.close) / 2
        else:
            ha_open = (result[-1].open + result[-1].close) / 2
        result.append(
            OHLCBar(
                time=bar.time,
                open=ha_open,
                high=max(bar.high, ha_open, ha_close),
                low=min(bar.low, ha_open, ha_close),
                close=ha_close,
                volume=bar.volume,
            )
        )
    return result
