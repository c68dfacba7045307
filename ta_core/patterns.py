"""Candlestick pattern matcher.

Slides 1, 2 and 3 bar windows over a bar history and tests each window
against a table of canonical pattern definitions. Sizes are judged against
the average body of the bars preceding the window's last bar; reversal
patterns additionally require the trend leading into the window's first bar.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from ta_core.models.config import PatternConfig
from ta_core.models.ohlc import OHLCBar, SecurityData
from ta_core.models.pattern import CandlestickPattern, PatternMatch
from ta_core.models.signal import SignalDirection

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WindowContext:
    """Reference measures for one window."""

    avg_body: float
    downtrend: bool
    uptrend: bool
    config: PatternConfig


Detector = Callable[[Sequence[OHLCBar], WindowContext], bool]


@dataclass(frozen=True, slots=True)
class PatternDefinition:
    pattern: CandlestickPattern
    name: str
    width: int
    direction: SignalDirection
    description: str
    detector: Detector


def average_body(bars: Sequence[OHLCBar], index: int, period: int = 10) -> float:
    """Mean body size of the ``period`` bars before ``index``.

    Falls back to the body of ``index`` itself when no earlier bar exists.
    """
    window = bars[max(0, index - period) : index]
    if not window:
        return bars[index].body_size
    return sum(b.body_size for b in window) / len(window)


def is_downtrend(bars: Sequence[OHLCBar], index: int, period: int = 5, threshold_pct: float = 2.0) -> bool:
    """Close at ``index`` is more than ``threshold_pct`` below the close ``period`` bars earlier."""
    if index < period:
        return False
    return bars[index].close < bars[index - period].close * (1 - threshold_pct / 100)


def is_uptrend(bars: Sequence[OHLCBar], index: int, period: int = 5, threshold_pct: float = 2.0) -> bool:
    if index < period:
        return False
    return bars[index].close > bars[index - period].close * (1 + threshold_pct / 100)


# =============================================================================
# Single bar
# =============================================================================

def _doji(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    bar, cfg = w[0], ctx.config
    return (
        bar.body_size < ctx.avg_body * cfg.doji_body_ratio
        and bar.range_size > ctx.avg_body * cfg.doji_min_range_ratio
    )


def _long_lower_wick(bar: OHLCBar, ctx: WindowContext) -> bool:
    cfg = ctx.config
    body = bar.body_size
    return (
        bar.lower_wick >= body * cfg.long_wick_ratio
        and bar.upper_wick <= body * cfg.short_wick_ratio
        and body >= ctx.avg_body * cfg.min_body_ratio
    )


def _long_upper_wick(bar: OHLCBar, ctx: WindowContext) -> bool:
    cfg = ctx.config
    body = bar.body_size
    return (
        bar.upper_wick >= body * cfg.long_wick_ratio
        and bar.lower_wick <= body * cfg.short_wick_ratio
        and body >= ctx.avg_body * cfg.min_body_ratio
    )


def _hammer(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    return ctx.downtrend and _long_lower_wick(w[0], ctx)


def _inverted_hammer(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    return ctx.downtrend and _long_upper_wick(w[0], ctx)


def _hanging_man(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    return ctx.uptrend and _long_lower_wick(w[0], ctx)


def _shooting_star(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    return ctx.uptrend and _long_upper_wick(w[0], ctx)


def _spinning_top(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    bar = w[0]
    body = bar.body_size
    return (
        body < ctx.avg_body * ctx.config.spinning_top_body_ratio
        and bar.upper_wick > body
        and bar.lower_wick > body
    )


def _marubozu(bar: OHLCBar, ctx: WindowContext) -> bool:
    cfg = ctx.config
    max_wick = bar.range_size * cfg.marubozu_wick_ratio
    return (
        bar.body_size > ctx.avg_body * cfg.marubozu_body_ratio
        and bar.upper_wick < max_wick
        and bar.lower_wick < max_wick
    )


def _marubozu_bullish(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    return w[0].is_bullish and _marubozu(w[0], ctx)


def _marubozu_bearish(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    return w[0].is_bearish and _marubozu(w[0], ctx)


# =============================================================================
# Two bars
# =============================================================================

def _engulfing_bullish(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    prev, curr = w
    return (
        ctx.downtrend
        and prev.is_bearish
        and curr.is_bullish
        and curr.open < prev.close
        and curr.close > prev.open
    )


def _engulfing_bearish(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    prev, curr = w
    return (
        ctx.uptrend
        and prev.is_bullish
        and curr.is_bearish
        and curr.open > prev.close
        and curr.close < prev.open
    )


def _harami_bullish(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    prev, curr = w
    return (
        ctx.downtrend
        and prev.is_bearish
        and curr.is_bullish
        and curr.open > prev.close
        and curr.close < prev.open
        and curr.body_size < prev.body_size * ctx.config.harami_body_ratio
    )


def _harami_bearish(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    prev, curr = w
    return (
        ctx.uptrend
        and prev.is_bullish
        and curr.is_bearish
        and curr.open < prev.close
        and curr.close > prev.open
        and curr.body_size < prev.body_size * ctx.config.harami_body_ratio
    )


def _piercing_line(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    prev, curr = w
    return (
        ctx.downtrend
        and prev.is_bearish
        and curr.is_bullish
        and curr.open < prev.low
        and prev.midpoint < curr.close < prev.open
    )


def _dark_cloud_cover(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    prev, curr = w
    return (
        ctx.uptrend
        and prev.is_bullish
        and curr.is_bearish
        and curr.open > prev.high
        and prev.open < curr.close < prev.midpoint
    )


def _tweezer_top(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    prev, curr = w
    tolerance = prev.range_size * ctx.config.tweezer_tolerance_ratio
    return (
        ctx.uptrend
        and prev.is_bullish
        and curr.is_bearish
        and abs(prev.high - curr.high) < tolerance
    )


def _tweezer_bottom(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    prev, curr = w
    tolerance = prev.range_size * ctx.config.tweezer_tolerance_ratio
    return (
        ctx.downtrend
        and prev.is_bearish
        and curr.is_bullish
        and abs(prev.low - curr.low) < tolerance
    )


# =============================================================================
# Three bars
# =============================================================================

def _morning_star(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    first, second, third = w
    return (
        ctx.downtrend
        and first.is_bearish
        and first.body_size > ctx.avg_body
        and second.body_size < ctx.avg_body * ctx.config.star_body_ratio
        and second.close < first.close
        and third.is_bullish
        and third.body_size > ctx.avg_body
        and third.close > first.midpoint
    )


def _evening_star(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    first, second, third = w
    return (
        ctx.uptrend
        and first.is_bullish
        and first.body_size > ctx.avg_body
        and second.body_size < ctx.avg_body * ctx.config.star_body_ratio
        and second.close > first.close
        and third.is_bearish
        and third.body_size > ctx.avg_body
        and third.close < first.midpoint
    )


def _three_white_soldiers(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    cfg = ctx.config
    first, second, third = w
    return (
        all(b.is_bullish for b in w)
        and first.open < second.open < third.open
        and first.close < second.close < third.close
        and all(b.body_size > ctx.avg_body * cfg.soldier_body_ratio for b in w)
        and all(b.upper_wick < b.body_size * cfg.soldier_wick_ratio for b in w)
    )


def _three_black_crows(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    cfg = ctx.config
    first, second, third = w
    return (
        all(b.is_bearish for b in w)
        and first.open > second.open > third.open
        and first.close > second.close > third.close
        and all(b.body_size > ctx.avg_body * cfg.soldier_body_ratio for b in w)
        and all(b.lower_wick < b.body_size * cfg.soldier_wick_ratio for b in w)
    )


def _three_inside_up(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    first, _, third = w
    return (
        _harami_bullish(w[:2], ctx)
        and third.is_bullish
        and third.close > first.open
    )


def _three_inside_down(w: Sequence[OHLCBar], ctx: WindowContext) -> bool:
    first, _, third = w
    return (
        _harami_bearish(w[:2], ctx)
        and third.is_bearish
        and third.close < first.open
    )


_BULLISH = SignalDirection.BULLISH
_BEARISH = SignalDirection.BEARISH
_NEUTRAL = SignalDirection.NEUTRAL
_P = CandlestickPattern

PATTERN_DEFINITIONS: tuple[PatternDefinition, ...] = (
    PatternDefinition(_P.DOJI, "Doji", 1, _NEUTRAL, "Indecision, possible trend reversal", _doji),
    PatternDefinition(_P.HAMMER, "Hammer", 1, _BULLISH, "Bullish reversal after a downtrend", _hammer),
    PatternDefinition(_P.INVERTED_HAMMER, "Inverted Hammer", 1, _BULLISH, "Possible bullish reversal", _inverted_hammer),
    PatternDefinition(_P.HANGING_MAN, "Hanging Man", 1, _BEARISH, "Bearish warning after an uptrend", _hanging_man),
    PatternDefinition(_P.SHOOTING_STAR, "Shooting Star", 1, _BEARISH, "Bearish reversal after an uptrend", _shooting_star),
    PatternDefinition(_P.SPINNING_TOP, "Spinning Top", 1, _NEUTRAL, "Market indecision", _spinning_top),
    PatternDefinition(_P.MARUBOZU_BULLISH, "Bullish Marubozu", 1, _BULLISH, "Strong bullish candle without wicks", _marubozu_bullish),
    PatternDefinition(_P.MARUBOZU_BEARISH, "Bearish Marubozu", 1, _BEARISH, "Strong bearish candle without wicks", _marubozu_bearish),
    PatternDefinition(_P.ENGULFING_BULLISH, "Bullish Engulfing", 2, _BULLISH, "Strong bullish reversal", _engulfing_bullish),
    PatternDefinition(_P.ENGULFING_BEARISH, "Bearish Engulfing", 2, _BEARISH, "Strong bearish reversal", _engulfing_bearish),
    PatternDefinition(_P.HARAMI_BULLISH, "Bullish Harami", 2, _BULLISH, "Possible bullish reversal", _harami_bullish),
    PatternDefinition(_P.HARAMI_BEARISH, "Bearish Harami", 2, _BEARISH, "Possible bearish reversal", _harami_bearish),
    PatternDefinition(_P.PIERCING_LINE, "Piercing Line", 2, _BULLISH, "Bullish reversal", _piercing_line),
    PatternDefinition(_P.DARK_CLOUD_COVER, "Dark Cloud Cover", 2, _BEARISH, "Bearish reversal", _dark_cloud_cover),
    PatternDefinition(_P.TWEEZER_TOP, "Tweezer Top", 2, _BEARISH, "Bearish reversal at a matching high", _tweezer_top),
    PatternDefinition(_P.TWEEZER_BOTTOM, "Tweezer Bottom", 2, _BULLISH, "Bullish reversal at a matching low", _tweezer_bottom),
    PatternDefinition(_P.MORNING_STAR, "Morning Star", 3, _BULLISH, "Strong bullish reversal", _morning_star),
    PatternDefinition(_P.EVENING_STAR, "Evening Star", 3, _BEARISH, "Strong bearish reversal", _evening_star),
    PatternDefinition(_P.THREE_WHITE_SOLDIERS, "Three White Soldiers", 3, _BULLISH, "Strong bullish continuation", _three_white_soldiers),
    PatternDefinition(_P.THREE_BLACK_CROWS, "Three Black Crows", 3, _BEARISH, "Strong bearish continuation", _three_black_crows),
    PatternDefinition(_P.THREE_INSIDE_UP, "Three Inside Up", 3, _BULLISH, "Confirmed bullish reversal", _three_inside_up),
    PatternDefinition(_P.THREE_INSIDE_DOWN, "Three Inside Down", 3, _BEARISH, "Confirmed bearish reversal", _three_inside_down),
)


class PatternMatcher:
    """Finds candlestick patterns in a single security's bar history."""

    def __init__(self, config: PatternConfig | None = None):
        self.config = config or PatternConfig()

    def match(self, security: SecurityData | Sequence[OHLCBar]) -> list[PatternMatch]:
        """
        Scan the history for every pattern definition.

        Args:
            security: A security or its bars, ascending by time

        Returns:
            Matches ordered by end index, newest first. Different patterns
            on overlapping windows are all reported. Empty when fewer than
            ``min_bars`` bars are available.
        """
        bars = list(security.bars if isinstance(security, SecurityData) else security)
        if len(bars) < self.config.min_bars:
            return []

        start = 0
        if self.config.scan_window is not None:
            start = max(0, len(bars) - self.config.scan_window)

        matches: list[PatternMatch] = []
        for end in range(start, len(bars)):
            matches.extend(self._match_at(bars, end))

        # Stable sort keeps definition order within an end index
        matches.sort(key=lambda m: m.end_index, reverse=True)
        logger.debug(f"Matched {len(matches)} patterns over {len(bars)} bars")
        return matches

    def latest(self, security: SecurityData | Sequence[OHLCBar], count: int = 5) -> list[PatternMatch]:
        """The ``count`` most recent matches."""
        return self.match(security)[:count]

    def _context(self, bars: Sequence[OHLCBar], start: int, end: int) -> WindowContext:
        cfg = self.config
        return WindowContext(
            avg_body=average_body(bars, end, cfg.avg_body_period),
            downtrend=is_downtrend(bars, start, cfg.trend_period, cfg.trend_threshold_pct),
            uptrend=is_uptrend(bars, start, cfg.trend_period, cfg.trend_threshold_pct),
            config=cfg,
        )

    def _match_at(self, bars: Sequence[OHLCBar], end: int) -> list[PatternMatch]:
        contexts: dict[int, WindowContext] = {}
        found: list[PatternMatch] = []
        for definition in PATTERN_DEFINITIONS:
            begin = end - definition.width + 1
            if begin < 0:
                continue
            if begin not in contexts:
                contexts[begin] = self._context(bars, begin, end)
            if not definition.detector(bars[begin : end + 1], contexts[begin]):
                continue
            found.append(
                PatternMatch(
                    pattern=definition.pattern,
                    name=definition.name,
                    direction=definition.direction,
                    reliability=self.config.reliability[definition.pattern],
                    start_index=begin,
                    end_index=end,
                    description=definition.description,
                )
            )
        return found
