"""Data models shared by all engine components."""

from ta_core.models.config import (
    DEFAULT_RELIABILITY,
    IndicatorConfig,
    PatternConfig,
    ScreenerConfig,
    SignalDetectionConfig,
)
from ta_core.models.ohlc import (
    OHLCBar,
    PriceObservation,
    SecurityData,
    SecurityDescriptor,
)
from ta_core.models.pattern import (
    CandlestickPattern,
    OutcomeStatus,
    PatternMatch,
    PatternOutcome,
    PatternReliability,
    PatternStatistics,
)
from ta_core.models.screener import (
    CONDITION_LABELS,
    INDICATOR_LABELS,
    FilterTemplate,
    ScreenerCondition,
    ScreenerFilter,
    ScreenerIndicator,
    ScreenerPreset,
    ScreenerResult,
    describe_rule,
)
from ta_core.models.series import IndicatorSeries
from ta_core.models.signal import (
    Divergence,
    SignalDirection,
    SignalStrength,
    SignalType,
    TechnicalSignal,
)

__all__ = [
    "CONDITION_LABELS",
    "DEFAULT_RELIABILITY",
    "INDICATOR_LABELS",
    "CandlestickPattern",
    "Divergence",
    "FilterTemplate",
    "IndicatorConfig",
    "IndicatorSeries",
    "OHLCBar",
    "OutcomeStatus",
    "PatternConfig",
    "PatternMatch",
    "PatternOutcome",
    "PatternReliability",
    "PatternStatistics",
    "PriceObservation",
    "ScreenerCondition",
    "ScreenerConfig",
    "ScreenerFilter",
    "ScreenerIndicator",
    "ScreenerPreset",
    "ScreenerResult",
    "SecurityData",
    "SecurityDescriptor",
    "SignalDetectionConfig",
    "SignalDirection",
    "SignalStrength",
    "SignalType",
    "TechnicalSignal",
    "describe_rule",
]
