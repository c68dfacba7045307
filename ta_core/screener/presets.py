"""Built-in screener presets.

Usage:
    filters = apply_preset("oversold")
    results = Screener().run(universe, filters)
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from pydantic import ValidationError

from ta_core.errors import FilterValidationError, problems_from
from ta_core.models.screener import (
    FilterTemplate,
    ScreenerCondition,
    ScreenerFilter,
    ScreenerIndicator,
    ScreenerPreset,
)

_I = ScreenerIndicator
_C = ScreenerCondition


def _rule(
    indicator: ScreenerIndicator,
    condition: ScreenerCondition,
    value: float | None = None,
    value2: float | None = None,
) -> FilterTemplate:
    return FilterTemplate(indicator=indicator, condition=condition, value=value, value2=value2)


_PRESET_LIST = (
    ScreenerPreset(
        id="oversold",
        name="Oversold",
        description="RSI below 30, potential buying opportunity",
        filters=(_rule(_I.RSI, _C.BELOW, 30),),
    ),
    ScreenerPreset(
        id="overbought",
        name="Overbought",
        description="RSI above 70, potential selling opportunity",
        filters=(_rule(_I.RSI, _C.ABOVE, 70),),
    ),
    ScreenerPreset(
        id="strong_uptrend",
        name="Strong uptrend",
        description="ADX above 25 with +DI above -DI",
        filters=(
            _rule(_I.ADX, _C.ABOVE, 25),
            _rule(_I.DI_SPREAD, _C.ABOVE, 0),
        ),
    ),
    ScreenerPreset(
        id="strong_downtrend",
        name="Strong downtrend",
        description="ADX above 25 with -DI above +DI",
        filters=(
            _rule(_I.ADX, _C.ABOVE, 25),
            _rule(_I.DI_SPREAD, _C.BELOW, 0),
        ),
    ),
    ScreenerPreset(
        id="bollinger_squeeze",
        name="Bollinger squeeze",
        description="Low volatility, breakout expected",
        filters=(_rule(_I.BOLLINGER_WIDTH, _C.BELOW, 5),),
    ),
    ScreenerPreset(
        id="golden_cross_setup",
        name="Golden cross setup",
        description="SMA 50 within 2% of SMA 200",
        filters=(_rule(_I.SMA_50_200_GAP, _C.BETWEEN, -2, 2),),
    ),
    ScreenerPreset(
        id="volume_spike",
        name="Volume spike",
        description="Volume above 200% of its average",
        filters=(_rule(_I.VOLUME, _C.ABOVE, 200),),
    ),
    ScreenerPreset(
        id="momentum_bullish",
        name="Bullish momentum",
        description="Positive MACD histogram that is rising",
        filters=(
            _rule(_I.MACD_HISTOGRAM, _C.ABOVE, 0),
            _rule(_I.MACD_HISTOGRAM, _C.INCREASING),
        ),
    ),
    ScreenerPreset(
        id="stochastic_oversold",
        name="Stochastic oversold",
        description="%K and %D below 20",
        filters=(
            _rule(_I.STOCHASTIC_K, _C.BELOW, 20),
            _rule(_I.STOCHASTIC_D, _C.BELOW, 20),
        ),
    ),
    ScreenerPreset(
        id="breakout_candidate",
        name="Breakout candidate",
        description="Price near the upper Bollinger band on high volume",
        filters=(
            _rule(_I.BOLLINGER_UPPER, _C.ABOVE, 95),
            _rule(_I.VOLUME, _C.ABOVE, 150),
        ),
    ),
)

PRESETS: Mapping[str, ScreenerPreset] = MappingProxyType(
    {preset.id: preset for preset in _PRESET_LIST}
)


def list_presets() -> list[ScreenerPreset]:
    """All presets in display order."""
    return list(_PRESET_LIST)


def get_preset(preset_id: str) -> ScreenerPreset:
    """
    Look up a preset by id.

    Raises:
        FilterValidationError: If no preset has the given id.
    """
    preset = PRESETS.get(preset_id)
    if preset is None:
        available = ", ".join(PRESETS)
        raise FilterValidationError(
            f"Unknown preset '{preset_id}'. Available: {available}"
        )
    return preset


def apply_preset(preset_id: str) -> list[ScreenerFilter]:
    """
    Build a fresh, enabled filter list from a preset.

    The returned list is meant to replace the caller's current filter set.
    Filter ids are ``<preset id>-<position>``.
    """
    preset = get_preset(preset_id)
    return [
        ScreenerFilter(
            id=f"{preset.id}-{i}",
            indicator=template.indicator,
            condition=template.condition,
            value=template.value,
            value2=template.value2,
            enabled=True,
        )
        for i, template in enumerate(preset.filters)
    ]


def create_filter(
    indicator: ScreenerIndicator | str,
    condition: ScreenerCondition | str,
    value: float | None = None,
    value2: float | None = None,
) -> ScreenerFilter:
    """
    Build a validated, enabled filter with a generated id.

    Raises:
        FilterValidationError: If the indicator, condition or thresholds
            are invalid.
    """
    try:
        return ScreenerFilter(
            indicator=indicator, condition=condition, value=value, value2=value2
        )
    except ValidationError as e:
        raise FilterValidationError(problems_from(e)) from e
