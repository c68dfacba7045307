"""Screener: filter evaluation over a universe of securities."""

from ta_core.screener.presets import (
    PRESETS,
    apply_preset,
    create_filter,
    get_preset,
    list_presets,
)
from ta_core.screener.screener import (
    SNAPSHOT_INDICATORS,
    Screener,
    sort_results,
    validate_filters,
)
from ta_core.screener.universe import (
    CancellationToken,
    PriceFetcher,
    Progress,
    load_universe,
)

__all__ = [
    "PRESETS",
    "SNAPSHOT_INDICATORS",
    "CancellationToken",
    "PriceFetcher",
    "Progress",
    "Screener",
    "apply_preset",
    "create_filter",
    "get_preset",
    "list_presets",
    "load_universe",
    "sort_results",
    "validate_filters",
]
