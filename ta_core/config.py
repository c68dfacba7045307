"""Engine configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Engine-wide defaults loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TA_CORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OHLC aggregation
    ohlc_tolerance: float = Field(default=1.5, ge=1.0)

    # Minimum history per consumer
    min_screening_bars: int = Field(default=20, ge=2)
    min_signal_bars: int = Field(default=30, ge=2)
    min_pattern_bars: int = Field(default=10, ge=3)

    # Universe loading
    max_concurrent_fetches: int = Field(default=8, ge=1)

    # Number of present values checked by increasing/decreasing conditions
    trend_lookback: int = Field(default=3, ge=2)


def load_settings(**overrides) -> EngineSettings:
    """Build settings from the environment, applying keyword overrides.

    A new instance is returned on every call.
    """
    return EngineSettings(**overrides)
