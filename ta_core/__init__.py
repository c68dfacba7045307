"""Technical-analysis engine: OHLC normalization, indicators, screening,
signal detection and candlestick pattern matching.

This package contains pure computation with no I/O dependencies
(no database, network or UI access). Price history is supplied by the
caller; results are plain models consumed by presentation layers.
"""

__version__ = "0.1.0"
