"""Loads a screening universe from a caller-supplied price-history source."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from ta_core.config import EngineSettings, load_settings
from ta_core.errors import ScreeningCancelled
from ta_core.models.ohlc import PriceObservation, SecurityData, SecurityDescriptor

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a batch job.

    Safe to set from any thread while a scan runs in another.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScreeningCancelled("screening was cancelled")


@dataclass(frozen=True, slots=True)
class Progress:
    completed: int
    total: int

    @property
    def fraction(self) -> float:
        return 1.0 if self.total == 0 else self.completed / self.total


# Type aliases for injected callbacks
PriceFetcher = Callable[[SecurityDescriptor], Awaitable[Sequence[PriceObservation]]]
ProgressCallback = Callable[[Progress], None]


async def load_universe(
    descriptors: Sequence[SecurityDescriptor],
    fetch: PriceFetcher,
    *,
    tolerance: float | None = None,
    min_bars: int | None = None,
    max_concurrent: int | None = None,
    settings: EngineSettings | None = None,
    on_progress: ProgressCallback | None = None,
    cancel: CancellationToken | None = None,
) -> list[SecurityData]:
    """
    Fetch and normalize price histories for a list of securities.

    Args:
        descriptors: Securities to load
        fetch: Async price-history source, called once per security
        tolerance: OHLC aggregation tolerance
        min_bars: Securities with fewer bars are dropped
        max_concurrent: Maximum number of fetches in flight
        settings: Source of defaults for the three options above
            (``ohlc_tolerance``, ``min_screening_bars``,
            ``max_concurrent_fetches``); read from the environment when
            omitted
        on_progress: Called after every finished fetch
        cancel: Token checked before each fetch starts

    Returns:
        Loaded securities in descriptor order. Failed fetches and short
        histories are logged and dropped.

    Raises:
        ScreeningCancelled: If the token fired while loading
    """
    settings = settings or load_settings()
    if tolerance is None:
        tolerance = settings.ohlc_tolerance
    if min_bars is None:
        min_bars = settings.min_screening_bars
    if max_concurrent is None:
        max_concurrent = settings.max_concurrent_fetches
    if max_concurrent < 1:
        raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")

    total = len(descriptors)
    semaphore = asyncio.Semaphore(max_concurrent)
    completed = 0

    async def _load_one(descriptor: SecurityDescriptor) -> SecurityData | None:
        nonlocal completed
        async with semaphore:
            if cancel is not None and cancel.cancelled:
                return None
            try:
                observations = await fetch(descriptor)
                return SecurityData.from_observations(descriptor, observations, tolerance)
            finally:
                completed += 1
                if on_progress is not None:
                    on_progress(Progress(completed=completed, total=total))

    results = await asyncio.gather(
        *[_load_one(d) for d in descriptors], return_exceptions=True
    )

    if cancel is not None:
        cancel.raise_if_cancelled()

    universe: list[SecurityData] = []
    failed = 0
    for descriptor, result in zip(descriptors, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            failed += 1
            logger.warning(
                f"Price fetch failed for {descriptor.name} "
                f"({descriptor.security_id}): {result}"
            )
            continue
        if result is None:
            continue
        if len(result) < min_bars:
            logger.warning(
                f"Dropping {descriptor.name}: {len(result)} bars, need {min_bars}"
            )
            continue
        universe.append(result)

    logger.info(f"Loaded {len(universe)}/{total} securities ({failed} failed)")
    return universe
