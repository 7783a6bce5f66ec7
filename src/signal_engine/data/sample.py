"""Seeded random-walk candles for demonstrations without real history.

Generate one candle per weekday in a date range using a random walk
with a slight upward drift. A fixed seed reproduces the same series,
which keeps demo runs and tests deterministic.
"""

import logging
import random
from decimal import Decimal

from signal_engine.core.models import Candle, Timeframe
from signal_engine.core.timestamps import SECONDS_PER_DAY, day_start, format_date

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_SATURDAY = 5
MIN_SPAN_DAYS = 365
_FLOOR_PRICE = 10.0


def _weekday(ts: int) -> int:
    """Return Monday=0 .. Sunday=6 for a Unix timestamp (1970-01-01 was a Thursday)."""
    return (ts // SECONDS_PER_DAY + 3) % 7


def generate_candles(start_ts: int, end_ts: int, seed: int | None = None) -> list[Candle]:
    """Generate daily random-walk candles for each weekday in ``[start_ts, end_ts]``.

    Ranges shorter than ``MIN_SPAN_DAYS`` are extended so that indicator
    warm-ups always fit. Prices never fall below 10.

    Args:
        start_ts: Start Unix timestamp in seconds.
        end_ts: End Unix timestamp in seconds (inclusive).
        seed: Random seed; ``None`` gives a different series each call.

    Returns:
        Daily candles at midnight UTC, sorted ascending.

    """
    rng = random.Random(seed)  # noqa: S311
    start = day_start(start_ts)
    end = max(day_start(end_ts), start + MIN_SPAN_DAYS * SECONDS_PER_DAY)
    if end != day_start(end_ts):
        logger.info(
            "Date range too short, extending sample data to %s", format_date(end)
        )

    base = 100 + rng.random() * 100
    candles: list[Candle] = []
    for ts in range(start, end + 1, SECONDS_PER_DAY):
        if _weekday(ts) >= _SATURDAY:
            continue
        base = max(_FLOOR_PRICE, base + (rng.random() - 0.48) * 5)
        open_ = base
        close = base + (rng.random() - 0.5) * 3
        high = max(open_, close) + rng.random() * 2
        low = min(open_, close) - rng.random() * 2
        volume = 10_000 + rng.randrange(50_000)
        candles.append(
            Candle(
                timestamp=ts,
                open=Decimal(str(open_)).quantize(_CENT),
                high=Decimal(str(high)).quantize(_CENT),
                low=Decimal(str(low)).quantize(_CENT),
                close=Decimal(str(close)).quantize(_CENT),
                volume=Decimal(volume),
            )
        )
        base = close
    return candles


class SampleCandleProvider:
    """``CandleProvider`` serving seeded random-walk daily candles for any symbol."""

    def __init__(self, seed: int | None = 42) -> None:
        """Initialize with the random seed used for every request."""
        self._seed = seed

    async def get_candles(
        self,
        symbol: str,
        timeframe: Timeframe,
        start_ts: int,
        end_ts: int,
    ) -> list[Candle]:
        """Return generated daily candles; ``timeframe`` is always treated as daily."""
        if timeframe != Timeframe.DAILY:
            logger.warning("Sample data is daily only; ignoring %s timeframe", timeframe.value)
        candles = generate_candles(start_ts, end_ts, self._seed)
        logger.info("Generated %d sample candles for %s", len(candles), symbol)
        return candles
