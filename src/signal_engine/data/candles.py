"""Candle series preparation: ordering, de-duplication, aggregation, gaps.

Providers hand the engine series that are sorted ascending with unique
timestamps. These helpers get raw rows into that shape, roll hourly bars
up to daily ones, and report large gaps in the data.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from signal_engine.core.models import ZERO, Candle
from signal_engine.core.timestamps import day_start, days_between, format_date


@dataclass(frozen=True)
class Gap:
    """A stretch between two consecutive candles longer than the tolerance."""

    start_ts: int
    end_ts: int

    @property
    def days(self) -> Decimal:
        """Return the gap length in days."""
        return days_between(self.start_ts, self.end_ts)

    def __str__(self) -> str:
        """Render as ``YYYY-MM-DD -> YYYY-MM-DD (N days)``."""
        return f"{format_date(self.start_ts)} -> {format_date(self.end_ts)} ({self.days:.0f} days)"


def normalize_candles(candles: Iterable[Candle]) -> list[Candle]:
    """Sort candles ascending and drop duplicate timestamps, keeping the last seen."""
    by_ts: dict[int, Candle] = {}
    for candle in candles:
        by_ts[candle.timestamp] = candle
    return [by_ts[ts] for ts in sorted(by_ts)]


def aggregate_to_daily(candles: Sequence[Candle]) -> list[Candle]:
    """Roll intraday candles up into one candle per UTC day.

    The daily candle takes the first open, the highest high, the lowest
    low, the last close, and the summed volume. Its timestamp is midnight
    UTC of that day. Input must already be normalized.
    """
    days: dict[int, list[Candle]] = {}
    for candle in candles:
        days.setdefault(day_start(candle.timestamp), []).append(candle)

    return [
        Candle(
            timestamp=ts,
            open=bars[0].open,
            high=max(c.high for c in bars),
            low=min(c.low for c in bars),
            close=bars[-1].close,
            volume=sum((c.volume for c in bars), ZERO),
        )
        for ts, bars in sorted(days.items())
    ]


def find_gaps(candles: Sequence[Candle], tolerance_days: int = 30) -> list[Gap]:
    """Return every gap between consecutive candles longer than ``tolerance_days``."""
    limit = Decimal(tolerance_days)
    return [
        gap
        for prev, curr in zip(candles, candles[1:], strict=False)
        if (gap := Gap(prev.timestamp, curr.timestamp)).days > limit
    ]
