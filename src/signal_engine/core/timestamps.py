"""Timestamp parsing and formatting utilities.

Candles and trades carry Unix timestamps in seconds; results and CLI
arguments use ``YYYY-MM-DD`` dates.
"""

from datetime import UTC, datetime
from decimal import Decimal

SECONDS_PER_DAY = 86_400


def parse_timestamp(value: str) -> int:
    """Parse a date string or raw integer into a Unix timestamp.

    Accept ISO 8601 date strings (``2024-01-01``, ``2024-01-01T12:00:00``)
    or raw integer Unix timestamps.

    Args:
        value: Date string or integer timestamp.

    Returns:
        Unix timestamp in seconds.

    Raises:
        ValueError: If the value cannot be parsed.

    """
    # Try raw integer first
    try:
        return int(value)
    except ValueError:
        pass

    for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"):
        try:
            dt = datetime.strptime(value, fmt).replace(tzinfo=UTC)
            return int(dt.timestamp())
        except ValueError:
            continue

    msg = f"Cannot parse timestamp: {value!r}. Use ISO 8601 (YYYY-MM-DD) or a Unix timestamp."
    raise ValueError(msg)


def format_date(timestamp: int) -> str:
    """Return the UTC calendar date of a Unix timestamp as ``YYYY-MM-DD``."""
    return datetime.fromtimestamp(timestamp, tz=UTC).strftime("%Y-%m-%d")


def day_start(timestamp: int) -> int:
    """Return the Unix timestamp of midnight UTC on the timestamp's day."""
    return timestamp - timestamp % SECONDS_PER_DAY


def days_between(start: int, end: int) -> Decimal:
    """Return the (fractional) number of days from ``start`` to ``end``."""
    return Decimal(end - start) / Decimal(SECONDS_PER_DAY)
