"""CSV-based candle data provider for offline and testing use.

Read OHLCV candle data from a local CSV file instead of a market-data
service. This is useful for running backtests against a fixed dataset
and for deterministic testing.
"""

import csv
import logging
from decimal import Decimal
from pathlib import Path

from signal_engine.core.models import Candle, Timeframe
from signal_engine.core.timestamps import parse_timestamp
from signal_engine.data.candles import aggregate_to_daily, find_gaps, normalize_candles

logger = logging.getLogger(__name__)


class CsvCandleProvider:
    """Load candle data from a local CSV file.

    Implement the ``CandleProvider`` protocol by reading rows with
    columns ``timestamp``, ``open``, ``high``, ``low``, ``close``,
    ``volume`` and an optional ``symbol``. ``timestamp`` may be Unix
    seconds or an ISO date. Rows without a symbol column match every
    symbol. Requesting ``Timeframe.DAILY`` from intraday rows rolls them
    up to one candle per day.
    """

    def __init__(self, file_path: Path, gap_tolerance_days: int = 30) -> None:
        """Initialize the provider with the path to the CSV file.

        Args:
            file_path: Absolute or relative path to the CSV data file.
            gap_tolerance_days: Gaps longer than this are logged as warnings.

        """
        self._file_path = file_path
        self._gap_tolerance_days = gap_tolerance_days

    async def get_candles(
        self,
        symbol: str,
        timeframe: Timeframe,
        start_ts: int,
        end_ts: int,
    ) -> list[Candle]:
        """Load candles for ``symbol`` within ``[start_ts, end_ts]``.

        Returns:
            Candles sorted ascending with unique timestamps.

        Raises:
            ValueError: If a row has an unparseable timestamp.
            decimal.InvalidOperation: If a price or volume is not a number.

        """
        rows: list[Candle] = []
        with self._file_path.open(newline="") as f:
            reader = csv.DictReader(f)
            for row in reader:
                row_symbol = row.get("symbol")
                if row_symbol and row_symbol != symbol:
                    continue
                ts = parse_timestamp(row["timestamp"].strip())
                if ts < start_ts or ts > end_ts:
                    continue
                rows.append(
                    Candle(
                        timestamp=ts,
                        open=Decimal(row["open"]),
                        high=Decimal(row["high"]),
                        low=Decimal(row["low"]),
                        close=Decimal(row["close"]),
                        volume=Decimal(row["volume"]),
                    )
                )

        candles = normalize_candles(rows)
        if timeframe == Timeframe.DAILY:
            candles = aggregate_to_daily(candles)

        for gap in find_gaps(candles, self._gap_tolerance_days):
            logger.warning("Data gap for %s in %s: %s", symbol, self._file_path.name, gap)
        logger.debug("Loaded %d candles for %s from %s", len(candles), symbol, self._file_path)
        return candles
