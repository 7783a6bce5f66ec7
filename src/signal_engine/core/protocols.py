"""Structural protocols for pluggable candle sources.

Define the ``CandleProvider`` interface that decouples the backtest
engine from where historical data comes from. Any class whose shape
matches the protocol can be used without explicit inheritance
(structural subtyping).
"""

from typing import Protocol, runtime_checkable

from signal_engine.core.models import Candle, Timeframe


@runtime_checkable
class CandleProvider(Protocol):
    """Async provider of OHLCV candle data.

    Implementors fetch candles from a specific data source (CSV file,
    database, sample generator, etc.) and return them sorted ascending
    by timestamp with no duplicate timestamps. Any caching is the
    provider's own business; the engine only awaits the result.
    """

    async def get_candles(
        self,
        symbol: str,
        timeframe: Timeframe,
        start_ts: int,
        end_ts: int,
    ) -> list[Candle]:
        """Return candles for the given symbol, timeframe, and time range."""
        ...
