"""Exceptions raised by the signal engine."""


class SignalEngineError(Exception):
    """Base exception for signal engine errors."""


class InsufficientDataError(SignalEngineError):
    """Not enough candles to run a meaningful backtest.

    Raised before any simulation starts when the series is shorter than
    the minimum run length or an enabled indicator's warm-up period.
    """

    def __init__(self, candle_count: int, required: int) -> None:
        """Initialize the error.

        Args:
            candle_count: Number of candles actually available.
            required: Number of candles the run needs.

        """
        super().__init__(
            f"Insufficient historical data: found {candle_count} candles, "
            f"need at least {required} for meaningful results"
        )
        self.candle_count = candle_count
        self.required = required
