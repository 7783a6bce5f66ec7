"""Core data models shared across the signal engine.

Define the immutable value objects (Candle, Trade, EquityPoint,
TriggerPoint) and the mutable open ``Position`` that flow between the
candle providers, the indicator engine, the signal evaluator, and the
backtest simulator.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from signal_engine.core.timestamps import days_between, format_date

ZERO = Decimal(0)
ONE = Decimal(1)
TWO = Decimal(2)
HUNDRED = Decimal(100)


class SignalType(Enum):
    """Direction a signal definition asks for: BUY, SELL, or NEUTRAL (alert only)."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class LogicMode(Enum):
    """How evaluated trigger conditions combine: ALL (conjunction) or ANY (disjunction)."""

    ALL = "ALL"
    ANY = "ANY"


class Direction(Enum):
    """Side of an open position: LONG profits when price rises, SHORT when it falls."""

    LONG = "long"
    SHORT = "short"

    @classmethod
    def from_signal(cls, signal_type: SignalType) -> "Direction | None":
        """Map a BUY signal to LONG and a SELL signal to SHORT; NEUTRAL opens nothing."""
        if signal_type == SignalType.BUY:
            return cls.LONG
        if signal_type == SignalType.SELL:
            return cls.SHORT
        return None

    @property
    def sign(self) -> Decimal:
        """Return +1 for LONG and -1 for SHORT."""
        return ONE if self == Direction.LONG else -ONE

    @property
    def signal_type(self) -> SignalType:
        """Return the signal that opens this side: BUY for LONG, SELL for SHORT."""
        return SignalType.BUY if self == Direction.LONG else SignalType.SELL


class Timeframe(Enum):
    """Supported candle granularities for backtests."""

    DAILY = "daily"
    HOURLY = "hourly"


@dataclass(frozen=True)
class Candle:
    """Immutable OHLCV candle representing one period of market data.

    A series of candles is ordered ascending by ``timestamp`` (Unix
    seconds) and carries at most one candle per timestamp.
    """

    timestamp: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal

    @property
    def date(self) -> str:
        """Return the candle's UTC calendar date as ``YYYY-MM-DD``."""
        return format_date(self.timestamp)


@dataclass(frozen=True)
class Trade:
    """Record of one simulated trade, open or closed.

    A trade created at entry has no exit fields yet. Closing it produces
    a new ``Trade`` with ``exit_price`` and ``exit_time`` set. ``pnl_pct``
    and ``pnl_amount`` are direction-aware and exclude fees; fees are
    tracked separately in ``entry_fee`` and ``exit_fee``.
    """

    direction: Direction
    shares: Decimal
    entry_price: Decimal
    entry_time: int
    exit_price: Decimal | None = None
    exit_time: int | None = None
    entry_fee: Decimal = field(default=ZERO)
    exit_fee: Decimal = field(default=ZERO)

    @property
    def is_closed(self) -> bool:
        """Return whether the trade has been exited."""
        return self.exit_time is not None and self.exit_price is not None

    @property
    def signal_type(self) -> SignalType:
        """Return BUY for long trades and SELL for short trades."""
        return self.direction.signal_type

    @property
    def entry_date(self) -> str:
        """Return the entry date as ``YYYY-MM-DD``."""
        return format_date(self.entry_time)

    @property
    def exit_date(self) -> str | None:
        """Return the exit date as ``YYYY-MM-DD``, or ``None`` while open."""
        if self.exit_time is None:
            return None
        return format_date(self.exit_time)

    @property
    def pnl_pct(self) -> Decimal:
        """Return the percentage gain or loss before fees (zero while open)."""
        if self.exit_price is None or self.entry_price == ZERO:
            return ZERO
        change = (self.exit_price - self.entry_price) / self.entry_price
        return change * self.direction.sign * HUNDRED

    @property
    def pnl_amount(self) -> Decimal | None:
        """Return the gross profit or loss in currency, or ``None`` while open."""
        if self.exit_price is None:
            return None
        return (self.exit_price - self.entry_price) * self.shares * self.direction.sign

    @property
    def fees(self) -> Decimal:
        """Return the entry and exit fees paid on this trade."""
        return self.entry_fee + self.exit_fee

    @property
    def net_pnl(self) -> Decimal:
        """Return the profit or loss net of fees (only the entry fee while open)."""
        return (self.pnl_amount or ZERO) - self.fees

    @property
    def hold_days(self) -> Decimal | None:
        """Return the holding period in days, or ``None`` while open."""
        if self.exit_time is None:
            return None
        return days_between(self.entry_time, self.exit_time)


@dataclass
class Position:
    """Mutable representation of the single open position in a backtest.

    Track direction, size, entry price and time, and the entry fee
    already paid. Call ``close()`` to produce the closed ``Trade``.
    """

    direction: Direction
    shares: Decimal
    entry_price: Decimal
    entry_time: int
    entry_fee: Decimal = ZERO

    def pnl_fraction(self, price: Decimal) -> Decimal:
        """Return the unrealized return at ``price`` as a fraction of the entry price."""
        if self.entry_price == ZERO:
            return ZERO
        return (price - self.entry_price) / self.entry_price * self.direction.sign

    def unrealized_pnl(self, price: Decimal) -> Decimal:
        """Return the mark-to-market profit or loss at ``price`` in currency."""
        return (price - self.entry_price) * self.shares * self.direction.sign

    def to_trade(self) -> Trade:
        """Return the still-open ``Trade`` record for this position."""
        return Trade(
            direction=self.direction,
            shares=self.shares,
            entry_price=self.entry_price,
            entry_time=self.entry_time,
            entry_fee=self.entry_fee,
        )

    def close(self, exit_price: Decimal, exit_time: int, exit_fee: Decimal = ZERO) -> Trade:
        """Close this position at the given exit price and time and return a Trade.

        Args:
            exit_price: Price at which the position is closed.
            exit_time: Unix timestamp of the exit.
            exit_fee: Fee paid when closing the position.

        Returns:
            The closed ``Trade`` recording the round-trip.

        """
        return Trade(
            direction=self.direction,
            shares=self.shares,
            entry_price=self.entry_price,
            entry_time=self.entry_time,
            exit_price=exit_price,
            exit_time=exit_time,
            entry_fee=self.entry_fee,
            exit_fee=exit_fee,
        )


@dataclass(frozen=True)
class EquityPoint:
    """Portfolio value (realized capital plus unrealized P&L) at one candle."""

    timestamp: int
    value: Decimal

    @property
    def date(self) -> str:
        """Return the point's date as ``YYYY-MM-DD``."""
        return format_date(self.timestamp)


@dataclass(frozen=True)
class TriggerPoint:
    """A fired entry signal: when, which way, and at what price."""

    timestamp: int
    signal_type: SignalType
    price: Decimal

    @property
    def date(self) -> str:
        """Return the trigger date as ``YYYY-MM-DD``."""
        return format_date(self.timestamp)
