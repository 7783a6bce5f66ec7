"""Portfolio state tracking for backtesting.

Manage realized capital, the single open position, and the running list
of trades during a backtest. The ``Portfolio`` is a two-state machine:
FLAT (no position) and OPEN (one long or short position). Entries are
ignored while OPEN; the only ways out are a stop-loss or take-profit
exit and the force-close at the end of the data.
"""

import logging
from decimal import Decimal

from signal_engine.apps.backtester.execution import (
    ExitReason,
    check_risk_triggers,
    compute_allocation,
    half_fee,
)
from signal_engine.core.models import ZERO, Direction, Position, Trade

logger = logging.getLogger(__name__)


class Portfolio:
    """Track capital, the open position, and trades during one backtest run.

    Capital changes only at entry (minus the entry fee) and exit (plus
    the direction-aware gross P&L minus the exit fee). Mark-to-market
    equity is capital plus the open position's unrealized P&L.
    """

    def __init__(
        self,
        initial_capital: Decimal,
        position_size: Decimal,
        fees_pct: Decimal,
    ) -> None:
        """Initialize a flat portfolio.

        Args:
            initial_capital: Starting capital.
            position_size: Fraction of capital committed per entry.
            fees_pct: Round-trip fee fraction.

        """
        self._capital = initial_capital
        self._position_size = position_size
        self._fees_pct = fees_pct
        self._position: Position | None = None
        self._trades: list[Trade] = []

    @property
    def capital(self) -> Decimal:
        """Return realized capital."""
        return self._capital

    @property
    def position(self) -> Position | None:
        """Return the open position, if any."""
        return self._position

    @property
    def trades(self) -> list[Trade]:
        """Return a copy of all trades, the open one last while OPEN."""
        trades = list(self._trades)
        if self._position is not None:
            trades.append(self._position.to_trade())
        return trades

    def equity(self, mark_price: Decimal) -> Decimal:
        """Return realized capital plus unrealized P&L at ``mark_price``."""
        if self._position is None:
            return self._capital
        return self._capital + self._position.unrealized_pnl(mark_price)

    def open_position(
        self, direction: Direction, price: Decimal, timestamp: int
    ) -> Position | None:
        """Open a position if FLAT.

        Returns:
            The new position, or ``None`` when already OPEN or nothing
            could be allocated.

        """
        if self._position is not None:
            return None
        _notional, entry_fee, shares = compute_allocation(
            capital=self._capital,
            price=price,
            position_size=self._position_size,
            fees_pct=self._fees_pct,
        )
        if shares <= ZERO:
            logger.warning("Skipping entry at %s: nothing to allocate", price)
            return None
        self._capital -= entry_fee
        self._position = Position(
            direction=direction,
            shares=shares,
            entry_price=price,
            entry_time=timestamp,
            entry_fee=entry_fee,
        )
        logger.debug("Opened %s %s shares at %s", direction.value, shares, price)
        return self._position

    def check_exit(
        self,
        price: Decimal,
        timestamp: int,
        stop_loss_pct: Decimal,
        take_profit_pct: Decimal,
    ) -> Trade | None:
        """Close the open position if a stop-loss or take-profit is hit at ``price``."""
        if self._position is None:
            return None
        reason = check_risk_triggers(self._position, price, stop_loss_pct, take_profit_pct)
        if reason is None:
            return None
        return self._close(price, timestamp, reason)

    def force_close(self, price: Decimal, timestamp: int) -> Trade | None:
        """Close any open position at the end of the data, ignoring thresholds."""
        if self._position is None:
            return None
        return self._close(price, timestamp, ExitReason.END_OF_DATA)

    def _close(self, price: Decimal, timestamp: int, reason: ExitReason) -> Trade:
        if self._position is None:
            msg = "Cannot close position: no open position exists"
            raise RuntimeError(msg)
        position = self._position
        exit_fee = half_fee(position.shares * price, self._fees_pct)
        self._capital += position.unrealized_pnl(price) - exit_fee
        trade = position.close(exit_price=price, exit_time=timestamp, exit_fee=exit_fee)
        self._position = None
        self._trades.append(trade)
        logger.debug(
            "Closed %s at %s (%s): pnl %.2f%%",
            position.direction.value,
            price,
            reason.value,
            trade.pnl_pct,
        )
        return trade
