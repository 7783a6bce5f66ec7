"""Shared execution helpers for backtesting.

Provide pure functions for position sizing, fee computation, and
stop-loss / take-profit checks. Half of the round-trip ``fees_pct`` is
charged on the entry notional and half on the exit value.
"""

from decimal import Decimal
from enum import Enum

from signal_engine.core.models import TWO, ZERO, Position


class ExitReason(Enum):
    """Why a position was closed."""

    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    END_OF_DATA = "end_of_data"


def half_fee(amount: Decimal, fees_pct: Decimal) -> Decimal:
    """Return the one-way fee on ``amount`` for a round-trip ``fees_pct``."""
    return amount * fees_pct / TWO


def compute_allocation(
    *,
    capital: Decimal,
    price: Decimal,
    position_size: Decimal,
    fees_pct: Decimal,
) -> tuple[Decimal, Decimal, Decimal]:
    """Compute the entry notional, entry fee, and share count.

    Args:
        capital: Realized capital available before the entry.
        price: Entry price (the candle's close).
        position_size: Fraction of capital to commit, in ``(0, 1]``.
        fees_pct: Round-trip fee fraction.

    Returns:
        Tuple of (notional, entry_fee, shares). All zero for a
        non-positive price or capital.

    """
    if price <= ZERO or capital <= ZERO:
        return ZERO, ZERO, ZERO
    notional = capital * position_size
    shares = notional / price
    return notional, half_fee(notional, fees_pct), shares


def check_risk_triggers(
    position: Position,
    price: Decimal,
    stop_loss_pct: Decimal,
    take_profit_pct: Decimal,
) -> ExitReason | None:
    """Check stop-loss and take-profit against the unrealized return at ``price``.

    The return is direction-aware, so a short loses when price rises.
    Stop-loss wins when both thresholds are somehow met.

    Returns:
        The exit reason, or ``None`` if the position stays open.

    """
    pnl = position.pnl_fraction(price)
    if pnl <= -stop_loss_pct:
        return ExitReason.STOP_LOSS
    if pnl >= take_profit_pct:
        return ExitReason.TAKE_PROFIT
    return None
