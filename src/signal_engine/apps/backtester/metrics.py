"""Performance statistics for evaluating backtest results.

Provide standalone functions that each compute a single statistic from
the trade history or the equity curve. ``calculate_stats`` runs all of
them and returns a ``BacktestStats``. Every ratio guards its
denominator, so no ``NaN`` or ``Infinity`` ever reaches a result.
"""

from collections.abc import Sequence
from decimal import Decimal

from signal_engine.apps.backtester.models import BacktestStats
from signal_engine.core.models import HUNDRED, ZERO, Direction, EquityPoint, Trade

PROFIT_FACTOR_CAP = Decimal(999)
TRADING_DAYS_PER_YEAR = 252
_MIN_POINTS_FOR_SHARPE = 2


def completed(trades: Sequence[Trade]) -> list[Trade]:
    """Return only the trades that have been exited."""
    return [t for t in trades if t.is_closed]


def winners(trades: Sequence[Trade]) -> list[Trade]:
    """Return completed trades with a positive percentage return."""
    return [t for t in completed(trades) if t.pnl_pct > ZERO]


def losers(trades: Sequence[Trade]) -> list[Trade]:
    """Return completed trades with a zero or negative percentage return."""
    return [t for t in completed(trades) if t.pnl_pct <= ZERO]


def _mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


def total_return(initial_capital: Decimal, final_equity: Decimal) -> Decimal:
    """Return the total portfolio return as a percentage."""
    if initial_capital == ZERO:
        return ZERO
    return (final_equity - initial_capital) / initial_capital * HUNDRED


def win_rate(trades: Sequence[Trade]) -> Decimal:
    """Return the percentage of completed trades that won (0 with none)."""
    done = completed(trades)
    if not done:
        return ZERO
    return Decimal(len(winners(done))) / Decimal(len(done)) * HUNDRED


def avg_win(trades: Sequence[Trade]) -> Decimal:
    """Return the mean percentage return of winning trades."""
    return _mean([t.pnl_pct for t in winners(trades)])


def avg_loss(trades: Sequence[Trade]) -> Decimal:
    """Return the mean percentage return of losing trades (zero or negative)."""
    return _mean([t.pnl_pct for t in losers(trades)])


def profit_factor(trades: Sequence[Trade]) -> Decimal:
    """Return gross winning percentage over gross losing percentage.

    Return ``PROFIT_FACTOR_CAP`` when there are wins but no losses, and
    zero when there are no wins and no losses.
    """
    wins = winners(trades)
    gross_win = sum((abs(t.pnl_pct) for t in wins), ZERO)
    gross_loss = sum((abs(t.pnl_pct) for t in losers(trades)), ZERO)
    if gross_loss == ZERO:
        return PROFIT_FACTOR_CAP if wins else ZERO
    return gross_win / gross_loss


def max_drawdown(equity_curve: Sequence[EquityPoint], initial_capital: Decimal) -> Decimal:
    """Return the largest peak-to-trough decline as a positive percentage.

    Walk the curve left to right with a running peak that starts at the
    initial capital.
    """
    peak = initial_capital
    max_dd = ZERO
    for point in equity_curve:
        peak = max(peak, point.value)
        if peak > ZERO:
            max_dd = max(max_dd, (peak - point.value) / peak * HUNDRED)
    return max_dd


def tick_returns(equity_curve: Sequence[EquityPoint]) -> list[Decimal]:
    """Return the fractional change between consecutive equity points."""
    return [
        (curr.value - prev.value) / prev.value
        for prev, curr in zip(equity_curve, equity_curve[1:], strict=False)
        if prev.value != ZERO
    ]


def sharpe_ratio(equity_curve: Sequence[EquityPoint]) -> Decimal:
    """Return the annualized Sharpe ratio of per-tick equity returns.

    Mean over population standard deviation, times the square root of
    252. Zero with fewer than two points or a zero standard deviation.
    """
    if len(equity_curve) < _MIN_POINTS_FOR_SHARPE:
        return ZERO
    returns = tick_returns(equity_curve)
    if not returns:
        return ZERO
    mean = _mean(returns)
    variance = sum(((r - mean) ** 2 for r in returns), ZERO) / Decimal(len(returns))
    if variance == ZERO:
        return ZERO
    return mean / variance.sqrt() * Decimal(TRADING_DAYS_PER_YEAR).sqrt()


def avg_hold_time(trades: Sequence[Trade]) -> Decimal:
    """Return the mean holding period of completed trades in days."""
    return _mean([t.hold_days for t in completed(trades) if t.hold_days is not None])


def total_fees(trades: Sequence[Trade]) -> Decimal:
    """Return the sum of all entry and exit fees."""
    return sum((t.fees for t in trades), ZERO)


def calculate_stats(
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
    initial_capital: Decimal,
) -> BacktestStats:
    """Calculate every statistic for a finished run.

    Args:
        trades: All trades of the run; only completed ones count towards
            win/loss statistics.
        equity_curve: One equity point per candle.
        initial_capital: Starting capital of the run.

    Returns:
        The populated ``BacktestStats``.

    """
    final_equity = equity_curve[-1].value if equity_curve else initial_capital
    done = completed(trades)
    return BacktestStats(
        profit=total_return(initial_capital, final_equity),
        profit_amount=final_equity - initial_capital,
        win_rate=win_rate(done),
        total_trades=len(done),
        buy_trades=sum(1 for t in trades if t.direction == Direction.LONG),
        sell_trades=sum(1 for t in trades if t.direction == Direction.SHORT),
        winning_trades=len(winners(done)),
        losing_trades=len(losers(done)),
        max_drawdown=max_drawdown(equity_curve, initial_capital),
        avg_win=avg_win(done),
        avg_loss=avg_loss(done),
        profit_factor=profit_factor(done),
        sharpe_ratio=sharpe_ratio(equity_curve),
        avg_hold_time=avg_hold_time(done),
        total_fees=total_fees(trades),
    )
