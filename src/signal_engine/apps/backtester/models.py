"""Backtest configuration, statistics, and result models.

``BacktestConfig`` describes one run. ``BacktestStats`` and
``OptimizationSuggestion`` are produced after the simulation, and
``BacktestResult`` bundles everything together with the equity curve,
trigger points, and trade history. ``BacktestResult.to_dict`` renders
the camelCase mapping that API callers and the CLI's JSON output use.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from signal_engine.apps.signals.models import SignalConfig
from signal_engine.core.models import (
    ONE,
    ZERO,
    Candle,
    EquityPoint,
    Timeframe,
    Trade,
    TriggerPoint,
)


@dataclass(frozen=True)
class BacktestConfig:
    """Parameters for one backtest run.

    Percentages are decimal fractions: ``stop_loss_pct=0.10`` exits at a
    10% adverse move. ``fees_pct`` is the round-trip fee; half is
    charged on entry notional and half on exit value. ``position_size``
    is the fraction of current capital committed to each entry.
    """

    symbol: str
    start_date: str
    end_date: str
    signal: SignalConfig
    timeframe: Timeframe = Timeframe.DAILY
    initial_capital: Decimal = Decimal(10000)
    position_size: Decimal = ONE
    stop_loss_pct: Decimal = Decimal("0.10")
    take_profit_pct: Decimal = Decimal("0.20")
    fees_pct: Decimal = Decimal("0.005")

    def __post_init__(self) -> None:
        """Validate capital, sizing, and risk thresholds."""
        if self.initial_capital <= ZERO:
            msg = f"initial_capital must be > 0, got {self.initial_capital}"
            raise ValueError(msg)
        if not ZERO < self.position_size <= ONE:
            msg = f"position_size must be in (0, 1], got {self.position_size}"
            raise ValueError(msg)
        if self.stop_loss_pct <= ZERO:
            msg = f"stop_loss_pct must be > 0, got {self.stop_loss_pct}"
            raise ValueError(msg)
        if self.take_profit_pct <= ZERO:
            msg = f"take_profit_pct must be > 0, got {self.take_profit_pct}"
            raise ValueError(msg)
        if not ZERO <= self.fees_pct < ONE:
            msg = f"fees_pct must be in [0, 1), got {self.fees_pct}"
            raise ValueError(msg)


@dataclass(frozen=True)
class BacktestStats:
    """Performance statistics of a completed run.

    ``profit``, ``win_rate``, ``max_drawdown``, ``avg_win`` and
    ``avg_loss`` are percentages. ``max_drawdown`` is a positive
    magnitude. ``avg_hold_time`` is in days.
    """

    profit: Decimal = ZERO
    profit_amount: Decimal = ZERO
    win_rate: Decimal = ZERO
    total_trades: int = 0
    buy_trades: int = 0
    sell_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    max_drawdown: Decimal = ZERO
    avg_win: Decimal = ZERO
    avg_loss: Decimal = ZERO
    profit_factor: Decimal = ZERO
    sharpe_ratio: Decimal = ZERO
    avg_hold_time: Decimal = ZERO
    total_fees: Decimal = ZERO


@dataclass(frozen=True)
class OptimizationSuggestion:
    """One parameter-tuning hint derived from a run's statistics."""

    parameter: str
    current_value: str
    suggested_value: str
    reason: str
    potential_impact: str

    def to_dict(self) -> dict[str, str]:
        """Return the camelCase mapping of this suggestion."""
        return {
            "parameter": self.parameter,
            "currentValue": self.current_value,
            "suggestedValue": self.suggested_value,
            "reason": self.reason,
            "potentialImpact": self.potential_impact,
        }


def _fmt(value: Decimal, places: int) -> str:
    return f"{value:.{places}f}"


def _trade_dict(trade: Trade) -> dict[str, Any]:
    return {
        "entryDate": trade.entry_date,
        "entryPrice": float(trade.entry_price),
        "exitDate": trade.exit_date,
        "exitPrice": float(trade.exit_price) if trade.exit_price is not None else None,
        "pnlPct": float(trade.pnl_pct),
        "pnlAmount": float(trade.pnl_amount) if trade.pnl_amount is not None else None,
        "signalType": trade.signal_type.value.lower(),
        "shares": float(trade.shares),
        "fees": float(trade.fees),
    }


@dataclass(frozen=True)
class BacktestResult:
    """Immutable summary of a completed backtest run.

    ``equity_curve`` holds one point per candle. ``trade_history`` holds
    every trade in entry order; all of them are closed once the run has
    finished.
    """

    config: BacktestConfig
    stats: BacktestStats
    equity_curve: tuple[EquityPoint, ...]
    trigger_points: tuple[TriggerPoint, ...]
    trade_history: tuple[Trade, ...]
    optimization_suggestions: tuple[OptimizationSuggestion, ...] = ()
    candles: tuple[Candle, ...] = ()

    @property
    def final_equity(self) -> Decimal:
        """Return the last equity value, or the initial capital for an empty curve."""
        if not self.equity_curve:
            return self.config.initial_capital
        return self.equity_curve[-1].value

    def to_dict(self) -> dict[str, Any]:
        """Render the result as a JSON-safe camelCase mapping.

        Percentages and ratios are pre-formatted strings, with the
        drawdown reported as a negative percentage; series values are
        floats.
        """
        stats = self.stats
        return {
            "profit": _fmt(stats.profit, 1),
            "profitAmount": round(float(stats.profit_amount)),
            "winRate": _fmt(stats.win_rate, 0),
            "trades": stats.total_trades,
            "buyTrades": stats.buy_trades,
            "sellTrades": stats.sell_trades,
            "winningTrades": stats.winning_trades,
            "losingTrades": stats.losing_trades,
            "maxDrawdown": _fmt(-stats.max_drawdown, 1),
            "avgWin": _fmt(stats.avg_win, 1),
            "avgLoss": _fmt(stats.avg_loss, 1),
            "profitFactor": _fmt(stats.profit_factor, 1),
            "sharpeRatio": _fmt(stats.sharpe_ratio, 2),
            "avgHoldTime": f"{stats.avg_hold_time:.0f} days",
            "totalFees": float(stats.total_fees),
            "equityCurve": [{"date": p.date, "value": float(p.value)} for p in self.equity_curve],
            "triggerPoints": [
                {"date": t.date, "type": t.signal_type.value.lower(), "price": float(t.price)}
                for t in self.trigger_points
            ],
            "tradeHistory": [_trade_dict(t) for t in self.trade_history],
            "optimizationSuggestions": [s.to_dict() for s in self.optimization_suggestions],
        }
