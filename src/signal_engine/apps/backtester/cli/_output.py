"""Terminal output formatters and chart rendering for the backtester CLI."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import TYPE_CHECKING

import typer

from signal_engine.apps.backtester.charts import build_charts, save_charts, show_charts

if TYPE_CHECKING:
    from pathlib import Path

    from signal_engine.apps.backtester.models import BacktestResult
    from signal_engine.apps.signals.models import SignalCheckResult


def print_result(result: BacktestResult) -> None:
    """Print a formatted summary of the backtest result to the terminal."""
    cfg = result.config
    stats = result.stats
    net_pnl = sum((t.net_pnl for t in result.trade_history), Decimal(0))
    typer.echo(f"\n{'=' * 50}")
    typer.echo(f"Symbol:          {cfg.symbol}")
    typer.echo(f"Period:          {cfg.start_date} to {cfg.end_date} ({cfg.timeframe.value})")
    typer.echo(f"Initial Capital: {cfg.initial_capital}")
    typer.echo(f"Final Equity:    {result.final_equity:.2f}")
    typer.echo(f"Triggers:        {len(result.trigger_points)}")
    typer.echo(f"\n{'--- Statistics ---':^50}")
    rows = (
        ("profit", f"{stats.profit:.1f}%"),
        ("profit_amount", f"{stats.profit_amount:.2f}"),
        ("win_rate", f"{stats.win_rate:.0f}%"),
        ("trades", f"{stats.total_trades} ({stats.buy_trades} buy, {stats.sell_trades} sell)"),
        ("winning / losing", f"{stats.winning_trades} / {stats.losing_trades}"),
        ("max_drawdown", f"{stats.max_drawdown:.1f}%"),
        ("avg_win", f"{stats.avg_win:.1f}%"),
        ("avg_loss", f"{stats.avg_loss:.1f}%"),
        ("profit_factor", f"{stats.profit_factor:.2f}"),
        ("sharpe_ratio", f"{stats.sharpe_ratio:.2f}"),
        ("avg_hold_time", f"{stats.avg_hold_time:.1f} days"),
        ("total_fees", f"{stats.total_fees:.2f}"),
        ("net_pnl", f"{net_pnl:.2f}"),
    )
    for key, value in rows:
        typer.echo(f"  {key:20s}: {value}")
    if result.optimization_suggestions:
        typer.echo(f"\n{'--- Suggestions ---':^50}")
        for suggestion in result.optimization_suggestions:
            typer.echo(
                f"  {suggestion.parameter}: {suggestion.current_value} -> "
                f"{suggestion.suggested_value}"
            )
            typer.echo(f"    {suggestion.reason}")
    typer.echo(f"{'=' * 50}\n")


def print_json(result: BacktestResult) -> None:
    """Print the result's camelCase mapping as indented JSON."""
    typer.echo(json.dumps(result.to_dict(), indent=2))


def print_check(label: str, check: SignalCheckResult) -> None:
    """Print one signal check outcome."""
    if not check.triggered:
        typer.echo(f"{label}: not triggered ({check.conditions_evaluated} conditions evaluated)")
        return
    signal = check.signal_type.value if check.signal_type is not None else "-"
    typer.echo(f"{label}: TRIGGERED {signal}: {check.message}")


def render_charts(result: BacktestResult, *, chart: bool, chart_output: Path | None) -> None:
    """Build and display or save charts for the run command."""
    figs = build_charts(result)
    if chart_output is not None:
        save_charts(figs, chart_output)
        typer.echo(f"Charts saved to {chart_output}")
    elif chart:
        show_charts(figs)
