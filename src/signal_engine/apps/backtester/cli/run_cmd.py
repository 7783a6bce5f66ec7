"""CLI command and async helper for the ``run`` backtest command.

Load a signal definition, fetch candles from a CSV file or generated
sample data, run the backtest engine, and print the result as a summary
or as JSON, optionally rendering interactive charts.
"""

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer

from signal_engine.apps.backtester.cli._helpers import (
    build_provider,
    configure_logging,
    load_signal_file,
    resolve_decimal,
    resolve_timeframe,
    validate_source,
)
from signal_engine.apps.backtester.cli._output import print_json, print_result, render_charts
from signal_engine.apps.backtester.engine import BacktestEngine
from signal_engine.apps.backtester.models import BacktestConfig, BacktestResult
from signal_engine.core.exceptions import InsufficientDataError
from signal_engine.core.timestamps import parse_timestamp


def _validate_date(value: str) -> str:
    try:
        parse_timestamp(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return value


def run(  # noqa: PLR0913
    signal: Annotated[Path, typer.Option(help="JSON or YAML file with the signal definition")],
    source: Annotated[
        str, typer.Option(help="Data source: csv or sample", callback=validate_source)
    ] = "csv",
    csv: Annotated[Path | None, typer.Option(help="Path to CSV candle data file")] = None,
    symbol: Annotated[str, typer.Option(help="Stock symbol")] = "AAPL",
    start: Annotated[
        str, typer.Option(help="Start date (YYYY-MM-DD)", callback=_validate_date)
    ] = "2020-01-01",
    end: Annotated[
        str | None, typer.Option(help="End date (YYYY-MM-DD), defaults to today")
    ] = None,
    timeframe: Annotated[str | None, typer.Option(help="Candle timeframe (daily, hourly)")] = None,
    capital: Annotated[float | None, typer.Option(help="Initial capital")] = None,
    position_size: Annotated[
        float | None, typer.Option(help="Fraction of capital per trade (0-1]")
    ] = None,
    stop_loss: Annotated[float | None, typer.Option(help="Stop-loss threshold as decimal")] = None,
    take_profit: Annotated[
        float | None, typer.Option(help="Take-profit threshold as decimal")
    ] = None,
    fees: Annotated[float | None, typer.Option(help="Round-trip fees as decimal")] = None,
    min_candles: Annotated[int | None, typer.Option(help="Minimum candles for a run")] = None,
    seed: Annotated[int, typer.Option(help="Random seed for sample data")] = 42,
    json_output: Annotated[bool, typer.Option("--json", help="Print the result as JSON")] = False,  # noqa: FBT002
    chart: Annotated[bool, typer.Option(help="Generate interactive charts")] = False,  # noqa: FBT002
    chart_output: Annotated[
        Path | None, typer.Option(help="Save charts to HTML file instead of browser")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,  # noqa: FBT002
) -> None:
    """Backtest a signal definition against historical candle data."""
    configure_logging(verbose)
    end_date = end or datetime.now(tz=UTC).strftime("%Y-%m-%d")
    _validate_date(end_date)
    if parse_timestamp(end_date) < parse_timestamp(start):
        raise typer.BadParameter("end must not be before start", param_hint="'--end'")

    try:
        config = BacktestConfig(
            symbol=symbol,
            start_date=start,
            end_date=end_date,
            signal=load_signal_file(signal),
            timeframe=resolve_timeframe(timeframe),
            initial_capital=resolve_decimal(capital, "initial_capital", "10000"),
            position_size=resolve_decimal(position_size, "position_size", "1"),
            stop_loss_pct=resolve_decimal(stop_loss, "stop_loss_pct", "0.10"),
            take_profit_pct=resolve_decimal(take_profit, "take_profit_pct", "0.20"),
            fees_pct=resolve_decimal(fees, "fees_pct", "0.005"),
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        result = asyncio.run(
            run_backtest(
                config,
                source=source,
                csv=csv,
                seed=seed,
                min_candles=min_candles,
            )
        )
    except InsufficientDataError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if json_output:
        print_json(result)
    else:
        print_result(result)
    if chart or chart_output is not None:
        render_charts(result, chart=chart, chart_output=chart_output)


async def run_backtest(
    config: BacktestConfig,
    *,
    source: str,
    csv: Path | None,
    seed: int,
    min_candles: int | None,
) -> BacktestResult:
    """Build the provider and engine for a resolved config and run the backtest."""
    provider = build_provider(source, csv, seed)
    engine = BacktestEngine(config, min_candles=min_candles)
    return await engine.run(provider)
