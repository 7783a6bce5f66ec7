"""CLI command for checking a signal against the latest candle.

Load enough trailing history from a CSV file for every enabled
indicator, compute the current and previous snapshots, and report
whether the signal fires now.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

from signal_engine.apps.backtester.cli._helpers import (
    build_provider,
    configure_logging,
    load_signal_file,
    resolve_timeframe,
)
from signal_engine.apps.backtester.cli._output import print_check
from signal_engine.apps.signals.alerts import max_required_period, prepare_indicators
from signal_engine.apps.signals.evaluator import check_dual_signal, check_signal
from signal_engine.apps.signals.models import DualSignal, SignalConfig, signal_specs
from signal_engine.core.models import Candle, Timeframe

logger = logging.getLogger(__name__)

_END_OF_TIME = 2**53


def signal(
    signal_file: Annotated[
        Path, typer.Option("--signal", help="JSON or YAML file with the signal definition")
    ],
    csv: Annotated[Path, typer.Option(help="Path to CSV candle data file")],
    symbol: Annotated[str, typer.Option(help="Stock symbol")] = "AAPL",
    timeframe: Annotated[str | None, typer.Option(help="Candle timeframe (daily, hourly)")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,  # noqa: FBT002
) -> None:
    """Check whether a signal fires at the most recent candle."""
    configure_logging(verbose)
    config = load_signal_file(signal_file)
    candles = asyncio.run(_load_history(csv, symbol, resolve_timeframe(timeframe), config))
    if not candles:
        typer.echo(f"Error: no candles for {symbol} in {csv}", err=True)
        raise typer.Exit(code=1)

    last = candles[-1]
    typer.echo(f"{symbol} {last.date} close {last.close} ({len(candles)} candles)")

    if isinstance(config, DualSignal):
        buy_snapshots = prepare_indicators(candles, config.buy.indicator_config)
        sell_snapshots = prepare_indicators(candles, config.sell.indicator_config)
        result = check_dual_signal(config, last.close, buy_snapshots, sell_snapshots)
        print_check("BUY side", result.buy)
        print_check("SELL side", result.sell)
        return

    current, previous = prepare_indicators(candles, config.spec.indicator_config)
    print_check("Signal", check_signal(config.spec, last.close, current, previous))


async def _load_history(
    csv: Path, symbol: str, timeframe: Timeframe, config: SignalConfig
) -> list[Candle]:
    """Return the trailing candles needed by the most demanding side of the signal."""
    provider = build_provider("csv", csv)
    candles = await provider.get_candles(symbol, timeframe, 0, _END_OF_TIME)
    needed = max(max_required_period(spec.indicator_config) for spec in signal_specs(config))
    if len(candles) < needed:
        logger.warning("Only %d candles available, %d recommended", len(candles), needed)
    return candles[-needed:]
