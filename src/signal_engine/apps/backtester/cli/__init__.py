"""CLI subpackage for the backtester.

Create the Typer application and register the ``run`` and ``signal``
commands.
"""

import typer

from signal_engine.apps.backtester.cli.run_cmd import run
from signal_engine.apps.backtester.cli.signal_cmd import signal

app = typer.Typer(help="Backtest and check stock trading signals")

app.command()(run)
app.command()(signal)

__all__ = ["app"]
