# pyright: reportMissingTypeStubs=false, reportUnknownMemberType=false, reportUnknownArgumentType=false, reportUnknownVariableType=false
"""Interactive Plotly charts for a signal backtest.

Four views of one ``BacktestResult``: portfolio value per candle, the
decline from peak equity, the price series with the ticks where the
signal fired and where positions closed, and the spread of trade
returns. Figures share a dark theme and are written as one HTML page.
"""

from __future__ import annotations

import tempfile
import webbrowser
from typing import TYPE_CHECKING, Any

import plotly.graph_objects as go

from signal_engine.core.models import SignalType

if TYPE_CHECKING:
    from pathlib import Path

    from signal_engine.apps.backtester.models import BacktestResult

_BACKGROUND = "#1e1e2f"
_GRID = "#2e2e3e"
_TEXT = "#e0e0e0"
_UP = "#00c853"
_DOWN = "#ff1744"
_EXIT = "#ffab00"

_AXIS: dict[str, Any] = {"gridcolor": _GRID, "zeroline": False}
_THEME: dict[str, Any] = {
    "template": "plotly_dark",
    "plot_bgcolor": _BACKGROUND,
    "paper_bgcolor": _BACKGROUND,
    "font_color": _TEXT,
    "legend": {"bgcolor": "rgba(0,0,0,0)"},
    "margin": {"l": 60, "r": 30, "t": 50, "b": 40},
}

# (signal type, legend name, marker symbol, colour)
_TRIGGER_MARKERS = (
    (SignalType.BUY, "Buy", "triangle-up", _UP),
    (SignalType.SELL, "Sell", "triangle-down", _DOWN),
)

_PAGE = """<html><head><title>{title}</title></head><body>
{body}
</body></html>"""


def _figure(result: BacktestResult, name: str, y_title: str, *traces: Any) -> go.Figure:
    fig = go.Figure(data=list(traces))
    fig.update_layout(
        title=f"{name}: {result.config.symbol}",
        xaxis={**_AXIS, "title": "Date"},
        yaxis={**_AXIS, "title": y_title},
        **_THEME,
    )
    return fig


def build_drawdown_series(equity: list[float]) -> list[float]:
    """Return the percentage decline from the running peak at each point (zero or negative)."""
    drawdowns: list[float] = []
    peak = equity[0] if equity else 0.0
    for value in equity:
        peak = max(peak, value)
        drawdowns.append(100 * (value - peak) / peak if peak > 0 else 0.0)
    return drawdowns


def _require(has_data: bool, chart: str, missing: str) -> None:  # noqa: FBT001
    if not has_data:
        msg = f"Cannot create {chart}: result has no {missing}"
        raise ValueError(msg)


def create_equity_curve(result: BacktestResult) -> go.Figure:
    """Plot portfolio value per candle against a dashed initial-capital line.

    The line is green when the run finished at or above its starting
    capital and red when it finished below.

    Raises:
        ValueError: If the result has no equity points.

    """
    _require(bool(result.equity_curve), "equity curve", "equity points")
    values = [float(p.value) for p in result.equity_curve]
    start = float(result.config.initial_capital)

    fig = _figure(
        result,
        "Equity Curve",
        "Portfolio Value",
        go.Scatter(
            x=[p.date for p in result.equity_curve],
            y=values,
            mode="lines",
            name="Equity",
            line={"color": _UP if values[-1] >= start else _DOWN, "width": 2},
        ),
    )
    fig.add_hline(
        y=start, line_dash="dash", line_color=_TEXT, opacity=0.5, annotation_text="Initial Capital"
    )
    return fig


def create_drawdown_chart(result: BacktestResult) -> go.Figure:
    """Plot the decline from peak equity and annotate the deepest point.

    Raises:
        ValueError: If the result has no equity points.

    """
    _require(bool(result.equity_curve), "drawdown chart", "equity points")
    dates = [p.date for p in result.equity_curve]
    drawdowns = build_drawdown_series([float(p.value) for p in result.equity_curve])
    deepest = min(range(len(drawdowns)), key=drawdowns.__getitem__)

    fig = _figure(
        result,
        "Drawdown",
        "Drawdown %",
        go.Scatter(
            x=dates,
            y=drawdowns,
            mode="lines",
            name="Drawdown",
            fill="tozeroy",
            line={"color": _DOWN, "width": 1},
            fillcolor="rgba(255, 23, 68, 0.3)",
        ),
    )
    fig.add_annotation(
        x=dates[deepest],
        y=drawdowns[deepest],
        text=f"Max DD: {drawdowns[deepest]:.1f}%",
        showarrow=True,
        arrowhead=2,
        font={"color": _DOWN},
    )
    return fig


def create_price_chart(result: BacktestResult) -> go.Figure:
    """Plot candles with a marker wherever the signal fired or a position closed.

    Raises:
        ValueError: If the result carries no candles.

    """
    _require(bool(result.candles), "price chart", "candles")
    candles = result.candles
    traces: list[Any] = [
        go.Candlestick(
            x=[c.date for c in candles],
            open=[float(c.open) for c in candles],
            high=[float(c.high) for c in candles],
            low=[float(c.low) for c in candles],
            close=[float(c.close) for c in candles],
            name="Price",
            increasing_line_color=_UP,
            decreasing_line_color=_DOWN,
        )
    ]

    for signal_type, name, symbol, colour in _TRIGGER_MARKERS:
        fired = [t for t in result.trigger_points if t.signal_type == signal_type]
        if fired:
            traces.append(
                go.Scatter(
                    x=[t.date for t in fired],
                    y=[float(t.price) for t in fired],
                    mode="markers",
                    name=name,
                    marker={"symbol": symbol, "size": 12, "color": colour},
                )
            )

    exits = [(t.exit_date, t.exit_price) for t in result.trade_history if t.exit_price is not None]
    if exits:
        traces.append(
            go.Scatter(
                x=[date for date, _ in exits],
                y=[float(price) for _, price in exits],
                mode="markers",
                name="Exit",
                marker={"symbol": "x", "size": 10, "color": _EXIT},
            )
        )

    fig = _figure(result, "Price", "Price", *traces)
    fig.update_layout(xaxis_rangeslider_visible=False)
    return fig


def create_pnl_distribution(result: BacktestResult) -> go.Figure:
    """Plot a histogram of per-trade returns with the mean marked.

    Trades returning more than zero count as winners, the rest as losers.

    Raises:
        ValueError: If the result contains no trades.

    """
    _require(bool(result.trade_history), "PnL distribution", "trades")
    returns = [float(t.pnl_pct) for t in result.trade_history]

    traces = [
        go.Histogram(x=subset, name=name, marker_color=colour, opacity=0.8)
        for name, colour, subset in (
            ("Winners", _UP, [r for r in returns if r > 0]),
            ("Losers", _DOWN, [r for r in returns if r <= 0]),
        )
        if subset
    ]
    fig = _figure(result, "Trade Returns", "Trades", *traces)
    fig.add_vline(
        x=sum(returns) / len(returns), line_dash="dash", line_color=_TEXT, annotation_text="Mean"
    )
    fig.update_layout(xaxis_title="Return %", barmode="overlay")
    return fig


def build_charts(result: BacktestResult) -> list[go.Figure]:
    """Return every chart that the result has data for."""
    figs = [create_equity_curve(result), create_drawdown_chart(result)]
    if result.candles:
        figs.append(create_price_chart(result))
    if result.trade_history:
        figs.append(create_pnl_distribution(result))
    return figs


def _to_html(figs: list[go.Figure]) -> str:
    body = "\n".join(fig.to_html(full_html=False, include_plotlyjs="cdn") for fig in figs)
    return _PAGE.format(title="Signal Backtest", body=body)


def show_charts(figs: list[go.Figure]) -> None:
    """Open the figures in the browser from a temporary HTML page.

    The page is not deleted so the browser can finish loading it.
    """
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".html", prefix="signal_backtest_", delete=False
    ) as page:
        page.write(_to_html(figs))
    webbrowser.open(f"file://{page.name}")


def save_charts(figs: list[go.Figure], output_path: Path) -> None:
    """Write the figures to one HTML page at ``output_path``.

    Raises:
        ValueError: If the path does not end with ``.html``.

    """
    if output_path.suffix.lower() != ".html":
        msg = f"Chart output must be an .html file, got: {output_path}"
        raise ValueError(msg)
    output_path.write_text(_to_html(figs))
