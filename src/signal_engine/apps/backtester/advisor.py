"""Rule-based parameter-tuning suggestions.

Each rule pairs a predicate over ``(config, stats)`` with a builder for
the suggestion it produces. Rules are independent and all applicable
ones fire, in the order of ``RULES``. Indicator rules look at the
primary indicator config of the run's signal.
"""

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

from signal_engine.apps.backtester.models import (
    BacktestConfig,
    BacktestStats,
    OptimizationSuggestion,
)
from signal_engine.apps.signals.models import IndicatorConfig, RsiTrigger, primary_spec
from signal_engine.core.models import HUNDRED, LogicMode

_HALF = Decimal("0.5")
_STANDARD_DEVIATION = Decimal(2)


@dataclass(frozen=True)
class Rule:
    """A named ``(predicate, build)`` pair."""

    name: str
    predicate: Callable[[BacktestConfig, BacktestStats], bool]
    build: Callable[[BacktestConfig, BacktestStats], OptimizationSuggestion]


def _indicators(config: BacktestConfig) -> IndicatorConfig:
    return primary_spec(config.signal).indicator_config


def _logic_mode(config: BacktestConfig) -> LogicMode:
    return primary_spec(config.signal).logic_mode


def _num(value: Decimal) -> str:
    """Render a Decimal without trailing zeros (``2.50`` -> ``2.5``)."""
    text = f"{value:f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def _low_win_rate(config: BacktestConfig, stats: BacktestStats) -> OptimizationSuggestion:
    mode = _logic_mode(config)
    flipped = LogicMode.ANY if mode == LogicMode.ALL else LogicMode.ALL
    hint = (
        "Using ANY logic may generate more signals with better timing"
        if mode == LogicMode.ALL
        else "Using ALL logic may filter out false signals"
    )
    return OptimizationSuggestion(
        parameter="Logic Mode",
        current_value=mode.value,
        suggested_value=flipped.value,
        reason=f"Win rate is low at {stats.win_rate:.0f}%. {hint}",
        potential_impact="Could improve win rate by 10-20%",
    )


def _rsi_period(config: BacktestConfig, _stats: BacktestStats) -> OptimizationSuggestion:
    rsi = _indicators(config).rsi
    period = rsi.period if rsi is not None else 14
    return OptimizationSuggestion(
        parameter="RSI Period",
        current_value=str(period),
        suggested_value="21",
        reason=(
            "Standard RSI(14) may be too sensitive or too slow. Longer period (21) "
            "reduces noise, shorter (9) catches trends faster"
        ),
        potential_impact="Could improve signal quality by 15%",
    )


def _rsi_levels(config: BacktestConfig, _stats: BacktestStats) -> OptimizationSuggestion:
    rsi = _indicators(config).rsi
    oversold = _num(rsi.oversold) if rsi is not None else "30"
    overbought = _num(rsi.overbought) if rsi is not None else "70"
    return OptimizationSuggestion(
        parameter="RSI Levels",
        current_value=f"Oversold: {oversold}, Overbought: {overbought}",
        suggested_value="Oversold: 25, Overbought: 75",
        reason="More extreme levels filter out weak signals and catch stronger reversals",
        potential_impact="Could reduce false signals by 30%",
    )


def _macd_params(config: BacktestConfig, _stats: BacktestStats) -> OptimizationSuggestion:
    macd = _indicators(config).macd
    fast, slow = (macd.fast, macd.slow) if macd is not None else (12, 26)
    return OptimizationSuggestion(
        parameter="MACD Parameters",
        current_value=f"Fast: {fast}, Slow: {slow}",
        suggested_value="Fast: 8, Slow: 21 (more responsive) or Fast: 19, Slow: 39 (less noise)",
        reason=(
            "Current parameters may be missing trend changes. Faster settings catch "
            "trends earlier, slower settings reduce whipsaws"
        ),
        potential_impact="Could improve profit factor by 20-40%",
    )


def _ema_periods(config: BacktestConfig, _stats: BacktestStats) -> OptimizationSuggestion:
    ema = _indicators(config).ema
    short, long = (ema.short, ema.long) if ema is not None else (50, 200)
    return OptimizationSuggestion(
        parameter="EMA Periods",
        current_value=f"Fast: {short}, Slow: {long}",
        suggested_value="Fast: 20, Slow: 50 (more signals) or Fast: 10, Slow: 30 (short-term)",
        reason=(
            "Current periods are generating too few signals. Shorter periods "
            "increase trading frequency"
        ),
        potential_impact="Could generate 2-3x more trading opportunities",
    )


def _bollinger_deviation(config: BacktestConfig, _stats: BacktestStats) -> OptimizationSuggestion:
    bands = _indicators(config).bollinger
    deviation = bands.deviation if bands is not None else _STANDARD_DEVIATION
    suggested = Decimal("2.5") if deviation == _STANDARD_DEVIATION else Decimal("1.5")
    problem = (
        "too many false breakouts" if deviation < _STANDARD_DEVIATION else "missing valid breakouts"
    )
    return OptimizationSuggestion(
        parameter="Bollinger Bands Std Dev",
        current_value=_num(deviation),
        suggested_value=_num(suggested),
        reason=f"Current setting may be generating {problem}",
        potential_impact="Could improve win rate by 10-15%",
    )


def _volume_multiplier(config: BacktestConfig, _stats: BacktestStats) -> OptimizationSuggestion:
    volume = _indicators(config).volume
    multiplier = volume.multiplier if volume is not None else Decimal("1.5")
    return OptimizationSuggestion(
        parameter="Volume Multiplier",
        current_value=f"{_num(multiplier)}x",
        suggested_value=f"{_num(multiplier + _HALF)}x",
        reason="Higher volume threshold filters weak signals and confirms strong price movements",
        potential_impact="Could improve profit factor by 25%",
    )


def _stop_loss(config: BacktestConfig, stats: BacktestStats) -> OptimizationSuggestion:
    return OptimizationSuggestion(
        parameter="Stop Loss",
        current_value=f"{_num(config.stop_loss_pct * HUNDRED)}%",
        suggested_value="5%",
        reason=(
            f"Average loss is {abs(stats.avg_loss):.1f}%, which is high. "
            "Tighter stop loss limits downside"
        ),
        potential_impact="Could reduce average loss by 30-40%",
    )


def _strategy_review(_config: BacktestConfig, _stats: BacktestStats) -> OptimizationSuggestion:
    return OptimizationSuggestion(
        parameter="Strategy Review",
        current_value="Current configuration",
        suggested_value="Consider combining multiple indicators",
        reason=(
            "Strategy is unprofitable. Using 2-3 confirming indicators "
            "(e.g., RSI + MACD + Volume) improves accuracy"
        ),
        potential_impact="Could turn strategy profitable",
    )


def _trend_filter(_config: BacktestConfig, stats: BacktestStats) -> OptimizationSuggestion:
    return OptimizationSuggestion(
        parameter="Risk-Adjusted Returns",
        current_value=f"Sharpe: {stats.sharpe_ratio:.2f}",
        suggested_value="Add trend filter (EMA crossover)",
        reason=(
            "Risk-adjusted returns are poor. Trading with trend (above/below EMA) "
            "improves consistency"
        ),
        potential_impact="Could double Sharpe ratio",
    )


RULES: tuple[Rule, ...] = (
    Rule("low_win_rate", lambda _c, s: s.win_rate < 40, _low_win_rate),  # noqa: PLR2004
    Rule(
        "rsi_period",
        lambda c, s: (rsi := _indicators(c).rsi) is not None
        and rsi.period == 14  # noqa: PLR2004
        and s.win_rate < 50,  # noqa: PLR2004
        _rsi_period,
    ),
    Rule(
        "rsi_levels",
        lambda c, s: (rsi := _indicators(c).rsi) is not None
        and rsi.trigger_type in (RsiTrigger.OVERSOLD, RsiTrigger.OVERBOUGHT)
        and s.win_rate < 45,  # noqa: PLR2004
        _rsi_levels,
    ),
    Rule(
        "macd_params",
        lambda c, s: _indicators(c).macd is not None and s.profit_factor < Decimal("1.5"),
        _macd_params,
    ),
    Rule(
        "ema_periods",
        lambda c, s: _indicators(c).ema is not None and s.total_trades < 10,  # noqa: PLR2004
        _ema_periods,
    ),
    Rule(
        "bollinger_deviation",
        lambda c, s: _indicators(c).bollinger is not None and s.win_rate < 45,  # noqa: PLR2004
        _bollinger_deviation,
    ),
    Rule(
        "volume_multiplier",
        lambda c, s: _indicators(c).volume is not None and s.profit_factor < Decimal("1.2"),
        _volume_multiplier,
    ),
    Rule("stop_loss", lambda _c, s: abs(s.avg_loss) > 5, _stop_loss),  # noqa: PLR2004
    Rule("strategy_review", lambda _c, s: s.profit_factor < 1, _strategy_review),
    Rule("trend_filter", lambda _c, s: s.sharpe_ratio < _HALF, _trend_filter),
)


def generate_suggestions(
    config: BacktestConfig,
    stats: BacktestStats,
    rules: tuple[Rule, ...] = RULES,
) -> list[OptimizationSuggestion]:
    """Return a suggestion for every rule whose predicate holds, in rule order."""
    return [rule.build(config, stats) for rule in rules if rule.predicate(config, stats)]
