"""Backtest engine that walks a candle series and simulates signal-driven trades.

Compute indicator snapshots at each tick, evaluate the run's single or
dual signal, and drive a ``Portfolio`` through stop-loss, take-profit,
entry, and end-of-data exits. Return a ``BacktestResult`` containing the
equity curve, trigger points, trade history, statistics, and tuning
suggestions.
"""

import logging
from collections.abc import Sequence
from decimal import Decimal

from signal_engine.apps.backtester.advisor import generate_suggestions
from signal_engine.apps.backtester.indicators import compute_indicators, warmup_period
from signal_engine.apps.backtester.metrics import calculate_stats
from signal_engine.apps.backtester.models import (
    BacktestConfig,
    BacktestResult,
    BacktestStats,
    OptimizationSuggestion,
)
from signal_engine.apps.backtester.portfolio import Portfolio
from signal_engine.apps.signals.conditions import build_conditions
from signal_engine.apps.signals.evaluator import evaluate_conditions
from signal_engine.apps.signals.models import (
    ComputedIndicators,
    DualCheckResult,
    DualSignal,
    IndicatorConfig,
    SignalCheckResult,
    signal_specs,
)
from signal_engine.core.config import get_config
from signal_engine.core.exceptions import InsufficientDataError
from signal_engine.core.models import (
    Candle,
    Direction,
    EquityPoint,
    LogicMode,
    Trade,
    TriggerPoint,
)
from signal_engine.core.protocols import CandleProvider
from signal_engine.core.timestamps import SECONDS_PER_DAY, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_MIN_CANDLES = 50


class _SnapshotTrack:
    """Per-config indicator snapshots, carrying the previous tick's snapshot forward."""

    def __init__(self, config: IndicatorConfig) -> None:
        self._config = config
        self._current: ComputedIndicators | None = None

    def advance(
        self, window: Sequence[Candle]
    ) -> tuple[ComputedIndicators, ComputedIndicators | None]:
        previous = self._current
        if previous is None and len(window) > 1:
            previous = compute_indicators(window[:-1], self._config)
        self._current = compute_indicators(window, self._config)
        return self._current, previous


class BacktestEngine:
    """Run a signal definition against historical candle data.

    The simulation itself is synchronous and keeps all state in a
    ``Portfolio`` created per call, so one engine can serve concurrent
    runs on separate candle series.
    """

    def __init__(self, config: BacktestConfig, min_candles: int | None = None) -> None:
        """Initialize the backtest engine.

        Args:
            config: Run parameters and the signal to evaluate.
            min_candles: Shortest series accepted. Defaults to
                ``backtester.min_candles`` from the configuration.

        """
        self._config = config
        if min_candles is None:
            min_candles = get_config().get_int("backtester.min_candles", DEFAULT_MIN_CANDLES)
        self._min_candles = min_candles
        self._specs = signal_specs(config.signal)
        self._conditions = [build_conditions(spec) for spec in self._specs]

    @property
    def config(self) -> BacktestConfig:
        """Return the run configuration."""
        return self._config

    def required_candles(self) -> int:
        """Return the number of candles a run needs.

        The larger of the minimum run length and every side's longest
        indicator warm-up plus one tick for crossovers.
        """
        warmup = max(warmup_period(spec.indicator_config) for spec in self._specs)
        return max(self._min_candles, warmup + 1)

    async def run(self, provider: CandleProvider) -> BacktestResult:
        """Fetch the configured candle range from ``provider`` and simulate it.

        The end date is inclusive: the range runs to the end of that day.
        """
        cfg = self._config
        start_ts = parse_timestamp(cfg.start_date)
        end_ts = parse_timestamp(cfg.end_date) + SECONDS_PER_DAY - 1
        candles = await provider.get_candles(cfg.symbol, cfg.timeframe, start_ts, end_ts)
        logger.info(
            "Fetched %d %s candles for %s (%s to %s)",
            len(candles),
            cfg.timeframe.value,
            cfg.symbol,
            cfg.start_date,
            cfg.end_date,
        )
        return self.simulate(candles)

    def simulate(self, candles: Sequence[Candle]) -> BacktestResult:
        """Simulate the signal over an ordered candle series.

        Args:
            candles: Candles sorted ascending by timestamp, no duplicates.

        Returns:
            The complete ``BacktestResult``.

        Raises:
            InsufficientDataError: If the series is too short for the
                minimum run length or an indicator's warm-up.

        """
        series = tuple(candles)
        required = self.required_candles()
        if len(series) < required:
            raise InsufficientDataError(len(series), required)

        cfg = self._config
        logger.info(
            "Starting backtest for %s over %d candles (%s signal)",
            cfg.symbol,
            len(series),
            "dual" if isinstance(cfg.signal, DualSignal) else "single",
        )

        portfolio = Portfolio(cfg.initial_capital, cfg.position_size, cfg.fees_pct)
        tracks = [_SnapshotTrack(spec.indicator_config) for spec in self._specs]
        equity_curve = [EquityPoint(series[0].timestamp, cfg.initial_capital)]
        trigger_points: list[TriggerPoint] = []

        # TODO: keep incremental indicator state instead of recomputing the
        # trailing window each tick once series reach tens of thousands of candles.
        for i in range(1, len(series)):
            candle = series[i]
            window = series[: i + 1]
            snapshots = [track.advance(window) for track in tracks]

            portfolio.check_exit(
                candle.close, candle.timestamp, cfg.stop_loss_pct, cfg.take_profit_pct
            )

            if portfolio.position is None:
                direction = self._fired_direction(candle.close, snapshots)
                if direction is not None and portfolio.open_position(
                    direction, candle.close, candle.timestamp
                ):
                    trigger_points.append(
                        TriggerPoint(candle.timestamp, direction.signal_type, candle.close)
                    )

            equity_curve.append(EquityPoint(candle.timestamp, portfolio.equity(candle.close)))

        last = series[-1]
        if portfolio.force_close(last.close, last.timestamp) is not None:
            equity_curve[-1] = EquityPoint(last.timestamp, portfolio.capital)

        trades = portfolio.trades
        self._log_summary(len(trigger_points), len(trades))

        stats = self._safe_stats(trades, equity_curve)
        suggestions = self._safe_suggestions(stats)
        return BacktestResult(
            config=cfg,
            stats=stats,
            equity_curve=tuple(equity_curve),
            trigger_points=tuple(trigger_points),
            trade_history=tuple(trades),
            optimization_suggestions=tuple(suggestions),
            candles=series,
        )

    def _fired_direction(
        self,
        price: Decimal,
        snapshots: list[tuple[ComputedIndicators, ComputedIndicators | None]],
    ) -> Direction | None:
        """Return the direction to enter at this tick, if the signal fired."""
        results = [
            evaluate_conditions(conditions, spec, price, current, previous)
            for conditions, spec, (current, previous) in zip(
                self._conditions, self._specs, snapshots, strict=True
            )
        ]
        if isinstance(self._config.signal, DualSignal):
            return DualCheckResult(buy=results[0], sell=results[1]).direction
        result: SignalCheckResult = results[0]
        return result.direction

    def _log_summary(self, trigger_count: int, trade_count: int) -> None:
        logger.info(
            "Backtest for %s finished: %d triggers, %d trades",
            self._config.symbol,
            trigger_count,
            trade_count,
        )
        if trigger_count == 0:
            all_mode = any(spec.logic_mode == LogicMode.ALL for spec in self._specs)
            logger.warning(
                "No signals were triggered for %s%s",
                self._config.symbol,
                ". ALL logic needs every indicator to trigger at once; consider ANY"
                if all_mode
                else "",
            )

    def _safe_stats(self, trades: list[Trade], equity_curve: list[EquityPoint]) -> BacktestStats:
        try:
            return calculate_stats(trades, equity_curve, self._config.initial_capital)
        except Exception:  # noqa: BLE001
            logger.exception("Statistics calculation failed for %s", self._config.symbol)
            return BacktestStats()

    def _safe_suggestions(self, stats: BacktestStats) -> list[OptimizationSuggestion]:
        try:
            return generate_suggestions(self._config, stats)
        except Exception:  # noqa: BLE001
            logger.exception("Optimization suggestions failed for %s", self._config.symbol)
            return []
