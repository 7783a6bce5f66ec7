"""Tests for the backtest engine."""

import logging
from decimal import Decimal

import pytest

import signal_engine.apps.backtester.engine as engine_module
from signal_engine.apps.backtester.engine import BacktestEngine
from signal_engine.apps.backtester.models import BacktestConfig, BacktestStats
from signal_engine.apps.signals.models import (
    DualSignal,
    EmaConfig,
    IndicatorConfig,
    RsiConfig,
    RsiTrigger,
    SignalConfig,
    SignalSpec,
    SingleSignal,
)
from signal_engine.core.exceptions import InsufficientDataError
from signal_engine.core.models import (
    Candle,
    Direction,
    LogicMode,
    SignalType,
    Timeframe,
    TriggerPoint,
)
from signal_engine.core.timestamps import parse_timestamp

_JAN_1 = 1704067200
_DAY = 86400
_MIN_CANDLES = 50


def _candle(ts: int, close: str | int) -> Candle:
    c = Decimal(close)
    return Candle(timestamp=ts, open=c, high=c, low=c, close=c, volume=Decimal(1000))


def _series(*closes: str | int) -> list[Candle]:
    return [_candle(_JAN_1 + i * _DAY, c) for i, c in enumerate(closes)]


def _config(signal: SignalConfig, **overrides: object) -> BacktestConfig:
    params: dict[str, object] = {
        "symbol": "TEST",
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
        "signal": signal,
    }
    params.update(overrides)
    return BacktestConfig(**params)  # type: ignore[arg-type]


def _price_signal(expr: str, signal_type: SignalType = SignalType.BUY) -> SingleSignal:
    return SingleSignal(SignalSpec(condition_expr=expr, signal_type=signal_type))


class StubProvider:
    """Stub candle provider returning pre-configured candles."""

    def __init__(self, candles: list[Candle]) -> None:
        """Initialize with a fixed list of candles."""
        self._candles = candles
        self.requests: list[tuple[str, Timeframe, int, int]] = []

    async def get_candles(
        self,
        symbol: str,
        timeframe: Timeframe,
        start_ts: int,
        end_ts: int,
    ) -> list[Candle]:
        """Record the request and return the stored candles."""
        self.requests.append((symbol, timeframe, start_ts, end_ts))
        return self._candles


class TestRequiredCandles:
    """Tests for the minimum series length."""

    def test_min_candles(self) -> None:
        """Require the configured minimum without indicators."""
        engine = BacktestEngine(_config(_price_signal("> 1")), min_candles=_MIN_CANDLES)
        assert engine.required_candles() == _MIN_CANDLES

    def test_indicator_warmup_dominates(self) -> None:
        """Require the longest warm-up plus one tick."""
        spec = SignalSpec(
            signal_type=SignalType.BUY, indicator_config=IndicatorConfig(ema=EmaConfig())
        )
        engine = BacktestEngine(_config(SingleSignal(spec)), min_candles=_MIN_CANDLES)
        assert engine.required_candles() == 201

    def test_default_from_configuration(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Read the minimum from ``backtester.min_candles``."""
        monkeypatch.setenv("BACKTEST_MIN_CANDLES", "80")
        assert BacktestEngine(_config(_price_signal("> 1"))).required_candles() == 80

    def test_short_series_rejected(self) -> None:
        """Raise before simulating a series that is too short."""
        engine = BacktestEngine(_config(_price_signal("> 1")), min_candles=_MIN_CANDLES)
        with pytest.raises(InsufficientDataError) as exc_info:
            engine.simulate(_series(*[100] * 10))
        assert exc_info.value.candle_count == 10
        assert exc_info.value.required == _MIN_CANDLES
        assert "found 10 candles" in str(exc_info.value)


class TestSimulate:
    """Scenario tests for BacktestEngine.simulate."""

    def test_rsi_oversold_entry(self) -> None:
        """Enter long on the first oversold tick and hold to the end."""
        closes = [100 + i for i in range(40)] + [99 + i for i in range(20)]
        spec = SignalSpec(
            signal_type=SignalType.BUY,
            indicator_config=IndicatorConfig(rsi=RsiConfig(trigger_type=RsiTrigger.OVERSOLD)),
        )
        engine = BacktestEngine(_config(SingleSignal(spec)), min_candles=_MIN_CANDLES)
        result = engine.simulate(_series(*closes))

        assert result.trigger_points == (
            TriggerPoint(_JAN_1 + 40 * _DAY, SignalType.BUY, Decimal(99)),
        )
        (trade,) = result.trade_history
        assert trade.direction == Direction.LONG
        assert trade.entry_price == Decimal(99)
        assert trade.exit_price == Decimal(118)
        assert result.stats.total_trades == 1
        assert result.stats.winning_trades == 1
        assert len(result.equity_curve) == len(closes)

    def test_stop_loss_exit(self) -> None:
        """Exit at the stop-loss and stay flat while the price condition fails."""
        closes = [50] * 50 + [100, 96, 92, 90, 89]
        engine = BacktestEngine(_config(_price_signal("> 99")), min_candles=_MIN_CANDLES)
        result = engine.simulate(_series(*closes))

        (trade,) = result.trade_history
        assert trade.entry_price == Decimal(100)
        assert trade.exit_price == Decimal(90)
        assert trade.pnl_pct == Decimal(-10)
        assert trade.exit_time == _JAN_1 + 53 * _DAY
        assert result.stats.losing_trades == 1
        assert result.stats.profit < 0

    def test_equity_accounts_for_pnl_and_fees(self) -> None:
        """End at initial capital plus gross P&L minus all fees."""
        closes = [50] * 50 + [100, 96, 92, 90, 89]
        engine = BacktestEngine(_config(_price_signal("> 99")), min_candles=_MIN_CANDLES)
        result = engine.simulate(_series(*closes))

        trades = result.trade_history
        pnl = sum((t.pnl_amount or Decimal(0) for t in trades), Decimal(0))
        fees = sum((t.fees for t in trades), Decimal(0))
        assert result.final_equity == Decimal(10000) + pnl - fees
        assert result.final_equity == Decimal("8952.5")
        assert result.stats.total_fees == fees

    def test_unreachable_condition_trades_nothing(self, caplog: pytest.LogCaptureFixture) -> None:
        """Report zeros and warn when nothing ever triggers."""
        engine = BacktestEngine(_config(_price_signal("> 1000000")), min_candles=_MIN_CANDLES)
        with caplog.at_level(logging.WARNING):
            result = engine.simulate(_series(*[100] * 60))

        assert result.trigger_points == ()
        assert result.trade_history == ()
        assert result.stats.profit == 0
        assert result.stats.win_rate == 0
        assert result.stats.profit_factor == 0
        assert result.final_equity == Decimal(10000)
        assert "No signals were triggered" in caplog.text

    def test_all_mode_hint_in_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        """Suggest ANY logic when an ALL signal never triggers."""
        spec = SignalSpec(
            condition_expr="> 1000000", signal_type=SignalType.BUY, logic_mode=LogicMode.ALL
        )
        engine = BacktestEngine(_config(SingleSignal(spec)), min_candles=_MIN_CANDLES)
        with caplog.at_level(logging.WARNING):
            engine.simulate(_series(*[100] * 60))
        assert "consider ANY" in caplog.text

    def test_force_close_at_end(self) -> None:
        """Close an open position at the last close."""
        engine = BacktestEngine(
            _config(_price_signal("> 99"), fees_pct=Decimal(0)), min_candles=_MIN_CANDLES
        )
        result = engine.simulate(_series(*([50] * 50 + [100, 105, 110])))

        (trade,) = result.trade_history
        assert trade.is_closed
        assert trade.exit_price == Decimal(110)
        assert result.final_equity == Decimal(11000)
        assert result.equity_curve[-1].value == Decimal(11000)

    def test_dual_signal_opens_shorts(self) -> None:
        """Open a short when only the sell side fires, re-entering after an exit."""
        signal = DualSignal(
            buy=SignalSpec(condition_expr="> 1000", signal_type=SignalType.BUY),
            sell=SignalSpec(condition_expr="< 60", signal_type=SignalType.SELL),
        )
        engine = BacktestEngine(_config(signal), min_candles=_MIN_CANDLES)
        result = engine.simulate(_series(*([100] * 50 + [55, 44, 44])))

        first, second = result.trade_history
        assert first.direction == Direction.SHORT
        assert first.pnl_pct == Decimal(20)
        assert second.entry_price == Decimal(44)
        assert [t.signal_type for t in result.trigger_points] == [SignalType.SELL] * 2
        assert result.stats.sell_trades == 2

    def test_stats_failure_returns_zeroed_stats(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Log a statistics failure and keep the rest of the result."""

        def boom(*_args: object) -> BacktestStats:
            msg = "broken"
            raise ArithmeticError(msg)

        monkeypatch.setattr(engine_module, "calculate_stats", boom)
        engine = BacktestEngine(_config(_price_signal("> 99")), min_candles=_MIN_CANDLES)
        with caplog.at_level(logging.ERROR):
            result = engine.simulate(_series(*([50] * 50 + [100, 101])))

        assert result.stats == BacktestStats()
        assert len(result.trade_history) == 1
        assert "Statistics calculation failed" in caplog.text


class TestRun:
    """Tests for the async provider-driven run."""

    @pytest.mark.asyncio
    async def test_fetches_inclusive_range(self) -> None:
        """Request the configured range through the end of the last day."""
        provider = StubProvider(_series(*[100] * 60))
        config = _config(_price_signal("> 1"), start_date="2024-01-01", end_date="2024-03-01")
        result = await BacktestEngine(config, min_candles=_MIN_CANDLES).run(provider)

        assert provider.requests == [
            (
                "TEST",
                Timeframe.DAILY,
                _JAN_1,
                parse_timestamp("2024-03-01") + _DAY - 1,
            )
        ]
        assert len(result.candles) == 60
        assert len(result.trade_history) == 1
