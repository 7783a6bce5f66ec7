"""Tests for backtest configuration and result models."""

from decimal import Decimal

import pytest

from signal_engine.apps.backtester.models import (
    BacktestConfig,
    BacktestResult,
    BacktestStats,
    OptimizationSuggestion,
)
from signal_engine.apps.signals.models import SignalSpec, SingleSignal
from signal_engine.core.models import (
    Direction,
    EquityPoint,
    SignalType,
    Trade,
    TriggerPoint,
)

_TS = 1704067200
_DAY = 86400
_SIGNAL = SingleSignal(SignalSpec(condition_expr="> 1", signal_type=SignalType.BUY))


def _config(**overrides: object) -> BacktestConfig:
    params: dict[str, object] = {
        "symbol": "AAPL",
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
        "signal": _SIGNAL,
    }
    params.update(overrides)
    return BacktestConfig(**params)  # type: ignore[arg-type]


class TestBacktestConfig:
    """Tests for BacktestConfig validation."""

    def test_defaults(self) -> None:
        """Use the documented defaults."""
        config = _config()
        assert config.initial_capital == Decimal(10000)
        assert config.position_size == Decimal(1)
        assert config.stop_loss_pct == Decimal("0.10")
        assert config.take_profit_pct == Decimal("0.20")
        assert config.fees_pct == Decimal("0.005")

    @pytest.mark.parametrize(
        ("field", "value", "match"),
        [
            ("initial_capital", Decimal(0), "initial_capital"),
            ("position_size", Decimal("1.5"), "position_size"),
            ("stop_loss_pct", Decimal(0), "stop_loss_pct"),
            ("take_profit_pct", Decimal(-1), "take_profit_pct"),
            ("fees_pct", Decimal(1), "fees_pct"),
        ],
    )
    def test_rejects_invalid(self, field: str, value: Decimal, match: str) -> None:
        """Raise ValueError for out-of-range parameters."""
        with pytest.raises(ValueError, match=match):
            _config(**{field: value})


class TestBacktestResult:
    """Tests for BacktestResult."""

    def _result(self) -> BacktestResult:
        trade = Trade(
            Direction.LONG,
            Decimal(2),
            Decimal(100),
            _TS,
            exit_price=Decimal(110),
            exit_time=_TS + 3 * _DAY,
            entry_fee=Decimal("0.5"),
            exit_fee=Decimal("0.55"),
        )
        stats = BacktestStats(
            profit=Decimal("12.345"),
            profit_amount=Decimal("1234.5"),
            win_rate=Decimal("66.6"),
            total_trades=1,
            buy_trades=1,
            winning_trades=1,
            max_drawdown=Decimal("8.26"),
            profit_factor=Decimal(999),
            sharpe_ratio=Decimal("1.234"),
            avg_hold_time=Decimal("3.4"),
            total_fees=Decimal("1.05"),
        )
        return BacktestResult(
            config=_config(),
            stats=stats,
            equity_curve=(
                EquityPoint(_TS, Decimal(10000)),
                EquityPoint(_TS + _DAY, Decimal(10500)),
            ),
            trigger_points=(TriggerPoint(_TS, SignalType.BUY, Decimal(100)),),
            trade_history=(trade,),
            optimization_suggestions=(
                OptimizationSuggestion("Stop Loss", "10%", "5%", "reason", "impact"),
            ),
        )

    def test_final_equity(self) -> None:
        """Return the last equity value."""
        assert self._result().final_equity == Decimal(10500)

    def test_final_equity_without_curve(self) -> None:
        """Fall back to the initial capital for an empty curve."""
        result = BacktestResult(_config(), BacktestStats(), (), (), ())
        assert result.final_equity == Decimal(10000)

    def test_to_dict_formats_stats(self) -> None:
        """Format percentages and ratios as strings."""
        data = self._result().to_dict()
        assert data["profit"] == "12.3"
        assert data["profitAmount"] == 1234
        assert data["winRate"] == "67"
        assert data["trades"] == 1
        assert data["maxDrawdown"] == "-8.3"
        assert data["profitFactor"] == "999.0"
        assert data["sharpeRatio"] == "1.23"
        assert data["avgHoldTime"] == "3 days"

    def test_to_dict_series(self) -> None:
        """Render series with dates and lower-case signal types."""
        data = self._result().to_dict()
        assert data["equityCurve"][1] == {"date": "2024-01-02", "value": 10500.0}
        assert data["triggerPoints"] == [{"date": "2024-01-01", "type": "buy", "price": 100.0}]
        trade = data["tradeHistory"][0]
        assert trade["exitDate"] == "2024-01-04"
        assert trade["pnlPct"] == pytest.approx(10.0)
        assert trade["pnlAmount"] == pytest.approx(20.0)
        assert trade["signalType"] == "buy"
        assert data["optimizationSuggestions"][0]["currentValue"] == "10%"
