"""Tests for backtester metrics."""

from decimal import Decimal

import pytest

from signal_engine.apps.backtester.metrics import (
    PROFIT_FACTOR_CAP,
    avg_hold_time,
    avg_loss,
    avg_win,
    calculate_stats,
    max_drawdown,
    profit_factor,
    sharpe_ratio,
    total_fees,
    total_return,
    win_rate,
)
from signal_engine.core.models import Direction, EquityPoint, Trade

ZERO = Decimal(0)
_TS = 1704067200
_DAY = 86400
_CAPITAL = Decimal(10000)


def _trade(
    entry: str,
    exit_: str | None,
    *,
    days: int = 1,
    direction: Direction = Direction.LONG,
    fee: str = "0",
) -> Trade:
    return Trade(
        direction=direction,
        shares=Decimal(1),
        entry_price=Decimal(entry),
        entry_time=_TS,
        exit_price=Decimal(exit_) if exit_ is not None else None,
        exit_time=_TS + days * _DAY if exit_ is not None else None,
        entry_fee=Decimal(fee),
        exit_fee=Decimal(fee) if exit_ is not None else ZERO,
    )


def _curve(*values: str) -> list[EquityPoint]:
    return [EquityPoint(_TS + i * _DAY, Decimal(v)) for i, v in enumerate(values)]


class TestTotalReturn:
    """Tests for total_return."""

    def test_positive(self) -> None:
        """Report the gain as a percentage."""
        assert total_return(_CAPITAL, Decimal(11000)) == Decimal(10)

    def test_negative(self) -> None:
        """Report the loss as a negative percentage."""
        assert total_return(_CAPITAL, Decimal(9000)) == Decimal(-10)


class TestTradeStatistics:
    """Tests for the per-trade statistics."""

    def test_win_rate_counts_flat_trades_as_losses(self) -> None:
        """Treat a zero-return trade as a loss."""
        trades = [_trade("100", "110"), _trade("100", "90"), _trade("100", "100")]
        rate = win_rate(trades)
        assert Decimal(33) < rate < Decimal(34)

    def test_win_rate_ignores_open_trades(self) -> None:
        """Count only completed trades."""
        assert win_rate([_trade("100", "110"), _trade("100", None)]) == Decimal(100)
        assert win_rate([]) == ZERO

    def test_avg_win_and_loss(self) -> None:
        """Average percentage returns of winners and losers."""
        trades = [_trade("100", "110"), _trade("100", "130"), _trade("100", "95")]
        assert avg_win(trades) == Decimal(20)
        assert avg_loss(trades) == Decimal(-5)

    def test_short_wins_when_price_falls(self) -> None:
        """Score short trades by their direction-aware return."""
        assert win_rate([_trade("100", "90", direction=Direction.SHORT)]) == Decimal(100)

    def test_avg_hold_time(self) -> None:
        """Average holding period in days."""
        assert avg_hold_time([_trade("1", "2", days=4), _trade("1", "2", days=2)]) == Decimal(3)


class TestProfitFactor:
    """Tests for profit_factor."""

    def test_ratio(self) -> None:
        """Divide gross win percentage by gross loss percentage."""
        trades = [_trade("100", "120"), _trade("100", "90")]
        assert profit_factor(trades) == Decimal(2)

    def test_no_losses_is_capped(self) -> None:
        """Return the cap when there are wins and no losses."""
        assert profit_factor([_trade("100", "110")]) == PROFIT_FACTOR_CAP

    def test_no_trades(self) -> None:
        """Return zero without trades."""
        assert profit_factor([]) == ZERO
        assert profit_factor([_trade("100", "100")]) == ZERO


class TestMaxDrawdown:
    """Tests for max_drawdown."""

    def test_peak_to_trough(self) -> None:
        """Measure the worst decline from a running peak."""
        assert max_drawdown(_curve("10000", "12000", "9000", "11000"), _CAPITAL) == Decimal(25)

    def test_peak_starts_at_initial_capital(self) -> None:
        """Count a decline below the starting capital."""
        assert max_drawdown(_curve("9000", "9500"), _CAPITAL) == Decimal(10)

    def test_monotonic_growth(self) -> None:
        """Report no drawdown for a rising curve."""
        assert max_drawdown(_curve("10000", "10100", "10200"), _CAPITAL) == ZERO


class TestSharpeRatio:
    """Tests for sharpe_ratio."""

    def test_too_few_points(self) -> None:
        """Return zero with fewer than two points."""
        assert sharpe_ratio(_curve("100")) == ZERO

    def test_flat_curve(self) -> None:
        """Return zero for a zero standard deviation."""
        assert sharpe_ratio(_curve("100", "100", "100")) == ZERO

    def test_sign_follows_mean_return(self) -> None:
        """Score rising curves positive and falling curves negative."""
        assert sharpe_ratio(_curve("100", "110", "121", "145.2")) > ZERO
        assert sharpe_ratio(_curve("100", "90", "85", "60")) < ZERO

    def test_population_std_annualized(self) -> None:
        """Divide by the population std and scale by sqrt(252)."""
        # returns 0.1, 0.1, 0: mean / std == sqrt(2)
        result = sharpe_ratio(_curve("100", "110", "121", "121"))
        assert abs(result - Decimal(504).sqrt()) < Decimal("1e-20")

    def test_exact_value(self) -> None:
        """Match a known value for a mixed curve."""
        result = sharpe_ratio(_curve("100", "110", "105", "120", "118"))
        assert float(result) == pytest.approx(9.148999320975483, rel=1e-9)


class TestCalculateStats:
    """Tests for calculate_stats."""

    def test_aggregates_everything(self) -> None:
        """Populate every field from trades and the curve."""
        trades = [
            _trade("100", "110", fee="1"),
            _trade("100", "120", direction=Direction.SHORT, fee="1"),
            _trade("100", None),
        ]
        curve = _curve("10000", "10500", "9975")
        stats = calculate_stats(trades, curve, _CAPITAL)
        assert stats.total_trades == 2
        assert stats.buy_trades == 2
        assert stats.sell_trades == 1
        assert stats.winning_trades == 1
        assert stats.losing_trades == 1
        assert stats.win_rate == Decimal(50)
        assert stats.profit_amount == Decimal(-25)
        assert stats.profit == Decimal("-0.25")
        assert stats.total_fees == Decimal(4)
        assert stats.profit_factor == Decimal("0.5")
        assert stats.max_drawdown == Decimal(5)

    def test_no_trades(self) -> None:
        """Report zeros when nothing traded."""
        stats = calculate_stats([], _curve("10000", "10000"), _CAPITAL)
        assert stats.total_trades == 0
        assert stats.profit == ZERO
        assert stats.win_rate == ZERO
        assert stats.profit_factor == ZERO
        assert total_fees([]) == ZERO
