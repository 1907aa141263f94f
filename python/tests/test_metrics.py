"""Tests for performance metrics."""

import pytest

from ta_ml.cost_model import CommissionCostModel
from ta_ml.config import CostConfig
from ta_ml.metrics import (
    consecutive_streaks,
    max_drawdown,
    period_returns,
    sharpe_ratio,
    total_return,
    trade_metrics,
    win_rate,
)
from ta_ml.types import TradeResult


def _trade(ret: float) -> TradeResult:
    return TradeResult(
        entry_time=0,
        exit_time=1,
        entry_price=100.0,
        exit_price=100.0 * (1 + ret),
        side="buy",
        return_pct=ret,
        duration=1,
        confidence=0.7,
    )


class TestSharpe:
    """Tests for the unannualized Sharpe ratio."""

    def test_identical_returns_is_zero(self):
        assert sharpe_ratio([100.0, 110.0, 121.0]) == 0.0

    def test_constant_curve_is_zero(self):
        assert sharpe_ratio([100.0] * 10) == 0.0

    def test_too_short(self):
        assert sharpe_ratio([]) == 0.0
        assert sharpe_ratio([100.0]) == 0.0

    def test_population_std(self):
        # returns [0.1, 0.0] -> mean 0.05, population std 0.05
        assert sharpe_ratio([100.0, 110.0, 110.0]) == pytest.approx(1.0)

    def test_period_returns(self):
        assert period_returns([100.0, 110.0, 99.0]).tolist() == pytest.approx([0.1, -0.1])


class TestDrawdown:
    def test_peak_to_trough(self):
        assert max_drawdown([100.0, 120.0, 90.0, 130.0]) == pytest.approx(0.25)

    def test_monotone(self):
        assert max_drawdown([100.0, 101.0, 102.0]) == 0.0
        assert max_drawdown([]) == 0.0


class TestTradeStats:
    def test_empty(self):
        assert win_rate([]) == 0.0
        m = trade_metrics([])
        assert m.profit_factor == 0.0
        assert (m.max_consecutive_wins, m.max_consecutive_losses) == (0, 0)

    def test_profit_factor(self):
        trades = [_trade(0.10), _trade(0.20), _trade(-0.05)]
        m = trade_metrics(trades)
        assert m.avg_win == pytest.approx(0.15)
        assert m.avg_loss == pytest.approx(0.05)
        # (0.15 * 2) / (0.05 * 1)
        assert m.profit_factor == pytest.approx(6.0)
        assert win_rate(trades) == pytest.approx(2 / 3)

    def test_no_losses_profit_factor_is_zero(self):
        assert trade_metrics([_trade(0.1), _trade(0.2)]).profit_factor == 0.0

    def test_streaks(self):
        rets = [0.1, 0.2, -0.1, 0.0, -0.3, 0.1]
        # a flat trade extends the losing run
        assert consecutive_streaks([_trade(r) for r in rets]) == (2, 3)

    def test_total_return(self):
        assert total_return([10_000.0, 10_500.0], 10_000.0) == pytest.approx(0.05)
        assert total_return([], 10_000.0) == 0.0


class TestCommission:
    def test_round_trip(self):
        model = CommissionCostModel(CostConfig(commission_rate=0.001))
        assert model.transaction_cost(10_000.0) == pytest.approx(10.0)
        assert model.round_trip_cost(10_000.0) == pytest.approx(20.0)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            CostConfig(commission_rate=-0.1)
