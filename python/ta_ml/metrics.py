"""Performance metrics."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .types import BacktestMetrics, TradeResult


def max_drawdown(equity: Sequence[float]) -> float:
    """Maximum peak-to-trough decline as a positive fraction of the peak."""
    x = np.asarray(equity, dtype=float)
    if len(x) == 0:
        return 0.0
    peak = np.maximum.accumulate(x)
    dd = (peak - x) / np.maximum(peak, np.finfo(float).tiny)
    return float(np.nanmax(dd))


def period_returns(equity: Sequence[float]) -> np.ndarray:
    """Percentage change between consecutive equity points."""
    x = np.asarray(equity, dtype=float)
    if len(x) < 2:
        return np.array([], dtype=float)
    return np.diff(x) / x[:-1]


def sharpe_ratio(equity: Sequence[float]) -> float:
    """Mean / std of per-period returns, unannualized.

    Exactly 0 when there are no returns or they are all identical.
    """
    r = period_returns(equity)
    if len(r) == 0 or np.ptp(r) == 0:
        return 0.0
    std = float(np.std(r))
    if std == 0:
        return 0.0
    return float(np.mean(r) / std)


def win_rate(trades: Sequence[TradeResult]) -> float:
    if not trades:
        return 0.0
    return sum(1 for t in trades if t.return_pct > 0) / len(trades)


def total_return(equity: Sequence[float], initial_capital: float) -> float:
    if len(equity) == 0:
        return 0.0
    return (float(equity[-1]) - initial_capital) / initial_capital


def consecutive_streaks(trades: Sequence[TradeResult]) -> tuple[int, int]:
    """Longest (win, loss) runs. Anything not strictly positive extends a loss run."""
    best_w = best_l = cur_w = cur_l = 0
    for t in trades:
        if t.return_pct > 0:
            cur_w += 1
            cur_l = 0
            best_w = max(best_w, cur_w)
        else:
            cur_l += 1
            cur_w = 0
            best_l = max(best_l, cur_l)
    return best_w, best_l


def trade_metrics(trades: Sequence[TradeResult]) -> BacktestMetrics:
    wins = [t.return_pct for t in trades if t.return_pct > 0]
    losses = [t.return_pct for t in trades if t.return_pct < 0]

    avg_win = float(np.mean(wins)) if wins else 0.0
    avg_loss = abs(float(np.mean(losses))) if losses else 0.0
    profit_factor = (avg_win * len(wins)) / (avg_loss * len(losses)) if avg_loss > 0 else 0.0

    max_w, max_l = consecutive_streaks(trades)
    return BacktestMetrics(
        avg_win=avg_win,
        avg_loss=avg_loss,
        profit_factor=float(profit_factor),
        max_consecutive_wins=max_w,
        max_consecutive_losses=max_l,
    )
