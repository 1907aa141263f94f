"""Walk-forward backtest simulator.

The loop per testing bar t:
- predict on every bar observed so far (training prefix + testing[0..t])
- open at Close(t) when flat and the prediction is a confident buy/sell
- with a position open, exit at Close(t) on stop-loss, take-profit or a
  confident opposite signal
- append capital to the equity curve

A position still open after the last bar is closed at the last close.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .config import BacktestConfig
from .cost_model import CommissionCostModel
from .data_provider import OhlcvFrame, as_frame, to_epoch_ms
from .errors import InsufficientDataError
from .metrics import sharpe_ratio, total_return, trade_metrics, win_rate
from .strategy import SignalStrategy
from .types import BacktestResult, Bar, Position, Prediction, TradeResult

logger = logging.getLogger(__name__)

EXIT_STOP_LOSS = "stop_loss"
EXIT_TAKE_PROFIT = "take_profit"
EXIT_OPPOSITE_SIGNAL = "opposite_signal"
EXIT_END_OF_DATA = "end_of_data"

_OPPOSITE = {"buy": "sell", "sell": "buy"}


def trade_return(side: str, entry_price: float, exit_price: float) -> float:
    """Fractional return of a trade; positive when the move favoured ``side``."""
    if side == "buy":
        return (exit_price - entry_price) / entry_price
    return (entry_price - exit_price) / entry_price


class BacktestSimulator:
    """Drives a ``SignalStrategy`` bar by bar over the testing suffix.

    One instance may run several backtests; every ``run`` starts from a
    clean state.
    """

    def __init__(self, strategy: SignalStrategy, bt_cfg: BacktestConfig = BacktestConfig()):
        self.strategy = strategy
        self.bt_cfg = bt_cfg
        self.cost_model = CommissionCostModel(bt_cfg.cost_config)
        self._reset()

    def _reset(self) -> None:
        self.capital = float(self.bt_cfg.initial_capital)
        self.peak_capital = self.capital
        self.max_drawdown = 0.0

        self.position: Optional[Position] = None
        self.trades: List[TradeResult] = []
        self.equity_curve: List[float] = []

        self.frame: Optional[OhlcvFrame] = None
        self._closes = np.array([], dtype=float)
        self._stamps: List[int] = []

    # ---------- public API ----------

    def run(self, bars: Union[OhlcvFrame, pd.DataFrame, Sequence[Bar]]) -> BacktestResult:
        cfg = self.bt_cfg
        frame = as_frame(bars, symbol=cfg.symbol)
        # same ordering the strategy sees through OhlcvDataManager
        df = frame.df
        frame = OhlcvFrame(df=df[~df.index.duplicated(keep="last")].sort_index(), symbol=frame.symbol)
        n = len(frame)
        required = cfg.training_period + cfg.min_test_bars
        if n < required:
            raise InsufficientDataError(
                f"Not enough historical data for backtesting: {n} bars, need at least {required}",
                required=required,
                available=n,
            )

        self._reset()
        self.frame = frame
        self._closes = frame.df["Close"].to_numpy(dtype=float)
        self._stamps = [to_epoch_ms(ts) for ts in frame.df.index]

        logger.info(
            "Starting backtest %s: %d training bars, %d testing bars",
            frame.symbol or "-",
            cfg.training_period,
            n - cfg.training_period,
        )
        training = OhlcvFrame(df=frame.df.iloc[: cfg.training_period], symbol=frame.symbol)
        if not self.strategy.train(training):
            raise InsufficientDataError(
                f"Failed to train signal model on {cfg.training_period} bars",
                required=cfg.training_period,
                available=cfg.training_period,
            )

        self.equity_curve.append(self.capital)
        for t in range(cfg.training_period, n):
            self.step(t)

        if self.position is not None:
            self._exit(n - 1, reason=EXIT_END_OF_DATA)
            self.equity_curve.append(self.capital)

        result = self._build_result()
        logger.info(
            "Backtest completed: return=%.2f%% win_rate=%.2f%% max_dd=%.2f%% sharpe=%.2f trades=%d",
            result.total_return * 100,
            result.win_rate * 100,
            result.max_drawdown * 100,
            result.sharpe_ratio,
            result.total_trades,
        )
        return result

    def step(self, t: int) -> None:
        """Process bar index t of the full frame."""
        observed = OhlcvFrame(df=self.frame.df.iloc[: t + 1], symbol=self.frame.symbol)
        pred = self.strategy.predict(observed)
        price = float(self._closes[t])
        min_conf = self.bt_cfg.min_confidence

        if self.position is None and pred.confidence >= min_conf and pred.is_entry:
            self._enter_new(t, pred)

        if self.position is not None:
            reason = self._exit_reason(pred, price)
            if reason:
                self._exit(t, reason=reason)

        self.equity_curve.append(self.capital)

    # ---------- internal helpers ----------

    def _exit_reason(self, pred: Prediction, price: float) -> str:
        """Evaluate all exit conditions; the first true one names the exit."""
        side = self.position.side
        reasons = []

        if pred.stop_loss is not None:
            if (side == "buy" and price <= pred.stop_loss) or (side == "sell" and price >= pred.stop_loss):
                reasons.append(EXIT_STOP_LOSS)

        if pred.price_target is not None:
            if (side == "buy" and price >= pred.price_target) or (side == "sell" and price <= pred.price_target):
                reasons.append(EXIT_TAKE_PROFIT)

        if pred.action == _OPPOSITE[side] and pred.confidence >= self.bt_cfg.min_confidence:
            reasons.append(EXIT_OPPOSITE_SIGNAL)

        return reasons[0] if reasons else ""

    def _enter_new(self, t: int, pred: Prediction) -> None:
        self.position = Position(
            side=pred.action,
            entry_price=float(self._closes[t]),
            entry_time=self._stamps[t],
            confidence=float(pred.confidence),
            entry_index=t,
        )
        logger.debug("open %s at %.6g (t=%d, confidence=%.2f)", pred.action, self._closes[t], t, pred.confidence)

    def _exit(self, t: int, reason: str) -> None:
        pos = self.position
        if pos is None:
            return

        exit_price = float(self._closes[t])
        exit_time = self._stamps[t]
        ret = trade_return(pos.side, pos.entry_price, exit_price)

        self.trades.append(
            TradeResult(
                entry_time=pos.entry_time,
                exit_time=exit_time,
                entry_price=pos.entry_price,
                exit_price=exit_price,
                side=pos.side,
                return_pct=float(ret),
                duration=int(exit_time - pos.entry_time),
                confidence=pos.confidence,
                exit_reason=reason,
            )
        )

        trade_value = self.capital * self.bt_cfg.position_size
        self.capital += trade_value * ret - self.cost_model.round_trip_cost(trade_value)

        self.peak_capital = max(self.peak_capital, self.capital)
        drawdown = (self.peak_capital - self.capital) / self.peak_capital
        self.max_drawdown = max(self.max_drawdown, drawdown)

        logger.debug(
            "close %s at %.6g (t=%d, %s, return=%.4f, held %d bars)",
            pos.side,
            exit_price,
            t,
            reason,
            ret,
            t - pos.entry_index,
        )
        self.position = None

    def _build_result(self) -> BacktestResult:
        trades = list(self.trades)
        equity = list(self.equity_curve)
        return BacktestResult(
            trades=trades,
            equity_curve=equity,
            total_return=total_return(equity, self.bt_cfg.initial_capital),
            max_drawdown=float(self.max_drawdown),
            win_rate=win_rate(trades),
            sharpe_ratio=sharpe_ratio(equity),
            metrics=trade_metrics(trades),
            total_trades=len(trades),
            winning_trades=sum(1 for t in trades if t.return_pct > 0),
            losing_trades=sum(1 for t in trades if t.return_pct < 0),
        )
