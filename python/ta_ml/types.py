"""Shared types for the ML signal pipeline: bars, predictions, trades, results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

HOLD = 0
BUY = 1
SELL = 2

ACTIONS = {HOLD: "hold", BUY: "buy", SELL: "sell"}


@dataclass(frozen=True)
class Bar:
    """OHLCV bar. ``timestamp`` is epoch milliseconds."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class Prediction:
    """Action for the latest bar plus heuristic confidence and price levels."""

    action: str  # 'hold'/'buy'/'sell'
    confidence: float
    price_target: Optional[float] = None
    stop_loss: Optional[float] = None

    @classmethod
    def neutral(cls) -> "Prediction":
        return cls(action="hold", confidence=0.0)

    @property
    def is_entry(self) -> bool:
        return self.action in ("buy", "sell")


@dataclass
class Position:
    """Open-trade state. At most one is open during a simulation."""

    side: str  # 'buy'/'sell'
    entry_price: float
    entry_time: int
    confidence: float
    entry_index: int = 0


@dataclass(frozen=True)
class TradeResult:
    """A closed trade. ``return_pct`` is a fraction (0.1 == +10%)."""

    entry_time: int
    exit_time: int
    entry_price: float
    exit_price: float
    side: str
    return_pct: float
    duration: int  # ms
    confidence: float
    exit_reason: str = ""


@dataclass(frozen=True)
class BacktestMetrics:
    avg_win: float = 0.0
    avg_loss: float = 0.0
    profit_factor: float = 0.0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0


@dataclass(frozen=True)
class BacktestResult:
    """Complete backtest results."""

    trades: list[TradeResult] = field(default_factory=list)
    equity_curve: list[float] = field(default_factory=list)

    total_return: float = 0.0
    max_drawdown: float = 0.0
    win_rate: float = 0.0
    sharpe_ratio: float = 0.0
    metrics: BacktestMetrics = field(default_factory=BacktestMetrics)

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0

    @property
    def final_equity(self) -> float:
        return float(self.equity_curve[-1]) if self.equity_curve else float("nan")
