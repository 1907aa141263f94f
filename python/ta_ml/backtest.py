"""Backtest runner utilities."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Optional

import pandas as pd

from .config import BacktestConfig, IndicatorConfig, ModelConfig, StrategyConfig
from .data_provider import CsvProvider, OhlcvFrame, YfinanceProvider
from .simulator import BacktestSimulator
from .strategy import MLSignalStrategy
from .types import BacktestResult


def run_backtest(
    frame: OhlcvFrame,
    bt_cfg: BacktestConfig = BacktestConfig(),
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    strat_cfg: StrategyConfig = StrategyConfig(),
    model_cfg: ModelConfig = ModelConfig(),
) -> BacktestResult:
    """Train a fresh ML strategy on the prefix and simulate the rest."""
    strategy = MLSignalStrategy(ind_cfg=ind_cfg, strat_cfg=strat_cfg, model_cfg=model_cfg)
    return BacktestSimulator(strategy, bt_cfg).run(frame)


def run_from_yfinance(
    symbol: str,
    start: str,
    end: str,
    interval: str = "1d",
    output_dir: Optional[str | Path] = "outputs",
    bt_cfg: BacktestConfig = BacktestConfig(),
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    strat_cfg: StrategyConfig = StrategyConfig(),
    model_cfg: ModelConfig = ModelConfig(),
    auto_adjust: bool = False,
) -> tuple[BacktestResult, dict[str, Path]]:
    """Convenience runner using yfinance."""
    frame = YfinanceProvider().fetch(
        symbol=symbol,
        start=start,
        end=end,
        interval=interval,
        auto_adjust=auto_adjust,
    )
    return _run_core(frame, output_dir, bt_cfg, ind_cfg, strat_cfg, model_cfg)


def run_from_csv(
    csv_path: str | Path,
    symbol: str,
    output_dir: Optional[str | Path] = "outputs",
    bt_cfg: BacktestConfig = BacktestConfig(),
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    strat_cfg: StrategyConfig = StrategyConfig(),
    model_cfg: ModelConfig = ModelConfig(),
) -> tuple[BacktestResult, dict[str, Path]]:
    frame = CsvProvider().fetch(csv_path=csv_path, symbol=symbol)
    return _run_core(frame, output_dir, bt_cfg, ind_cfg, strat_cfg, model_cfg)


def _run_core(
    frame: OhlcvFrame,
    output_dir: Optional[str | Path],
    bt_cfg: BacktestConfig,
    ind_cfg: IndicatorConfig,
    strat_cfg: StrategyConfig,
    model_cfg: ModelConfig,
) -> tuple[BacktestResult, dict[str, Path]]:
    result = run_backtest(frame, bt_cfg, ind_cfg, strat_cfg, model_cfg)
    paths: dict[str, Path] = {}
    if output_dir is not None:
        paths = write_outputs(result, frame.symbol, output_dir)
    return result, paths


def equity_frame(result: BacktestResult) -> pd.DataFrame:
    return pd.DataFrame({"Equity": result.equity_curve}).rename_axis("Step")


def trades_frame(result: BacktestResult) -> pd.DataFrame:
    cols = [
        "entry_time",
        "exit_time",
        "entry_price",
        "exit_price",
        "side",
        "return_pct",
        "duration",
        "confidence",
        "exit_reason",
    ]
    trades = pd.DataFrame([asdict(x) for x in result.trades], columns=cols)
    if not trades.empty:
        trades["entry_time"] = pd.to_datetime(trades["entry_time"], unit="ms", utc=True)
        trades["exit_time"] = pd.to_datetime(trades["exit_time"], unit="ms", utc=True)
    return trades


def summary_dict(result: BacktestResult) -> dict:
    """Scalar statistics, flattened for printing or JSON."""
    out = {
        "total_trades": result.total_trades,
        "winning_trades": result.winning_trades,
        "losing_trades": result.losing_trades,
        "win_rate": result.win_rate,
        "total_return": result.total_return,
        "max_drawdown": result.max_drawdown,
        "sharpe_ratio": result.sharpe_ratio,
        "final_equity": result.final_equity,
    }
    out.update(asdict(result.metrics))
    return out


def write_outputs(result: BacktestResult, symbol: str, output_dir: str | Path) -> dict[str, Path]:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    tag = (symbol or "series").replace(".", "_").replace("/", "_")
    eq_path = out_dir / f"equity_{tag}.csv"
    tr_path = out_dir / f"trades_{tag}.csv"
    equity_frame(result).to_csv(eq_path, encoding="utf-8")
    trades_frame(result).to_csv(tr_path, index=False, encoding="utf-8")

    return {"equity": eq_path, "trades": tr_path}
