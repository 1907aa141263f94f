from __future__ import annotations

import argparse
import json
import logging

from ta_ml.backtest import run_from_csv, run_from_yfinance, summary_dict
from ta_ml.config import BacktestConfig, ModelConfig, StrategyConfig


def main():
    p = argparse.ArgumentParser(description="Walk-forward backtest of the ML signal strategy.")
    p.add_argument("--symbol", type=str, default="BTC-USD")
    p.add_argument("--start", type=str, default="2021-01-01")
    p.add_argument("--end", type=str, default="2024-12-31")
    p.add_argument("--interval", type=str, default="1d")
    p.add_argument("--output_dir", type=str, default="outputs")
    p.add_argument("--csv", type=str, default=None, help="OHLCV CSV path (Date,Open,High,Low,Close,Volume).")
    p.add_argument("--params", type=str, default=None, help="JSON request body (initialCapital, minConfidence, ...).")
    p.add_argument("--training_period", type=int, default=500)
    p.add_argument("--min_confidence", type=float, default=0.6)
    p.add_argument("--initial_capital", type=float, default=10_000.0)
    p.add_argument("--label_threshold", type=float, default=1.5, help="Label threshold in percent.")
    p.add_argument("--model", type=str, default="random_forest", help='"random_forest" or "gradient_boosting"')
    p.add_argument("-v", "--verbose", action="store_true")
    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    if args.params:
        params = json.loads(args.params)
        params.setdefault("symbol", args.symbol)
        bt_cfg = BacktestConfig.from_params_dict(params)
        strat_cfg = StrategyConfig.from_params_dict(params)
        model_cfg = ModelConfig.from_params_dict(params)
    else:
        bt_cfg = BacktestConfig(
            symbol=args.symbol,
            training_period=args.training_period,
            min_confidence=args.min_confidence,
            initial_capital=args.initial_capital,
        )
        strat_cfg = StrategyConfig(label_threshold_pct=args.label_threshold)
        model_cfg = ModelConfig(model_type=args.model.lower())

    if args.csv:
        result, paths = run_from_csv(
            csv_path=args.csv,
            symbol=bt_cfg.symbol,
            output_dir=args.output_dir,
            bt_cfg=bt_cfg,
            strat_cfg=strat_cfg,
            model_cfg=model_cfg,
        )
    else:
        result, paths = run_from_yfinance(
            symbol=bt_cfg.symbol,
            start=args.start,
            end=args.end,
            interval=args.interval,
            output_dir=args.output_dir,
            bt_cfg=bt_cfg,
            strat_cfg=strat_cfg,
            model_cfg=model_cfg,
        )

    print(json.dumps(summary_dict(result), indent=2))
    print(paths["equity"])
    print(paths["trades"])


if __name__ == "__main__":
    main()
