"""Train once on history and print the prediction for the latest bar."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict

from ta_ml.config import StrategyConfig
from ta_ml.data_provider import CsvProvider, YfinanceProvider
from ta_ml.strategy import MLSignalStrategy


def main() -> None:
    p = argparse.ArgumentParser()
    p.add_argument("--symbol", type=str, default="BTC-USD")
    p.add_argument("--start", type=str, default="2022-01-01")
    p.add_argument("--end", type=str, default=None)
    p.add_argument("--interval", type=str, default="1d")
    p.add_argument("--csv", type=str, default=None)
    p.add_argument("--label_threshold", type=float, default=2.0)
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s - %(message)s")

    if args.csv:
        frame = CsvProvider().fetch(csv_path=args.csv, symbol=args.symbol)
    else:
        frame = YfinanceProvider().fetch(symbol=args.symbol, start=args.start, end=args.end, interval=args.interval)

    strategy = MLSignalStrategy(strat_cfg=StrategyConfig(label_threshold_pct=args.label_threshold))
    if not strategy.train(frame):
        logging.getLogger(__name__).warning("training failed; predictions stay neutral")

    prediction = strategy.predict(frame)
    print(json.dumps({"symbol": frame.symbol, "prediction": asdict(prediction), "status": asdict(strategy.status())}, indent=2))


if __name__ == "__main__":
    main()
