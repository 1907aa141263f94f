"""Tests for bar containers, providers and the backtest runners."""

import json

import numpy as np
import pandas as pd
import pytest

from ta_ml.backtest import run_backtest, run_from_csv, summary_dict, trades_frame, write_outputs
from ta_ml.config import BacktestConfig, ModelConfig
from ta_ml.data_manager import OhlcvDataManager
from ta_ml.data_provider import (
    OHLCV_COLUMNS,
    CsvProvider,
    as_frame,
    bars_from_frame,
    frame_from_bars,
    to_epoch_ms,
)
from ta_ml.indicators import INDICATOR_COLUMNS
from ta_ml.types import BacktestResult, Bar, TradeResult


class TestBars:
    def test_frame_from_bars(self):
        bars = [
            Bar(timestamp=1_700_000_000_000 + i * 60_000, open=1.0, high=2.0, low=0.5, close=1.5, volume=10.0)
            for i in range(3)
        ]
        frame = frame_from_bars(bars, symbol="X")

        assert frame.symbol == "X"
        assert list(frame.df.columns) == OHLCV_COLUMNS
        assert str(frame.df.index.tz) == "UTC"
        assert bars_from_frame(frame) == bars

    def test_to_epoch_ms_naive_is_utc(self):
        assert to_epoch_ms("1970-01-01 00:00:01") == 1000

    def test_as_frame_from_plain_dataframe(self):
        df = pd.DataFrame({"o": [1.0, 2.0], "h": [1.5, 2.5], "l": [0.5, 1.5], "c": [1.2, 2.2], "v": [5, 6]})
        frame = as_frame(df, symbol="Y")

        assert list(frame.df.columns) == OHLCV_COLUMNS
        assert isinstance(frame.df.index, pd.DatetimeIndex)
        assert frame.df["Close"].tolist() == [1.2, 2.2]

    def test_missing_columns(self):
        with pytest.raises(ValueError):
            as_frame(pd.DataFrame({"Close": [1.0, 2.0]}))


class TestCsvProvider:
    def test_epoch_ms_column(self, tmp_path):
        path = tmp_path / "bars.csv"
        pd.DataFrame(
            {
                "timestamp": [1_700_000_120_000, 1_700_000_000_000, 1_700_000_060_000],
                "open": [3.0, 1.0, 2.0],
                "high": [3.5, 1.5, 2.5],
                "low": [2.5, 0.5, 1.5],
                "close": [3.2, 1.2, 2.2],
                "volume": [30.0, 10.0, 20.0],
            }
        ).to_csv(path, index=False)

        frame = CsvProvider().fetch(path, symbol="Z")

        assert frame.df["Close"].tolist() == [1.2, 2.2, 3.2]
        assert to_epoch_ms(frame.df.index[0]) == 1_700_000_000_000

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CsvProvider().fetch(tmp_path / "nope.csv", symbol="Z")


class TestDataManager:
    def test_dedupes_and_appends_indicators(self, random_walk):
        frame = random_walk(80)
        df = pd.concat([frame.df, frame.df.iloc[[10]]])
        dm = OhlcvDataManager(type(frame)(df=df, symbol=frame.symbol))

        assert len(dm) == 80
        assert dm.df.index.is_monotonic_increasing
        for col in INDICATOR_COLUMNS:
            assert col in dm.df.columns


class TestRunners:
    def test_run_and_write_outputs(self, random_walk, tmp_path):
        frame = random_walk(560, seed=3)
        cfg = BacktestConfig(symbol=frame.symbol, training_period=500)
        result = run_backtest(frame, cfg, model_cfg=ModelConfig(n_estimators=10))

        paths = write_outputs(result, "RW/USD", tmp_path)
        assert paths["equity"].name == "equity_RW_USD.csv"
        equity = pd.read_csv(paths["equity"])
        assert len(equity) == len(result.equity_curve)
        trades = pd.read_csv(paths["trades"])
        assert len(trades) == result.total_trades

        summary = summary_dict(result)
        json.dumps(summary)
        assert summary["total_trades"] == result.total_trades
        assert "profit_factor" in summary

    def test_run_from_csv(self, random_walk, tmp_path):
        frame = random_walk(520, seed=5)
        csv_path = tmp_path / "walk.csv"
        frame.df.rename_axis("Date").to_csv(csv_path)

        result, paths = run_from_csv(
            csv_path,
            symbol="RW",
            output_dir=tmp_path / "out",
            bt_cfg=BacktestConfig(training_period=500),
            model_cfg=ModelConfig(n_estimators=5),
        )
        assert paths["trades"].exists()
        assert len(result.equity_curve) in (21, 22)

    def test_trades_frame_times(self):
        trade = TradeResult(0, 3_600_000, 100.0, 101.0, "buy", 0.01, 3_600_000, 0.7, "opposite_signal")
        df = trades_frame(BacktestResult(trades=[trade], equity_curve=[1.0]))
        assert df["exit_time"].iloc[0] == pd.Timestamp("1970-01-01 01:00", tz="UTC")
        assert np.isclose(df["return_pct"].iloc[0], 0.01)
