"""Data providers (in-memory bars / CSV / yfinance) and a standardized OHLCV schema.

The pipeline itself never fetches data; these are the adapters callers use
to hand it an ordered bar frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from .types import Bar

OHLCV_COLUMNS = ["Open", "High", "Low", "Close", "Volume"]


@dataclass(frozen=True)
class OhlcvFrame:
    """Standard OHLCV dataframe wrapper."""

    df: pd.DataFrame  # columns: Open, High, Low, Close, Volume; index: UTC datetime
    symbol: str

    def __len__(self) -> int:
        return int(len(self.df))


def to_epoch_ms(ts) -> int:
    """Epoch milliseconds for a timestamp-like value."""
    t = pd.Timestamp(ts)
    if t.tzinfo is None:
        t = t.tz_localize("UTC")
    return int(t.value // 1_000_000)


_COLUMN_ALIASES = {
    "open": "Open",
    "o": "Open",
    "high": "High",
    "h": "High",
    "low": "Low",
    "l": "Low",
    "close": "Close",
    "c": "Close",
    "adj close": "AdjClose",
    "adjclose": "AdjClose",
    "volume": "Volume",
    "v": "Volume",
}


def _flatten_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Single-level columns; yfinance may return (field, ticker) pairs."""
    if not isinstance(df.columns, pd.MultiIndex):
        return df
    tickers = list(dict.fromkeys(df.columns.get_level_values(-1)))
    if len(tickers) > 1:
        # only the first ticker is kept
        return df.xs(tickers[0], axis=1, level=-1, drop_level=True)
    out = df.copy()
    out.columns = out.columns.get_level_values(0)
    return out


def _standardize_ohlcv_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = _flatten_columns(df)
    renamed = df.rename(columns=lambda col: _COLUMN_ALIASES.get(str(col).strip().lower(), col))

    # AdjClose stands in for Close only when Close is absent
    if "AdjClose" in renamed.columns:
        if "Close" in renamed.columns:
            renamed = renamed.drop(columns=["AdjClose"])
        else:
            renamed = renamed.rename(columns={"AdjClose": "Close"})

    missing = [c for c in OHLCV_COLUMNS if c not in renamed.columns]
    if missing:
        raise ValueError(f"Missing required OHLCV columns: {missing}")

    out = renamed[OHLCV_COLUMNS].astype(float)
    return out[~out.index.duplicated(keep="last")].sort_index()


def frame_from_bars(bars: Iterable[Bar], symbol: str = "") -> OhlcvFrame:
    """Build an OhlcvFrame from ``Bar`` objects (timestamps in epoch ms)."""
    bars = list(bars)
    index = pd.to_datetime([b.timestamp for b in bars], unit="ms", utc=True)
    df = pd.DataFrame(
        {
            "Open": [b.open for b in bars],
            "High": [b.high for b in bars],
            "Low": [b.low for b in bars],
            "Close": [b.close for b in bars],
            "Volume": [b.volume for b in bars],
        },
        index=index,
        dtype=float,
    )
    df.index.name = "Date"
    return OhlcvFrame(df=df, symbol=symbol)


def bars_from_frame(frame: OhlcvFrame | pd.DataFrame) -> list[Bar]:
    df = frame.df if isinstance(frame, OhlcvFrame) else frame
    stamps = [to_epoch_ms(ts) for ts in df.index]
    values = df[OHLCV_COLUMNS].to_numpy(dtype=float)
    return [
        Bar(timestamp=ts, open=o, high=h, low=l, close=c, volume=v)
        for ts, (o, h, l, c, v) in zip(stamps, values)
    ]


def as_frame(data: OhlcvFrame | pd.DataFrame | Sequence[Bar], symbol: str = "") -> OhlcvFrame:
    """Coerce any supported bar container into an OhlcvFrame."""
    if isinstance(data, OhlcvFrame):
        return data
    if isinstance(data, pd.DataFrame):
        df = data
        if not isinstance(df.index, pd.DatetimeIndex):
            # RangeIndex frames: synthesize a 1-minute grid
            df = df.copy()
            df.index = pd.date_range("1970-01-01", periods=len(df), freq="min", tz="UTC")
        return OhlcvFrame(df=_standardize_ohlcv_columns(df), symbol=symbol)
    return frame_from_bars(data, symbol=symbol)


def synthetic_frame(closes: Sequence[float], symbol: str = "SYNTH", spread: float = 0.0, volume: float = 1000.0) -> OhlcvFrame:
    """Frame from a close path; High/Low are close +/- ``spread``."""
    c = np.asarray(closes, dtype=float)
    index = pd.date_range("2024-01-01", periods=len(c), freq="h", tz="UTC")
    df = pd.DataFrame(
        {
            "Open": c,
            "High": c + spread,
            "Low": c - spread,
            "Close": c,
            "Volume": np.full(len(c), float(volume)),
        },
        index=index,
    )
    df.index.name = "Date"
    return OhlcvFrame(df=df, symbol=symbol)


class YfinanceProvider:
    """Bars from Yahoo Finance, indexed in UTC."""

    def fetch(self, symbol: str, start: str, end: str | None = None, interval: str = "1d", auto_adjust: bool = False) -> OhlcvFrame:
        import yfinance as yf  # only needed when fetching remotely

        raw = yf.download(
            tickers=symbol,
            start=start,
            end=end,
            interval=interval,
            auto_adjust=auto_adjust,
            progress=False,
        )
        if raw is None or raw.empty:
            raise RuntimeError(f"No yfinance bars for {symbol} ({start} .. {end}, {interval})")

        df = _standardize_ohlcv_columns(raw)
        df.index = df.index.tz_localize("UTC") if df.index.tz is None else df.index.tz_convert("UTC")
        return OhlcvFrame(df=df, symbol=symbol)


_TIME_COLUMNS = ("Date", "Datetime", "datetime", "timestamp", "Timestamp", "Time", "time", "open_time")


class CsvProvider:
    """Bars from a CSV file.

    The time column may hold ISO strings or epoch milliseconds.
    """

    def fetch(self, csv_path: str | Path, symbol: str, datetime_col: str | None = None) -> OhlcvFrame:
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(str(path))

        df = pd.read_csv(path)
        candidates = (datetime_col,) if datetime_col else _TIME_COLUMNS
        time_col = next((c for c in candidates if c in df.columns), None)
        if time_col is None:
            raise ValueError(f"{path.name}: no time column (looked for {', '.join(candidates)})")

        stamps = df.pop(time_col)
        if pd.api.types.is_numeric_dtype(stamps):
            index = pd.to_datetime(stamps, unit="ms", utc=True)
        else:
            index = pd.to_datetime(stamps, utc=True)
        df.index = pd.DatetimeIndex(index, name="Date")

        return OhlcvFrame(df=_standardize_ohlcv_columns(df), symbol=symbol)
