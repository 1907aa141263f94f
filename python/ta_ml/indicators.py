"""Indicator computation utilities.

Every function returns a series aligned with its input. Bars without enough
trailing history are NaN (the warm-up sentinel); nothing here raises on
short input. Windows whose range collapses to zero also yield NaN rather
than +/-inf.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Sequence, Union

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from .config import IndicatorConfig

SeriesLike = Union[pd.Series, Sequence[float], np.ndarray]


class MacdLines(NamedTuple):
    line: pd.Series
    signal: pd.Series
    histogram: pd.Series


class BollingerBands(NamedTuple):
    upper: pd.Series
    middle: pd.Series
    lower: pd.Series


class Stochastic(NamedTuple):
    k: pd.Series
    d: pd.Series


def _as_series(x: SeriesLike) -> pd.Series:
    if isinstance(x, pd.Series):
        return x.astype(float)
    return pd.Series(np.asarray(x, dtype=float))


def _check_period(period: int, name: str = "period") -> int:
    if int(period) <= 0:
        raise ValueError(f"{name} must be positive")
    return int(period)


def _positive(x: pd.Series) -> pd.Series:
    """Zero (or negative) denominators become NaN."""
    return x.where(x > 0)


def sma(series: SeriesLike, period: int) -> pd.Series:
    """Mean of the trailing ``period`` values; NaN before index period-1."""
    period = _check_period(period)
    s = _as_series(series)
    return s.rolling(window=period, min_periods=period).mean()


def ema(series: SeriesLike, period: int) -> pd.Series:
    """Exponential moving average seeded with the first sample.

    Uses pandas ewm with adjust=False (recursive form, multiplier 2/(period+1)),
    so there is no warm-up NaN segment.
    """
    period = _check_period(period)
    s = _as_series(series)
    return s.ewm(span=period, adjust=False, min_periods=1).mean()


def rsi(close: SeriesLike, period: int = 14) -> pd.Series:
    """Relative strength index from simple averages of gains and losses.

    100 when the average loss over the window is zero.
    """
    period = _check_period(period)
    c = _as_series(close)
    delta = c.diff()
    gains = delta.clip(lower=0.0)
    losses = (-delta).clip(lower=0.0)
    # the first diff is NaN, so the first full window ends at index `period`
    avg_gain = gains.rolling(window=period, min_periods=period).mean()
    avg_loss = losses.rolling(window=period, min_periods=period).mean()

    rs = avg_gain / _positive(avg_loss)
    out = 100.0 - 100.0 / (1.0 + rs)
    return out.mask(avg_gain.notna() & (avg_loss <= 0), 100.0)


def macd(close: SeriesLike, fast: int = 12, slow: int = 26, signal: int = 9) -> MacdLines:
    """MACD line, signal line, and histogram."""
    c = _as_series(close)
    macd_line = ema(c, fast) - ema(c, slow)
    signal_line = ema(macd_line, signal)
    hist = macd_line - signal_line
    return MacdLines(macd_line, signal_line, hist)


def bollinger(close: SeriesLike, period: int = 20, k: float = 2.0) -> BollingerBands:
    """SMA middle band +/- k sample standard deviations."""
    period = _check_period(period)
    c = _as_series(close)
    middle = c.rolling(window=period, min_periods=period).mean()
    std = c.rolling(window=period, min_periods=period).std(ddof=1)
    return BollingerBands(middle + k * std, middle, middle - k * std)


def true_range(high: SeriesLike, low: SeriesLike, close: SeriesLike) -> pd.Series:
    """True range; the first bar has no previous close and uses high-low."""
    high = _as_series(high)
    low = _as_series(low)
    close = _as_series(close)
    prev_close = close.shift(1)
    return pd.concat(
        [
            (high - low).abs(),
            (high - prev_close).abs(),
            (low - prev_close).abs(),
        ],
        axis=1,
    ).max(axis=1)


def atr(high: SeriesLike, low: SeriesLike, close: SeriesLike, period: int = 14) -> pd.Series:
    """Average True Range (simple moving average of TR)."""
    period = _check_period(period)
    tr = true_range(high, low, close)
    return tr.rolling(window=period, min_periods=period).mean()


def _range_window(high: pd.Series, low: pd.Series, period: int) -> tuple[pd.Series, pd.Series]:
    hh = high.rolling(window=period, min_periods=period).max()
    ll = low.rolling(window=period, min_periods=period).min()
    return hh, ll


def stochastic(
    high: SeriesLike,
    low: SeriesLike,
    close: SeriesLike,
    k_period: int = 14,
    d_period: int = 3,
) -> Stochastic:
    """%K over ``k_period`` and %D = SMA(%K, ``d_period``)."""
    k_period = _check_period(k_period, "k_period")
    d_period = _check_period(d_period, "d_period")
    high, low, close = _as_series(high), _as_series(low), _as_series(close)
    hh, ll = _range_window(high, low, k_period)
    k = (close - ll) / _positive(hh - ll) * 100.0
    d = k.rolling(window=d_period, min_periods=d_period).mean()
    return Stochastic(k, d)


def williams_r(high: SeriesLike, low: SeriesLike, close: SeriesLike, period: int = 14) -> pd.Series:
    """Williams %R in [-100, 0]."""
    period = _check_period(period)
    high, low, close = _as_series(high), _as_series(low), _as_series(close)
    hh, ll = _range_window(high, low, period)
    return (hh - close) / _positive(hh - ll) * -100.0


def mean_abs_deviation(series: SeriesLike, period: int) -> pd.Series:
    """Rolling mean absolute deviation around the window mean."""
    period = _check_period(period)
    s = _as_series(series)
    values = s.to_numpy(dtype=float)
    out = np.full(len(values), np.nan)
    if len(values) >= period:
        windows = sliding_window_view(values, period)
        dev = np.abs(windows - windows.mean(axis=1, keepdims=True))
        out[period - 1:] = dev.mean(axis=1)
    return pd.Series(out, index=s.index)


def cci(high: SeriesLike, low: SeriesLike, close: SeriesLike, period: int = 20) -> pd.Series:
    """Commodity Channel Index on the typical price (H+L+C)/3."""
    period = _check_period(period)
    high, low, close = _as_series(high), _as_series(low), _as_series(close)
    tp = (high + low + close) / 3.0
    tp_sma = tp.rolling(window=period, min_periods=period).mean()
    mad = mean_abs_deviation(tp, period)
    return (tp - tp_sma) / (0.015 * _positive(mad))


def obv(close: SeriesLike, volume: SeriesLike) -> pd.Series:
    """On-balance volume seeded with the first bar's volume."""
    close, volume = _as_series(close), _as_series(volume)
    if len(close) == 0:
        return close.copy()
    direction = np.sign(close.diff()).fillna(0.0)
    signed = volume * direction
    signed.iloc[0] = volume.iloc[0]
    return signed.cumsum()


@dataclass(frozen=True)
class IndicatorSet:
    """Per-bar aligned indicator series for one bar frame."""

    sma: pd.Series
    ema: pd.Series
    rsi: pd.Series
    macd: MacdLines
    bollinger: BollingerBands
    atr: pd.Series
    stochastic: Stochastic
    williams_r: pd.Series
    cci: pd.Series
    obv: pd.Series

    def __len__(self) -> int:
        return int(len(self.sma))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "sma": self.sma,
                "ema": self.ema,
                "rsi": self.rsi,
                "macdLine": self.macd.line,
                "macdSignal": self.macd.signal,
                "macdHist": self.macd.histogram,
                "bbUpper": self.bollinger.upper,
                "bbMiddle": self.bollinger.middle,
                "bbLower": self.bollinger.lower,
                "atr": self.atr,
                "stochK": self.stochastic.k,
                "stochD": self.stochastic.d,
                "williamsR": self.williams_r,
                "cci": self.cci,
                "obv": self.obv,
            }
        )


INDICATOR_COLUMNS = (
    "sma",
    "ema",
    "rsi",
    "macdLine",
    "macdSignal",
    "macdHist",
    "bbUpper",
    "bbMiddle",
    "bbLower",
    "atr",
    "stochK",
    "stochD",
    "williamsR",
    "cci",
    "obv",
)


def compute_indicator_set(df: pd.DataFrame, cfg: IndicatorConfig = IndicatorConfig()) -> IndicatorSet:
    """Compute every indicator on an OHLCV frame (Open/High/Low/Close/Volume)."""
    high = df["High"].astype(float)
    low = df["Low"].astype(float)
    close = df["Close"].astype(float)
    volume = df["Volume"].astype(float)

    return IndicatorSet(
        sma=sma(close, cfg.sma_period),
        ema=ema(close, cfg.ema_period),
        rsi=rsi(close, cfg.rsi_period),
        macd=macd(close, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal),
        bollinger=bollinger(close, cfg.bollinger_period, cfg.bollinger_k),
        atr=atr(high, low, close, cfg.atr_period),
        stochastic=stochastic(high, low, close, cfg.stoch_k_period, cfg.stoch_d_period),
        williams_r=williams_r(high, low, close, cfg.williams_period),
        cci=cci(high, low, close, cfg.cci_period),
        obv=obv(close, volume),
    )
