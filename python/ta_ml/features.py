"""Feature extraction: indicators + raw bars -> fixed 12-dim vectors.

Row ``i`` of the feature matrix belongs to bar ``i + WARMUP_BARS``. The
column order is part of the model contract; a model trained on one order
must never be fed another.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .config import IndicatorConfig
from .data_manager import OhlcvDataManager
from .data_provider import OhlcvFrame

logger = logging.getLogger(__name__)

WARMUP_BARS = 50

FEATURE_NAMES = (
    "rsi",
    "macd",
    "macd_signal",
    "bollinger_position",
    "atr",
    "stoch_k",
    "stoch_d",
    "williams_r",
    "cci",
    "price_change",
    "volume_change",
    "volatility",
)
N_FEATURES = len(FEATURE_NAMES)

# Substituted (already normalized) when a feature cannot be computed.
# Oscillators and the band position sit mid-range (%R -50 -> 0.5).
NEUTRAL_DEFAULTS = {name: 0.0 for name in FEATURE_NAMES}
NEUTRAL_DEFAULTS.update(
    {"rsi": 0.5, "bollinger_position": 0.5, "stoch_k": 0.5, "stoch_d": 0.5, "williams_r": 0.5}
)


def neutral_vector() -> np.ndarray:
    return np.array([NEUTRAL_DEFAULTS[name] for name in FEATURE_NAMES], dtype=float)


def _bollinger_position(close: pd.Series, upper: pd.Series, lower: pd.Series) -> pd.Series:
    width = upper - lower
    pos = ((close - lower) / width.where(width != 0)).clip(0.0, 1.0)
    # collapsed bands sit in the middle; NaN bands stay NaN for fill_neutral
    return pos.mask(width == 0, 0.5)


def raw_features(df: pd.DataFrame, volatility_window: int = 20) -> pd.DataFrame:
    """Normalized features for every bar, before neutral substitution.

    ``df`` must hold the OHLCV columns plus the indicator columns written by
    ``OhlcvDataManager``.
    """
    close = df["Close"].astype(float)
    volume = df["Volume"].astype(float)
    prev_close = close.shift(1)
    prev_volume = volume.shift(1)

    price_change = (close - prev_close) / prev_close.where(prev_close != 0)
    volume_change = ((volume - prev_volume) / prev_volume.where(prev_volume > 0)).where(prev_volume > 0, 0.0)

    return pd.DataFrame(
        {
            "rsi": df["rsi"] / 100.0,
            "macd": df["macdLine"],
            "macd_signal": df["macdSignal"],
            "bollinger_position": _bollinger_position(close, df["bbUpper"], df["bbLower"]),
            "atr": df["atr"],
            "stoch_k": df["stochK"] / 100.0,
            "stoch_d": df["stochD"] / 100.0,
            "williams_r": (df["williamsR"] + 100.0) / 100.0,
            "cci": df["cci"] / 100.0,
            # pct/100, i.e. the fractional change
            "price_change": price_change,
            "volume_change": volume_change,
            "volatility": close.rolling(window=volatility_window, min_periods=2).std(ddof=1),
        },
        index=df.index,
        columns=list(FEATURE_NAMES),
    ).astype(float)


def fill_neutral(raw: pd.DataFrame) -> pd.DataFrame:
    """Replace non-finite entries feature by feature with ``NEUTRAL_DEFAULTS``."""
    out = raw.replace([np.inf, -np.inf], np.nan)
    bad = out.isna().sum()
    for name, count in bad[bad > 0].items():
        logger.debug("feature %s: %d non-finite value(s) -> %s", name, int(count), NEUTRAL_DEFAULTS[name])
    return out.fillna(value=NEUTRAL_DEFAULTS)


def feature_frame(
    data: OhlcvDataManager | OhlcvFrame,
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    warmup: int = WARMUP_BARS,
) -> pd.DataFrame:
    """Labelled feature rows starting at bar ``warmup``."""
    dm = data if isinstance(data, OhlcvDataManager) else OhlcvDataManager(data, ind_cfg)
    if len(dm) <= warmup:
        return pd.DataFrame(columns=list(FEATURE_NAMES), dtype=float)
    raw = raw_features(dm.df, volatility_window=dm.ind_cfg.volatility_window)
    return fill_neutral(raw.iloc[warmup:])


def extract_features(
    data: OhlcvDataManager | OhlcvFrame,
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    warmup: int = WARMUP_BARS,
) -> np.ndarray:
    """Feature matrix of shape ``(max(0, n_bars - warmup), 12)``."""
    ff = feature_frame(data, ind_cfg, warmup)
    return ff.to_numpy(dtype=float).reshape(-1, N_FEATURES)
