"""Data manager: holds OHLCV plus indicator columns for a single symbol."""

from __future__ import annotations

import pandas as pd

from .config import IndicatorConfig
from .data_provider import OhlcvFrame
from .indicators import IndicatorSet, compute_indicator_set


class OhlcvDataManager:
    """Holds OHLCV and indicator series for a single symbol.

    Indicator columns are appended next to Open/High/Low/Close/Volume, named
    as in ``indicators.INDICATOR_COLUMNS``.
    """

    def __init__(self, frame: OhlcvFrame, ind_cfg: IndicatorConfig = IndicatorConfig()):
        self.symbol = frame.symbol
        self.ind_cfg = ind_cfg
        # ensure strictly increasing index before any windowed computation
        df = frame.df
        self.df = df[~df.index.duplicated(keep="last")].sort_index().copy()

        self.indicators = self._compute_indicators()

    def _compute_indicators(self) -> IndicatorSet:
        ind = compute_indicator_set(self.df, self.ind_cfg)
        cols = ind.to_frame()
        cols.index = self.df.index
        self.df = pd.concat([self.df, cols], axis=1)
        return ind

    def __len__(self) -> int:
        return int(len(self.df))

    def closes(self) -> pd.Series:
        return self.df["Close"].astype(float)
