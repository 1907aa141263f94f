"""Shared fixtures: synthetic OHLCV frames."""

import numpy as np
import pandas as pd
import pytest

from ta_ml.data_provider import OhlcvFrame


def _random_walk(n: int, seed: int = 7, vol: float = 0.01) -> OhlcvFrame:
    rng = np.random.default_rng(seed)
    close = 100.0 * np.exp(np.cumsum(rng.normal(0.0, vol, n)))
    high = close * (1.0 + rng.uniform(0.0, vol, n))
    low = close * (1.0 - rng.uniform(0.0, vol, n))
    open_ = np.r_[close[0], close[:-1]]
    volume = rng.uniform(500.0, 1500.0, n)
    index = pd.date_range("2024-01-01", periods=n, freq="h", tz="UTC")
    df = pd.DataFrame(
        {"Open": open_, "High": high, "Low": low, "Close": close, "Volume": volume},
        index=index,
    )
    return OhlcvFrame(df=df, symbol="RW")


@pytest.fixture
def random_walk():
    """Factory: random_walk(n, seed=7, vol=0.01) -> OhlcvFrame."""
    return _random_walk


@pytest.fixture
def walk_400():
    return _random_walk(400)
