"""Bars-in, prediction-out ML signal strategy.

``MLSignalStrategy`` owns every piece of run state (trained model, configs)
so independent symbols or test cases never share a model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np
import pandas as pd

from .classifier import SignalModel, build_model, make_labels
from .config import IndicatorConfig, ModelConfig, StrategyConfig
from .data_manager import OhlcvDataManager
from .data_provider import OhlcvFrame, as_frame
from .features import WARMUP_BARS, extract_features
from .types import Bar, Prediction

logger = logging.getLogger(__name__)

BarsLike = Union[OhlcvFrame, pd.DataFrame, Sequence[Bar]]


@runtime_checkable
class SignalStrategy(Protocol):
    """What the backtest simulator needs from a strategy."""

    def train(self, bars: OhlcvFrame) -> bool:
        ...

    def predict(self, bars: OhlcvFrame) -> Prediction:
        ...


@dataclass(frozen=True)
class ModelStatus:
    is_trained: bool
    model_type: str
    training_rows: int = 0
    class_counts: dict = field(default_factory=dict)


def price_levels(action: str, close: float, cfg: StrategyConfig) -> tuple[Optional[float], Optional[float]]:
    """(price_target, stop_loss) around ``close`` in the direction of ``action``."""
    if action == "buy":
        return close * (1.0 + cfg.target_pct), close * (1.0 - cfg.stop_pct)
    if action == "sell":
        return close * (1.0 - cfg.target_pct), close * (1.0 + cfg.stop_pct)
    return None, None


class MLSignalStrategy:
    """Indicators -> features -> classifier, trained once and queried per bar."""

    def __init__(
        self,
        model: Optional[SignalModel] = None,
        ind_cfg: IndicatorConfig = IndicatorConfig(),
        strat_cfg: StrategyConfig = StrategyConfig(),
        model_cfg: ModelConfig = ModelConfig(),
    ):
        self.ind_cfg = ind_cfg
        self.strat_cfg = strat_cfg
        self.model_cfg = model_cfg
        self.model = model if model is not None else build_model(model_cfg, strat_cfg.min_training_rows)
        self._trained = False

    @property
    def is_trained(self) -> bool:
        return self._trained

    def training_set(self, bars: BarsLike) -> tuple[np.ndarray, np.ndarray]:
        """Feature matrix and lookahead labels (labels are ``horizon`` rows shorter)."""
        dm = OhlcvDataManager(as_frame(bars), self.ind_cfg)
        features = extract_features(dm)
        labels = make_labels(
            dm.closes().to_numpy(),
            n_features=len(features),
            threshold_pct=self.strat_cfg.label_threshold_pct,
            horizon=self.strat_cfg.label_horizon,
            warmup=WARMUP_BARS,
        )
        return features, labels

    def train(self, bars: BarsLike) -> bool:
        """Fit the model on ``bars``. False when there is too little history."""
        self._trained = False
        features, labels = self.training_set(bars)
        if len(features) < self.strat_cfg.min_training_rows:
            logger.info(
                "Not enough data for training: %d feature rows (need %d)",
                len(features),
                self.strat_cfg.min_training_rows,
            )
            return False
        ok = bool(self.model.train(features, labels))
        self._trained = ok
        if ok:
            logger.info("ML signal model trained on %d bars", len(features) + WARMUP_BARS)
        return ok

    def predict(self, bars: BarsLike) -> Prediction:
        """Prediction for the last bar; neutral hold on cold start or bad input."""
        if not self._trained:
            return Prediction.neutral()
        try:
            frame = as_frame(bars)
            dm = OhlcvDataManager(frame, self.ind_cfg)
            features = extract_features(dm)
            if len(features) == 0:
                return Prediction.neutral()
            pred = self.model.predict(features)
            closes = dm.closes()
            close = float(closes.iloc[-1])
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Error making ML prediction: %s", exc)
            return Prediction.neutral()

        target, stop = None, None
        # need more than `min_history_for_targets` closes
        if len(closes) > self.strat_cfg.min_history_for_targets and np.isfinite(close):
            target, stop = price_levels(pred.action, close, self.strat_cfg)
        return replace(pred, price_target=target, stop_loss=stop)

    def status(self) -> ModelStatus:
        return ModelStatus(
            is_trained=self._trained,
            model_type=str(getattr(self.model, "model_type", type(self.model).__name__)),
            training_rows=int(getattr(self.model, "training_rows", 0)),
            class_counts=dict(getattr(self.model, "class_counts", {})),
        )
