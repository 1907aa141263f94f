"""Signal classifiers over feature vectors.

Any estimator satisfying ``SignalModel`` can drive the strategy and the
simulator; the scikit-learn ensembles below are the stock implementations.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

import numpy as np
from sklearn.ensemble import GradientBoostingClassifier, RandomForestClassifier

from .config import ModelConfig
from .errors import ModelNotTrainedError
from .features import FEATURE_NAMES, WARMUP_BARS
from .types import ACTIONS, BUY, HOLD, SELL, Prediction

logger = logging.getLogger(__name__)

MIN_TRAINING_ROWS = 100

BASE_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95

_IDX = {name: i for i, name in enumerate(FEATURE_NAMES)}


def make_labels(
    closes: Sequence[float] | np.ndarray,
    n_features: int,
    threshold_pct: float = 1.5,
    horizon: int = 5,
    warmup: int = WARMUP_BARS,
) -> np.ndarray:
    """Fixed-horizon lookahead labels for feature rows.

    Row i (bar ``i + warmup``) is BUY if the close ``horizon`` bars later is
    more than ``threshold_pct`` percent higher, SELL if more than that lower,
    HOLD otherwise. The last ``horizon`` feature rows have no label.
    """
    c = np.asarray(closes, dtype=float)
    n = max(0, min(int(n_features) - horizon, len(c) - warmup - horizon))
    labels = np.full(n, HOLD, dtype=int)
    if n == 0:
        return labels

    current = c[warmup:warmup + n]
    future = c[warmup + horizon:warmup + horizon + n]
    with np.errstate(divide="ignore", invalid="ignore"):
        change = (future - current) / current * 100.0
    labels[change > threshold_pct] = BUY
    labels[change < -threshold_pct] = SELL
    return labels


def heuristic_confidence(vector: Sequence[float] | np.ndarray) -> float:
    """Confidence from indicator extremes in a normalized feature vector.

    Not a calibrated probability: 0.5 plus fixed boosts, capped at 0.95.
    """
    v = np.asarray(vector, dtype=float)
    rsi = v[_IDX["rsi"]]
    macd = v[_IDX["macd"]]
    macd_signal = v[_IDX["macd_signal"]]
    bb = v[_IDX["bollinger_position"]]
    stoch_k = v[_IDX["stoch_k"]]
    williams = v[_IDX["williams_r"]]  # (%R + 100) / 100

    confidence = BASE_CONFIDENCE
    if rsi < 0.30 or rsi > 0.70:
        confidence += 0.15
    if abs(macd) > abs(macd_signal):
        confidence += 0.1
    if bb < 0.2 or bb > 0.8:
        confidence += 0.1
    if stoch_k < 0.20 or stoch_k > 0.80:
        confidence += 0.1
    # %R below -80 or above -20
    if williams < 0.20 or williams > 0.80:
        confidence += 0.1
    return float(min(MAX_CONFIDENCE, confidence))


@runtime_checkable
class SignalModel(Protocol):
    """Capability every signal classifier provides."""

    def train(self, features: np.ndarray, labels: np.ndarray) -> bool:
        """Fit on labelled rows. Returns False (and stays untrained) on failure."""
        ...

    def predict(self, features: np.ndarray) -> Prediction:
        """Prediction for the last feature row; neutral hold if untrained."""
        ...


class SklearnSignalModel:
    """Base for scikit-learn backed models. Subclasses build the estimator."""

    model_type = "sklearn"

    def __init__(self, cfg: ModelConfig = ModelConfig(), min_training_rows: int = MIN_TRAINING_ROWS):
        self.cfg = cfg
        self.min_training_rows = int(min_training_rows)
        self._estimator = None
        self.training_rows = 0
        self.class_counts: dict[str, int] = {}

    def _make_estimator(self):
        raise NotImplementedError

    @property
    def is_trained(self) -> bool:
        return self._estimator is not None

    def train(self, features: np.ndarray, labels: np.ndarray) -> bool:
        X = np.asarray(features, dtype=float)
        y = np.asarray(labels, dtype=int)
        if X.ndim != 2 or X.shape[0] < self.min_training_rows:
            logger.info(
                "Not enough data for training: %d feature rows (need %d)",
                0 if X.ndim != 2 else X.shape[0],
                self.min_training_rows,
            )
            return False
        if len(y) == 0 or len(y) > X.shape[0]:
            logger.warning("Label count %d does not fit %d feature rows", len(y), X.shape[0])
            return False

        # rows past the lookahead horizon have no label
        X = X[: len(y)]
        estimator = self._make_estimator()
        try:
            estimator.fit(X, y)
        except ValueError as exc:
            logger.warning("%s training failed: %s", self.model_type, exc)
            return False

        self._estimator = estimator
        self.training_rows = int(len(y))
        unique, counts = np.unique(y, return_counts=True)
        self.class_counts = {ACTIONS[int(k)]: int(n) for k, n in zip(unique, counts)}
        logger.info("%s trained on %d rows, classes=%s", self.model_type, self.training_rows, self.class_counts)
        return True

    def predict_label(self, features: np.ndarray) -> int:
        """Raw class label for the last feature row."""
        if self._estimator is None:
            raise ModelNotTrainedError(f"{self.model_type} model is not trained")
        X = np.asarray(features, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        return int(self._estimator.predict(X[-1:])[0])

    def predict(self, features: np.ndarray) -> Prediction:
        X = np.asarray(features, dtype=float)
        if X.size == 0:
            return Prediction.neutral()
        try:
            label = self.predict_label(X)
        except ModelNotTrainedError:
            return Prediction.neutral()
        except ValueError as exc:
            logger.warning("%s prediction failed: %s", self.model_type, exc)
            return Prediction.neutral()
        last = X.reshape(-1, X.shape[-1])[-1]
        return Prediction(action=ACTIONS.get(label, "hold"), confidence=heuristic_confidence(last))


class RandomForestSignalModel(SklearnSignalModel):
    model_type = "random_forest"

    def _make_estimator(self):
        return RandomForestClassifier(
            n_estimators=self.cfg.n_estimators,
            max_depth=self.cfg.max_depth,
            min_samples_leaf=self.cfg.min_samples_leaf,
            random_state=self.cfg.random_state,
            n_jobs=1,
        )


class GradientBoostingSignalModel(SklearnSignalModel):
    model_type = "gradient_boosting"

    def _make_estimator(self):
        return GradientBoostingClassifier(
            n_estimators=self.cfg.n_estimators,
            max_depth=self.cfg.max_depth or 3,
            min_samples_leaf=self.cfg.min_samples_leaf,
            random_state=self.cfg.random_state,
        )


MODEL_TYPES = {
    RandomForestSignalModel.model_type: RandomForestSignalModel,
    GradientBoostingSignalModel.model_type: GradientBoostingSignalModel,
}


def build_model(cfg: ModelConfig = ModelConfig(), min_training_rows: Optional[int] = None) -> SklearnSignalModel:
    try:
        cls = MODEL_TYPES[cfg.model_type]
    except KeyError:
        raise ValueError(f"Unknown model type: {cfg.model_type}") from None
    rows = MIN_TRAINING_ROWS if min_training_rows is None else min_training_rows
    return cls(cfg, min_training_rows=rows)
