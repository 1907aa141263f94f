"""Configuration objects for indicators, labeling, models and backtests.

All configs are frozen; request bodies map onto them via ``from_params_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass


def _map_params(mapping: dict, d: dict) -> dict:
    """Translate camelCase params keys to field names. Unknown keys are ignored."""
    kwargs = {}
    for k, v in (d or {}).items():
        if k in mapping:
            kwargs[mapping[k]] = v
    return kwargs


@dataclass(frozen=True)
class IndicatorConfig:
    """Indicator window configuration."""

    sma_period: int = 20
    ema_period: int = 20
    rsi_period: int = 14

    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9

    bollinger_period: int = 20
    bollinger_k: float = 2.0

    atr_period: int = 14
    stoch_k_period: int = 14
    stoch_d_period: int = 3
    williams_period: int = 14
    cci_period: int = 20

    # rolling sample std of close used as the "volatility" feature
    volatility_window: int = 20

    def __post_init__(self):
        for name in (
            "sma_period",
            "ema_period",
            "rsi_period",
            "macd_fast",
            "macd_slow",
            "macd_signal",
            "bollinger_period",
            "atr_period",
            "stoch_k_period",
            "stoch_d_period",
            "williams_period",
            "cci_period",
            "volatility_window",
        ):
            if int(getattr(self, name)) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.bollinger_k < 0:
            raise ValueError("bollinger_k must be non-negative")


@dataclass(frozen=True)
class StrategyConfig:
    """Labeling and price-level parameters of the ML signal strategy."""

    # label = BUY if the close `label_horizon` bars ahead is more than
    # `label_threshold_pct` percent higher, SELL if lower, else HOLD.
    # 1.5 and 2.0 are the usual settings.
    label_threshold_pct: float = 1.5
    label_horizon: int = 5

    min_training_rows: int = 100

    # priceTarget / stopLoss distance from the current close
    target_pct: float = 0.02
    stop_pct: float = 0.02
    min_history_for_targets: int = 20

    def __post_init__(self):
        if self.label_threshold_pct < 0:
            raise ValueError("label_threshold_pct must be non-negative")
        if self.label_horizon <= 0:
            raise ValueError("label_horizon must be positive")
        if self.min_training_rows <= 0:
            raise ValueError("min_training_rows must be positive")

    @classmethod
    def from_params_dict(cls, d: dict) -> "StrategyConfig":
        mapping = {
            "labelThreshold": "label_threshold_pct",
            "labelThresholdPct": "label_threshold_pct",
            "labelHorizon": "label_horizon",
            "minTrainingRows": "min_training_rows",
            "targetPct": "target_pct",
            "stopPct": "stop_pct",
        }
        return cls(**_map_params(mapping, d))


@dataclass(frozen=True)
class ModelConfig:
    """Configuration for the signal classifier."""

    model_type: str = "random_forest"  # 'random_forest' or 'gradient_boosting'
    n_estimators: int = 50
    max_depth: int | None = None
    min_samples_leaf: int = 1
    random_state: int = 42

    @classmethod
    def from_params_dict(cls, d: dict) -> "ModelConfig":
        mapping = {
            "modelType": "model_type",
            "nEstimators": "n_estimators",
            "maxDepth": "max_depth",
            "minSamplesLeaf": "min_samples_leaf",
            "randomState": "random_state",
        }
        kwargs = _map_params(mapping, d)
        if isinstance(kwargs.get("model_type"), str):
            kwargs["model_type"] = kwargs["model_type"].lower()
        return cls(**kwargs)


@dataclass(frozen=True)
class CostConfig:
    """Commission charged on each side of a trade."""

    commission_rate: float = 0.001

    def __post_init__(self):
        if self.commission_rate < 0:
            raise ValueError("commission_rate must be non-negative")


@dataclass(frozen=True)
class BacktestConfig:
    """Backtest run configuration.

    Notes:
    - the first `training_period` bars train the model, the rest are simulated
    - `position_size` is the fraction of current capital committed per trade
    """

    symbol: str = "BTCUSDT"

    training_period: int = 500
    min_test_bars: int = 1
    min_confidence: float = 0.6

    initial_capital: float = 10_000.0
    position_size: float = 0.1
    commission: float = 0.001

    def __post_init__(self):
        if self.training_period <= 0:
            raise ValueError("training_period must be positive")
        if self.min_test_bars <= 0:
            raise ValueError("min_test_bars must be positive")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError("min_confidence must be within [0, 1]")
        if self.initial_capital <= 0:
            raise ValueError("initial_capital must be positive")
        if not 0.0 < self.position_size <= 1.0:
            raise ValueError("position_size must be within (0, 1]")
        if self.commission < 0:
            raise ValueError("commission must be non-negative")

    @property
    def cost_config(self) -> CostConfig:
        return CostConfig(commission_rate=self.commission)

    @classmethod
    def from_params_dict(cls, d: dict) -> "BacktestConfig":
        """Create BacktestConfig from an orchestration-layer request body.

        Keys are camelCase (e.g., initialCapital, minConfidence). Unknown keys are ignored.
        """
        mapping = {
            "symbol": "symbol",
            "trainingPeriod": "training_period",
            "minTestBars": "min_test_bars",
            "minConfidence": "min_confidence",
            "initialCapital": "initial_capital",
            "positionSize": "position_size",
            "commission": "commission",
        }
        return cls(**_map_params(mapping, d))
