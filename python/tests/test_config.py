"""Tests for configuration objects."""

import pytest

from ta_ml.config import BacktestConfig, IndicatorConfig, ModelConfig, StrategyConfig


class TestBacktestConfig:
    def test_defaults(self):
        cfg = BacktestConfig()
        assert cfg.training_period == 500
        assert cfg.min_confidence == 0.6
        assert cfg.position_size == 0.1
        assert cfg.cost_config.commission_rate == cfg.commission

    def test_from_params_dict(self):
        cfg = BacktestConfig.from_params_dict(
            {
                "symbol": "ETHUSDT",
                "trainingPeriod": 300,
                "minConfidence": 0.7,
                "initialCapital": 5000,
                "positionSize": 0.25,
                "commission": 0.0005,
                "somethingElse": 1,
            }
        )
        assert cfg.symbol == "ETHUSDT"
        assert cfg.training_period == 300
        assert cfg.min_confidence == 0.7
        assert cfg.initial_capital == 5000
        assert cfg.position_size == 0.25
        assert cfg.commission == 0.0005

    def test_from_empty_params(self):
        assert BacktestConfig.from_params_dict({}) == BacktestConfig()
        assert BacktestConfig.from_params_dict(None) == BacktestConfig()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"training_period": 0},
            {"min_test_bars": 0},
            {"min_confidence": 1.5},
            {"initial_capital": 0.0},
            {"position_size": 0.0},
            {"position_size": 1.5},
            {"commission": -0.001},
        ],
    )
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            BacktestConfig(**kwargs)


class TestStrategyConfig:
    def test_from_params_dict(self):
        cfg = StrategyConfig.from_params_dict({"labelThreshold": 2.0, "labelHorizon": 3})
        assert cfg.label_threshold_pct == 2.0
        assert cfg.label_horizon == 3
        assert cfg.target_pct == 0.02

    def test_validation(self):
        with pytest.raises(ValueError):
            StrategyConfig(label_horizon=0)
        with pytest.raises(ValueError):
            StrategyConfig(label_threshold_pct=-1.0)


class TestModelConfig:
    def test_model_type_lowercased(self):
        cfg = ModelConfig.from_params_dict({"modelType": "Gradient_Boosting", "nEstimators": 10})
        assert cfg.model_type == "gradient_boosting"
        assert cfg.n_estimators == 10
        assert cfg.random_state == 42


class TestIndicatorConfig:
    def test_rejects_non_positive_period(self):
        with pytest.raises(ValueError):
            IndicatorConfig(rsi_period=0)
        with pytest.raises(ValueError):
            IndicatorConfig(bollinger_k=-1.0)
