"""Exception taxonomy.

Only the two entry points (strategy training, backtest run) surface errors
to callers. Non-finite feature inputs are not errors at all: the feature
extractor substitutes a neutral default for the affected feature.
"""

from __future__ import annotations


class TaMlError(Exception):
    """Base class for ta_ml errors."""


class InsufficientDataError(TaMlError, ValueError):
    """Too few bars to train a model or run a backtest."""

    def __init__(self, message: str, required: int | None = None, available: int | None = None):
        super().__init__(message)
        self.required = required
        self.available = available


class ModelNotTrainedError(TaMlError, RuntimeError):
    """A model was asked to predict before a successful ``train``."""
