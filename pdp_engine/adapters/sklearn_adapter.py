# pdp_engine/adapters/sklearn_adapter.py
"""Prediction adapters for scikit-learn compatible estimators."""

from typing import Any, Optional, Union

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, is_classifier, is_regressor

from .base import PredictionAdapter, as_numpy
from ..utils.exceptions import ConfigurationError

# Floor for probabilities before taking logs
PROBA_EPS = np.finfo(float).eps


def _estimator_type(model: Any) -> Optional[str]:
    """Estimator kind of a model: classifier, regressor or None."""
    if isinstance(model, BaseEstimator):
        if is_classifier(model):
            return "classifier"
        if is_regressor(model):
            return "regressor"
        return None
    return getattr(model, "_estimator_type", None)


class SklearnRegressorAdapter(PredictionAdapter):
    """Uses ``model.predict``; multi-output regressors yield one channel per output."""

    tag = "sklearn_regressor"

    def supports(self, model: Any) -> bool:
        if not hasattr(model, "predict"):
            return False
        return _estimator_type(model) == "regressor" or not hasattr(model, "predict_proba")

    def predict(self, model: Any, rows: pd.DataFrame) -> np.ndarray:
        return as_numpy(model.predict(rows))


class SklearnClassifierAdapter(PredictionAdapter):
    """Uses ``model.predict_proba`` for classifiers.

    Args:
        which_class: Class label or column position to report; ``None``
            reports every class as its own channel
        prob: Report probabilities when True, otherwise the centered logit
            ``log(p_k) - mean_j log(p_j)``
    """

    tag = "sklearn_classifier"

    def __init__(self, which_class: Optional[Union[int, str]] = 0, prob: bool = False) -> None:
        self.which_class = which_class
        self.prob = prob

    def supports(self, model: Any) -> bool:
        if not hasattr(model, "predict_proba"):
            return False
        return _estimator_type(model) == "classifier" or hasattr(model, "classes_")

    def configure(self, **options: Any) -> "SklearnClassifierAdapter":
        return SklearnClassifierAdapter(
            which_class=options.get("which_class", self.which_class),
            prob=options.get("prob", self.prob)
        )

    def _class_position(self, classes: np.ndarray) -> int:
        if self.which_class in list(classes):
            return list(classes).index(self.which_class)

        if isinstance(self.which_class, (int, np.integer)) and 0 <= self.which_class < len(classes):
            return int(self.which_class)

        raise ConfigurationError(
            f"which_class={self.which_class!r} matches neither a class label nor a position",
            error_code="UNKNOWN_CLASS",
            context={"classes": list(classes)}
        )

    def predict(self, model: Any, rows: pd.DataFrame) -> Any:
        proba = as_numpy(model.predict_proba(rows))
        if proba.ndim == 1:
            proba = np.column_stack([1.0 - proba, proba])

        if self.prob:
            values = proba
        else:
            log_proba = np.log(np.clip(proba, PROBA_EPS, None))
            values = log_proba - log_proba.mean(axis=1, keepdims=True)

        classes = getattr(model, "classes_", None)
        if classes is None:
            classes = np.arange(proba.shape[1])
        classes = np.asarray(classes)

        if self.which_class is None:
            return pd.DataFrame(values, columns=[str(c) for c in classes])

        return values[:, self._class_position(classes)]

    def __repr__(self) -> str:
        return f"SklearnClassifierAdapter(which_class={self.which_class!r}, prob={self.prob})"
