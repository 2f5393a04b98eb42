"""pdp_engine - Prediction Adapters.

Adapters map ``(model, rows)`` to predictions. Built-in adapters cover
scikit-learn estimators, native xgboost/lightgbm boosters and plain
callables; anything else is supported by registering an adapter.

Example:
    >>> from pdp_engine.adapters import register_adapter
    >>> register_adapter("mylib.MyModel", lambda model, rows: model.score_rows(rows))
"""

from .base import (
    PredictionAdapter,
    FunctionAdapter,
    CallableModelAdapter,
    model_type_tag
)
from .sklearn_adapter import SklearnClassifierAdapter, SklearnRegressorAdapter
from .boosting_adapter import XGBoostBoosterAdapter, LightGBMBoosterAdapter
from .registry import (
    AdapterRegistry,
    get_registry,
    register_adapter,
    get_adapter
)

__all__ = [
    'PredictionAdapter',
    'FunctionAdapter',
    'CallableModelAdapter',
    'SklearnClassifierAdapter',
    'SklearnRegressorAdapter',
    'XGBoostBoosterAdapter',
    'LightGBMBoosterAdapter',
    'AdapterRegistry',
    'get_registry',
    'register_adapter',
    'get_adapter',
    'model_type_tag'
]
