# pdp_engine/adapters/base.py
"""Prediction adapter interface.

An adapter turns ``(model, rows)`` into predictions. The averaging engine
only ever talks to this interface, so supporting a new model family means
registering a new adapter, never touching the engine.
"""

from typing import Any, Callable, Optional, Tuple

import numpy as np
import pandas as pd


class PredictionAdapter:
    """Base adapter interface for model prediction.

    Implementations expose ``predict(model, rows)`` returning one of:

    - a 1-d array-like with one prediction per row (single channel),
    - a 2-d array with one column per output channel,
    - a DataFrame whose columns name the output channels,
    - a mapping of channel name to 1-d array-like.

    ``supports`` decides whether the adapter can handle a given model when
    no explicit tag was requested.
    """

    tag: str = "base"

    def supports(self, model: Any) -> bool:
        return False

    def predict(self, model: Any, rows: pd.DataFrame) -> Any:
        raise NotImplementedError()

    def configure(self, **options: Any) -> "PredictionAdapter":
        """Return an adapter honouring model-family options.

        Adapters without options ignore them and return themselves.
        """
        return self

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tag={self.tag!r})"


class FunctionAdapter(PredictionAdapter):
    """Adapter wrapping a caller-supplied ``predict_fn(model, rows)``.

    Args:
        predict_fn: Callable receiving the model handle and a row batch
        model_types: Optional class or tuple of classes this function handles
        tag: Registry tag for the wrapped function
    """

    def __init__(
        self,
        predict_fn: Callable[[Any, pd.DataFrame], Any],
        model_types: Optional[Tuple[type, ...]] = None,
        tag: str = "function"
    ) -> None:
        if not callable(predict_fn):
            raise TypeError(f"predict_fn must be callable, got {type(predict_fn).__name__}")
        self.predict_fn = predict_fn
        self.model_types = model_types
        self.tag = tag

    def supports(self, model: Any) -> bool:
        return self.model_types is not None and isinstance(model, self.model_types)

    def predict(self, model: Any, rows: pd.DataFrame) -> Any:
        return self.predict_fn(model, rows)


class CallableModelAdapter(PredictionAdapter):
    """Adapter for models that are plain callables ``f(rows) -> predictions``."""

    tag = "callable"

    def supports(self, model: Any) -> bool:
        return callable(model) and not hasattr(model, "predict")

    def predict(self, model: Any, rows: pd.DataFrame) -> Any:
        return model(rows)


def model_type_tag(model: Any) -> str:
    """Type tag of a model: ``<top-level module>.<class name>``.

    Example:
        >>> from sklearn.linear_model import LinearRegression
        >>> model_type_tag(LinearRegression())
        'sklearn.LinearRegression'
    """
    model_class = type(model)
    root_module = (model_class.__module__ or "").split(".")[0]
    return f"{root_module}.{model_class.__name__}"


def as_numpy(values: Any) -> np.ndarray:
    """Coerce a model's raw output to a numpy array."""
    if isinstance(values, (pd.Series, pd.DataFrame)):
        return values.to_numpy()
    return np.asarray(values)
