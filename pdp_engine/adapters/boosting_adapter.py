import logging
from typing import Any

import numpy as np
import pandas as pd

from .base import PredictionAdapter, as_numpy

logger = logging.getLogger(__name__)


def _is_booster(model: Any, library: str) -> bool:
    model_class = type(model)
    return model_class.__name__ == "Booster" and model_class.__module__.startswith(library)


class XGBoostBoosterAdapter(PredictionAdapter):
    """Adapter for native ``xgboost.Booster`` objects.

    The sklearn wrappers (``XGBClassifier``/``XGBRegressor``) go through the
    sklearn adapters; a raw booster needs its rows wrapped in a DMatrix.
    """

    tag = "xgboost_booster"

    def supports(self, model: Any) -> bool:
        return _is_booster(model, "xgboost")

    def predict(self, model: Any, rows: pd.DataFrame) -> np.ndarray:
        import xgboost as xgb

        logger.debug("Predicting %d rows with xgboost.Booster", len(rows))
        enable_categorical = any(isinstance(dtype, pd.CategoricalDtype) for dtype in rows.dtypes)
        return as_numpy(model.predict(xgb.DMatrix(rows, enable_categorical=enable_categorical)))


class LightGBMBoosterAdapter(PredictionAdapter):
    """Adapter for native ``lightgbm.Booster`` objects."""

    tag = "lightgbm_booster"

    def supports(self, model: Any) -> bool:
        return _is_booster(model, "lightgbm")

    def predict(self, model: Any, rows: pd.DataFrame) -> np.ndarray:
        logger.debug("Predicting %d rows with lightgbm.Booster", len(rows))
        return as_numpy(model.predict(rows))
