# pdp_engine/core/grid.py
"""Grid construction for partial dependence sweeps.

For each requested feature this module produces the values the feature
is swept over: sample quantiles or an evenly spaced range for continuous
features, every observed level for categorical or low-cardinality ones,
or caller-supplied cut points. Multi-feature grids are the Cartesian
product of the per-feature grids with the first feature varying slowest.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..config.pdp_config import GridConfig
from ..utils.logger import get_logger
from ..utils.exceptions import (
    DataValidationError,
    InvalidFeatureError,
    InvalidGridError
)

logger = get_logger(__name__)

MAX_FEATURES = 3
# Grids above this many rows are reported at WARNING level
LARGE_GRID_WARNING = 10_000

FeatureNames = Union[str, Sequence[str]]


@dataclass(frozen=True, eq=False)
class FeatureGrid:
    """Sweep values for a single feature.

    Attributes:
        name: Feature name
        values: Sweep values, sorted for numeric features
        is_categorical: Whether values are levels rather than numbers
        source: How values were derived ("quantile", "uniform", "unique",
            "levels", "explicit")
        dtype: Column dtype to restore in the grid frame (categoricals)
    """

    name: str
    values: np.ndarray
    is_categorical: bool
    source: str
    dtype: Optional[Any] = None

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True, eq=False)
class Grid:
    """Full sweep grid: one row per combination of feature values.

    The frame is private; ``to_frame`` hands out copies so the grid stays
    read-only while the averaging engine consumes it.
    """

    features: Tuple[str, ...]
    axes: Tuple[FeatureGrid, ...]
    _frame: pd.DataFrame = field(repr=False)

    def __len__(self) -> int:
        return len(self._frame)

    @property
    def size(self) -> int:
        return len(self._frame)

    @property
    def shape(self) -> Tuple[int, ...]:
        """Per-feature grid sizes; their product is the grid size for product grids."""
        return tuple(len(axis) for axis in self.axes)

    def to_frame(self) -> pd.DataFrame:
        return self._frame.copy()

    def point(self, index: int) -> Dict[str, Any]:
        """Feature values of one grid row as a plain dictionary."""
        # Per column, so mixed int and float features keep their own types
        return {name: _to_python(self._frame[name].iat[index]) for name in self.features}

    def column_values(self, name: str) -> np.ndarray:
        """Grid values of one feature, one entry per grid row."""
        return self._frame[name].to_numpy()

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        feature_names: FeatureNames,
        training_data: Optional[pd.DataFrame] = None
    ) -> "Grid":
        """Wrap a caller-supplied grid frame, keeping its row order.

        Args:
            frame: One column per feature, one row per grid point
            feature_names: Features the frame must cover exactly
            training_data: Optional data used to validate feature names

        Raises:
            InvalidGridError: If columns do not match the features, the frame
                is empty, or it holds levels a categorical training column lacks
        """
        features = validate_features(feature_names, training_data)

        if not isinstance(frame, pd.DataFrame):
            frame = pd.DataFrame(frame)

        if set(frame.columns) != set(features):
            raise InvalidGridError(
                f"Explicit grid columns {list(frame.columns)} do not match features {list(features)}",
                error_code="GRID_COLUMNS_MISMATCH",
                context={"features": list(features), "columns": list(frame.columns)}
            )

        if frame.empty:
            raise InvalidGridError(
                f"Explicit grid for {list(features)} has no rows",
                error_code="GRID_EMPTY",
                context={"features": list(features)}
            )

        frame = frame.loc[:, list(features)].reset_index(drop=True)

        if training_data is not None:
            for name in features:
                dtype = training_data[name].dtype
                if not isinstance(dtype, pd.CategoricalDtype):
                    continue
                categories = set(dtype.categories)
                unknown = [v for v in pd.unique(frame[name]) if v not in categories]
                if unknown:
                    raise InvalidGridError(
                        f"Explicit grid values {unknown} are not categories of feature '{name}'",
                        error_code="GRID_UNKNOWN_CATEGORY",
                        context={"feature": name, "categories": list(dtype.categories)}
                    )
                frame[name] = frame[name].astype(dtype)

        axes = tuple(
            FeatureGrid(
                name=name,
                values=np.asarray(pd.unique(frame[name])),
                is_categorical=not _is_numeric(frame[name]),
                source="explicit",
                dtype=frame[name].dtype
            )
            for name in features
        )
        return cls(features=features, axes=axes, _frame=frame)


def _to_python(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


def _is_numeric(column: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(column) and not pd.api.types.is_bool_dtype(column)


def validate_features(
    feature_names: FeatureNames,
    training_data: Optional[pd.DataFrame] = None
) -> Tuple[str, ...]:
    """Validate a feature selection and return it as an ordered tuple.

    Raises:
        InvalidFeatureError: For 0 or more than 3 features, duplicates, or
            names missing from the training data
    """
    if isinstance(feature_names, str):
        feature_names = [feature_names]
    features = tuple(feature_names)

    if not 1 <= len(features) <= MAX_FEATURES:
        raise InvalidFeatureError(
            f"Partial dependence needs between 1 and {MAX_FEATURES} features, got {len(features)}: {list(features)}",
            error_code="FEATURE_COUNT_INVALID",
            context={"features": list(features)}
        )

    duplicates = sorted({name for name in features if features.count(name) > 1}, key=str)
    if duplicates:
        raise InvalidFeatureError(
            f"Features must be unique, got duplicates: {duplicates}",
            error_code="FEATURE_DUPLICATED",
            context={"features": list(features), "duplicates": duplicates}
        )

    if training_data is not None:
        missing = [name for name in features if name not in training_data.columns]
        if missing:
            raise InvalidFeatureError(
                f"Features not found in training data: {missing}",
                error_code="FEATURE_NOT_FOUND",
                context={"features": list(features), "missing": missing}
            )

    return features


def _trim_outliers(values: np.ndarray) -> np.ndarray:
    """Keep values inside the 1.5 IQR boxplot fences."""
    q1, q3 = np.percentile(values, [25, 75])
    iqr = q3 - q1
    trimmed = values[(values >= q1 - 1.5 * iqr) & (values <= q3 + 1.5 * iqr)]
    return trimmed if trimmed.size else values


def _levels(column: pd.Series) -> np.ndarray:
    """Observed levels; category order for categoricals, sorted otherwise."""
    observed = column.dropna()
    if isinstance(column.dtype, pd.CategoricalDtype):
        present = set(observed.unique())
        return np.array([c for c in column.cat.categories if c in present], dtype=object)

    uniques = pd.unique(observed)
    try:
        dtype = uniques.dtype if isinstance(uniques, np.ndarray) else object
        return np.array(sorted(uniques), dtype=dtype)
    except TypeError:
        # Mixed, unorderable levels keep order of first appearance
        return np.asarray(uniques, dtype=object)


def _continuous_values(values: np.ndarray, config: GridConfig) -> np.ndarray:
    if config.trim_outliers:
        values = _trim_outliers(values)

    low_prob, high_prob = config.probs
    if config.strategy == "quantile":
        probs = np.linspace(low_prob, high_prob, config.resolution)
        grid = np.quantile(values, probs)
    else:
        low, high = np.quantile(values, [low_prob, high_prob])
        grid = np.linspace(low, high, config.resolution)

    # Quantile ties collapse here, which may leave fewer than resolution points
    return np.unique(grid)


def _explicit_values(name: str, cut_points: Any) -> Tuple[np.ndarray, bool]:
    values = pd.unique(pd.Series(list(np.atleast_1d(cut_points))))
    if len(values) < 2:
        raise InvalidGridError(
            f"Explicit cut points for feature '{name}' need at least 2 distinct values, got {len(values)}",
            error_code="GRID_TOO_FEW_CUT_POINTS",
            context={"feature": name, "cut_points": list(values)}
        )

    series = pd.Series(values)
    if _is_numeric(series):
        return np.unique(series.to_numpy(dtype=float)), False
    return np.asarray(values, dtype=object), True


def build_feature_grid(
    name: str,
    column: Optional[pd.Series],
    config: GridConfig,
    cut_points: Optional[Any] = None
) -> FeatureGrid:
    """Build the sweep values for one feature.

    Args:
        name: Feature name
        column: Training values of the feature (optional with cut points)
        config: Grid configuration
        cut_points: Optional explicit sweep values

    Returns:
        FeatureGrid for the feature
    """
    dtype = column.dtype if column is not None else None

    if cut_points is not None:
        values, is_categorical = _explicit_values(name, cut_points)
        if isinstance(dtype, pd.CategoricalDtype):
            unknown = [v for v in values if v not in set(dtype.categories)]
            if unknown:
                raise InvalidGridError(
                    f"Cut points {unknown} are not categories of feature '{name}'",
                    error_code="GRID_UNKNOWN_CATEGORY",
                    context={"feature": name, "categories": list(dtype.categories)}
                )
            is_categorical = True
            values = np.asarray(values, dtype=object)
        if not is_categorical and column is not None and pd.api.types.is_integer_dtype(column):
            if np.all(np.mod(values, 1) == 0):
                values = values.astype(column.dtype)
        return FeatureGrid(name, values, is_categorical, "explicit", dtype)

    observed = column.dropna()
    if observed.empty:
        raise InvalidGridError(
            f"Feature '{name}' has no non-missing values to build a grid from",
            error_code="GRID_NO_VALUES",
            context={"feature": name}
        )

    if name in config.categorical_features or not _is_numeric(column):
        return FeatureGrid(name, _levels(column), True, "levels", dtype)

    uniques = np.unique(observed.to_numpy())
    if len(uniques) <= config.discrete_threshold:
        return FeatureGrid(name, uniques, False, "unique", dtype)

    values = _continuous_values(observed.to_numpy(dtype=float), config)
    return FeatureGrid(name, values, False, config.strategy, dtype)


def cartesian_product(axes: Sequence[FeatureGrid]) -> pd.DataFrame:
    """Cross product of per-feature grids, first feature varying slowest."""
    index_grids = np.meshgrid(*[np.arange(len(axis)) for axis in axes], indexing="ij")

    columns = {}
    for axis, index_grid in zip(axes, index_grids):
        values = axis.values[index_grid.ravel()]
        if isinstance(axis.dtype, pd.CategoricalDtype):
            values = pd.Categorical(values, categories=axis.dtype.categories, ordered=axis.dtype.ordered)
        columns[axis.name] = values

    return pd.DataFrame(columns)


def build_grid(
    feature_names: FeatureNames,
    training_data: Optional[pd.DataFrame] = None,
    config: Optional[GridConfig] = None,
    grid_values: Optional[Mapping[str, Any]] = None
) -> Grid:
    """Build the sweep grid for 1 to 3 features.

    Args:
        feature_names: Feature name or ordered sequence of names
        training_data: Training rows; required unless every feature has
            explicit cut points in ``grid_values``
        config: Grid configuration (defaults to GridConfig())
        grid_values: Optional mapping of feature name to explicit cut points

    Returns:
        Grid with one row per feature value combination

    Raises:
        InvalidFeatureError: If the feature selection is invalid
        InvalidGridError: If a grid cannot be built from the inputs

    Example:
        >>> grid = build_grid(["age", "income"], X, GridConfig(resolution=5))
        >>> len(grid)
        25
    """
    config = config or GridConfig()
    grid_values = dict(grid_values or {})

    if training_data is not None and not isinstance(training_data, pd.DataFrame):
        raise DataValidationError(
            f"Training data must be a pandas DataFrame, got {type(training_data).__name__}",
            error_code="DATA_NOT_FRAME"
        )

    features = validate_features(feature_names, training_data)

    unknown = [name for name in grid_values if name not in features]
    if unknown:
        raise InvalidFeatureError(
            f"Cut points given for features that were not requested: {unknown}",
            error_code="FEATURE_NOT_REQUESTED",
            context={"features": list(features), "unknown": unknown}
        )

    if training_data is None:
        needs_data = [name for name in features if name not in grid_values]
        if needs_data:
            raise DataValidationError(
                f"Training data is required to build grids for {needs_data}",
                error_code="DATA_REQUIRED",
                context={"features": needs_data}
            )

    axes = tuple(
        build_feature_grid(
            name,
            training_data[name] if training_data is not None else None,
            config,
            cut_points=grid_values.get(name)
        )
        for name in features
    )

    for axis in axes:
        if len(axis) < 2:
            logger.warning(f"Feature '{axis.name}' is constant; its grid has a single value")

    frame = cartesian_product(axes)

    if len(features) > 1:
        message = (
            f"Grid for {list(features)} is the product of per-feature sizes "
            f"{[len(axis) for axis in axes]} = {len(frame)} rows"
        )
        if len(frame) > LARGE_GRID_WARNING:
            logger.warning(message)
        else:
            logger.info(message)

    logger.debug(f"Built grid for {list(features)}: {len(frame)} rows")
    return Grid(features=features, axes=axes, _frame=frame)
