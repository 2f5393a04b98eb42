# pdp_engine/core/partial.py
"""Partial dependence and ICE computation with comprehensive options.

This module ties the pipeline together:
- Grid construction from training data, cut points or a ready grid frame
- Adapter resolution for the model (or a caller-supplied predict_fn)
- Averaging over training rows on a pluggable executor
- Optional ICE centering and convex hull flags
- Assembly into an immutable PartialDependenceTable
"""

from concurrent.futures import Executor
from dataclasses import replace
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .averaging import CostEstimate, PredictFn, SummaryFn, compute, estimate_cost
from .assembler import PartialDependenceTable, assemble
from .centering import center as center_table
from .executors import executor_scope
from .grid import FeatureNames, Grid, build_grid, validate_features
from . import hull
from ..adapters.registry import get_adapter
from ..config.pdp_config import ComputeConfig, GridConfig, PartialDependenceConfig
from ..utils.logger import get_logger
from ..utils.timer import timer, timed_operation
from ..utils.exceptions import ConfigurationError, DataValidationError

logger = get_logger(__name__)


class PartialDependenceCalculator:
    """Partial dependence and ICE calculator for a fitted model.

    The calculator holds the model, its prediction adapter and the run
    configuration; every ``compute`` call is independent and stateless.

    Example:
        >>> calculator = PartialDependenceCalculator(model, config=PartialDependenceConfig.for_ice())
        >>> table = calculator.compute(X_train, "age")
        >>> table.to_frame().head()
    """

    def __init__(
        self,
        model: Any,
        config: Optional[PartialDependenceConfig] = None,
        predict_fn: Optional[PredictFn] = None,
        adapter_tag: Optional[str] = None,
        **adapter_options: Any
    ) -> None:
        """Initialize the calculator.

        Args:
            model: Fitted model handle
            config: Run configuration (defaults to PartialDependenceConfig())
            predict_fn: PredictionAdapter or ``fn(model, rows)``; bypasses the registry
            adapter_tag: Explicit registry tag for the model's adapter
            **adapter_options: Options for the resolved adapter, e.g.
                ``which_class`` and ``prob`` for classifiers
        """
        self.model = model
        self.config = config or PartialDependenceConfig()

        if predict_fn is not None and (adapter_tag is not None or adapter_options):
            raise ConfigurationError(
                "predict_fn cannot be combined with adapter_tag or adapter options",
                error_code="ADAPTER_OPTIONS_CONFLICT"
            )

        if predict_fn is None:
            self.adapter = get_adapter(model, tag=adapter_tag, **adapter_options)
        else:
            self.adapter = predict_fn

        logger.info(f"Initialized PartialDependenceCalculator:")
        logger.info(f"  Model: {type(model).__name__}, Adapter: {self.adapter!r}")
        logger.info(f"  Grid resolution: {self.config.grid.resolution}, ICE: {self.config.compute.ice}")

    def build_grid(
        self,
        training_data: Optional[pd.DataFrame],
        features: FeatureNames,
        grid_values: Optional[Mapping[str, Any]] = None,
        pred_grid: Optional[pd.DataFrame] = None
    ) -> Grid:
        """Build the sweep grid, or wrap a caller-supplied one.

        Raises:
            ConfigurationError: If both grid_values and pred_grid are given
        """
        if pred_grid is not None:
            if grid_values:
                raise ConfigurationError(
                    "Pass either grid_values or pred_grid, not both",
                    error_code="GRID_SOURCE_CONFLICT"
                )
            return Grid.from_frame(pred_grid, features, training_data)

        return build_grid(features, training_data, self.config.grid, grid_values)

    def estimate_cost(
        self,
        training_data: pd.DataFrame,
        features: FeatureNames,
        grid_values: Optional[Mapping[str, Any]] = None,
        pred_grid: Optional[pd.DataFrame] = None
    ) -> CostEstimate:
        """Prediction count of a ``compute`` call, without making any prediction."""
        grid = self.build_grid(training_data, features, grid_values, pred_grid)
        n_rows = len(training_data)
        if self.config.compute.subsample is not None:
            n_rows = min(n_rows, self.config.compute.subsample)
        return estimate_cost(grid, n_rows)

    @timer(name="partial_dependence")
    def compute(
        self,
        training_data: pd.DataFrame,
        features: FeatureNames,
        grid_values: Optional[Mapping[str, Any]] = None,
        pred_grid: Optional[pd.DataFrame] = None,
        summary_fn: Optional[SummaryFn] = None,
        sample_weight: Optional[Any] = None,
        inv_link: Optional[Callable[[np.ndarray], np.ndarray]] = None,
        executor: Optional[Executor] = None,
        should_stop: Optional[Callable[[], bool]] = None
    ) -> PartialDependenceTable:
        """Compute a partial dependence or ICE table.

        Args:
            training_data: Background rows (never modified)
            features: 1 to 3 feature names, in axis order
            grid_values: Optional explicit cut points per feature
            pred_grid: Optional ready grid frame, used as-is
            summary_fn: Custom reduction of one channel's predictions
            sample_weight: Row weights for the default weighted mean
            inv_link: Transform applied to predictions before reduction
            executor: Executor for grid rows; one is created from the
                compute config when omitted and shut down afterwards
            should_stop: Polled between grid rows; returning True aborts

        Returns:
            PartialDependenceTable in grid order

        Raises:
            InvalidFeatureError: If the feature selection is invalid
            InvalidGridError: If no valid grid can be built
            InconsistentOutputError: If adapter outputs disagree across grid rows
            AdapterInvocationError: If the adapter fails
        """
        if not isinstance(training_data, pd.DataFrame):
            raise DataValidationError(
                f"Training data must be a pandas DataFrame, got {type(training_data).__name__}",
                error_code="DATA_NOT_FRAME"
            )

        compute_config = self.config.compute
        feature_list = validate_features(features, training_data)

        if compute_config.ice and summary_fn is not None:
            logger.warning("summary_fn is ignored for ICE curves")

        with timed_operation("grid_construction", log_result=False):
            grid = self.build_grid(training_data, feature_list, grid_values, pred_grid)

        with executor_scope(executor, compute_config.backend, compute_config.n_jobs) as active_executor:
            result = compute(
                self.model,
                grid,
                training_data,
                feature_list,
                predict_fn=self.adapter,
                ice=compute_config.ice,
                summary_fn=None if compute_config.ice else summary_fn,
                sample_weight=sample_weight,
                subsample=compute_config.subsample,
                random_state=compute_config.random_state,
                inv_link=inv_link,
                executor=active_executor,
                should_stop=should_stop,
                max_predictions=compute_config.max_predictions
            )

        hull_flags = None
        if compute_config.chull:
            hull_flags = self._hull_flags(grid, training_data, feature_list)

        table = assemble(grid, result, centering_applied=False, hull_flags=hull_flags)
        if compute_config.center:
            table = center_table(table)

        logger.info(
            f"Computed {'ICE' if table.ice else 'partial dependence'} table for "
            f"{list(table.features)}: {len(table)} rows, channels {list(table.channels)}"
        )
        return table

    def _hull_flags(self, grid: Grid, training_data: pd.DataFrame, features: Sequence[str]) -> Optional[set]:
        if len(features) != 2:
            logger.warning(f"Convex hull masking needs exactly 2 features, got {len(features)}; skipped")
            return None

        grid_points = grid.to_frame()[list(features)]
        training_points = training_data[list(features)]
        return hull.mask(grid_points, training_points)


def _resolve_config(
    config: Optional[PartialDependenceConfig],
    grid_overrides: Dict[str, Any],
    compute_overrides: Dict[str, Any]
) -> PartialDependenceConfig:
    """Apply keyword overrides on top of a base configuration."""
    config = config or PartialDependenceConfig()
    grid_overrides = {k: v for k, v in grid_overrides.items() if v is not None}
    compute_overrides = {k: v for k, v in compute_overrides.items() if v is not None}

    grid_config: GridConfig = replace(config.grid, **grid_overrides) if grid_overrides else config.grid
    compute_config: ComputeConfig = (
        replace(config.compute, **compute_overrides) if compute_overrides else config.compute
    )
    return PartialDependenceConfig(grid=grid_config, compute=compute_config)


def partial(
    model: Any,
    training_data: pd.DataFrame,
    features: FeatureNames,
    *,
    predict_fn: Optional[PredictFn] = None,
    ice: Optional[bool] = None,
    center: Optional[bool] = None,
    resolution: Optional[int] = None,
    config: Optional[PartialDependenceConfig] = None,
    grid_values: Optional[Mapping[str, Any]] = None,
    pred_grid: Optional[pd.DataFrame] = None,
    summary_fn: Optional[SummaryFn] = None,
    sample_weight: Optional[Any] = None,
    subsample: Optional[int] = None,
    random_state: Optional[int] = None,
    chull: Optional[bool] = None,
    executor: Optional[Executor] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    inv_link: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    adapter_tag: Optional[str] = None,
    **adapter_options: Any
) -> PartialDependenceTable:
    """Compute partial dependence (or ICE curves) for 1 to 3 features.

    Keyword arguments left as None fall back to ``config``.

    Args:
        model: Fitted model handle
        training_data: Background rows (never modified)
        features: Feature name or ordered sequence of names
        predict_fn: PredictionAdapter or ``fn(model, rows)``
        ice: Return one curve per training row
        center: Center ICE curves at their first grid point
        resolution: Grid points per continuous feature
        config: Base configuration
        grid_values: Explicit cut points per feature
        pred_grid: Ready grid frame, used as-is
        summary_fn: Custom reduction, e.g. returning ``{"mean": ..., "sd": ...}``
        sample_weight: Row weights for the default weighted mean
        subsample: Rows drawn once before averaging
        random_state: Seed for the subsample
        chull: Flag bivariate grid points outside the training convex hull
        executor: Executor for grid rows
        should_stop: Polled between grid rows; returning True aborts
        inv_link: Transform applied to predictions before reduction
        adapter_tag: Explicit registry tag for the model's adapter
        **adapter_options: Adapter options such as ``which_class`` or ``prob``

    Returns:
        PartialDependenceTable

    Example:
        >>> table = partial(model, X, ["x1", "x2"], resolution=10, chull=True)
        >>> table.to_frame().head()
    """
    run_config = _resolve_config(
        config,
        grid_overrides={"resolution": resolution},
        compute_overrides={
            "ice": ice,
            "center": center,
            "subsample": subsample,
            "random_state": random_state,
            "chull": chull
        }
    )

    calculator = PartialDependenceCalculator(
        model,
        config=run_config,
        predict_fn=predict_fn,
        adapter_tag=adapter_tag,
        **adapter_options
    )
    return calculator.compute(
        training_data,
        features,
        grid_values=grid_values,
        pred_grid=pred_grid,
        summary_fn=summary_fn,
        sample_weight=sample_weight,
        inv_link=inv_link,
        executor=executor,
        should_stop=should_stop
    )
