# pdp_engine/core/averaging.py
"""Averaging engine: the brute-force partial dependence computation.

For every grid row the target feature columns of a working copy of the
training data are overwritten with that row's values, the prediction
adapter is called on the whole batch, and the per-row predictions are
either reduced to one value per channel (partial dependence) or kept as
they are (ICE). All other columns keep their training values, which is
what makes the average a Monte Carlo integral over the empirical
distribution of the remaining features.

Grid rows are independent. They are split into chunks and handed to an
executor; each chunk owns one working buffer that is overwritten in
place row after row, so workers never share mutable state.
"""

from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .executors import SequentialExecutor, worker_count
from .grid import Grid, validate_features
from ..adapters.base import PredictionAdapter, FunctionAdapter, as_numpy
from ..adapters.registry import get_adapter
from ..utils.logger import get_logger
from ..utils.timer import timer
from ..utils.exceptions import (
    AdapterInvocationError,
    ComputationAbortedError,
    DataValidationError,
    InconsistentOutputError,
    InvalidFeatureError,
    PerformanceError
)

logger = get_logger(__name__)

SINGLE_CHANNEL = "yhat"
# Chunks handed out per worker; more chunks give finer-grained abort checks
CHUNKS_PER_WORKER = 4
GRID_LOOP_TIMER = "grid_loop"

PredictFn = Union[PredictionAdapter, Callable[[Any, pd.DataFrame], Any]]
SummaryFn = Callable[[np.ndarray], Any]


@dataclass(frozen=True)
class CostEstimate:
    """Upfront cost of a computation, known before any prediction is made."""

    n_grid: int
    n_rows: int

    @property
    def n_predictions(self) -> int:
        return self.n_grid * self.n_rows

    @property
    def n_adapter_calls(self) -> int:
        return self.n_grid

    def __str__(self) -> str:
        return (
            f"{self.n_grid} grid rows x {self.n_rows} training rows = "
            f"{self.n_predictions:,} predictions"
        )


@dataclass(frozen=True, eq=False)
class PredictionResult:
    """Output of the averaging engine.

    Attributes:
        values: ``(n_grid, n_channels)`` aggregates, or
            ``(n_grid, n_rows, n_channels)`` per-row predictions for ICE
        channels: Output column names, one per channel
        ice: Whether values hold per-row predictions
        row_ids: Positions of the averaged rows in the caller's training data
        weights: Row weights used by the default weighted mean
    """

    values: np.ndarray
    channels: Tuple[str, ...]
    ice: bool
    row_ids: np.ndarray
    weights: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def n_grid(self) -> int:
        return self.values.shape[0]

    @property
    def n_rows(self) -> int:
        return len(self.row_ids)


@dataclass
class _ChunkTask:
    """Everything a worker needs to evaluate a run of grid rows."""

    model: Any
    adapter: PredictionAdapter
    data: pd.DataFrame
    features: Tuple[str, ...]
    dtypes: Dict[str, Any]
    grid_indices: List[int]
    points: List[Dict[str, Any]]
    ice: bool
    summary_fn: Optional[SummaryFn]
    weights: Optional[np.ndarray]
    inv_link: Optional[Callable[[np.ndarray], np.ndarray]]
    should_stop: Optional[Callable[[], bool]]


def estimate_cost(grid: Union[Grid, int], n_rows: int) -> CostEstimate:
    """Number of predictions a computation will make.

    Example:
        >>> estimate_cost(grid, len(X)).n_predictions
        51000
    """
    n_grid = grid if isinstance(grid, int) else len(grid)
    return CostEstimate(n_grid=n_grid, n_rows=n_rows)


def validate_weights(sample_weight: Optional[Any], n_rows: int) -> Optional[np.ndarray]:
    """Check sample weights against the training data."""
    if sample_weight is None:
        return None

    weights = np.asarray(sample_weight, dtype=float).ravel()
    if len(weights) != n_rows:
        raise DataValidationError(
            f"sample_weight has {len(weights)} entries but training data has {n_rows} rows",
            error_code="WEIGHTS_LENGTH_MISMATCH"
        )
    if np.any(weights < 0) or not np.isfinite(weights).all() or weights.sum() <= 0:
        raise DataValidationError(
            "sample_weight must be finite, non-negative and not all zero",
            error_code="WEIGHTS_INVALID"
        )
    return weights


def subsample_rows(
    training_data: pd.DataFrame,
    subsample: Optional[int] = None,
    random_state: Optional[int] = None,
    sample_weight: Optional[np.ndarray] = None
) -> Tuple[pd.DataFrame, np.ndarray, Optional[np.ndarray]]:
    """Draw the integration basis once, before the grid loop.

    Rows are drawn without replacement and kept in their original order,
    so the same seed always yields the same rows in the same positions.

    Returns:
        Tuple of (rows, row positions in training_data, matching weights)
    """
    n_rows = len(training_data)

    if subsample is None or subsample >= n_rows:
        row_ids = np.arange(n_rows)
    else:
        rng = np.random.RandomState(random_state)
        row_ids = np.sort(rng.choice(n_rows, size=subsample, replace=False))
        logger.info(f"Subsampled {subsample} of {n_rows} training rows")

    rows = training_data.iloc[row_ids].reset_index(drop=True)
    weights = sample_weight[row_ids] if sample_weight is not None else None
    return rows, row_ids, weights


def _broadcast(value: Any, n_rows: int, dtype: Any) -> Any:
    """A full column holding one grid value, keeping categorical dtypes."""
    if isinstance(dtype, pd.CategoricalDtype):
        return pd.Categorical.from_codes(
            np.full(n_rows, dtype.categories.get_loc(value)), dtype=dtype
        )
    return np.full(n_rows, value)


def _channel_names(n_channels: int) -> Tuple[str, ...]:
    if n_channels == 1:
        return (SINGLE_CHANNEL,)
    return tuple(f"{SINGLE_CHANNEL}_{j}" for j in range(n_channels))


def normalize_output(raw: Any, n_rows: int) -> Tuple[Tuple[str, ...], np.ndarray]:
    """Turn adapter output into channel names and an ``(n_rows, n_channels)`` array.

    Raises:
        InconsistentOutputError: If the output does not hold one numeric
            prediction per row
    """
    if isinstance(raw, Mapping):
        channels = tuple(str(key) for key in raw)
        columns = [as_numpy(value).ravel() for value in raw.values()]
        if any(len(column) != n_rows for column in columns):
            raise InconsistentOutputError(
                f"Every channel must hold {n_rows} predictions",
                error_code="OUTPUT_LENGTH_MISMATCH",
                context={"channels": list(channels), "lengths": [len(c) for c in columns]}
            )
        values = np.column_stack(columns) if columns else np.empty((n_rows, 0))
    elif isinstance(raw, pd.DataFrame):
        channels = tuple(str(column) for column in raw.columns)
        values = raw.to_numpy()
    else:
        values = as_numpy(raw)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        if values.ndim != 2:
            raise InconsistentOutputError(
                f"Adapter output must be 1-d or 2-d, got shape {values.shape}",
                error_code="OUTPUT_SHAPE_INVALID"
            )
        channels = _channel_names(values.shape[1])

    if values.shape[0] != n_rows:
        raise InconsistentOutputError(
            f"Adapter returned {values.shape[0]} predictions for {n_rows} rows",
            error_code="OUTPUT_LENGTH_MISMATCH",
            context={"expected": n_rows, "received": values.shape[0]}
        )

    if not channels:
        raise InconsistentOutputError("Adapter returned no output channels", error_code="OUTPUT_EMPTY")

    try:
        values = values.astype(float)
    except (TypeError, ValueError) as e:
        raise InconsistentOutputError(
            f"Adapter returned non-numeric predictions ({values.dtype})",
            error_code="OUTPUT_NOT_NUMERIC"
        ) from e

    return channels, values


def aggregate(
    values: np.ndarray,
    channels: Sequence[str],
    summary_fn: Optional[SummaryFn] = None,
    weights: Optional[np.ndarray] = None
) -> Tuple[Tuple[str, ...], np.ndarray]:
    """Reduce per-row predictions to one value per output column.

    Without ``summary_fn`` each channel is reduced to its (weighted) mean.
    A ``summary_fn`` receives one channel's predictions and returns a
    scalar or a mapping of statistic name to scalar; the statistics of a
    multi-channel output are named ``<channel>_<stat>``.
    """
    if summary_fn is None:
        return tuple(channels), np.average(values, axis=0, weights=weights)

    names: List[str] = []
    results: List[float] = []
    for j, channel in enumerate(channels):
        summary = summary_fn(values[:, j])
        if isinstance(summary, Mapping):
            for stat, stat_value in summary.items():
                names.append(str(stat) if len(channels) == 1 else f"{channel}_{stat}")
                results.append(float(stat_value))
        elif np.ndim(summary) == 0:
            names.append(channel)
            results.append(float(summary))
        else:
            for k, stat_value in enumerate(np.ravel(summary)):
                names.append(f"{channel}_{k}")
                results.append(float(stat_value))

    return tuple(names), np.asarray(results, dtype=float)


def _evaluate_chunk(task: _ChunkTask) -> List[Tuple[int, Tuple[str, ...], np.ndarray]]:
    """Evaluate a run of grid rows on one private working buffer."""
    buffer = task.data.copy()
    n_rows = len(buffer)
    outputs = []

    for grid_index, point in zip(task.grid_indices, task.points):
        if task.should_stop is not None and task.should_stop():
            raise ComputationAbortedError(
                f"Partial dependence for {list(task.features)} aborted at grid row {grid_index}",
                error_code="COMPUTATION_ABORTED",
                context={"features": list(task.features), "grid_index": grid_index,
                         "completed_grid_rows": len(outputs)}
            )

        for name in task.features:
            buffer[name] = _broadcast(point[name], n_rows, task.dtypes[name])

        try:
            raw = task.adapter.predict(task.model, buffer)
        except Exception as e:
            raise AdapterInvocationError(
                f"Prediction failed for features {list(task.features)} at grid point {point}: {e}",
                error_code="ADAPTER_FAILED",
                context={
                    "features": list(task.features),
                    "grid_index": grid_index,
                    "grid_point": point,
                    "adapter": repr(task.adapter),
                    "original_error_type": type(e).__name__
                }
            ) from e

        channels, values = normalize_output(raw, n_rows)
        if task.inv_link is not None:
            values = np.asarray(task.inv_link(values), dtype=float)

        if task.ice:
            outputs.append((grid_index, channels, values))
        else:
            outputs.append((grid_index,) + aggregate(values, channels, task.summary_fn, task.weights))

    return outputs


def _resolve_adapter(model: Any, predict_fn: Optional[PredictFn]) -> PredictionAdapter:
    if predict_fn is None:
        return get_adapter(model)
    if isinstance(predict_fn, PredictionAdapter):
        return predict_fn
    return FunctionAdapter(predict_fn)


def _chunk_indices(n_grid: int, n_chunks: int) -> List[List[int]]:
    n_chunks = max(1, min(n_chunks, n_grid))
    return [chunk.tolist() for chunk in np.array_split(np.arange(n_grid), n_chunks) if len(chunk)]


@timer(name="partial_dependence.compute")
def compute(
    model: Any,
    grid: Grid,
    training_data: pd.DataFrame,
    feature_names: Optional[Sequence[str]] = None,
    predict_fn: Optional[PredictFn] = None,
    ice: bool = False,
    summary_fn: Optional[SummaryFn] = None,
    *,
    sample_weight: Optional[Any] = None,
    subsample: Optional[int] = None,
    random_state: Optional[int] = None,
    inv_link: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    executor: Optional[Executor] = None,
    chunk_size: Optional[int] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    max_predictions: Optional[int] = None
) -> PredictionResult:
    """Average model predictions over the training rows at every grid row.

    Args:
        model: Fitted model handle, passed through to the adapter untouched
        grid: Grid from ``build_grid`` or ``Grid.from_frame``
        training_data: Background rows; never modified
        feature_names: Features being swept (defaults to the grid's)
        predict_fn: PredictionAdapter or ``fn(model, rows)``; resolved from
            the adapter registry when omitted
        ice: Keep per-row predictions instead of aggregating
        summary_fn: Custom reduction of one channel's predictions
        sample_weight: Row weights for the default weighted mean
        subsample: Number of rows drawn once before the loop
        random_state: Seed for the subsample
        inv_link: Vectorised transform applied to predictions before reduction
        executor: Executor running the grid-row chunks (sequential if None)
        chunk_size: Grid rows per chunk; derived from the worker count if None
        should_stop: Polled between grid rows; returning True aborts
        max_predictions: Refuse to start when the cost estimate exceeds this

    Returns:
        PredictionResult with grid rows in grid order

    Raises:
        InvalidFeatureError: If feature_names disagree with the grid
        InconsistentOutputError: If output channels differ across grid rows
        AdapterInvocationError: If the adapter raises
        ComputationAbortedError: If should_stop returns True
        PerformanceError: If the estimate exceeds max_predictions
    """
    if not isinstance(training_data, pd.DataFrame):
        raise DataValidationError(
            f"Training data must be a pandas DataFrame, got {type(training_data).__name__}",
            error_code="DATA_NOT_FRAME"
        )
    if training_data.empty:
        raise DataValidationError("Training data cannot be empty", error_code="DATA_EMPTY")

    features = validate_features(feature_names if feature_names is not None else grid.features, training_data)
    if features != grid.features:
        raise InvalidFeatureError(
            f"Features {list(features)} do not match grid features {list(grid.features)}",
            error_code="FEATURE_GRID_MISMATCH",
            context={"features": list(features), "grid_features": list(grid.features)}
        )

    weights = validate_weights(sample_weight, len(training_data))
    rows, row_ids, weights = subsample_rows(training_data, subsample, random_state, weights)

    cost = estimate_cost(grid, len(rows))
    if max_predictions is not None and cost.n_predictions > max_predictions:
        raise PerformanceError(
            f"Partial dependence for {list(features)} needs {cost}, above the limit of {max_predictions:,}",
            error_code="PREDICTION_BUDGET_EXCEEDED",
            context={"features": list(features), "n_predictions": cost.n_predictions,
                     "max_predictions": max_predictions}
        )
    logger.info(f"Computing {'ICE' if ice else 'partial dependence'} for {list(features)}: {cost}")

    adapter = _resolve_adapter(model, predict_fn)
    executor = executor or SequentialExecutor()
    n_grid = len(grid)

    if chunk_size is None:
        n_chunks = worker_count(executor) * CHUNKS_PER_WORKER
    else:
        n_chunks = -(-n_grid // max(1, chunk_size))
    chunks = _chunk_indices(n_grid, n_chunks)

    # Callables polled inside worker processes would need pickling; poll in the parent instead
    worker_should_stop = None if isinstance(executor, ProcessPoolExecutor) else should_stop
    dtypes = {name: rows[name].dtype for name in features}

    tasks = [
        _ChunkTask(
            model=model,
            adapter=adapter,
            data=rows,
            features=features,
            dtypes=dtypes,
            grid_indices=indices,
            points=[grid.point(i) for i in indices],
            ice=ice,
            summary_fn=summary_fn,
            weights=weights,
            inv_link=inv_link,
            should_stop=worker_should_stop
        )
        for indices in chunks
    ]

    timing = get_logger(__name__, with_performance=True)
    timing.start_timer(GRID_LOOP_TIMER)

    outputs: List[Tuple[int, Tuple[str, ...], np.ndarray]] = []
    if isinstance(executor, SequentialExecutor):
        # Run chunk by chunk so a failure stops the remaining chunks
        for task in tasks:
            outputs.extend(executor.submit(_evaluate_chunk, task).result())
    else:
        futures = [executor.submit(_evaluate_chunk, task) for task in tasks]
        try:
            for future in futures:
                if should_stop is not None and worker_should_stop is None and should_stop():
                    raise ComputationAbortedError(
                        f"Partial dependence for {list(features)} aborted after "
                        f"{len(outputs)} of {n_grid} grid rows",
                        error_code="COMPUTATION_ABORTED",
                        context={"features": list(features), "completed_grid_rows": len(outputs)}
                    )
                outputs.extend(future.result())
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    timing.stop_timer(GRID_LOOP_TIMER)
    outputs.sort(key=lambda output: output[0])

    channels = outputs[0][1]
    for grid_index, output_channels, _ in outputs:
        if output_channels != channels:
            raise InconsistentOutputError(
                f"Grid row {grid_index} of {list(features)} returned channels {list(output_channels)}, "
                f"expected {list(channels)}",
                error_code="CHANNELS_INCONSISTENT",
                context={
                    "features": list(features),
                    "grid_index": grid_index,
                    "grid_point": grid.point(grid_index),
                    "expected": list(channels),
                    "received": list(output_channels)
                }
            )

    values = np.stack([output[2] for output in outputs])
    logger.debug(f"Computed values of shape {values.shape} for channels {list(channels)}")

    return PredictionResult(
        values=values,
        channels=channels,
        ice=ice,
        row_ids=row_ids,
        weights=weights
    )
