# pdp_engine/core/assembler.py
"""Result assembly: grid rows joined with their predictions.

The assembled ``PartialDependenceTable`` is the only artifact handed to
plotting or to callers. Row order always follows the grid; ICE tables
repeat every grid row once per training row (grid-major).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Set, Tuple

import numpy as np
import pandas as pd

from .averaging import PredictionResult
from .grid import Grid
from ..utils.exceptions import InconsistentOutputError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ROW_ID_COLUMN = "yhat_id"
HULL_COLUMN = "outside_hull"


@dataclass(frozen=True, eq=False)
class PartialDependenceTable:
    """Immutable partial dependence or ICE table.

    Attributes:
        features: Swept features, in grid axis order
        channels: Prediction columns
        ice: Whether rows are per-observation curves
        centered: Whether ICE curves were shifted to start at zero
        n_grid: Number of grid rows
        n_rows: Number of training rows averaged (after subsampling)
    """

    features: Tuple[str, ...]
    channels: Tuple[str, ...]
    ice: bool
    centered: bool
    n_grid: int
    n_rows: int
    _frame: pd.DataFrame = field(repr=False)

    def __len__(self) -> int:
        return len(self._frame)

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(self._frame.columns)

    @property
    def has_hull_flags(self) -> bool:
        return HULL_COLUMN in self._frame.columns

    def to_frame(self) -> pd.DataFrame:
        """Copy of the table as a DataFrame."""
        return self._frame.copy()

    def metadata(self) -> Dict[str, Any]:
        return {
            "features": list(self.features),
            "channels": list(self.channels),
            "ice": self.ice,
            "centered": self.centered,
            "n_grid": self.n_grid,
            "n_rows": self.n_rows
        }

    def replace_values(self, frame: pd.DataFrame, **changes: Any) -> "PartialDependenceTable":
        """New table over ``frame`` with updated metadata."""
        metadata = dict(
            features=self.features,
            channels=self.channels,
            ice=self.ice,
            centered=self.centered,
            n_grid=self.n_grid,
            n_rows=self.n_rows
        )
        metadata.update(changes)
        return PartialDependenceTable(_frame=frame, **metadata)

    def equals(self, other: "PartialDependenceTable") -> bool:
        """Exact equality of metadata and values."""
        return self.metadata() == other.metadata() and self._frame.equals(other._frame)


def assemble(
    grid: Grid,
    prediction_result: PredictionResult,
    centering_applied: bool = False,
    hull_flags: Optional[Iterable[int]] = None
) -> PartialDependenceTable:
    """Join grid rows with their predictions.

    Args:
        grid: Grid the predictions were computed on
        prediction_result: Output of ``compute``
        centering_applied: Whether the ICE values are already centered
        hull_flags: Grid row indices outside the training convex hull;
            adds an ``outside_hull`` column when given

    Returns:
        PartialDependenceTable in grid order
    """
    n_grid = len(grid)
    if prediction_result.n_grid != n_grid:
        raise InconsistentOutputError(
            f"Prediction result has {prediction_result.n_grid} grid rows, grid has {n_grid}",
            error_code="RESULT_GRID_MISMATCH",
            context={"features": list(grid.features)}
        )

    grid_frame = grid.to_frame()
    channels = prediction_result.channels

    clashes = [name for name in channels if name in grid.features or name in (ROW_ID_COLUMN, HULL_COLUMN)]
    if clashes:
        raise InconsistentOutputError(
            f"Output channels {clashes} clash with feature or reserved column names",
            error_code="CHANNEL_NAME_CLASH",
            context={"features": list(grid.features), "channels": list(channels)}
        )
    flagged: Optional[Set[int]] = set(hull_flags) if hull_flags is not None else None

    if prediction_result.ice:
        n_rows = prediction_result.n_rows
        grid_positions = np.repeat(np.arange(n_grid), n_rows)
        frame = grid_frame.iloc[grid_positions].reset_index(drop=True)
        values = prediction_result.values.reshape(n_grid * n_rows, len(channels))
        for j, channel in enumerate(channels):
            frame[channel] = values[:, j]
        frame[ROW_ID_COLUMN] = np.tile(prediction_result.row_ids, n_grid)
    else:
        grid_positions = np.arange(n_grid)
        frame = grid_frame
        for j, channel in enumerate(channels):
            frame[channel] = prediction_result.values[:, j]

    if flagged is not None:
        frame[HULL_COLUMN] = np.isin(grid_positions, sorted(flagged))

    logger.debug(f"Assembled table with {len(frame)} rows and columns {list(frame.columns)}")

    return PartialDependenceTable(
        features=grid.features,
        channels=channels,
        ice=prediction_result.ice,
        centered=centering_applied,
        n_grid=n_grid,
        n_rows=prediction_result.n_rows,
        _frame=frame
    )
