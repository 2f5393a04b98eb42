# pdp_engine/core/centering.py
"""Centered ICE (c-ICE).

Each curve is shifted by its own value at the first grid point, so every
curve starts at zero and only differences in shape remain. Applying
``center`` to an already centered table returns an equal table, since the
first point of every curve is exactly zero after one pass.
"""

from .assembler import PartialDependenceTable, ROW_ID_COLUMN
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def center(table: PartialDependenceTable) -> PartialDependenceTable:
    """Subtract each curve's value at its first grid point.

    Args:
        table: ICE table from ``assemble``

    Returns:
        New table with ``centered=True``; the input is left untouched

    Raises:
        ConfigurationError: If the table holds aggregated partial dependence
    """
    if not table.ice:
        raise ConfigurationError(
            "Centering applies to ICE tables only",
            error_code="CENTER_REQUIRES_ICE",
            context={"features": list(table.features)}
        )

    frame = table.to_frame()
    channels = list(table.channels)

    # Grid-major layout: the first occurrence of each row id is its first grid point.
    # A NaN there is the baseline too, so the whole curve becomes NaN.
    first_points = frame.loc[~frame[ROW_ID_COLUMN].duplicated(), [ROW_ID_COLUMN] + channels]
    baseline = first_points.set_index(ROW_ID_COLUMN).reindex(frame[ROW_ID_COLUMN])
    frame[channels] = frame[channels].to_numpy() - baseline.to_numpy()

    logger.debug(f"Centered {table.n_rows} ICE curves for {list(table.features)}")
    return table.replace_values(frame, centered=True)
