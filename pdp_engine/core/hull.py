# pdp_engine/core/hull.py
"""Convex hull masking for bivariate grids.

Grid cells far from any training observation are extrapolations. For two
numeric features the convex hull of the training points bounds the region
the model has actually seen; grid rows outside it are flagged so plots
can grey them out. Flags are annotations only, no row is ever dropped.
"""

from typing import Any, Optional, Set

import numpy as np
import pandas as pd
from scipy.spatial import ConvexHull, QhullError

from ..utils.logger import get_logger

logger = get_logger(__name__)

# Relative tolerance for points lying on a hull facet
HULL_TOLERANCE = 1e-10


def _as_points(points: Any) -> Optional[np.ndarray]:
    """Coerce to an ``(n, 2)`` float array, or None for non-numeric input."""
    if isinstance(points, pd.DataFrame):
        if not all(
            pd.api.types.is_numeric_dtype(points[c]) and not pd.api.types.is_bool_dtype(points[c])
            for c in points.columns
        ):
            return None
        points = points.to_numpy()

    try:
        array = np.asarray(points, dtype=float)
    except (TypeError, ValueError):
        return None

    if array.ndim != 2 or array.shape[1] != 2:
        raise ValueError(f"Hull masking needs points of shape (n, 2), got {array.shape}")
    return array


def hull_vertices(training_points_2d: Any) -> Optional[np.ndarray]:
    """Vertices of the training points' convex hull, in counter-clockwise order.

    Returns None when the hull is undefined (fewer than 3 distinct points,
    collinear points or non-numeric features).
    """
    points = _as_points(training_points_2d)
    if points is None:
        return None

    points = points[np.isfinite(points).all(axis=1)]
    if len(np.unique(points, axis=0)) < 3:
        return None

    try:
        hull = ConvexHull(points)
    except QhullError:
        return None
    return points[hull.vertices]


def mask(grid_points_2d: Any, training_points_2d: Any) -> Set[int]:
    """Indices of grid points outside the convex hull of the training points.

    Args:
        grid_points_2d: ``(n_grid, 2)`` array or two-column DataFrame
        training_points_2d: ``(n_train, 2)`` array or two-column DataFrame

    Returns:
        Set of grid row indices outside the hull; empty when the hull is
        undefined (fewer than 3 distinct points, collinear points or
        non-numeric features)

    Example:
        >>> mask([[0.5, 0.5], [2.0, 2.0]], [[0, 0], [1, 0], [0, 1], [1, 1]])
        {1}
    """
    training = _as_points(training_points_2d)
    grid = _as_points(grid_points_2d)
    if training is None or grid is None:
        logger.warning("Convex hull masking needs two numeric features; no grid points flagged")
        return set()

    training = training[np.isfinite(training).all(axis=1)]
    if len(np.unique(training, axis=0)) < 3:
        logger.warning("Fewer than 3 distinct training points; convex hull undefined, no grid points flagged")
        return set()

    try:
        hull = ConvexHull(training)
    except QhullError:
        logger.warning("Training points are collinear; convex hull undefined, no grid points flagged")
        return set()

    # Facet equations are normal . x + offset <= 0 for points inside
    scale = max(1.0, float(np.abs(training).max()))
    distances = grid @ hull.equations[:, :2].T + hull.equations[:, 2]
    outside = np.flatnonzero((distances > HULL_TOLERANCE * scale).any(axis=1))

    logger.debug(f"{len(outside)} of {len(grid)} grid points outside the training hull")
    return {int(i) for i in outside}
