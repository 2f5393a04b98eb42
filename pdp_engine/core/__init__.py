"""pdp_engine - Partial Dependence Computation Core.

Grid construction, the averaging engine, ICE centering, convex hull
masking and result assembly.

Example:
    >>> from pdp_engine.core import build_grid, compute, assemble
    >>> grid = build_grid(["age"], X)
    >>> table = assemble(grid, compute(model, grid, X))
"""

from .grid import (
    FeatureGrid,
    Grid,
    build_grid,
    build_feature_grid,
    validate_features
)
from .averaging import (
    CostEstimate,
    PredictionResult,
    compute,
    estimate_cost,
    subsample_rows
)
from .executors import (
    SequentialExecutor,
    make_executor,
    executor_scope
)
from .assembler import PartialDependenceTable, assemble
from .centering import center
from .hull import mask, hull_vertices
from .partial import PartialDependenceCalculator, partial

__all__ = [
    # Grid construction
    'FeatureGrid',
    'Grid',
    'build_grid',
    'build_feature_grid',
    'validate_features',

    # Averaging engine
    'CostEstimate',
    'PredictionResult',
    'compute',
    'estimate_cost',
    'subsample_rows',

    # Executors
    'SequentialExecutor',
    'make_executor',
    'executor_scope',

    # Results
    'PartialDependenceTable',
    'assemble',
    'center',
    'mask',
    'hull_vertices',

    # Orchestration
    'PartialDependenceCalculator',
    'partial'
]
