# pdp_engine/__init__.py
"""PDP Engine - Partial Dependence and ICE Curves for Any Fitted Model.

Estimates how a model's average prediction varies as 1 to 3 features are
swept over a grid, holding the empirical distribution of the remaining
features fixed. Features:
- Quantile, uniform, level-based or explicit grids
- Brute-force averaging with weights, subsampling and custom summaries
- ICE and centered ICE curves
- Convex hull flags for bivariate extrapolation
- Pluggable prediction adapters and executors
- Matplotlib rendering of the resulting tables

Quick Start:
    >>> import pdp_engine as pe
    >>> table = pe.partial(model, X_train, "age", resolution=20)
    >>> table.to_frame().head()
    >>>
    >>> # ICE curves, centered, on a subsample
    >>> ice = pe.partial(model, X_train, "age", ice=True, center=True, subsample=200, random_state=0)
    >>> pe.plot_partial(ice, save_path="ice_age.png")

Advanced Usage:
    >>> from pdp_engine.config import PartialDependenceConfig
    >>> from pdp_engine.core import make_executor
    >>>
    >>> config = PartialDependenceConfig.for_large_data()
    >>> calculator = pe.PartialDependenceCalculator(model, config=config, which_class=1, prob=True)
    >>> with make_executor("thread", n_jobs=4) as executor:
    ...     table = calculator.compute(X_train, ["age", "income"], executor=executor)
"""

from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

# Package metadata
__version__ = "1.0.0"
__author__ = "PDP Engine Development Team"
__license__ = "MIT"
__description__ = "Partial dependence and ICE computation engine"

# Configure package-level logging
from .utils.logger import configure_logging, get_logger

# Library default: quiet unless the caller asks for more
configure_logging(level="WARNING")

logger = get_logger(__name__)

# Computation core
from .core.grid import FeatureGrid, Grid, build_grid
from .core.averaging import CostEstimate, PredictionResult, compute, estimate_cost
from .core.executors import SequentialExecutor, make_executor
from .core.assembler import PartialDependenceTable, assemble
from .core.centering import center
from .core.hull import mask
from .core.partial import PartialDependenceCalculator, partial

# Prediction adapters
from .adapters import PredictionAdapter, register_adapter, get_adapter

# Configuration system
from .config import (
    GridConfig,
    ComputeConfig,
    PartialDependenceConfig,
    load_config,
    save_config
)

# Visualization
from .visualization import PartialDependencePlotter, plot_partial

# Utilities
from .utils.logger import set_log_level
from .utils.timer import timer, timed_operation
from .utils.exceptions import (
    PDPEngineError,
    ConfigurationError,
    DataValidationError,
    InvalidFeatureError,
    InvalidGridError,
    InconsistentOutputError,
    AdapterInvocationError,
    ComputationAbortedError,
    PerformanceError
)

# Public API definition - what users should import
__all__ = [
    # Workflow functions
    'partial',
    'analyze_features',
    'PartialDependenceCalculator',

    # Computation core
    'FeatureGrid',
    'Grid',
    'build_grid',
    'CostEstimate',
    'PredictionResult',
    'compute',
    'estimate_cost',
    'SequentialExecutor',
    'make_executor',
    'PartialDependenceTable',
    'assemble',
    'center',
    'mask',

    # Adapters
    'PredictionAdapter',
    'register_adapter',
    'get_adapter',

    # Configuration
    'GridConfig',
    'ComputeConfig',
    'PartialDependenceConfig',
    'load_config',
    'save_config',

    # Visualization
    'PartialDependencePlotter',
    'plot_partial',

    # Utilities
    'get_logger',
    'configure_logging',
    'set_log_level',
    'timer',
    'timed_operation',

    # Exceptions
    'PDPEngineError',
    'ConfigurationError',
    'DataValidationError',
    'InvalidFeatureError',
    'InvalidGridError',
    'InconsistentOutputError',
    'AdapterInvocationError',
    'ComputationAbortedError',
    'PerformanceError',

    # Metadata
    '__version__',
]


def analyze_features(
    model: Any,
    training_data: 'pd.DataFrame',
    features: Sequence[Union[str, Sequence[str]]],
    config: Optional[PartialDependenceConfig] = None,
    output_dir: Optional[Union[str, Path]] = None,
    **kwargs: Any
) -> Dict[str, PartialDependenceTable]:
    """Partial dependence for several feature selections in one call.

    Each entry of ``features`` is a feature name or a tuple of 1 to 3
    names. With ``output_dir`` every table is written as CSV next to its
    plot.

    Args:
        model: Fitted model handle
        training_data: Background rows
        features: Feature selections to analyze
        config: Shared configuration
        output_dir: Optional directory for CSV tables and PNG plots
        **kwargs: Passed to ``partial`` (e.g. ``predict_fn``, ``which_class``)

    Returns:
        Dictionary mapping "feature" or "feature_a x feature_b" to its table

    Example:
        >>> tables = pe.analyze_features(model, X, ["age", ("age", "income")], output_dir="pdp")
        >>> tables["age x income"].to_frame().head()
    """
    output_path = Path(output_dir) if output_dir is not None else None
    if output_path is not None:
        output_path.mkdir(parents=True, exist_ok=True)

    tables: Dict[str, PartialDependenceTable] = {}
    with timed_operation("analyze_features"):
        for selection in features:
            names = [selection] if isinstance(selection, str) else list(selection)
            key = " x ".join(names)
            logger.info(f"Analyzing {key}")

            table = partial(model, training_data, names, config=config, **kwargs)
            tables[key] = table

            if output_path is not None:
                stem = "__".join(names)
                table.to_frame().to_csv(output_path / f"pdp_{stem}.csv", index=False)
                fig = plot_partial(table, save_path=output_path / f"pdp_{stem}.png")

                import matplotlib.pyplot as plt
                plt.close(fig)

    logger.info(f"Analyzed {len(tables)} feature selections")
    return tables
