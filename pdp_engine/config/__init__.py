"""pdp_engine - Configuration Management Components.

Type-safe configuration for grid construction and the averaging engine,
plus YAML/JSON loading with environment overrides.

Example:
    >>> from pdp_engine.config import PartialDependenceConfig, load_config
    >>> config = PartialDependenceConfig.for_large_data()
    >>> config = load_config('pdp.yaml')
"""

from .pdp_config import (
    GridConfig,
    ComputeConfig,
    PartialDependenceConfig,
    GRID_STRATEGIES,
    EXECUTOR_BACKENDS
)
from .loader import (
    ConfigLoader,
    load_config,
    save_config
)

__all__ = [
    'GridConfig',
    'ComputeConfig',
    'PartialDependenceConfig',
    'GRID_STRATEGIES',
    'EXECUTOR_BACKENDS',
    'ConfigLoader',
    'load_config',
    'save_config'
]
