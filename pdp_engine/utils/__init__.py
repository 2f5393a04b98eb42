"""pdp_engine - Utility Components.

Shared logging, timing and error handling used throughout the package.

Example:
    >>> from pdp_engine.utils import get_logger, timed_operation
    >>> logger = get_logger(__name__)
    >>> with timed_operation('grid_build'):
    ...     pass
"""

from .logger import (
    get_logger,
    configure_logging,
    set_log_level,
    temporary_log_level
)
from .timer import (
    timer,
    timed_operation,
    get_performance_stats,
    reset_performance_stats
)
from .exceptions import (
    PDPEngineError,
    ConfigurationError,
    DataValidationError,
    InvalidFeatureError,
    InvalidGridError,
    ComputationError,
    InconsistentOutputError,
    AdapterInvocationError,
    ComputationAbortedError,
    PerformanceError,
    FileOperationError,
    handle_and_reraise,
    validate_parameter,
    create_error_context
)

__all__ = [
    # Logging utilities
    'get_logger',
    'configure_logging',
    'set_log_level',
    'temporary_log_level',

    # Timing utilities
    'timer',
    'timed_operation',
    'get_performance_stats',
    'reset_performance_stats',

    # Exceptions
    'PDPEngineError',
    'ConfigurationError',
    'DataValidationError',
    'InvalidFeatureError',
    'InvalidGridError',
    'ComputationError',
    'InconsistentOutputError',
    'AdapterInvocationError',
    'ComputationAbortedError',
    'PerformanceError',
    'FileOperationError',
    'handle_and_reraise',
    'validate_parameter',
    'create_error_context'
]
