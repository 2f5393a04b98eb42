# pdp_engine/utils/exceptions.py
"""Custom exception hierarchy for the pdp_engine package.

Every error raised by the engine derives from :class:`PDPEngineError` and
carries an optional error code plus a context dictionary, so callers can
see which feature(s) and which grid point triggered a failure.
"""

from typing import Any, Optional, Dict, List


class PDPEngineError(Exception):
    """Base exception for all pdp_engine errors.

    Provides common functionality for error codes and structured context
    that is rendered into the string representation.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Initialize PDPEngineError.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        """Return string representation of error."""
        base_msg = self.message
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg = f"{base_msg} (Context: {context_str})"
        return base_msg


class ConfigurationError(PDPEngineError):
    """Raised when configuration is invalid or incomplete.

    This exception is raised for issues with:
    - Invalid parameter values
    - Conflicting configuration options
    - Unknown adapters or executor backends
    """
    pass


class DataValidationError(PDPEngineError):
    """Raised when training data fails validation checks.

    This exception is raised for issues with:
    - Empty or non-tabular training data
    - Sample weights that do not match the data
    """
    pass


class InvalidFeatureError(DataValidationError):
    """Raised when the requested feature set is unusable.

    The feature is absent from the training data, listed twice, or the
    number of features lies outside [1, 3].
    """
    pass


class InvalidGridError(ConfigurationError):
    """Raised when a sweep grid cannot be built.

    Covers a resolution of 1 or less, fewer than two explicit cut points,
    and explicit grids that do not match the requested features.
    """
    pass


class ComputationError(PDPEngineError):
    """Base class for failures inside the averaging engine."""
    pass


class InconsistentOutputError(ComputationError):
    """Raised when prediction output shape differs between grid rows."""
    pass


class AdapterInvocationError(ComputationError):
    """Raised when the prediction adapter itself fails.

    The context holds the feature names and the grid point that was being
    evaluated when the adapter raised.
    """
    pass


class ComputationAbortedError(ComputationError):
    """Raised when the caller requests an abort between grid rows."""
    pass


class PerformanceError(PDPEngineError):
    """Raised when performance constraints are violated.

    This exception is raised for issues with:
    - Estimated prediction count exceeding the configured budget
    - Execution time exceeding timeouts
    """
    pass


class FileOperationError(PDPEngineError):
    """Raised when file I/O operations fail.

    This exception is raised for issues with:
    - Configuration file reading/writing
    - Log file creation
    - Plot saving
    """
    pass


# Utility functions for error handling
def handle_and_reraise(
    exception: Exception,
    error_class: type,
    message: str,
    error_code: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """Handle an exception and re-raise as a pdp_engine exception.

    Converts external exceptions into the package hierarchy while
    preserving the original traceback.

    Args:
        exception: Original exception that was caught
        error_class: PDPEngineError subclass to raise
        message: Custom error message
        error_code: Optional error code
        context: Optional error context

    Raises:
        error_class: The specified pdp_engine exception
    """
    if context is None:
        context = {}

    context["original_error"] = str(exception)
    context["original_error_type"] = type(exception).__name__

    raise error_class(message, error_code, context) from exception


def validate_parameter(
    param_name: str,
    param_value: Any,
    valid_values: Optional[List[Any]] = None,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    required: bool = False,
    error_class: type = ConfigurationError
) -> None:
    """Validate a parameter value and raise if invalid.

    Args:
        param_name: Name of the parameter being validated
        param_value: Value to validate
        valid_values: List of valid values (if applicable)
        min_value: Minimum allowed value (for numeric parameters)
        max_value: Maximum allowed value (for numeric parameters)
        required: Whether the parameter is required (cannot be None)
        error_class: ConfigurationError subclass to raise

    Raises:
        ConfigurationError: If validation fails
    """
    if required and param_value is None:
        raise error_class(
            f"Parameter '{param_name}' is required but was not provided",
            error_code="PARAM_REQUIRED",
            context={"parameter": param_name}
        )

    if param_value is None:
        return  # Optional parameter not provided

    if valid_values is not None and param_value not in valid_values:
        raise error_class(
            f"Parameter '{param_name}' must be one of {valid_values}, got {param_value}",
            error_code="PARAM_INVALID_VALUE",
            context={"parameter": param_name, "value": param_value, "valid_values": valid_values}
        )

    if min_value is not None and param_value < min_value:
        raise error_class(
            f"Parameter '{param_name}' must be >= {min_value}, got {param_value}",
            error_code="PARAM_TOO_SMALL",
            context={"parameter": param_name, "value": param_value, "min_value": min_value}
        )

    if max_value is not None and param_value > max_value:
        raise error_class(
            f"Parameter '{param_name}' must be <= {max_value}, got {param_value}",
            error_code="PARAM_TOO_LARGE",
            context={"parameter": param_name, "value": param_value, "max_value": max_value}
        )


def create_error_context(**kwargs: Any) -> Dict[str, Any]:
    """Create an error context dictionary with standardized keys.

    Args:
        **kwargs: Key-value pairs to include in context

    Returns:
        Dictionary with error context information
    """
    context = {}
    for key, value in kwargs.items():
        # Complex objects are stringified so the context stays printable
        if hasattr(value, '__dict__') or hasattr(value, '__slots__'):
            context[key] = str(value)
        else:
            context[key] = value

    return context
