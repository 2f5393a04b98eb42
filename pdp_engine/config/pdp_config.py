# pdp_engine/config/pdp_config.py
"""Type-safe configuration for grid construction and PD/ICE computation.

Each dataclass validates itself in ``__post_init__`` and can be updated
from environment variables, so the same settings can come from code, a
YAML file or the process environment.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple

from ..utils.exceptions import ConfigurationError, InvalidGridError, validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)

GRID_STRATEGIES = ["quantile", "uniform"]
EXECUTOR_BACKENDS = ["sequential", "thread", "process"]


class _EnvMixin:
    """Environment-variable overrides shared by the config sections."""

    def update_from_env(self, prefix: str = "") -> None:
        """Update configuration from environment variables.

        Args:
            prefix: Environment variable prefix (e.g., "PDP_GRID_")
        """
        for config_field in fields(self):
            env_name = f"{prefix}{config_field.name.upper()}"
            if env_name not in os.environ:
                continue

            env_value = os.environ[env_name]
            field_type = config_field.type

            try:
                if field_type in (int, Optional[int]):
                    converted_value = int(env_value)
                elif field_type in (float, Optional[float]):
                    converted_value = float(env_value)
                elif field_type in (bool, Optional[bool]):
                    converted_value = env_value.lower() in ("true", "1", "yes", "on")
                elif field_type == List[str]:
                    converted_value = [v.strip() for v in env_value.split(",") if v.strip()]
                elif field_type == Tuple[float, float]:
                    low, high = env_value.split(",")
                    converted_value = (float(low), float(high))
                else:
                    converted_value = env_value
            except (ValueError, TypeError) as e:
                logger.warning(f"Failed to parse environment variable {env_name}: {e}")
                continue

            setattr(self, config_field.name, converted_value)
            logger.info(f"Updated {config_field.name} from environment: {converted_value}")

        # Re-run validation on the overridden values
        self.__post_init__()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        config_dict = {}
        for config_field in fields(self):
            value = getattr(self, config_field.name)
            config_dict[config_field.name] = list(value) if isinstance(value, tuple) else value
        return config_dict


@dataclass
class GridConfig(_EnvMixin):
    """Configuration of the per-feature sweep values.

    Attributes:
        resolution: Number of sweep values per continuous feature
        strategy: "quantile" (sample quantiles) or "uniform" (evenly spaced)
        probs: Probability range swept by the quantile strategy
        trim_outliers: Drop values outside the 1.5 IQR fences first
        categorical_features: Features always swept over their levels
        max_categories: Numeric features with at most this many distinct
            values are swept over every value (defaults to ``resolution``)
    """

    resolution: int = 51
    strategy: str = "quantile"
    probs: Tuple[float, float] = (0.0, 1.0)
    trim_outliers: bool = False
    categorical_features: List[str] = field(default_factory=list)
    max_categories: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate grid configuration."""
        if self.resolution is None or self.resolution <= 1:
            raise InvalidGridError(
                f"Grid resolution must be greater than 1, got {self.resolution}",
                error_code="GRID_RESOLUTION_TOO_SMALL",
                context={"resolution": self.resolution}
            )
        validate_parameter("strategy", self.strategy, valid_values=GRID_STRATEGIES)
        validate_parameter("max_categories", self.max_categories, min_value=1)

        self.probs = tuple(self.probs)
        if len(self.probs) != 2 or not (0.0 <= self.probs[0] < self.probs[1] <= 1.0):
            raise InvalidGridError(
                "probs must be two values in [0, 1] with the first strictly smaller",
                error_code="GRID_PROBS_INVALID",
                context={"probs": self.probs}
            )

        self.categorical_features = list(self.categorical_features or [])

    @property
    def discrete_threshold(self) -> int:
        """Distinct-value count at or below which every observed value is used."""
        return self.max_categories if self.max_categories is not None else self.resolution


@dataclass
class ComputeConfig(_EnvMixin):
    """Configuration of the averaging engine.

    Attributes:
        ice: Return one curve per training row instead of the aggregate
        center: Center ICE curves at their first grid point (c-ICE)
        subsample: Number of training rows drawn once before averaging
        random_state: Seed for the subsample draw
        chull: Flag bivariate grid points outside the training convex hull
        n_jobs: Worker count for thread/process backends
        backend: "sequential", "thread" or "process"
        max_predictions: Refuse computations estimated above this count
    """

    ice: bool = False
    center: bool = False
    subsample: Optional[int] = None
    random_state: Optional[int] = None
    chull: bool = False
    n_jobs: int = 1
    backend: str = "sequential"
    max_predictions: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate compute configuration."""
        validate_parameter("subsample", self.subsample, min_value=1)
        validate_parameter("random_state", self.random_state, min_value=0)
        validate_parameter("backend", self.backend, valid_values=EXECUTOR_BACKENDS)
        validate_parameter("max_predictions", self.max_predictions, min_value=1)

        if self.n_jobs != -1:
            validate_parameter("n_jobs", self.n_jobs, min_value=1)

        if self.center and not self.ice:
            raise ConfigurationError(
                "Centering applies to ICE curves only; set ice=True to center",
                error_code="CENTER_REQUIRES_ICE"
            )


@dataclass
class PartialDependenceConfig:
    """Complete configuration for a partial dependence run.

    Example:
        >>> config = PartialDependenceConfig.for_large_data()
        >>> config.grid.resolution
        20
    """

    grid: GridConfig = field(default_factory=GridConfig)
    compute: ComputeConfig = field(default_factory=ComputeConfig)

    def __post_init__(self) -> None:
        if isinstance(self.grid, dict):
            self.grid = GridConfig(**self.grid)
        if isinstance(self.compute, dict):
            self.compute = ComputeConfig(**self.compute)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "PartialDependenceConfig":
        """Build a configuration from a nested dictionary.

        Args:
            config: Dictionary with optional ``grid`` and ``compute`` sections

        Raises:
            ConfigurationError: If unknown sections or keys are present
        """
        unknown_sections = set(config) - {"grid", "compute"}
        if unknown_sections:
            raise ConfigurationError(
                f"Unknown configuration sections: {sorted(unknown_sections)}",
                error_code="CONFIG_UNKNOWN_SECTION"
            )

        try:
            return cls(
                grid=GridConfig(**(config.get("grid") or {})),
                compute=ComputeConfig(**(config.get("compute") or {}))
            )
        except TypeError as e:
            raise ConfigurationError(
                f"Invalid configuration keys: {e}",
                error_code="CONFIG_UNKNOWN_KEY"
            ) from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a nested dictionary."""
        return {"grid": self.grid.to_dict(), "compute": self.compute.to_dict()}

    def update_from_env(self, prefix: str = "PDP_") -> None:
        """Apply ``<prefix>GRID_<KEY>`` and ``<prefix>COMPUTE_<KEY>`` overrides."""
        self.grid.update_from_env(f"{prefix}GRID_")
        self.compute.update_from_env(f"{prefix}COMPUTE_")

    @classmethod
    def for_large_data(cls) -> "PartialDependenceConfig":
        """Coarse grid with a row subsample, for datasets too big to sweep fully."""
        return cls(
            grid=GridConfig(resolution=20),
            compute=ComputeConfig(subsample=500, random_state=42)
        )

    @classmethod
    def for_ice(cls, center: bool = True) -> "PartialDependenceConfig":
        """ICE curves on a moderate grid, centered by default."""
        return cls(
            grid=GridConfig(resolution=25),
            compute=ComputeConfig(ice=True, center=center, subsample=100, random_state=42)
        )
