# pdp_engine/config/loader.py
"""Configuration loading for partial dependence runs.

Reads YAML or JSON files into :class:`PartialDependenceConfig`, merges
override files and applies ``PDP_GRID_*`` / ``PDP_COMPUTE_*`` environment
variables on top.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .pdp_config import PartialDependenceConfig
from ..utils.logger import get_logger
from ..utils.timer import timer
from ..utils.exceptions import (
    ConfigurationError,
    FileOperationError,
    create_error_context
)

logger = get_logger(__name__)

ENV_PREFIX = "PDP_"


class ConfigLoader:
    """Configuration loader with caching and environment overrides.

    Example:
        >>> loader = ConfigLoader('configs/')
        >>> config = loader.load('large_data.yaml')
        >>> config.grid.resolution
        20
    """

    def __init__(
        self,
        config_dir: Optional[Union[str, Path]] = None,
        allow_environment_override: bool = True,
        cache_enabled: bool = True,
        encoding: str = 'utf-8'
    ) -> None:
        """Initialize configuration loader.

        Args:
            config_dir: Directory that relative paths are resolved against
            allow_environment_override: Whether to apply environment overrides
            cache_enabled: Whether to cache parsed files by modification time
            encoding: File encoding for configuration files
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()
        self.allow_environment_override = allow_environment_override
        self.cache_enabled = cache_enabled
        self.encoding = encoding

        self._cache: Dict[str, Dict[str, Any]] = {}
        self._file_timestamps: Dict[str, float] = {}

        logger.debug(f"Initialized ConfigLoader (config dir: {self.config_dir})")

    def _resolve_config_path(self, file_path: Union[str, Path]) -> Path:
        """Resolve a configuration file path, trying YAML suffixes."""
        file_path = Path(file_path)

        if not file_path.is_absolute():
            file_path = self.config_dir / file_path

        if not file_path.exists():
            if file_path.suffix not in ['.yaml', '.yml', '.json']:
                for suffix in ('.yaml', '.yml', '.json'):
                    candidate = file_path.with_suffix(suffix)
                    if candidate.exists():
                        return candidate

            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                error_code="CONFIG_NOT_FOUND",
                context={"file_path": str(file_path)}
            )

        return file_path

    @timer(name="config_loading", log_result=False)
    def load_file(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Load a YAML or JSON file into a dictionary.

        Args:
            file_path: Path to the configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            ConfigurationError: If the file cannot be parsed or is not a mapping
        """
        file_path = self._resolve_config_path(file_path)
        cache_key = str(file_path)

        if self.cache_enabled:
            file_mtime = file_path.stat().st_mtime
            if self._file_timestamps.get(cache_key) == file_mtime:
                logger.debug(f"Loading config from cache: {file_path.name}")
                return dict(self._cache[cache_key])

        try:
            with open(file_path, 'r', encoding=self.encoding) as f:
                if file_path.suffix == '.json':
                    config = json.load(f)
                else:
                    config = yaml.safe_load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Error parsing configuration file {file_path}: {e}",
                error_code="CONFIG_PARSE_FAILED",
                context=create_error_context(file_path=str(file_path))
            ) from e
        except OSError as e:
            raise FileOperationError(
                f"Error reading configuration file {file_path}",
                error_code="CONFIG_READ_FAILED",
                context=create_error_context(file_path=str(file_path), error=str(e))
            ) from e

        if config is None:
            config = {}

        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping, got {type(config).__name__}",
                error_code="CONFIG_NOT_MAPPING"
            )

        if self.cache_enabled:
            self._cache[cache_key] = dict(config)
            self._file_timestamps[cache_key] = file_path.stat().st_mtime

        logger.debug(f"Loaded configuration from {file_path}")
        return config

    def merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries."""
        merged = dict(base)

        for key, value in override.items():
            if isinstance(merged.get(key), dict) and isinstance(value, dict):
                merged[key] = self.merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def load(
        self,
        file_path: Optional[Union[str, Path]] = None,
        override_path: Optional[Union[str, Path]] = None
    ) -> PartialDependenceConfig:
        """Load a full configuration object.

        Args:
            file_path: Base configuration file; defaults are used when omitted
            override_path: Optional file merged on top of the base file

        Returns:
            Validated PartialDependenceConfig
        """
        config_dict: Dict[str, Any] = self.load_file(file_path) if file_path else {}

        if override_path:
            config_dict = self.merge_configs(config_dict, self.load_file(override_path))

        config = PartialDependenceConfig.from_dict(config_dict)

        if self.allow_environment_override:
            config.update_from_env(ENV_PREFIX)

        return config

    def save(self, config: PartialDependenceConfig, file_path: Union[str, Path]) -> Path:
        """Save a configuration object as YAML (or JSON for ``.json`` paths)."""
        file_path = Path(file_path)

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding=self.encoding) as f:
                if file_path.suffix == '.json':
                    json.dump(config.to_dict(), f, indent=2)
                else:
                    yaml.safe_dump(
                        config.to_dict(), f,
                        default_flow_style=False,
                        sort_keys=False,
                        indent=2
                    )
        except OSError as e:
            raise FileOperationError(
                f"Error saving configuration to {file_path}",
                error_code="CONFIG_SAVE_FAILED",
                context=create_error_context(file_path=str(file_path), error=str(e))
            ) from e

        logger.info(f"Configuration saved to {file_path}")
        return file_path

    def clear_cache(self) -> None:
        """Clear cached configuration files."""
        self._cache.clear()
        self._file_timestamps.clear()


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    override_file: Optional[Union[str, Path]] = None,
    **kwargs: Any
) -> PartialDependenceConfig:
    """Load configuration from a YAML/JSON file.

    Example:
        >>> config = load_config('pdp.yaml')
        >>> config.compute.ice
        False
    """
    loader = ConfigLoader(**kwargs)
    return loader.load(config_file, override_file)


def save_config(
    config: PartialDependenceConfig,
    file_path: Union[str, Path],
    **kwargs: Any
) -> Path:
    """Save configuration to a YAML/JSON file."""
    loader = ConfigLoader(**kwargs)
    return loader.save(config, file_path)
