"""Thread-safe singleton registry of prediction adapters.

Adapters are stored in a lookup table keyed by a model type tag. A model
is resolved by explicit tag first, then by its own type tag
(``<module>.<ClassName>``), then by asking each adapter whether it
supports the model, most recently registered first.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from threading import Lock

from .base import PredictionAdapter, FunctionAdapter, CallableModelAdapter, model_type_tag
from .sklearn_adapter import SklearnClassifierAdapter, SklearnRegressorAdapter
from .boosting_adapter import XGBoostBoosterAdapter, LightGBMBoosterAdapter
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

AdapterLike = Union[PredictionAdapter, Callable[[Any, Any], Any]]


class AdapterRegistry:
    """Thread-safe singleton registry for prediction adapters.

    The singleton pattern ensures custom adapters registered anywhere in
    an application are visible to every partial dependence computation.
    """

    _instance = None
    _lock = Lock()

    def __new__(cls) -> 'AdapterRegistry':
        """Ensure singleton pattern with thread safety."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """Initialize registry with the built-in adapters if not already done."""
        if getattr(self, '_initialized', False):
            return

        self._adapters: Dict[str, PredictionAdapter] = {}
        self._builtin_tags: List[str] = []
        self._register_builtins()
        self._initialized = True

        logger.debug(f"Initialized AdapterRegistry with {len(self._adapters)} adapters")

    def _register_builtins(self) -> None:
        # Resolution order matters: boosters before the generic sklearn checks
        for adapter in (
            XGBoostBoosterAdapter(),
            LightGBMBoosterAdapter(),
            SklearnClassifierAdapter(),
            SklearnRegressorAdapter(),
            CallableModelAdapter(),
        ):
            self._adapters[adapter.tag] = adapter
            self._builtin_tags.append(adapter.tag)

    def register(
        self,
        tag: str,
        adapter: AdapterLike,
        model_types: Optional[Union[type, Tuple[type, ...]]] = None
    ) -> PredictionAdapter:
        """Register an adapter under a model type tag.

        Args:
            tag: Lookup key, e.g. ``"mypackage.MyModel"`` or a family name
            adapter: PredictionAdapter instance or ``fn(model, rows)``
            model_types: Classes a function adapter handles during resolution

        Returns:
            The registered adapter

        Example:
            >>> registry.register("statsmodels.RegressionResultsWrapper",
            ...                   lambda model, rows: model.predict(rows))
        """
        if not isinstance(adapter, PredictionAdapter):
            if not callable(adapter):
                raise ConfigurationError(
                    f"Adapter for '{tag}' must be a PredictionAdapter or callable",
                    error_code="ADAPTER_INVALID",
                    context={"tag": tag, "adapter_type": type(adapter).__name__}
                )
            if model_types is not None and not isinstance(model_types, tuple):
                model_types = (model_types,)
            adapter = FunctionAdapter(adapter, model_types=model_types, tag=tag)

        with self._lock:
            if tag in self._adapters:
                logger.warning(f"Overriding existing adapter: {tag}")
            # Re-inserting moves the tag to the end, giving it resolution priority
            self._adapters.pop(tag, None)
            self._adapters[tag] = adapter
            if tag in self._builtin_tags:
                self._builtin_tags.remove(tag)

        logger.info(f"Registered prediction adapter: {tag}")
        return adapter

    def unregister(self, tag: str) -> None:
        """Remove an adapter from the registry."""
        with self._lock:
            if tag not in self._adapters:
                raise ConfigurationError(
                    f"Adapter '{tag}' not registered. Available: {self.get_available_adapters()}"
                )
            del self._adapters[tag]
            if tag in self._builtin_tags:
                self._builtin_tags.remove(tag)

    def get(self, tag: str) -> PredictionAdapter:
        """Get a registered adapter by tag.

        Raises:
            ConfigurationError: If no adapter is registered under the tag
        """
        if tag not in self._adapters:
            raise ConfigurationError(
                f"Adapter '{tag}' not registered. Available: {self.get_available_adapters()}",
                error_code="ADAPTER_NOT_FOUND"
            )
        return self._adapters[tag]

    def resolve(self, model: Any, tag: Optional[str] = None) -> PredictionAdapter:
        """Find the adapter for a model.

        Args:
            model: Fitted model handle
            tag: Optional explicit adapter tag

        Raises:
            ConfigurationError: If no registered adapter supports the model
        """
        if tag is not None:
            return self.get(tag)

        type_tag = model_type_tag(model)
        if type_tag in self._adapters:
            return self._adapters[type_tag]

        with self._lock:
            custom = [a for t, a in self._adapters.items() if t not in self._builtin_tags]
            builtin = [self._adapters[t] for t in self._builtin_tags]

        for adapter in list(reversed(custom)) + builtin:
            if adapter.supports(model):
                logger.debug(f"Resolved adapter '{adapter.tag}' for {type_tag}")
                return adapter

        raise ConfigurationError(
            f"No prediction adapter supports model type '{type_tag}'; "
            f"register one or pass predict_fn",
            error_code="ADAPTER_NOT_FOUND",
            context={"model_type": type_tag, "available": self.get_available_adapters()}
        )

    def get_available_adapters(self) -> List[str]:
        """Get list of registered adapter tags."""
        return list(self._adapters.keys())

    def reset(self) -> None:
        """Drop custom adapters and restore the built-ins."""
        with self._lock:
            self._adapters = {}
            self._builtin_tags = []
            self._register_builtins()


def get_registry() -> AdapterRegistry:
    """Return the process-wide adapter registry."""
    return AdapterRegistry()


def register_adapter(
    tag: str,
    adapter: AdapterLike,
    model_types: Optional[Union[type, Tuple[type, ...]]] = None
) -> PredictionAdapter:
    """Register an adapter in the process-wide registry."""
    return get_registry().register(tag, adapter, model_types=model_types)


def get_adapter(model: Any, tag: Optional[str] = None, **options: Any) -> PredictionAdapter:
    """Resolve the adapter for a model and apply model-family options.

    Args:
        model: Fitted model handle
        tag: Optional explicit adapter tag
        **options: Adapter options such as ``which_class`` or ``prob``

    Example:
        >>> adapter = get_adapter(classifier, which_class="yes", prob=True)
        >>> adapter.predict(classifier, X.head())
    """
    adapter = get_registry().resolve(model, tag=tag)
    return adapter.configure(**options) if options else adapter
