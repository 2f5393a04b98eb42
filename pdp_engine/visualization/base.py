# pdp_engine/visualization/base.py
"""Base class for partial dependence visualizers."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from ..utils.exceptions import FileOperationError, handle_and_reraise
from ..utils.logger import get_logger

logger = get_logger(__name__)


class BaseVisualizer(ABC):
    """Abstract base class for table visualizers.

    Visualizers read a ``PartialDependenceTable`` and nothing else.
    """

    def __init__(
        self,
        figsize: Tuple[int, int] = (10, 6),
        dpi: int = 150,
        style: str = "default",
        **kwargs: Any
    ) -> None:
        """Initialize base visualizer.

        Args:
            figsize: Figure size for plots
            dpi: DPI for saved plots
            style: Matplotlib style name
            **kwargs: Additional visualization parameters
        """
        self.figsize = figsize
        self.dpi = dpi
        self.style = style
        self.config = kwargs

        import matplotlib.pyplot as plt
        try:
            plt.style.use(style)
        except (OSError, ValueError):
            logger.warning(f"Could not set style: {style}")

    @abstractmethod
    def plot(
        self,
        data: Any,
        save_path: Optional[Union[str, Path]] = None,
        **kwargs: Any
    ) -> Any:
        """Create a visualization, optionally saving it."""
        pass

    def save_plot(
        self,
        fig: Any,
        save_path: Union[str, Path],
        **kwargs: Any
    ) -> Path:
        """Save a matplotlib or plotly figure, creating parent directories.

        Raises:
            FileOperationError: If the figure cannot be written
        """
        save_path = Path(save_path)
        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)

            if hasattr(fig, 'savefig'):  # matplotlib
                fig.savefig(save_path, dpi=self.dpi, bbox_inches='tight', **kwargs)
            elif hasattr(fig, 'write_html') and save_path.suffix == '.html':  # plotly
                fig.write_html(str(save_path), **kwargs)
            elif hasattr(fig, 'write_image'):  # plotly static export
                fig.write_image(str(save_path), **kwargs)
            else:
                raise TypeError(f"Unknown figure type: {type(fig).__name__}")
        except Exception as e:
            handle_and_reraise(
                e, FileOperationError,
                f"Failed to save plot to {save_path}",
                error_code="PLOT_SAVE_FAILED",
                context={"path": str(save_path)}
            )

        logger.info(f"Plot saved to {save_path}")
        return save_path
