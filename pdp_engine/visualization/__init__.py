"""pdp_engine - Visualization Components.

Matplotlib rendering of partial dependence and ICE tables, with optional
interactive plotly output.

Example:
    >>> from pdp_engine.visualization import plot_partial
    >>> fig = plot_partial(table, save_path="pdp.png")
"""

from .base import BaseVisualizer
from .partial_plot import (
    PDPlotConfig,
    PartialDependencePlotter,
    plot_partial,
    PLOTLY_AVAILABLE
)

__all__ = [
    'BaseVisualizer',
    'PDPlotConfig',
    'PartialDependencePlotter',
    'plot_partial',
    'PLOTLY_AVAILABLE'
]
