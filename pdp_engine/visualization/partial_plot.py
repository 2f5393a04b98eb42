# pdp_engine/visualization/partial_plot.py
"""Partial dependence and ICE plotting.

Renders a ``PartialDependenceTable``:
- one feature: a partial dependence line per channel, or ICE curves with
  their average drawn on top
- two features: a filled contour (numeric axes) or heatmap (categorical
  axes), with grid points outside the training convex hull greyed out
- three features: one two-feature panel per level of the third feature

Plots read the table only; no model or training data is needed.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from .base import BaseVisualizer
from ..core.assembler import PartialDependenceTable, ROW_ID_COLUMN, HULL_COLUMN
from ..utils.logger import get_logger
from ..utils.exceptions import ConfigurationError, validate_parameter

logger = get_logger(__name__)

# Check for optional dependencies
try:
    import plotly.graph_objects as go
    PLOTLY_AVAILABLE = True
except ImportError:
    PLOTLY_AVAILABLE = False


@dataclass
class PDPlotConfig:
    """Configuration for partial dependence plotting."""

    figsize: Tuple[int, int] = (8, 5)
    cmap: str = "viridis"
    levels: int = 15

    # ICE settings
    ice_alpha: float = 0.3
    ice_max_lines: int = 100
    ice_color: str = "lightsteelblue"
    average_color: str = "firebrick"

    # Extrapolation settings
    hull_color: str = "lightgrey"

    interactive: bool = False

    def __post_init__(self) -> None:
        """Validate plot configuration."""
        validate_parameter("ice_alpha", self.ice_alpha, min_value=0.0, max_value=1.0)
        validate_parameter("ice_max_lines", self.ice_max_lines, min_value=1)
        validate_parameter("levels", self.levels, min_value=2)

        if self.interactive and not PLOTLY_AVAILABLE:
            raise ConfigurationError(
                "Interactive plots need plotly; install pdp-engine[interactive]",
                error_code="PLOTLY_NOT_AVAILABLE"
            )


def _is_numeric(values: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(values) and not pd.api.types.is_bool_dtype(values)


class PartialDependencePlotter(BaseVisualizer):
    """Partial dependence and ICE plotter.

    Example:
        >>> table = partial(model, X, "age", ice=True, center=True)
        >>> plotter = PartialDependencePlotter()
        >>> fig = plotter.plot(table, save_path="ice_age.png")
    """

    def __init__(self, config: Optional[PDPlotConfig] = None, **kwargs: Any) -> None:
        self.plot_config = config or PDPlotConfig()
        kwargs.setdefault("figsize", self.plot_config.figsize)
        super().__init__(**kwargs)

    def plot(
        self,
        data: PartialDependenceTable,
        save_path: Optional[Union[str, Path]] = None,
        channel: Optional[str] = None,
        **kwargs: Any
    ) -> Any:
        """Plot a partial dependence or ICE table.

        Args:
            data: Table from ``partial`` or ``assemble``
            save_path: Optional path to save the figure
            channel: Prediction column to draw; every channel is drawn for
                single-feature partial dependence when omitted, otherwise
                the first channel

        Returns:
            Matplotlib figure (plotly figure for interactive single-feature plots)
        """
        if not isinstance(data, PartialDependenceTable):
            raise ConfigurationError(
                f"Expected a PartialDependenceTable, got {type(data).__name__}",
                error_code="PLOT_INPUT_INVALID"
            )

        if channel is not None and channel not in data.channels:
            raise ConfigurationError(
                f"Channel '{channel}' not in table channels {list(data.channels)}",
                error_code="PLOT_UNKNOWN_CHANNEL"
            )

        n_features = len(data.features)
        logger.info(f"Plotting {'ICE' if data.ice else 'partial dependence'} for {list(data.features)}")

        if n_features == 1:
            if self.plot_config.interactive:
                fig = self._plot_interactive(data, channel)
            else:
                fig = self._plot_single(data, channel, **kwargs)
        elif n_features == 2:
            fig = self._plot_pair(data, channel or data.channels[0], **kwargs)
        else:
            fig = self._plot_panels(data, channel or data.channels[0], **kwargs)

        if save_path:
            self.save_plot(fig, save_path)

        return fig

    def _ice_curves(self, data: PartialDependenceTable, channel: str) -> Tuple[np.ndarray, np.ndarray]:
        """Grid values and an ``(n_grid, n_rows)`` matrix of curves."""
        frame = data.to_frame()
        grid_values = frame[data.features[0]].to_numpy()[::data.n_rows]
        curves = frame[channel].to_numpy().reshape(data.n_grid, data.n_rows)
        return grid_values, curves

    def _plot_single(self, data: PartialDependenceTable, channel: Optional[str], **kwargs: Any) -> Any:
        feature = data.features[0]
        fig, ax = plt.subplots(figsize=self.figsize)

        if data.ice:
            channel = channel or data.channels[0]
            grid_values, curves = self._ice_curves(data, channel)
            positions = self._positions(grid_values)

            n_lines = min(curves.shape[1], self.plot_config.ice_max_lines)
            if n_lines < curves.shape[1]:
                logger.info(f"Drawing {n_lines} of {curves.shape[1]} ICE curves")
            ax.plot(
                positions, curves[:, :n_lines],
                color=self.plot_config.ice_color, alpha=self.plot_config.ice_alpha, linewidth=0.8
            )
            ax.plot(
                positions, curves.mean(axis=1),
                color=self.plot_config.average_color, linewidth=2.5, label="Average", zorder=10
            )
            ax.set_ylabel(f"{channel} (centered)" if data.centered else channel)
            ax.set_title(f"{'c-ICE' if data.centered else 'ICE'}: {feature}")
            ax.legend()
        else:
            frame = data.to_frame()
            grid_values = frame[feature].to_numpy()
            positions = self._positions(grid_values)
            for name in ([channel] if channel else data.channels):
                ax.plot(positions, frame[name].to_numpy(), marker="o", markersize=3, linewidth=2, label=name)
            ax.set_ylabel("Partial dependence")
            ax.set_title(f"Partial Dependence: {feature}")
            if channel is None and len(data.channels) > 1:
                ax.legend()

        self._label_axis(ax, grid_values)
        ax.set_xlabel(feature)
        ax.grid(True, alpha=0.3)
        plt.tight_layout()
        return fig

    def _plot_pair(self, data: PartialDependenceTable, channel: str, **kwargs: Any) -> Any:
        fig, ax = plt.subplots(figsize=self.figsize)
        mappable = self._draw_surface(ax, data.to_frame(), data.features, channel)
        fig.colorbar(mappable, ax=ax, label=channel)
        ax.set_title(f"Partial Dependence: {data.features[0]} x {data.features[1]}")
        plt.tight_layout()
        return fig

    def _plot_panels(self, data: PartialDependenceTable, channel: str, **kwargs: Any) -> Any:
        frame = data.to_frame()
        panel_feature = data.features[2]
        levels = pd.unique(frame[panel_feature])

        n_cols = min(3, len(levels))
        n_rows = int(np.ceil(len(levels) / n_cols))
        fig, axes = plt.subplots(
            n_rows, n_cols,
            figsize=(5 * n_cols, 4 * n_rows),
            squeeze=False, sharex=True, sharey=True
        )

        # Shared color scale across panels
        values = frame[channel].to_numpy(dtype=float)
        vmin, vmax = np.nanmin(values), np.nanmax(values)

        mappable = None
        for i, level in enumerate(levels):
            ax = axes[i // n_cols, i % n_cols]
            panel = frame[frame[panel_feature] == level]
            mappable = self._draw_surface(ax, panel, data.features[:2], channel, vmin=vmin, vmax=vmax)
            ax.set_title(f"{panel_feature} = {level}")

        for i in range(len(levels), n_rows * n_cols):
            fig.delaxes(axes[i // n_cols, i % n_cols])

        fig.colorbar(mappable, ax=axes.ravel().tolist(), label=channel)
        return fig

    def _draw_surface(
        self,
        ax: Any,
        frame: pd.DataFrame,
        features: Tuple[str, ...],
        channel: str,
        vmin: Optional[float] = None,
        vmax: Optional[float] = None
    ) -> Any:
        """Contour or heatmap of one channel over two features."""
        x_name, y_name = features[0], features[1]

        if ROW_ID_COLUMN in frame.columns:
            aggregations = {channel: "mean"}
            if HULL_COLUMN in frame.columns:
                aggregations[HULL_COLUMN] = "first"
            frame = frame.groupby([x_name, y_name], sort=False, observed=True, as_index=False).agg(aggregations)

        surface = frame.pivot_table(
            index=y_name, columns=x_name, values=channel, aggfunc="mean", sort=False, observed=True
        )
        z = np.ma.masked_invalid(surface.to_numpy(dtype=float))
        x_values = surface.columns.to_numpy()
        y_values = surface.index.to_numpy()

        if _is_numeric(surface.columns.to_series()) and _is_numeric(surface.index.to_series()):
            order_x, order_y = np.argsort(x_values), np.argsort(y_values)
            x_values, y_values = x_values[order_x], y_values[order_y]
            z = z[np.ix_(order_y, order_x)]
            if len(x_values) > 1 and len(y_values) > 1:
                mappable = ax.contourf(
                    x_values, y_values, z,
                    levels=self.plot_config.levels, cmap=self.plot_config.cmap, vmin=vmin, vmax=vmax
                )
            else:
                mappable = ax.pcolormesh(x_values, y_values, z, cmap=self.plot_config.cmap, vmin=vmin, vmax=vmax)
            x_lookup, y_lookup = None, None
        else:
            mappable = ax.pcolormesh(
                np.arange(len(x_values) + 1) - 0.5, np.arange(len(y_values) + 1) - 0.5, z,
                cmap=self.plot_config.cmap, vmin=vmin, vmax=vmax
            )
            ax.set_xticks(np.arange(len(x_values)))
            ax.set_xticklabels([str(v) for v in x_values], rotation=45)
            ax.set_yticks(np.arange(len(y_values)))
            ax.set_yticklabels([str(v) for v in y_values])
            x_lookup = {v: i for i, v in enumerate(x_values)}
            y_lookup = {v: i for i, v in enumerate(y_values)}

        if HULL_COLUMN in frame.columns:
            outside = frame[frame[HULL_COLUMN]]
            if not outside.empty:
                xs = outside[x_name].to_numpy()
                ys = outside[y_name].to_numpy()
                if x_lookup is not None:
                    xs = np.array([x_lookup[v] for v in xs])
                    ys = np.array([y_lookup[v] for v in ys])
                ax.scatter(
                    xs, ys, color=self.plot_config.hull_color, marker="s", s=40,
                    edgecolors="none", label="Outside training hull", zorder=5
                )
                ax.legend(loc="upper right", fontsize="small")

        ax.set_xlabel(x_name)
        ax.set_ylabel(y_name)
        return mappable

    def _plot_interactive(self, data: PartialDependenceTable, channel: Optional[str]) -> Any:
        feature = data.features[0]
        fig = go.Figure()

        if data.ice:
            channel = channel or data.channels[0]
            grid_values, curves = self._ice_curves(data, channel)
            for i in range(min(curves.shape[1], self.plot_config.ice_max_lines)):
                fig.add_trace(go.Scatter(
                    x=grid_values, y=curves[:, i], mode="lines",
                    line=dict(color=self.plot_config.ice_color, width=1),
                    opacity=self.plot_config.ice_alpha, showlegend=False
                ))
            fig.add_trace(go.Scatter(
                x=grid_values, y=curves.mean(axis=1), mode="lines",
                line=dict(color=self.plot_config.average_color, width=3), name="Average"
            ))
        else:
            frame = data.to_frame()
            for name in ([channel] if channel else data.channels):
                fig.add_trace(go.Scatter(x=frame[feature], y=frame[name], mode="lines+markers", name=name))

        fig.update_layout(
            title=f"{'ICE' if data.ice else 'Partial Dependence'}: {feature}",
            xaxis_title=feature,
            yaxis_title="Prediction",
            hovermode="closest"
        )
        return fig

    @staticmethod
    def _positions(grid_values: np.ndarray) -> np.ndarray:
        """Numeric x positions; categorical levels are spaced evenly."""
        if _is_numeric(pd.Series(grid_values)):
            return grid_values
        return np.arange(len(grid_values))

    @staticmethod
    def _label_axis(ax: Any, grid_values: np.ndarray) -> None:
        if _is_numeric(pd.Series(grid_values)):
            return
        ax.set_xticks(np.arange(len(grid_values)))
        ax.set_xticklabels([str(v) for v in grid_values], rotation=45)


def plot_partial(
    table: PartialDependenceTable,
    save_path: Optional[Union[str, Path]] = None,
    channel: Optional[str] = None,
    config: Optional[PDPlotConfig] = None,
    **kwargs: Any
) -> Any:
    """Plot a partial dependence or ICE table.

    Example:
        >>> fig = plot_partial(partial(model, X, ["x1", "x2"], chull=True))
    """
    plotter = PartialDependencePlotter(config=config, **kwargs)
    return plotter.plot(table, save_path=save_path, channel=channel)
