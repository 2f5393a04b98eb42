# tests/test_grid.py
"""Unit tests for grid construction."""

import logging

import numpy as np
import pandas as pd
import pytest

from pdp_engine.config import GridConfig
from pdp_engine.core.grid import Grid, build_grid, build_feature_grid, validate_features
from pdp_engine.utils.exceptions import (
    DataValidationError,
    InvalidFeatureError,
    InvalidGridError
)


class TestSingleFeatureGrid:
    """Sweep values for one feature."""

    @pytest.mark.unit
    def test_quantile_grid_is_strictly_increasing(self, linear_dataset):
        grid = build_grid("x", linear_dataset, GridConfig(resolution=5))
        values = grid.axes[0].values

        assert len(values) == 5
        assert np.all(np.diff(values) > 0)
        assert values[0] == linear_dataset["x"].min()
        assert values[-1] == linear_dataset["x"].max()
        assert grid.axes[0].source == "quantile"

    @pytest.mark.unit
    def test_quantile_values_match_numpy(self, linear_dataset):
        grid = build_grid("x", linear_dataset, GridConfig(resolution=7))
        expected = np.quantile(linear_dataset["x"], np.linspace(0, 1, 7))
        np.testing.assert_allclose(grid.axes[0].values, expected)

    @pytest.mark.unit
    def test_quantile_ties_collapse(self):
        data = pd.DataFrame({"x": np.concatenate([np.zeros(150), np.linspace(1, 2, 50)])})
        grid = build_grid("x", data, GridConfig(resolution=10))
        values = grid.axes[0].values

        assert len(values) < 10
        assert np.all(np.diff(values) > 0)
        assert values[0] == 0.0

    @pytest.mark.unit
    def test_uniform_strategy(self, linear_dataset):
        grid = build_grid("x", linear_dataset, GridConfig(resolution=6, strategy="uniform"))
        x = linear_dataset["x"]
        np.testing.assert_allclose(grid.axes[0].values, np.linspace(x.min(), x.max(), 6))
        assert grid.axes[0].source == "uniform"

    @pytest.mark.unit
    def test_probs_restrict_range(self, linear_dataset):
        grid = build_grid("x", linear_dataset, GridConfig(resolution=5, probs=(0.1, 0.9)))
        values = grid.axes[0].values

        assert values[0] == pytest.approx(np.quantile(linear_dataset["x"], 0.1))
        assert values[-1] == pytest.approx(np.quantile(linear_dataset["x"], 0.9))

    @pytest.mark.unit
    def test_trim_outliers(self):
        data = pd.DataFrame({"x": np.append(np.linspace(0, 1, 99), 1000.0)})

        untrimmed = build_grid("x", data, GridConfig(resolution=5))
        trimmed = build_grid("x", data, GridConfig(resolution=5, trim_outliers=True))

        assert untrimmed.axes[0].values[-1] == 1000.0
        assert trimmed.axes[0].values[-1] == pytest.approx(1.0)

    @pytest.mark.unit
    def test_low_cardinality_uses_every_value(self, sample_dataset):
        grid = build_grid("count", sample_dataset)

        np.testing.assert_array_equal(grid.axes[0].values, [0, 1, 2, 3, 4])
        assert grid.axes[0].source == "unique"
        assert not grid.axes[0].is_categorical

    @pytest.mark.unit
    def test_max_categories_threshold(self, sample_dataset):
        grid = build_grid("count", sample_dataset, GridConfig(resolution=51, max_categories=3))
        assert grid.axes[0].source == "quantile"

    @pytest.mark.unit
    def test_categorical_levels_keep_category_order(self, sample_dataset):
        grid = build_grid("color", sample_dataset)
        axis = grid.axes[0]

        assert list(axis.values) == ["red", "green", "blue"]
        assert axis.is_categorical
        assert axis.source == "levels"
        assert isinstance(grid.to_frame()["color"].dtype, pd.CategoricalDtype)

    @pytest.mark.unit
    def test_string_levels_are_sorted(self):
        data = pd.DataFrame({"city": ["paris", "berlin", "rome", "berlin"]})
        grid = build_grid("city", data)
        assert list(grid.axes[0].values) == ["berlin", "paris", "rome"]

    @pytest.mark.unit
    def test_forced_categorical(self, sample_dataset):
        config = GridConfig(categorical_features=["count"])
        axis = build_grid("count", sample_dataset, config).axes[0]

        assert axis.is_categorical
        assert list(axis.values) == [0, 1, 2, 3, 4]

    @pytest.mark.unit
    def test_missing_values_are_ignored(self):
        data = pd.DataFrame({"x": [1.0, np.nan, 2.0, 3.0, np.nan]})
        grid = build_grid("x", data)
        np.testing.assert_array_equal(grid.axes[0].values, [1.0, 2.0, 3.0])

    @pytest.mark.unit
    def test_constant_feature_warns(self, caplog):
        data = pd.DataFrame({"x": np.full(20, 3.0)})

        with caplog.at_level(logging.WARNING, logger="pdp_engine"):
            grid = build_grid("x", data)

        assert len(grid) == 1
        assert any("constant" in record.getMessage() for record in caplog.records)

    @pytest.mark.unit
    def test_all_missing_feature_rejected(self):
        data = pd.DataFrame({"x": [np.nan, np.nan]})
        with pytest.raises(InvalidGridError):
            build_grid("x", data)


class TestExplicitCutPoints:
    """Caller-supplied sweep values."""

    @pytest.mark.unit
    def test_numeric_cut_points_sorted_and_deduplicated(self, sample_dataset):
        grid = build_grid("x1", sample_dataset, grid_values={"x1": [0.5, 0.1, 0.5, 0.9]})

        np.testing.assert_allclose(grid.axes[0].values, [0.1, 0.5, 0.9])
        assert grid.axes[0].source == "explicit"

    @pytest.mark.unit
    def test_cut_points_without_training_data(self):
        grid = build_grid(["a", "b"], grid_values={"a": [1.0, 2.0], "b": ["u", "v", "w"]})

        assert len(grid) == 6
        assert list(grid.axes[1].values) == ["u", "v", "w"]

    @pytest.mark.unit
    def test_training_data_required_without_cut_points(self):
        with pytest.raises(DataValidationError) as exc_info:
            build_grid(["a", "b"], grid_values={"a": [1.0, 2.0]})
        assert exc_info.value.error_code == "DATA_REQUIRED"

    @pytest.mark.unit
    def test_integer_cut_points_keep_integer_dtype(self, sample_dataset):
        grid = build_grid("count", sample_dataset, grid_values={"count": [3, 1]})
        assert grid.to_frame()["count"].dtype.kind == "i"
        assert list(grid.axes[0].values) == [1, 3]

    @pytest.mark.unit
    def test_single_cut_point_rejected(self, sample_dataset):
        with pytest.raises(InvalidGridError) as exc_info:
            build_grid("x1", sample_dataset, grid_values={"x1": [0.5, 0.5]})
        assert exc_info.value.error_code == "GRID_TOO_FEW_CUT_POINTS"

    @pytest.mark.unit
    def test_unknown_category_rejected(self, sample_dataset):
        with pytest.raises(InvalidGridError):
            build_grid("color", sample_dataset, grid_values={"color": ["red", "purple"]})

    @pytest.mark.unit
    def test_cut_points_for_unrequested_feature(self, sample_dataset):
        with pytest.raises(InvalidFeatureError):
            build_grid("x1", sample_dataset, grid_values={"x2": [0.0, 1.0]})

    @pytest.mark.unit
    def test_build_feature_grid_directly(self, sample_dataset):
        axis = build_feature_grid("x1", sample_dataset["x1"], GridConfig(resolution=4))
        assert len(axis) == 4
        assert axis.name == "x1"


class TestMultiFeatureGrid:
    """Cartesian product grids."""

    @pytest.mark.unit
    def test_two_feature_grid_has_25_rows(self, sample_dataset):
        grid = build_grid(["x1", "x3"], sample_dataset, GridConfig(resolution=5))
        assert len(grid) == 25
        assert grid.shape == (5, 5)

    @pytest.mark.unit
    def test_first_feature_varies_slowest(self, sample_dataset):
        grid = build_grid(["x1", "x3"], sample_dataset, GridConfig(resolution=5))
        frame = grid.to_frame()
        x1_values, x3_values = grid.axes[0].values, grid.axes[1].values

        np.testing.assert_array_equal(frame["x1"].to_numpy(), np.repeat(x1_values, 5))
        np.testing.assert_array_equal(frame["x3"].to_numpy(), np.tile(x3_values, 5))
        assert list(frame.columns) == ["x1", "x3"]

    @pytest.mark.unit
    def test_three_feature_grid(self, sample_dataset):
        grid = build_grid(["x1", "count", "color"], sample_dataset, GridConfig(resolution=4, max_categories=10))
        frame = grid.to_frame()

        assert len(grid) == 4 * 5 * 3
        # Last feature cycles fastest
        assert list(frame["color"].iloc[:3]) == ["red", "green", "blue"]
        assert frame["x1"].iloc[0] == frame["x1"].iloc[14]
        assert frame["x1"].iloc[0] != frame["x1"].iloc[15]

    @pytest.mark.unit
    def test_grid_frame_is_a_copy(self, sample_dataset):
        grid = build_grid("x1", sample_dataset, GridConfig(resolution=5))
        frame = grid.to_frame()
        frame["x1"] = -1.0

        assert (grid.to_frame()["x1"] != -1.0).all()

    @pytest.mark.unit
    def test_point_returns_python_values(self, sample_dataset):
        grid = build_grid(["count", "color"], sample_dataset)
        point = grid.point(0)

        assert point == {"count": 0, "color": "red"}
        assert type(point["count"]) is int


class TestFeatureValidation:
    """Feature selection errors."""

    @pytest.mark.unit
    def test_missing_feature(self, sample_dataset):
        with pytest.raises(InvalidFeatureError) as exc_info:
            build_grid(["x1", "nope"], sample_dataset)
        assert "nope" in str(exc_info.value)

    @pytest.mark.unit
    def test_too_many_features(self, sample_dataset):
        with pytest.raises(InvalidFeatureError):
            build_grid(["x1", "x2", "x3", "count"], sample_dataset)

    @pytest.mark.unit
    def test_no_features(self, sample_dataset):
        with pytest.raises(InvalidFeatureError):
            validate_features([], sample_dataset)

    @pytest.mark.unit
    def test_duplicate_features(self, sample_dataset):
        with pytest.raises(InvalidFeatureError) as exc_info:
            validate_features(["x1", "x1"], sample_dataset)
        assert exc_info.value.context["duplicates"] == ["x1"]

    @pytest.mark.unit
    def test_string_feature_becomes_tuple(self, sample_dataset):
        assert validate_features("x1", sample_dataset) == ("x1",)

    @pytest.mark.unit
    def test_non_frame_training_data(self):
        with pytest.raises(DataValidationError):
            build_grid("x", np.arange(10))

    @pytest.mark.unit
    def test_resolution_of_one_rejected(self):
        with pytest.raises(InvalidGridError):
            GridConfig(resolution=1)


class TestExplicitGridFrame:
    """Ready grid frames wrapped with Grid.from_frame."""

    @pytest.mark.unit
    def test_row_order_preserved(self, sample_dataset):
        frame = pd.DataFrame({"x3": [0.5, -0.5, 0.0], "x1": [0.9, 0.1, 0.5]})
        grid = Grid.from_frame(frame, ["x1", "x3"], sample_dataset)

        assert list(grid.to_frame().columns) == ["x1", "x3"]
        np.testing.assert_array_equal(grid.column_values("x1"), [0.9, 0.1, 0.5])

    @pytest.mark.unit
    def test_columns_must_match_features(self, sample_dataset):
        frame = pd.DataFrame({"x1": [0.1, 0.2]})
        with pytest.raises(InvalidGridError) as exc_info:
            Grid.from_frame(frame, ["x1", "x3"], sample_dataset)
        assert exc_info.value.error_code == "GRID_COLUMNS_MISMATCH"

    @pytest.mark.unit
    def test_empty_frame_rejected(self, sample_dataset):
        frame = pd.DataFrame({"x1": pd.Series([], dtype=float)})
        with pytest.raises(InvalidGridError):
            Grid.from_frame(frame, ["x1"], sample_dataset)

    @pytest.mark.unit
    def test_unknown_grid_category_rejected(self, sample_dataset):
        frame = pd.DataFrame({"color": ["red", "purple"]})

        with pytest.raises(InvalidGridError) as exc_info:
            Grid.from_frame(frame, ["color"], sample_dataset)

        assert exc_info.value.error_code == "GRID_UNKNOWN_CATEGORY"
        assert exc_info.value.context["feature"] == "color"

    @pytest.mark.unit
    def test_known_categories_take_training_dtype(self, sample_dataset):
        frame = pd.DataFrame({"color": ["blue", "red"]})

        grid = Grid.from_frame(frame, ["color"], sample_dataset)

        assert grid.to_frame()["color"].dtype == sample_dataset["color"].dtype
        assert grid.axes[0].is_categorical
        assert grid.point(0) == {"color": "blue"}

    @pytest.mark.unit
    def test_point_keeps_integer_values(self, sample_dataset):
        frame = pd.DataFrame({"count": [0, 2, 4], "x1": [0.1, 0.5, 0.9]})

        grid = Grid.from_frame(frame, ["count", "x1"], sample_dataset)
        point = grid.point(1)

        assert point == {"count": 2, "x1": 0.5}
        assert isinstance(point["count"], int)
        assert isinstance(point["x1"], float)


if __name__ == "__main__":
    pytest.main([__file__])
