"""Test configuration for pytest."""
import os
import sys
import tempfile
from pathlib import Path
from typing import Generator, Dict, Any

import matplotlib
matplotlib.use("Agg")

import pytest
import pandas as pd
import numpy as np

# Add repository root to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from pdp_engine.adapters.registry import get_registry


@pytest.fixture(scope="session")
def test_data_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture(scope="session")
def linear_dataset() -> pd.DataFrame:
    """100 rows with ``x`` uniform in [0, 10]."""
    np.random.seed(42)
    return pd.DataFrame({"x": np.random.uniform(0, 10, 100)})


@pytest.fixture(scope="session")
def sample_dataset() -> pd.DataFrame:
    """Mixed numeric and categorical dataset with a regression target."""
    np.random.seed(42)

    n_samples = 300
    df = pd.DataFrame({
        "x1": np.random.uniform(0, 1, n_samples),
        "x2": np.random.normal(0, 1, n_samples),
        "x3": np.random.uniform(-1, 1, n_samples),
        "count": np.random.randint(0, 5, n_samples),
        "color": pd.Categorical(np.random.choice(["red", "green", "blue"], n_samples),
                                categories=["red", "green", "blue"]),
    })
    df["target"] = 3 * df["x1"] + df["x2"] * df["x3"] + 0.1 * np.random.randn(n_samples)
    return df


@pytest.fixture(scope="session")
def sample_X_y(sample_dataset: pd.DataFrame):
    """Numeric features and target."""
    X = sample_dataset[["x1", "x2", "x3", "count"]]
    y = sample_dataset["target"]
    return X, y


@pytest.fixture(scope="session")
def fitted_regressor(sample_X_y):
    """Linear regression fitted on the numeric features."""
    from sklearn.linear_model import LinearRegression

    X, y = sample_X_y
    return LinearRegression().fit(X, y)


@pytest.fixture(scope="session")
def fitted_classifier(sample_X_y):
    """Three-class logistic regression with string labels."""
    from sklearn.linear_model import LogisticRegression

    X, _ = sample_X_y
    y = pd.cut(X["x1"], bins=[-np.inf, 0.33, 0.66, np.inf], labels=["low", "mid", "high"]).astype(str)
    return LogisticRegression(max_iter=1000).fit(X, y)


def double_x(model, rows: pd.DataFrame) -> np.ndarray:
    """Module-level predict_fn (picklable for process pools)."""
    return 2.0 * rows["x"].to_numpy()


@pytest.fixture
def sample_config_dict() -> Dict[str, Any]:
    """Sample configuration dictionary for testing."""
    return {
        'grid': {
            'resolution': 10,
            'strategy': 'uniform',
            'probs': [0.05, 0.95],
            'categorical_features': ['count']
        },
        'compute': {
            'ice': True,
            'center': True,
            'subsample': 50,
            'random_state': 7
        }
    }


@pytest.fixture
def temp_config_file(test_data_dir: Path, sample_config_dict: Dict[str, Any]) -> Path:
    """Create temporary YAML config file for testing."""
    import yaml

    config_file = test_data_dir / "test_config.yaml"
    with open(config_file, 'w') as f:
        yaml.dump(sample_config_dict, f)

    return config_file


@pytest.fixture(autouse=True)
def cleanup_environment():
    """Clean up environment variables after each test."""
    # Store original environment
    original_env = dict(os.environ)

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_adapter_registry():
    """Drop custom adapters registered by a test."""
    yield
    get_registry().reset()


@pytest.fixture(autouse=True)
def close_figures():
    """Close matplotlib figures created by a test."""
    yield
    import matplotlib.pyplot as plt
    plt.close("all")


# Marks for test categorization
pytest_plugins = []

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "config: mark test as configuration-related"
    )
    config.addinivalue_line(
        "markers", "models: mark test as model-related"
    )
    config.addinivalue_line(
        "markers", "data: mark test as data-related"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their paths."""
    for item in items:
        # Auto-mark integration tests
        if "integration" in str(item.fspath) or "partial" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)

        # Auto-mark based on test file names
        if "config" in str(item.fspath):
            item.add_marker(pytest.mark.config)
        elif "adapter" in str(item.fspath):
            item.add_marker(pytest.mark.models)
        elif "grid" in str(item.fspath) or "hull" in str(item.fspath):
            item.add_marker(pytest.mark.data)
