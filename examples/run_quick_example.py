"""Quick runnable example on a synthetic regression problem.

This script fits a scikit-learn gradient boosting model, then computes a
partial dependence curve, centered ICE curves and a two-feature surface
with convex hull flags, saving each table's plot.

Run:
    python -m examples.run_quick_example
"""

from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingRegressor

import pdp_engine as pe
from pdp_engine.config import PartialDependenceConfig


def make_dataset(n_samples: int = 500, random_state: int = 42) -> pd.DataFrame:
    """Friedman-style data with an interaction between x1 and x2."""
    rng = np.random.RandomState(random_state)
    df = pd.DataFrame({
        "x1": rng.uniform(0, 1, n_samples),
        "x2": rng.uniform(0, 1, n_samples),
        "x3": rng.normal(0, 1, n_samples),
        "segment": pd.Categorical(rng.choice(["a", "b", "c"], n_samples)),
    })
    df["target"] = (
        10 * np.sin(np.pi * df["x1"] * df["x2"])
        + 5 * df["x3"]
        + df["segment"].cat.codes
        + rng.normal(0, 0.5, n_samples)
    )
    return df


def main(output_dir: Optional[Path] = None) -> Dict[str, pe.PartialDependenceTable]:
    output_dir = Path(output_dir or "pdp_example_output")
    pe.configure_logging(level="INFO", force=True)

    df = make_dataset()
    X = df.drop(columns="target")
    X_numeric = X.assign(segment=X["segment"].cat.codes)
    y = df["target"]

    model = GradientBoostingRegressor(n_estimators=50, max_depth=3, random_state=42)
    model.fit(X_numeric, y)
    print(f"Fitted {type(model).__name__} on {len(X_numeric)} rows")

    # Upfront cost of a full sweep
    calculator = pe.PartialDependenceCalculator(model)
    print(f"Cost of a 51-point sweep of x1: {calculator.estimate_cost(X_numeric, 'x1')}")

    tables = {}

    tables["x1"] = pe.partial(model, X_numeric, "x1", resolution=20)
    print(tables["x1"].to_frame().head())

    tables["x1 ice"] = pe.partial(
        model, X_numeric, "x1",
        config=PartialDependenceConfig.for_ice(center=True)
    )
    print(f"c-ICE table: {len(tables['x1 ice'])} rows")

    tables["x1 x x2"] = pe.partial(model, X_numeric, ["x1", "x2"], resolution=15, chull=True)
    outside = tables["x1 x x2"].to_frame()["outside_hull"].sum()
    print(f"Two-feature surface: {outside} of {len(tables['x1 x x2'])} grid points outside the training hull")

    output_dir.mkdir(parents=True, exist_ok=True)
    for name, table in tables.items():
        fig = pe.plot_partial(table, save_path=output_dir / f"{name.replace(' ', '_')}.png")
        plt.close(fig)

    print(f"Plots saved to {output_dir}")
    return tables


if __name__ == "__main__":
    main()
