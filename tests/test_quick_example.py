import importlib.util
from pathlib import Path

import pytest

from pdp_engine.utils.logger import set_log_level

# Load the example module by file path; examples/ is not an installed package
repo_root = Path(__file__).resolve().parents[1]
example_path = repo_root / "examples" / "run_quick_example.py"
spec = importlib.util.spec_from_file_location("examples.run_quick_example", str(example_path))
quick_example = importlib.util.module_from_spec(spec)
spec.loader.exec_module(quick_example)


@pytest.mark.slow
def test_run_quick_example(tmp_path):
    try:
        tables = quick_example.main(output_dir=tmp_path)
    finally:
        set_log_level("WARNING")

    assert set(tables) == {"x1", "x1 ice", "x1 x x2"}
    assert tables["x1 ice"].centered
    assert tables["x1 x x2"].has_hull_flags
    assert len(list(tmp_path.glob("*.png"))) == 3


def test_make_dataset_is_reproducible():
    first = quick_example.make_dataset(n_samples=50, random_state=3)
    second = quick_example.make_dataset(n_samples=50, random_state=3)

    assert first.equals(second)
    assert list(first.columns) == ["x1", "x2", "x3", "segment", "target"]
