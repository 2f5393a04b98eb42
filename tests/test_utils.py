"""Unit tests for timing, error handling and executor utilities."""
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from pdp_engine.core.executors import (
    SequentialExecutor,
    executor_scope,
    make_executor,
    resolve_n_jobs,
    worker_count
)
from pdp_engine.utils.exceptions import (
    AdapterInvocationError,
    ComputationError,
    ConfigurationError,
    FileOperationError,
    InvalidGridError,
    PDPEngineError,
    PerformanceError,
    create_error_context,
    handle_and_reraise,
    validate_parameter
)
from pdp_engine.utils.timer import (
    get_performance_stats,
    get_performance_summary,
    reset_performance_stats,
    timed_operation,
    timer
)


class TestTimer:
    """Test timing functionality."""

    @pytest.mark.unit
    def test_timer_decorator(self):
        """Test timer records calls in the performance tracker."""
        reset_performance_stats("test.sleepy")

        @timer(name="test.sleepy")
        def sleepy(value):
            time.sleep(0.01)
            return value * 2

        assert sleepy(21) == 42
        assert sleepy(1) == 2

        stats = get_performance_stats("test.sleepy")
        assert stats["call_count"] == 2
        assert stats["min_time"] > 0
        assert "test.sleepy" in get_performance_summary()

    @pytest.mark.unit
    def test_timer_timeout(self):
        """Test timer raises PerformanceError past its timeout."""
        @timer(name="test.slow", timeout=0.001)
        def slow():
            time.sleep(0.02)

        with pytest.raises(PerformanceError) as exc_info:
            slow()
        assert exc_info.value.error_code == "OPERATION_TIMEOUT"

    @pytest.mark.unit
    def test_timer_propagates_errors(self):
        """Test timer re-raises exceptions from the wrapped function."""
        @timer(name="test.failing")
        def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            failing()

    @pytest.mark.unit
    def test_timed_operation(self):
        """Test timed_operation fills the duration on exit."""
        reset_performance_stats("test.block")

        with timed_operation("test.block") as timing:
            time.sleep(0.01)

        assert timing["duration"] > 0
        assert get_performance_stats("test.block")["call_count"] == 1

    @pytest.mark.unit
    def test_timed_operation_error(self):
        """Test timed_operation re-raises and still measures."""
        with pytest.raises(ValueError):
            with timed_operation("test.block_error") as timing:
                raise ValueError("bad block")

        assert timing["duration"] >= 0


class TestExceptions:
    """Test the exception hierarchy and helpers."""

    @pytest.mark.unit
    def test_string_includes_code_and_context(self):
        """Test error string rendering."""
        error = AdapterInvocationError("Prediction failed", "ADAPTER_FAILED", {"features": ["x1"]})

        assert str(error) == "[ADAPTER_FAILED] Prediction failed (Context: features=['x1'])"
        assert isinstance(error, ComputationError)
        assert isinstance(error, PDPEngineError)

    @pytest.mark.unit
    def test_plain_message(self):
        """Test errors without code or context."""
        assert str(PDPEngineError("plain")) == "plain"

    @pytest.mark.unit
    def test_grid_error_is_configuration_error(self):
        """Test InvalidGridError is catchable as ConfigurationError."""
        assert issubclass(InvalidGridError, ConfigurationError)

    @pytest.mark.unit
    def test_handle_and_reraise(self):
        """Test external errors are converted and chained."""
        with pytest.raises(FileOperationError) as exc_info:
            try:
                raise OSError("disk full")
            except OSError as e:
                handle_and_reraise(e, FileOperationError, "Save failed", "SAVE_FAILED", {"path": "out.png"})

        error = exc_info.value
        assert error.context["original_error"] == "disk full"
        assert error.context["original_error_type"] == "OSError"
        assert error.context["path"] == "out.png"
        assert isinstance(error.__cause__, OSError)

    @pytest.mark.unit
    def test_validate_parameter(self):
        """Test parameter validation rules."""
        validate_parameter("n_jobs", 4, min_value=1)
        validate_parameter("subsample", None, min_value=1)

        with pytest.raises(ConfigurationError) as exc_info:
            validate_parameter("backend", "gpu", valid_values=["sequential", "thread"])
        assert exc_info.value.error_code == "PARAM_INVALID_VALUE"

        with pytest.raises(ConfigurationError):
            validate_parameter("n_jobs", 0, min_value=1)

        with pytest.raises(ConfigurationError):
            validate_parameter("ratio", 2.0, max_value=1.0)

        with pytest.raises(InvalidGridError):
            validate_parameter("resolution", None, required=True, error_class=InvalidGridError)

    @pytest.mark.unit
    def test_create_error_context(self):
        """Test complex objects are stringified."""
        class Thing:
            def __str__(self):
                return "thing"

        context = create_error_context(feature="x1", model=Thing())
        assert context == {"feature": "x1", "model": "thing"}


class TestExecutors:
    """Test executor helpers."""

    @pytest.mark.unit
    def test_sequential_executor(self):
        """Test results and errors come back through futures."""
        executor = SequentialExecutor()

        assert executor.submit(pow, 2, 5).result() == 32

        future = executor.submit(int, "not a number")
        with pytest.raises(ValueError):
            future.result()

    @pytest.mark.unit
    def test_make_executor(self):
        """Test backend selection."""
        assert isinstance(make_executor("sequential"), SequentialExecutor)
        assert isinstance(make_executor("thread", n_jobs=1), SequentialExecutor)

        executor = make_executor("thread", n_jobs=3)
        try:
            assert isinstance(executor, ThreadPoolExecutor)
            assert worker_count(executor) == 3
        finally:
            executor.shutdown()

        with pytest.raises(ConfigurationError):
            make_executor("cluster")

    @pytest.mark.unit
    def test_resolve_n_jobs(self):
        """Test -1 maps to at least one worker."""
        assert resolve_n_jobs(-1) >= 1
        assert resolve_n_jobs(2) == 2
        with pytest.raises(ConfigurationError):
            resolve_n_jobs(0)

    @pytest.mark.unit
    def test_executor_scope_keeps_caller_executor(self):
        """Test a caller's executor is yielded and left running."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            with executor_scope(pool) as active:
                assert active is pool
            assert pool.submit(abs, -3).result() == 3

    @pytest.mark.unit
    def test_executor_scope_owns_new_executor(self):
        """Test an owned executor is shut down on exit."""
        with executor_scope(None, backend="thread", n_jobs=2) as active:
            assert isinstance(active, ThreadPoolExecutor)

        with pytest.raises(RuntimeError):
            active.submit(abs, -1)


if __name__ == "__main__":
    pytest.main([__file__])
