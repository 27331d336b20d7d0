"""Tests for run_with_timeout."""

from __future__ import annotations

import time

import pytest

from mailspine.core.timeout import TimeoutExpired, run_with_timeout


class TestRunWithTimeout:
    def test_returns_value(self):
        assert run_with_timeout(lambda: 42, 1.0) == 42

    def test_passes_args(self):
        assert run_with_timeout(lambda a, b=0: a + b, 1.0, args=(1,), kwargs={"b": 2}) == 3

    def test_times_out(self):
        started = time.monotonic()
        with pytest.raises(TimeoutExpired) as exc_info:
            run_with_timeout(time.sleep, 0.05, operation="slow step", args=(0.5,))
        assert time.monotonic() - started < 0.4
        assert exc_info.value.operation == "slow step"
        assert exc_info.value.timeout == 0.05
        assert isinstance(exc_info.value, TimeoutError)

    def test_expired_call_can_be_awaited(self):
        with pytest.raises(TimeoutExpired) as exc_info:
            run_with_timeout(lambda: time.sleep(0.2) or "late", 0.02)
        future = exc_info.value.future
        assert future is not None
        assert not future.done()
        assert future.result(timeout=2) == "late"

    def test_propagates_exceptions(self):
        def _boom():
            raise KeyError("k")

        with pytest.raises(KeyError):
            run_with_timeout(_boom, 1.0)

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError, match="positive"):
            run_with_timeout(lambda: 1, 0)


class TestTimeoutExpired:
    def test_message(self):
        err = TimeoutExpired(timeout=2.0, elapsed=2.5, operation="migrate")
        assert str(err) == "Operation 'migrate' timed out after 2.0s (ran for 2.50s)"
