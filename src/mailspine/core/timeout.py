"""Deadline enforcement for blocking release steps.

Pre-deployment checks and migration batches call into drivers that may
hang on a dead host. ``run_with_timeout`` runs such a call on a worker
thread and stops *waiting* for it once the deadline passes.

Guardrails:
    - The worker thread is not killed; it keeps running until the driver
      returns. ``TimeoutExpired.future`` lets the caller wait for it before
      touching the same resources again.
    - Size timeouts well above normal step durations.
    - Not suitable for CPU-bound work.

Examples:
    >>> run_with_timeout(lambda: 42, 1.0, operation="answer")
    42
    >>> run_with_timeout(slow_ddl, 30.0, operation="Database Migrations")  # doctest: +SKIP

Tags:
    timeout, deadline, resilience, mailspine
"""

from __future__ import annotations

import concurrent.futures
import time
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


class TimeoutExpired(TimeoutError):
    """Raised when an operation exceeds its deadline.

    Inherits from built-in TimeoutError for broad exception handling.

    Attributes:
        timeout: The timeout value that was exceeded
        elapsed: How long the caller waited
        operation: Name/description of the operation
        future: The abandoned call, still running; ``result()`` waits for it
    """

    def __init__(
        self,
        timeout: float,
        elapsed: float | None = None,
        operation: str = "operation",
        future: concurrent.futures.Future | None = None,
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        self.operation = operation
        self.future = future
        msg = f"Operation '{operation}' timed out after {timeout}s"
        if elapsed is not None:
            msg += f" (ran for {elapsed:.2f}s)"
        super().__init__(msg)


def run_with_timeout(
    func: Callable[..., T],
    timeout_seconds: float,
    operation: str | None = None,
    args: tuple[Any, ...] | None = None,
    kwargs: dict[str, Any] | None = None,
) -> T:
    """Run a callable with a timeout using a one-thread executor.

    Raises:
        TimeoutExpired: If execution exceeds the timeout
        Exception: Any exception raised by func
    """
    if timeout_seconds <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout_seconds}")

    start = time.monotonic()
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(func, *(args or ()), **(kwargs or {}))
        try:
            return future.result(timeout=timeout_seconds)
        except concurrent.futures.TimeoutError:
            elapsed = time.monotonic() - start
            raise TimeoutExpired(
                timeout=timeout_seconds,
                elapsed=elapsed,
                operation=operation or getattr(func, "__name__", "unknown"),
                future=future,
            ) from None
    finally:
        # Do not block on a worker that is still running past its deadline
        executor.shutdown(wait=False)


__all__ = ["TimeoutExpired", "run_with_timeout"]
