"""
Result envelope for consistent success/failure handling.

The migration store, runner and deployment ledger return ``Ok[T]`` or
``Err[T]`` instead of raising. A failed migration or an unreachable
tracking table is an expected outcome of a release, and the orchestrator
has to turn every one of them into step text; making failure a value keeps
that conversion explicit at each boundary.

Manifesto:
    - **Explicit over implicit:** No hidden exceptions a caller might miss
    - **Composable:** ``map`` / ``and_then`` chain fallible steps
    - **Typed errors:** ``Err.error`` is normally a :class:`MailspineError`

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     Result[T]                                │
        ├─────────────────┬─────────────────┬─────────────────────────┤
        │     Ok[T]       │     Err[T]      │     Utilities           │
        ├─────────────────┼─────────────────┼─────────────────────────┤
        │ • value: T      │ • error: Exc    │ • try_result_with()     │
        │ • map()         │ • message       │                         │
        │ • and_then()    │ • unwrap() raise│                         │
        │ • unwrap()      │                 │                         │
        └─────────────────┴─────────────────┴─────────────────────────┘

Examples:
    >>> from mailspine.core.result import Ok, Err
    >>> match Ok(3):
    ...     case Ok(value):
    ...         print(value)
    ...     case Err(error):
    ...         print(error)
    3
    >>> Err(ValueError("boom")).message
    'boom'

Tags:
    result-pattern, error-handling, functional, mailspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from mailspine.core.errors import MailspineError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def and_then(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result carrying the exception that describes the failure."""

    error: Exception

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Err(self.error)

    def and_then(self, f: Callable[[T], Result[U]]) -> Result[U]:
        return Err(self.error)

    @property
    def message(self) -> str:
        """Human-readable error text, suitable for a step's ``error`` field."""
        if isinstance(self.error, MailspineError):
            return self.error.message
        return str(self.error)

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result_with(
    f: Callable[[], T],
    error_mapper: Callable[[Exception], Exception],
) -> Result[T]:
    """Run ``f`` and map any exception into a typed error.

    Already-typed :class:`MailspineError` instances pass through unchanged.

    Examples:
        >>> from mailspine.core.errors import TrackingUnavailableError
        >>> r = try_result_with(
        ...     lambda: 1 / 0,
        ...     lambda e: TrackingUnavailableError(str(e), cause=e),
        ... )
        >>> type(r.error).__name__
        'TrackingUnavailableError'
    """
    try:
        return Ok(f())
    except MailspineError as e:
        return Err(e)
    except Exception as e:
        return Err(error_mapper(e))


__all__ = ["Err", "Ok", "Result", "try_result_with"]
