"""
Exception classes and failure classification for the data access layer.

Every terminal query operation maps a caught failure to exactly one
``FailureKind`` via ``classify_failure()``. Only ``STORE_FAILURE`` is
logged; every kind is re-raised to the caller.
"""

import asyncio
from enum import Enum

from sqlalchemy.exc import ArgumentError, MultipleResultsFound


class FailureKind(str, Enum):
    """Failure categories surfaced by sessions and queries."""

    CALLER_ERROR = "caller_error"
    CANCELLED = "cancelled"
    CARDINALITY_VIOLATION = "cardinality_violation"
    STORE_FAILURE = "store_failure"
    LIFECYCLE_ERROR = "lifecycle_error"


class DataAccessError(Exception):
    """
    Base class for errors raised by the data access layer itself.

    Failures coming from the database driver are never wrapped in this
    class; they propagate unchanged.
    """

    pass


class CardinalityViolationError(DataAccessError):
    """
    More than one row matched a single-item retrieval.

    Raised by ``Query.single_or_default()``. This is a business-logic
    signal for the caller, not an infrastructure fault.
    """

    pass


class LifecycleError(DataAccessError):
    """
    Operation is not valid in the current session state.
    """

    pass


class SessionDisposedError(LifecycleError):
    """
    Operation attempted on a session that has already been closed.
    """

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot execute '{operation}' on a disposed session"
        )
        self.operation = operation


def classify_failure(
    exc: BaseException,
    deadline_expired: bool = False,
    during_execution: bool = False,
) -> FailureKind:
    """
    Map a caught failure to its failure kind.

    Args:
        exc: The exception raised while executing an operation.
        deadline_expired: True when the caller-supplied timeout of the
            operation elapsed. A ``TimeoutError`` is only treated as
            cancellation in that case; driver timeouts are store failures.
        during_execution: True when the failure was raised after argument
            validation, while compiling, running or reading the statement.
            Argument-type errors raised there come from the database layer
            (compiler, driver, result processing) and are store failures.

    Returns:
        The failure kind used to decide whether the failure is logged.
    """
    if isinstance(exc, (CardinalityViolationError, MultipleResultsFound)):
        return FailureKind.CARDINALITY_VIOLATION
    if isinstance(exc, LifecycleError):
        return FailureKind.LIFECYCLE_ERROR
    if isinstance(exc, asyncio.CancelledError):
        return FailureKind.CANCELLED
    if isinstance(exc, TimeoutError) and deadline_expired:
        return FailureKind.CANCELLED
    if not during_execution and isinstance(
        exc, (ValueError, TypeError, ArgumentError)
    ):
        return FailureKind.CALLER_ERROR
    return FailureKind.STORE_FAILURE
