"""Tagged error types and retry policy for store-backed operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(StrEnum):
    """Category an error belongs to; decides whether a caller may retry."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    NETWORK = "network"  # includes transient unavailability
    OFFLINE = "offline"
    UNKNOWN = "unknown"


_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "The requested data was not found.",
    ErrorKind.PERMISSION: "You do not have permission to perform this action.",
    ErrorKind.NETWORK: "Network connection lost. Working in offline mode.",
    ErrorKind.OFFLINE: "You are offline. Changes will sync when you reconnect.",
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
}

_RECOVERABLE = frozenset({ErrorKind.NETWORK})


class HabitlogError(Exception):
    """Base error carrying its kind and a message fit for the end user."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        user_message: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.user_message = user_message or _USER_MESSAGES.get(self.kind, message)
        self.code = code


class ValidationError(HabitlogError):
    """Bad input: habit name, date format, reflection length, unknown ids."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, code: str = "validation-error") -> None:
        # Validation messages are already written for the user.
        super().__init__(message, user_message=message, code=code)


class NotFoundError(HabitlogError):
    """A record addressed by id does not exist in the store."""

    kind = ErrorKind.NOT_FOUND


class StoreError(HabitlogError):
    """Failure reported by the record store; kind is set by the raiser."""


def classify_error(exc: BaseException) -> HabitlogError:
    """Map an arbitrary exception to a tagged HabitlogError by its type."""
    if isinstance(exc, HabitlogError):
        return exc
    if isinstance(exc, PermissionError):
        kind = ErrorKind.PERMISSION
    elif isinstance(exc, FileNotFoundError):
        kind = ErrorKind.NOT_FOUND
    elif isinstance(exc, (ConnectionError, TimeoutError)):
        kind = ErrorKind.NETWORK
    else:
        kind = ErrorKind.UNKNOWN
    err = StoreError(str(exc) or type(exc).__name__, kind=kind, code=type(exc).__name__)
    err.__cause__ = exc
    return err


def is_recoverable(exc: BaseException) -> bool:
    """Return True if the error is transient and the operation may be retried."""
    return classify_error(exc).kind in _RECOVERABLE


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay: float = 1.0,
) -> T:
    """Run operation, retrying recoverable failures with exponential backoff.

    Sleeps ``delay * 2**attempt`` seconds between attempts. Non-recoverable
    errors propagate immediately; after the last attempt the final error is
    re-raised.
    """
    for attempt in range(max_retries):
        try:
            return await operation()
        except Exception as exc:
            if not is_recoverable(exc) or attempt == max_retries - 1:
                raise
            wait = delay * 2**attempt
            logger.warning(
                "Retry %d/%d in %.2fs after error: %s",
                attempt + 1,
                max_retries,
                wait,
                classify_error(exc).user_message,
            )
            await asyncio.sleep(wait)
    msg = "max_retries must be at least 1"
    raise ValueError(msg)
