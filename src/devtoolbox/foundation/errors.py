"""Standardized error handling for the toolbox.

Every failure that reaches the dispatcher is turned into one line of status
text; nothing raised inside a tool after startup ends the process. Startup
failures (store cannot be opened, terminal cannot be acquired, missing token)
are the only fatal ones and are raised as `StartupError`.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import Self


class ErrorCode(StrEnum):
    """Standard error codes for toolbox failures."""
    INVALID_INPUT = "INVALID_INPUT"
    STORAGE_ERROR = "STORAGE_ERROR"
    IMPORT_ERROR = "IMPORT_ERROR"
    REMOTE_ERROR = "REMOTE_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    PARSE_ERROR = "PARSE_ERROR"
    NOT_READY = "NOT_READY"
    UNKNOWN = "UNKNOWN"


# Pattern -> code mapping, checked in insertion order
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "connect": ErrorCode.NETWORK_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "sqlite": ErrorCode.STORAGE_ERROR,
    "database": ErrorCode.STORAGE_ERROR,
    "json": ErrorCode.PARSE_ERROR,
    "decode": ErrorCode.PARSE_ERROR,
    "parse": ErrorCode.PARSE_ERROR,
    "validation": ErrorCode.INVALID_INPUT,
    "value": ErrorCode.INVALID_INPUT,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES.keys())


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map exception to error code: toolbox errors carry their own, others by name/message pattern."""
    if isinstance(exc, ToolboxError):
        return exc.code
    return _classify_cached(f"{type(exc).__name__} {exc}")


class ToolboxError(Exception):
    """Base exception carrying a code and whether the user can simply try again."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, *, code: ErrorCode | None = None, recoverable: bool = True) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.recoverable = recoverable

    @classmethod
    def from_exc(cls, exc: BaseException, context: str = "") -> Self:
        """Wrap a foreign exception, keeping it as __cause__."""
        err = cls(f"{context}: {exc}" if context else str(exc))
        err.__cause__ = exc
        return err


class InputError(ToolboxError):
    """Malformed user input. State is left unchanged."""
    code = ErrorCode.INVALID_INPUT


class StorageError(ToolboxError):
    """Cache store open/query/transaction failure."""
    code = ErrorCode.STORAGE_ERROR


class ReferenceImportError(ToolboxError):
    """Reference data import aborted (I/O or parse failure in a seed file)."""
    code = ErrorCode.IMPORT_ERROR


class RemoteError(ToolboxError):
    """Non-success answer from an external service."""
    code = ErrorCode.REMOTE_ERROR

    def __init__(self, message: str, *, status_code: int | None = None, code: ErrorCode | None = None) -> None:
        super().__init__(message, code=code)
        self.status_code = status_code


class NotReadyError(ToolboxError):
    """Operation needs reference data that is still being imported."""
    code = ErrorCode.NOT_READY


class StartupError(ToolboxError):
    """Fatal failure before the event loop starts."""

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(message, recoverable=False)
        self.hint = hint


def status_from_exception(exc: BaseException) -> str:
    """One-line status text for a failed dispatch."""
    if isinstance(exc, ToolboxError):
        return exc.message
    text = str(exc) or type(exc).__name__
    return f"Error: {text.splitlines()[0]}"
