"""Error types raised by the markpad editing core and its collaborators."""

from __future__ import annotations

from typing import Iterable

__all__ = [
    "MarkpadError",
    "ValidationError",
    "UnsupportedInputError",
    "PersistenceError",
    "RemoteServiceError",
]


class MarkpadError(Exception):
    """Base class for every error surfaced by markpad."""


class ValidationError(MarkpadError, ValueError):
    """Raised when required input is empty or out of bounds.

    The operation that raises it has not mutated any state.
    """


class UnsupportedInputError(MarkpadError):
    """Raised when an imported file is neither Markdown nor plain text."""

    def __init__(self, name: str, *, accepted: Iterable[str] = ()) -> None:
        self.name = name
        self.accepted = tuple(accepted)
        detail = f"Unsupported file type: {name!r}"
        if self.accepted:
            detail = f"{detail} (expected {', '.join(self.accepted)})"
        super().__init__(detail)


class PersistenceError(MarkpadError):
    """Wraps a durable-store failure.

    Only ever created at the persistence boundary, where it is logged and
    dropped; it never reaches the editing core.
    """

    def __init__(self, operation: str, key: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.key = key
        self.cause = cause
        message = f"Unable to {operation} {key!r}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class RemoteServiceError(MarkpadError):
    """Network, auth or HTTP failure reported by the remote memory service."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
