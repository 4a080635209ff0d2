"""Exceptions for boardsync."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from boardsync.models.task import FieldErrors


class BoardError(Exception):
    """Base exception for board errors."""

    pass


class TaskValidationError(BoardError):
    """Raised when a task draft fails client-side validation.

    Nothing has been written when this is raised. ``errors`` holds the
    per-field flags the form layer renders inline.
    """

    def __init__(self, errors: FieldErrors) -> None:
        self.errors = errors
        super().__init__(f"Invalid task: {', '.join(errors.failed_fields())}")


class StoreWriteFailure(BoardError):
    """Raised when the store rejects a create/update/delete/batch call."""

    def __init__(self, operation: str, task_ids: Sequence[str] = (), message: str = "") -> None:
        self.operation = operation
        self.task_ids = list(task_ids)
        detail = f": {message}" if message else ""
        super().__init__(f"{operation} failed for {self.task_ids or 'new task'}{detail}")


class StoreReadFailure(BoardError):
    """Raised when a subscription cannot be set up or a snapshot cannot be loaded."""

    pass


class InvalidMoveRequest(BoardError):
    """Raised when a move command is missing its task id or target column."""

    pass
