"""Models for boardsync."""

from boardsync.models.task import (
    DEFAULT_CATEGORIES,
    GUEST_OWNER_ID,
    STATUS_LABELS,
    STATUS_SEQUENCE,
    BoardSettings,
    FieldErrors,
    Priority,
    Subtask,
    Task,
    TaskDraft,
    TaskPatch,
    TaskStatus,
    ViewMode,
    parse_due_date,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "GUEST_OWNER_ID",
    "STATUS_LABELS",
    "STATUS_SEQUENCE",
    "BoardSettings",
    "FieldErrors",
    "Priority",
    "Subtask",
    "Task",
    "TaskDraft",
    "TaskPatch",
    "TaskStatus",
    "ViewMode",
    "parse_due_date",
]
