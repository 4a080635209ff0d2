"""boardsync - live task board synchronization."""

from boardsync.board import TaskBoard
from boardsync.commands import TaskCommands, validate_draft
from boardsync.exceptions import (
    BoardError,
    InvalidMoveRequest,
    StoreReadFailure,
    StoreWriteFailure,
    TaskValidationError,
)
from boardsync.models.task import (
    BoardSettings,
    Priority,
    Subtask,
    Task,
    TaskDraft,
    TaskPatch,
    TaskStatus,
    ViewMode,
)
from boardsync.projection import LiveTaskProjection
from boardsync.reorder import Direction, DropEvent, MoveResult, ReorderEngine, move_options
from boardsync.search import SearchFilter
from boardsync.session import SessionContext
from boardsync.summary import BoardSummary
from boardsync.visibility import VisibilityPolicy, VisibilityPredicate

__all__ = [
    "BoardError",
    "BoardSettings",
    "BoardSummary",
    "Direction",
    "DropEvent",
    "InvalidMoveRequest",
    "LiveTaskProjection",
    "MoveResult",
    "Priority",
    "ReorderEngine",
    "SearchFilter",
    "SessionContext",
    "StoreReadFailure",
    "StoreWriteFailure",
    "Subtask",
    "Task",
    "TaskBoard",
    "TaskCommands",
    "TaskDraft",
    "TaskPatch",
    "TaskStatus",
    "TaskValidationError",
    "ViewMode",
    "VisibilityPolicy",
    "VisibilityPredicate",
    "move_options",
    "validate_draft",
]
