"""Task model for the board."""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

GUEST_OWNER_ID = "guest"
DEFAULT_CATEGORIES = ("Technical Task", "User Story")

REQUIRED_MESSAGE = "This field is required"
PAST_DATE_MESSAGE = "Date cannot be in the past"
INVALID_DATE_MESSAGE = "Invalid date format"


class TaskStatus(StrEnum):
    """Workflow stage; each value is one board column."""

    TODO = "todo"
    IN_PROGRESS = "inprogress"
    AWAIT_FEEDBACK = "awaitfeedback"
    DONE = "done"


# Left-to-right column sequence, used by the adjacent-column move.
STATUS_SEQUENCE: tuple[TaskStatus, ...] = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.AWAIT_FEEDBACK,
    TaskStatus.DONE,
)

STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.TODO: "To-do",
    TaskStatus.IN_PROGRESS: "Progress",
    TaskStatus.AWAIT_FEEDBACK: "Feedback",
    TaskStatus.DONE: "Done",
}


class Priority(StrEnum):
    URGENT = "urgent"
    MEDIUM = "medium"
    LOW = "low"


class ViewMode(StrEnum):
    """Board visibility mode of a session."""

    PUBLIC = "public"
    PRIVATE = "private"


class Subtask(BaseModel):
    """Checklist entry of a task."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str
    completed: bool = False


class Task(BaseModel):
    """A card on the board as delivered by the store."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    id: str | None = None
    title: str = Field(min_length=1)
    description: str = ""
    due_date: date | None = None
    priority: Priority = Priority.MEDIUM
    category: str = ""
    status: TaskStatus = TaskStatus.TODO
    order: int | None = None
    assigned_to: set[str] = Field(default_factory=set)
    subtasks: list[Subtask] = Field(default_factory=list)
    is_private: bool = False
    owner_id: str = GUEST_OWNER_ID
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("description", "category", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_private", mode="before")
    @classmethod
    def _null_is_public(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("assigned_to", "subtasks", mode="before")
    @classmethod
    def _null_collection(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="after")
    def _unique_subtask_ids(self) -> Task:
        ids = [subtask.id for subtask in self.subtasks]
        if len(ids) != len(set(ids)):
            raise ValueError("subtask ids must be unique within a task")
        return self

    @property
    def sort_key(self) -> int:
        """Order used for sorting only; a missing order sorts as 0."""
        return self.order if self.order is not None else 0

    @computed_field
    @property
    def completed_subtasks(self) -> int:
        return sum(1 for subtask in self.subtasks if subtask.completed)

    @computed_field
    @property
    def progress_percentage(self) -> float:
        if not self.subtasks:
            return 0.0
        return self.completed_subtasks / len(self.subtasks) * 100

    def find_subtask(self, subtask_id: str) -> Subtask | None:
        return next((s for s in self.subtasks if s.id == subtask_id), None)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match over title and description.

        ``query`` is expected to be case-folded already.
        """
        return query in self.title.casefold() or query in self.description.casefold()

    def to_record(self) -> dict[str, Any]:
        """Serialize to a store document (without store-assigned and computed fields)."""
        return self.model_dump(
            mode="json",
            exclude={"id", "created_at", "updated_at", "completed_subtasks", "progress_percentage"},
        )


def parse_due_date(value: date | str | None) -> date | None:
    """Parse a due date given as a date, ``dd/mm/yyyy`` or ISO ``yyyy-mm-dd``.

    Raises:
        ValueError: if the string cannot be parsed
    """
    if value is None or isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    if "/" in text:
        day, month, year = (int(part) for part in text.split("/"))
        return date(year, month, day)
    return date.fromisoformat(text)


class FieldErrors(BaseModel):
    """Per-field validation flags for the task forms."""

    title_error: bool = False
    due_date_error: bool = False
    due_date_message: str = REQUIRED_MESSAGE
    category_error: bool = False

    @property
    def ok(self) -> bool:
        return not (self.title_error or self.due_date_error or self.category_error)

    def failed_fields(self) -> list[str]:
        flags = {
            "title": self.title_error,
            "due_date": self.due_date_error,
            "category": self.category_error,
        }
        return [name for name, failed in flags.items() if failed]


class TaskDraft(BaseModel):
    """Form input for a new task, before validation."""

    title: str = ""
    description: str = ""
    due_date: date | str | None = None
    priority: Priority = Priority.MEDIUM
    category: str = ""
    assigned_to: set[str] = Field(default_factory=set)
    subtasks: list[Subtask] = Field(default_factory=list)


class TaskPatch(BaseModel):
    """Partial field update.

    Only fields that were explicitly set are written, so an empty
    ``assigned_to`` is sent while an absent one is not. Visibility fields
    are not patchable.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    due_date: date | None = None
    priority: Priority | None = None
    category: str | None = None
    status: TaskStatus | None = None
    order: int | None = None
    assigned_to: set[str] | None = None
    subtasks: list[Subtask] | None = None

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class BoardSettings(BaseModel):
    """Persisted per-viewer board preferences."""

    user_id: str
    view_mode: ViewMode = ViewMode.PUBLIC
    last_changed: datetime | None = None
