"""Task commands: create, update, delete, status change, subtask toggle."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, TypeVar

from boardsync.exceptions import StoreWriteFailure, TaskValidationError
from boardsync.logging import get_logger
from boardsync.models.task import (
    INVALID_DATE_MESSAGE,
    PAST_DATE_MESSAGE,
    REQUIRED_MESSAGE,
    FieldErrors,
    Subtask,
    Task,
    TaskDraft,
    TaskPatch,
    TaskStatus,
    parse_due_date,
)
from boardsync.projection import LiveTaskProjection
from boardsync.session import SessionContext
from boardsync.store.base import TaskStore
from boardsync.visibility import resolve_predicate

logger = get_logger(__name__)

T = TypeVar("T")


def validate_draft(draft: TaskDraft, today: date) -> tuple[FieldErrors, date | None]:
    """Check required fields of a new task.

    Returns the per-field flags and the parsed due date (None when invalid).
    """
    errors = FieldErrors()
    errors.title_error = not draft.title.strip()
    errors.category_error = not draft.category.strip()

    due_date: date | None = None
    try:
        due_date = parse_due_date(draft.due_date)
    except ValueError:
        errors.due_date_error = True
        errors.due_date_message = INVALID_DATE_MESSAGE
    else:
        if due_date is None:
            errors.due_date_error = True
            errors.due_date_message = REQUIRED_MESSAGE
        elif due_date < today:
            errors.due_date_error = True
            errors.due_date_message = PAST_DATE_MESSAGE
            due_date = None

    return errors, due_date


class TaskCommands:
    """Writes against the task store.

    Apart from the subtask toggle, no command touches local state: the next
    snapshot from the store is what makes a change visible.
    """

    def __init__(
        self,
        store: TaskStore,
        session: SessionContext,
        projection: LiveTaskProjection,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._session = session
        self._projection = projection
        self._today = today

    async def _write(self, operation: str, task_id: str | None, call: Awaitable[T]) -> T:
        try:
            return await call
        except StoreWriteFailure as e:
            logger.error(f"[Commands] {operation} failed for {task_id or 'new task'}: {e}")
            raise

    async def create_task(self, draft: TaskDraft, status: TaskStatus = TaskStatus.TODO) -> str:
        """Validate a draft and create it at the end of ``status``.

        Raises:
            TaskValidationError: when a required field is missing or invalid;
                the store is not called
            StoreWriteFailure: when the store rejects the insert
        """
        errors, due_date = validate_draft(draft, self._today())
        if not errors.ok:
            logger.info(f"[Commands] Rejected new task: {', '.join(errors.failed_fields())}")
            raise TaskValidationError(errors)

        predicate = resolve_predicate(self._session.mode, self._session.viewer_id)
        task = Task(
            title=draft.title.strip(),
            description=draft.description.strip(),
            due_date=due_date,
            priority=draft.priority,
            category=draft.category.strip(),
            status=status,
            order=self._projection.next_order(status),
            assigned_to=set(draft.assigned_to),
            subtasks=list(draft.subtasks),
            is_private=predicate.private,
            owner_id=self._session.owner_id,
        )
        task_id = await self._write("create", None, self._store.create(task.to_record()))
        logger.info(f"[Commands] Created task {task_id} in {status} at order {task.order}")
        return task_id

    async def update_task(self, task_id: str, patch: TaskPatch | dict[str, Any]) -> None:
        """Write the fields present in ``patch``; absent fields are left alone."""
        if not isinstance(patch, TaskPatch):
            patch = TaskPatch.model_validate(patch)
        fields = patch.to_fields()
        if not fields:
            return
        await self._write("update", task_id, self._store.update_fields(task_id, fields))
        logger.debug(f"[Commands] Updated {task_id}: {sorted(fields)}")

    async def delete_task(self, task_id: str) -> None:
        await self._write("delete", task_id, self._store.delete(task_id))
        logger.info(f"[Commands] Deleted task {task_id}")

    async def update_status(self, task_id: str, status: TaskStatus, order: int | None = None) -> None:
        """Write status (and optionally order) without checking order invariants."""
        fields: dict[str, Any] = {"status": TaskStatus(status).value}
        if order is not None:
            fields["order"] = order
        await self._write("status", task_id, self._store.update_fields(task_id, fields))
        logger.debug(f"[Commands] {task_id} -> {status}")

    async def toggle_subtask(self, task: Task, subtask_id: str) -> Subtask:
        """Flip a subtask locally, persist the list, and flip back on failure.

        Raises:
            ValueError: if the task has no id or no such subtask
            StoreWriteFailure: after the local flip has been reverted
        """
        if task.id is None:
            raise ValueError("Cannot toggle a subtask of an unsaved task")
        subtask = task.find_subtask(subtask_id)
        if subtask is None:
            raise ValueError(f"Task {task.id} has no subtask {subtask_id}")

        completed = not subtask.completed
        subtask.completed = completed
        try:
            await self._store.update_fields(
                task.id,
                {"subtasks": [s.model_dump(mode="json") for s in task.subtasks]},
            )
        except StoreWriteFailure as e:
            subtask.completed = not completed
            logger.warning(f"[Commands] Subtask toggle on {task.id} reverted: {e}")
            raise
        return subtask
