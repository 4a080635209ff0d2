"""Drag-and-drop reconciliation: local list moves plus persisted order rewrites.

A drop is applied to the projection lists first, then persisted. Persistence
failures are logged and collected but never undo the local move; the next
snapshot from the store settles any divergence.

Cross-column moves write in three independent steps: the moved task's
status and order, the source column renumbering, the target column
renumbering. Each renumbering is one batch write.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel

from boardsync.commands import TaskCommands
from boardsync.exceptions import InvalidMoveRequest, StoreWriteFailure
from boardsync.logging import get_logger
from boardsync.models.task import STATUS_LABELS, STATUS_SEQUENCE, Task, TaskStatus
from boardsync.projection import LiveTaskProjection
from boardsync.settings import settings
from boardsync.store.base import FieldWrite, TaskStore

logger = get_logger(__name__)


class Direction(StrEnum):
    PREVIOUS = "previous"
    NEXT = "next"


class DropEvent(BaseModel):
    """Drop gesture as emitted by the UI layer."""

    task: Task | None = None
    source_status: TaskStatus | None = None
    source_index: int = 0
    target_status: TaskStatus | None = None
    target_index: int = 0


class MoveOption(BaseModel):
    status: TaskStatus
    label: str
    direction: Direction


@dataclass
class MoveResult:
    """Outcome of a drop; ``failures`` lists writes that did not persist."""

    task_id: str
    source_status: TaskStatus
    target_status: TaskStatus
    writes: list[list[FieldWrite]] = field(default_factory=list)
    failures: list[StoreWriteFailure] = field(default_factory=list)

    @property
    def persisted(self) -> bool:
        return not self.failures


def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper))


def move_item_in_list(items: list[Task], from_index: int, to_index: int) -> None:
    """Move one element; everything between the two indices shifts by one."""
    if not items:
        return
    from_index = _clamp(from_index, len(items) - 1)
    to_index = _clamp(to_index, len(items) - 1)
    if from_index != to_index:
        items.insert(to_index, items.pop(from_index))


def transfer_list_item(source: list[Task], target: list[Task], source_index: int, target_index: int) -> None:
    """Move one element from ``source`` into ``target`` at ``target_index``."""
    if not source:
        return
    item = source.pop(_clamp(source_index, len(source) - 1))
    target.insert(_clamp(target_index, len(target)), item)


def adjacent_status(status: TaskStatus, direction: Direction) -> TaskStatus | None:
    """Neighbouring column in the todo -> done sequence, or None at the edge."""
    index = STATUS_SEQUENCE.index(status) + (1 if direction == Direction.NEXT else -1)
    if 0 <= index < len(STATUS_SEQUENCE):
        return STATUS_SEQUENCE[index]
    return None


def move_options(status: TaskStatus) -> list[MoveOption]:
    """Adjacent-column choices for the constrained-input move menu."""
    options = []
    for direction in (Direction.PREVIOUS, Direction.NEXT):
        target = adjacent_status(status, direction)
        if target is not None:
            options.append(MoveOption(status=target, label=STATUS_LABELS[target], direction=direction))
    return options


def _index_of(items: Sequence[Task], task: Task) -> int | None:
    return next((i for i, item in enumerate(items) if item is task), None)


class ReorderEngine:
    """Applies drop gestures to the projection and persists the new order."""

    def __init__(
        self,
        projection: LiveTaskProjection,
        store: TaskStore,
        commands: TaskCommands,
        attempts: int | None = None,
    ) -> None:
        self._projection = projection
        self._store = store
        self._commands = commands
        self._attempts = attempts or settings.write_attempts

    # ------------------------------------------------------------------
    # Drag and drop
    # ------------------------------------------------------------------

    async def drop(self, event: DropEvent) -> MoveResult:
        """Apply a drop locally, then persist it.

        Raises:
            InvalidMoveRequest: if the task id, source or target column is
                missing, or the task is not in the source column; nothing
                is changed or written in that case
        """
        task = event.task
        if task is None or not task.id:
            raise InvalidMoveRequest("Drop is missing the task id")
        if event.target_status is None or event.source_status is None:
            raise InvalidMoveRequest(f"Drop of {task.id} is missing its source or target column")

        source = self._projection.column(event.source_status)
        source_index = self._resolve_index(source, task, event.source_index)
        task = source[source_index]
        result = MoveResult(task.id, event.source_status, event.target_status)

        if event.source_status == event.target_status:
            move_item_in_list(source, source_index, event.target_index)
            logger.info(f"[Reorder] {task.id} {source_index} -> {event.target_index} in {event.target_status}")
            await self._renumber(source, result)
        else:
            target = self._projection.column(event.target_status)
            transfer_list_item(source, target, source_index, event.target_index)
            task.status = event.target_status
            task.order = _index_of(target, task)
            logger.info(f"[Reorder] {task.id} {event.source_status} -> {event.target_status} at {task.order}")
            await self._attempt(
                "status",
                [task.id],
                lambda: self._commands.update_status(task.id, event.target_status, task.order),
                result,
            )
            await self._renumber(source, result)
            await self._renumber(target, result)

        if result.failures:
            logger.warning(f"[Reorder] {len(result.failures)} write(s) for {task.id} failed; waiting for next snapshot")
        return result

    def _resolve_index(self, column: list[Task], task: Task, index: int) -> int:
        if 0 <= index < len(column) and column[index].id == task.id:
            return index
        found = next((i for i, item in enumerate(column) if item.id == task.id), None)
        if found is None:
            raise InvalidMoveRequest(f"Task {task.id} is not in the source column")
        return found

    async def _renumber(self, column: list[Task], result: MoveResult) -> None:
        writes: list[FieldWrite] = []
        for position, task in enumerate(column):
            if task.id:
                task.order = position
                writes.append((task.id, {"order": position}))
        if not writes:
            return
        result.writes.append(writes)
        await self._attempt(
            "batch",
            [task_id for task_id, _ in writes],
            lambda: self._store.batch_write(writes),
            result,
        )

    async def _attempt(
        self,
        operation: str,
        task_ids: list[str],
        call: Callable[[], Awaitable[None]],
        result: MoveResult,
    ) -> None:
        for attempt in range(1, self._attempts + 1):
            try:
                await call()
                return
            except StoreWriteFailure as e:
                logger.warning(f"[Reorder] {operation} attempt {attempt}/{self._attempts} failed for {task_ids}: {e}")
                last_error = e
        logger.error(f"[Reorder] Giving up on {operation} for {task_ids}")
        result.failures.append(last_error)

    # ------------------------------------------------------------------
    # Adjacent-column move
    # ------------------------------------------------------------------

    async def move_adjacent(self, task: Task | None, direction: Direction) -> TaskStatus:
        """Move a task one column left or right; status write only.

        Raises:
            InvalidMoveRequest: without a task id, or at the first/last column
            StoreWriteFailure: if the status write is rejected
        """
        if task is None or not task.id:
            raise InvalidMoveRequest("Move is missing the task id")
        target = adjacent_status(task.status, Direction(direction))
        if target is None:
            raise InvalidMoveRequest(f"No column {direction} of {task.status}")
        await self._commands.update_status(task.id, target)
        logger.info(f"[Reorder] {task.id} moved {direction} to {target}")
        return target
