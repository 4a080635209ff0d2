"""Live per-status projection of the subscribed task snapshot."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from boardsync.logging import get_logger
from boardsync.models.task import STATUS_SEQUENCE, Task, TaskStatus

logger = get_logger(__name__)

ProjectionListener = Callable[["LiveTaskProjection"], None]
ErrorListener = Callable[[Exception], None]


class LiveTaskProjection:
    """Four ordered task lists, one per status, rebuilt from each snapshot.

    Lists are replaced wholesale on every snapshot and sorted by ``order``
    only (stable, so ties keep the store's delivery order). Besides snapshot
    replacement, the lists are only edited in place by the reorder engine.
    """

    def __init__(self) -> None:
        self.columns: dict[TaskStatus, list[Task]] = {status: [] for status in STATUS_SEQUENCE}
        self.detail: Task | None = None
        self._listeners: list[ProjectionListener] = []
        self._error_listeners: list[ErrorListener] = []

    def add_listener(self, listener: ProjectionListener) -> None:
        self._listeners.append(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    # ------------------------------------------------------------------
    # Snapshot handling
    # ------------------------------------------------------------------

    def apply_snapshot(self, tasks: Iterable[Task]) -> None:
        """Replace every column from a complete result set."""
        partitions: dict[TaskStatus, list[Task]] = {status: [] for status in STATUS_SEQUENCE}
        latest: dict[str, Task] = {}
        for task in tasks:
            partitions[task.status].append(task)
            if task.id is not None:
                latest[task.id] = task

        for status in STATUS_SEQUENCE:
            partitions[status].sort(key=lambda task: task.sort_key)
        self.columns = partitions

        if self.detail is not None and self.detail.id in latest:
            self.detail = latest[self.detail.id]

        logger.debug(f"[Sync] Snapshot applied ({self.counts()})")
        self._changed()

    def report_error(self, error: Exception) -> None:
        """Pass a subscription failure upward; no retry happens here."""
        logger.error(f"[Sync] Live task stream failed: {error}")
        for listener in list(self._error_listeners):
            listener(error)

    def clear(self) -> None:
        self.columns = {status: [] for status in STATUS_SEQUENCE}
        self._changed()

    def drop(self, task_id: str) -> None:
        """Remove a deleted task locally ahead of the next snapshot."""
        for column in self.columns.values():
            column[:] = [task for task in column if task.id != task_id]
        self._changed()

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def column(self, status: TaskStatus) -> list[Task]:
        return self.columns[status]

    def all_tasks(self) -> list[Task]:
        return [task for status in STATUS_SEQUENCE for task in self.columns[status]]

    def locate(self, task_id: str) -> tuple[TaskStatus, int] | None:
        for status in STATUS_SEQUENCE:
            for index, task in enumerate(self.columns[status]):
                if task.id == task_id:
                    return status, index
        return None

    def get(self, task_id: str) -> Task | None:
        found = self.locate(task_id)
        if found is None:
            return None
        status, index = found
        return self.columns[status][index]

    def counts(self) -> dict[str, int]:
        return {status.value: len(self.columns[status]) for status in STATUS_SEQUENCE}

    def next_order(self, status: TaskStatus) -> int:
        """Order value that appends to the end of a status group."""
        return max((task.sort_key for task in self.columns[status]), default=-1) + 1

    # ------------------------------------------------------------------
    # Detail view
    # ------------------------------------------------------------------

    def open_detail(self, task: Task) -> None:
        self.detail = task

    def close_detail(self) -> None:
        self.detail = None
