"""Text search over the live projection."""

from __future__ import annotations

from collections.abc import Mapping

from boardsync.models.task import STATUS_SEQUENCE, Task, TaskStatus
from boardsync.projection import LiveTaskProjection


def normalize_query(query: str | None) -> str:
    return (query or "").strip().casefold()


def filter_columns(
    columns: Mapping[TaskStatus, list[Task]],
    query: str,
) -> dict[TaskStatus, list[Task]]:
    """Keep tasks whose title or description contains ``query``.

    An empty query passes every column through. Surviving tasks keep their
    relative order.
    """
    needle = normalize_query(query)
    if not needle:
        return {status: list(columns[status]) for status in STATUS_SEQUENCE}
    return {
        status: [task for task in columns[status] if task.matches(needle)]
        for status in STATUS_SEQUENCE
    }


class SearchFilter:
    """Displayed subset of the projection for the current query.

    Only the query string is kept; the visible columns are re-derived from
    the projection on every call.
    """

    def __init__(self, projection: LiveTaskProjection) -> None:
        self._projection = projection
        self.query = ""

    def set_query(self, query: str | None) -> dict[TaskStatus, list[Task]]:
        self.query = normalize_query(query)
        return self.visible()

    @property
    def active(self) -> bool:
        return bool(self.query)

    def visible(self) -> dict[TaskStatus, list[Task]]:
        return filter_columns(self._projection.columns, self.query)

    @property
    def no_results(self) -> bool:
        """True when a non-empty query matches nothing in any column."""
        if not self.query:
            return False
        return not any(task.matches(self.query) for task in self._projection.all_tasks())

    def to_source_index(self, status: TaskStatus, display_index: int) -> int:
        """Map an index in the filtered column onto the full column.

        Positions past the last visible task map to just after it.
        """
        full = self._projection.column(status)
        if not self.query:
            return display_index
        visible = self.visible()[status]
        if not visible:
            return len(full)
        if display_index < len(visible):
            anchor, offset = visible[max(display_index, 0)], 0
        else:
            anchor, offset = visible[-1], 1
        position = next(i for i, task in enumerate(full) if task is anchor)
        return position + offset
