"""Board summary figures (counts per column, urgent tasks, next deadline)."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from pydantic import BaseModel, Field

from boardsync.models.task import STATUS_SEQUENCE, Priority, Task, TaskStatus

NO_DEADLINE = "No deadline"


class BoardSummary(BaseModel):
    counts: dict[TaskStatus, int] = Field(default_factory=lambda: {status: 0 for status in STATUS_SEQUENCE})
    urgent: int = 0
    total: int = 0
    overdue: int = 0
    upcoming_deadline: date | None = None

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task], today: date | None = None) -> BoardSummary:
        """Summarize a set of tasks.

        The upcoming deadline is the earliest due date of a task that is not
        done, whether or not it has already passed. ``overdue`` counts the
        open tasks due before ``today``.
        """
        today = today or date.today()
        summary = cls()
        deadlines: list[date] = []
        for task in tasks:
            summary.total += 1
            summary.counts[task.status] += 1
            if task.priority == Priority.URGENT:
                summary.urgent += 1
            if task.status == TaskStatus.DONE or task.due_date is None:
                continue
            deadlines.append(task.due_date)
            if task.due_date < today:
                summary.overdue += 1
        summary.upcoming_deadline = min(deadlines, default=None)
        return summary

    @property
    def deadline_label(self) -> str:
        """Deadline as shown on the summary page, e.g. "March 5, 2026"."""
        deadline = self.upcoming_deadline
        if deadline is None:
            return NO_DEADLINE
        return f"{deadline:%B} {deadline.day}, {deadline.year}"
