"""Tests for BoardSummary."""

from datetime import date

from boardsync.models.task import Priority, Task, TaskStatus
from boardsync.summary import NO_DEADLINE, BoardSummary


def test_counts(sample_tasks):
    summary = BoardSummary.from_tasks(sample_tasks, date(2026, 3, 1))

    assert summary.total == 5
    assert summary.counts[TaskStatus.TODO] == 3
    assert summary.counts[TaskStatus.IN_PROGRESS] == 1
    assert summary.counts[TaskStatus.AWAIT_FEEDBACK] == 0
    assert summary.counts[TaskStatus.DONE] == 1
    assert summary.urgent == 1


def test_upcoming_deadline_ignores_done_tasks(sample_tasks):
    summary = BoardSummary.from_tasks(sample_tasks, date(2026, 3, 1))

    assert summary.upcoming_deadline == date(2026, 3, 5)
    assert summary.deadline_label == "March 5, 2026"


def test_overdue_open_tasks():
    tasks = [
        Task(title="Late", due_date=date(2026, 2, 20)),
        Task(title="Late but done", due_date=date(2026, 2, 20), status=TaskStatus.DONE),
        Task(title="Soon", due_date=date(2026, 3, 2), priority=Priority.URGENT),
    ]

    summary = BoardSummary.from_tasks(tasks, date(2026, 3, 1))

    assert summary.overdue == 1
    assert summary.upcoming_deadline == date(2026, 2, 20)


def test_no_deadline():
    summary = BoardSummary.from_tasks([Task(title="Someday")], date(2026, 3, 1))

    assert summary.upcoming_deadline is None
    assert summary.deadline_label == NO_DEADLINE
