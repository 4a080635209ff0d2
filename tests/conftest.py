"""
Shared pytest fixtures for the board tests.

This module provides fixtures for:
- Sample tasks with fixed ids
- In-memory task and view-mode stores
- Session contexts (signed-in viewer and guest)
- An opened TaskBoard wired to the in-memory store
"""

from collections.abc import Callable
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from boardsync.board import TaskBoard
from boardsync.models.task import Task, TaskStatus
from boardsync.session import SessionContext
from boardsync.store.memory import InMemoryTaskStore, InMemoryViewModeStore

TODAY = date(2026, 3, 1)


# =============================================================================
# Task Fixtures
# =============================================================================


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks with an id; extra keyword arguments become fields."""

    def _make(task_id: str, status: TaskStatus = TaskStatus.TODO, order: int | None = None, **fields) -> Task:
        fields.setdefault("title", task_id.upper())
        fields.setdefault("category", "User Story")
        return Task(id=task_id, status=status, order=order, **fields)

    return _make


@pytest.fixture
def sample_tasks(make_task) -> list[Task]:
    """Public board: two todo, one in progress, one done (plus a private task of alice)."""
    return [
        make_task("a", TaskStatus.TODO, 0, title="Write login page", priority="urgent", due_date=date(2026, 3, 10)),
        make_task("b", TaskStatus.TODO, 1, title="Fix footer", description="Links are broken"),
        make_task("c", TaskStatus.IN_PROGRESS, 0, title="Login API", due_date=date(2026, 3, 5)),
        make_task("d", TaskStatus.DONE, 0, title="Setup repo", due_date=date(2026, 2, 1)),
        make_task("p", TaskStatus.TODO, 0, title="Alice private", is_private=True, owner_id="alice"),
    ]


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def make_store() -> Callable[..., InMemoryTaskStore]:
    """Build an in-memory store holding the given tasks under their ids."""

    def _make(*tasks: Task) -> InMemoryTaskStore:
        return InMemoryTaskStore({task.id: task.to_record() for task in tasks})

    return _make


@pytest.fixture
def store(make_store, sample_tasks) -> InMemoryTaskStore:
    return make_store(*sample_tasks)


@pytest.fixture
def preferences() -> InMemoryViewModeStore:
    return InMemoryViewModeStore()


@pytest.fixture
def mock_store() -> MagicMock:
    """TaskStore double whose writes all succeed."""
    mock = MagicMock()
    mock.subscribe = AsyncMock()
    mock.create = AsyncMock(return_value="new-id")
    mock.update_fields = AsyncMock(return_value=None)
    mock.delete = AsyncMock(return_value=None)
    mock.batch_write = AsyncMock(return_value=None)
    return mock


# =============================================================================
# Session / Board Fixtures
# =============================================================================


@pytest.fixture
def session(preferences) -> SessionContext:
    return SessionContext("alice", preferences=preferences)


@pytest.fixture
def guest_session() -> SessionContext:
    return SessionContext()


@pytest_asyncio.fixture
async def board(store, session):
    """Opened board for alice in public mode."""
    board = TaskBoard(store, session, today=lambda: TODAY)
    await board.open()
    yield board
    await board.close()
