"""Task board wiring: session -> visibility -> subscription -> projection -> search.

The board owns exactly one live subscription at a time. Whenever the
session's viewer or view mode changes, the old subscription is closed and
the projection emptied before a new one is opened with the new predicate,
so results scoped by a previous predicate are never shown again.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import date
from typing import Any

from boardsync.commands import TaskCommands
from boardsync.logging import get_logger
from boardsync.models.task import Subtask, Task, TaskDraft, TaskPatch, TaskStatus, ViewMode
from boardsync.projection import LiveTaskProjection
from boardsync.reorder import Direction, DropEvent, MoveResult, ReorderEngine
from boardsync.search import SearchFilter
from boardsync.session import SessionContext
from boardsync.store.base import Subscription, TaskStore
from boardsync.summary import BoardSummary
from boardsync.visibility import VisibilityPolicy

logger = get_logger(__name__)


class TaskBoard:
    """Entry point for a board view.

    Example:
        board = TaskBoard(store, SessionContext("u1", preferences=prefs))
        await board.open()
        board.set_search("login")
        await board.drop(DropEvent(task=t, source_status="todo", ...))
        await board.close()
    """

    def __init__(
        self,
        store: TaskStore,
        session: SessionContext,
        today: Callable[[], date] = date.today,
        write_attempts: int | None = None,
    ) -> None:
        self.store = store
        self.session = session
        self.policy = VisibilityPolicy(session)
        self.projection = LiveTaskProjection()
        self.search = SearchFilter(self.projection)
        self.commands = TaskCommands(store, session, self.projection, today=today)
        self.reorder = ReorderEngine(self.projection, store, self.commands, attempts=write_attempts)

        self._today = today
        self._subscription: Subscription | None = None
        self._generation = 0
        self._remove_listener: Callable[[], None] | None = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> TaskBoard:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    async def open(self) -> None:
        """Start the session if needed and subscribe with its predicate.

        Raises:
            StoreReadFailure: if the subscription cannot be established
        """
        if not self.session.active:
            await self.session.start()
        if self._remove_listener is None:
            self._remove_listener = self.session.add_listener(self._on_session_change)
        await self._resubscribe()

    async def close(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        async with self._lock:
            await self._close_subscription()
        logger.info("[Board] Closed")

    def on_error(self, listener: Callable[[Exception], None]) -> None:
        """Register a callback for live stream failures after the initial load."""
        self.projection.add_error_listener(listener)

    async def _on_session_change(self, session: SessionContext) -> None:
        await self._resubscribe()

    async def _resubscribe(self) -> None:
        async with self._lock:
            await self._close_subscription()
            self.projection.clear()

            self._generation += 1
            generation = self._generation
            predicate = self.policy.current()

            def on_snapshot(tasks: list[Task]) -> None:
                if generation != self._generation:
                    logger.debug(f"[Board] Ignoring snapshot from superseded {predicate} subscription")
                    return
                self.projection.apply_snapshot(tasks)

            logger.info(f"[Board] Subscribing with {predicate}")
            self._subscription = await self.store.subscribe(predicate, on_snapshot, self.projection.report_error)

    async def _close_subscription(self) -> None:
        if self._subscription is None:
            return
        subscription, self._subscription = self._subscription, None
        self._generation += 1
        await subscription.close()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def set_mode(self, mode: ViewMode) -> None:
        await self.session.set_mode(ViewMode(mode))

    async def set_viewer(self, viewer_id: str | None) -> None:
        await self.session.set_viewer(viewer_id)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def set_search(self, query: str | None) -> dict[TaskStatus, list[Task]]:
        return self.search.set_query(query)

    def visible_columns(self) -> dict[TaskStatus, list[Task]]:
        return self.search.visible()

    @property
    def no_results(self) -> bool:
        return self.search.no_results

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    async def drop(self, event: DropEvent) -> MoveResult:
        """Handle a drop whose indices refer to the displayed (filtered) lists."""
        if self.search.active and event.source_status is not None and event.target_status is not None:
            source_index = self.search.to_source_index(event.source_status, event.source_index)
            target_index = self.search.to_source_index(event.target_status, event.target_index)
            event = event.model_copy(update={"source_index": source_index, "target_index": target_index})
        return await self.reorder.drop(event)

    async def move_adjacent(self, task: Task | None, direction: Direction) -> TaskStatus:
        return await self.reorder.move_adjacent(task, direction)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_task(self, draft: TaskDraft, status: TaskStatus = TaskStatus.TODO) -> str:
        return await self.commands.create_task(draft, status)

    async def update_task(self, task_id: str, patch: TaskPatch | dict[str, Any]) -> None:
        await self.commands.update_task(task_id, patch)

    async def toggle_subtask(self, task: Task, subtask_id: str) -> Subtask:
        return await self.commands.toggle_subtask(task, subtask_id)

    async def delete_task(self, task_id: str) -> None:
        """Delete a task, closing its detail view and dropping it locally."""
        await self.commands.delete_task(task_id)
        if self.projection.detail is not None and self.projection.detail.id == task_id:
            self.projection.close_detail()
        self.projection.drop(task_id)

    # ------------------------------------------------------------------
    # Detail view and summary
    # ------------------------------------------------------------------

    def open_detail(self, task_id: str) -> Task | None:
        task = self.projection.get(task_id)
        if task is not None:
            self.projection.open_detail(task)
        return task

    def close_detail(self) -> None:
        self.projection.close_detail()

    def summary(self) -> BoardSummary:
        return BoardSummary.from_tasks(self.projection.all_tasks(), self._today())
