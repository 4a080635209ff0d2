"""Store interfaces consumed by the board, and the live-query subscription handle."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from boardsync.logging import get_logger
from boardsync.models.task import BoardSettings, Task
from boardsync.visibility import VisibilityPredicate

logger = get_logger(__name__)

SnapshotCallback = Callable[[list[Task]], None]
ErrorCallback = Callable[[Exception], None]
FieldWrite = tuple[str, dict[str, Any]]


class Subscription:
    """Cancellable live query.

    The store calls ``deliver`` with every complete result set and ``fail``
    when a snapshot cannot be produced. After ``close`` neither reaches the
    callbacks, so a torn-down subscription never leaks results.
    """

    def __init__(
        self,
        predicate: VisibilityPredicate,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
        on_close: Callable[[Subscription], Awaitable[None]] | None = None,
    ) -> None:
        self.predicate = predicate
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, tasks: list[Task]) -> None:
        if self._closed:
            logger.debug(f"[Store] Dropping snapshot for closed subscription ({self.predicate})")
            return
        self._on_snapshot(tasks)

    def fail(self, error: Exception) -> None:
        if self._closed:
            return
        logger.error(f"[Store] Subscription {self.predicate} failed: {error}")
        if self._on_error is not None:
            self._on_error(error)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            await self._on_close(self)
        logger.debug(f"[Store] Subscription {self.predicate} closed")


class TaskStore(Protocol):
    """Document collection of tasks with a full-snapshot live query.

    Write methods return on success and raise ``StoreWriteFailure``
    otherwise; ``subscribe`` raises ``StoreReadFailure`` when the query
    cannot be established.
    """

    async def subscribe(
        self,
        predicate: VisibilityPredicate,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription: ...

    async def create(self, record: dict[str, Any]) -> str: ...

    async def update_fields(self, task_id: str, fields: dict[str, Any]) -> None: ...

    async def delete(self, task_id: str) -> None: ...

    async def batch_write(self, writes: Sequence[FieldWrite]) -> None: ...


class ViewModeStore(Protocol):
    """Per-viewer persistence of the board view mode."""

    async def load_settings(self, user_id: str) -> BoardSettings | None: ...

    async def save_settings(self, board_settings: BoardSettings) -> None: ...
