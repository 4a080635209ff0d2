"""In-process task store.

Behaves like the remote store as far as the board can tell: writes are
validated against the task schema, every write pushes a complete snapshot
to each open subscription, and batch writes are all-or-nothing.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from boardsync.exceptions import StoreWriteFailure
from boardsync.logging import get_logger
from boardsync.models.task import BoardSettings, Task
from boardsync.store.base import ErrorCallback, FieldWrite, SnapshotCallback, Subscription
from boardsync.visibility import VisibilityPredicate

logger = get_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryTaskStore:
    """Dict-backed TaskStore."""

    def __init__(self, records: dict[str, dict[str, Any]] | None = None) -> None:
        self._records: dict[str, dict[str, Any]] = dict(records or {})
        self._subscriptions: list[Subscription] = []

    # ------------------------------------------------------------------
    # Live query
    # ------------------------------------------------------------------

    async def subscribe(
        self,
        predicate: VisibilityPredicate,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        subscription = Subscription(predicate, on_snapshot, on_error, on_close=self._detach)
        self._subscriptions.append(subscription)
        logger.debug(f"[Store] Subscribed {predicate} (active={len(self._subscriptions)})")
        subscription.deliver(self.snapshot(predicate))
        return subscription

    async def _detach(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def snapshot(self, predicate: VisibilityPredicate) -> list[Task]:
        """Fresh copies of every matching task, in insertion order."""
        tasks = (Task.model_validate({**record, "id": task_id}) for task_id, record in self._records.items())
        return [task for task in tasks if predicate.matches(task)]

    def _broadcast(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.deliver(self.snapshot(subscription.predicate))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def get(self, task_id: str) -> dict[str, Any] | None:
        record = self._records.get(task_id)
        return dict(record) if record is not None else None

    def _merged(self, operation: str, task_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        if task_id not in self._records:
            raise StoreWriteFailure(operation, [task_id], "no such task")
        merged = {**self._records[task_id], **fields, "updated_at": _now()}
        try:
            Task.model_validate({**merged, "id": task_id})
        except ValidationError as e:
            raise StoreWriteFailure(operation, [task_id], str(e)) from e
        return merged

    async def create(self, record: dict[str, Any]) -> str:
        task_id = uuid4().hex
        now = _now()
        document = {**record, "created_at": now, "updated_at": now}
        try:
            Task.model_validate({**document, "id": task_id})
        except ValidationError as e:
            raise StoreWriteFailure("create", message=str(e)) from e
        self._records[task_id] = document
        self._broadcast()
        return task_id

    async def update_fields(self, task_id: str, fields: dict[str, Any]) -> None:
        self._records[task_id] = self._merged("update", task_id, fields)
        self._broadcast()

    async def delete(self, task_id: str) -> None:
        if self._records.pop(task_id, None) is not None:
            self._broadcast()

    async def batch_write(self, writes: Sequence[FieldWrite]) -> None:
        staged = {task_id: self._merged("batch", task_id, fields) for task_id, fields in writes}
        self._records.update(staged)
        self._broadcast()


class InMemoryViewModeStore:
    """Dict-backed ViewModeStore."""

    def __init__(self) -> None:
        self._settings: dict[str, BoardSettings] = {}

    async def load_settings(self, user_id: str) -> BoardSettings | None:
        return self._settings.get(user_id)

    async def save_settings(self, board_settings: BoardSettings) -> None:
        self._settings[board_settings.user_id] = board_settings
