"""Supabase-backed task store.

Reads and writes go through PostgREST. Change notification comes from a
Realtime ``postgres_changes`` channel on the tasks table; every event
triggers a re-query with the subscription's visibility predicate, so
subscribers always receive complete result sets rather than row deltas.
Batch writes call a Postgres function that applies all updates in one
transaction (see supabase/migrations).
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from supabase._async.client import AsyncClient
from supabase._async.client import create_client as create_async_client

from boardsync.exceptions import StoreReadFailure, StoreWriteFailure
from boardsync.logging import get_logger
from boardsync.models.task import BoardSettings, Task
from boardsync.settings import settings
from boardsync.store.base import ErrorCallback, FieldWrite, SnapshotCallback, Subscription
from boardsync.visibility import VisibilityPredicate

logger = get_logger(__name__)

PUBLIC_FILTER = "is_private.is.null,is_private.eq.false"


async def create_store_client() -> AsyncClient:
    """Create async Supabase client for queries and Realtime."""
    url = settings.supabase_url
    key = settings.supabase_service_role_key or settings.supabase_anon_key

    if not url or not key:
        raise StoreReadFailure("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY/SUPABASE_ANON_KEY")

    return await create_async_client(url, key)


class _SnapshotRefresher:
    """Serializes queries for one subscription.

    The initial load and every Realtime event go through the same loop, so
    snapshots are delivered in query order. Events that arrive while a query
    is in flight collapse into a single follow-up query. A failed initial
    load is kept in ``error`` for the caller; later failures go to the
    subscription's error callback.
    """

    def __init__(self, store: SupabaseTaskStore, subscription: Subscription) -> None:
        self._store = store
        self._subscription = subscription
        self._pending = False
        self._task: asyncio.Task[None] | None = None
        self.loaded = False
        self.error: StoreReadFailure | None = None

    def request(self, payload: dict[str, Any] | None = None) -> None:
        if self._subscription.closed:
            return
        logger.debug(f"[Sync] Change event {(payload or {}).get('eventType', '?')}, refreshing {self._subscription.predicate}")
        self._pending = True
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self._run())

    async def idle(self) -> None:
        """Wait until no query is pending or in flight."""
        while self._task is not None and not self._task.done():
            await self._task

    async def _run(self) -> None:
        while self._pending and not self._subscription.closed:
            self._pending = False
            try:
                tasks = await self._store.fetch(self._subscription.predicate)
            except StoreReadFailure as e:
                if self.loaded:
                    self._subscription.fail(e)
                else:
                    self.error = e
                continue
            self.loaded = True
            self.error = None
            self._subscription.deliver(tasks)

    async def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task


class SupabaseTaskStore:
    """TaskStore over a Supabase project."""

    def __init__(
        self,
        client: AsyncClient,
        table: str | None = None,
        batch_function: str | None = None,
        schema: str | None = None,
    ) -> None:
        self.client = client
        self.table = table or settings.tasks_table
        self.batch_function = batch_function or settings.batch_update_function
        self.schema = schema or settings.realtime_schema

    @classmethod
    async def connect(cls) -> SupabaseTaskStore:
        return cls(await create_store_client())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _scoped_query(self, predicate: VisibilityPredicate) -> Any:
        query = self.client.table(self.table).select("*")
        if predicate.private:
            query = query.eq("is_private", True).eq("owner_id", predicate.owner_id)
        else:
            query = query.or_(PUBLIC_FILTER)
        return query.order("created_at")

    async def fetch(self, predicate: VisibilityPredicate) -> list[Task]:
        """Load the complete result set for a predicate."""
        try:
            response = await self._scoped_query(predicate).execute()
            return [Task.model_validate({**row, "id": str(row["id"])}) for row in response.data or []]
        except Exception as e:
            logger.error(f"[Store] Query {predicate} failed: {e}")
            raise StoreReadFailure(f"Could not load tasks for {predicate}: {e}") from e

    async def subscribe(
        self,
        predicate: VisibilityPredicate,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Join a Realtime channel, then deliver the initial result set.

        The channel is joined before the first query so that no change made
        during setup is missed.

        Raises:
            StoreReadFailure: if the channel cannot be joined or the initial
                query fails
        """
        channel = self.client.channel(f"board-{uuid4().hex[:12]}")
        refresher: _SnapshotRefresher | None = None

        async def teardown(_: Subscription) -> None:
            if refresher is not None:
                await refresher.cancel()
            try:
                await self.client.remove_channel(channel)
            except Exception as e:
                logger.warning(f"[Store] Failed to remove Realtime channel: {e}")

        subscription = Subscription(predicate, on_snapshot, on_error, on_close=teardown)
        refresher = _SnapshotRefresher(self, subscription)

        channel.on_postgres_changes(
            event="*",
            schema=self.schema,
            table=self.table,
            callback=refresher.request,
        )
        try:
            await channel.subscribe()
        except Exception as e:
            logger.error(f"[Store] Realtime subscribe failed: {e}")
            await subscription.close()
            raise StoreReadFailure(f"Could not subscribe to {self.table}: {e}") from e

        refresher.request()
        await refresher.idle()
        if not refresher.loaded:
            await subscription.close()
            raise refresher.error or StoreReadFailure(f"Could not load tasks for {predicate}")

        logger.info(f"[Store] Subscribed to Realtime for {predicate}")
        return subscription

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, record: dict[str, Any]) -> str:
        try:
            response = await self.client.table(self.table).insert(record).execute()
        except Exception as e:
            raise StoreWriteFailure("create", message=str(e)) from e
        if not response.data:
            raise StoreWriteFailure("create", message="insert returned no data")
        return str(response.data[0]["id"])

    async def update_fields(self, task_id: str, fields: dict[str, Any]) -> None:
        payload = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
        try:
            response = await self.client.table(self.table).update(payload).eq("id", task_id).execute()
        except Exception as e:
            raise StoreWriteFailure("update", [task_id], str(e)) from e
        if not response.data:
            raise StoreWriteFailure("update", [task_id], "no such task")

    async def delete(self, task_id: str) -> None:
        try:
            await self.client.table(self.table).delete().eq("id", task_id).execute()
        except Exception as e:
            raise StoreWriteFailure("delete", [task_id], str(e)) from e

    async def batch_write(self, writes: Sequence[FieldWrite]) -> None:
        updates = [{"id": task_id, "fields": fields} for task_id, fields in writes]
        try:
            await self.client.rpc(self.batch_function, {"updates": updates}).execute()
        except Exception as e:
            raise StoreWriteFailure("batch", [task_id for task_id, _ in writes], str(e)) from e


class SupabaseViewModeStore:
    """ViewModeStore over the board_settings table."""

    def __init__(self, client: AsyncClient, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.settings_table

    async def load_settings(self, user_id: str) -> BoardSettings | None:
        try:
            response = await self.client.table(self.table).select("*").eq("user_id", user_id).limit(1).execute()
        except Exception as e:
            raise StoreReadFailure(f"Could not load board settings for {user_id}: {e}") from e
        if not response.data:
            return None
        return BoardSettings.model_validate(response.data[0])

    async def save_settings(self, board_settings: BoardSettings) -> None:
        try:
            await (
                self.client.table(self.table)
                .upsert(board_settings.model_dump(mode="json"), on_conflict="user_id")
                .execute()
            )
        except Exception as e:
            raise StoreWriteFailure("save_settings", message=str(e)) from e
