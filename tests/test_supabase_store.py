"""Tests for the Supabase store against a mocked async client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from boardsync.exceptions import StoreReadFailure, StoreWriteFailure
from boardsync.models.task import BoardSettings, ViewMode
from boardsync.store.supabase import (
    PUBLIC_FILTER,
    SupabaseTaskStore,
    SupabaseViewModeStore,
    create_store_client,
)
from boardsync.visibility import PUBLIC, VisibilityPredicate

ROWS = [
    {"id": 1, "title": "First", "status": "todo", "order": 0, "is_private": None, "owner_id": "guest"},
    {"id": 2, "title": "Second", "status": "done", "order": 0, "is_private": False, "owner_id": "u1"},
]


@pytest.fixture
def query():
    """PostgREST query builder double; every builder call returns itself."""
    builder = MagicMock()
    for method in ("select", "eq", "or_", "order", "insert", "update", "delete", "upsert", "limit"):
        getattr(builder, method).return_value = builder
    builder.execute = AsyncMock(return_value=MagicMock(data=ROWS))
    return builder


@pytest.fixture
def channel():
    mock = MagicMock()
    mock.subscribe = AsyncMock()
    return mock


@pytest.fixture
def client(query, channel):
    mock = MagicMock()
    mock.table.return_value = query
    mock.channel.return_value = channel
    mock.remove_channel = AsyncMock()
    mock.rpc.return_value.execute = AsyncMock()
    return mock


@pytest.fixture
def store(client) -> SupabaseTaskStore:
    return SupabaseTaskStore(client, table="tasks", batch_function="batch_update_tasks", schema="public")


class TestFetch:
    @pytest.mark.asyncio
    async def test_public_predicate_treats_null_as_public(self, store, client, query):
        tasks = await store.fetch(PUBLIC)

        client.table.assert_called_with("tasks")
        query.or_.assert_called_once_with(PUBLIC_FILTER)
        query.eq.assert_not_called()
        query.order.assert_called_once_with("created_at")
        assert [task.id for task in tasks] == ["1", "2"]
        assert tasks[0].is_private is False

    @pytest.mark.asyncio
    async def test_private_predicate_filters_owner(self, store, query):
        await store.fetch(VisibilityPredicate(owner_id="u1"))

        query.eq.assert_any_call("is_private", True)
        query.eq.assert_any_call("owner_id", "u1")
        query.or_.assert_not_called()

    @pytest.mark.asyncio
    async def test_query_error_becomes_read_failure(self, store, query):
        query.execute.side_effect = RuntimeError("missing index")

        with pytest.raises(StoreReadFailure):
            await store.fetch(PUBLIC)


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_delivers_initial_snapshot_and_listens(self, store, client, channel):
        on_snapshot = MagicMock()

        subscription = await store.subscribe(PUBLIC, on_snapshot)

        on_snapshot.assert_called_once()
        assert len(on_snapshot.call_args.args[0]) == 2
        kwargs = channel.on_postgres_changes.call_args.kwargs
        assert kwargs["event"] == "*"
        assert kwargs["schema"] == "public"
        assert kwargs["table"] == "tasks"
        channel.subscribe.assert_awaited_once()
        assert not subscription.closed

    @pytest.mark.asyncio
    async def test_change_event_triggers_full_refetch(self, store, channel, query):
        on_snapshot = MagicMock()
        await store.subscribe(PUBLIC, on_snapshot)
        callback = channel.on_postgres_changes.call_args.kwargs["callback"]

        query.execute.return_value = MagicMock(data=ROWS[:1])
        callback({"eventType": "UPDATE"})
        callback({"eventType": "UPDATE"})
        for _ in range(3):
            await asyncio.sleep(0)

        assert on_snapshot.call_count == 2
        assert [task.id for task in on_snapshot.call_args.args[0]] == ["1"]

    @pytest.mark.asyncio
    async def test_refetch_failure_reported(self, store, channel, query):
        on_error = MagicMock()
        await store.subscribe(PUBLIC, MagicMock(), on_error)
        callback = channel.on_postgres_changes.call_args.kwargs["callback"]

        query.execute.side_effect = RuntimeError("connection reset")
        callback({"eventType": "INSERT"})
        for _ in range(3):
            await asyncio.sleep(0)

        on_error.assert_called_once()
        assert isinstance(on_error.call_args.args[0], StoreReadFailure)

    @pytest.mark.asyncio
    async def test_close_removes_channel_and_stops_delivery(self, store, client, channel):
        on_snapshot = MagicMock()
        subscription = await store.subscribe(PUBLIC, on_snapshot)
        callback = channel.on_postgres_changes.call_args.kwargs["callback"]

        await subscription.close()
        callback({"eventType": "DELETE"})
        await asyncio.sleep(0)

        client.remove_channel.assert_awaited_once_with(channel)
        assert on_snapshot.call_count == 1

    @pytest.mark.asyncio
    async def test_channel_failure_becomes_read_failure(self, store, channel):
        channel.subscribe.side_effect = RuntimeError("realtime unavailable")

        with pytest.raises(StoreReadFailure):
            await store.subscribe(PUBLIC, MagicMock())

    @pytest.mark.asyncio
    async def test_change_during_join_is_not_overwritten_by_initial_load(self, store, channel, query):
        db = [ROWS[0]]
        query.execute = AsyncMock(side_effect=lambda: MagicMock(data=list(db)))

        async def join():
            db.append(ROWS[1])
            channel.on_postgres_changes.call_args.kwargs["callback"]({"eventType": "INSERT"})
            for _ in range(3):
                await asyncio.sleep(0)

        channel.subscribe.side_effect = join
        on_snapshot = MagicMock()

        await store.subscribe(PUBLIC, on_snapshot)
        for _ in range(3):
            await asyncio.sleep(0)

        delivered = [[task.id for task in call.args[0]] for call in on_snapshot.call_args_list]
        assert delivered
        assert all(ids == ["1", "2"] for ids in delivered)

    @pytest.mark.asyncio
    async def test_initial_load_failure_raises_and_removes_channel(self, store, client, channel, query):
        query.execute.side_effect = RuntimeError("statement timeout")
        on_error = MagicMock()

        with pytest.raises(StoreReadFailure):
            await store.subscribe(PUBLIC, MagicMock(), on_error)

        channel.subscribe.assert_awaited_once()
        client.remove_channel.assert_awaited_once_with(channel)
        on_error.assert_not_called()


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_returns_string_id(self, store, query):
        query.execute.return_value = MagicMock(data=[{"id": 42}])

        assert await store.create({"title": "New"}) == "42"
        query.insert.assert_called_once_with({"title": "New"})

    @pytest.mark.asyncio
    async def test_update_stamps_updated_at(self, store, query):
        await store.update_fields("1", {"status": "done"})

        payload = query.update.call_args.args[0]
        assert payload["status"] == "done"
        assert "updated_at" in payload
        query.eq.assert_called_with("id", "1")

    @pytest.mark.asyncio
    async def test_update_of_missing_row_fails(self, store, query):
        query.execute.return_value = MagicMock(data=[])

        with pytest.raises(StoreWriteFailure) as exc_info:
            await store.update_fields("9", {"order": 1})
        assert exc_info.value.task_ids == ["9"]

    @pytest.mark.asyncio
    async def test_delete(self, store, query):
        await store.delete("1")
        query.delete.assert_called_once()
        query.eq.assert_called_with("id", "1")

    @pytest.mark.asyncio
    async def test_batch_write_is_one_rpc(self, store, client):
        await store.batch_write([("1", {"order": 0}), ("2", {"order": 1})])

        client.rpc.assert_called_once_with(
            "batch_update_tasks",
            {"updates": [{"id": "1", "fields": {"order": 0}}, {"id": "2", "fields": {"order": 1}}]},
        )

    @pytest.mark.asyncio
    async def test_batch_failure_names_all_tasks(self, store, client):
        client.rpc.return_value.execute.side_effect = RuntimeError("task 2 missing")

        with pytest.raises(StoreWriteFailure) as exc_info:
            await store.batch_write([("1", {"order": 0}), ("2", {"order": 1})])
        assert exc_info.value.task_ids == ["1", "2"]


class TestViewModeStore:
    @pytest.mark.asyncio
    async def test_load(self, client, query):
        query.execute.return_value = MagicMock(data=[{"user_id": "u1", "view_mode": "private"}])

        loaded = await SupabaseViewModeStore(client, table="board_settings").load_settings("u1")

        assert loaded.view_mode == ViewMode.PRIVATE
        query.eq.assert_called_with("user_id", "u1")

    @pytest.mark.asyncio
    async def test_load_missing(self, client, query):
        query.execute.return_value = MagicMock(data=[])
        assert await SupabaseViewModeStore(client).load_settings("u1") is None

    @pytest.mark.asyncio
    async def test_save_upserts_by_user(self, client, query):
        await SupabaseViewModeStore(client).save_settings(BoardSettings(user_id="u1", view_mode=ViewMode.PRIVATE))

        row = query.upsert.call_args.args[0]
        assert row["view_mode"] == "private"
        assert query.upsert.call_args.kwargs["on_conflict"] == "user_id"


@pytest.mark.asyncio
async def test_client_requires_url_and_key():
    with patch("boardsync.store.supabase.settings") as mock_settings:
        mock_settings.supabase_url = None
        mock_settings.supabase_service_role_key = None
        mock_settings.supabase_anon_key = None

        with pytest.raises(StoreReadFailure):
            await create_store_client()


@pytest.mark.asyncio
async def test_client_created_from_settings():
    with (
        patch("boardsync.store.supabase.settings") as mock_settings,
        patch("boardsync.store.supabase.create_async_client", new_callable=AsyncMock) as mock_create,
    ):
        mock_settings.supabase_url = "https://example.supabase.co"
        mock_settings.supabase_service_role_key = None
        mock_settings.supabase_anon_key = "anon"

        await create_store_client()

        mock_create.assert_awaited_once_with("https://example.supabase.co", "anon")
