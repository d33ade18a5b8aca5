"""
Tests for postplanner.scheduling.store.

Covers:
    - blocked_dates_for(): per-platform blocking with legacy records
    - InMemoryPostStore CRUD and all-or-nothing relocate
    - SupabasePostStore.relocate() compensation on failure
    - SupabaseConfig.from_env()
    - SupabasePostStore query chains and PersistenceError wrapping
"""

from dataclasses import replace
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from postplanner.exceptions import PersistenceError
from postplanner.scheduling.models import Platform, PostRecord
from postplanner.scheduling.store import (
    InMemoryPostStore,
    SupabaseConfig,
    SupabasePostStore,
    blocked_dates_for,
)


# ===========================================================================
# blocked_dates_for()
# ===========================================================================


class TestBlockedDates:
    def test_per_platform(self):
        records = [
            PostRecord(date=date(2024, 1, 1), platform=Platform.FACEBOOK),
            PostRecord(date=date(2024, 1, 2), platform=Platform.INSTAGRAM),
            PostRecord(date=date(2024, 1, 3)),
        ]
        assert blocked_dates_for(records, Platform.FACEBOOK) == {date(2024, 1, 1), date(2024, 1, 3)}
        assert blocked_dates_for(records, Platform.INSTAGRAM) == {date(2024, 1, 2)}

    def test_legacy_follows_configured_default(self):
        records = [PostRecord(date=date(2024, 1, 3))]
        blocked = blocked_dates_for(records, Platform.INSTAGRAM, default_platform=Platform.INSTAGRAM)
        assert blocked == {date(2024, 1, 3)}


# ===========================================================================
# InMemoryPostStore
# ===========================================================================


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_crud(self, fb_record):
        store = InMemoryPostStore()
        assert not await store.exists(fb_record.key)
        await store.write(fb_record.key, fb_record)
        assert await store.exists(fb_record.key)
        assert await store.read(fb_record.key) == fb_record
        assert await store.list_records() == [fb_record]
        await store.delete(fb_record.key)
        assert await store.read(fb_record.key) is None

    @pytest.mark.asyncio
    async def test_delete_missing_is_silent(self):
        await InMemoryPostStore().delete("2024-01-01")

    @pytest.mark.asyncio
    async def test_records_are_copies(self, fb_record):
        store = InMemoryPostStore([fb_record])
        loaded = await store.read(fb_record.key)
        loaded.captions["facebook"] = "changed"
        assert (await store.read(fb_record.key)).captions["facebook"] == "Tacos tonight!"

    @pytest.mark.asyncio
    async def test_relocate(self, fb_record):
        legacy = PostRecord(date=date(2024, 3, 20))
        store = InMemoryPostStore([fb_record, legacy])
        moved = PostRecord(date=date(2024, 3, 20), platform=Platform.FACEBOOK)
        await store.relocate(fb_record.key, moved.key, moved, replace_keys=["2024-03-20"])
        assert store.keys() == ["2024-03-20-facebook"]
        assert await store.read(moved.key) == moved

    @pytest.mark.asyncio
    async def test_relocate_is_all_or_nothing(self, fb_record):
        store = InMemoryPostStore([fb_record])
        store.delete = AsyncMock(side_effect=PersistenceError("delete failed"))
        moved = PostRecord(date=date(2024, 3, 20), platform=Platform.FACEBOOK)
        with pytest.raises(PersistenceError):
            await store.relocate(fb_record.key, moved.key, moved)
        assert store.keys() == [fb_record.key]
        assert await store.read(fb_record.key) == fb_record


# ===========================================================================
# SupabaseConfig
# ===========================================================================


class TestSupabaseConfig:
    def test_missing_env(self):
        with pytest.raises(ValueError):
            SupabaseConfig.from_env()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")
        config = SupabaseConfig.from_env()
        assert config.url == "https://example.supabase.co"
        assert config.key == "service-key"


# ===========================================================================
# SupabasePostStore
# ===========================================================================


class TestSupabaseStore:
    def _store(self, client):
        return SupabasePostStore(client, workspace_id="ws-1")

    def test_requires_workspace(self, mock_supabase_client):
        with pytest.raises(ValueError):
            SupabasePostStore(mock_supabase_client, workspace_id="")

    @pytest.mark.asyncio
    async def test_create_uses_async_client(self):
        client = MagicMock()
        with patch(
            "postplanner.scheduling.store.create_async_client",
            AsyncMock(return_value=client),
        ) as factory:
            store = await SupabasePostStore.create(
                "ws-1", SupabaseConfig(url="https://example.supabase.co", key="k")
            )
        factory.assert_awaited_once_with("https://example.supabase.co", "k")
        assert store.client is client

    @pytest.mark.asyncio
    async def test_exists(self, mock_supabase_client):
        table = mock_supabase_client.table.return_value
        table.execute.return_value = MagicMock(data=[{"key": "2024-03-15-facebook"}])
        assert await self._store(mock_supabase_client).exists("2024-03-15-facebook")
        mock_supabase_client.table.assert_called_with("post_days")
        table.eq.assert_any_call("workspace_id", "ws-1")
        table.eq.assert_any_call("key", "2024-03-15-facebook")

    @pytest.mark.asyncio
    async def test_read_missing(self, mock_supabase_client):
        assert await self._store(mock_supabase_client).read("2024-03-15-facebook") is None

    @pytest.mark.asyncio
    async def test_read_row(self, mock_supabase_client, fb_record):
        table = mock_supabase_client.table.return_value
        table.execute.return_value = MagicMock(data=[fb_record.to_row()])
        assert await self._store(mock_supabase_client).read(fb_record.key) == fb_record

    @pytest.mark.asyncio
    async def test_write_upserts_with_workspace(self, mock_supabase_client, fb_record):
        table = mock_supabase_client.table.return_value
        table.execute.return_value = MagicMock(data=[{"key": fb_record.key}])
        await self._store(mock_supabase_client).write(fb_record.key, fb_record)
        row = table.upsert.call_args.args[0]
        assert row["workspace_id"] == "ws-1"
        assert row["key"] == fb_record.key
        assert table.upsert.call_args.kwargs == {"on_conflict": "workspace_id,key"}

    @pytest.mark.asyncio
    async def test_write_without_data_fails(self, mock_supabase_client, fb_record):
        with pytest.raises(PersistenceError, match="returned no data"):
            await self._store(mock_supabase_client).write(fb_record.key, fb_record)

    @pytest.mark.asyncio
    async def test_list_records(self, mock_supabase_client, fb_record):
        table = mock_supabase_client.table.return_value
        table.execute.return_value = MagicMock(data=[fb_record.to_row()])
        assert await self._store(mock_supabase_client).list_records() == [fb_record]
        table.order.assert_called_with("date", desc=False)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, args",
        [("exists", ("k",)), ("read", ("k",)), ("delete", ("k",)), ("list_records", ())],
    )
    async def test_client_errors_wrapped(self, mock_supabase_client, method, args):
        table = mock_supabase_client.table.return_value
        table.execute.side_effect = ConnectionError("network down")
        with pytest.raises(PersistenceError) as exc_info:
            await getattr(self._store(mock_supabase_client), method)(*args)
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_relocate_undoes_target_write(self, mock_supabase_client, fb_record):
        store = self._store(mock_supabase_client)
        store.read = AsyncMock(return_value=None)
        store.write = AsyncMock()
        store.delete = AsyncMock(side_effect=[PersistenceError("delete failed"), None])
        moved = PostRecord(date=date(2024, 3, 20), platform=Platform.FACEBOOK)

        with pytest.raises(PersistenceError):
            await store.relocate(fb_record.key, moved.key, moved)

        store.write.assert_awaited_once_with(moved.key, moved)
        assert [c.args[0] for c in store.delete.await_args_list] == [fb_record.key, moved.key]

    @pytest.mark.asyncio
    async def test_relocate_restores_replaced_rows(self, mock_supabase_client, fb_record):
        store = self._store(mock_supabase_client)
        occupant = PostRecord(date=date(2024, 3, 20), platform=Platform.FACEBOOK, starter_text="Existing")
        legacy = PostRecord(date=date(2024, 3, 20), starter_text="Legacy")
        store.read = AsyncMock(side_effect=[occupant, legacy])
        store.write = AsyncMock()
        store.delete = AsyncMock(side_effect=[None, PersistenceError("delete failed")])
        moved = replace(occupant, starter_text=fb_record.starter_text)

        with pytest.raises(PersistenceError):
            await store.relocate(
                fb_record.key, occupant.key, moved, replace_keys=[occupant.key, legacy.key]
            )

        assert [c.args for c in store.write.await_args_list] == [
            (occupant.key, moved),
            (legacy.key, legacy),
            (occupant.key, occupant),
        ]
