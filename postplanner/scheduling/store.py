"""
Persistence collaborators for post records.

The planning core never writes anything itself; it computes *what* should
be written.  This module defines the store interface the apply step and
the SlotMover talk to, plus two implementations:

- ``InMemoryPostStore``: dictionary-backed, for tests and dry runs.
- ``SupabasePostStore``: one row per record key in the ``post_days`` table.

Every store failure surfaces as :class:`~postplanner.exceptions.PersistenceError`
with the original error chained.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set

from supabase import AsyncClient, create_async_client

from postplanner.exceptions import PersistenceError
from postplanner.scheduling.models import DEFAULT_PLATFORM, Platform, PostRecord

logger = logging.getLogger(__name__)


# =============================================================================
# INTERFACES
# =============================================================================


class PostStore(Protocol):
    """One record per key; keys follow the record key scheme."""

    async def exists(self, key: str) -> bool: ...

    async def read(self, key: str) -> Optional[PostRecord]: ...

    async def write(self, key: str, record: PostRecord) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def list_records(self) -> List[PostRecord]: ...

    async def relocate(
        self,
        source_key: str,
        target_key: str,
        record: PostRecord,
        replace_keys: Sequence[str] = (),
    ) -> None:
        """Write *record* at *target_key*, drop *replace_keys* and *source_key*.

        All or nothing: on ``PersistenceError`` the store is left as it was.
        """
        ...


class CaptionGenerator(Protocol):
    """AI caption collaborator invoked once per newly written record."""

    async def generate(self, record: PostRecord) -> None: ...


def blocked_dates_for(
    records: Iterable[PostRecord],
    platform: Platform,
    default_platform: Platform = DEFAULT_PLATFORM,
) -> Set[date]:
    """
    Dates already committed for *platform*.

    Legacy records without a platform count toward *default_platform*.
    """
    blocked: Set[date] = set()
    for record in records:
        owner = record.platform or default_platform
        if owner is platform:
            blocked.add(record.date)
    return blocked


# =============================================================================
# IN-MEMORY STORE
# =============================================================================


class InMemoryPostStore:
    """Dictionary-backed store.

    Records are kept in serialized form so callers never share mutable
    state with the store.
    """

    def __init__(self, records: Optional[Iterable[PostRecord]] = None) -> None:
        self._rows: Dict[str, Dict[str, Any]] = {}
        for record in records or []:
            self._rows[record.key] = record.to_row()

    async def exists(self, key: str) -> bool:
        return key in self._rows

    async def read(self, key: str) -> Optional[PostRecord]:
        row = self._rows.get(key)
        return PostRecord.from_row(row) if row is not None else None

    async def write(self, key: str, record: PostRecord) -> None:
        self._rows[key] = record.to_row()

    async def delete(self, key: str) -> None:
        self._rows.pop(key, None)

    async def list_records(self) -> List[PostRecord]:
        return [PostRecord.from_row(self._rows[k]) for k in sorted(self._rows)]

    async def relocate(
        self,
        source_key: str,
        target_key: str,
        record: PostRecord,
        replace_keys: Sequence[str] = (),
    ) -> None:
        snapshot = dict(self._rows)
        try:
            await self.write(target_key, record)
            for key in replace_keys:
                if key != target_key:
                    await self.delete(key)
            if source_key != target_key:
                await self.delete(source_key)
        except PersistenceError:
            self._rows = snapshot
            raise

    def keys(self) -> List[str]:
        return sorted(self._rows)


# =============================================================================
# SUPABASE STORE
# =============================================================================


@dataclass
class SupabaseConfig:
    """Supabase configuration loaded from environment variables.

    Attributes:
        url: The Supabase project URL (``SUPABASE_URL``).
        key: The service-role key for full server-side access
            (``SUPABASE_SERVICE_KEY``).
    """

    url: str
    key: str

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        """Create a config instance from environment variables.

        Raises:
            ValueError: If either variable is missing or empty.
        """
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_KEY")

        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

        return cls(url=url, key=key)


class SupabasePostStore:
    """Post records in the ``post_days`` table, scoped to one workspace.

    Rows are unique on ``(workspace_id, key)``.

    **Important:** Use the :meth:`create` factory method in application
    code -- the underlying async client requires an ``await`` during
    initialisation.
    """

    TABLE = "post_days"

    def __init__(self, client: AsyncClient, workspace_id: str) -> None:
        if not workspace_id:
            raise ValueError("workspace_id is required")
        self.client = client
        self.workspace_id = workspace_id

    @classmethod
    async def create(
        cls, workspace_id: str, config: Optional[SupabaseConfig] = None
    ) -> "SupabasePostStore":
        """Factory method building the async client from *config* or the env."""
        config = config or SupabaseConfig.from_env()
        client = await create_async_client(config.url, config.key)
        return cls(client, workspace_id)

    def _query(self) -> Any:
        return self.client.table(self.TABLE)

    async def exists(self, key: str) -> bool:
        try:
            result = await (
                self._query()
                .select("key")
                .eq("workspace_id", self.workspace_id)
                .eq("key", key)
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(f"exists({key}) failed: {exc}") from exc
        return bool(result.data)

    async def read(self, key: str) -> Optional[PostRecord]:
        try:
            result = await (
                self._query()
                .select("*")
                .eq("workspace_id", self.workspace_id)
                .eq("key", key)
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(f"read({key}) failed: {exc}") from exc
        return PostRecord.from_row(result.data[0]) if result.data else None

    async def write(self, key: str, record: PostRecord) -> None:
        row = record.to_row()
        row["key"] = key
        row["workspace_id"] = self.workspace_id
        try:
            result = await (
                self._query()
                .upsert(row, on_conflict="workspace_id,key")
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(f"write({key}) failed: {exc}") from exc
        if not result.data:
            raise PersistenceError(f"write({key}) succeeded but returned no data")
        logger.debug("[STORE] Wrote %s", key)

    async def delete(self, key: str) -> None:
        try:
            await (
                self._query()
                .delete()
                .eq("workspace_id", self.workspace_id)
                .eq("key", key)
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(f"delete({key}) failed: {exc}") from exc
        logger.debug("[STORE] Deleted %s", key)

    async def list_records(self) -> List[PostRecord]:
        try:
            result = await (
                self._query()
                .select("*")
                .eq("workspace_id", self.workspace_id)
                .order("date", desc=False)
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(f"list_records failed: {exc}") from exc
        return [PostRecord.from_row(row) for row in result.data or []]

    async def relocate(
        self,
        source_key: str,
        target_key: str,
        record: PostRecord,
        replace_keys: Sequence[str] = (),
    ) -> None:
        """Move a record between keys, undoing completed steps on failure.

        The REST API has no multi-statement transaction, so the target is
        written first and every later step is compensated if one fails.
        A failure never leaves the record missing from both keys.
        """
        previous: Dict[str, Optional[PostRecord]] = {}
        for key in [target_key, *replace_keys]:
            if key not in previous:
                previous[key] = await self.read(key)

        done: List[str] = []
        try:
            await self.write(target_key, record)
            done.append(target_key)
            for key in replace_keys:
                if key != target_key:
                    await self.delete(key)
                    done.append(key)
            if source_key != target_key:
                await self.delete(source_key)
        except PersistenceError:
            await self._restore(previous, done)
            raise

    async def _restore(
        self, previous: Dict[str, Optional[PostRecord]], done: List[str]
    ) -> None:
        for key in reversed(done):
            prior = previous.get(key)
            try:
                if prior is None:
                    await self.delete(key)
                else:
                    await self.write(key, prior)
            except PersistenceError as exc:
                logger.error("[STORE] Could not restore %s after failed move: %s", key, exc)


__all__ = [
    "PostStore",
    "CaptionGenerator",
    "blocked_dates_for",
    "InMemoryPostStore",
    "SupabaseConfig",
    "SupabasePostStore",
]
