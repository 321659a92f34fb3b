"""
TTL cache shared by the rate providers.

`RateCache` is built once at startup and handed to every provider, so tests can give each
provider set an isolated instance. Two backing stores:

- `MemoryCacheStore`: process-local dict, value objects are returned as stored.
- `SqlCacheStore`: `rate_cache_entries` table, values must be JSON-serializable. Survives
  restarts, which matters for the historical series (a past year never changes).

No locking: concurrent misses on one key may all fetch upstream and the last write wins.
SQL writes are upserts, so overlapping writes to one key never hit the unique constraint.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

import anyio.to_thread
from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fxconvert.models.rate_cache import RateCacheEntry

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

# Dialects with INSERT ... ON CONFLICT DO UPDATE; others take the portable path.
_UPSERT_INSERTS = {"sqlite": sqlite_insert, "postgresql": postgresql_insert}


def now_ms() -> int:
    return time.time_ns() // 1_000_000


class CacheStore(Protocol):
    async def read(self, key: str) -> tuple[Any, int] | None: ...

    async def write(self, key: str, value: Any, expires_at: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryCacheStore:
    def __init__(self) -> None:
        self._entries: dict[str, tuple[Any, int]] = {}

    async def read(self, key: str) -> tuple[Any, int] | None:
        return self._entries.get(key)

    async def write(self, key: str, value: Any, expires_at: int) -> None:
        self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class SqlCacheStore:
    """Cache rows in the database; blocking session work runs in a worker thread."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def _read(self, key: str) -> tuple[Any, int] | None:
        db = self._session_factory()
        try:
            row = db.query(RateCacheEntry).filter(RateCacheEntry.key == key).first()
            if row is None:
                return None
            return row.value, int(row.expires_at)
        finally:
            db.close()

    def _write(self, key: str, value: Any, expires_at: int) -> None:
        db = self._session_factory()
        try:
            insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
            if insert is None:
                self._write_portable(db, key, value, expires_at)
                return
            stmt = insert(RateCacheEntry.__table__).values(key=key, value=value, expires_at=expires_at)
            stmt = stmt.on_conflict_do_update(
                index_elements=[RateCacheEntry.__table__.c.key],
                set_={
                    "value": stmt.excluded["value"],
                    "expires_at": stmt.excluded["expires_at"],
                    "updated_at": func.now(),
                },
            )
            db.execute(stmt)
            db.commit()
        finally:
            db.close()

    @staticmethod
    def _write_portable(db: Session, key: str, value: Any, expires_at: int) -> None:
        row = db.query(RateCacheEntry).filter(RateCacheEntry.key == key).first()
        if row is None:
            db.add(RateCacheEntry(key=key, value=value, expires_at=expires_at))
            try:
                db.commit()
                return
            except IntegrityError:
                # Another writer inserted the key first; overwrite it.
                db.rollback()
            row = db.query(RateCacheEntry).filter(RateCacheEntry.key == key).one()
        row.value = value
        row.expires_at = expires_at
        db.commit()

    def _delete(self, key: str) -> None:
        db = self._session_factory()
        try:
            db.query(RateCacheEntry).filter(RateCacheEntry.key == key).delete()
            db.commit()
        finally:
            db.close()

    async def read(self, key: str) -> tuple[Any, int] | None:
        return await anyio.to_thread.run_sync(self._read, key)

    async def write(self, key: str, value: Any, expires_at: int) -> None:
        await anyio.to_thread.run_sync(self._write, key, value, expires_at)

    async def delete(self, key: str) -> None:
        await anyio.to_thread.run_sync(self._delete, key)


class RateCache:
    def __init__(self, store: CacheStore | None = None, *, clock: Clock = now_ms) -> None:
        self.store = store if store is not None else MemoryCacheStore()
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None when missing or expired."""
        entry = await self.store.read(key)
        if entry is None:
            logger.debug("cache miss key=%s", key)
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            logger.debug("cache expired key=%s", key)
            if isinstance(self.store, MemoryCacheStore):
                await self.store.delete(key)
            return None
        logger.debug("cache hit key=%s", key)
        return value

    async def set(self, key: str, value: Any, ttl_ms: int) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        await self.store.write(key, value, self._clock() + ttl_ms)
