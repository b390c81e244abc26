"""Two-tier cache: in-memory TTL store plus a persisted last-good snapshot."""

import asyncio
import json
import logging
import time
import threading
from typing import Any, Awaitable, Callable

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fund_tracker.config import ESTIMATE_CACHE_TTL
from fund_tracker.exceptions import FundDataError
from fund_tracker.models.cache import CacheSnapshot
from fund_tracker.models.database import async_session_factory
from fund_tracker.services.trading_time import is_trading_time

logger = logging.getLogger(__name__)


class CacheService:
    """Thread-safe in-memory cache with TTL support. No capacity bound."""

    def __init__(self, default_ttl: float = 60):
        self._store: dict[str, tuple[Any, float]] = {}
        self._default_ttl = default_ttl
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.time() > expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = ttl if ttl is not None else self._default_ttl
        expires_at = time.time() + ttl
        with self._lock:
            self._store[key] = (value, expires_at)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def delete_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [k for k in self._store if k.startswith(prefix)]:
                del self._store[key]

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)


class PersistentCache:
    """Key-value snapshots stored in the local database, JSON encoded."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session_factory):
        self._session_factory = session_factory

    async def get(self, key: str) -> Any | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(CacheSnapshot, key)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read cache snapshot {key}: {e}")
            return None
        if row is None:
            return None
        try:
            return json.loads(row.payload)
        except ValueError:
            logger.warning(f"Discarding unreadable cache snapshot {key}")
            return None

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        try:
            async with self._session_factory() as session:
                row = await session.get(CacheSnapshot, key)
                if row is None:
                    session.add(CacheSnapshot(cache_key=key, payload=payload))
                else:
                    row.payload = payload
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write cache snapshot {key}: {e}")


class TieredCache:
    """Memory TTL cache in front of a persisted fallback, gated by trading hours.

    Lookup order for fetch():
      1. fresh memory entry
      2. persisted snapshot, when the market is closed
      3. live fetch; on failure or invalid data the persisted snapshot (or None)
    """

    def __init__(
        self,
        memory: CacheService,
        persisted: PersistentCache,
        is_open: Callable[[], bool] = is_trading_time,
    ):
        self.memory = memory
        self.persisted = persisted
        self._is_open = is_open

    async def fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        ttl: float = ESTIMATE_CACHE_TTL,
        validator: Callable[[Any], bool] | None = None,
    ) -> Any | None:
        validator = validator or (lambda data: bool(data))

        cached = self.memory.get(key)
        if cached is not None:
            return cached

        stale = await self.persisted.get(key)
        if stale is not None and not validator(stale):
            stale = None

        if not self._is_open() and stale is not None:
            self.memory.set(key, stale, ttl)
            return stale

        try:
            data = await fetcher()
        except (FundDataError, httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.warning(f"Live fetch for {key} failed, serving cached copy: {e}")
            return stale

        if data is not None and validator(data):
            self.memory.set(key, data, ttl)
            await self.persisted.set(key, data)
            return data
        return stale


# Global cache instances
memory_cache = CacheService(default_ttl=ESTIMATE_CACHE_TTL)
persistent_cache = PersistentCache()
tiered_cache = TieredCache(memory_cache, persistent_cache)
