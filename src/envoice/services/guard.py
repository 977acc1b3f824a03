"""
Idempotent submission guard.

A short-lived marker per document id keeps two overlapping runs from
submitting the same document. The marker lives in a GuardStore: process memory
for a single instance, Redis (SET NX EX) when several instances share work.
The TTL only matters if a process dies while holding a marker; normal exits
always release explicitly.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Protocol

from loguru import logger

from envoice.infrastructure.redis_client import RedisClient


class GuardStore(Protocol):
    async def acquire(self, key: str, ttl: int) -> bool:
        ...

    async def release(self, key: str) -> None:
        ...


class InMemoryGuardStore:
    """Guard store backed by a dict of key -> monotonic expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, float] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def acquire(self, key: str, ttl: int) -> bool:
        async with self._lock:
            now = self._clock()
            expires_at = self._entries.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._entries[key] = now + ttl
            return True

    async def release(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class RedisGuardStore:
    """Guard store shared across processes through a conditional insert in Redis."""

    def __init__(self, redis_client: RedisClient):
        self._redis = redis_client

    async def acquire(self, key: str, ttl: int) -> bool:
        return await self._redis.set_if_absent(key, "1", ex=ttl)

    async def release(self, key: str) -> None:
        await self._redis.delete(key)


class SubmissionGuard:
    """
    Gate in front of the submission engine.

    Markers are scoped by the record kind a document is stored under, so kinds
    acting on the same source document (an invoice and its cancellation) share
    one marker per number.
    """

    def __init__(self, store: GuardStore, scope: str, ttl: int = 300):
        self.store = store
        self.scope = scope
        self.ttl = ttl

    def key(self, document_id: str) -> str:
        return f"processing:{self.scope}:{document_id}"

    async def try_acquire(self, document_id: str) -> bool:
        """Create the marker; False when another invocation already holds it."""
        acquired = await self.store.acquire(self.key(document_id), self.ttl)
        if not acquired:
            logger.info(f"Document {document_id} ({self.scope}) already being processed")
        return acquired

    async def release(self, document_id: str) -> None:
        await self.store.release(self.key(document_id))

    @asynccontextmanager
    async def hold(self, document_id: str) -> AsyncIterator[bool]:
        """
        Yield whether the marker was acquired and release it on every exit path.

        Usage:
            async with guard.hold(document.id) as acquired:
                if not acquired:
                    return skipped
                ...
        """
        acquired = await self.try_acquire(document_id)
        try:
            yield acquired
        finally:
            if acquired:
                await self.release(document_id)
