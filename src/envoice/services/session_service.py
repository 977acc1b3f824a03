"""
ERP session cache.

One access key per account, shared read-only by every document processed for
that account. Keys are cached for less than the ERP's own expiry and are never
reacquired twice at the same time for the same account.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from loguru import logger

from envoice.exceptions import SessionUnavailableError
from envoice.models.account import Account
from envoice.observability import record_session_acquisition
from envoice.services.guard import GuardStore
from envoice.services.retry_service import RetryPolicy, retry_async
from envoice.services.source_client import MagayaClient

DEFAULT_SESSION_POLICY = RetryPolicy(max_attempts=3, initial_delay=1.0, backoff_factor=2.0)


class SessionService:
    """Caches ERP access keys per account with a TTL."""

    def __init__(
        self,
        client: MagayaClient,
        guard_store: GuardStore,
        ttl_seconds: int = 900,
        retry_policy: RetryPolicy = DEFAULT_SESSION_POLICY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.guard_store = guard_store
        self.ttl_seconds = ttl_seconds
        self.retry_policy = retry_policy
        self._sleep = sleep
        self._clock = clock
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _cached(self, account: Account) -> Optional[str]:
        entry = self._cache.get(account.network_id)
        if entry is None:
            return None
        access_key, expires_at = entry
        if expires_at <= self._clock():
            del self._cache[account.network_id]
            return None
        return access_key

    async def get_access_key(self, account: Account) -> str:
        """
        Return a valid access key for the account, opening a session on a cache miss.

        Raises:
            AuthenticationError: If the ERP refuses the credentials
            RetryExhaustedError: If every attempt failed at the transport level
            SessionUnavailableError: If another process is opening the same session
        """
        access_key = self._cached(account)
        if access_key:
            record_session_acquisition("cached")
            return access_key

        lock = self._locks.setdefault(account.network_id, asyncio.Lock())
        async with lock:
            # Another task may have filled the cache while we waited
            access_key = self._cached(account)
            if access_key:
                record_session_acquisition("cached")
                return access_key

            guard_key = f"session:{account.network_id}"
            if not await self.guard_store.acquire(guard_key, self.ttl_seconds):
                raise SessionUnavailableError(account.name)
            try:
                access_key = await retry_async(
                    lambda: self.client.start_session(account),
                    self.retry_policy,
                    sleep=self._sleep,
                    description=f"StartSession[{account.name}]",
                )
            except Exception:
                record_session_acquisition("failed")
                raise
            finally:
                await self.guard_store.release(guard_key)

            self._cache[account.network_id] = (
                access_key,
                self._clock() + self.ttl_seconds,
            )
            record_session_acquisition("success")
            logger.debug(f"Access key cached for account {account.name}")
            return access_key

    def invalidate(self, account: Account) -> None:
        """Drop the cached key so the next call opens a new session."""
        self._cache.pop(account.network_id, None)
