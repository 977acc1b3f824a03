"""
Tests for the submission guard and its stores.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from envoice.kinds.cancellation import CANCELLATION
from envoice.kinds.credit_note import CREDIT_NOTE
from envoice.kinds.invoice import INVOICE
from envoice.services.guard import InMemoryGuardStore, RedisGuardStore, SubmissionGuard
from envoice.services.submission import SubmissionEngine


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestInMemoryGuardStore:
    """Test conditional insert semantics."""

    def test_second_acquire_fails_until_release(self):
        async def scenario():
            store = InMemoryGuardStore()
            first = await store.acquire("processing:invoice:101", 300)
            second = await store.acquire("processing:invoice:101", 300)
            await store.release("processing:invoice:101")
            third = await store.acquire("processing:invoice:101", 300)
            return first, second, third

        assert asyncio.run(scenario()) == (True, False, True)

    def test_marker_expires_after_ttl(self):
        clock = FakeClock()
        store = InMemoryGuardStore(clock=clock)

        async def scenario():
            await store.acquire("k", 300)
            clock.now += 301
            return await store.acquire("k", 300)

        assert asyncio.run(scenario()) is True


class TestRedisGuardStore:
    def test_uses_set_if_absent_with_ttl(self):
        redis = Mock()
        redis.set_if_absent = AsyncMock(return_value=False)
        redis.delete = AsyncMock()
        store = RedisGuardStore(redis)

        acquired = asyncio.run(store.acquire("processing:invoice:101", 300))
        asyncio.run(store.release("processing:invoice:101"))

        assert acquired is False
        redis.set_if_absent.assert_awaited_once_with("processing:invoice:101", "1", ex=300)
        redis.delete.assert_awaited_once_with("processing:invoice:101")


class TestSubmissionGuard:
    """Test the hold context manager."""

    def test_key_format(self):
        assert SubmissionGuard(InMemoryGuardStore(), "invoice").key("101") == "processing:invoice:101"

    def test_released_after_exception(self):
        store = InMemoryGuardStore()
        guard = SubmissionGuard(store, "invoice")

        async def failing():
            async with guard.hold("101") as acquired:
                assert acquired
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(failing())
        assert len(store) == 0

    def test_not_acquired_does_not_release_holder(self):
        store = InMemoryGuardStore()
        guard = SubmissionGuard(store, "invoice")

        async def scenario():
            async with guard.hold("101") as outer:
                async with guard.hold("101") as inner:
                    pass
                still_held = len(store)
            return outer, inner, still_held

        assert asyncio.run(scenario()) == (True, False, 1)

    def test_shared_scope_collides(self):
        """An invoice and its cancellation are stored under one record kind and share a marker."""
        store = InMemoryGuardStore()
        engine = SubmissionEngine(Mock(), Mock(), Mock(), Mock(), guard_store=store)

        async def scenario():
            invoice = await engine.guard_for(INVOICE).try_acquire("101")
            cancellation = await engine.guard_for(CANCELLATION).try_acquire("101")
            credit_note = await engine.guard_for(CREDIT_NOTE).try_acquire("101")
            return invoice, cancellation, credit_note

        assert asyncio.run(scenario()) == (True, False, True)
        assert engine.guard_for(CANCELLATION).key("101") == "processing:invoice:101"
        assert engine.guard_for(CREDIT_NOTE).key("101") == "processing:credit_note:101"
