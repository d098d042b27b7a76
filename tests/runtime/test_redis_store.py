"""Integration tests for the Redis key-value store.

Requires Docker (testcontainers starts a Redis container).
"""

from __future__ import annotations

import asyncio

import pytest

from tabweave.runtime.errors import StoreError
from tabweave.runtime.models.enums import STORAGE_LOCK
from tabweave.runtime.store.redis_kv import RedisKeyValueStore

pytestmark = pytest.mark.integration


@pytest.fixture
def store(redis_client):
    return RedisKeyValueStore(redis_client, prefix="test")


async def test_set_and_get(store):
    await store.set({"workspaces": [{"id": "a"}], "activeWorkspaceId": "a"})
    result = await store.get(["workspaces", "activeWorkspaceId", "missing"])
    assert result == {"workspaces": [{"id": "a"}], "activeWorkspaceId": "a"}


async def test_key_layout(store, redis_client):
    await store.set({"notes": {"ws": "hi"}})
    assert await redis_client.get("test:kv:notes") == '{"ws": "hi"}'


async def test_get_all(store):
    await store.set({"a": 1, "b": 2})
    assert await store.get(None) == {"a": 1, "b": 2}


async def test_remove(store):
    await store.set({"a": 1, "b": 2})
    await store.remove(["a", "never-written"])
    assert await store.get(None) == {"b": 2}


async def test_corrupt_value_raises(store, redis_client):
    await redis_client.set("test:kv:workspaces", "{not json")
    with pytest.raises(StoreError, match="Corrupt value"):
        await store.get("workspaces")


async def test_with_lock_serializes_read_modify_write(store):
    await store.set({"counter": 0})

    async def _increment() -> None:
        async def _txn() -> None:
            current = (await store.get("counter"))["counter"]
            await asyncio.sleep(0)
            await store.set({"counter": current + 1})

        await store.with_lock(STORAGE_LOCK, _txn)

    await asyncio.gather(*[_increment() for _ in range(5)])
    assert await store.get("counter") == {"counter": 5}


async def test_lock_held_elsewhere_times_out(redis_client):
    store = RedisKeyValueStore(redis_client, prefix="test", lock_blocking_timeout=0.1)
    holder = redis_client.lock("test:lock:" + STORAGE_LOCK, timeout=5)
    assert await holder.acquire()
    try:

        async def _txn() -> None:
            return None

        with pytest.raises(StoreError, match="Timed out"):
            await store.with_lock(STORAGE_LOCK, _txn)
    finally:
        await holder.release()


async def test_bytes_in_use(store):
    assert await store.bytes_in_use() == 0
    await store.set({"notes": {"ws": "x" * 50}})
    assert await store.bytes_in_use() > 50
