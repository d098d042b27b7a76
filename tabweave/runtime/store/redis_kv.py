"""Redis key-value store.

Stores each key as a JSON string with optional namespace prefix::

    {prefix}:kv:{key}

Named locks use redis-py's distributed ``Lock`` under ``{prefix}:lock:{name}``,
so the UI process and the background process exclude each other even though
they don't share an event loop.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

import redis.asyncio as aioredis
from loguru import logger
from redis.exceptions import LockError, RedisError

from tabweave.runtime.errors import StoreError
from tabweave.runtime.store.base import normalize_keys

T = TypeVar("T")


class RedisKeyValueStore:
    """Redis implementation of the KeyValueStore protocol."""

    def __init__(
        self,
        client: aioredis.Redis,
        prefix: str | None = None,
        lock_timeout: float = 30.0,
        lock_blocking_timeout: float = 10.0,
    ) -> None:
        self._client = client
        namespace = prefix or "tabweave"
        self._kv_prefix = f"{namespace}:kv:"
        self._lock_prefix = f"{namespace}:lock:"
        self._lock_timeout = lock_timeout
        self._lock_blocking_timeout = lock_blocking_timeout

    @classmethod
    def from_url(cls, url: str, prefix: str | None = None) -> RedisKeyValueStore:
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        return cls(client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._kv_prefix}{key}"

    # -- Read ------------------------------------------------------------------

    async def get(self, keys: str | Sequence[str] | None) -> dict[str, Any]:
        try:
            if keys is None:
                names = [k.removeprefix(self._kv_prefix) async for k in self._client.scan_iter(f"{self._kv_prefix}*")]
            else:
                names = normalize_keys(keys)
            if not names:
                return {}
            raw_values = await self._client.mget([self._key(n) for n in names])
        except RedisError as exc:
            msg = f"Redis read failed: {exc}"
            raise StoreError(msg) from exc

        result: dict[str, Any] = {}
        for name, raw in zip(names, raw_values, strict=True):
            if raw is None:
                continue
            try:
                result[name] = json.loads(raw)
            except json.JSONDecodeError as exc:
                msg = f"Corrupt value for key {name!r}: {exc}"
                raise StoreError(msg) from exc
        return result

    # -- Write -----------------------------------------------------------------

    async def set(self, items: Mapping[str, Any]) -> None:
        if not items:
            return
        try:
            payload = {self._key(k): json.dumps(v, ensure_ascii=False) for k, v in items.items()}
        except (TypeError, ValueError) as exc:
            msg = f"Value is not JSON-serializable: {exc}"
            raise StoreError(msg) from exc
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.mset(payload)
                await pipe.execute()
        except RedisError as exc:
            msg = f"Redis write failed: {exc}"
            raise StoreError(msg) from exc

    async def remove(self, keys: str | Sequence[str]) -> None:
        names = normalize_keys(keys)
        if not names:
            return
        try:
            await self._client.delete(*[self._key(n) for n in names])
        except RedisError as exc:
            msg = f"Redis delete failed: {exc}"
            raise StoreError(msg) from exc

    # -- Locking ---------------------------------------------------------------

    async def with_lock(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        lock = self._client.lock(
            f"{self._lock_prefix}{name}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_blocking_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as exc:
            msg = f"Could not acquire lock {name!r}: {exc}"
            raise StoreError(msg) from exc
        if not acquired:
            msg = f"Timed out waiting for lock {name!r}"
            raise StoreError(msg)
        try:
            return await fn()
        finally:
            try:
                await lock.release()
            except LockError:
                # Expired while fn was running; fn's writes already landed.
                logger.warning("Lock {} expired before release", name)

    # -- Utilities -------------------------------------------------------------

    async def bytes_in_use(self) -> int:
        try:
            total = 0
            async for key in self._client.scan_iter(f"{self._kv_prefix}*"):
                total += await self._client.strlen(key)
        except RedisError as exc:
            msg = f"Redis usage scan failed: {exc}"
            raise StoreError(msg) from exc
        return total

    async def aclose(self) -> None:
        await self._client.aclose()
