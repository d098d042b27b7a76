"""One-time copy of a legacy store into the primary store.

The target's ``migrated`` flag makes the copy happen at most once: it is
set together with the copied keys, and also when the source is empty or
unreadable so an absent legacy store is not re-checked on every start.
The source is never modified.
"""

from __future__ import annotations

from loguru import logger

from tabweave.runtime.errors import StoreError
from tabweave.runtime.models.enums import STORAGE_LOCK, StorageKey
from tabweave.runtime.store.base import KeyValueStore


async def is_migrated(store: KeyValueStore) -> bool:
    data = await store.get(StorageKey.MIGRATED)
    return bool(data.get(StorageKey.MIGRATED, False))


async def migrate_store(source: KeyValueStore, target: KeyValueStore) -> int:
    """Copy every key of ``source`` into ``target``.  Returns the number of keys copied."""

    async def _txn() -> int:
        if await is_migrated(target):
            logger.debug("Storage already migrated")
            return 0

        try:
            data = await source.get(None)
        except StoreError as exc:
            logger.warning("Legacy store unreadable, skipping migration: {}", exc)
            data = {}
        data.pop(StorageKey.MIGRATED, None)

        await target.set({**data, StorageKey.MIGRATED: True})
        if data:
            logger.info("Migrated {} key(s) from the legacy store", len(data))
        return len(data)

    return await target.with_lock(STORAGE_LOCK, _txn)
