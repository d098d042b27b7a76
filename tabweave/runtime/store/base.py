"""Key-value store interface for the persisted workspace state.

The store holds a handful of top-level keys (see ``StorageKey``).  Single-key
writes are atomic; anything that reads a value, mutates it and writes it back
must run inside ``with_lock`` so that a UI-initiated write and a
background-initiated write cannot silently lose one of the two changes.

``with_lock`` is not re-entrant: callers must never nest it.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class KeyValueStore(Protocol):
    """Async protocol for durable key/value storage with named lock scopes.

    Backends raise ``StoreError`` for any read/write failure.
    """

    async def get(self, keys: str | Sequence[str] | None) -> dict[str, Any]:
        """Return the stored values for *keys* (all keys when ``None``).

        Missing keys are absent from the result.
        """
        ...

    async def set(self, items: Mapping[str, Any]) -> None:
        """Store every item.  Each key is written atomically."""
        ...

    async def remove(self, keys: str | Sequence[str]) -> None:
        """Delete keys.  No-op for keys that don't exist."""
        ...

    async def with_lock(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run *fn* with exclusive access to the named scope and return its result."""
        ...

    async def bytes_in_use(self) -> int:
        """Approximate storage footprint in bytes."""
        ...


def normalize_keys(keys: str | Sequence[str]) -> list[str]:
    if isinstance(keys, str):
        return [str(keys)]
    return [str(k) for k in keys]
