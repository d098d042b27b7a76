"""Key-value store implementations for the persisted workspace state."""

from tabweave.runtime.store.base import KeyValueStore
from tabweave.runtime.store.local import LocalKeyValueStore

__all__ = ["KeyValueStore", "LocalKeyValueStore"]
