"""Data access managers for the persisted workspace state.

Each module provides async functions that encapsulate read-modify-write
sequences against a ``KeyValueStore``.  Managers accept the store as a
parameter, take ``STORAGE_LOCK`` themselves (so callers must not hold it),
and raise domain exceptions from ``tabweave.runtime.errors``, never HTTP
exceptions -- that translation is the app's responsibility.
"""
