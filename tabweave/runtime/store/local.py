"""Local filesystem key-value store.

Stores each key as a JSON file under a data root with optional namespace
prefix::

    {data_root}/{prefix}/storage/{key}.json

When prefix is None, the path collapses to::

    {data_root}/storage/{key}.json

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path, so a single-key write never leaves a
partially-written value behind.  Named locks are ``asyncio.Lock`` objects and
therefore only exclude callers inside this process.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import re
import tempfile
from collections import defaultdict
from collections.abc import Awaitable, Callable, Mapping, Sequence
from functools import partial
from pathlib import Path
from typing import Any, TypeVar

from anyio import to_thread

from tabweave.runtime.errors import StoreError
from tabweave.runtime.store.base import normalize_keys

T = TypeVar("T")

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalKeyValueStore:
    """Local filesystem implementation of the KeyValueStore protocol.

    Layout::

        {base}/storage/{key}.json

    Where ``base`` is ``data_root / prefix`` (or just ``data_root`` if no prefix).
    """

    def __init__(self, data_root: str | Path, prefix: str | None = None) -> None:
        base = Path(data_root)
        if prefix:
            base = base / prefix
        self._base = base / "storage"
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            msg = f"Invalid storage key: {key!r}"
            raise StoreError(msg)
        return self._base / f"{key}.json"

    # -- Read ------------------------------------------------------------------

    async def get(self, keys: str | Sequence[str] | None) -> dict[str, Any]:
        if keys is None:
            names = await self._run(self._list_keys)
        else:
            names = normalize_keys(keys)
        result: dict[str, Any] = {}
        for name in names:
            raw = await self._run(partial(_read_file, self._path(name)))
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
        for key, value in items.items():
            path = self._path(key)
            try:
                data = json.dumps(value, ensure_ascii=False)
            except (TypeError, ValueError) as exc:
                msg = f"Value for key {key!r} is not JSON-serializable: {exc}"
                raise StoreError(msg) from exc
            await self._run(partial(_atomic_write, path, data))

    async def remove(self, keys: str | Sequence[str]) -> None:
        for key in normalize_keys(keys):
            await self._run(partial(_unlink, self._path(key)))

    # -- Locking ---------------------------------------------------------------

    async def with_lock(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        async with self._locks[name]:
            return await fn()

    # -- Utilities -------------------------------------------------------------

    async def bytes_in_use(self) -> int:
        return await self._run(self._total_size)

    def _list_keys(self) -> list[str]:
        if not self._base.is_dir():
            return []
        return sorted(p.stem for p in self._base.glob("*.json"))

    def _total_size(self) -> int:
        if not self._base.is_dir():
            return 0
        return sum(p.stat().st_size for p in self._base.glob("*.json"))

    async def _run(self, func: Callable[[], T]) -> T:
        try:
            return await to_thread.run_sync(func)
        except OSError as exc:
            msg = f"Local store I/O failed under {self._base}: {exc}"
            raise StoreError(msg) from exc


# -- Sync helpers (run in thread pool) -----------------------------------------


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    The temp file is created in the same directory so ``os.replace`` is atomic
    on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_file(path: Path) -> str | None:
    """Read file contents, or ``None`` if the key was never written."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def _unlink(path: Path) -> None:
    with contextlib.suppress(FileNotFoundError):
        path.unlink()
