"""Saved-tab operations.

All saved tabs live under one storage key, a map of workspace id to tab
list, so every write is a read-modify-write of that map and runs inside
``STORAGE_LOCK``.  Uniqueness within a workspace is by ``url``: writes merge
into an existing entry rather than appending a duplicate.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from loguru import logger

from tabweave.runtime.errors import SavedTabNotFoundError, UnsavableTabError
from tabweave.runtime.managers.workspaces import (
    get_active_workspace_id,
    is_switching,
    parse_workspaces,
    require_workspace,
)
from tabweave.runtime.models.api import SavedTabCreate
from tabweave.runtime.models.enums import STORAGE_LOCK, StorageKey
from tabweave.runtime.models.workspace import SavedTab, Workspace, extract_domain, now_ms
from tabweave.runtime.store.base import KeyValueStore
from tabweave.runtime.tabs.policy import UrlPolicy

SavedTabsTransform = Callable[[list[SavedTab]], list[SavedTab]]


def dedupe_by_url(tabs: Sequence[SavedTab]) -> list[SavedTab]:
    """Drop later entries whose url was already seen, keeping order."""
    seen: set[str] = set()
    result: list[SavedTab] = []
    for tab in tabs:
        if tab.url in seen:
            continue
        seen.add(tab.url)
        result.append(tab)
    return result


def merge_into(tabs: list[SavedTab], incoming: SavedTab) -> SavedTab:
    """Insert ``incoming`` or refresh the entry that already has its url.

    Non-empty fields of ``incoming`` win; the existing ``id`` is kept.
    """
    for i, existing in enumerate(tabs):
        if existing.url == incoming.url:
            merged = existing.model_copy(
                update={
                    "title": incoming.title or existing.title,
                    "domain": incoming.domain or existing.domain,
                    "favicon": incoming.favicon or existing.favicon,
                    "saved_at": incoming.saved_at or existing.saved_at,
                }
            )
            tabs[i] = merged
            return merged
    tabs.append(incoming)
    return incoming


def _parse_map(raw: Any) -> dict[str, list[SavedTab]]:
    return {ws_id: [SavedTab.model_validate(t) for t in items] for ws_id, items in (raw or {}).items()}


def _dump_map(tab_map: dict[str, list[SavedTab]]) -> dict[str, list[dict]]:
    return {ws_id: [t.to_storage() for t in tabs] for ws_id, tabs in tab_map.items()}


async def _read(store: KeyValueStore) -> tuple[list[Workspace], dict[str, list[SavedTab]]]:
    data = await store.get([StorageKey.WORKSPACES, StorageKey.SAVED_TABS])
    return parse_workspaces(data.get(StorageKey.WORKSPACES)), _parse_map(data.get(StorageKey.SAVED_TABS))


async def _write(store: KeyValueStore, tab_map: dict[str, list[SavedTab]]) -> None:
    await store.set({StorageKey.SAVED_TABS: _dump_map(tab_map)})


# -- Read ----------------------------------------------------------------------


async def get_saved_tabs(store: KeyValueStore, workspace_id: str) -> list[SavedTab]:
    """Saved tabs of one workspace.

    Duplicate urls left behind by an older writer are dropped from the result
    and the stored list is repaired.
    """
    data = await store.get(StorageKey.SAVED_TABS)
    tabs = _parse_map(data.get(StorageKey.SAVED_TABS)).get(workspace_id, [])
    unique = dedupe_by_url(tabs)
    if len(unique) != len(tabs):
        logger.warning("Repairing {} duplicate saved tab(s) in {}", len(tabs) - len(unique), workspace_id)
        await update_saved_tabs(store, workspace_id, dedupe_by_url)
    return unique


# -- Write ---------------------------------------------------------------------


async def update_saved_tabs(
    store: KeyValueStore,
    workspace_id: str,
    transform: SavedTabsTransform,
    *,
    force: bool = False,
    only_if_active: bool = False,
) -> list[SavedTab] | None:
    """Apply ``transform`` to a workspace's tab list under the storage lock.

    Writes only when the result differs from the stored list, unless
    ``force`` is set.  Returns the new list if written, ``None`` if nothing
    changed or the workspace no longer exists.

    With ``only_if_active`` the write is also skipped when, by the time the
    lock is held, a switch is running or another workspace became active.
    """

    async def _txn() -> list[SavedTab] | None:
        if only_if_active and (
            await is_switching(store) or await get_active_workspace_id(store) != workspace_id
        ):
            logger.debug("Skipping tab update for {}: no longer the settled active workspace", workspace_id)
            return None
        workspaces, tab_map = await _read(store)
        if workspace_id not in {w.id for w in workspaces}:
            logger.debug("Skipping tab update for deleted workspace {}", workspace_id)
            return None
        current = tab_map.get(workspace_id, [])
        updated = dedupe_by_url(transform(list(current)))
        if not force and updated == current:
            return None
        tab_map[workspace_id] = updated
        await _write(store, tab_map)
        return updated

    return await store.with_lock(STORAGE_LOCK, _txn)


async def add_tab_to_workspace(
    store: KeyValueStore,
    workspace_id: str,
    body: SavedTabCreate,
    *,
    policy: UrlPolicy,
) -> SavedTab:
    """Save a tab into a workspace, merging with an entry of the same url.

    Raises ``UnsavableTabError`` for the anchor tab and browser-internal
    pages, ``WorkspaceNotFoundError`` if the workspace is missing.
    """
    if not policy.is_savable(body.url):
        msg = f"Tab {body.url!r} cannot be saved to a workspace"
        raise UnsavableTabError(msg)

    incoming = SavedTab(
        title=body.title or "Untitled",
        url=body.url,
        domain=body.domain or extract_domain(body.url),
        favicon=body.favicon or "",
        saved_at=body.saved_at or now_ms(),
    )

    async def _txn() -> SavedTab:
        workspaces, tab_map = await _read(store)
        require_workspace(workspaces, workspace_id)
        tabs = tab_map.setdefault(workspace_id, [])
        saved = merge_into(tabs, incoming)
        await _write(store, tab_map)
        return saved

    return await store.with_lock(STORAGE_LOCK, _txn)


async def remove_saved_tab(store: KeyValueStore, workspace_id: str, tab_id: str) -> SavedTab:
    """Remove one saved tab by id.  Raises ``SavedTabNotFoundError`` if missing."""

    async def _txn() -> SavedTab:
        workspaces, tab_map = await _read(store)
        require_workspace(workspaces, workspace_id)
        tabs = tab_map.get(workspace_id, [])
        removed = _find(tabs, workspace_id, tab_id)
        tab_map[workspace_id] = [t for t in tabs if t.id != tab_id]
        await _write(store, tab_map)
        return removed

    return await store.with_lock(STORAGE_LOCK, _txn)


async def move_tab_between_workspaces(
    store: KeyValueStore,
    from_workspace_id: str,
    to_workspace_id: str,
    tab_id: str,
) -> SavedTab:
    """Move a saved tab to another workspace in one transaction.

    The tab merges into the target by url.  Returns the entry as stored in
    the target.
    """

    async def _txn() -> SavedTab:
        workspaces, tab_map = await _read(store)
        require_workspace(workspaces, from_workspace_id)
        require_workspace(workspaces, to_workspace_id)
        source = tab_map.get(from_workspace_id, [])
        tab = _find(source, from_workspace_id, tab_id)
        if from_workspace_id == to_workspace_id:
            return tab

        tab_map[from_workspace_id] = [t for t in source if t.id != tab_id]
        moved = merge_into(tab_map.setdefault(to_workspace_id, []), tab)
        await _write(store, tab_map)
        return moved

    moved = await store.with_lock(STORAGE_LOCK, _txn)
    logger.info("Moved saved tab {} from {} to {}", tab_id, from_workspace_id, to_workspace_id)
    return moved


def _find(tabs: list[SavedTab], workspace_id: str, tab_id: str) -> SavedTab:
    for tab in tabs:
        if tab.id == tab_id:
            return tab
    msg = f"Tab {tab_id} not found in workspace {workspace_id}"
    raise SavedTabNotFoundError(msg)
