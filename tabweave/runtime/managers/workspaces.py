"""Workspace CRUD operations.

Encapsulates workspace data access: initialize, create, list, get, update,
delete, reorder, plus the two scalar flags (active workspace id and the
switching guard).  Every read-modify-write runs inside ``STORAGE_LOCK``;
the scalar setters are single-key writes and skip the lock.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from tabweave.runtime.errors import (
    DuplicateWorkspaceError,
    ProtectedEntityError,
    WorkspaceNotFoundError,
)
from tabweave.runtime.models.api import WorkspaceCreate, WorkspaceUpdate
from tabweave.runtime.models.enums import STORAGE_LOCK, StorageKey
from tabweave.runtime.models.workspace import (
    SENTINEL_WORKSPACE_ID,
    Workspace,
    new_id,
    now_ms,
    sentinel_workspace,
)
from tabweave.runtime.store.base import KeyValueStore

# Per-workspace collections removed together with the workspace.
_CASCADE_KEYS = (StorageKey.SAVED_TABS, StorageKey.RESOURCES, StorageKey.NOTES, StorageKey.TODOS)


def parse_workspaces(raw: Any) -> list[Workspace]:
    """Validate the stored ``workspaces`` list, ordered by ``order``."""
    workspaces = [Workspace.model_validate(item) for item in raw or []]
    return sorted(workspaces, key=lambda w: (not w.is_sentinel, w.order))


def require_workspace(workspaces: list[Workspace], workspace_id: str) -> Workspace:
    for workspace in workspaces:
        if workspace.id == workspace_id:
            return workspace
    raise WorkspaceNotFoundError(workspace_id)


def _dump(workspaces: list[Workspace]) -> list[dict]:
    return [w.to_storage() for w in workspaces]


async def _read_workspaces(store: KeyValueStore) -> list[Workspace]:
    data = await store.get(StorageKey.WORKSPACES)
    return parse_workspaces(data.get(StorageKey.WORKSPACES))


# -- Lifecycle -----------------------------------------------------------------


async def initialize(store: KeyValueStore) -> list[Workspace]:
    """Create the sentinel workspace if missing and repair a dangling active id."""

    async def _txn() -> list[Workspace]:
        data = await store.get([StorageKey.WORKSPACES, StorageKey.ACTIVE_WORKSPACE_ID])
        workspaces = parse_workspaces(data.get(StorageKey.WORKSPACES))
        changes: dict[str, Any] = {}

        if not any(w.is_sentinel for w in workspaces):
            workspaces.insert(0, sentinel_workspace())
            changes[StorageKey.WORKSPACES] = _dump(workspaces)
            logger.info("Created sentinel workspace {!r}", SENTINEL_WORKSPACE_ID)

        active = data.get(StorageKey.ACTIVE_WORKSPACE_ID)
        if active not in {w.id for w in workspaces}:
            changes[StorageKey.ACTIVE_WORKSPACE_ID] = SENTINEL_WORKSPACE_ID
            if active is not None:
                logger.warning("Active workspace {!r} no longer exists, falling back to sentinel", active)

        if changes:
            await store.set(changes)
        return workspaces

    return await store.with_lock(STORAGE_LOCK, _txn)


# -- Read ----------------------------------------------------------------------


async def list_workspaces(store: KeyValueStore) -> list[Workspace]:
    """All workspaces, sentinel first, then by ``order``."""
    return await _read_workspaces(store)


async def get_workspace(store: KeyValueStore, workspace_id: str) -> Workspace:
    """Get a workspace by ID.  Raises ``WorkspaceNotFoundError`` if missing."""
    return require_workspace(await _read_workspaces(store), workspace_id)


# -- Write ---------------------------------------------------------------------


async def add_workspace(store: KeyValueStore, body: WorkspaceCreate) -> Workspace:
    """Create a workspace at the end of the list.

    Raises ``DuplicateWorkspaceError`` if the requested ID exists.
    """

    async def _txn() -> Workspace:
        workspaces = await _read_workspaces(store)
        workspace_id = body.id or new_id("ws")
        if any(w.id == workspace_id for w in workspaces):
            raise DuplicateWorkspaceError(workspace_id)

        workspace = Workspace(
            id=workspace_id,
            name=body.name,
            color=body.color,
            icon=body.icon,
            order=max((w.order for w in workspaces), default=0) + 1,
        )
        workspaces.append(workspace)
        await store.set({StorageKey.WORKSPACES: _dump(workspaces)})
        return workspace

    workspace = await store.with_lock(STORAGE_LOCK, _txn)
    logger.info("Created workspace {} ({!r})", workspace.id, workspace.name)
    return workspace


async def update_workspace(store: KeyValueStore, workspace_id: str, body: WorkspaceUpdate) -> Workspace:
    """Partially update name/color/icon.  Raises ``WorkspaceNotFoundError`` if missing."""
    changes = body.model_dump(exclude_unset=True)

    async def _txn() -> Workspace:
        workspaces = await _read_workspaces(store)
        current = require_workspace(workspaces, workspace_id)
        if not changes:
            return current

        updated = current.model_copy(update={**changes, "updated_at": now_ms()})
        workspaces = [updated if w.id == workspace_id else w for w in workspaces]
        await store.set({StorageKey.WORKSPACES: _dump(workspaces)})
        return updated

    return await store.with_lock(STORAGE_LOCK, _txn)


async def delete_workspace(store: KeyValueStore, workspace_id: str) -> bool:
    """Delete a workspace and its saved tabs, resources, note and todos.

    Raises ``ProtectedEntityError`` for the sentinel and
    ``WorkspaceNotFoundError`` if missing.  Returns whether the deleted
    workspace was the active one (the active id then falls back to the
    sentinel).
    """
    if workspace_id == SENTINEL_WORKSPACE_ID:
        msg = "The Unsaved workspace cannot be deleted"
        raise ProtectedEntityError(msg)

    async def _txn() -> bool:
        data = await store.get([StorageKey.WORKSPACES, StorageKey.ACTIVE_WORKSPACE_ID, *_CASCADE_KEYS])
        workspaces = parse_workspaces(data.get(StorageKey.WORKSPACES))
        require_workspace(workspaces, workspace_id)

        changes: dict[str, Any] = {
            StorageKey.WORKSPACES: _dump([w for w in workspaces if w.id != workspace_id]),
        }
        for key in _CASCADE_KEYS:
            collection = dict(data.get(key) or {})
            if collection.pop(workspace_id, None) is not None:
                changes[key] = collection

        was_active = data.get(StorageKey.ACTIVE_WORKSPACE_ID) == workspace_id
        if was_active:
            changes[StorageKey.ACTIVE_WORKSPACE_ID] = SENTINEL_WORKSPACE_ID

        await store.set(changes)
        return was_active

    was_active = await store.with_lock(STORAGE_LOCK, _txn)
    logger.info("Deleted workspace {}", workspace_id)
    return was_active


async def reorder_workspaces(store: KeyValueStore, dragged_id: str, target_id: str) -> list[Workspace]:
    """Move ``dragged_id`` to ``target_id``'s position and renumber ``order``.

    The sentinel keeps order 0 and can neither be dragged nor be a drop
    target.
    """
    if SENTINEL_WORKSPACE_ID in (dragged_id, target_id):
        msg = "The Unsaved workspace cannot be reordered"
        raise ProtectedEntityError(msg)

    async def _txn() -> list[Workspace]:
        workspaces = await _read_workspaces(store)
        dragged = require_workspace(workspaces, dragged_id)
        require_workspace(workspaces, target_id)
        if dragged_id == target_id:
            return workspaces

        ids = [w.id for w in workspaces]
        moving_down = ids.index(dragged_id) < ids.index(target_id)
        sentinels = [w for w in workspaces if w.is_sentinel]
        movable = [w for w in workspaces if not w.is_sentinel and w.id != dragged_id]
        target_index = next(i for i, w in enumerate(movable) if w.id == target_id)
        # The dragged workspace takes the target's slot.
        movable.insert(target_index + 1 if moving_down else target_index, dragged)

        renumbered = [w.model_copy(update={"order": 0}) for w in sentinels]
        renumbered += [w.model_copy(update={"order": i}) for i, w in enumerate(movable, start=1)]
        await store.set({StorageKey.WORKSPACES: _dump(renumbered)})
        return renumbered

    return await store.with_lock(STORAGE_LOCK, _txn)


# -- Scalars -------------------------------------------------------------------


async def get_active_workspace_id(store: KeyValueStore) -> str:
    """The active workspace id, or the sentinel if unset or dangling."""
    data = await store.get([StorageKey.ACTIVE_WORKSPACE_ID, StorageKey.WORKSPACES])
    active = data.get(StorageKey.ACTIVE_WORKSPACE_ID)
    if active is None:
        return SENTINEL_WORKSPACE_ID
    if active not in {w.id for w in parse_workspaces(data.get(StorageKey.WORKSPACES))}:
        return SENTINEL_WORKSPACE_ID
    return active


async def set_active_workspace_id(store: KeyValueStore, workspace_id: str) -> None:
    await store.set({StorageKey.ACTIVE_WORKSPACE_ID: workspace_id})


async def is_switching(store: KeyValueStore) -> bool:
    data = await store.get(StorageKey.IS_SWITCHING_WORKSPACE)
    return bool(data.get(StorageKey.IS_SWITCHING_WORKSPACE, False))


async def set_switching(store: KeyValueStore, value: bool) -> None:
    await store.set({StorageKey.IS_SWITCHING_WORKSPACE: value})
