"""Tests for workspace CRUD, ordering and the scalar flags."""

from __future__ import annotations

import pytest

from tabweave.runtime.errors import DuplicateWorkspaceError, ProtectedEntityError, WorkspaceNotFoundError
from tabweave.runtime.managers import collections as collection_manager
from tabweave.runtime.managers import saved_tabs as saved_tabs_manager
from tabweave.runtime.managers import workspaces as workspace_manager
from tabweave.runtime.models.api import ResourceCreate, SavedTabCreate, WorkspaceCreate, WorkspaceUpdate
from tabweave.runtime.models.enums import StorageKey
from tabweave.runtime.models.workspace import SENTINEL_WORKSPACE_ID
from tabweave.runtime.tabs.policy import UrlPolicy


@pytest.fixture
async def store(store):
    await workspace_manager.initialize(store)
    return store


async def _add(store, name: str) -> str:
    return (await workspace_manager.add_workspace(store, WorkspaceCreate(name=name))).id


async def _names(store) -> list[str]:
    return [w.name for w in await workspace_manager.list_workspaces(store)]


# -- initialize ----------------------------------------------------------------


async def test_initialize_creates_sentinel(store):
    workspaces = await workspace_manager.list_workspaces(store)
    assert [w.id for w in workspaces] == [SENTINEL_WORKSPACE_ID]
    assert workspaces[0].order == 0
    assert workspaces[0].is_sentinel
    assert await workspace_manager.get_active_workspace_id(store) == SENTINEL_WORKSPACE_ID


async def test_initialize_is_idempotent(store):
    first = await store.get(StorageKey.WORKSPACES)
    await workspace_manager.initialize(store)
    assert await store.get(StorageKey.WORKSPACES) == first


async def test_initialize_repairs_dangling_active_id(store):
    await store.set({StorageKey.ACTIVE_WORKSPACE_ID: "ws-gone"})
    await workspace_manager.initialize(store)
    data = await store.get(StorageKey.ACTIVE_WORKSPACE_ID)
    assert data[StorageKey.ACTIVE_WORKSPACE_ID] == SENTINEL_WORKSPACE_ID


async def test_active_id_falls_back_without_writing(store):
    await store.set({StorageKey.ACTIVE_WORKSPACE_ID: "ws-gone"})
    assert await workspace_manager.get_active_workspace_id(store) == SENTINEL_WORKSPACE_ID
    data = await store.get(StorageKey.ACTIVE_WORKSPACE_ID)
    assert data[StorageKey.ACTIVE_WORKSPACE_ID] == "ws-gone"


# -- CRUD ----------------------------------------------------------------------


async def test_add_appends_with_increasing_order(store):
    a = await workspace_manager.add_workspace(store, WorkspaceCreate(name="A"))
    b = await workspace_manager.add_workspace(store, WorkspaceCreate(name="B", color="bg-red-500"))

    assert (a.order, b.order) == (1, 2)
    assert a.id.startswith("ws-")
    assert b.color == "bg-red-500"
    assert await _names(store) == ["Unsaved", "A", "B"]


async def test_add_with_explicit_id(store):
    ws = await workspace_manager.add_workspace(store, WorkspaceCreate(id="work", name="Work"))
    assert ws.id == "work"
    with pytest.raises(DuplicateWorkspaceError):
        await workspace_manager.add_workspace(store, WorkspaceCreate(id="work", name="Again"))


async def test_stored_layout_is_camel_case(store):
    await _add(store, "A")
    raw = (await store.get(StorageKey.WORKSPACES))[StorageKey.WORKSPACES]
    assert {"id", "name", "color", "icon", "order", "createdAt", "updatedAt"} <= set(raw[1])


async def test_get_missing_raises(store):
    with pytest.raises(WorkspaceNotFoundError):
        await workspace_manager.get_workspace(store, "nope")


async def test_update_applies_only_set_fields(store):
    ws_id = await _add(store, "A")
    before = await workspace_manager.get_workspace(store, ws_id)

    updated = await workspace_manager.update_workspace(store, ws_id, WorkspaceUpdate(name="Renamed"))

    assert updated.name == "Renamed"
    assert updated.color == before.color
    assert updated.updated_at >= before.updated_at
    assert (await workspace_manager.get_workspace(store, ws_id)).name == "Renamed"


async def test_update_missing_raises(store):
    with pytest.raises(WorkspaceNotFoundError):
        await workspace_manager.update_workspace(store, "nope", WorkspaceUpdate(name="x"))


async def test_delete_cascades(store):
    ws_id = await _add(store, "A")
    other_id = await _add(store, "B")
    policy = UrlPolicy(anchor_url="chrome-extension://tabweave/newtab/index.html")
    for target in (ws_id, other_id):
        await saved_tabs_manager.add_tab_to_workspace(
            store, target, SavedTabCreate(url="https://a.com/"), policy=policy
        )
        await collection_manager.add_resource(store, target, ResourceCreate(url="https://docs.com/"))
        await collection_manager.save_note(store, target, "note")
        await collection_manager.add_todo(store, target, "todo")

    was_active = await workspace_manager.delete_workspace(store, ws_id)

    assert was_active is False
    assert await _names(store) == ["Unsaved", "B"]
    data = await store.get(None)
    for key in (StorageKey.SAVED_TABS, StorageKey.RESOURCES, StorageKey.NOTES, StorageKey.TODOS):
        assert ws_id not in data[key]
        assert other_id in data[key]


async def test_delete_active_falls_back_to_sentinel(store):
    ws_id = await _add(store, "A")
    await workspace_manager.set_active_workspace_id(store, ws_id)

    assert await workspace_manager.delete_workspace(store, ws_id) is True
    assert await workspace_manager.get_active_workspace_id(store) == SENTINEL_WORKSPACE_ID


async def test_delete_sentinel_is_rejected(store):
    await _add(store, "A")
    before = await store.get(None)

    with pytest.raises(ProtectedEntityError):
        await workspace_manager.delete_workspace(store, SENTINEL_WORKSPACE_ID)

    assert await store.get(None) == before


async def test_delete_missing_raises(store):
    with pytest.raises(WorkspaceNotFoundError):
        await workspace_manager.delete_workspace(store, "nope")


# -- Reorder -------------------------------------------------------------------


async def test_reorder_moving_down(store):
    a, _b, c = [await _add(store, name) for name in ("A", "B", "C")]

    result = await workspace_manager.reorder_workspaces(store, a, c)

    assert [w.name for w in result] == ["Unsaved", "B", "C", "A"]
    assert [w.order for w in result] == [0, 1, 2, 3]
    assert await _names(store) == ["Unsaved", "B", "C", "A"]


async def test_reorder_moving_up(store):
    a, _b, c = [await _add(store, name) for name in ("A", "B", "C")]

    await workspace_manager.reorder_workspaces(store, c, a)

    assert await _names(store) == ["Unsaved", "C", "A", "B"]


async def test_reorder_onto_itself_is_noop(store):
    a = await _add(store, "A")
    await _add(store, "B")
    before = await store.get(StorageKey.WORKSPACES)

    await workspace_manager.reorder_workspaces(store, a, a)

    assert await store.get(StorageKey.WORKSPACES) == before


async def test_reorder_sentinel_is_rejected(store):
    a = await _add(store, "A")
    with pytest.raises(ProtectedEntityError):
        await workspace_manager.reorder_workspaces(store, SENTINEL_WORKSPACE_ID, a)
    with pytest.raises(ProtectedEntityError):
        await workspace_manager.reorder_workspaces(store, a, SENTINEL_WORKSPACE_ID)


async def test_reorder_unknown_raises(store):
    a = await _add(store, "A")
    with pytest.raises(WorkspaceNotFoundError):
        await workspace_manager.reorder_workspaces(store, a, "nope")


# -- Scalars -------------------------------------------------------------------


async def test_switching_flag(store):
    assert await workspace_manager.is_switching(store) is False
    await workspace_manager.set_switching(store, True)
    assert await workspace_manager.is_switching(store) is True
    await workspace_manager.set_switching(store, False)
    assert await workspace_manager.is_switching(store) is False
