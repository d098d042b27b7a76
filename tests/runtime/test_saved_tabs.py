"""Tests for saved-tab operations."""

from __future__ import annotations

import pytest

from tabweave.runtime.errors import SavedTabNotFoundError, UnsavableTabError, WorkspaceNotFoundError
from tabweave.runtime.managers import saved_tabs as saved_tabs_manager
from tabweave.runtime.managers import workspaces as workspace_manager
from tabweave.runtime.models.api import SavedTabCreate, WorkspaceCreate
from tabweave.runtime.models.enums import StorageKey
from tabweave.runtime.models.workspace import SENTINEL_WORKSPACE_ID, SavedTab
from tabweave.runtime.tabs.policy import UrlPolicy


@pytest.fixture
def policy(settings) -> UrlPolicy:
    return UrlPolicy.from_settings(settings)


@pytest.fixture
async def workspace_id(store) -> str:
    await workspace_manager.initialize(store)
    return (await workspace_manager.add_workspace(store, WorkspaceCreate(name="Work"))).id


async def _urls(store, workspace_id: str) -> list[str]:
    return [t.url for t in await saved_tabs_manager.get_saved_tabs(store, workspace_id)]


def test_dedupe_keeps_first_occurrence():
    tabs = [
        SavedTab(id="1", url="https://a.com/"),
        SavedTab(id="2", url="https://b.com/"),
        SavedTab(id="3", url="https://a.com/"),
    ]
    assert [t.id for t in saved_tabs_manager.dedupe_by_url(tabs)] == ["1", "2"]


def test_merge_into_keeps_id_and_prefers_incoming_fields():
    tabs = [SavedTab(id="old", url="https://a.com/", title="Old", favicon="old.ico")]
    incoming = SavedTab(id="new", url="https://a.com/", title="New", favicon="")

    merged = saved_tabs_manager.merge_into(tabs, incoming)

    assert merged.id == "old"
    assert merged.title == "New"
    assert merged.favicon == "old.ico"
    assert len(tabs) == 1


async def test_add_tab_fills_defaults(store, workspace_id, policy):
    saved = await saved_tabs_manager.add_tab_to_workspace(
        store, workspace_id, SavedTabCreate(url="https://www.example.com/page"), policy=policy
    )

    assert saved.title == "Untitled"
    assert saved.domain == "example.com"
    assert saved.saved_at > 0
    raw = (await store.get(StorageKey.SAVED_TABS))[StorageKey.SAVED_TABS][workspace_id][0]
    assert raw["savedAt"] == saved.saved_at


async def test_add_same_url_merges(store, workspace_id, policy):
    first = await saved_tabs_manager.add_tab_to_workspace(
        store, workspace_id, SavedTabCreate(url="https://a.com/", title="A"), policy=policy
    )
    second = await saved_tabs_manager.add_tab_to_workspace(
        store, workspace_id, SavedTabCreate(url="https://a.com/", title="A again"), policy=policy
    )

    assert second.id == first.id
    tabs = await saved_tabs_manager.get_saved_tabs(store, workspace_id)
    assert [(t.url, t.title) for t in tabs] == [("https://a.com/", "A again")]


@pytest.mark.parametrize(
    "url",
    [
        "chrome-extension://tabweave/newtab/index.html",
        "chrome://settings",
        "about:blank",
    ],
)
async def test_add_unsavable_url_rejected(store, workspace_id, policy, url):
    with pytest.raises(UnsavableTabError):
        await saved_tabs_manager.add_tab_to_workspace(store, workspace_id, SavedTabCreate(url=url), policy=policy)
    assert await _urls(store, workspace_id) == []


async def test_add_to_missing_workspace_raises(store, workspace_id, policy):
    with pytest.raises(WorkspaceNotFoundError):
        await saved_tabs_manager.add_tab_to_workspace(
            store, "nope", SavedTabCreate(url="https://a.com/"), policy=policy
        )


async def test_update_saved_tabs_dedupes_and_accepts_empty(store, workspace_id):
    tabs = [SavedTab(url="https://a.com/"), SavedTab(url="https://b.com/"), SavedTab(url="https://a.com/")]
    written = await saved_tabs_manager.update_saved_tabs(store, workspace_id, lambda _: tabs)

    assert [t.url for t in written] == ["https://a.com/", "https://b.com/"]
    assert await _urls(store, workspace_id) == ["https://a.com/", "https://b.com/"]

    await saved_tabs_manager.update_saved_tabs(store, workspace_id, lambda _: [])
    assert await _urls(store, workspace_id) == []


async def test_get_saved_tabs_repairs_duplicates(store, workspace_id):
    duplicated = [
        SavedTab(id="1", url="https://a.com/").to_storage(),
        SavedTab(id="2", url="https://a.com/").to_storage(),
    ]
    await store.set({StorageKey.SAVED_TABS: {workspace_id: duplicated}})

    tabs = await saved_tabs_manager.get_saved_tabs(store, workspace_id)

    assert [t.id for t in tabs] == ["1"]
    raw = (await store.get(StorageKey.SAVED_TABS))[StorageKey.SAVED_TABS][workspace_id]
    assert [t["id"] for t in raw] == ["1"]


async def test_update_saved_tabs_skips_unchanged(store, workspace_id):
    await saved_tabs_manager.update_saved_tabs(store, workspace_id, lambda _: [SavedTab(url="https://a.com/")])

    assert await saved_tabs_manager.update_saved_tabs(store, workspace_id, lambda tabs: tabs) is None
    forced = await saved_tabs_manager.update_saved_tabs(store, workspace_id, lambda tabs: tabs, force=True)
    assert [t.url for t in forced] == ["https://a.com/"]


async def test_update_saved_tabs_of_deleted_workspace(store, workspace_id):
    await workspace_manager.delete_workspace(store, workspace_id)
    result = await saved_tabs_manager.update_saved_tabs(
        store, workspace_id, lambda tabs: [SavedTab(url="https://a.com/")], force=True
    )
    assert result is None
    assert workspace_id not in (await store.get(StorageKey.SAVED_TABS)).get(StorageKey.SAVED_TABS, {})


async def test_remove_saved_tab(store, workspace_id, policy):
    a = await saved_tabs_manager.add_tab_to_workspace(
        store, workspace_id, SavedTabCreate(url="https://a.com/"), policy=policy
    )
    await saved_tabs_manager.add_tab_to_workspace(store, workspace_id, SavedTabCreate(url="https://b.com/"), policy=policy)

    removed = await saved_tabs_manager.remove_saved_tab(store, workspace_id, a.id)

    assert removed.url == "https://a.com/"
    assert await _urls(store, workspace_id) == ["https://b.com/"]
    with pytest.raises(SavedTabNotFoundError):
        await saved_tabs_manager.remove_saved_tab(store, workspace_id, a.id)


async def test_move_between_workspaces_merges_into_target(store, workspace_id, policy):
    target_id = SENTINEL_WORKSPACE_ID
    existing = await saved_tabs_manager.add_tab_to_workspace(
        store, target_id, SavedTabCreate(url="https://a.com/", title="Target copy"), policy=policy
    )
    moving = await saved_tabs_manager.add_tab_to_workspace(
        store, workspace_id, SavedTabCreate(url="https://a.com/", title="Moved copy"), policy=policy
    )

    moved = await saved_tabs_manager.move_tab_between_workspaces(store, workspace_id, target_id, moving.id)

    assert moved.id == existing.id
    assert moved.title == "Moved copy"
    assert await _urls(store, workspace_id) == []
    assert await _urls(store, target_id) == ["https://a.com/"]


async def test_move_to_same_workspace_is_noop(store, workspace_id, policy):
    tab = await saved_tabs_manager.add_tab_to_workspace(
        store, workspace_id, SavedTabCreate(url="https://a.com/"), policy=policy
    )
    moved = await saved_tabs_manager.move_tab_between_workspaces(store, workspace_id, workspace_id, tab.id)
    assert moved == tab
    assert await _urls(store, workspace_id) == ["https://a.com/"]


async def test_move_unknown_tab_raises(store, workspace_id):
    with pytest.raises(SavedTabNotFoundError):
        await saved_tabs_manager.move_tab_between_workspaces(store, workspace_id, SENTINEL_WORKSPACE_ID, "nope")


async def test_update_saved_tabs_only_if_active(store, workspace_id):
    def replace(_tabs):
        return [SavedTab(url="https://a.com/")]

    assert await saved_tabs_manager.update_saved_tabs(store, workspace_id, replace, only_if_active=True) is None

    await workspace_manager.set_active_workspace_id(store, workspace_id)
    await workspace_manager.set_switching(store, True)
    assert await saved_tabs_manager.update_saved_tabs(store, workspace_id, replace, only_if_active=True) is None
    assert await _urls(store, workspace_id) == []

    await workspace_manager.set_switching(store, False)
    written = await saved_tabs_manager.update_saved_tabs(store, workspace_id, replace, only_if_active=True)
    assert [t.url for t in written] == ["https://a.com/"]
