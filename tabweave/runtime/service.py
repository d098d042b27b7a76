"""Composition root for the sync engine.

``TabSyncService`` wires one store and one tab control surface to the
debouncer, reconciler, anchor enforcer and switch coordinator, and exposes
the operations the UI calls.  UI operations propagate errors; background
work (notification handlers, debounced passes) logs and swallows them.
"""

from __future__ import annotations

from loguru import logger

from tabweave.runtime.errors import SavedTabNotFoundError, TabOperationError
from tabweave.runtime.managers import collections as collection_manager
from tabweave.runtime.managers import saved_tabs as saved_tabs_manager
from tabweave.runtime.managers import workspaces as workspace_manager
from tabweave.runtime.migration import migrate_store
from tabweave.runtime.models.api import ResourceCreate, SavedTabCreate, WorkspaceCreate, WorkspaceUpdate
from tabweave.runtime.models.tab import Tab
from tabweave.runtime.models.workspace import SENTINEL_WORKSPACE_ID, Resource, SavedTab, Todo, Workspace
from tabweave.runtime.settings import TabweaveSettings
from tabweave.runtime.store.base import KeyValueStore
from tabweave.runtime.sync.anchor import AnchorEnforcer
from tabweave.runtime.sync.coordinator import SwitchCoordinator, SwitchResult
from tabweave.runtime.sync.debounce import Debouncer
from tabweave.runtime.sync.reconciler import Reconciler
from tabweave.runtime.sync.retry import tab_retry_policy
from tabweave.runtime.tabs.base import TabControl, TabMirror
from tabweave.runtime.tabs.events import TabEventBus
from tabweave.runtime.tabs.policy import UrlPolicy


class TabSyncService:
    def __init__(
        self,
        store: KeyValueStore,
        tabs: TabControl,
        bus: TabEventBus,
        settings: TabweaveSettings,
        *,
        legacy_store: KeyValueStore | None = None,
    ) -> None:
        self.store = store
        self.tabs = tabs
        self.bus = bus
        self.settings = settings
        self.policy = UrlPolicy.from_settings(settings)
        self._legacy_store = legacy_store

        self.debouncer = Debouncer(settings.debounce_delay)
        self.anchor = AnchorEnforcer(
            tabs,
            self.policy,
            retry=tab_retry_policy(settings.anchor_max_attempts, settings.anchor_retry_delay_ms / 1000),
            hot_retry=tab_retry_policy(settings.anchor_hot_max_attempts, settings.anchor_hot_retry_delay_ms / 1000),
        )
        self.reconciler = Reconciler(store, tabs, self.policy, debouncer=self.debouncer, anchor=self.anchor)
        self.coordinator = SwitchCoordinator(
            store,
            tabs,
            self.policy,
            reconciler=self.reconciler,
            min_duration=settings.switch_min_duration,
            release_delay=settings.switch_release_delay,
        )
        self._started = False

    # -- Lifecycle -------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Migrate legacy data, ensure the sentinel, subscribe, fix the anchor."""
        if self._started:
            return
        if self._legacy_store is not None:
            await migrate_store(self._legacy_store, self.store)
        await workspace_manager.initialize(self.store)
        self.reconciler.init(self.bus)
        await self.anchor.ensure_anchor_position()
        self._started = True
        logger.info("Tab sync started (active workspace={})", await self.get_active_workspace_id())

    async def stop(self) -> None:
        """Unsubscribe and cancel pending passes and anchor enforcement."""
        self.reconciler.reset()
        self.anchor.cancel_all()
        self._started = False
        logger.info("Tab sync stopped")

    async def wait_idle(self) -> None:
        """Wait for armed debounce timers and in-flight anchor enforcement."""
        while self.debouncer.pending_keys:
            await self.debouncer.wait_idle()
            await self.anchor.wait_idle()
        await self.anchor.wait_idle()

    @property
    def relay(self) -> TabMirror:
        """The tab surface that records notifications relayed from a browser."""
        if not isinstance(self.tabs, TabMirror):
            msg = f"{type(self.tabs).__name__} does not accept relayed tab notifications."
            raise TabOperationError(msg)
        return self.tabs

    # -- Workspaces ------------------------------------------------------------

    async def list_workspaces(self) -> list[Workspace]:
        return await workspace_manager.list_workspaces(self.store)

    async def get_workspace(self, workspace_id: str) -> Workspace:
        return await workspace_manager.get_workspace(self.store, workspace_id)

    async def get_active_workspace_id(self) -> str:
        return await workspace_manager.get_active_workspace_id(self.store)

    async def is_switching(self) -> bool:
        return self.coordinator.is_switching or await workspace_manager.is_switching(self.store)

    async def switch_workspace(self, workspace_id: str) -> SwitchResult:
        return await self.coordinator.switch_workspace(workspace_id)

    async def add_workspace(self, body: WorkspaceCreate, *, switch: bool = False) -> Workspace:
        """Create a workspace, optionally switching the window to it."""
        workspace = await workspace_manager.add_workspace(self.store, body)
        if switch:
            await self.switch_workspace(workspace.id)
        return workspace

    async def update_workspace(self, workspace_id: str, body: WorkspaceUpdate) -> Workspace:
        return await workspace_manager.update_workspace(self.store, workspace_id, body)

    async def delete_workspace(self, workspace_id: str) -> None:
        """Delete a workspace.  Its open tabs, if it was active, fall to the sentinel."""
        was_active = await workspace_manager.delete_workspace(self.store, workspace_id)
        if was_active:
            await self.reconciler.reconcile(SENTINEL_WORKSPACE_ID)

    async def reorder_workspaces(self, dragged_id: str, target_id: str) -> list[Workspace]:
        return await workspace_manager.reorder_workspaces(self.store, dragged_id, target_id)

    # -- Saved tabs ------------------------------------------------------------

    async def get_saved_tabs(self, workspace_id: str) -> list[SavedTab]:
        await self.get_workspace(workspace_id)
        return await saved_tabs_manager.get_saved_tabs(self.store, workspace_id)

    async def add_tab_to_workspace(self, workspace_id: str, body: SavedTabCreate) -> SavedTab:
        return await saved_tabs_manager.add_tab_to_workspace(self.store, workspace_id, body, policy=self.policy)

    async def move_tab_between_workspaces(self, from_id: str, to_id: str, tab_id: str) -> SavedTab:
        """Move a saved tab; the live window follows if either side is active."""
        moved = await saved_tabs_manager.move_tab_between_workspaces(self.store, from_id, to_id, tab_id)
        if from_id == to_id:
            return moved

        active_id = await self.get_active_workspace_id()
        if from_id == active_id:
            await self._close_live(moved.url)
        elif to_id == active_id and not await self._live_with_url(moved.url):
            await self.tabs.create_tab(moved.url, active=False)
        return moved

    async def delete_saved_tab(self, workspace_id: str, tab_id: str) -> SavedTab:
        """Remove a saved tab, closing it if its workspace is on screen."""
        removed = await saved_tabs_manager.remove_saved_tab(self.store, workspace_id, tab_id)
        if workspace_id == await self.get_active_workspace_id():
            await self._close_live(removed.url)
        return removed

    async def _live_with_url(self, url: str) -> list[Tab]:
        tabs = await self.tabs.query_tabs(current_window=True)
        return [t for t in tabs if t.url == url and self.reconciler.is_trackable(t)]

    async def _close_live(self, url: str) -> None:
        live = await self._live_with_url(url)
        if live:
            await self.tabs.remove_tabs([t.id for t in live])

    # -- Resources / notes / todos ---------------------------------------------

    async def get_resources(self, workspace_id: str) -> list[Resource]:
        return await collection_manager.get_resources(self.store, workspace_id)

    async def add_resource(self, workspace_id: str, body: ResourceCreate) -> Resource:
        return await collection_manager.add_resource(self.store, workspace_id, body)

    async def delete_resource(self, workspace_id: str, resource_id: str) -> None:
        await collection_manager.delete_resource(self.store, workspace_id, resource_id)

    async def move_resource_between_workspaces(self, from_id: str, to_id: str, resource_id: str) -> Resource:
        return await collection_manager.move_resource_between_workspaces(self.store, from_id, to_id, resource_id)

    async def convert_tab_to_resource(self, workspace_id: str, tab_id: str) -> Resource:
        tabs = await self.get_saved_tabs(workspace_id)
        tab = next((t for t in tabs if t.id == tab_id), None)
        if tab is None:
            msg = f"Tab {tab_id} not found in workspace {workspace_id}"
            raise SavedTabNotFoundError(msg)
        return await collection_manager.convert_tab_to_resource(self.store, workspace_id, tab)

    async def get_note(self, workspace_id: str) -> str:
        return await collection_manager.get_note(self.store, workspace_id)

    async def save_note(self, workspace_id: str, content: str) -> str:
        return await collection_manager.save_note(self.store, workspace_id, content)

    async def get_todos(self, workspace_id: str) -> list[Todo]:
        return await collection_manager.get_todos(self.store, workspace_id)

    async def add_todo(self, workspace_id: str, text: str) -> Todo:
        return await collection_manager.add_todo(self.store, workspace_id, text)

    async def toggle_todo(self, workspace_id: str, todo_id: str) -> Todo:
        return await collection_manager.toggle_todo(self.store, workspace_id, todo_id)

    async def delete_todo(self, workspace_id: str, todo_id: str) -> None:
        await collection_manager.delete_todo(self.store, workspace_id, todo_id)

    # -- Anchor ----------------------------------------------------------------

    async def open_anchor_tab(self) -> Tab:
        return await self.anchor.open_anchor_tab()
