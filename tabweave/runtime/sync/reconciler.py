"""Reconciliation between live tabs and a workspace's saved-tab list.

Each pass re-derives the saved list from a fresh query of the window rather
than applying deltas, so notifications may arrive late, twice or out of
order without corrupting state:

- live tabs missing from the saved list are appended (by url),
- saved entries with no live tab are dropped,
- surviving entries pick up the live title/domain/favicon but keep their
  ``id`` and ``savedAt``.

The pass writes only when the result differs from what is stored, so
running it twice in a row is a no-op.

Tab notifications are wired through ``attach``: creations and updates are
debounced per tab id, removals share one key so a burst of closes costs one
pass, moves re-check the anchor position.  Every handler does nothing while
the persisted switching guard is set.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from tabweave.runtime.errors import StoreError, TabOperationError
from tabweave.runtime.managers import saved_tabs as saved_tabs_manager
from tabweave.runtime.managers import workspaces as workspace_manager
from tabweave.runtime.models.enums import TabStatus
from tabweave.runtime.models.tab import Tab, TabChangeInfo, TabMoveInfo, TabRemoveInfo
from tabweave.runtime.models.workspace import SavedTab, extract_domain, now_ms
from tabweave.runtime.store.base import KeyValueStore
from tabweave.runtime.sync.anchor import AnchorEnforcer
from tabweave.runtime.sync.debounce import Debouncer
from tabweave.runtime.tabs.base import TabControl
from tabweave.runtime.tabs.events import TabEventBus, Unsubscribe
from tabweave.runtime.tabs.policy import UrlPolicy

REMOVED_KEY = "tabs:removed"


def tab_key(tab_id: int) -> str:
    return f"tab:{tab_id}"


def merge_saved_tabs(saved: Sequence[SavedTab], live: Sequence[Tab], now: int) -> list[SavedTab]:
    """Compute the saved list that mirrors ``live``.

    ``live`` must already be filtered to trackable tabs.  Survivors keep
    their saved order; new urls are appended in tab-strip order with
    ``savedAt = now``.
    """
    live_by_url: dict[str, Tab] = {}
    for tab in live:
        if tab.url:
            live_by_url.setdefault(tab.url, tab)

    result: list[SavedTab] = []
    seen: set[str] = set()
    for entry in saved:
        tab = live_by_url.get(entry.url)
        if tab is None or entry.url in seen:
            continue
        seen.add(entry.url)
        result.append(
            entry.model_copy(
                update={
                    "title": tab.title or entry.title,
                    "domain": extract_domain(entry.url),
                    "favicon": tab.fav_icon_url or entry.favicon,
                }
            )
        )

    for url, tab in live_by_url.items():
        if url in seen:
            continue
        seen.add(url)
        result.append(
            SavedTab(
                title=tab.title or "Untitled",
                url=url,
                domain=extract_domain(url),
                favicon=tab.fav_icon_url or "",
                saved_at=now,
            )
        )
    return result


class Reconciler:
    def __init__(
        self,
        store: KeyValueStore,
        tabs: TabControl,
        policy: UrlPolicy,
        *,
        debouncer: Debouncer,
        anchor: AnchorEnforcer,
    ) -> None:
        self._store = store
        self._tabs = tabs
        self._policy = policy
        self._debouncer = debouncer
        self._anchor = anchor
        self._unsubscribers: list[Unsubscribe] = []

    # -- Lifecycle -------------------------------------------------------------

    def init(self, bus: TabEventBus) -> None:
        """Start from a clean slate and subscribe to ``bus``."""
        self.reset()
        self.attach(bus)

    def reset(self) -> None:
        """Unsubscribe and drop every pending debounced pass."""
        self.detach()
        self._debouncer.cancel_all()

    def attach(self, bus: TabEventBus) -> None:
        self.detach()
        self._unsubscribers = [
            bus.on_tab_created(self.on_tab_created),
            bus.on_tab_updated(self.on_tab_updated),
            bus.on_tab_removed(self.on_tab_removed),
            bus.on_tab_moved(self.on_tab_moved),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    @property
    def attached(self) -> bool:
        return bool(self._unsubscribers)

    # -- Passes ----------------------------------------------------------------

    def is_trackable(self, tab: Tab) -> bool:
        return self._policy.is_trackable(tab)

    async def live_tabs(self) -> list[Tab]:
        """Trackable tabs of the current window, in strip order."""
        tabs = await self._tabs.query_tabs(current_window=True)
        return [t for t in tabs if self.is_trackable(t)]

    async def reconcile(self, workspace_id: str, *, only_if_active: bool = False) -> bool:
        """Bring ``workspace_id``'s saved list in line with the window.

        Returns whether anything was written.  Never raises for tab query or
        store failures; those abort the pass and leave storage untouched.
        With ``only_if_active`` the write is dropped if a switch started or
        finished while the window was being read.
        """
        try:
            live = await self.live_tabs()
        except TabOperationError as exc:
            logger.debug("Skipping reconcile of {}: tab query failed: {}", workspace_id, exc)
            return False

        now = now_ms()
        try:
            updated = await saved_tabs_manager.update_saved_tabs(
                self._store,
                workspace_id,
                lambda saved: merge_saved_tabs(saved, live, now),
                only_if_active=only_if_active,
            )
        except StoreError:
            logger.exception("Reconcile of {} failed", workspace_id)
            return False

        if updated is None:
            return False
        logger.debug("Reconciled {}: {} saved tab(s)", workspace_id, len(updated))
        return True

    async def snapshot(self, workspace_id: str, live: Sequence[Tab]) -> list[SavedTab]:
        """Persist ``live`` as the workspace's saved list, even when empty.

        Unlike ``reconcile`` this always writes and lets ``StoreError``
        propagate to the caller.
        """
        trackable = [t for t in live if self.is_trackable(t)]
        now = now_ms()
        written = await saved_tabs_manager.update_saved_tabs(
            self._store,
            workspace_id,
            lambda saved: merge_saved_tabs(saved, trackable, now),
            force=True,
        )
        return written or []

    async def reconcile_active(self) -> bool:
        """Reconcile whichever workspace is active, unless a switch is running."""
        try:
            if await workspace_manager.is_switching(self._store):
                return False
            workspace_id = await workspace_manager.get_active_workspace_id(self._store)
        except StoreError:
            logger.exception("Could not resolve the active workspace")
            return False
        return await self.reconcile(workspace_id, only_if_active=True)

    # -- Notification handlers -------------------------------------------------

    async def on_tab_created(self, tab: Tab) -> None:
        if await self._suppressed():
            return
        if self._policy.is_anchor(tab.url):
            await self._anchor.pin_to_anchor_position(tab.id, hot=True)
            return
        self._debouncer.schedule(tab_key(tab.id), self.reconcile_active)

    async def on_tab_updated(self, tab_id: int, change_info: TabChangeInfo, tab: Tab) -> None:
        settled = change_info.status == TabStatus.COMPLETE or change_info.url is not None
        if not settled and change_info.pinned is None:
            return
        if await self._suppressed():
            return
        if self._policy.is_anchor(tab.url):
            # An unpin need not move the tab, so no move notification may follow.
            if settled or change_info.pinned is False:
                await self._anchor.pin_to_anchor_position(tab_id, hot=True)
            return
        self._debouncer.schedule(tab_key(tab_id), self.reconcile_active)

    async def on_tab_removed(self, tab_id: int, remove_info: TabRemoveInfo) -> None:
        self._debouncer.cancel(tab_key(tab_id))
        if remove_info.is_window_closing:
            # Closing the window is not the user discarding its tabs.
            return
        if await self._suppressed():
            return
        self._debouncer.schedule(REMOVED_KEY, self.reconcile_active)

    async def on_tab_moved(self, tab_id: int, move_info: TabMoveInfo) -> None:
        if await self._suppressed():
            return
        await self._anchor.ensure_anchor_position()

    async def _suppressed(self) -> bool:
        try:
            return await workspace_manager.is_switching(self._store)
        except StoreError:
            logger.exception("Could not read the switching guard")
            return True
