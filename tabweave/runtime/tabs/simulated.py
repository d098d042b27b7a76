"""In-process browser window.

``SimulatedWindow`` implements ``TabControl`` over an ordered list of tabs and
publishes notifications on a ``TabEventBus`` the way a browser does: after
the call that caused them, asynchronously, one task per notification.

Ordering rules follow the browser's tab strip:

- Pinned tabs form a contiguous block at the start of the strip.
- Pinning a tab moves it to the end of the pinned block; unpinning moves it
  to the start of the unpinned block.
- ``move_tab`` clamps the target index to the tab's own block.

The ``open_tab`` / ``navigate`` / ``close_tab`` / ``drag_tab`` / ``activate``
helpers play the part of the user.  ``drag_tab`` can also hold the strip in
a "user is dragging" state for a number of subsequent API edits, which then
fail with ``TabDraggingError``.

The window is also a ``TabMirror``: when a real browser relays its
notifications through the ``apply_*`` methods, the strip follows the
browser's reported state before each notification is published.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Sequence

from loguru import logger

from tabweave.runtime.errors import TabDraggingError, TabNotFoundError
from tabweave.runtime.models.enums import TabStatus
from tabweave.runtime.models.tab import Tab, TabActiveInfo, TabChangeInfo, TabMoveInfo, TabRemoveInfo
from tabweave.runtime.models.workspace import extract_domain
from tabweave.runtime.tabs.events import TabEventBus


class SimulatedWindow:
    """Single browser window backed by an in-memory tab strip."""

    def __init__(self, bus: TabEventBus | None = None, *, window_id: int = 1, first_tab_id: int = 1) -> None:
        self.bus = bus or TabEventBus()
        self.window_id = window_id
        self._tabs: list[Tab] = []
        self._next_id = first_tab_id
        self._busy_edits = 0
        self._deliveries: set[asyncio.Task[None]] = set()

    # -- TabControl ------------------------------------------------------------

    async def query_tabs(
        self,
        *,
        current_window: bool = True,
        pinned: bool | None = None,
        url: str | None = None,
    ) -> list[Tab]:
        tabs = self._tabs
        if pinned is not None:
            tabs = [t for t in tabs if t.pinned == pinned]
        if url is not None:
            tabs = [t for t in tabs if t.url == url]
        return [t.model_copy() for t in tabs]

    async def get_tab(self, tab_id: int) -> Tab:
        return self._find(tab_id).model_copy()

    async def create_tab(self, url: str, *, active: bool = True, pinned: bool = False) -> Tab:
        tab = Tab(
            id=self._next_id,
            index=0,
            window_id=self.window_id,
            url=url,
            title=_title_for(url),
            pinned=pinned,
            status=TabStatus.LOADING,
        )
        self._next_id += 1
        position = self._pinned_count() if pinned else len(self._tabs)
        self._tabs.insert(position, tab)
        self._reindex()
        self._notify(self.bus.emit_created(tab.model_copy()))

        if active:
            self._set_active(tab)
        self._finish_loading(tab)
        return tab.model_copy()

    async def remove_tabs(self, tab_ids: Sequence[int]) -> None:
        targets = [self._find(tab_id) for tab_id in tab_ids]
        for tab in targets:
            self._detach(tab)

    async def update_tab(self, tab_id: int, *, active: bool | None = None, pinned: bool | None = None) -> Tab:
        tab = self._find(tab_id)
        if pinned is not None and pinned != tab.pinned:
            self._check_editable()
            from_index = tab.index
            self._tabs.remove(tab)
            tab.pinned = pinned
            # Lands on the pinned/unpinned boundary either way.
            self._tabs.insert(self._pinned_count(), tab)
            self._reindex()
            self._notify(self.bus.emit_updated(tab.id, TabChangeInfo(pinned=pinned), tab.model_copy()))
            if tab.index != from_index:
                self._notify_moved(tab, from_index)
        if active:
            self._set_active(tab)
        return tab.model_copy()

    async def move_tab(self, tab_id: int, *, index: int) -> Tab:
        tab = self._find(tab_id)
        self._check_editable()
        self._move(tab, index)
        return tab.model_copy()

    # -- User actions ----------------------------------------------------------

    async def open_tab(self, url: str, *, active: bool = True, pinned: bool = False) -> Tab:
        return await self.create_tab(url, active=active, pinned=pinned)

    async def navigate(self, tab_id: int, url: str, *, redirects: Sequence[str] = ()) -> Tab:
        """Load ``url`` in an existing tab, passing through ``redirects`` first."""
        tab = self._find(tab_id)
        for hop in [*redirects, url]:
            tab.url = hop
            tab.title = _title_for(hop)
            tab.status = TabStatus.LOADING
            self._notify(
                self.bus.emit_updated(
                    tab.id,
                    TabChangeInfo(status=TabStatus.LOADING, url=hop),
                    tab.model_copy(),
                )
            )
        self._finish_loading(tab)
        return tab.model_copy()

    async def close_tab(self, tab_id: int) -> None:
        self._detach(self._find(tab_id))

    async def drag_tab(self, tab_id: int, index: int, *, hold_for: int = 0) -> Tab:
        """Drag a tab to ``index``; keep the strip locked for ``hold_for`` API edits."""
        tab = self._find(tab_id)
        self._move(tab, index)
        self._busy_edits = hold_for
        return tab.model_copy()

    async def activate(self, tab_id: int) -> Tab:
        tab = self._find(tab_id)
        self._set_active(tab)
        return tab.model_copy()

    # -- Relayed browser notifications ----------------------------------------

    async def apply_created(self, tab: Tab) -> None:
        self._upsert(tab)
        await self.bus.emit_created(tab.model_copy())

    async def apply_updated(self, tab_id: int, change_info: TabChangeInfo, tab: Tab) -> None:
        self._upsert(tab.model_copy(update={"id": tab_id}))
        await self.bus.emit_updated(tab_id, change_info, tab.model_copy())

    async def apply_removed(self, tab_id: int, remove_info: TabRemoveInfo) -> None:
        tab = self._get(tab_id)
        if tab is not None:
            self._tabs.remove(tab)
            self._reindex()
        await self.bus.emit_removed(tab_id, remove_info)

    async def apply_moved(self, tab_id: int, move_info: TabMoveInfo) -> None:
        tab = self._get(tab_id)
        if tab is not None:
            self._tabs.remove(tab)
            self._tabs.insert(max(0, min(move_info.to_index, len(self._tabs))), tab)
            self._reindex()
        await self.bus.emit_moved(tab_id, move_info)

    async def apply_activated(self, active_info: TabActiveInfo) -> None:
        if self._get(active_info.tab_id) is not None:
            for tab in self._tabs:
                tab.active = tab.id == active_info.tab_id
        await self.bus.emit_activated(active_info)

    # -- Introspection ---------------------------------------------------------

    @property
    def tabs(self) -> list[Tab]:
        return [t.model_copy() for t in self._tabs]

    @property
    def urls(self) -> list[str | None]:
        return [t.url for t in self._tabs]

    @property
    def active_tab(self) -> Tab | None:
        for tab in self._tabs:
            if tab.active:
                return tab.model_copy()
        return None

    async def drain_events(self) -> None:
        """Wait until every notification published so far has been delivered."""
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    @property
    def has_pending_events(self) -> bool:
        return bool(self._deliveries)

    # -- Internals -------------------------------------------------------------

    def _get(self, tab_id: int) -> Tab | None:
        for tab in self._tabs:
            if tab.id == tab_id:
                return tab
        return None

    def _find(self, tab_id: int) -> Tab:
        tab = self._get(tab_id)
        if tab is not None:
            return tab
        msg = f"No tab with id: {tab_id}."
        raise TabNotFoundError(msg)

    def _check_editable(self) -> None:
        if self._busy_edits > 0:
            self._busy_edits -= 1
            msg = "Tabs cannot be edited right now (user may be dragging a tab)."
            raise TabDraggingError(msg)

    def _pinned_count(self) -> int:
        return sum(1 for t in self._tabs if t.pinned)

    def _reindex(self) -> None:
        for i, tab in enumerate(self._tabs):
            tab.index = i

    def _move(self, tab: Tab, index: int) -> None:
        pinned_count = self._pinned_count()
        if tab.pinned:
            low, high = 0, pinned_count - 1
        else:
            low, high = pinned_count, len(self._tabs) - 1
        target = high if index < 0 else max(low, min(index, high))
        from_index = tab.index
        if target == from_index:
            return
        self._tabs.remove(tab)
        self._tabs.insert(target, tab)
        self._reindex()
        self._notify_moved(tab, from_index)

    def _upsert(self, tab: Tab) -> None:
        """Place a relayed tab at its reported index, replacing any older copy."""
        stored = tab.model_copy()
        existing = self._get(stored.id)
        if existing is not None:
            self._tabs.remove(existing)
        self._tabs.insert(max(0, min(stored.index, len(self._tabs))), stored)
        self._reindex()
        if stored.active:
            for other in self._tabs:
                other.active = other is stored
        # Ids handed out locally must not collide with the browser's.
        self._next_id = max(self._next_id, stored.id + 1)

    def _detach(self, tab: Tab) -> None:
        was_active = tab.active
        position = tab.index
        self._tabs.remove(tab)
        self._reindex()
        self._notify(self.bus.emit_removed(tab.id, TabRemoveInfo(window_id=self.window_id)))
        if was_active and self._tabs:
            self._set_active(self._tabs[min(position, len(self._tabs) - 1)])

    def _set_active(self, tab: Tab) -> None:
        if tab.active:
            return
        for other in self._tabs:
            other.active = False
        tab.active = True
        self._notify(self.bus.emit_activated(TabActiveInfo(tab_id=tab.id, window_id=self.window_id)))

    def _finish_loading(self, tab: Tab) -> None:
        tab.status = TabStatus.COMPLETE
        self._notify(
            self.bus.emit_updated(
                tab.id,
                TabChangeInfo(status=TabStatus.COMPLETE, title=tab.title),
                tab.model_copy(),
            )
        )

    def _notify_moved(self, tab: Tab, from_index: int) -> None:
        info = TabMoveInfo(window_id=self.window_id, from_index=from_index, to_index=tab.index)
        self._notify(self.bus.emit_moved(tab.id, info))

    def _notify(self, delivery: Awaitable[None]) -> None:
        task = asyncio.ensure_future(delivery)
        self._deliveries.add(task)
        task.add_done_callback(self._delivered)

    def _delivered(self, task: asyncio.Task[None]) -> None:
        self._deliveries.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error("Tab notification delivery failed")


def _title_for(url: str) -> str:
    return extract_domain(url) or url
