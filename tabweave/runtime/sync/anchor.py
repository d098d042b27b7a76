"""Anchor tab enforcement.

The anchor tab is the application's own UI.  It stays pinned at index 0 of
the tab strip whatever the user or page navigation does to other tabs.
Enforcement is a bounded retry loop: pin if needed, move to 0 if needed,
re-read and stop on success.  Edits rejected while the user is dragging a
tab are retried; a closed tab ends the loop.

Concurrent calls for the same tab id share one enforcement task, so the
end state is the same no matter how many triggers fire at once.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from tabweave.runtime.models.tab import Tab
from tabweave.runtime.sync.retry import RetryPolicy
from tabweave.runtime.tabs.base import TabControl
from tabweave.runtime.tabs.policy import UrlPolicy


class AnchorEnforcer:
    def __init__(
        self,
        tabs: TabControl,
        policy: UrlPolicy,
        *,
        retry: RetryPolicy,
        hot_retry: RetryPolicy,
    ) -> None:
        self._tabs = tabs
        self._policy = policy
        self._retry = retry
        self._hot_retry = hot_retry
        self._inflight: dict[int, asyncio.Task[bool]] = {}

    async def find_anchor_tab(self) -> Tab | None:
        """Locate the anchor tab by URL, preferring a pinned match."""
        matches = await self._tabs.query_tabs(url=self._policy.anchor_url)
        if not matches:
            return None
        return next((t for t in matches if t.pinned), matches[0])

    async def pin_to_anchor_position(self, tab_id: int, *, hot: bool = False) -> bool:
        """Pin ``tab_id`` and move it to index 0.  Returns whether it got there."""
        task = self._inflight.get(tab_id)
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._enforce(tab_id, hot), name=f"anchor:{tab_id}")
            self._inflight[tab_id] = task
            task.add_done_callback(lambda t: self._forget(tab_id, t))
        # A cancelled caller must not cancel the enforcement other callers share.
        return await asyncio.shield(task)

    async def ensure_anchor_position(self) -> bool:
        """Re-enforce the anchor position if a move displaced it."""
        anchor = await self.find_anchor_tab()
        if anchor is None:
            return False
        if anchor.pinned and anchor.index == 0:
            return True
        logger.debug("Anchor tab {} displaced to index {}, re-pinning", anchor.id, anchor.index)
        return await self.pin_to_anchor_position(anchor.id)

    async def open_anchor_tab(self) -> Tab:
        """Focus the anchor tab, creating it pinned if it is not open."""
        anchor = await self.find_anchor_tab()
        if anchor is None:
            anchor = await self._tabs.create_tab(self._policy.anchor_url, active=True, pinned=True)
            logger.info("Opened anchor tab {}", anchor.id)
        else:
            anchor = await self._tabs.update_tab(anchor.id, active=True)
        await self.pin_to_anchor_position(anchor.id)
        return await self._tabs.get_tab(anchor.id)

    async def wait_idle(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight.values()), return_exceptions=True)

    def cancel_all(self) -> None:
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()

    async def _enforce(self, tab_id: int, hot: bool) -> bool:
        retry = self._hot_retry if hot else self._retry

        async def attempt(_: int) -> bool:
            tab = await self._tabs.get_tab(tab_id)
            if not tab.pinned:
                tab = await self._tabs.update_tab(tab_id, pinned=True)
            if tab.index != 0:
                await self._tabs.move_tab(tab_id, index=0)
            tab = await self._tabs.get_tab(tab_id)
            return tab.pinned and tab.index == 0

        return await retry.run(attempt, label=f"Anchor tab {tab_id}")

    def _forget(self, tab_id: int, task: asyncio.Task[bool]) -> None:
        if self._inflight.get(tab_id) is task:
            del self._inflight[tab_id]
