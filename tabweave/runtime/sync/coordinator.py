"""Workspace switch transaction.

``SwitchCoordinator.switch_workspace`` replaces the window's tabs with those
of another workspace:

1. raise the persisted switching guard, so tab notifications caused by the
   switch are ignored by the reconciler and the anchor triggers,
2. snapshot the live trackable tabs into the previous workspace (an empty
   snapshot is valid),
3. persist the new active workspace id,
4. close the live trackable tabs, then open the target's saved urls in the
   background and activate the first of them, unless the user was looking
   at the anchor tab when the switch started,
5. hold the transaction open for a minimum duration, clear the guard, and
   run one reconcile pass on the target to pick up anything the guard hid.

A failure anywhere in steps 2-4 clears the guard immediately and re-raises.
The coordinator itself stays in ``SWITCHING`` until a short release delay
has passed, so a double click does not start a second switch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from tabweave.runtime.errors import StoreError
from tabweave.runtime.managers import saved_tabs as saved_tabs_manager
from tabweave.runtime.managers import workspaces as workspace_manager
from tabweave.runtime.models.enums import SwitchOutcome, SwitchState
from tabweave.runtime.models.tab import Tab
from tabweave.runtime.store.base import KeyValueStore
from tabweave.runtime.sync.reconciler import Reconciler
from tabweave.runtime.tabs.base import TabControl
from tabweave.runtime.tabs.policy import UrlPolicy


@dataclass
class SwitchResult:
    outcome: SwitchOutcome
    workspace_id: str
    previous_workspace_id: str | None = None
    closed_tab_ids: list[int] = field(default_factory=list)
    opened_tab_ids: list[int] = field(default_factory=list)
    activated_tab_id: int | None = None
    duration: float = 0.0

    @property
    def completed(self) -> bool:
        return self.outcome == SwitchOutcome.COMPLETED


class SwitchCoordinator:
    def __init__(
        self,
        store: KeyValueStore,
        tabs: TabControl,
        policy: UrlPolicy,
        *,
        reconciler: Reconciler,
        min_duration: float = 0.3,
        release_delay: float = 0.1,
    ) -> None:
        self._store = store
        self._tabs = tabs
        self._policy = policy
        self._reconciler = reconciler
        self._min_duration = min_duration
        self._release_delay = release_delay
        self.state = SwitchState.IDLE

    @property
    def is_switching(self) -> bool:
        return self.state == SwitchState.SWITCHING

    async def switch_workspace(self, target_id: str) -> SwitchResult:
        """Make ``target_id`` the workspace mirrored by the window.

        Returns without side effects if a switch is already running or the
        target is already active.  Raises ``WorkspaceNotFoundError`` for an
        unknown target before touching anything.
        """
        if self.is_switching:
            logger.info("Switch to {} ignored: a switch is already in progress", target_id)
            return SwitchResult(outcome=SwitchOutcome.IN_PROGRESS, workspace_id=target_id)

        self.state = SwitchState.SWITCHING
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            await workspace_manager.get_workspace(self._store, target_id)
            previous_id = await workspace_manager.get_active_workspace_id(self._store)
            if previous_id == target_id:
                return SwitchResult(
                    outcome=SwitchOutcome.ALREADY_ACTIVE,
                    workspace_id=target_id,
                    previous_workspace_id=previous_id,
                )

            result = await self._run(previous_id, target_id)

            remaining = self._min_duration - (loop.time() - started)
            if remaining > 0:
                await asyncio.sleep(remaining)
            await self._release_guard()
            await self._reconciler.reconcile(target_id)
            result.duration = loop.time() - started
            logger.info(
                "Switched {} -> {}: closed {}, opened {} in {:.0f} ms",
                previous_id,
                target_id,
                len(result.closed_tab_ids),
                len(result.opened_tab_ids),
                result.duration * 1000,
            )

            await asyncio.sleep(self._release_delay)
            return result
        finally:
            self.state = SwitchState.IDLE

    async def _run(self, previous_id: str, target_id: str) -> SwitchResult:
        await workspace_manager.set_switching(self._store, True)
        try:
            live = await self._tabs.query_tabs(current_window=True)
            anchor_was_active = any(t.active and self._policy.is_anchor(t.url) for t in live)
            await self._reconciler.snapshot(previous_id, live)

            await workspace_manager.set_active_workspace_id(self._store, target_id)

            closing = [t.id for t in live if self._reconciler.is_trackable(t)]
            if closing:
                await self._tabs.remove_tabs(closing)

            saved = await saved_tabs_manager.get_saved_tabs(self._store, target_id)
            urls = [t.url for t in saved if self._policy.is_savable(t.url)]
            opened: list[int] = []
            for url in urls:
                tab = await self._tabs.create_tab(url, active=False)
                opened.append(tab.id)

            activated = None
            if opened and not anchor_was_active:
                activated = await self._activate_first(set(urls))
        except Exception:
            logger.exception("Switch from {} to {} failed", previous_id, target_id)
            await self._release_guard()
            raise

        return SwitchResult(
            outcome=SwitchOutcome.COMPLETED,
            workspace_id=target_id,
            previous_workspace_id=previous_id,
            closed_tab_ids=closing,
            opened_tab_ids=opened,
            activated_tab_id=activated,
        )

    async def _activate_first(self, target_urls: set[str]) -> int | None:
        tabs: list[Tab] = await self._tabs.query_tabs(current_window=True)
        for tab in tabs:
            if self._reconciler.is_trackable(tab) and tab.url in target_urls:
                await self._tabs.update_tab(tab.id, active=True)
                return tab.id
        return None

    async def _release_guard(self) -> None:
        try:
            await workspace_manager.set_switching(self._store, False)
        except StoreError:
            logger.exception("Could not clear the switching guard")
