"""Typed subscription interface over browser tab notifications.

The browser delivers ``created``/``updated``/``removed``/``moved``/``activated``
notifications asynchronously and in no meaningful order.  ``TabEventBus``
gives each notification a typed ``on_*`` subscription and an ``emit_*``
dispatcher.  Subscribers are awaited one after another; a failing
subscriber is logged and never stops delivery to the rest.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from tabweave.runtime.models.tab import Tab, TabActiveInfo, TabChangeInfo, TabMoveInfo, TabRemoveInfo

TabCreatedHandler = Callable[[Tab], Awaitable[None]]
TabUpdatedHandler = Callable[[int, TabChangeInfo, Tab], Awaitable[None]]
TabRemovedHandler = Callable[[int, TabRemoveInfo], Awaitable[None]]
TabMovedHandler = Callable[[int, TabMoveInfo], Awaitable[None]]
TabActivatedHandler = Callable[[TabActiveInfo], Awaitable[None]]

Unsubscribe = Callable[[], None]


class TabEventBus:
    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable[..., Awaitable[None]]]] = {
            "created": [],
            "updated": [],
            "removed": [],
            "moved": [],
            "activated": [],
        }

    # -- Subscription ----------------------------------------------------------

    def on_tab_created(self, handler: TabCreatedHandler) -> Unsubscribe:
        return self._subscribe("created", handler)

    def on_tab_updated(self, handler: TabUpdatedHandler) -> Unsubscribe:
        return self._subscribe("updated", handler)

    def on_tab_removed(self, handler: TabRemovedHandler) -> Unsubscribe:
        return self._subscribe("removed", handler)

    def on_tab_moved(self, handler: TabMovedHandler) -> Unsubscribe:
        return self._subscribe("moved", handler)

    def on_tab_activated(self, handler: TabActivatedHandler) -> Unsubscribe:
        return self._subscribe("activated", handler)

    def subscriber_count(self, event: str) -> int:
        return len(self._handlers[event])

    def _subscribe(self, event: str, handler: Callable[..., Awaitable[None]]) -> Unsubscribe:
        handlers = self._handlers[event]
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    # -- Dispatch --------------------------------------------------------------

    async def emit_created(self, tab: Tab) -> None:
        await self._dispatch("created", tab)

    async def emit_updated(self, tab_id: int, change_info: TabChangeInfo, tab: Tab) -> None:
        await self._dispatch("updated", tab_id, change_info, tab)

    async def emit_removed(self, tab_id: int, remove_info: TabRemoveInfo) -> None:
        await self._dispatch("removed", tab_id, remove_info)

    async def emit_moved(self, tab_id: int, move_info: TabMoveInfo) -> None:
        await self._dispatch("moved", tab_id, move_info)

    async def emit_activated(self, active_info: TabActiveInfo) -> None:
        await self._dispatch("activated", active_info)

    async def _dispatch(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            try:
                await handler(*args)
            except Exception:
                logger.exception("Tab {} handler {!r} failed", event, handler)
