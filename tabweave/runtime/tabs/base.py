"""Tab control interface: the live browser window seen by the sync engine.

Implementations raise ``TabOperationError`` (or its subclasses
``TabDraggingError`` / ``TabNotFoundError``) for failed browser calls.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from tabweave.runtime.models.tab import Tab, TabActiveInfo, TabChangeInfo, TabMoveInfo, TabRemoveInfo


@runtime_checkable
class TabControl(Protocol):
    """Async protocol over the browser's tab API, scoped to one window."""

    async def query_tabs(
        self,
        *,
        current_window: bool = True,
        pinned: bool | None = None,
        url: str | None = None,
    ) -> list[Tab]:
        """Return tabs ordered by index, optionally filtered."""
        ...

    async def get_tab(self, tab_id: int) -> Tab:
        """Return one tab.  Raises ``TabNotFoundError`` if it was closed."""
        ...

    async def create_tab(self, url: str, *, active: bool = True, pinned: bool = False) -> Tab:
        ...

    async def remove_tabs(self, tab_ids: Sequence[int]) -> None:
        ...

    async def update_tab(self, tab_id: int, *, active: bool | None = None, pinned: bool | None = None) -> Tab:
        ...

    async def move_tab(self, tab_id: int, *, index: int) -> Tab:
        ...


@runtime_checkable
class TabMirror(Protocol):
    """A tab surface that records notifications relayed from a real browser.

    Each ``apply_*`` updates the surface's own strip first and then publishes
    the notification, so a pass triggered by it queries the relayed state.
    """

    async def apply_created(self, tab: Tab) -> None: ...

    async def apply_updated(self, tab_id: int, change_info: TabChangeInfo, tab: Tab) -> None: ...

    async def apply_removed(self, tab_id: int, remove_info: TabRemoveInfo) -> None: ...

    async def apply_moved(self, tab_id: int, move_info: TabMoveInfo) -> None: ...

    async def apply_activated(self, active_info: TabActiveInfo) -> None: ...
