"""Live browser tab models.

These mirror what the browser's tab API reports.  They are never persisted;
the reconciler turns them into ``SavedTab`` entries.
"""

from __future__ import annotations

from pydantic import BaseModel

from tabweave.runtime.models.enums import TabStatus


class Tab(BaseModel):
    id: int
    index: int
    window_id: int = 1
    url: str | None = None
    title: str | None = None
    fav_icon_url: str | None = None
    pinned: bool = False
    active: bool = False
    status: TabStatus = TabStatus.COMPLETE


class TabChangeInfo(BaseModel):
    """Fields that changed in an ``updated`` notification."""

    status: TabStatus | None = None
    url: str | None = None
    title: str | None = None
    pinned: bool | None = None


class TabMoveInfo(BaseModel):
    window_id: int = 1
    from_index: int
    to_index: int


class TabRemoveInfo(BaseModel):
    window_id: int = 1
    is_window_closing: bool = False


class TabActiveInfo(BaseModel):
    tab_id: int
    window_id: int = 1
