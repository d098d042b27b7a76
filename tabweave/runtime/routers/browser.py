"""Browser bridge endpoints.

A browser-side bridge relays its tab notifications here.  Each one is
recorded on the service's tab surface before it is published on the
``TabEventBus``, so the passes it triggers see the browser's strip.  The
window and anchor endpoints read or act on the same surface.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from tabweave.runtime.deps import Service
from tabweave.runtime.models.api import (
    TabActivatedEvent,
    TabCreatedEvent,
    TabMovedEvent,
    TabRemovedEvent,
    TabUpdatedEvent,
)
from tabweave.runtime.models.tab import Tab

router = APIRouter(tags=["browser"])


# -- Notification ingestion ----------------------------------------------------


@router.post("/events/created", status_code=status.HTTP_202_ACCEPTED)
async def tab_created(body: TabCreatedEvent, service: Service) -> None:
    await service.relay.apply_created(body.tab)


@router.post("/events/updated", status_code=status.HTTP_202_ACCEPTED)
async def tab_updated(body: TabUpdatedEvent, service: Service) -> None:
    await service.relay.apply_updated(body.tab_id, body.change_info, body.tab)


@router.post("/events/removed", status_code=status.HTTP_202_ACCEPTED)
async def tab_removed(body: TabRemovedEvent, service: Service) -> None:
    await service.relay.apply_removed(body.tab_id, body.remove_info)


@router.post("/events/moved", status_code=status.HTTP_202_ACCEPTED)
async def tab_moved(body: TabMovedEvent, service: Service) -> None:
    await service.relay.apply_moved(body.tab_id, body.move_info)


@router.post("/events/activated", status_code=status.HTTP_202_ACCEPTED)
async def tab_activated(body: TabActivatedEvent, service: Service) -> None:
    await service.relay.apply_activated(body.active_info)


# -- Live window ---------------------------------------------------------------


@router.get("/window/tabs", response_model=list[Tab])
async def list_window_tabs(service: Service) -> list[Tab]:
    """Tabs of the current window, in strip order."""
    return await service.tabs.query_tabs(current_window=True)


@router.post("/anchor/open", response_model=Tab)
async def open_anchor_tab(service: Service) -> Tab:
    """Focus the anchor tab, opening it pinned at index 0 if needed."""
    return await service.open_anchor_tab()
