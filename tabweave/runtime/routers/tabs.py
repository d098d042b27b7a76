"""Saved-tab endpoints (RPC-style), scoped to one workspace."""

from __future__ import annotations

from fastapi import APIRouter, status

from tabweave.runtime.deps import Service
from tabweave.runtime.models.api import SavedTabCreate, SavedTabMove
from tabweave.runtime.models.workspace import Resource, SavedTab

router = APIRouter(prefix="/workspaces/{workspace_id}/tabs", tags=["tabs"])


@router.get("/list", response_model=list[SavedTab])
async def list_saved_tabs(workspace_id: str, service: Service) -> list[SavedTab]:
    return await service.get_saved_tabs(workspace_id)


@router.post("/add", response_model=SavedTab, status_code=status.HTTP_201_CREATED)
async def add_saved_tab(workspace_id: str, body: SavedTabCreate, service: Service) -> SavedTab:
    """Save a tab into the workspace (merges with an existing entry of the same url)."""
    return await service.add_tab_to_workspace(workspace_id, body)


@router.post("/{tab_id}/move", response_model=SavedTab)
async def move_saved_tab(workspace_id: str, tab_id: str, body: SavedTabMove, service: Service) -> SavedTab:
    """Move a saved tab to another workspace."""
    return await service.move_tab_between_workspaces(workspace_id, body.to_workspace_id, tab_id)


@router.post("/{tab_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_saved_tab(workspace_id: str, tab_id: str, service: Service) -> None:
    """Remove a saved tab; closes it if the workspace is active."""
    await service.delete_saved_tab(workspace_id, tab_id)


@router.post("/{tab_id}/to-resource", response_model=Resource, status_code=status.HTTP_201_CREATED)
async def convert_tab_to_resource(workspace_id: str, tab_id: str, service: Service) -> Resource:
    return await service.convert_tab_to_resource(workspace_id, tab_id)
