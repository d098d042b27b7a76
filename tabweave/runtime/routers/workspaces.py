"""Workspace endpoints (RPC-style).

All write operations use POST; reads use GET.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from tabweave.runtime.deps import Service
from tabweave.runtime.models.api import (
    ActiveWorkspaceResponse,
    SwitchResponse,
    WorkspaceCreate,
    WorkspaceReorder,
    WorkspaceUpdate,
)
from tabweave.runtime.models.workspace import Workspace

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get("/list", response_model=list[Workspace])
async def list_workspaces(service: Service) -> list[Workspace]:
    """List all workspaces, sentinel first, then by order."""
    return await service.list_workspaces()


@router.post("/create", response_model=Workspace, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, service: Service, switch: bool = False) -> Workspace:
    """Create a new workspace, optionally switching the window to it."""
    return await service.add_workspace(body, switch=switch)


@router.get("/active", response_model=ActiveWorkspaceResponse)
async def get_active_workspace(service: Service) -> ActiveWorkspaceResponse:
    return ActiveWorkspaceResponse(
        workspace_id=await service.get_active_workspace_id(),
        switching=await service.is_switching(),
    )


@router.post("/reorder", response_model=list[Workspace])
async def reorder_workspaces(body: WorkspaceReorder, service: Service) -> list[Workspace]:
    """Move the dragged workspace to the target's position."""
    return await service.reorder_workspaces(body.dragged_id, body.target_id)


@router.get("/{workspace_id}/get", response_model=Workspace)
async def get_workspace(workspace_id: str, service: Service) -> Workspace:
    return await service.get_workspace(workspace_id)


@router.post("/{workspace_id}/update", response_model=Workspace)
async def update_workspace(workspace_id: str, body: WorkspaceUpdate, service: Service) -> Workspace:
    """Partially update a workspace."""
    return await service.update_workspace(workspace_id, body)


@router.post("/{workspace_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(workspace_id: str, service: Service) -> None:
    """Delete a workspace and everything stored under it."""
    await service.delete_workspace(workspace_id)


@router.post("/{workspace_id}/switch", response_model=SwitchResponse)
async def switch_workspace(workspace_id: str, service: Service) -> SwitchResponse:
    """Replace the window's tabs with the workspace's saved tabs."""
    result = await service.switch_workspace(workspace_id)
    return SwitchResponse(
        outcome=result.outcome,
        previous_workspace_id=result.previous_workspace_id,
        workspace_id=result.workspace_id,
        closed_tab_ids=result.closed_tab_ids,
        opened_tab_ids=result.opened_tab_ids,
        activated_tab_id=result.activated_tab_id,
        duration_ms=round(result.duration * 1000),
    )
