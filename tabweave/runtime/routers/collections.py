"""Resource, note and todo endpoints (RPC-style), scoped to one workspace."""

from __future__ import annotations

from fastapi import APIRouter, status

from tabweave.runtime.deps import Service
from tabweave.runtime.models.api import NoteBody, ResourceCreate, ResourceMove, TodoCreate
from tabweave.runtime.models.workspace import Resource, Todo

router = APIRouter(prefix="/workspaces/{workspace_id}", tags=["collections"])


# -- Resources -----------------------------------------------------------------


@router.get("/resources/list", response_model=list[Resource])
async def list_resources(workspace_id: str, service: Service) -> list[Resource]:
    return await service.get_resources(workspace_id)


@router.post("/resources/add", response_model=Resource, status_code=status.HTTP_201_CREATED)
async def add_resource(workspace_id: str, body: ResourceCreate, service: Service) -> Resource:
    return await service.add_resource(workspace_id, body)


@router.post("/resources/{resource_id}/move", response_model=Resource)
async def move_resource(workspace_id: str, resource_id: str, body: ResourceMove, service: Service) -> Resource:
    return await service.move_resource_between_workspaces(workspace_id, body.to_workspace_id, resource_id)


@router.post("/resources/{resource_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resource(workspace_id: str, resource_id: str, service: Service) -> None:
    await service.delete_resource(workspace_id, resource_id)


# -- Note ----------------------------------------------------------------------


@router.get("/note/get", response_model=NoteBody)
async def get_note(workspace_id: str, service: Service) -> NoteBody:
    return NoteBody(content=await service.get_note(workspace_id))


@router.post("/note/save", response_model=NoteBody)
async def save_note(workspace_id: str, body: NoteBody, service: Service) -> NoteBody:
    return NoteBody(content=await service.save_note(workspace_id, body.content))


# -- Todos ---------------------------------------------------------------------


@router.get("/todos/list", response_model=list[Todo])
async def list_todos(workspace_id: str, service: Service) -> list[Todo]:
    return await service.get_todos(workspace_id)


@router.post("/todos/add", response_model=Todo, status_code=status.HTTP_201_CREATED)
async def add_todo(workspace_id: str, body: TodoCreate, service: Service) -> Todo:
    return await service.add_todo(workspace_id, body.text)


@router.post("/todos/{todo_id}/toggle", response_model=Todo)
async def toggle_todo(workspace_id: str, todo_id: str, service: Service) -> Todo:
    return await service.toggle_todo(workspace_id, todo_id)


@router.post("/todos/{todo_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_todo(workspace_id: str, todo_id: str, service: Service) -> None:
    await service.delete_todo(workspace_id, todo_id)
