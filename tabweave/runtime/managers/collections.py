"""Per-workspace resources, notes and todos.

Plain map writes keyed by workspace id.  Each write reads the whole map and
writes it back, so it runs inside ``STORAGE_LOCK`` like every other
read-modify-write.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from tabweave.runtime.errors import ResourceNotFoundError, TodoNotFoundError
from tabweave.runtime.managers.workspaces import parse_workspaces, require_workspace
from tabweave.runtime.models.api import ResourceCreate
from tabweave.runtime.models.enums import STORAGE_LOCK, ResourceType, StorageKey
from tabweave.runtime.models.workspace import Resource, SavedTab, Todo
from tabweave.runtime.store.base import KeyValueStore

T = TypeVar("T")


async def _mutate(store: KeyValueStore, key: StorageKey, fn: Callable[[dict[str, Any]], T], *workspace_ids: str) -> T:
    """Run ``fn`` on the stored map under ``key`` and write the map back."""

    async def _txn() -> T:
        data = await store.get([StorageKey.WORKSPACES, key])
        workspaces = parse_workspaces(data.get(StorageKey.WORKSPACES))
        for workspace_id in workspace_ids:
            require_workspace(workspaces, workspace_id)
        collection = dict(data.get(key) or {})
        result = fn(collection)
        await store.set({key: collection})
        return result

    return await store.with_lock(STORAGE_LOCK, _txn)


async def _read(store: KeyValueStore, key: StorageKey, workspace_id: str) -> Any:
    data = await store.get(key)
    return (data.get(key) or {}).get(workspace_id)


# -- Resources -----------------------------------------------------------------


async def get_resources(store: KeyValueStore, workspace_id: str) -> list[Resource]:
    return [Resource.model_validate(r) for r in await _read(store, StorageKey.RESOURCES, workspace_id) or []]


async def add_resource(store: KeyValueStore, workspace_id: str, body: ResourceCreate) -> Resource:
    resource = Resource(title=body.title or body.url, url=body.url, type=body.type)

    def _add(collection: dict[str, Any]) -> Resource:
        collection[workspace_id] = [*collection.get(workspace_id, []), resource.to_storage()]
        return resource

    return await _mutate(store, StorageKey.RESOURCES, _add, workspace_id)


async def delete_resource(store: KeyValueStore, workspace_id: str, resource_id: str) -> None:
    def _delete(collection: dict[str, Any]) -> None:
        items = collection.get(workspace_id, [])
        remaining = [r for r in items if r.get("id") != resource_id]
        if len(remaining) == len(items):
            raise ResourceNotFoundError(resource_id)
        collection[workspace_id] = remaining

    await _mutate(store, StorageKey.RESOURCES, _delete, workspace_id)


async def move_resource_between_workspaces(
    store: KeyValueStore,
    from_workspace_id: str,
    to_workspace_id: str,
    resource_id: str,
) -> Resource:
    def _move(collection: dict[str, Any]) -> Resource:
        source = collection.get(from_workspace_id, [])
        match = next((r for r in source if r.get("id") == resource_id), None)
        if match is None:
            raise ResourceNotFoundError(resource_id)
        if from_workspace_id != to_workspace_id:
            collection[from_workspace_id] = [r for r in source if r.get("id") != resource_id]
            collection[to_workspace_id] = [*collection.get(to_workspace_id, []), match]
        return Resource.model_validate(match)

    return await _mutate(store, StorageKey.RESOURCES, _move, from_workspace_id, to_workspace_id)


async def convert_tab_to_resource(store: KeyValueStore, workspace_id: str, tab: SavedTab) -> Resource:
    """Keep a saved tab as a link resource of the workspace."""
    body = ResourceCreate(url=tab.url, title=tab.title or tab.url, type=ResourceType.LINK)
    return await add_resource(store, workspace_id, body)


# -- Notes ---------------------------------------------------------------------


async def get_note(store: KeyValueStore, workspace_id: str) -> str:
    return await _read(store, StorageKey.NOTES, workspace_id) or ""


async def save_note(store: KeyValueStore, workspace_id: str, content: str) -> str:
    def _save(collection: dict[str, Any]) -> str:
        collection[workspace_id] = content
        return content

    return await _mutate(store, StorageKey.NOTES, _save, workspace_id)


# -- Todos ---------------------------------------------------------------------


async def get_todos(store: KeyValueStore, workspace_id: str) -> list[Todo]:
    return [Todo.model_validate(t) for t in await _read(store, StorageKey.TODOS, workspace_id) or []]


async def add_todo(store: KeyValueStore, workspace_id: str, text: str) -> Todo:
    todo = Todo(text=text)

    def _add(collection: dict[str, Any]) -> Todo:
        collection[workspace_id] = [*collection.get(workspace_id, []), todo.to_storage()]
        return todo

    return await _mutate(store, StorageKey.TODOS, _add, workspace_id)


async def toggle_todo(store: KeyValueStore, workspace_id: str, todo_id: str) -> Todo:
    def _toggle(collection: dict[str, Any]) -> Todo:
        items = [Todo.model_validate(t) for t in collection.get(workspace_id, [])]
        for i, todo in enumerate(items):
            if todo.id == todo_id:
                items[i] = todo.model_copy(update={"completed": not todo.completed})
                collection[workspace_id] = [t.to_storage() for t in items]
                return items[i]
        raise TodoNotFoundError(todo_id)

    return await _mutate(store, StorageKey.TODOS, _toggle, workspace_id)


async def delete_todo(store: KeyValueStore, workspace_id: str, todo_id: str) -> None:
    def _delete(collection: dict[str, Any]) -> None:
        items = collection.get(workspace_id, [])
        remaining = [t for t in items if t.get("id") != todo_id]
        if len(remaining) == len(items):
            raise TodoNotFoundError(todo_id)
        collection[workspace_id] = remaining

    await _mutate(store, StorageKey.TODOS, _delete, workspace_id)
