"""Data models for the runtime."""

from tabweave.runtime.models.api import (
    ActiveWorkspaceResponse,
    HealthResponse,
    NoteBody,
    ResourceCreate,
    ResourceMove,
    SavedTabCreate,
    SavedTabMove,
    SwitchResponse,
    TabActivatedEvent,
    TabCreatedEvent,
    TabMovedEvent,
    TabRemovedEvent,
    TabUpdatedEvent,
    TodoCreate,
    WorkspaceCreate,
    WorkspaceReorder,
    WorkspaceUpdate,
)
from tabweave.runtime.models.enums import (
    STORAGE_LOCK,
    ResourceType,
    StorageKey,
    SwitchOutcome,
    SwitchState,
    TabStatus,
)
from tabweave.runtime.models.tab import Tab, TabActiveInfo, TabChangeInfo, TabMoveInfo, TabRemoveInfo
from tabweave.runtime.models.workspace import (
    SENTINEL_WORKSPACE_ID,
    Resource,
    SavedTab,
    Todo,
    Workspace,
    extract_domain,
)

__all__ = [
    "SENTINEL_WORKSPACE_ID",
    "STORAGE_LOCK",
    # API schemas
    "ActiveWorkspaceResponse",
    "HealthResponse",
    "NoteBody",
    "ResourceCreate",
    "ResourceMove",
    "SavedTabCreate",
    "SavedTabMove",
    "SwitchResponse",
    "TabActivatedEvent",
    "TabCreatedEvent",
    "TabMovedEvent",
    "TabRemovedEvent",
    "TabUpdatedEvent",
    "TodoCreate",
    "WorkspaceCreate",
    "WorkspaceReorder",
    "WorkspaceUpdate",
    # Enums
    "ResourceType",
    "StorageKey",
    "SwitchOutcome",
    "SwitchState",
    "TabStatus",
    # Browser tabs
    "Tab",
    "TabActiveInfo",
    "TabChangeInfo",
    "TabMoveInfo",
    "TabRemoveInfo",
    # Workspace
    "Resource",
    "SavedTab",
    "Todo",
    "Workspace",
    "extract_domain",
]
