"""API request / response schemas.

These thin schemas sit between HTTP (and the service façade) and the
persisted models:

- **Create** schemas validate user input and provide defaults.
- **Update** schemas allow partial updates via ``exclude_unset``.
- **Event** schemas carry browser notifications relayed by a bridge.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from tabweave.runtime.models.enums import ResourceType, SwitchOutcome
from tabweave.runtime.models.tab import Tab, TabActiveInfo, TabChangeInfo, TabMoveInfo, TabRemoveInfo

# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(BaseModel):
    """Input for creating a new workspace."""

    id: str | None = Field(default=None, description="Optional; auto-generated if omitted.")
    name: str = "New workspace"
    color: str = "bg-blue-500"
    icon: str = "briefcase"


class WorkspaceUpdate(BaseModel):
    """Partial update -- only fields explicitly set by the caller are applied."""

    name: str | None = None
    color: str | None = None
    icon: str | None = None


class WorkspaceReorder(BaseModel):
    dragged_id: str
    target_id: str


class SwitchResponse(BaseModel):
    outcome: SwitchOutcome
    previous_workspace_id: str | None = None
    workspace_id: str
    closed_tab_ids: list[int] = Field(default_factory=list)
    opened_tab_ids: list[int] = Field(default_factory=list)
    activated_tab_id: int | None = None
    duration_ms: int = 0


# ---------------------------------------------------------------------------
# Saved tabs
# ---------------------------------------------------------------------------


class SavedTabCreate(BaseModel):
    """Tab data supplied by the UI when saving a tab explicitly."""

    url: str
    title: str | None = None
    domain: str | None = None
    favicon: str | None = None
    saved_at: int | None = None


class SavedTabMove(BaseModel):
    to_workspace_id: str


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


class ResourceCreate(BaseModel):
    url: str
    title: str | None = None
    type: ResourceType = ResourceType.LINK


class ResourceMove(BaseModel):
    to_workspace_id: str


class NoteBody(BaseModel):
    content: str = ""


class TodoCreate(BaseModel):
    text: str


# ---------------------------------------------------------------------------
# Browser notifications (relayed by a bridge)
# ---------------------------------------------------------------------------


class TabCreatedEvent(BaseModel):
    tab: Tab


class TabUpdatedEvent(BaseModel):
    tab_id: int
    change_info: TabChangeInfo
    tab: Tab


class TabRemovedEvent(BaseModel):
    tab_id: int
    remove_info: TabRemoveInfo = Field(default_factory=TabRemoveInfo)


class TabMovedEvent(BaseModel):
    tab_id: int
    move_info: TabMoveInfo


class TabActivatedEvent(BaseModel):
    active_info: TabActiveInfo


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str = "ok"
    store: str
    bytes_in_use: int | None = None
    switching: bool = False


class ActiveWorkspaceResponse(BaseModel):
    workspace_id: str
    switching: bool = False
