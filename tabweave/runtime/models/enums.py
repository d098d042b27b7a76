"""Shared enumerations used across the runtime."""

from __future__ import annotations

from enum import StrEnum

# -- Storage -----------------------------------------------------------------


class StorageKey(StrEnum):
    """Top-level keys of the persisted state layout."""

    WORKSPACES = "workspaces"
    SAVED_TABS = "savedTabs"
    RESOURCES = "resources"
    NOTES = "notes"
    TODOS = "todos"
    ACTIVE_WORKSPACE_ID = "activeWorkspaceId"
    IS_SWITCHING_WORKSPACE = "isSwitchingWorkspace"
    MIGRATED = "migrated"


STORAGE_LOCK = "tabweave_storage_lock"
"""Name of the mutual-exclusion scope shared by every read-modify-write."""


# -- Browser tabs --------------------------------------------------------------


class TabStatus(StrEnum):
    LOADING = "loading"
    COMPLETE = "complete"


# -- Collections ---------------------------------------------------------------


class ResourceType(StrEnum):
    LINK = "link"
    FILE = "file"
    IMAGE = "image"


# -- Switching -----------------------------------------------------------------


class SwitchState(StrEnum):
    IDLE = "idle"
    SWITCHING = "switching"


class SwitchOutcome(StrEnum):
    """How a ``switch_workspace`` call ended."""

    COMPLETED = "completed"
    ALREADY_ACTIVE = "already_active"
    IN_PROGRESS = "in_progress"
