"""Domain exceptions shared by the store, tab control, managers and sync engine.

Managers and the sync engine raise these, never HTTP exceptions -- the
translation to status codes lives in ``app.py``.
"""

from __future__ import annotations


class TabweaveError(Exception):
    """Base class for all runtime errors."""


# -- Storage -------------------------------------------------------------------


class StoreError(TabweaveError):
    """Durable storage read/write failed (quota, permission, unavailability)."""


# -- Lookup --------------------------------------------------------------------


class NotFoundError(TabweaveError, LookupError):
    """An operation referenced an id that no longer exists."""


class WorkspaceNotFoundError(NotFoundError):
    """Raised when a workspace is not found."""


class SavedTabNotFoundError(NotFoundError):
    """Raised when a saved tab is not found in a workspace."""


class ResourceNotFoundError(NotFoundError):
    """Raised when a resource is not found in a workspace."""


class TodoNotFoundError(NotFoundError):
    """Raised when a todo is not found in a workspace."""


# -- Browser tabs --------------------------------------------------------------


class TabOperationError(TabweaveError):
    """A browser tab API call failed.  Frequently transient."""


class TabDraggingError(TabOperationError):
    """Tabs cannot be edited right now (the user may be dragging a tab)."""


class TabNotFoundError(TabOperationError, NotFoundError):
    """The tab was already closed."""


# -- Protection / validation ---------------------------------------------------


class ProtectedEntityError(TabweaveError):
    """Attempt to delete or reorder the sentinel workspace."""


class UnsavableTabError(TabweaveError, ValueError):
    """Attempt to save the anchor tab or a browser-internal page."""


class DuplicateWorkspaceError(TabweaveError, ValueError):
    """Raised when a workspace with the given ID already exists."""
