"""Persisted workspace data models.

Everything here is stored through the key-value store with camelCase keys
(``createdAt``, ``savedAt``), which is the layout the browser side reads.
Timestamps are epoch milliseconds.
"""

from __future__ import annotations

import time
import uuid
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tabweave.runtime.models.enums import ResourceType

SENTINEL_WORKSPACE_ID = "unsaved"
"""Reserved id of the always-present "Unsaved" workspace."""


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def extract_domain(url: str) -> str:
    """Return the host of *url* without a leading ``www.``.

    Scheme-less input (``example.com/path``) is treated as https.  Falls back
    to the raw string when no host can be parsed.
    """
    candidate = url if url.startswith(("http://", "https://")) else f"https://{url}"
    try:
        host = urlsplit(candidate).hostname
    except ValueError:
        return url
    if not host:
        return url
    return host.removeprefix("www.")


class StoredModel(BaseModel):
    """Base for models persisted with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# -- Workspace -----------------------------------------------------------------


class Workspace(StoredModel):
    id: str
    name: str
    color: str = "bg-blue-500"
    icon: str = "briefcase"
    order: int = Field(default=0, description="Sort key; the sentinel is always 0")
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    @property
    def is_sentinel(self) -> bool:
        return self.id == SENTINEL_WORKSPACE_ID


def sentinel_workspace() -> Workspace:
    return Workspace(id=SENTINEL_WORKSPACE_ID, name="Unsaved", color="bg-slate-400", order=0)


# -- Saved tabs ----------------------------------------------------------------


class SavedTab(StoredModel):
    """A tab persisted in a workspace.  Unique per workspace by ``url``."""

    id: str = Field(default_factory=lambda: new_id("saved"))
    title: str = "Untitled"
    url: str
    domain: str = ""
    favicon: str = ""
    saved_at: int = Field(default_factory=now_ms)


# -- Out-of-core collections ---------------------------------------------------


class Resource(StoredModel):
    id: str = Field(default_factory=lambda: new_id("resource"))
    title: str
    url: str
    type: ResourceType = ResourceType.LINK


class Todo(StoredModel):
    id: str = Field(default_factory=lambda: new_id("todo"))
    text: str
    completed: bool = False
    created_at: int = Field(default_factory=now_ms)
