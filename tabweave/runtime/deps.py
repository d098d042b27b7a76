"""FastAPI dependency injection for the sync service.

Usage in route handlers::

    @router.get("/list")
    async def list_workspaces(service: Service) -> list[Workspace]:
        ...

The dependency raises HTTP 503 until the lifespan has started the service.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from tabweave.runtime.service import TabSyncService


async def get_service(request: Request) -> TabSyncService:
    """Return the running ``TabSyncService``."""
    service: TabSyncService | None = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tab sync service is not running.",
        )
    return service


# -- Annotated type aliases for concise route signatures ---------------------

Service = Annotated[TabSyncService, Depends(get_service)]
"""Annotated dependency: the shared tab sync service."""
