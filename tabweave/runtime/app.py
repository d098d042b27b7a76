from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger

from tabweave.runtime.deps import Service
from tabweave.runtime.errors import (
    DuplicateWorkspaceError,
    NotFoundError,
    ProtectedEntityError,
    StoreError,
    TabOperationError,
    TabweaveError,
    UnsavableTabError,
)
from tabweave.runtime.log import setup_logging
from tabweave.runtime.models.api import HealthResponse
from tabweave.runtime.service import TabSyncService
from tabweave.runtime.settings import TabweaveSettings, get_settings
from tabweave.runtime.store.base import KeyValueStore
from tabweave.runtime.store.local import LocalKeyValueStore
from tabweave.runtime.store.redis_kv import RedisKeyValueStore
from tabweave.runtime.tabs.simulated import SimulatedWindow


def create_store(settings: TabweaveSettings) -> KeyValueStore:
    """Create the store backend based on configuration."""
    if settings.store == "redis":
        if not settings.redis_url:
            msg = "TABWEAVE_REDIS_URL is required when TABWEAVE_STORE=redis"
            raise ValueError(msg)
        return RedisKeyValueStore.from_url(settings.redis_url, prefix=settings.data_prefix)
    return LocalKeyValueStore(settings.data_root, prefix=settings.data_prefix)


def create_legacy_store(settings: TabweaveSettings) -> KeyValueStore | None:
    if not settings.legacy_data_root:
        return None
    return LocalKeyValueStore(settings.legacy_data_root, prefix=settings.data_prefix)


def create_service(settings: TabweaveSettings, store: KeyValueStore) -> TabSyncService:
    """Build the service over an in-process window.

    A browser bridge keeps that window in step with the real one by relaying
    its notifications to the ``/api/events`` endpoints, and reads the
    engine's own edits back from ``/api/window/tabs``.
    """
    window = SimulatedWindow()
    return TabSyncService(store, window, window.bus, settings, legacy_store=create_legacy_store(settings))


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Tabweave starting (host={}, port={})", settings.host, settings.port)
    prefix_info = f", prefix={settings.data_prefix}" if settings.data_prefix else ""
    logger.info("Data root: {} (store={}{})", settings.data_root, settings.store, prefix_info)

    _app.state.service = None
    store = create_store(settings)
    service = create_service(settings, store)
    await service.start()
    _app.state.service = service

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Tabweave shutting down")
    await service.stop()
    _app.state.service = None

    if isinstance(store, RedisKeyValueStore):
        await store.aclose()
        logger.info("Redis: closed")


app = FastAPI(title="Tabweave", lifespan=lifespan)


# ---------------------------------------------------------------------------
# Domain errors -> HTTP status
# ---------------------------------------------------------------------------
# First match wins: TabNotFoundError is both a TabOperationError and a NotFoundError.
_ERROR_STATUS: list[tuple[type[TabweaveError], int]] = [
    (NotFoundError, 404),
    (ProtectedEntityError, 409),
    (DuplicateWorkspaceError, 409),
    (UnsavableTabError, 422),
    (TabOperationError, 502),
    (StoreError, 503),
]


@app.exception_handler(TabweaveError)
async def tabweave_error_handler(_request: Request, exc: TabweaveError) -> JSONResponse:
    status_code = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.warning("{} failed the request: {}", type(exc).__name__, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": type(exc).__name__})


# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health", response_model=HealthResponse)
async def health(service: Service) -> HealthResponse:
    try:
        bytes_in_use = await service.store.bytes_in_use()
    except StoreError as exc:
        logger.warning("Storage usage unavailable: {}", exc)
        bytes_in_use = None
    return HealthResponse(
        store=service.settings.store,
        bytes_in_use=bytes_in_use,
        switching=await service.is_switching(),
    )


from tabweave.runtime.routers.browser import router as browser_router  # noqa: E402
from tabweave.runtime.routers.collections import router as collections_router  # noqa: E402
from tabweave.runtime.routers.tabs import router as tabs_router  # noqa: E402
from tabweave.runtime.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)
api.include_router(tabs_router)
api.include_router(collections_router)
api.include_router(browser_router)

app.include_router(api)
