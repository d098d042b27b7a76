"""Shared fixtures for runtime tests.

Everything runs against a ``LocalKeyValueStore`` in a temporary directory
and a ``SimulatedWindow``; timings are shrunk so debounce windows and retry
spacing cost milliseconds.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from tabweave.runtime.app import app
from tabweave.runtime.service import TabSyncService
from tabweave.runtime.settings import TabweaveSettings
from tabweave.runtime.store.local import LocalKeyValueStore
from tabweave.runtime.tabs.simulated import SimulatedWindow

ANCHOR_URL = "chrome-extension://tabweave/newtab/index.html"

Settle = Callable[[], Awaitable[None]]


@pytest.fixture
def settings(tmp_path) -> TabweaveSettings:
    return TabweaveSettings(
        data_root=str(tmp_path / "data"),
        anchor_url=ANCHOR_URL,
        debounce_ms=10,
        anchor_retry_delay_ms=1,
        anchor_hot_retry_delay_ms=1,
        switch_min_duration_ms=0,
        switch_release_delay_ms=0,
    )


@pytest.fixture
def anchor_url(settings: TabweaveSettings) -> str:
    return settings.anchor_url


@pytest.fixture
def store(settings: TabweaveSettings) -> LocalKeyValueStore:
    return LocalKeyValueStore(settings.data_root)


@pytest.fixture
def window() -> SimulatedWindow:
    return SimulatedWindow()


@pytest.fixture
async def service(
    store: LocalKeyValueStore,
    window: SimulatedWindow,
    settings: TabweaveSettings,
) -> AsyncIterator[TabSyncService]:
    svc = TabSyncService(store, window, window.bus, settings)
    await svc.start()
    yield svc
    await svc.stop()
    await window.drain_events()


@pytest.fixture
def settle(service: TabSyncService, window: SimulatedWindow) -> Settle:
    """Return a coroutine that waits until notifications and debounced passes are done."""

    async def _settle() -> None:
        for _ in range(100):
            await window.drain_events()
            await service.wait_idle()
            if not window.has_pending_events and not service.debouncer.pending_keys:
                return
        msg = "tab sync did not settle"
        raise AssertionError(msg)

    return _settle


@pytest.fixture
async def client(service: TabSyncService) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with the test service.

    The app lifespan does NOT run under ``ASGITransport``, so the service is
    pre-set on ``app.state``.
    """
    app.state.service = service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.service = None
