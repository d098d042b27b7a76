"""Service configuration loaded from TABWEAVE_* environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class TabweaveSettings(BaseSettings):
    """Tabweave runtime settings.

    All fields are read from environment variables with the ``TABWEAVE_``
    prefix.  For example, ``TABWEAVE_DEBOUNCE_MS=250`` maps to ``debounce_ms``.
    Durations are kept in milliseconds here and converted to seconds by the
    helpers at the bottom of the class.
    """

    model_config = SettingsConfigDict(
        env_prefix="TABWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Storage ---------------------------------------------------------------
    store: Literal["local", "redis"] = "local"

    data_root: str = "./data"
    """Root directory for the local JSON store."""

    data_prefix: str | None = None
    """Optional namespace inserted into storage paths and Redis keys."""

    redis_url: str | None = None
    """Redis connection string.  Required when ``store = "redis"``."""

    legacy_data_root: str | None = None
    """Local store to migrate from once at startup (no-op after the first run)."""

    # -- Browser ---------------------------------------------------------------
    anchor_url: str = "chrome-extension://tabweave/newtab/index.html"
    """URL of the application's own UI tab, kept pinned at index 0."""

    internal_url_prefixes: tuple[str, ...] = ("chrome://", "chrome-extension://", "edge://", "about:")
    """Browser-internal pages that never take part in reconciliation."""

    # -- Timing ----------------------------------------------------------------
    debounce_ms: int = 500
    anchor_max_attempts: int = 10
    anchor_retry_delay_ms: int = 200
    anchor_hot_max_attempts: int = 3
    anchor_hot_retry_delay_ms: int = 50
    switch_min_duration_ms: int = 300
    """Minimum lifetime of a switch transaction, so UI spinners never flicker."""

    switch_release_delay_ms: int = 100
    """Extra window after a switch during which new switches are rejected."""

    # -- Server ----------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 8000

    # -- Helpers ---------------------------------------------------------------

    @property
    def debounce_delay(self) -> float:
        return self.debounce_ms / 1000

    @property
    def switch_min_duration(self) -> float:
        return self.switch_min_duration_ms / 1000

    @property
    def switch_release_delay(self) -> float:
        return self.switch_release_delay_ms / 1000


def get_settings() -> TabweaveSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


@lru_cache(maxsize=1)
def _get_settings_cached() -> TabweaveSettings:
    return TabweaveSettings()
