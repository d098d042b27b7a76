import click


@click.group()
def main() -> None:
    """Tabweave - keeps browser workspaces and live tabs in sync."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from TABWEAVE_HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Bind port (default: from TABWEAVE_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the HTTP service."""
    import uvicorn

    from tabweave.runtime.settings import TabweaveSettings

    settings = TabweaveSettings()

    uvicorn.run(
        "tabweave.runtime.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


# ---------------------------------------------------------------------------
# Storage management
# ---------------------------------------------------------------------------


@main.group()
def store() -> None:
    """Storage management commands."""


@store.command()
@click.option(
    "--from",
    "source_root",
    default=None,
    help="Legacy data root to copy from (default: TABWEAVE_LEGACY_DATA_ROOT).",
)
def migrate(source_root: str | None) -> None:
    """Copy a legacy local store into the configured store, once."""
    import asyncio

    from tabweave.runtime.app import create_store
    from tabweave.runtime.log import setup_logging
    from tabweave.runtime.migration import migrate_store
    from tabweave.runtime.settings import TabweaveSettings
    from tabweave.runtime.store.local import LocalKeyValueStore

    settings = TabweaveSettings()
    setup_logging(settings.log_level)

    root = source_root or settings.legacy_data_root
    if not root:
        raise click.UsageError("No legacy data root: pass --from or set TABWEAVE_LEGACY_DATA_ROOT.")

    source = LocalKeyValueStore(root, prefix=settings.data_prefix)
    target = create_store(settings)

    async def _run() -> int:
        try:
            return await migrate_store(source, target)
        finally:
            aclose = getattr(target, "aclose", None)
            if aclose is not None:
                await aclose()

    copied = asyncio.run(_run())
    click.echo(f"Migrated {copied} key(s) from {root}.")


@store.command()
def usage() -> None:
    """Print the configured store's size in bytes."""
    import asyncio

    from tabweave.runtime.app import create_store
    from tabweave.runtime.settings import TabweaveSettings

    settings = TabweaveSettings()
    target = create_store(settings)

    async def _run() -> int:
        try:
            return await target.bytes_in_use()
        finally:
            aclose = getattr(target, "aclose", None)
            if aclose is not None:
                await aclose()

    click.echo(f"{asyncio.run(_run())} bytes in use ({settings.store}).")
