"""Sync commands for the autoupload CLI.

Commands:
- status: Show gate and network state
- sync: Run a sync pass now
- daemon: Run the background sync scheduler
"""

from __future__ import annotations

import sys
import time
from datetime import UTC, datetime

import click

from autoupload.client.api import PhotoShareClient
from autoupload.client.cli import config as cli_config
from autoupload.client.credentials import StaticCredentialProvider
from autoupload.client.gate import LibraryPermission, PermissionGate, StoredConsent
from autoupload.client.media import FolderMediaIndex
from autoupload.client.network import NetworkClassifier
from autoupload.client.state import SettingsStore
from autoupload.client.sync import (
    DEFAULT_COOLDOWN,
    EventSyncOrchestrator,
    SyncRun,
    SyncScheduler,
    UploadExecutor,
)
from autoupload.core.config import ServerConfig
from autoupload.core.types import SkipReason

FAILED_SKIPS = frozenset({SkipReason.AUTH_FAILED, SkipReason.EVENT_LIST_FAILED})

SHUTDOWN_TIMEOUT = 30.0  # seconds to wait for an in-flight pass on exit


def _require_server(config: dict[str, str]) -> None:
    if not config.get("server_url"):
        click.echo("Error: No server configured. Run 'autoupload configure' first.", err=True)
        sys.exit(1)


def build_gate(config: dict[str, str], store: SettingsStore) -> PermissionGate:
    """Gate over the configured library folder and the stored consent."""
    library = cli_config.get_library_path(config)
    return PermissionGate(LibraryPermission(library), StoredConsent(store))


def build_scheduler(
    config: dict[str, str], store: SettingsStore
) -> tuple[SyncScheduler, PhotoShareClient]:
    """Wire the sync pipeline from CLI configuration.

    Returns:
        The scheduler and the HTTP client (to be closed by the caller).
    """
    credentials = StaticCredentialProvider(config.get("auth_token"))
    client = PhotoShareClient(
        ServerConfig(server_url=config["server_url"], api_key=config.get("api_key")),
        credentials,
    )
    library = cli_config.get_library_path(config)
    orchestrator = EventSyncOrchestrator(
        client,
        FolderMediaIndex(library),
        credentials,
        network=NetworkClassifier(),
        executor=UploadExecutor(client, device_id=config.get("device_id")),
    )

    def record_last_sync(run: SyncRun) -> None:
        if not run.skipped:
            store.set_last_sync(run.finished_at)

    scheduler = SyncScheduler(
        build_gate(config, store),
        orchestrator,
        store.load_settings,
        on_complete=record_last_sync,
    )
    return scheduler, client


@click.command()
def status() -> None:
    """Show whether auto-upload can run right now."""
    config = cli_config.load_config()
    with cli_config.open_store() as store:
        settings = store.load_settings()
        gate = build_gate(config, store).check_gate()
        last_sync = store.get_last_sync()
    network = NetworkClassifier().classify()

    click.echo(f"Server: {config.get('server_url') or 'not configured'}")
    click.echo(f"Library: {cli_config.get_library_path(config)}")
    click.echo(f"User: {settings.user_id if settings else 'not configured'}")
    click.echo(f"Gate: {'open' if gate.allowed else 'closed'} ({gate.reason.value})")
    click.echo(
        f"Network: {network.primary_class.value}"
        f" ({'wifi-equivalent' if network.is_wifi_equivalent else 'metered or unknown'})"
    )
    click.echo(f"Last sync: {last_sync.isoformat() if last_sync else 'never'}")


@click.command()
@click.option("--force", "-f", is_flag=True, help="Ignore the cooldown since the last sync.")
@click.option(
    "--wifi-only/--no-wifi-only",
    default=None,
    help="Override the stored WiFi-only setting for this run.",
)
@click.option("--user-id", default=None, help="Override the stored user for this run.")
def sync(force: bool, wifi_only: bool | None, user_id: str | None) -> None:
    """Upload new event photos now."""
    config = cli_config.load_config()
    _require_server(config)

    with cli_config.open_store() as store:
        last_sync = store.get_last_sync()
        if not force and last_sync is not None:
            elapsed = (datetime.now(UTC) - last_sync).total_seconds()
            if elapsed < DEFAULT_COOLDOWN:
                remaining = (DEFAULT_COOLDOWN - elapsed) / 60
                click.echo(
                    f"Last sync was {elapsed / 60:.0f} min ago; next in {remaining:.0f} min. "
                    "Use --force to sync now."
                )
                return

        scheduler, client = build_scheduler(config, store)
        try:
            run = scheduler.run_sync_now(user_id, {"wifi_only": wifi_only})
        finally:
            client.close()

    if run is None:
        click.echo("Sync not started. Run 'autoupload status' for details.", err=True)
        sys.exit(1)

    click.echo(run.summary())
    if run.skip_reason in FAILED_SKIPS:
        if run.error:
            click.echo(f"Error: {run.error}", err=True)
        sys.exit(1)


@click.command()
@click.option(
    "--interval",
    type=float,
    default=DEFAULT_COOLDOWN,
    show_default=True,
    help="Seconds between background sync passes.",
)
def daemon(interval: float) -> None:
    """Run an initial sync, then sync periodically until interrupted."""
    config = cli_config.load_config()
    _require_server(config)

    with cli_config.open_store() as store:
        settings = store.load_settings()
        if settings is None or not settings.background_upload_enabled:
            click.echo(
                "Warning: background upload is disabled; only the initial pass will run. "
                "Enable it with 'autoupload settings set --background'.",
                err=True,
            )

        scheduler, client = build_scheduler(config, store)
        initial = scheduler.on_foreground()
        scheduler.start_background(interval)
        click.echo("Auto-upload daemon running. Press Ctrl+C to stop.")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            click.echo("\nStopping...")
        finally:
            scheduler.stop(wait=True)
            initial.join(timeout=SHUTDOWN_TIMEOUT)
            if initial.is_alive():
                click.echo("Warning: initial sync pass still running; closing anyway.", err=True)
            client.close()

        if scheduler.last_sync_summary is not None:
            click.echo(f"Last pass: {scheduler.last_sync_summary.summary()}")
