"""Configuration commands for the autoupload CLI.

Commands:
- configure: Point the client at a server and a photo library
- settings show / settings set: Inspect and change sync settings
- consent grant / consent revoke: Record the auto-upload consent
"""

from __future__ import annotations

import sys

import click

from autoupload.client.cli import config as cli_config
from autoupload.core.config import SyncSettings
from autoupload.core.types import ConsentStatus


@click.command()
@click.option("--server", required=True, help="Server URL (e.g., https://example.supabase.co).")
@click.option("--token", default=None, help="Bearer token (default: AUTOUPLOAD_TOKEN).")
@click.option("--api-key", default=None, help="API key sent with every request.")
@click.option(
    "--library",
    type=click.Path(file_okay=False),
    default=None,
    help="Photo library folder (default: ~/Pictures).",
)
@click.option("--user-id", default=None, help="User whose events are synced.")
@click.option("--device-id", default=None, help="Device identifier sent with uploads.")
def configure(
    server: str,
    token: str | None,
    api_key: str | None,
    library: str | None,
    user_id: str | None,
    device_id: str | None,
) -> None:
    """Configure the server connection and photo library."""
    config = cli_config.load_config()
    config["server_url"] = server.rstrip("/")
    if token:
        config["auth_token"] = token
    if api_key:
        config["api_key"] = api_key
    if library:
        config["library_path"] = library
    if device_id:
        config["device_id"] = device_id
    cli_config.save_config(config)

    if user_id:
        with cli_config.open_store() as store:
            current = store.load_settings(user_id) or SyncSettings(user_id=user_id)
            store.save_settings(current)

    click.echo("Configuration saved.")
    click.echo(f"Server: {config['server_url']}")
    click.echo(f"Library: {cli_config.get_library_path(config)}")


@click.group()
def settings() -> None:
    """Show or change auto-upload settings."""


@settings.command("show")
def settings_show() -> None:
    """Show the stored sync settings."""
    with cli_config.open_store() as store:
        current = store.load_settings()
        consent = store.get_consent()
        last_sync = store.get_last_sync()

    if current is None:
        click.echo("No user configured. Run 'autoupload settings set --user-id ...' first.")
        return

    click.echo(f"User: {current.user_id}")
    click.echo(f"Auto-upload: {'on' if current.auto_upload_enabled else 'off'}")
    click.echo(f"WiFi only: {'on' if current.wifi_only else 'off'}")
    click.echo(f"Background upload: {'on' if current.background_upload_enabled else 'off'}")
    click.echo(f"Consent: {consent.value if consent else 'not recorded'}")
    click.echo(f"Last sync: {last_sync.isoformat() if last_sync else 'never'}")


@settings.command("set")
@click.option("--user-id", default=None, help="User whose events are synced.")
@click.option("--auto-upload/--no-auto-upload", default=None, help="Enable auto-upload.")
@click.option("--wifi-only/--no-wifi-only", default=None, help="Only upload on WiFi.")
@click.option("--background/--no-background", default=None, help="Allow background sync.")
def settings_set(
    user_id: str | None,
    auto_upload: bool | None,
    wifi_only: bool | None,
    background: bool | None,
) -> None:
    """Change sync settings. Unspecified values are kept."""
    with cli_config.open_store() as store:
        current = store.load_settings(user_id)
        if current is None:
            click.echo("Error: No user configured. Pass --user-id.", err=True)
            sys.exit(1)
        updated = current.with_overrides(
            auto_upload_enabled=auto_upload,
            wifi_only=wifi_only,
            background_upload_enabled=background,
        )
        store.save_settings(updated)

    click.echo(f"Settings saved for user {updated.user_id}.")


@click.group()
def consent() -> None:
    """Record whether auto-upload is allowed."""


@consent.command("grant")
def consent_grant() -> None:
    """Grant consent to upload event photos automatically."""
    with cli_config.open_store() as store:
        store.set_consent(ConsentStatus.GRANTED)
    click.echo("Consent granted.")


@consent.command("revoke")
def consent_revoke() -> None:
    """Revoke consent; automatic sync stops."""
    with cli_config.open_store() as store:
        store.set_consent(ConsentStatus.DENIED)
    click.echo("Consent revoked.")
