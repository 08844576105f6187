"""Command-line interface for autoupload.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Configure server connection and photo library
- settings: Show or change sync settings
- consent: Grant or revoke auto-upload consent
- status: Show gate and network state
- sync: Run a sync pass now
- daemon: Run the background sync scheduler
"""

from __future__ import annotations

import logging

import click

from autoupload import __version__
from autoupload.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_library_path,
    get_state_db_path,
    load_config,
    open_store,
    save_config,
)
from autoupload.client.cli.settings import configure, consent, settings
from autoupload.client.cli.sync import daemon, status, sync


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """autoupload - Upload event photos automatically."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if verbose:
        logging.getLogger("autoupload").setLevel(logging.DEBUG)


# Configuration commands
cli.add_command(configure)
cli.add_command(settings)
cli.add_command(consent)

# Sync commands
cli.add_command(status)
cli.add_command(sync)
cli.add_command(daemon)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_library_path",
    "get_state_db_path",
    "load_config",
    "open_store",
    "save_config",
]
