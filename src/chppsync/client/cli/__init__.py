"""Command-line interface for chppsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- login: Authorize chppsync with a CHPP account
- logout: Forget the stored access token
- sync: Download the primary team into the local database
- status: Show the latest completed download
"""

from __future__ import annotations

import logging

import click

from chppsync.client.cli.auth import login, logout
from chppsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_database_path,
    load_config,
    load_consumer_credentials,
)
from chppsync.client.cli.sync import status, sync


def configure_logging(verbose: bool) -> None:
    """Route chppsync log records to stderr."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    chppsync_logger = logging.getLogger("chppsync")
    for existing in chppsync_logger.handlers[:]:
        chppsync_logger.removeHandler(existing)
    chppsync_logger.addHandler(handler)
    chppsync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    chppsync_logger.propagate = False


@click.group()
@click.version_option(package_name="chppsync")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """chppsync - Download your Hattrick team data through CHPP."""
    configure_logging(verbose)


# Authorization commands
cli.add_command(login)
cli.add_command(logout)

# Sync commands
cli.add_command(sync)
cli.add_command(status)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "configure_logging",
    "main",
    "get_config_dir",
    "get_config_file",
    "get_database_path",
    "load_config",
    "load_consumer_credentials",
]
