"""Sync commands for the chppsync CLI.

Commands:
- sync: Download the primary team into the local database
- status: Show what the latest completed download contains
"""

from __future__ import annotations

import asyncio
import sys

import click

from chppsync.client.api import ChppClient, ChppError
from chppsync.client.cli.config import get_database_path, load_consumer_credentials
from chppsync.client.keystore import KeyringSecretStore, KeyStoreError
from chppsync.client.state import StorageError, SyncStore
from chppsync.client.sync import SyncError, SyncOutcome, sync_with_stored_credentials


def _print_progress(fraction: float, message: str) -> None:
    click.echo(f"[{fraction:>4.0%}] {message}")


async def _run_sync(store: SyncStore, quiet: bool) -> SyncOutcome:
    consumer = load_consumer_credentials()
    if consumer is None:
        raise click.ClickException(
            "Consumer credentials missing. Set HT_CONSUMER_KEY and HT_CONSUMER_SECRET."
        )
    async with ChppClient() as client:
        return await sync_with_stored_credentials(
            client,
            store,
            KeyringSecretStore(),
            consumer,
            on_progress=None if quiet else _print_progress,
        )


@click.command()
@click.option("--quiet", "-q", is_flag=True, help="Do not print progress.")
def sync(quiet: bool) -> None:
    """Download your primary team, its players and world data."""
    store = SyncStore(get_database_path())
    try:
        outcome = asyncio.run(_run_sync(store, quiet))
    except (ChppError, StorageError, KeyStoreError, SyncError) as e:
        click.echo(f"Error: Sync failed: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    if outcome is SyncOutcome.NO_CREDENTIALS:
        click.echo("Not logged in. Run 'chppsync login' first.", err=True)
        sys.exit(1)

    click.echo("Sync complete.")


@click.command()
def status() -> None:
    """Show the latest completed download."""
    store = SyncStore(get_database_path())
    try:
        download_id = store.get_latest_download_id()
        if download_id is None:
            click.echo("No completed download yet. Run 'chppsync sync'.")
            return

        generation = store.get_generation(download_id)
        if generation is None:
            click.echo(f"Download {download_id}")
        else:
            click.echo(f"Download {generation.id} ({generation.timestamp})")

        for team in store.get_teams(download_id):
            players = store.get_players(team.team_id, download_id)
            marker = "*" if team.is_primary_club else " "
            click.echo(f" {marker} {team.team_name} ({team.team_id}): {len(players)} players")
            for player in players:
                click.echo(f"     {player.player_id}  {player.full_name}")
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()
