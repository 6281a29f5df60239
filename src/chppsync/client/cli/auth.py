"""Authorization commands for the chppsync CLI.

Commands:
- login: Authorize chppsync with a CHPP account
- logout: Forget the stored access token
"""

from __future__ import annotations

import asyncio
import sys

import click

from chppsync.client.api import ChppError
from chppsync.client.auth import Authenticator
from chppsync.client.cli.config import load_consumer_credentials
from chppsync.client.keystore import (
    KeyringSecretStore,
    KeyStoreError,
    delete_access_token,
    save_access_token,
)
from chppsync.core.oauth import AccessToken, ConsumerCredentials


async def _authorize(consumer: ConsumerCredentials) -> AccessToken:
    async with Authenticator() as authenticator:
        url, request_token = await authenticator.obtain_request_token(consumer)

        click.echo("Open this URL in your browser and authorize chppsync:\n")
        click.echo(f"  {url}\n")
        verifier = click.prompt("Verification code")

        return await authenticator.exchange_verification_code(
            verifier, request_token, consumer
        )


@click.command()
def login() -> None:
    """Authorize chppsync to read your Hattrick data.

    Requires the application's consumer key and secret, either in the
    HT_CONSUMER_KEY / HT_CONSUMER_SECRET environment variables or in the
    config file.
    """
    consumer = load_consumer_credentials()
    if consumer is None:
        click.echo(
            "Error: Consumer credentials missing. "
            "Set HT_CONSUMER_KEY and HT_CONSUMER_SECRET.",
            err=True,
        )
        sys.exit(1)

    try:
        access_token = asyncio.run(_authorize(consumer))
        save_access_token(KeyringSecretStore(), access_token)
    except (ChppError, KeyStoreError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("Login successful. Run 'chppsync sync' to download your data.")


@click.command()
def logout() -> None:
    """Forget the stored access token."""
    try:
        delete_access_token(KeyringSecretStore())
    except KeyStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo("Logged out.")
