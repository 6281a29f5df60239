"""Sync engine downloading a manager's data into the local store.

This module provides:
- SyncEngine: Runs the download pipeline for the primary team
- sync_with_stored_credentials: Entry point using the stored access token

Pipeline:
    begin generation → team details → world details → roster
    → per-player details (merged) → save players → complete generation

Every fetch goes through retry_with_backoff with a fresh signing context per
attempt. A failed player detail falls back to the basic roster record; any
other failure aborts the run and leaves the generation in progress, so
readers keep seeing the previous completed generation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from chppsync.client.api import (
    PLAYER_DETAILS_VERSION,
    PLAYERS_VERSION,
    TEAM_DETAILS_VERSION,
    WORLD_DETAILS_VERSION,
    AuthError,
    ChppError,
    ParseError,
)
from chppsync.client.keystore import SecretStore, load_access_token
from chppsync.client.models import Player
from chppsync.client.sync.merge import merge_player_data
from chppsync.client.sync.retry import RetryConfig, retry_with_backoff
from chppsync.client.sync.types import (
    CredentialSource,
    ProgressCallback,
    StaticCredentialSource,
    SyncError,
    SyncOutcome,
    SyncResult,
)
from chppsync.core.types import EntryStatus

if TYPE_CHECKING:
    from chppsync.client.api import ChppClient
    from chppsync.client.state import SyncStore
    from chppsync.core.oauth import ConsumerCredentials, SigningContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncEngine:
    """Coordinates one download of the user's primary team."""

    def __init__(
        self,
        client: ChppClient,
        store: SyncStore,
        credentials: CredentialSource,
        retry_config: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the sync engine.

        Args:
            client: CHPP API client.
            store: Local store receiving the data.
            credentials: Builds a fresh signing context per request.
            retry_config: Retry policy for every fetch.
            sleep: Awaitable delay used between retries.
        """
        self._client = client
        self._store = store
        self._credentials = credentials
        self._retry_config = retry_config or RetryConfig()
        self._sleep = sleep
        self._generation_id: int | None = None
        self._on_progress: ProgressCallback | None = None

    def _report(self, fraction: float, message: str) -> None:
        logger.debug(f"Progress {fraction:.0%}: {message}")
        if self._on_progress:
            self._on_progress(fraction, message)

    async def _record(
        self,
        endpoint: str,
        version: str,
        status: EntryStatus,
        error_message: str | None = None,
        retry_count: int = 0,
    ) -> None:
        if self._generation_id is None:
            raise SyncError("No generation in progress")
        await asyncio.to_thread(
            self._store.record_entry,
            self._generation_id,
            endpoint,
            version,
            status,
            error_message,
            retry_count,
        )

    async def _fetch(
        self,
        endpoint: str,
        version: str,
        operation: Callable[[SigningContext], Awaitable[T]],
    ) -> T:
        """Fetch with retry and log the outcome as a download entry."""
        attempts = 0

        async def attempt(context: SigningContext) -> T:
            nonlocal attempts
            attempts += 1
            return await operation(context)

        try:
            result = await retry_with_backoff(
                endpoint, self._credentials, attempt, self._retry_config, self._sleep
            )
        except ChppError as e:
            await self._record(
                endpoint, version, EntryStatus.FAILED, str(e), max(attempts - 1, 0)
            )
            raise
        await self._record(endpoint, version, EntryStatus.SUCCESS, None, attempts - 1)
        return result

    async def sync(self, on_progress: ProgressCallback | None = None) -> SyncResult:
        """Run the full download pipeline.

        Args:
            on_progress: Called with (fraction, message) at each stage.

        Returns:
            SyncResult of the completed generation.

        Raises:
            ChppError: If a team, world or roster fetch fails.
            StorageError: If a write fails.
            SyncError: If the user has no team.
        """
        self._on_progress = on_progress

        self._report(0.0, "Checking credentials...")
        context = self._credentials()
        if context.token is None:
            raise AuthError("No access token available")

        self._report(0.05, "Creating download record...")
        generation = await asyncio.to_thread(self._store.begin_generation)
        self._generation_id = generation.id
        logger.info(f"Starting download {generation.id}")

        # Team details: the user and their teams
        self._report(0.1, "Fetching user data...")
        details = await self._fetch(
            "teamdetails", TEAM_DETAILS_VERSION, self._client.team_details
        )
        team = details.primary_team
        if team is None:
            raise SyncError(f"User {details.user.user_id} has no team")
        for owned in details.teams:
            await asyncio.to_thread(
                self._store.save_team, owned, details.user, generation.id
            )

        # World details: leagues, countries, currencies
        self._report(0.3, "Fetching world details (leagues, currency)...")
        world = await self._fetch(
            "worlddetails", WORLD_DETAILS_VERSION, self._client.world_details
        )
        await asyncio.to_thread(self._store.save_world_details, world, generation.id)

        # Roster and player details
        self._report(0.6, "Fetching players...")
        roster = await self._fetch(
            "players",
            PLAYERS_VERSION,
            lambda ctx: self._client.players(ctx, team.team_id),
        )
        if roster.player_list is None:
            raise ParseError(f"No player list returned for team {team.team_id}")

        players, failed = await self._fetch_player_details(roster.player_list)
        await asyncio.to_thread(
            self._store.save_players, players, team.team_id, generation.id
        )

        self._report(0.9, "Finalizing download...")
        await asyncio.to_thread(self._store.complete_generation, generation.id)
        self._report(1.0, "Done.")

        if failed:
            logger.warning(
                f"Download {generation.id}: {len(failed)} player(s) stored with basic data"
            )
        logger.info(
            f"Download {generation.id} completed: team {team.team_id}, "
            f"{len(players)} players"
        )
        return SyncResult(
            generation_id=generation.id,
            team_id=team.team_id,
            player_count=len(players),
            failed_player_ids=failed,
        )

    async def _fetch_player_details(
        self, basic_players: list[Player]
    ) -> tuple[list[Player], list[int]]:
        """Fetch details one player at a time and merge with the basic record."""
        merged: list[Player] = []
        failed: list[int] = []

        for basic in basic_players:
            player_id = basic.player_id
            try:
                detailed = await self._fetch(
                    "playerdetails",
                    PLAYER_DETAILS_VERSION,
                    lambda ctx, pid=player_id: self._client.player_details(ctx, pid),
                )
            except ChppError as e:
                logger.warning(
                    f"Failed to fetch details for player {player_id}, "
                    f"using basic data: {e}"
                )
                failed.append(player_id)
                detailed = None
            merged.append(merge_player_data(basic, detailed))

        return merged, failed


async def sync_with_stored_credentials(
    client: ChppClient,
    store: SyncStore,
    secrets: SecretStore,
    consumer: ConsumerCredentials,
    on_progress: ProgressCallback | None = None,
    retry_config: RetryConfig | None = None,
) -> SyncOutcome:
    """Run a sync with the access token from the secret store.

    Returns:
        NO_CREDENTIALS if no access token is stored, COMPLETED otherwise.

    Raises:
        Any error of SyncEngine.sync(); failures are never reported as
        NO_CREDENTIALS.
    """
    access_token = load_access_token(secrets)
    if access_token is None:
        logger.info("No stored access token, skipping sync")
        return SyncOutcome.NO_CREDENTIALS

    engine = SyncEngine(
        client,
        store,
        StaticCredentialSource(consumer, access_token),
        retry_config=retry_config,
    )
    await engine.sync(on_progress)
    return SyncOutcome.COMPLETED
