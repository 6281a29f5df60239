"""Shared types for sync operations.

This module provides:
- SyncError: Orchestration failure
- SyncResult: Outcome of a completed sync
- SyncOutcome: Result of the stored-credentials entry point
- CredentialSource, StaticCredentialSource: Fresh signing contexts per request
- ProgressCallback: Type alias for progress reporting
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from chppsync.core.oauth import AccessToken, ConsumerCredentials, SigningContext


class SyncError(Exception):
    """Base exception for sync orchestration errors."""


@dataclass
class SyncResult:
    """Outcome of a completed sync.

    Attributes:
        generation_id: Id of the generation that was completed.
        team_id: Primary team that was synchronized.
        player_count: Number of players persisted.
        failed_player_ids: Players stored with basic data only.
    """

    generation_id: int
    team_id: int
    player_count: int
    failed_player_ids: list[int] = field(default_factory=list)


class SyncOutcome(Enum):
    """Result of sync_with_stored_credentials()."""

    COMPLETED = "completed"
    NO_CREDENTIALS = "no_credentials"


class CredentialSource(Protocol):
    """Produces a new SigningContext for each request."""

    def __call__(self) -> SigningContext: ...


class StaticCredentialSource:
    """Credential source backed by a fixed consumer and access token."""

    def __init__(self, consumer: ConsumerCredentials, access_token: AccessToken) -> None:
        self._consumer = consumer
        self._access_token = access_token

    def __call__(self) -> SigningContext:
        return SigningContext.create(self._consumer, self._access_token)


# Type alias for progress callbacks: (fraction, message)
ProgressCallback = Callable[[float, str], None]
