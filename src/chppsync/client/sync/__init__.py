"""Sync operations downloading CHPP data into the local store.

Architecture:
    CredentialSource → SyncEngine → ChppClient (with retry) → SyncStore

Components:
- **SyncEngine**: Runs the download pipeline for the primary team
- **retry_with_backoff**: Exponential backoff with fresh credentials per attempt
- **merge_player_data**: Combines basic and detailed player records
"""

from chppsync.client.sync.engine import SyncEngine, sync_with_stored_credentials
from chppsync.client.sync.merge import merge_player_data
from chppsync.client.sync.retry import (
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRYABLE_CODES,
    RetryConfig,
    retry_with_backoff,
    retry_with_default_config,
    should_retry,
)
from chppsync.client.sync.types import (
    CredentialSource,
    ProgressCallback,
    StaticCredentialSource,
    SyncError,
    SyncOutcome,
    SyncResult,
)

__all__ = [
    # Engine
    "SyncEngine",
    "sync_with_stored_credentials",
    # Merge
    "merge_player_data",
    # Retry
    "DEFAULT_INITIAL_BACKOFF",
    "DEFAULT_MAX_BACKOFF",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRYABLE_CODES",
    "RetryConfig",
    "retry_with_backoff",
    "retry_with_default_config",
    "should_retry",
    # Types
    "CredentialSource",
    "ProgressCallback",
    "StaticCredentialSource",
    "SyncError",
    "SyncOutcome",
    "SyncResult",
]
