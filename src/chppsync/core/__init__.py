"""Core module - OAuth signing, endpoint configuration and shared types."""

from chppsync.core.config import ChppConfig
from chppsync.core.oauth import (
    AccessToken,
    ConsumerCredentials,
    RequestToken,
    SigningContext,
    generate_nonce,
    generate_timestamp,
    percent_encode,
    sign,
)
from chppsync.core.types import EntryStatus, GenerationStatus

__all__ = [
    # Config
    "ChppConfig",
    # OAuth
    "AccessToken",
    "ConsumerCredentials",
    "RequestToken",
    "SigningContext",
    "generate_nonce",
    "generate_timestamp",
    "percent_encode",
    "sign",
    # Types
    "EntryStatus",
    "GenerationStatus",
]
