"""Configuration utilities for the chppsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from chppsync.core.oauth import ConsumerCredentials

CONSUMER_KEY_ENV = "HT_CONSUMER_KEY"
CONSUMER_SECRET_ENV = "HT_CONSUMER_SECRET"


def get_config_dir() -> Path:
    """Get the configuration directory for chppsync.

    Returns:
        Path to ~/.chppsync.
    """
    return Path.home() / ".chppsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def get_database_path() -> Path:
    """Get the SQLite database path (configured or ~/.chppsync/chppsync.db)."""
    config = load_config()
    if config.get("database_path"):
        return Path(config["database_path"]).expanduser().resolve()
    return get_config_dir() / "chppsync.db"


def load_consumer_credentials() -> ConsumerCredentials | None:
    """Load the application's consumer key and secret.

    Environment variables take precedence over the config file keys
    consumer_key and consumer_secret.

    Returns:
        ConsumerCredentials, or None if either value is missing.
    """
    key = os.environ.get(CONSUMER_KEY_ENV)
    secret = os.environ.get(CONSUMER_SECRET_ENV)
    if not key or not secret:
        config = load_config()
        key = key or config.get("consumer_key")
        secret = secret or config.get("consumer_secret")
    if not key or not secret:
        return None
    return ConsumerCredentials(key=key, secret=secret)
