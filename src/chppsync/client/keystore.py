"""Secret storage for the OAuth access token.

This module provides:
- SecretStore: interface for get/store/delete of named secrets
- KeyringSecretStore: OS keyring backed implementation
- Helpers to load, save and delete the AccessToken pair
"""

from __future__ import annotations

import logging
from typing import Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from chppsync.core.oauth import AccessToken

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "chppsync"
ACCESS_TOKEN_KEY = "access_token"
ACCESS_SECRET_KEY = "access_secret"


class KeyStoreError(Exception):
    """Exception raised for secret storage errors."""


class SecretStore(Protocol):
    """Named secret storage."""

    def get_secret(self, key: str) -> str | None: ...

    def store_secret(self, key: str, value: str) -> None: ...

    def delete_secret(self, key: str) -> None: ...


class KeyringSecretStore:
    """Stores secrets in the OS keyring under a single service name."""

    def __init__(self, service: str = KEYRING_SERVICE) -> None:
        self._service = service

    def get_secret(self, key: str) -> str | None:
        """Get a secret.

        Returns:
            The secret, or None if it is not stored.

        Raises:
            KeyStoreError: If the keyring backend fails.
        """
        try:
            return keyring.get_password(self._service, key)
        except KeyringError as e:
            raise KeyStoreError(f"Failed to read secret {key!r}: {e}") from e

    def store_secret(self, key: str, value: str) -> None:
        """Store (or replace) a secret."""
        try:
            keyring.set_password(self._service, key, value)
        except KeyringError as e:
            raise KeyStoreError(f"Failed to store secret {key!r}: {e}") from e
        logger.debug(f"Stored secret for key: {key}")

    def delete_secret(self, key: str) -> None:
        """Delete a secret. Deleting a missing secret is not an error."""
        try:
            keyring.delete_password(self._service, key)
        except PasswordDeleteError:
            return
        except KeyringError as e:
            raise KeyStoreError(f"Failed to delete secret {key!r}: {e}") from e
        logger.debug(f"Deleted secret for key: {key}")


def load_access_token(store: SecretStore) -> AccessToken | None:
    """Load the stored access token.

    Returns:
        AccessToken if both token and secret are stored, None otherwise.
    """
    token = store.get_secret(ACCESS_TOKEN_KEY)
    secret = store.get_secret(ACCESS_SECRET_KEY)
    if not token or not secret:
        return None
    return AccessToken(token=token, secret=secret)


def save_access_token(store: SecretStore, access_token: AccessToken) -> None:
    """Persist an access token pair."""
    store.store_secret(ACCESS_TOKEN_KEY, access_token.token)
    store.store_secret(ACCESS_SECRET_KEY, access_token.secret)


def delete_access_token(store: SecretStore) -> None:
    """Forget the stored access token pair."""
    store.delete_secret(ACCESS_TOKEN_KEY)
    store.delete_secret(ACCESS_SECRET_KEY)
