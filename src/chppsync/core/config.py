"""Shared configuration classes for chppsync.

This module defines the CHPP endpoint configuration used by the OAuth
handshake and the data client.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_REQUEST_TOKEN_URL = "https://chpp.hattrick.org/oauth/request_token.ashx"
DEFAULT_AUTHORIZE_URL = "https://chpp.hattrick.org/oauth/authorize.aspx"
DEFAULT_ACCESS_TOKEN_URL = "https://chpp.hattrick.org/oauth/access_token.ashx"
DEFAULT_DATA_URL = "https://chpp.hattrick.org/chppxml.ashx"
DEFAULT_USER_AGENT = "chppsync/0.1.0"
DEFAULT_SCOPE = "set_matchorder"


@dataclass
class ChppConfig:
    """Configuration for talking to the CHPP API.

    Attributes:
        request_token_url: OAuth request-token endpoint.
        authorize_url: User-facing authorization page.
        access_token_url: OAuth access-token endpoint.
        data_url: The single XML data endpoint (chppxml.ashx).
        user_agent: Product-identifying User-Agent header.
        scope: Scopes requested on the authorization URL.
        timeout: Request timeout in seconds.
    """

    request_token_url: str = DEFAULT_REQUEST_TOKEN_URL
    authorize_url: str = DEFAULT_AUTHORIZE_URL
    access_token_url: str = DEFAULT_ACCESS_TOKEN_URL
    data_url: str = DEFAULT_DATA_URL
    user_agent: str = DEFAULT_USER_AGENT
    scope: str = DEFAULT_SCOPE
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate endpoint URLs."""
        for name in ("request_token_url", "authorize_url", "access_token_url", "data_url"):
            url = getattr(self, name)
            if not url.startswith(("https://", "http://")):
                raise ValueError(f"{name} must be an http(s) URL, got {url!r}")
