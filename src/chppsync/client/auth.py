"""Three-legged OAuth handshake with the CHPP service.

This module provides:
- Authenticator: request-token leg, authorization URL, verifier exchange
- parse_token_response: decode an x-www-form-urlencoded token body
- HandshakeState: where the handshake currently stands

Flow:
    1. obtain_request_token() signs a POST with oauth_callback=oob and
       returns the URL the user must open in a browser.
    2. The user authorizes and is shown a verification code.
    3. exchange_verification_code() trades the code for an AccessToken,
       which the caller stores in the secret store.
"""

from __future__ import annotations

import logging
from enum import Enum
from urllib.parse import parse_qs, urlencode

import httpx

from chppsync.client.api import AuthError, NetworkError
from chppsync.core.config import ChppConfig
from chppsync.core.oauth import (
    AccessToken,
    ConsumerCredentials,
    RequestToken,
    SigningContext,
    sign,
)

logger = logging.getLogger(__name__)

OUT_OF_BAND = "oob"


class HandshakeState(Enum):
    """Handshake progress."""

    UNAUTHENTICATED = "unauthenticated"
    REQUEST_TOKEN_OBTAINED = "request_token_obtained"
    AUTHORIZED = "authorized"
    ACCESS_TOKEN_OBTAINED = "access_token_obtained"


def parse_token_response(body: str) -> tuple[str, str]:
    """Extract oauth_token and oauth_token_secret from a token response.

    Args:
        body: Response body (application/x-www-form-urlencoded).

    Returns:
        Tuple of (token, secret).

    Raises:
        AuthError: If either value is missing or empty. An HTML error page
            ends up here rather than being accepted as an empty token.
    """
    credentials = parse_qs(body.strip(), keep_blank_values=False)
    token = credentials.get("oauth_token", [""])[0]
    secret = credentials.get("oauth_token_secret", [""])[0]
    if not token or not secret:
        snippet = body.strip()[:200]
        raise AuthError(f"Response lacks token information: {snippet!r}")
    return token, secret


class Authenticator:
    """Runs the OAuth 1.0a handshake.

    The authenticator does not perform data calls; once an AccessToken is
    obtained, every API request builds its own SigningContext from it.
    """

    def __init__(
        self,
        config: ChppConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or ChppConfig()
        self._client = http_client or httpx.AsyncClient(timeout=self._config.timeout)
        self.state = HandshakeState.UNAUTHENTICATED

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Authenticator:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def _post(self, url: str, context: SigningContext) -> httpx.Response:
        authorization = sign("POST", url, None, context)
        try:
            return await self._client.post(
                url,
                headers={
                    "Authorization": authorization,
                    "Content-Length": "0",
                    "User-Agent": self._config.user_agent,
                },
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to send request to {url}: {e}") from e

    def authorization_url(self, request_token: RequestToken) -> str:
        """URL the user opens to authorize the request token."""
        query = urlencode(
            {"oauth_token": request_token.token, "scope": self._config.scope}
        )
        return f"{self._config.authorize_url}?{query}"

    async def obtain_request_token(
        self, consumer: ConsumerCredentials
    ) -> tuple[str, RequestToken]:
        """Obtain a temporary request token.

        Args:
            consumer: Consumer key/secret.

        Returns:
            Tuple of (authorization_url, request_token).

        Raises:
            AuthError: If the response does not carry a token and secret.
            NetworkError: On transport failure.
        """
        context = SigningContext.create(consumer).with_callback(OUT_OF_BAND)
        response = await self._post(self._config.request_token_url, context)

        try:
            token, secret = parse_token_response(response.text)
        except AuthError as e:
            raise AuthError(
                f"Failed to receive request token (HTTP {response.status_code}): {e}"
            ) from e

        request_token = RequestToken(token=token, secret=secret)
        self.state = HandshakeState.REQUEST_TOKEN_OBTAINED
        logger.info("Obtained request token")
        return self.authorization_url(request_token), request_token

    async def exchange_verification_code(
        self,
        verifier: str,
        request_token: RequestToken,
        consumer: ConsumerCredentials,
    ) -> AccessToken:
        """Exchange the user's verification code for an access token.

        Args:
            verifier: Code shown to the user after authorization.
            request_token: Token returned by obtain_request_token().
            consumer: Consumer key/secret.

        Returns:
            Long-lived AccessToken.

        Raises:
            AuthError: If credentials are missing, or the response is not a
                token response (commonly an HTML error page).
            NetworkError: On transport failure.
        """
        if not consumer.key or not consumer.secret:
            raise AuthError("Consumer key or secret missing")
        if not request_token.token or not request_token.secret:
            raise AuthError("Request token or secret missing")
        verifier = verifier.strip()
        if not verifier:
            raise AuthError("Verification code is empty")

        self.state = HandshakeState.AUTHORIZED
        context = SigningContext.create(consumer, request_token).with_verifier(verifier)
        response = await self._post(self._config.access_token_url, context)

        try:
            token, secret = parse_token_response(response.text)
        except AuthError as e:
            raise AuthError(
                f"Failed to receive access token (HTTP {response.status_code}): {e}"
            ) from e

        self.state = HandshakeState.ACCESS_TOKEN_OBTAINED
        logger.info("Obtained access token")
        return AccessToken(token=token, secret=secret)
