"""HTTP client for the CHPP XML API.

This module provides:
- ChppError hierarchy: NetworkError, ParseError, AuthError, ChppApiError
- ChppClient: async client for the chppxml.ashx data endpoint
- Capability calls: world details, team details, players, player details

Every call takes a freshly built SigningContext; the client never reuses one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

import httpx

from chppsync.client.models import (
    Player,
    Team,
    TeamDetails,
    WorldDetails,
    is_error_response,
    parse_error,
    parse_player_details,
    parse_players,
    parse_team_details,
    parse_world_details,
)
from chppsync.core.config import ChppConfig
from chppsync.core.oauth import SigningContext, sign

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Legacy Accept list expected by the API
ACCEPT_HEADER = "image/gif, image/x-xbitmap, image/jpeg, image/pjpeg, */*"

WORLD_DETAILS_VERSION = "1.9"
TEAM_DETAILS_VERSION = "3.7"
PLAYERS_VERSION = "2.4"
PLAYER_DETAILS_VERSION = "3.1"


class ChppError(Exception):
    """Base exception for CHPP client errors."""


class NetworkError(ChppError):
    """Transport-level failure (connection, timeout, unreadable body)."""


class ParseError(ChppError):
    """Response could not be decoded into the expected shape."""


class AuthError(ChppError):
    """OAuth handshake, signature or credential failure."""


class ChppApiError(ChppError):
    """Structured error returned by the CHPP service."""

    def __init__(
        self,
        code: int,
        message: str,
        error_guid: str | None = None,
        request: str | None = None,
    ) -> None:
        super().__init__(f"CHPP API error {code}: {message}")
        self.code = code
        self.message = message
        self.error_guid = error_guid
        self.request = request


class ChppClient:
    """Async client for the CHPP data endpoint."""

    def __init__(
        self,
        config: ChppConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Endpoint configuration (defaults to the public CHPP API).
            http_client: Optional preconfigured httpx client (tests, proxies).
        """
        self._config = config or ChppConfig()
        self._client = http_client or httpx.AsyncClient(timeout=self._config.timeout)

    @property
    def config(self) -> ChppConfig:
        return self._config

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> ChppClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.close()

    def _headers(self, authorization: str) -> dict[str, str]:
        return {
            "Authorization": authorization,
            "Content-Length": "0",
            "User-Agent": self._config.user_agent,
            "Accept-Language": "en",
            "Accept": ACCEPT_HEADER,
        }

    async def request(
        self,
        file: str,
        version: str,
        context: SigningContext,
        parser: Callable[[str], T],
        extra_params: dict[str, str] | None = None,
    ) -> T:
        """Perform a signed GET on the data endpoint and parse the result.

        Args:
            file: Logical report name (e.g. "teamdetails").
            version: Report version.
            context: Fresh signing context for this request.
            parser: Turns the XML body into a typed record.
            extra_params: Endpoint-specific query parameters.

        Returns:
            The parsed record.

        Raises:
            NetworkError: On transport failure.
            ChppApiError: If the body is a CHPP error document.
            ParseError: If the body cannot be parsed.
        """
        params = {"file": file, "version": version}
        if extra_params:
            params.update(extra_params)

        authorization = sign("GET", self._config.data_url, params, context)

        try:
            response = await self._client.get(
                self._config.data_url,
                params=params,
                headers=self._headers(authorization),
            )
            body = response.text
        except httpx.HTTPError as e:
            raise NetworkError(f"{file} request failed: {e}") from e

        logger.debug(f"{file} v{version}: HTTP {response.status_code}, {len(body)} bytes")

        if is_error_response(body):
            try:
                error = parse_error(body)
            except ValueError as e:
                raise ParseError(f"Failed to parse error response: {e}") from e
            logger.error(
                f"CHPP API error {error.error_code}: {error.error} "
                f"(Request: {error.request or 'unknown'}, GUID: {error.error_guid or 'none'})"
            )
            raise ChppApiError(
                code=error.error_code,
                message=error.error,
                error_guid=error.error_guid,
                request=error.request,
            )

        if response.status_code == 401:
            raise AuthError(f"{file} request was not authorized")

        try:
            return parser(body)
        except ValueError as e:
            raise ParseError(f"Failed to deserialize {file} response: {e}") from e

    # === Capability calls ===

    async def world_details(self, context: SigningContext) -> WorldDetails:
        """Fetch leagues, countries and currencies."""
        return await self.request(
            "worlddetails", WORLD_DETAILS_VERSION, context, parse_world_details
        )

    async def team_details(
        self, context: SigningContext, team_id: int | None = None
    ) -> TeamDetails:
        """Fetch the user and their teams (or a given team)."""
        extra = {"teamID": str(team_id)} if team_id is not None else None
        return await self.request(
            "teamdetails", TEAM_DETAILS_VERSION, context, parse_team_details, extra
        )

    async def players(self, context: SigningContext, team_id: int | None = None) -> Team:
        """Fetch the basic roster of a team."""
        extra = {"actionType": "view", "includeMatchInfo": "true"}
        if team_id is not None:
            extra["teamID"] = str(team_id)
        return await self.request(
            "players", PLAYERS_VERSION, context, parse_players, extra
        )

    async def player_details(self, context: SigningContext, player_id: int) -> Player:
        """Fetch the detailed record of one player."""
        return await self.request(
            "playerdetails",
            PLAYER_DETAILS_VERSION,
            context,
            parse_player_details,
            {"playerID": str(player_id)},
        )
