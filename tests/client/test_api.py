"""Tests for the CHPP HTTP client."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from chppsync.client.api import (
    ACCEPT_HEADER,
    AuthError,
    ChppApiError,
    ChppClient,
    NetworkError,
    ParseError,
)
from chppsync.client.sync.retry import RetryConfig, retry_with_backoff
from chppsync.core.oauth import AccessToken, ConsumerCredentials, SigningContext


def make_context() -> SigningContext:
    """Create a fresh SigningContext for testing."""
    return SigningContext.create(
        ConsumerCredentials(key="ck", secret="cs"),
        AccessToken(token="at", secret="as"),
    )


class TestChppClientRequests:
    """Tests for request building."""

    @pytest.mark.asyncio
    async def test_players_request(self, httpx_mock, players_xml: str) -> None:  # type: ignore[no-untyped-def]
        """Should GET chppxml.ashx with file, version and roster parameters."""
        httpx_mock.add_response(text=players_xml)

        async with ChppClient() as client:
            await client.players(make_context(), team_id=4000)

        request = httpx_mock.get_request()
        assert request.method == "GET"
        assert request.url.path == "/chppxml.ashx"
        assert request.url.params["file"] == "players"
        assert request.url.params["version"] == "2.4"
        assert request.url.params["actionType"] == "view"
        assert request.url.params["includeMatchInfo"] == "true"
        assert request.url.params["teamID"] == "4000"

    @pytest.mark.asyncio
    async def test_headers(self, httpx_mock, world_details_xml: str) -> None:  # type: ignore[no-untyped-def]
        """Should send the signed Authorization and the fixed API headers."""
        httpx_mock.add_response(text=world_details_xml)

        async with ChppClient() as client:
            await client.world_details(make_context())

        request = httpx_mock.get_request()
        assert request.headers["Authorization"].startswith("OAuth ")
        assert 'oauth_token="at"' in request.headers["Authorization"]
        assert request.headers["Accept-Language"] == "en"
        assert request.headers["Accept"] == ACCEPT_HEADER
        assert request.headers["Content-Length"] == "0"
        assert request.headers["User-Agent"].startswith("chppsync/")

    @pytest.mark.asyncio
    async def test_player_details_request(  # type: ignore[no-untyped-def]
        self, httpx_mock, player_details_xml: Callable[[int], str]
    ) -> None:
        """Should pass playerID and version 3.1."""
        httpx_mock.add_response(text=player_details_xml(101))

        async with ChppClient() as client:
            player = await client.player_details(make_context(), 101)

        request = httpx_mock.get_request()
        assert request.url.params["file"] == "playerdetails"
        assert request.url.params["version"] == "3.1"
        assert request.url.params["playerID"] == "101"
        assert player.player_id == 101


class TestChppClientParsing:
    """Tests for typed responses."""

    @pytest.mark.asyncio
    async def test_team_details(self, httpx_mock, team_details_xml: str) -> None:  # type: ignore[no-untyped-def]
        """Should return the user and teams."""
        httpx_mock.add_response(text=team_details_xml)

        async with ChppClient() as client:
            details = await client.team_details(make_context())

        assert details.user.user_id == 1000
        assert [team.team_id for team in details.teams] == [5000, 4000]
        assert details.primary_team is not None
        assert details.primary_team.team_id == 4000

    @pytest.mark.asyncio
    async def test_world_details(self, httpx_mock, world_details_xml: str) -> None:  # type: ignore[no-untyped-def]
        """Should return the leagues with their countries."""
        httpx_mock.add_response(text=world_details_xml)

        async with ChppClient() as client:
            world = await client.world_details(make_context())

        assert [league.league_id for league in world.leagues] == [1, 2]
        assert world.leagues[1].country.rate == 10.0

    @pytest.mark.asyncio
    async def test_invalid_xml_raises_parse_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise ParseError for an undecodable body."""
        httpx_mock.add_response(text="<HattrickData><Team>")

        async with ChppClient() as client:
            with pytest.raises(ParseError):
                await client.players(make_context())

    @pytest.mark.asyncio
    async def test_missing_element_raises_parse_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise ParseError when a required element is missing."""
        httpx_mock.add_response(text="<HattrickData><FileName>x</FileName></HattrickData>")

        async with ChppClient() as client:
            with pytest.raises(ParseError):
                await client.world_details(make_context())


class TestChppClientErrors:
    """Tests for error classification."""

    @pytest.mark.asyncio
    async def test_error_document(  # type: ignore[no-untyped-def]
        self, httpx_mock, error_xml: Callable[[int, str], str]
    ) -> None:
        """Should raise ChppApiError carrying code, GUID and request."""
        httpx_mock.add_response(text=error_xml(503, "Service unavailable"))

        async with ChppClient() as client:
            with pytest.raises(ChppApiError) as exc_info:
                await client.players(make_context())

        assert exc_info.value.code == 503
        assert exc_info.value.message == "Service unavailable"
        assert exc_info.value.error_guid == "abc-123"
        assert exc_info.value.request == "/chppxml.ashx?file=players"

    @pytest.mark.asyncio
    async def test_transport_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise NetworkError on connection failure."""
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        async with ChppClient() as client:
            with pytest.raises(NetworkError):
                await client.world_details(make_context())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [429, 500, 502, 503])
    async def test_status_without_error_document(  # type: ignore[no-untyped-def]
        self, httpx_mock, status_code: int
    ) -> None:
        """Should raise ParseError for a non-XML body whatever the HTTP status."""
        httpx_mock.add_response(status_code=status_code, text="<html>oops</html>")

        async with ChppClient() as client:
            with pytest.raises(ParseError):
                await client.world_details(make_context())

    @pytest.mark.asyncio
    async def test_html_body_is_not_retried(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should fail after one attempt when a 5xx carries no error document."""
        httpx_mock.add_response(status_code=500, text="<html>oops</html>")
        context_source = MagicMock(side_effect=make_context)
        sleep = AsyncMock()

        async with ChppClient() as client:
            with pytest.raises(ParseError):
                await retry_with_backoff(
                    "worlddetails",
                    context_source,
                    client.world_details,
                    RetryConfig(max_retries=3),
                    sleep,
                )

        assert len(httpx_mock.get_requests()) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unauthorized_status(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise AuthError for 401."""
        httpx_mock.add_response(status_code=401, text="Unauthorized")

        async with ChppClient() as client:
            with pytest.raises(AuthError):
                await client.world_details(make_context())
