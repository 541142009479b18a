"""Tests for the command line applications."""

import base64
from unittest.mock import AsyncMock

import pytest
from aiohttp import test_utils, web

from natpunch import apps
from natpunch.core.errors import AuthenticationError, NegotiationAbandoned
from natpunch.core.types import Endpoint, EndpointSet, Lobby
from natpunch.crypto.password import hash_password
from natpunch.net.services import ServiceConfig


class TestFindOrCreateLobby:
    @pytest.mark.asyncio
    async def test_uses_first_existing_lobby(self):
        lobbies = AsyncMock()
        lobbies.list_lobbies.return_value = [Lobby("a", "First"), Lobby("b", "Second")]

        lobby = await apps.find_or_create_lobby(lobbies)

        assert lobby == Lobby("a", "First")
        lobbies.create_lobby.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_lobby_when_none_exist(self):
        lobbies = AsyncMock()
        lobbies.list_lobbies.return_value = []
        lobbies.create_lobby.return_value = Lobby("new", "NAT Punchthrough Demo Lobby")

        lobby = await apps.find_or_create_lobby(lobbies)

        assert lobby.id == "new"
        lobbies.create_lobby.assert_awaited_once_with("NAT Punchthrough Demo Lobby", max_sessions=0)


def make_service_app(state):
    async def authenticate(request):
        body = await request.json()
        if body["authentication"]["passwordHash"] != hash_password("secret"):
            return web.json_response({})
        return web.json_response({"authenticatedSession": {"id": "me", "apiKey": "user-key"}})

    async def lobbies(request):
        return web.json_response({"results": []})

    async def create_lobby(request):
        state["created"] = request.query["name"]
        return web.json_response({"id": "lobby-9", "name": request.query["name"], "maxSessions": 0})

    async def join(request):
        state["joined"] = (request.query["lobbyId"], request.query["sessionId"])
        return web.Response(status=204)

    async def sessions(request):
        return web.json_response([{"sessionId": "me"}])

    async def request_punch(request):
        return web.json_response(
            {"host": "127.0.0.1", "port": 9, "message": base64.b64encode(b"token").decode()}
        )

    async def poll(request):
        return web.json_response(True)

    async def endpoints(request):
        return web.json_response([{"host": "203.0.113.7", "port": 40000}])

    app = web.Application()
    app.router.add_put("/v1/authenticate", authenticate)
    app.router.add_get("/v1/lobbies/paginated", lobbies)
    app.router.add_put("/v1/lobby", create_lobby)
    app.router.add_put("/v1/session", join)
    app.router.add_get("/v1/sessions", sessions)
    app.router.add_put("/v1/punchthrough", request_punch)
    app.router.add_get("/v1/punchthrough", poll)
    app.router.add_get("/v1/endpoints", endpoints)
    return app


class TestPunchthroughDemo:
    """Run the full flow against local fake services."""

    @pytest.mark.asyncio
    async def test_full_flow(self):
        state = {}
        server = test_utils.TestServer(make_service_app(state))
        await server.start_server()
        base = str(server.make_url("/v1"))
        config = ServiceConfig(api_key="k", user_session_url=base, lobby_url=base, punchthrough_url=base)
        try:
            result = await apps.punchthrough_demo("me@example.com", "secret", config=config, timeout=10.0)
        finally:
            await server.close()

        assert result == EndpointSet({"me": [Endpoint("203.0.113.7", 40000)]})
        assert state["created"] == "NAT Punchthrough Demo Lobby"
        assert state["joined"] == ("lobby-9", "me")

    @pytest.mark.asyncio
    async def test_bad_credentials(self):
        server = test_utils.TestServer(make_service_app({}))
        await server.start_server()
        base = str(server.make_url("/v1"))
        config = ServiceConfig(user_session_url=base, lobby_url=base, punchthrough_url=base)
        try:
            with pytest.raises(AuthenticationError):
                await apps.punchthrough_demo("me@example.com", "wrong", config=config)
        finally:
            await server.close()


class TestPunchthroughCommand:
    def test_requires_password(self, monkeypatch, capsys):
        monkeypatch.delenv("NATPUNCH_PASSWORD", raising=False)

        assert apps.punchthrough("me@example.com") == 2
        assert "password is required" in capsys.readouterr().err

    def test_rejects_non_numeric_timeout(self, monkeypatch, capsys):
        demo = AsyncMock()
        monkeypatch.setattr(apps, "punchthrough_demo", demo)

        assert apps.punchthrough("me@example.com", "pw", timeout="soon") == 2

        assert "Invalid timeout: 'soon'" in capsys.readouterr().err
        demo.assert_not_called()

    def test_authentication_failure_exits_1(self, monkeypatch):
        monkeypatch.setattr(apps, "punchthrough_demo", AsyncMock(side_effect=AuthenticationError("no")))

        assert apps.punchthrough("me@example.com", "pw") == 1

    def test_negotiation_failure_exits_1(self, monkeypatch):
        monkeypatch.setattr(apps, "punchthrough_demo", AsyncMock(side_effect=NegotiationAbandoned("no")))

        assert apps.punchthrough("me@example.com", "pw") == 1

    def test_prints_endpoints(self, monkeypatch, capsys):
        monkeypatch.setenv("NATPUNCH_PASSWORD", "pw")
        result = EndpointSet({"me": [Endpoint("203.0.113.7", 40000)]})
        demo = AsyncMock(return_value=result)
        monkeypatch.setattr(apps, "punchthrough_demo", demo)

        assert apps.punchthrough("me@example.com", timeout="30") == 0

        demo.assert_awaited_once_with("me@example.com", "pw", timeout=30.0)
        assert " - 203.0.113.7:40000" in capsys.readouterr().out
