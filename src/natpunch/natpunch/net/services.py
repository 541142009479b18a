"""
Remote Service Clients

Async HTTP clients for the three external collaborators of a
punchthrough session:
- User session service: authentication
- Lobby service: lobby listing, creation, membership
- Punchthrough service: punch messages, completion polling, endpoints

Every failure (HTTP error status, transport error, timeout, malformed
body) is raised as ServiceError. The networking components depend only
on the MemberService and SignalingService protocols, so any object with
matching coroutines can stand in for the HTTP clients.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import aiohttp

from natpunch.core.constants import (
    API_KEY_HEADER,
    DEFAULT_LOBBY_URL,
    DEFAULT_PUNCHTHROUGH_URL,
    DEFAULT_USER_SESSION_URL,
    REQUEST_TIMEOUT,
)
from natpunch.core.errors import AuthenticationError, ServiceError
from natpunch.core.types import (
    AuthenticatedSession,
    Endpoint,
    Lobby,
    PeerSession,
    PunchMessage,
)
from natpunch.crypto.password import hash_password

__all__ = [
    "ServiceConfig",
    "MemberService",
    "SignalingService",
    "UserSessionClient",
    "LobbyClient",
    "PunchthroughClient",
]

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """
    Remote service configuration.

    Attributes:
        api_key: API key sent with every request.
        user_session_url: Base URL of the user session service.
        lobby_url: Base URL of the lobby service.
        punchthrough_url: Base URL of the punchthrough service.
        request_timeout: Seconds allowed per request.
    """

    api_key: str = ""
    user_session_url: str = DEFAULT_USER_SESSION_URL
    lobby_url: str = DEFAULT_LOBBY_URL
    punchthrough_url: str = DEFAULT_PUNCHTHROUGH_URL
    request_timeout: float = REQUEST_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> ServiceConfig:
        """Build a config from environment variables.

        Reads API_KEY, NATPUNCH_USER_SESSION_URL, NATPUNCH_LOBBY_URL,
        NATPUNCH_PUNCHTHROUGH_URL and NATPUNCH_REQUEST_TIMEOUT.
        """
        env = os.environ if environ is None else environ
        return cls(
            api_key=env.get("API_KEY", ""),
            user_session_url=env.get("NATPUNCH_USER_SESSION_URL", DEFAULT_USER_SESSION_URL),
            lobby_url=env.get("NATPUNCH_LOBBY_URL", DEFAULT_LOBBY_URL),
            punchthrough_url=env.get("NATPUNCH_PUNCHTHROUGH_URL", DEFAULT_PUNCHTHROUGH_URL),
            request_timeout=float(env.get("NATPUNCH_REQUEST_TIMEOUT", REQUEST_TIMEOUT)),
        )

    def with_api_key(self, api_key: str) -> ServiceConfig:
        """Copy of this config using another API key."""
        return ServiceConfig(
            api_key=api_key,
            user_session_url=self.user_session_url,
            lobby_url=self.lobby_url,
            punchthrough_url=self.punchthrough_url,
            request_timeout=self.request_timeout,
        )


class MemberService(Protocol):
    """Lists the peer sessions that belong to a lobby."""

    async def list_sessions(self, lobby_id: str) -> list[PeerSession]: ...


class SignalingService(Protocol):
    """The punchthrough authority."""

    async def request_punch_message(self, session_id: str) -> PunchMessage: ...

    async def poll_completion(self, session_id: str) -> bool: ...

    async def list_endpoints(self, session_id: str) -> list[Endpoint]: ...


@dataclass
class _ServiceClient:
    """Shared request plumbing for the HTTP service clients."""

    config: ServiceConfig
    service_name: str = field(default="service", init=False)
    _session: Optional[aiohttp.ClientSession] = field(default=None, init=False)

    @property
    def base_url(self) -> str:
        raise NotImplementedError

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {}
            if self.config.api_key:
                headers[API_KEY_HEADER] = self.config.api_key
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            )
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Perform one round trip and return the decoded JSON body."""
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        logger.debug(f"{method} {url} params={params}")
        try:
            async with self._get_session().request(method, url, params=params, json=body) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise ServiceError(self.service_name, text or response.reason or "", response.status)
                if response.status == 204:
                    return None
                return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise ServiceError(self.service_name, f"{method} {path} timed out") from e
        except aiohttp.ClientError as e:
            raise ServiceError(self.service_name, str(e)) from e
        except ValueError as e:
            raise ServiceError(self.service_name, f"Malformed response: {e}") from e


@dataclass
class UserSessionClient(_ServiceClient):
    """Authenticates users against the user session service."""

    service_name: str = field(default="user-session", init=False)

    @property
    def base_url(self) -> str:
        return self.config.user_session_url

    async def authenticate(self, email: str, password: str) -> AuthenticatedSession:
        """Sign in and return the authenticated session.

        Raises:
            AuthenticationError: If the service issues no session.
            ServiceError: If the request itself fails.
        """
        body = {
            "authentication": {
                "emailAddress": email,
                "passwordHash": hash_password(password),
                "marketingPreferenceOptIn": False,
                "metered": True,
            }
        }
        data = await self._request("PUT", "/authenticate", body=body)
        session = (data or {}).get("authenticatedSession")
        if not session or not session.get("id") or not session.get("apiKey"):
            raise AuthenticationError("Unable to authenticate")
        return AuthenticatedSession(id=session["id"], api_key=session["apiKey"])


@dataclass
class LobbyClient(_ServiceClient):
    """Lobby listing and membership."""

    service_name: str = field(default="lobby", init=False)

    @property
    def base_url(self) -> str:
        return self.config.lobby_url

    @staticmethod
    def _lobby(data: dict[str, Any]) -> Lobby:
        return Lobby(
            id=str(data["id"]),
            name=data.get("name") or "",
            max_sessions=int(data.get("maxSessions") or 0),
        )

    async def list_lobbies(self) -> list[Lobby]:
        data = await self._request("GET", "/lobbies/paginated")
        try:
            return [self._lobby(item) for item in (data or {}).get("results", [])]
        except (KeyError, TypeError) as e:
            raise ServiceError(self.service_name, f"Malformed lobby list: {e}") from e

    async def create_lobby(self, name: str, max_sessions: int = 0) -> Lobby:
        data = await self._request("PUT", "/lobby", params={"name": name, "maxSessions": max_sessions})
        try:
            return self._lobby(data)
        except (KeyError, TypeError) as e:
            raise ServiceError(self.service_name, f"Malformed lobby: {e}") from e

    async def join_lobby(self, lobby_id: str, session_id: str) -> None:
        await self._request("PUT", "/session", params={"lobbyId": lobby_id, "sessionId": session_id})
        logger.debug(f"Session {session_id} joined lobby {lobby_id}")

    async def list_sessions(self, lobby_id: str) -> list[PeerSession]:
        """List the sessions currently in a lobby."""
        data = await self._request("GET", "/sessions", params={"id": lobby_id})
        try:
            return [PeerSession(str(item["sessionId"])) for item in data or []]
        except (KeyError, TypeError) as e:
            raise ServiceError(self.service_name, f"Malformed session list: {e}") from e


@dataclass
class PunchthroughClient(_ServiceClient):
    """Client for the NAT punchthrough (signaling) service."""

    service_name: str = field(default="punchthrough", init=False)

    @property
    def base_url(self) -> str:
        return self.config.punchthrough_url

    async def request_punch_message(self, session_id: str) -> PunchMessage:
        """Ask for the datagram to send for this session's punchthrough."""
        data = await self._request("PUT", "/punchthrough", params={"session": session_id})
        try:
            return PunchMessage(
                target_host=data["host"],
                target_port=int(data["port"]),
                payload=base64.b64decode(data["message"]),
            )
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise ServiceError(self.service_name, f"Malformed punch message: {e}") from e

    async def poll_completion(self, session_id: str) -> bool:
        """Check whether punchthrough has completed for the session."""
        data = await self._request("GET", "/punchthrough", params={"session": session_id})
        return data is True

    async def list_endpoints(self, session_id: str) -> list[Endpoint]:
        """Endpoints the service has observed for a session."""
        data = await self._request("GET", "/endpoints", params={"session": session_id})
        try:
            return [Endpoint(item["host"], int(item["port"])) for item in data or []]
        except (KeyError, TypeError, ValueError) as e:
            raise ServiceError(self.service_name, f"Malformed endpoint list: {e}") from e
