#!/usr/bin/env python
"""
NAT Punchthrough Applications

Command line entry points built on the natpunch session components.
"""
from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Any, Dict, Optional

from natpunch.core.constants import DEMO_LOBBY_NAME
from natpunch.core.errors import AuthenticationError, NatPunchError
from natpunch.core.types import EndpointSet, Lobby
from natpunch.net.client import PunchthroughConfig, PunchthroughSession
from natpunch.net.services import (
    LobbyClient,
    PunchthroughClient,
    ServiceConfig,
    UserSessionClient,
)

logger = logging.getLogger(__name__)


async def find_or_create_lobby(lobbies: LobbyClient, name: str = DEMO_LOBBY_NAME) -> Lobby:
    """Use the first existing lobby, or create one when there are none."""
    logger.info("Finding a suitable game lobby...")
    existing = await lobbies.list_lobbies()
    if not existing:
        logger.info("Creating a game lobby because no lobby already exists.")
        return await lobbies.create_lobby(name, max_sessions=0)
    lobby = existing[0]
    logger.info(f'Using existing game lobby: {lobby.id} "{lobby.name}"')
    return lobby


async def punchthrough_demo(
    email: str,
    password: str,
    config: Optional[ServiceConfig] = None,
    timeout: Optional[float] = None,
) -> EndpointSet:
    """
    Sign in, join a lobby and punch through to its members.

    Args:
        email: Account email address.
        password: Account password.
        config: Service configuration; read from the environment if omitted.
        timeout: Seconds to allow for punchthrough.

    Returns:
        Confirmed endpoints of the local session.

    Raises:
        AuthenticationError: If sign-in fails.
        NegotiationAbandoned: If punchthrough fails.
    """
    config = config or ServiceConfig.from_env()

    logger.info("Logging in...")
    async with UserSessionClient(config) as users:
        session = await users.authenticate(email, password)

    authed = config.with_api_key(session.api_key)
    async with LobbyClient(authed) as lobbies, PunchthroughClient(authed) as punchthrough:
        lobby = await find_or_create_lobby(lobbies)

        logger.info("Joining the game lobby...")
        await lobbies.join_lobby(lobby.id, session.id)

        async with PunchthroughSession(
            PunchthroughConfig(lobby_id=lobby.id),
            members=lobbies,
            signaling=punchthrough,
            session_id=session.id,
        ) as punch:
            return await punch.run(timeout=timeout)


def punchthrough(email: str, password: Optional[str] = None, timeout: Optional[str] = None) -> int:
    """Run the punchthrough demo from the command line."""
    password = password if password is not None else os.environ.get("NATPUNCH_PASSWORD")
    if not password:
        print("A password is required (argument or NATPUNCH_PASSWORD)", file=sys.stderr)
        return 2
    try:
        seconds = float(timeout) if timeout else None
    except ValueError:
        print(f"Invalid timeout: {timeout!r} (expected seconds)", file=sys.stderr)
        return 2

    try:
        endpoints = asyncio.run(punchthrough_demo(email, password, timeout=seconds))
    except AuthenticationError:
        logger.error("Unable to authenticate!")
        return 1
    except (NatPunchError, asyncio.TimeoutError) as e:
        logger.error(f"NAT punchthrough failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
        return 130

    print("Available at the following endpoints:")
    for _, endpoint in endpoints.pairs():
        print(f" - {endpoint}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("NATPUNCH_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    _CLI_COMMANDS: Dict[str, Any] = {
        "punchthrough": punchthrough,
    }
    if len(sys.argv) < 2 or sys.argv[1] not in _CLI_COMMANDS:
        print(f"Usage: python -m natpunch.apps <command> [args]")
        print(f"Commands: {', '.join(_CLI_COMMANDS.keys())}")
        sys.exit(1)
    sys.exit(_CLI_COMMANDS[sys.argv[1]](*sys.argv[2:]))
