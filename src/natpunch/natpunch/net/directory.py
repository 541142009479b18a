"""
Peer Directory

Resolves the members of a lobby to their candidate network endpoints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from natpunch.core.types import Endpoint, EndpointSet
from natpunch.net.services import MemberService, SignalingService

__all__ = [
    "PeerDirectory",
]

logger = logging.getLogger(__name__)


@dataclass
class PeerDirectory:
    """
    Builds EndpointSet snapshots for a lobby.

    Each discover() call is a fresh round trip; nothing is cached
    between calls.

    Attributes:
        members: Service listing the sessions in a lobby.
        signaling: Service publishing each session's endpoints.
    """

    members: MemberService
    signaling: SignalingService

    async def discover(self, lobby_id: str) -> EndpointSet:
        """
        Snapshot the endpoints of every session in a lobby.

        A session whose endpoints cannot be resolved is kept with an
        empty endpoint list; the rest of the lobby is still returned.

        Args:
            lobby_id: Lobby to query.

        Returns:
            EndpointSet covering every listed session.

        Raises:
            ServiceError: If the lobby's session list cannot be fetched.
        """
        logger.info("Discovering other clients in game lobby...")
        sessions = await self.members.list_sessions(lobby_id)

        logger.info("Discovering endpoints for each session...")
        entries: dict[str, list[Endpoint]] = {}
        for session in sessions:
            try:
                endpoints = list(await self.signaling.list_endpoints(session.session_id))
            except Exception as e:
                logger.warning(f"Could not resolve endpoints for session {session.session_id}: {e}")
                endpoints = []
            logger.info(f"Connected session {session.session_id} has {len(endpoints)} endpoints.")
            entries[session.session_id] = endpoints

        return EndpointSet(entries)
