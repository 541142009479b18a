"""
Peer Prober

Periodically discovers the peers in a lobby and pings every candidate
endpoint. The pings double as NAT keep-alives: each outbound datagram
refreshes the local port mapping that punchthrough depends on.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from natpunch.core.constants import PING_INTERVAL
from natpunch.core.types import EndpointSet, make_ping
from natpunch.net.channel import UdpChannel
from natpunch.net.directory import PeerDirectory

__all__ = [
    "Prober",
]

logger = logging.getLogger(__name__)


@dataclass
class Prober:
    """
    Discovery and keep-alive loop.

    Attributes:
        channel: Shared UDP channel used for the pings.
        directory: Peer directory queried every cycle.
        lobby_id: Lobby whose members are probed.
        session_id: Local session ID announced in each ping.
        interval: Seconds to wait after each sweep.
    """

    channel: UdpChannel
    directory: PeerDirectory
    lobby_id: str
    session_id: str
    interval: float = PING_INTERVAL

    sweeps: int = field(default=0, init=False)
    last_snapshot: Optional[EndpointSet] = field(default=None, init=False)

    async def sweep(self) -> int:
        """Run one discovery cycle and ping every endpoint found.

        Returns:
        -------
            Number of pings sent.
        """
        snapshot = await self.directory.discover(self.lobby_id)
        self.last_snapshot = snapshot

        logger.info("Sending PING packets to all discovered endpoints...")
        ping = make_ping(self.session_id)
        sent = 0
        for _, endpoint in snapshot.pairs():
            logger.info(f"Sending PING to {endpoint}")
            self.channel.send_to(ping, endpoint)
            sent += 1
        self.sweeps += 1
        return sent

    async def run(self) -> None:
        """Probe until the channel closes or the task is cancelled."""
        while self.channel.is_open:
            try:
                await self.sweep()
            except Exception as e:
                logger.warning(f"Peer discovery failed, retrying next cycle: {e}")

            # Don't spam other clients with pings
            await asyncio.sleep(self.interval)
        logger.debug("Prober stopped: channel closed")
