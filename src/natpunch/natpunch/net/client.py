"""NAT Punchthrough Session

Runs the three concurrent units of a punchthrough session over a single
UDP channel:
- InboundListener: drains and reports received datagrams
- Prober: discovers lobby peers and pings them every few seconds
- PunchthroughNegotiator: obtains and retransmits the punch message
  until the signaling service confirms the path

The session creates, owns and closes the channel.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from natpunch.core.constants import (
    DEFAULT_BIND_HOST,
    DEFAULT_BIND_PORT,
    MAX_POLL_ERRORS,
    PING_INTERVAL,
    PUNCH_RETRY_INTERVAL,
)
from natpunch.core.errors import NegotiationAbandoned
from natpunch.core.types import Datagram, Endpoint, EndpointSet, NegotiationState
from natpunch.net.channel import UdpChannel
from natpunch.net.directory import PeerDirectory
from natpunch.net.listener import InboundListener
from natpunch.net.negotiator import PunchthroughNegotiator
from natpunch.net.prober import Prober
from natpunch.net.services import MemberService, SignalingService

__all__ = [
    "PunchthroughConfig",
    "PunchthroughSession",
]

logger = logging.getLogger(__name__)


@dataclass
class PunchthroughConfig:
    """Punchthrough session configuration.

    Attributes
    ----------
        lobby_id: Lobby whose members are probed.
        ping_interval: Seconds between discovery sweeps.
        retry_interval: Seconds between punch retransmissions.
        stop_on_confirm: Stop probing and listening once punchthrough
            is confirmed. When False they keep running until stop().
        max_poll_errors: Consecutive failed completion polls tolerated.
        bind_host: Local address for the UDP socket.
        bind_port: Local port for the UDP socket (0 = OS-assigned).
    """

    lobby_id: str
    ping_interval: float = PING_INTERVAL
    retry_interval: float = PUNCH_RETRY_INTERVAL
    stop_on_confirm: bool = True
    max_poll_errors: Optional[int] = MAX_POLL_ERRORS
    bind_host: str = DEFAULT_BIND_HOST
    bind_port: int = DEFAULT_BIND_PORT


class PunchthroughSession:
    """Drives one punchthrough session.

    Example:
    -------
        config = PunchthroughConfig(lobby_id=lobby.id)
        async with PunchthroughSession(config, lobbies, punchthrough, session.id) as session:
            endpoints = await session.run(timeout=120)
    """

    def __init__(
        self,
        config: PunchthroughConfig,
        members: MemberService,
        signaling: SignalingService,
        session_id: str,
        handler: Optional[Callable[[Datagram], None]] = None,
    ) -> None:
        """Initialize session.

        Args:
        ----
            config: Session configuration.
            members: Service listing lobby members.
            signaling: Punchthrough service.
            session_id: Local session ID.
            handler: Called with each received datagram; when omitted
                datagrams are logged.
        """
        self.config = config
        self.session_id = session_id
        self.channel = UdpChannel(config.bind_host, config.bind_port)
        self.listener = InboundListener(self.channel, handler)
        self.prober = Prober(
            channel=self.channel,
            directory=PeerDirectory(members, signaling),
            lobby_id=config.lobby_id,
            session_id=session_id,
            interval=config.ping_interval,
        )
        self.negotiator = PunchthroughNegotiator(
            channel=self.channel,
            signaling=signaling,
            session_id=session_id,
            retry_interval=config.retry_interval,
            max_poll_errors=config.max_poll_errors,
        )
        self._tasks: dict[str, asyncio.Task] = {}

    async def __aenter__(self) -> PunchthroughSession:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
        self.channel.close()

    @property
    def state(self) -> NegotiationState:
        return self.negotiator.state

    @property
    def local_endpoint(self) -> Optional[Endpoint]:
        return self.channel.local_endpoint

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    async def run(self, timeout: Optional[float] = None) -> EndpointSet:
        """Run the session until punchthrough completes.

        Args:
        ----
            timeout: Give up if negotiation has not finished after this
                many seconds. Discovery that continues past confirmation
                is not limited by it.

        Returns:
        -------
            Confirmed endpoints of the local session.

        Raises:
        ------
            NegotiationAbandoned: If negotiation fails or the session is
                stopped before confirmation.
            asyncio.TimeoutError: If ``timeout`` elapses before negotiation
                finishes.
        """
        return await self._run(timeout)

    def stop(self) -> None:
        """Cancel every running unit; the channel closes as they finish."""
        for task in self._tasks.values():
            task.cancel()

    async def _run(self, timeout: Optional[float]) -> EndpointSet:
        if self._tasks:
            raise RuntimeError("Session already started")

        logger.info("Starting UDP client...")
        await self.channel.bind()

        self._tasks = {
            "listener": asyncio.create_task(self.listener.run(), name="natpunch-listener"),
            "prober": asyncio.create_task(self.prober.run(), name="natpunch-prober"),
            "negotiator": asyncio.create_task(self.negotiator.run(), name="natpunch-negotiator"),
        }
        negotiation = self._tasks["negotiator"]
        try:
            done, _ = await asyncio.wait(
                self._tasks.values(), timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
            if not done:
                raise asyncio.TimeoutError(f"Punchthrough not complete after {timeout} seconds")
            if not negotiation.done() or negotiation.cancelled():
                raise NegotiationAbandoned("Session stopped before punchthrough completed")
            result = negotiation.result()

            if not self.config.stop_on_confirm:
                logger.info("Punchthrough confirmed; peer discovery continues until stopped")
                await asyncio.gather(
                    self._tasks["listener"],
                    self._tasks["prober"],
                    return_exceptions=True,
                )
            return result
        finally:
            for task in self._tasks.values():
                task.cancel()
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
            self.channel.close()
