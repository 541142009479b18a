"""
Inbound Listener

Drains the shared UDP channel and hands every non-empty datagram to the
registered handlers. No correlation or filtering happens here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from natpunch.core.types import Datagram
from natpunch.net.channel import UdpChannel

__all__ = [
    "InboundListener",
]

logger = logging.getLogger(__name__)


def _log_datagram(datagram: Datagram) -> None:
    logger.info(f"Received remote packet: {datagram.text}")


class InboundListener:
    """Passive tap on a UDP channel's receive path.

    With no handlers registered, received datagrams are logged.
    """

    def __init__(
        self,
        channel: UdpChannel,
        handler: Optional[Callable[[Datagram], None]] = None,
    ) -> None:
        self.channel = channel
        self.received = 0
        self._handlers: list[Callable[[Datagram], None]] = []
        if handler is not None:
            self._handlers.append(handler)

    def add_handler(self, handler: Callable[[Datagram], None]) -> None:
        """Register a handler called with every received datagram."""
        self._handlers.append(handler)

    def _emit(self, datagram: Datagram) -> None:
        handlers = self._handlers or [_log_datagram]
        for handler in handlers:
            try:
                handler(datagram)
            except Exception as e:
                logger.warning(f"Datagram handler {handler!r} failed: {e}")

    async def run(self) -> None:
        """Listen until the channel closes."""
        async for datagram in self.channel.receive():
            if not datagram.payload:
                continue
            self.received += 1
            logger.debug(f"RECV from {datagram.source}: {len(datagram.payload)} bytes")
            self._emit(datagram)
        logger.debug("Listener stopped: channel closed")
