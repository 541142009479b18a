"""
Shared UDP Channel

One bound UDP socket shared by every concurrent unit of a punchthrough
session: the inbound listener drains it, while the prober and the
negotiator send through it.

Sends are fire-and-forget. Receiving is a single-consumer async
iterator that ends (rather than raising) once the channel closes.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import AsyncIterator
from typing import Optional, Union

from natpunch.core.constants import DEFAULT_BIND_HOST, DEFAULT_BIND_PORT
from natpunch.core.errors import ChannelClosedError
from natpunch.core.types import Datagram, Endpoint

__all__ = [
    "UdpChannel",
]

logger = logging.getLogger(__name__)

_CLOSED = object()


class _ChannelProtocol(asyncio.DatagramProtocol):
    """Feeds received datagrams into the channel's queue."""

    def __init__(self, channel: UdpChannel) -> None:
        self._channel = channel

    def datagram_received(self, data: bytes, addr: tuple) -> None:
        self._channel._queue.put_nowait(Datagram(data, Endpoint.from_addr(addr)))

    def error_received(self, exc: Exception) -> None:
        # ICMP errors from earlier sends land here; UDP gives no delivery guarantee
        logger.debug(f"Socket error ignored: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            logger.warning(f"UDP socket lost: {exc}")
        self._channel._mark_closed()


class UdpChannel:
    """
    Owns one UDP socket bound to an OS-assigned port.

    Example:
        async with UdpChannel() as channel:
            channel.send_to(b"hello", Endpoint("203.0.113.7", 40000))
            async for datagram in channel.receive():
                print(datagram.source, datagram.payload)

    Attributes:
        host: Local address to bind.
        port: Local port to bind (0 = any free port).
    """

    def __init__(self, host: str = DEFAULT_BIND_HOST, port: int = DEFAULT_BIND_PORT) -> None:
        self.host = host
        self.port = port
        self._sock: Optional[socket.socket] = None
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._queue: asyncio.Queue[Union[Datagram, object]] = asyncio.Queue()
        self._local: Optional[Endpoint] = None
        self._closed = False

    async def __aenter__(self) -> UdpChannel:
        await self.bind()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        """True between a successful bind() and close()."""
        return self._transport is not None and not self._closed

    @property
    def local_endpoint(self) -> Optional[Endpoint]:
        """Endpoint the socket is bound to, once bound."""
        return self._local

    async def bind(self) -> Endpoint:
        """Bind the socket and return the assigned local endpoint."""
        if self._closed:
            raise ChannelClosedError("Channel is closed")
        if self._transport is not None:
            return self._local

        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind((self.host, self.port))
            sock.setblocking(False)
            loop = asyncio.get_running_loop()
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _ChannelProtocol(self),
                sock=sock,
            )
        except BaseException:
            sock.close()
            raise
        self._sock = sock
        self._transport = transport
        self._local = Endpoint.from_addr(transport.get_extra_info("sockname"))
        logger.info(f"Now listening on {self._local}")
        return self._local

    def send_to(self, data: bytes, destination: Endpoint) -> None:
        """Send one datagram, best effort.

        Args:
        ----
            data: Payload bytes (may be empty).
            destination: Where to send it.

        Raises:
        ------
            ChannelClosedError: If the channel was never bound.
        """
        if self._transport is None:
            raise ChannelClosedError("Channel is not bound")
        if self._closed:
            logger.debug(f"Dropping send to {destination}: channel closed")
            return
        try:
            if data:
                self._transport.sendto(data, destination.addr)
            else:
                # Selector transports silently drop empty payloads
                self._sock.sendto(data, destination.addr)
            logger.debug(f"SEND to {destination}: {len(data)} bytes")
        except OSError as e:
            logger.warning(f"Send to {destination} failed: {e}")

    async def receive(self) -> AsyncIterator[Datagram]:
        """Yield received datagrams until the channel closes."""
        while not self._closed:
            item = await self._queue.get()
            if item is _CLOSED or self._closed:
                break
            yield item
        # Leave the marker for any other waiter
        self._queue.put_nowait(_CLOSED)

    def close(self) -> None:
        """Unbind the socket and end all receive() iterations."""
        if self._transport is not None and not self._transport.is_closing():
            self._transport.close()
            logger.info("UDP channel closed")
        self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
