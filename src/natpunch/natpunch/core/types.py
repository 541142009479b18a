"""
NAT Punchthrough Data Types

Value types shared by the UDP channel, peer discovery and the
punchthrough negotiator:
- Endpoint: an (IP address, port) pair
- PeerSession: another participant known to the lobby service
- EndpointSet: snapshot of sessionId -> candidate endpoints
- PunchMessage: the datagram the signaling service asks us to send
- NegotiationState: punchthrough state machine states
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from natpunch.core.constants import PING_PREFIX

__all__ = [
    "Endpoint",
    "PeerSession",
    "EndpointSet",
    "PunchMessage",
    "NegotiationState",
    "AuthenticatedSession",
    "Lobby",
    "Datagram",
    "make_ping",
    "parse_ping",
]


@dataclass(frozen=True, slots=True)
class Endpoint:
    """
    A reachable network destination.

    Examples
    --------
        >>> ep = Endpoint.parse("203.0.113.7:40000")
        >>> ep.addr
        ('203.0.113.7', 40000)
        >>> str(ep)
        '203.0.113.7:40000'
    """

    host: str
    port: int

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"Port must be in range 0-65535, got {self.port}")

    @classmethod
    def parse(cls, text: str) -> Endpoint:
        """Parse a "host:port" string."""
        host, sep, port = text.rpartition(":")
        if not sep or not host:
            raise ValueError(f"Expected host:port, got {text!r}")
        return cls(host.strip("[]"), int(port))

    @classmethod
    def from_addr(cls, addr: tuple) -> Endpoint:
        """Build from a socket address tuple (IPv6 tuples carry extra fields)."""
        return cls(addr[0], addr[1])

    @property
    def addr(self) -> tuple[str, int]:
        """Socket address tuple."""
        return (self.host, self.port)

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class PeerSession:
    """One other participant in a lobby."""

    session_id: str


class EndpointSet(Mapping[str, tuple[Endpoint, ...]]):
    """Immutable snapshot mapping sessionId to its candidate endpoints.

    A peer that resolved to nothing (or failed to resolve) is still
    present, with an empty tuple.
    """

    __slots__ = ("_entries",)

    def __init__(
        self,
        entries: Optional[Mapping[str, Iterable[Endpoint]]] = None,
    ) -> None:
        self._entries: dict[str, tuple[Endpoint, ...]] = {}
        if entries:
            for session_id, endpoints in entries.items():
                self._entries[session_id] = tuple(endpoints)

    def __getitem__(self, session_id: str) -> tuple[Endpoint, ...]:
        return self._entries[session_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"EndpointSet({self._entries!r})"

    def peers(self) -> list[str]:
        """Session IDs in discovery order."""
        return list(self._entries)

    def pairs(self) -> Iterator[tuple[str, Endpoint]]:
        """Iterate every (session_id, endpoint) pair."""
        for session_id, endpoints in self._entries.items():
            for endpoint in endpoints:
                yield session_id, endpoint

    def total_endpoints(self) -> int:
        return sum(len(endpoints) for endpoints in self._entries.values())


@dataclass(frozen=True)
class PunchMessage:
    """
    Punch datagram issued by the signaling service.

    The payload must be retransmitted verbatim; the service correlates
    retries by content and source endpoint.

    Attributes:
        target_host: Host the datagram is sent to.
        target_port: Port the datagram is sent to.
        payload: Opaque bytes to send.
    """

    target_host: str
    target_port: int
    payload: bytes

    @property
    def target(self) -> Endpoint:
        return Endpoint(self.target_host, self.target_port)


class NegotiationState(Enum):
    """Punchthrough negotiation state."""

    REQUESTING = "requesting"
    PROBING = "probing"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (NegotiationState.CONFIRMED, NegotiationState.ABANDONED)


@dataclass(frozen=True)
class AuthenticatedSession:
    """Session issued by the user session service."""

    id: str
    api_key: str


@dataclass(frozen=True)
class Lobby:
    id: str
    name: str = ""
    max_sessions: int = 0


@dataclass(frozen=True)
class Datagram:
    """A received datagram and where it came from."""

    payload: bytes
    source: Endpoint

    @property
    def text(self) -> str:
        return self.payload.decode("ascii", errors="replace")


def make_ping(session_id: str) -> bytes:
    """Build the ping payload announcing ``session_id``."""
    return f"{PING_PREFIX}{session_id}".encode("ascii", errors="replace")


def parse_ping(payload: bytes) -> Optional[str]:
    """Return the sender's session ID if ``payload`` is a ping."""
    prefix = PING_PREFIX.encode("ascii")
    if not payload.startswith(prefix):
        return None
    session_id = payload[len(prefix):].decode("ascii", errors="replace")
    return session_id or None
