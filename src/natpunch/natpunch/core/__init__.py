"""NAT Punchthrough Core Components

This module contains the building blocks shared by the networking layer:
- Endpoint and session value types
- Protocol constants and default intervals
- Exception hierarchy
"""

from natpunch.core.constants import (
    DEFAULT_BIND_HOST,
    DEFAULT_BIND_PORT,
    MAX_POLL_ERRORS,
    PING_INTERVAL,
    PING_PREFIX,
    PUNCH_RETRY_INTERVAL,
)
from natpunch.core.errors import (
    AuthenticationError,
    ChannelClosedError,
    NatPunchError,
    NegotiationAbandoned,
    ServiceError,
)
from natpunch.core.types import (
    AuthenticatedSession,
    Datagram,
    Endpoint,
    EndpointSet,
    Lobby,
    NegotiationState,
    PeerSession,
    PunchMessage,
    make_ping,
    parse_ping,
)

__all__ = [
    # Types
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
    # Errors
    "NatPunchError",
    "AuthenticationError",
    "ServiceError",
    "NegotiationAbandoned",
    "ChannelClosedError",
    # Constants
    "PING_INTERVAL",
    "PUNCH_RETRY_INTERVAL",
    "MAX_POLL_ERRORS",
    "PING_PREFIX",
    "DEFAULT_BIND_HOST",
    "DEFAULT_BIND_PORT",
]
