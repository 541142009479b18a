"""NAT Punchthrough Networking Layer

This module provides the concurrent components of a punchthrough session:
- Shared UDP channel
- Lobby peer discovery and keep-alive probing
- Punchthrough negotiation state machine
- Inbound datagram listener
- Remote service clients and the session driver
"""

from natpunch.net.channel import UdpChannel
from natpunch.net.client import (
    PunchthroughConfig,
    PunchthroughSession,
)
from natpunch.net.directory import PeerDirectory
from natpunch.net.listener import InboundListener
from natpunch.net.negotiator import PunchthroughNegotiator
from natpunch.net.prober import Prober
from natpunch.net.services import (
    LobbyClient,
    MemberService,
    PunchthroughClient,
    ServiceConfig,
    SignalingService,
    UserSessionClient,
)

__all__ = [
    # Channel
    "UdpChannel",
    # Components
    "PeerDirectory",
    "Prober",
    "PunchthroughNegotiator",
    "InboundListener",
    # Services
    "ServiceConfig",
    "MemberService",
    "SignalingService",
    "UserSessionClient",
    "LobbyClient",
    "PunchthroughClient",
    # Session
    "PunchthroughConfig",
    "PunchthroughSession",
]
