"""
NAT Punchthrough Constants

Contains timing intervals, wire prefixes and default service locations.
"""

from __future__ import annotations

__all__ = [
    # Timing
    "PING_INTERVAL",
    "PUNCH_RETRY_INTERVAL",
    "MAX_POLL_ERRORS",
    "REQUEST_TIMEOUT",
    # Wire
    "PING_PREFIX",
    # Network
    "DEFAULT_BIND_HOST",
    "DEFAULT_BIND_PORT",
    # Services
    "DEFAULT_USER_SESSION_URL",
    "DEFAULT_LOBBY_URL",
    "DEFAULT_PUNCHTHROUGH_URL",
    "API_KEY_HEADER",
    "PASSWORD_SALT",
    "DEMO_LOBBY_NAME",
]

# Seconds between discovery/ping sweeps
PING_INTERVAL = 5.0

# Seconds between punch message retransmissions
PUNCH_RETRY_INTERVAL = 1.0

# Consecutive completion-poll failures tolerated before abandoning
MAX_POLL_ERRORS = 5

# Seconds allowed for a single remote service round trip
REQUEST_TIMEOUT = 10.0

PING_PREFIX = "PING from "

DEFAULT_BIND_HOST = "0.0.0.0"
DEFAULT_BIND_PORT = 0

DEFAULT_USER_SESSION_URL = "https://user-session-api.hivemp.com/v1"
DEFAULT_LOBBY_URL = "https://lobby-api.hivemp.com/v1"
DEFAULT_PUNCHTHROUGH_URL = "https://nat-punchthrough-api.hivemp.com/v1"
API_KEY_HEADER = "X-API-Key"

PASSWORD_SALT = "HiveMPv1"

DEMO_LOBBY_NAME = "NAT Punchthrough Demo Lobby"
