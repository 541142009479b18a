"""Exceptions raised by natpunch."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "NatPunchError",
    "AuthenticationError",
    "ServiceError",
    "NegotiationAbandoned",
    "ChannelClosedError",
]


class NatPunchError(Exception):
    pass


class AuthenticationError(NatPunchError):
    """Raised when the session service returns no authenticated session."""


class ServiceError(NatPunchError):
    """
    Raised when a call to a remote service fails.

    Attributes:
        service: Name of the remote service ("lobby", "punchthrough", ...).
        status: HTTP status code, or None for transport failures.
    """

    def __init__(self, service: str, message: str, status: Optional[int] = None) -> None:
        self.service = service
        self.status = status
        detail = f" (HTTP {status})" if status is not None else ""
        super().__init__(f"{service} service error{detail}: {message}")


class NegotiationAbandoned(NatPunchError):
    """Raised when a punchthrough negotiation ends without confirmation."""


class ChannelClosedError(NatPunchError):
    """Raised when a UDP channel is used outside its open lifetime."""
