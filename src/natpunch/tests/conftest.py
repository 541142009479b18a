"""Pytest configuration and fixtures for natpunch tests.

Provides in-memory stand-ins for the lobby and punchthrough services so
the networking components can be exercised without remote calls.
"""

from typing import Dict, List, Optional, Union

import pytest

from natpunch.core.errors import ServiceError
from natpunch.core.types import Endpoint, PeerSession, PunchMessage


class FakeMembers:
    """MemberService stand-in returning a configurable session list."""

    def __init__(self, session_ids: Optional[List[str]] = None) -> None:
        self.session_ids = list(session_ids or [])
        self.failures = 0
        self.calls = 0

    async def list_sessions(self, lobby_id: str) -> List[PeerSession]:
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise ServiceError("lobby", "unavailable", 503)
        return [PeerSession(sid) for sid in self.session_ids]


class FakeSignaling:
    """SignalingService stand-in.

    Attributes:
        message: Punch message handed out, or an exception to raise.
        complete_after: Poll number that first reports completion
            (None never completes).
        poll_results: Scripted poll outcomes consumed before
            complete_after applies; exceptions are raised.
        endpoints: Per-session endpoint lists, or exceptions to raise.
    """

    def __init__(self) -> None:
        self.message: Union[PunchMessage, Exception] = PunchMessage(
            "127.0.0.1", 9, b"\x00punch\xffpayload"
        )
        self.complete_after: Optional[int] = 1
        self.poll_results: List[Union[bool, Exception]] = []
        self.endpoints: Dict[str, Union[List[Endpoint], Exception]] = {}
        self.requests = 0
        self.polls = 0
        self.endpoint_lookups: List[str] = []

    async def request_punch_message(self, session_id: str) -> PunchMessage:
        self.requests += 1
        if isinstance(self.message, Exception):
            raise self.message
        return self.message

    async def poll_completion(self, session_id: str) -> bool:
        self.polls += 1
        if self.poll_results:
            outcome = self.poll_results.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return self.complete_after is not None and self.polls >= self.complete_after

    async def list_endpoints(self, session_id: str) -> List[Endpoint]:
        self.endpoint_lookups.append(session_id)
        result = self.endpoints.get(session_id, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


@pytest.fixture
def members():
    return FakeMembers()


@pytest.fixture
def signaling():
    return FakeSignaling()
