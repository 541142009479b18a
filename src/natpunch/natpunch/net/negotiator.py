"""
Punchthrough Negotiator

Drives one NAT punchthrough negotiation against the signaling service:

    REQUESTING --(punch message issued)--> PROBING
    PROBING    --(completion reported)---> CONFIRMED
    any        --(error / cancellation)--> ABANDONED

While PROBING the same punch message is sent, the negotiator waits,
then polls for completion, forever. Only the signaling service can
tell when both NAT mappings have settled, so the client keeps its own
mapping fresh by sending until told otherwise. Callers bound the loop
by cancelling the task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from natpunch.core.constants import MAX_POLL_ERRORS, PUNCH_RETRY_INTERVAL
from natpunch.core.errors import NegotiationAbandoned
from natpunch.core.types import EndpointSet, NegotiationState, PunchMessage
from natpunch.net.channel import UdpChannel
from natpunch.net.services import SignalingService

__all__ = [
    "PunchthroughNegotiator",
]

logger = logging.getLogger(__name__)


@dataclass
class PunchthroughNegotiator:
    """
    Punchthrough state machine for the local session.

    Example:
        negotiator = PunchthroughNegotiator(channel, signaling, session.id)
        endpoints = await asyncio.wait_for(negotiator.run(), timeout=60)

    Attributes:
        channel: Shared UDP channel the punch message is sent on.
        signaling: Punchthrough service.
        session_id: Local session ID.
        retry_interval: Seconds between sending and polling.
        max_poll_errors: Consecutive failed polls tolerated before
            abandoning; None retries forever.
        on_state_change: Called with each new state.
    """

    channel: UdpChannel
    signaling: SignalingService
    session_id: str
    retry_interval: float = PUNCH_RETRY_INTERVAL
    max_poll_errors: Optional[int] = MAX_POLL_ERRORS
    on_state_change: Optional[Callable[[NegotiationState], None]] = None

    _state: NegotiationState = field(default=NegotiationState.REQUESTING, init=False)
    _message: Optional[PunchMessage] = field(default=None, init=False)
    _attempts: int = field(default=0, init=False)
    _result: Optional[EndpointSet] = field(default=None, init=False)
    _started: bool = field(default=False, init=False)

    @property
    def state(self) -> NegotiationState:
        return self._state

    @property
    def attempts(self) -> int:
        """Number of punch messages sent so far."""
        return self._attempts

    @property
    def message(self) -> Optional[PunchMessage]:
        return self._message

    @property
    def result(self) -> Optional[EndpointSet]:
        """Confirmed endpoints, once CONFIRMED."""
        return self._result

    def _transition(self, state: NegotiationState) -> None:
        logger.debug(f"Negotiation {self._state.value} -> {state.value}")
        self._state = state
        if self.on_state_change:
            self.on_state_change(state)

    async def run(self) -> EndpointSet:
        """
        Run the negotiation to completion.

        Returns:
            EndpointSet holding the local session's confirmed endpoints.

        Raises:
            NegotiationAbandoned: If the punch message cannot be obtained
                or polling keeps failing, or if the channel closes first.
            RuntimeError: If this negotiator has already been run.
        """
        if self._started:
            raise RuntimeError("Negotiation already started")
        self._started = True

        try:
            self._message = await self._request()
            self._transition(NegotiationState.PROBING)
            await self._probe(self._message)
            return await self._confirm()
        except asyncio.CancelledError:
            self._transition(NegotiationState.ABANDONED)
            logger.info("NAT punchthrough cancelled")
            raise

    async def _request(self) -> PunchMessage:
        logger.info("Getting NAT punchthrough message...")
        try:
            message = await self.signaling.request_punch_message(self.session_id)
        except Exception as e:
            self._transition(NegotiationState.ABANDONED)
            logger.error(f"Could not obtain NAT punchthrough message: {e}")
            raise NegotiationAbandoned(f"Punch message request failed: {e}") from e
        logger.info(f"Will send NAT punchthrough message to {message.target}...")
        return message

    async def _probe(self, message: PunchMessage) -> None:
        target = message.target
        poll_errors = 0
        while True:
            self._check_channel()
            logger.info("Sending UDP packet...")
            self.channel.send_to(message.payload, target)
            self._attempts += 1

            logger.info("Waiting...")
            await asyncio.sleep(self.retry_interval)
            self._check_channel()

            logger.info("Checking if NAT punchthrough is complete...")
            try:
                done = await self.signaling.poll_completion(self.session_id)
            except Exception as e:
                poll_errors += 1
                logger.warning(f"Completion poll failed ({poll_errors} in a row): {e}")
                if self.max_poll_errors is not None and poll_errors > self.max_poll_errors:
                    self._transition(NegotiationState.ABANDONED)
                    raise NegotiationAbandoned(
                        f"Completion poll failed {poll_errors} times in a row"
                    ) from e
                continue

            poll_errors = 0
            if done:
                return

    def _check_channel(self) -> None:
        if not self.channel.is_open:
            self._transition(NegotiationState.ABANDONED)
            logger.error("UDP channel closed during NAT punchthrough")
            raise NegotiationAbandoned("UDP channel closed")

    async def _confirm(self) -> EndpointSet:
        logger.info("NAT punchthrough completed successfully!")
        try:
            endpoints = await self.signaling.list_endpoints(self.session_id)
        except Exception as e:
            logger.warning(f"Could not fetch confirmed endpoints: {e}")
            endpoints = []

        self._result = EndpointSet({self.session_id: endpoints})
        self._transition(NegotiationState.CONFIRMED)

        logger.info("Available at the following endpoints:")
        for _, endpoint in self._result.pairs():
            logger.info(f" - {endpoint}")
        return self._result
