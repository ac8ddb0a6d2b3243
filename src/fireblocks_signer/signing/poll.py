"""Submit-then-poll state machine.

Flow:
1. SigningRequest -> SUBMITTED: submit once; a transport error here fails fast
   (nothing reached Fireblocks, so there is nothing to wait for)
2. SUBMITTED -> POLLING: query the transaction every `interval` seconds
3. POLLING -> SUCCEEDED: COMPLETED / CONFIRMING
4. POLLING -> FAILED: FAILED / BLOCKED / REJECTED / CANCELLED / CANCELLING
5. POLLING -> TIMED_OUT: deadline (submission time + `timeout`) passed

Transport errors while polling are retried until the deadline. The
deadline is fixed at submission, so a status that keeps flapping cannot
extend the wait.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

from fireblocks_signer.errors import (
    RemoteTerminalFailure,
    SubmissionError,
    TimedOut,
    TransportError,
)
from fireblocks_signer.models import StatusClass, TransactionResponse
from fireblocks_signer.signing.base import SigningRequest
from fireblocks_signer.transport.base import TransportPort

logger = logging.getLogger(__name__)

DEFAULT_POLL_TIMEOUT = 15.0
DEFAULT_POLL_INTERVAL = 5.0


def log_status(response: TransactionResponse) -> None:
    logger.info(f"{response}")


@dataclass(frozen=True)
class PollConfig:
    """Poll timing.

    Attributes:
        timeout: Seconds from submission until the local wait is abandoned
        interval: Seconds between status queries
        callback: Called with every in-flight status observed
    """
    timeout: float = DEFAULT_POLL_TIMEOUT
    interval: float = DEFAULT_POLL_INTERVAL
    callback: Callable[[TransactionResponse], None] = log_status

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"Poll timeout must be positive, got {self.timeout}")
        if self.interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {self.interval}")


class PollPhase(str, Enum):
    """Poll state machine states."""
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class PollState:
    """Per-call state; never shared between signing calls."""
    request_id: str
    started_at: float
    deadline: float
    phase: PollPhase = PollPhase.SUBMITTED
    last_status: Optional[str] = None
    last_error: Optional[str] = None
    polls: int = 0
    history: list[str] = field(default_factory=list)


class PollEngine:
    """Drives one signing request from submission to a terminal outcome."""

    def __init__(
        self,
        transport: TransportPort,
        config: Optional[PollConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.transport = transport
        self.config = config or PollConfig()
        self._clock = clock
        self._sleep = sleep

    async def submit(self, request: SigningRequest) -> PollState:
        """Submit `request`; the returned state starts in SUBMITTED.

        Raises:
            SubmissionError: If the transport fails; no polling follows
        """
        try:
            request_id = await self.transport.submit(request)
        except TransportError as e:
            logger.error(f"Submission failed for {request!r}: {e}")
            raise SubmissionError(f"Fireblocks rejected signing request: {e}") from e

        started_at = self._clock()
        state = PollState(
            request_id=request_id,
            started_at=started_at,
            deadline=started_at + self.config.timeout,
        )
        logger.info(f"Submitted {request.fingerprint} as txid {request_id}")
        return state

    async def poll(self, state: PollState) -> TransactionResponse:
        """SUBMITTED -> POLLING -> terminal.

        Returns:
            The terminal-success TransactionResponse

        Raises:
            RemoteTerminalFailure: Fireblocks ended the transaction unsuccessfully
            TimedOut: Deadline passed with the transaction still in flight
        """
        state.phase = PollPhase.POLLING

        while True:
            state.polls += 1
            response = await self._tick(state)

            if response is not None:
                status_class = response.status_class
                if status_class is StatusClass.SUCCESS:
                    state.phase = PollPhase.SUCCEEDED
                    logger.debug(f"Transaction {state.request_id} completed with status {response.status}")
                    return response

                if status_class is StatusClass.FAILURE:
                    state.phase = PollPhase.FAILED
                    logger.error(f"Transaction {state.request_id} ended with status {response.status}")
                    raise RemoteTerminalFailure(
                        request_id=state.request_id,
                        reason=response.status,
                        sub_status=response.sub_status,
                        description=response.error_description,
                    )

                self.config.callback(response)

            now = self._clock()
            if now >= state.deadline:
                state.phase = PollPhase.TIMED_OUT
                logger.warning(
                    f"Timeout while waiting for transaction {state.request_id} "
                    f"(last status {state.last_status}, {state.polls} polls)"
                )
                raise TimedOut(state.request_id, self.config.timeout, state.last_status)

            await self._sleep(min(self.config.interval, state.deadline - now))

    async def run(self, request: SigningRequest) -> tuple[PollState, TransactionResponse]:
        """Submit `request` and wait for its terminal status."""
        state = await self.submit(request)
        response = await self.poll(state)
        return state, response

    async def _tick(self, state: PollState) -> Optional[TransactionResponse]:
        try:
            response = await self.transport.query(state.request_id)
        except TransportError as e:
            state.last_error = str(e)
            logger.warning(f"Error checking txid {state.request_id} (poll {state.polls}): {e}")
            return None

        if response.status != state.last_status:
            state.history.append(response.status)
            logger.debug(f"txid {state.request_id}: {state.last_status} -> {response.status}")
        state.last_status = response.status
        return response
