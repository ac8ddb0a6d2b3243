"""Signing error taxonomy.

Every error raised to callers derives from SigningError and says what is
known about the remote side effect:

- NOT_SUBMITTED: nothing reached the custody service; safe to retry.
- FAILED: the custody service (or local verification of its answer)
  reported a definite failure.
- UNKNOWN: the local wait was abandoned; the custody service may still sign
  and broadcast. Do NOT retry the same logical operation, ask Fireblocks
  for the transaction status instead.
"""

from enum import Enum
from typing import Optional


class Outcome(str, Enum):
    """What is known about the remote operation when an error is raised."""
    NOT_SUBMITTED = "not_submitted"
    FAILED = "failed"
    UNKNOWN = "unknown"


class SigningError(Exception):
    """Base exception for all signing failures."""

    outcome: Outcome = Outcome.FAILED

    @property
    def retry_safe(self) -> bool:
        """True only when the custody service never received the request."""
        return self.outcome is Outcome.NOT_SUBMITTED


class EncodingError(SigningError):
    """Message cannot be serialized for Fireblocks or has the wrong signer."""

    outcome = Outcome.NOT_SUBMITTED


class TransportError(SigningError):
    """HTTP call to the custody service failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SubmissionError(SigningError):
    """Custody service refused or never received the signing request."""

    outcome = Outcome.NOT_SUBMITTED


class VaultAddressError(SigningError):
    """Vault has no address for the asset, so no public key can be resolved."""

    outcome = Outcome.NOT_SUBMITTED


class RemoteTerminalFailure(SigningError):
    """Custody service ended the transaction as FAILED/BLOCKED/REJECTED/CANCELLED."""

    def __init__(
        self,
        request_id: str,
        reason: str,
        sub_status: Optional[str] = None,
        description: Optional[str] = None,
    ):
        self.request_id = request_id
        self.reason = reason
        self.sub_status = sub_status
        self.description = description
        super().__init__(
            f"txid: {request_id} failed with status {reason} "
            f"substatus: {sub_status or ''!r} error: {description or 'unknown error'}"
        )


class TimedOut(SigningError):
    """Deadline passed while the transaction was still in flight.

    The outcome is unknown: Fireblocks may still sign and broadcast.
    """

    outcome = Outcome.UNKNOWN

    def __init__(self, request_id: str, timeout: float, last_status: Optional[str] = None):
        self.request_id = request_id
        self.timeout = timeout
        self.last_status = last_status
        super().__init__(
            f"txid: {request_id} still {last_status or 'unobserved'} after {timeout:g}s; "
            "local wait abandoned, remote outcome unknown"
        )


class DecodeError(SigningError):
    """Completed response did not carry a well-formed Ed25519 signature."""


class SignatureMismatchError(SigningError):
    """Returned signature does not verify against the message and public key."""
