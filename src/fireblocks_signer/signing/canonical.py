"""Message canonicalization.

Turns the serialized message a Solana client hands to its signer into the
PROGRAM_CALL payload Fireblocks expects: an unsigned versioned transaction,
bincode-serialized and base64-encoded.

The fingerprint is taken over the caller's bytes, and the message must
re-serialize to exactly those bytes, so the bytes Fireblocks signs are the
bytes the decoder later verifies.
"""

import base64
import hashlib
import logging
from typing import Optional, Sequence

from solders.message import from_bytes_versioned, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from fireblocks_signer.asset import Asset
from fireblocks_signer.errors import EncodingError
from fireblocks_signer.signing.base import SigningRequest

logger = logging.getLogger(__name__)


def fingerprint(message: bytes) -> str:
    """SHA-256 hex digest of the exact message bytes."""
    return hashlib.sha256(message).hexdigest()


def required_signers(message) -> list[Pubkey]:
    """Accounts whose signatures the message header requires, in slot order."""
    count = message.header.num_required_signatures
    return list(message.account_keys[:count])


def canonicalize(
    message: bytes,
    signer: Pubkey,
    asset: Asset,
    vault_id: str,
    note: Optional[str] = None,
    signatures: Optional[Sequence[Signature]] = None,
) -> SigningRequest:
    """Build a SigningRequest from a serialized legacy or v0 message.

    Args:
        message: Serialized message (`to_bytes_versioned` encoding)
        signer: Vault public key that will sign
        asset: Fireblocks asset id
        vault_id: Fireblocks vault account id
        note: Optional note for the Fireblocks console
        signatures: Co-signer signatures to carry in the payload, one per
            required signer slot (default signatures where absent)

    Returns:
        SigningRequest ready for submission

    Raises:
        EncodingError: If the message does not parse, is not canonically
            encoded, or is not paid for by `signer`
    """
    message = bytes(message)
    if not message:
        raise EncodingError("Empty message")

    try:
        parsed = from_bytes_versioned(message)
    except Exception as e:
        raise EncodingError(f"Failed to deserialize message: {e}") from e

    if to_bytes_versioned(parsed) != message:
        raise EncodingError("Message is not canonically encoded; re-serialization differs")

    signers = required_signers(parsed)
    if not signers:
        raise EncodingError("Message requires no signatures")
    # Fireblocks reports the first signature slot as txHash
    if signer != signers[0]:
        raise EncodingError(f"Signer {signer} is not the fee payer of the message ({signers[0]})")

    if signatures is None:
        signatures = [Signature.default()] * len(signers)
    elif len(signatures) != len(signers):
        raise EncodingError(
            f"Expected {len(signers)} signature slots, got {len(signatures)}"
        )

    transaction = VersionedTransaction.populate(parsed, list(signatures))
    payload = base64.b64encode(bytes(transaction)).decode()

    request = SigningRequest(
        asset=asset,
        vault_id=vault_id,
        message=message,
        fingerprint=fingerprint(message),
        payload=payload,
        signer=signer,
        note=note,
    )
    logger.debug(f"Canonicalized {request!r} payload {payload}")
    return request
