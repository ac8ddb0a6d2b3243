"""Base types for custody-backed transaction signing.

Signing flow:
1. Canonicalize the unsigned message into a SigningRequest
2. Submit the request to Fireblocks (PROGRAM_CALL on a vault account)
3. Poll the transaction until it reaches a terminal status
4. Decode and verify the returned signature
5. Hand the signature back (Fireblocks has already broadcast the transaction)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import base58
from solders.pubkey import Pubkey
from solders.signature import Signature

from fireblocks_signer.asset import Asset
from fireblocks_signer.models import (
    ExtraParameters,
    SourceTransferPeerPath,
    TransactionRequest,
)

ED25519 = "ed25519"
SIGNATURE_LENGTH = 64


class SignerType(str, Enum):
    """Where the private key lives."""
    LOCAL = "local"             # solders Keypair in memory (dev/tests)
    FIREBLOCKS = "fireblocks"   # Fireblocks vault (MPC custody)


@dataclass(frozen=True)
class SigningRequest:
    """One request to sign a Solana message through Fireblocks.

    Attributes:
        asset: Fireblocks asset id (network selector)
        vault_id: Source vault account id
        message: Exact serialized message bytes that will be verified
        fingerprint: SHA-256 hex digest of `message`
        payload: Base64 bincode of the unsigned transaction wrapping `message`
        signer: Public key expected to produce the signature
        note: Optional human-readable note shown in the Fireblocks console
    """
    asset: Asset
    vault_id: str
    message: bytes
    fingerprint: str
    payload: str
    signer: Pubkey
    note: Optional[str] = None

    def to_transaction_request(self) -> TransactionRequest:
        """Build the POST /v1/transactions body."""
        return TransactionRequest(
            asset_id=self.asset.value,
            source=SourceTransferPeerPath(id=self.vault_id),
            extra_parameters=ExtraParameters(program_call_data=self.payload),
            note=self.note,
        )

    def __repr__(self) -> str:
        return (
            f"SigningRequest(asset={self.asset.value}, vault={self.vault_id}, "
            f"signer={self.signer}, fingerprint={self.fingerprint})"
        )


@dataclass(frozen=True)
class SignatureResult:
    """Verified signature returned by the custody service."""
    signature: Signature
    request_id: str
    fingerprint: str
    algorithm: str = ED25519

    def to_bytes(self) -> bytes:
        return bytes(self.signature)

    def to_base58(self) -> str:
        return base58.b58encode(bytes(self.signature)).decode()
