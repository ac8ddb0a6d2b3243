"""Solana signer backed by the Fireblocks custody service."""

from fireblocks_signer.asset import Asset
from fireblocks_signer.errors import (
    DecodeError,
    EncodingError,
    Outcome,
    RemoteTerminalFailure,
    SignatureMismatchError,
    SigningError,
    SubmissionError,
    TimedOut,
    TransportError,
    VaultAddressError,
)
from fireblocks_signer.signing import (
    FireblocksSigner,
    PollConfig,
    build_signer,
    sign_versioned_transaction,
)
from fireblocks_signer.transport import FireblocksTransport, TransportPort

__version__ = "1.0.9"

__all__ = [
    "Asset",
    "DecodeError",
    "EncodingError",
    "Outcome",
    "RemoteTerminalFailure",
    "SignatureMismatchError",
    "SigningError",
    "SubmissionError",
    "TimedOut",
    "TransportError",
    "VaultAddressError",
    "FireblocksSigner",
    "PollConfig",
    "build_signer",
    "sign_versioned_transaction",
    "FireblocksTransport",
    "TransportPort",
]
