"""Custody-backed transaction signing.

- canonicalize: serialized message -> SigningRequest
- PollEngine: submit once, poll until terminal or deadline
- ResultDecoder: terminal response -> verified signature
- FireblocksSigner: public_key() / try_sign()
"""

from fireblocks_signer.signing.base import (
    SignatureResult,
    SignerType,
    SigningRequest,
)
from fireblocks_signer.signing.canonical import canonicalize, fingerprint
from fireblocks_signer.signing.decoder import ResultDecoder
from fireblocks_signer.signing.poll import PollConfig, PollEngine, PollPhase
from fireblocks_signer.signing.signer import FireblocksSigner
from fireblocks_signer.signing.multi import sign_versioned_transaction
from fireblocks_signer.signing.factory import build_signer, get_signer

__all__ = [
    "SignatureResult",
    "SignerType",
    "SigningRequest",
    "canonicalize",
    "fingerprint",
    "ResultDecoder",
    "PollConfig",
    "PollEngine",
    "PollPhase",
    "FireblocksSigner",
    "sign_versioned_transaction",
    "build_signer",
    "get_signer",
]
