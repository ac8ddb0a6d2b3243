"""Custody service transports."""

from fireblocks_signer.transport.base import TransportPort
from fireblocks_signer.transport.http import (
    FIREBLOCKS_API,
    FIREBLOCKS_SANDBOX_API,
    FireblocksTransport,
)

__all__ = [
    "TransportPort",
    "FireblocksTransport",
    "FIREBLOCKS_API",
    "FIREBLOCKS_SANDBOX_API",
]
