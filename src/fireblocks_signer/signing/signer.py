"""Fireblocks-backed Solana signer.

Exposes the two calls a Solana client needs from a signer: the public key,
and a signature over a serialized message.

IMPORTANT: Fireblocks broadcasts the transaction to the network as part of
signing a PROGRAM_CALL. The returned signature belongs to a transaction that
is already on its way to the cluster; callers must not broadcast it again.
A TimedOut error means the outcome is unknown, not that signing failed.
Retrying the same logical operation after a timeout can land two
transactions.
"""

import asyncio
import logging
from typing import Optional

from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from fireblocks_signer.asset import Asset
from fireblocks_signer.signing.base import SignatureResult, SignerType
from fireblocks_signer.signing.canonical import canonicalize
from fireblocks_signer.signing.decoder import ResultDecoder
from fireblocks_signer.signing.poll import PollConfig, PollEngine
from fireblocks_signer.transport.base import TransportPort

logger = logging.getLogger(__name__)


class FireblocksSigner:
    """Solana signer whose key lives in a Fireblocks vault.

    The public key is resolved once at construction and never changes.
    Concurrent `try_sign` calls are independent Fireblocks transactions
    and may complete in any order.
    """

    def __init__(
        self,
        pubkey: Pubkey,
        vault_id: str,
        transport: Optional[TransportPort] = None,
        asset: Asset = Asset.SOL_TEST,
        poll_config: Optional[PollConfig] = None,
        note: Optional[str] = None,
        engine: Optional[PollEngine] = None,
        keypair: Optional[Keypair] = None,
    ):
        """Initialize signer.

        Args:
            pubkey: Vault public key
            vault_id: Fireblocks vault account id
            transport: Custody service transport (not needed with a keypair)
            asset: SOL or SOL_TEST
            poll_config: Poll timeout/interval/callback
            note: Note attached to every Fireblocks transaction
            engine: Pre-built poll engine (overrides transport/poll_config)
            keypair: Local keypair; signs in memory instead of via Fireblocks
        """
        if keypair is None and transport is None and engine is None:
            raise ValueError("FireblocksSigner needs either a keypair or a Fireblocks transport")

        self._pubkey = pubkey
        self.vault_id = vault_id
        self.asset = asset
        self.note = note
        self._keypair = keypair
        self._engine = engine or (PollEngine(transport, poll_config) if transport else None)
        self._decoder = ResultDecoder()
        self.signer_type = SignerType.LOCAL if keypair is not None else SignerType.FIREBLOCKS

    @classmethod
    def from_keypair(cls, keypair: Keypair) -> "FireblocksSigner":
        """Signer backed by an in-memory keypair (development and tests)."""
        return cls(pubkey=keypair.pubkey(), vault_id="", keypair=keypair)

    def public_key(self) -> Pubkey:
        return self._pubkey

    def pubkey(self) -> Pubkey:
        """Alias matching solders.keypair.Keypair."""
        return self._pubkey

    @property
    def is_interactive(self) -> bool:
        return self.signer_type is SignerType.FIREBLOCKS

    @property
    def poll_config(self) -> Optional[PollConfig]:
        return self._engine.config if self._engine else None

    async def try_sign(self, message: bytes) -> Signature:
        """Sign a serialized Solana message.

        Args:
            message: Serialized legacy or v0 message

        Returns:
            Ed25519 signature that verifies against `public_key()`

        Raises:
            SigningError: EncodingError, SubmissionError, RemoteTerminalFailure,
                TimedOut, DecodeError or SignatureMismatchError
        """
        result = await self._sign(bytes(message))
        return result.signature

    async def try_sign_transaction(self, transaction: VersionedTransaction) -> Signature:
        """Sign a partially signed transaction.

        Signatures already present for other signers travel with the
        payload, so the transaction Fireblocks broadcasts is complete.
        """
        message = to_bytes_versioned(transaction.message)
        result = await self._sign(message, signatures=list(transaction.signatures) or None)
        return result.signature

    def sign_message(self, message: bytes) -> Signature:
        """Blocking form of `try_sign` for synchronous callers.

        Each call runs in its own event loop and closes the transport's
        HTTP client before returning.

        Raises:
            RuntimeError: If called from inside a running event loop
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self._sign_and_close(message))
        raise RuntimeError("sign_message() called from a running event loop; await try_sign() instead")

    async def aclose(self) -> None:
        """Release the transport's network resources."""
        if self._engine is not None:
            await self._engine.transport.aclose()

    async def _sign_and_close(self, message: bytes) -> Signature:
        try:
            return await self.try_sign(message)
        finally:
            await self.aclose()

    async def _sign(self, message: bytes, signatures: Optional[list[Signature]] = None) -> SignatureResult:
        request = canonicalize(
            message, self._pubkey, self.asset, self.vault_id, note=self.note, signatures=signatures
        )

        if self._keypair is not None:
            signature = self._keypair.sign_message(request.message)
            return SignatureResult(signature=signature, request_id="local", fingerprint=request.fingerprint)

        logger.debug(f"Requesting Fireblocks signature for {request!r}")

        state, response = await self._engine.run(request)
        result = self._decoder.decode(response, request)

        logger.info(
            f"Fireblocks txid {result.request_id} signed {request.fingerprint[:16]} "
            f"as {result.signature} after {state.polls} polls"
        )
        return result

    def __repr__(self) -> str:
        return f"FireblocksSigner(vault={self.vault_id}, pubkey={self._pubkey}, type={self.signer_type.value})"
