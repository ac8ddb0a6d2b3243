"""Decode and verify the signature of a completed Fireblocks transaction."""

import logging

import base58
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey
from solders.signature import Signature

from fireblocks_signer.errors import DecodeError, SignatureMismatchError
from fireblocks_signer.models import TransactionResponse
from fireblocks_signer.signing.base import SIGNATURE_LENGTH, SignatureResult, SigningRequest

logger = logging.getLogger(__name__)


def decode_signature(encoded: str) -> Signature:
    """Decode a base58 Ed25519 signature.

    Raises:
        DecodeError: If the string is not base58 or not 64 bytes
    """
    try:
        raw = base58.b58decode(encoded.strip())
    except ValueError as e:
        raise DecodeError(f"Invalid signature format: {encoded}") from e

    if len(raw) != SIGNATURE_LENGTH:
        raise DecodeError(
            f"Invalid signature length {len(raw)} (expected {SIGNATURE_LENGTH}): {encoded}"
        )
    return Signature.from_bytes(raw)


def verify_signature(request: SigningRequest, signature: Signature) -> None:
    """Check `signature` over the request message with the signer's key.

    Raises:
        SignatureMismatchError: If verification fails
    """
    verify_key = VerifyKey(bytes(request.signer))
    try:
        verify_key.verify(request.message, bytes(signature))
    except BadSignatureError as e:
        raise SignatureMismatchError(
            f"Signature {signature} does not verify for {request.signer} "
            f"over message {request.fingerprint}"
        ) from e


class ResultDecoder:
    """Maps a terminal-success response to a verified SignatureResult."""

    def decode(self, response: TransactionResponse, request: SigningRequest) -> SignatureResult:
        if not response.tx_hash:
            raise DecodeError(
                f"No signature available for txid {response.id}: "
                f"{response.error_description or 'response does not contain a txHash'}"
            )

        signature = decode_signature(response.tx_hash)
        try:
            verify_signature(request, signature)
        except SignatureMismatchError:
            logger.error(
                f"Fireblocks txid {response.id} returned a signature that does not verify "
                f"(fingerprint {request.fingerprint})"
            )
            raise

        return SignatureResult(
            signature=signature,
            request_id=response.id,
            fingerprint=request.fingerprint,
        )
