"""Multi-signer transactions.

Local co-signers sign first; the Fireblocks signature is requested last so
the transaction Fireblocks broadcasts already carries every other
signature. Each Fireblocks signature is its own request: nothing is batched.
The vault must be the fee payer, since Fireblocks reports the first
signature slot.
"""

import logging
from typing import Sequence

from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from fireblocks_signer.errors import EncodingError
from fireblocks_signer.signing.canonical import required_signers
from fireblocks_signer.signing.signer import FireblocksSigner

logger = logging.getLogger(__name__)


def signer_position(transaction: VersionedTransaction, pubkey: Pubkey) -> int:
    """Slot of `pubkey` among the transaction's required signers.

    Raises:
        EncodingError: If `pubkey` is not a required signer
    """
    signers = required_signers(transaction.message)
    try:
        return signers.index(pubkey)
    except ValueError:
        raise EncodingError(f"{pubkey} not found in transaction's required signers") from None


async def sign_versioned_transaction(
    transaction: VersionedTransaction,
    signer: FireblocksSigner,
    co_signers: Sequence[Keypair] = (),
) -> VersionedTransaction:
    """Sign `transaction` with local co-signers and the Fireblocks vault.

    Returns:
        New VersionedTransaction with every slot filled
    """
    message = transaction.message
    message_bytes = to_bytes_versioned(message)
    slots = len(required_signers(message))

    signatures = list(transaction.signatures)
    if len(signatures) != slots:
        signatures = [Signature.default()] * slots

    others = [kp for kp in co_signers if kp.pubkey() != signer.public_key()]
    logger.info(f"multi signing: {len(others)} other signer(s) plus FireblocksSigner")

    for keypair in others:
        signatures[signer_position(transaction, keypair.pubkey())] = keypair.sign_message(message_bytes)

    position = signer_position(transaction, signer.public_key())
    partial = VersionedTransaction.populate(message, signatures)
    signature = await signer.try_sign_transaction(partial)
    logger.debug(f"using slot {position} for fireblocks sig {signature}")

    signatures[position] = signature
    return VersionedTransaction.populate(message, signatures)
