"""Pytest configuration and fixtures."""

import base64
import os
from typing import Optional, Union

import base58
import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

# Keep host configuration out of the tests
for _key in list(os.environ):
    if _key.startswith("FIREBLOCKS_"):
        del os.environ[_key]

from fireblocks_signer.asset import Asset
from fireblocks_signer.errors import TransportError
from fireblocks_signer.models import TransactionResponse
from fireblocks_signer.transport.base import TransportPort

MEMO_PROGRAM = Pubkey.from_string("MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr")


def memo_instruction(text: str, signers: list[Pubkey]) -> Instruction:
    return Instruction(
        MEMO_PROGRAM,
        text.encode(),
        [AccountMeta(pk, True, True) for pk in signers],
    )


def legacy_message(payer: Pubkey, text: str = "fireblocks signer", signers: Optional[list[Pubkey]] = None) -> bytes:
    """Serialized legacy memo message paid by `payer`."""
    ix = memo_instruction(text, signers or [payer])
    message = Message.new_with_blockhash([ix], payer, Hash.default())
    return to_bytes_versioned(message)


def v0_message(payer: Pubkey, text: str = "fireblocks signer versioned") -> bytes:
    """Serialized v0 memo message paid by `payer`."""
    ix = memo_instruction(text, [payer])
    message = MessageV0.try_compile(payer, [ix], [], Hash.default())
    return to_bytes_versioned(message)


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


Step = Union[str, Exception]


class FakeTransport(TransportPort):
    """Scripted custody service.

    `statuses` is consumed one entry per query; the last entry repeats.
    An entry is a status label or an exception to raise. COMPLETED and
    CONFIRMING responses report the first signature slot of the submitted
    transaction as txHash, after `keypair` fills its own slot over the
    submitted message (or over `sign_override` when set).
    """

    def __init__(
        self,
        keypair: Keypair,
        statuses: list[Step],
        submit_error: Optional[Exception] = None,
        sign_override: Optional[bytes] = None,
        tx_hash: Optional[str] = None,
        clock: Optional[FakeClock] = None,
    ):
        self.keypair = keypair
        self.statuses = list(statuses)
        self.submit_error = submit_error
        self.sign_override = sign_override
        self.tx_hash = tx_hash
        self.clock = clock
        self.submitted = []
        self.queries: list[str] = []
        self.query_times: list[float] = []
        self.closed = 0

    async def submit(self, request) -> str:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(request)
        return f"tx-{len(self.submitted)}"

    async def query(self, request_id: str) -> TransactionResponse:
        self.queries.append(request_id)
        if self.clock is not None:
            self.query_times.append(self.clock.now)

        step = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(step, Exception):
            raise step

        tx_hash = None
        if step in ("COMPLETED", "CONFIRMING", "BROADCASTING"):
            tx_hash = self.tx_hash or self._signature()
        return TransactionResponse(
            id=request_id,
            status=step,
            tx_hash=tx_hash,
            asset_id=Asset.SOL_TEST.value,
            sub_status="BLOCKED_BY_POLICY" if step == "BLOCKED" else None,
            error_description="policy" if step == "BLOCKED" else None,
        )

    async def vault_address(self, vault_id: str, asset: Asset) -> Pubkey:
        return self.keypair.pubkey()

    async def aclose(self) -> None:
        self.closed += 1

    def _signature(self) -> str:
        """txHash of the completed transaction: its first signature slot."""
        request = self.submitted[-1]
        tx = VersionedTransaction.from_bytes(base64.b64decode(request.payload))
        signatures = list(tx.signatures)
        vault_signature = self.keypair.sign_message(self.sign_override or request.message)
        for slot, pubkey in enumerate(tx.message.account_keys[:len(signatures)]):
            if pubkey == self.keypair.pubkey():
                signatures[slot] = vault_signature
        return base58.b58encode(bytes(signatures[0])).decode()


@pytest.fixture
def keypair() -> Keypair:
    """Deterministic vault keypair."""
    return Keypair.from_seed(bytes(range(32)))


@pytest.fixture
def other_keypair() -> Keypair:
    return Keypair.from_seed(bytes(range(1, 33)))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def message(keypair) -> bytes:
    return legacy_message(keypair.pubkey())


def transport_error(status_code: int = 503) -> TransportError:
    return TransportError(f"HTTP {status_code}", status_code=status_code, body="unavailable")
