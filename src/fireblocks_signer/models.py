"""Fireblocks REST wire models.

Only the subset of the Transactions and Vaults API the signer needs.
Field names follow the API (camelCase) through aliases.

Statuses are kept as raw strings on the response models so that a label
added to the API later still parses; `TransactionStatus.classify` decides
what the poll loop does with it.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class StatusClass(str, Enum):
    """How the poll loop treats a remote status."""
    IN_FLIGHT = "in_flight"
    SUCCESS = "success"
    FAILURE = "failure"


class TransactionStatus(str, Enum):
    """Fireblocks transaction lifecycle states."""
    SUBMITTED = "SUBMITTED"
    PENDING_AML_SCREENING = "PENDING_AML_SCREENING"
    PENDING_ENRICHMENT = "PENDING_ENRICHMENT"
    PENDING_AUTHORIZATION = "PENDING_AUTHORIZATION"
    QUEUED = "QUEUED"
    PENDING_SIGNATURE = "PENDING_SIGNATURE"
    PENDING_3RD_PARTY_MANUAL_APPROVAL = "PENDING_3RD_PARTY_MANUAL_APPROVAL"
    PENDING_3RD_PARTY = "PENDING_3RD_PARTY"
    BROADCASTING = "BROADCASTING"
    COMPLETED = "COMPLETED"
    CONFIRMING = "CONFIRMING"
    CANCELLING = "CANCELLING"
    CANCELLED = "CANCELLED"
    BLOCKED = "BLOCKED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"

    @property
    def status_class(self) -> StatusClass:
        if self in _SUCCESS:
            return StatusClass.SUCCESS
        if self in _FAILURE:
            return StatusClass.FAILURE
        return StatusClass.IN_FLIGHT

    @property
    def is_done(self) -> bool:
        return self.status_class is not StatusClass.IN_FLIGHT

    @classmethod
    def lookup(cls, raw: str) -> Optional["TransactionStatus"]:
        """Map a raw API label to a known status, or None."""
        try:
            return cls(raw)
        except ValueError:
            return None

    @classmethod
    def classify(cls, raw: str) -> StatusClass:
        """Classify a raw status label.

        Unknown labels are treated as in-flight so the loop keeps polling
        until the deadline instead of failing on a new API state.
        """
        status = cls.lookup(raw)
        if status is None:
            logger.warning(f"Unknown Fireblocks status {raw!r}, treating as in-flight")
            return StatusClass.IN_FLIGHT
        return status.status_class


_SUCCESS = frozenset({TransactionStatus.COMPLETED, TransactionStatus.CONFIRMING})

_FAILURE = frozenset({
    TransactionStatus.FAILED,
    TransactionStatus.BLOCKED,
    TransactionStatus.REJECTED,
    TransactionStatus.CANCELLED,
    TransactionStatus.CANCELLING,
})


class FeeLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        """Serialize with API field names, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ExtraParameters(_WireModel):
    program_call_data: str = Field(..., alias="programCallData")


class SourceTransferPeerPath(_WireModel):
    type: str = Field(default="VAULT_ACCOUNT")
    id: str


class SystemMessageInfo(_WireModel):
    type: Optional[str] = Field(None, description="WARN or BLOCK")
    message: Optional[str] = None


class TransactionRequest(_WireModel):
    """Body of POST /v1/transactions for a Solana program call."""

    operation: str = Field(default="PROGRAM_CALL")
    external_tx_id: Optional[str] = Field(None, alias="externalTxId")
    note: Optional[str] = None
    asset_id: str = Field(..., alias="assetId")
    source: SourceTransferPeerPath
    fee_level: FeeLevel = Field(default=FeeLevel.LOW, alias="feeLevel")
    fail_on_low_fee: bool = Field(default=False, alias="failOnLowFee")
    extra_parameters: ExtraParameters = Field(..., alias="extraParameters")
    customer_ref_id: Optional[str] = Field(None, alias="customerRefId")


class CreateTransactionResponse(_WireModel):
    id: str
    status: str
    system_messages: Optional[SystemMessageInfo] = Field(None, alias="systemMessages")

    def __str__(self) -> str:
        return self.id


class TransactionResponse(_WireModel):
    """Body of GET /v1/transactions/{id}.

    For Solana, `tx_hash` is the base58 transaction signature, which is the
    custody signature of the first signer slot.
    """

    id: str
    status: str
    external_tx_id: Optional[str] = Field(None, alias="externalTxId")
    sub_status: Optional[str] = Field(None, alias="subStatus")
    tx_hash: Optional[str] = Field(None, alias="txHash")
    note: Optional[str] = None
    asset_id: str = Field(default="", alias="assetId")
    source_address: Optional[str] = Field(None, alias="sourceAddress")
    created_at: Optional[int] = Field(None, alias="createdAt")
    last_updated: Optional[int] = Field(None, alias="lastUpdated")
    created_by: Optional[str] = Field(None, alias="createdBy")
    signed_by: Optional[list[str]] = Field(None, alias="signedBy")
    rejected_by: Optional[str] = Field(None, alias="rejectedBy")
    customer_ref_id: Optional[str] = Field(None, alias="customerRefId")
    num_of_confirmations: Optional[int] = Field(None, alias="numOfConfirmations")
    system_messages: Optional[SystemMessageInfo] = Field(None, alias="systemMessages")
    error_description: Optional[str] = Field(None, alias="errorDescription")

    @property
    def known_status(self) -> Optional[TransactionStatus]:
        return TransactionStatus.lookup(self.status)

    @property
    def status_class(self) -> StatusClass:
        return TransactionStatus.classify(self.status)

    def __str__(self) -> str:
        return f"txid: {self.id} status: {self.status} hash: {self.tx_hash or 'N/A'}"


class VaultWalletAddress(_WireModel):
    asset_id: str = Field(..., alias="assetId")
    address: str
    description: Optional[str] = None


class VaultAddressesResponse(_WireModel):
    addresses: list[VaultWalletAddress] = Field(default_factory=list)
