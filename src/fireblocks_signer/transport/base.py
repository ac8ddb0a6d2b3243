"""Transport port to the custody service.

The signing core only needs three calls. How they are authenticated and
carried over the wire is up to the implementation.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from solders.pubkey import Pubkey

from fireblocks_signer.asset import Asset
from fireblocks_signer.models import TransactionResponse

if TYPE_CHECKING:
    from fireblocks_signer.signing.base import SigningRequest


class TransportPort(ABC):
    """Abstract custody service transport.

    Every method raises TransportError on network failure, non-2xx
    responses, or unparseable bodies.
    """

    @abstractmethod
    async def submit(self, request: "SigningRequest") -> str:
        """Create a signing transaction.

        Returns:
            Fireblocks transaction id
        """

    @abstractmethod
    async def query(self, request_id: str) -> TransactionResponse:
        """Fetch the current state of a transaction."""

    @abstractmethod
    async def vault_address(self, vault_id: str, asset: Asset) -> Pubkey:
        """Resolve the first address of a vault account for an asset.

        Raises:
            VaultAddressError: If the vault has no address for the asset
        """

    async def aclose(self) -> None:
        """Release network resources."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
