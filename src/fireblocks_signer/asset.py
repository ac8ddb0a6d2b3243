"""Fireblocks asset identifiers for Solana.

Fireblocks names the Solana networks by asset id:
- SOL: mainnet-beta
- SOL_TEST: devnet/testnet (default, so a misconfigured signer never
  touches mainnet funds)
"""

from enum import Enum


class Asset(str, Enum):
    """Target network selector."""
    SOL = "SOL"
    SOL_TEST = "SOL_TEST"

    @classmethod
    def parse(cls, value: str) -> "Asset":
        """Parse an asset id, case-insensitively.

        Raises:
            ValueError: If the id is not a known Solana asset
        """
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown asset: {value!r}") from None

    @classmethod
    def default(cls) -> "Asset":
        return cls.SOL_TEST

    @classmethod
    def for_network(cls, mainnet: bool) -> "Asset":
        return cls.SOL if mainnet else cls.SOL_TEST

    def __str__(self) -> str:
        return self.value
