"""Signer configuration using pydantic-settings.

Environment variables use the FIREBLOCKS_ prefix (FIREBLOCKS_VAULT,
FIREBLOCKS_API_KEY, FIREBLOCKS_POLL_TIMEOUT, ...) and may also come from a
.env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fireblocks_signer.asset import Asset
from fireblocks_signer.transport.http import FIREBLOCKS_API, FIREBLOCKS_SANDBOX_API


class Settings(BaseSettings):
    """Fireblocks signer settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBLOCKS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Credentials
    # ======================
    api_key: str = Field(default="", description="Fireblocks API key")
    secret: SecretStr = Field(default=SecretStr(""), description="RSA private key (PEM) for API request signing")
    endpoint: str = Field(default=FIREBLOCKS_API, description="Fireblocks API base URL")

    # ======================
    # Vault
    # ======================
    vault: str = Field(default="", description="Vault account id holding the signing key")
    pubkey: Optional[str] = Field(
        default=None, description="Vault Solana address; looked up from the vault when unset"
    )

    # ======================
    # Network
    # ======================
    mainnet: bool = Field(default=False, description="Sign for SOL (mainnet-beta)")
    testnet: bool = Field(default=False, description="Sign for SOL_TEST")
    devnet: bool = Field(default=False, description="Sign for SOL_TEST")

    # ======================
    # Polling
    # ======================
    poll_timeout: float = Field(default=60.0, description="Seconds to wait for a signature")
    poll_interval: float = Field(default=5.0, description="Seconds between status checks")

    # ======================
    # HTTP client
    # ======================
    client_timeout: float = Field(default=10.0, description="HTTP request timeout")
    connect_timeout: float = Field(default=7.0, description="HTTP connect timeout")
    user_agent: str = Field(default="fireblocks-solana-signer", description="HTTP User-Agent")

    @model_validator(mode="after")
    def _check_timing(self) -> "Settings":
        for name in ("poll_timeout", "poll_interval", "client_timeout", "connect_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.poll_interval > self.poll_timeout:
            raise ValueError("poll_interval must not exceed poll_timeout")
        if self.mainnet and (self.testnet or self.devnet):
            raise ValueError("mainnet cannot be combined with testnet/devnet")
        return self

    @property
    def asset(self) -> Asset:
        """SOL only when mainnet is explicitly requested."""
        return Asset.for_network(self.mainnet)

    @property
    def is_sandbox(self) -> bool:
        return self.endpoint.rstrip("/") == FIREBLOCKS_SANDBOX_API

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "endpoint": self.endpoint,
            "api_key": "***" if self.api_key else "(not set)",
            "secret": "***" if self.secret.get_secret_value() else "(not set)",
            "vault": self.vault or "(not set)",
            "pubkey": self.pubkey or "(lookup)",
            "asset": self.asset.value,
            "poll": {
                "timeout": self.poll_timeout,
                "interval": self.poll_interval,
            },
            "http": {
                "timeout": self.client_timeout,
                "connect_timeout": self.connect_timeout,
                "user_agent": self.user_agent,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
