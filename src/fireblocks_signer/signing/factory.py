"""Signer factory.

Builds a FireblocksSigner from Settings. The public key comes from
FIREBLOCKS_PUBKEY when set; otherwise it is looked up once from the vault.

Request authentication is supplied by the caller as an `httpx.Auth`.
"""

import logging
from typing import Callable, Optional

import httpx
from solders.pubkey import Pubkey

from fireblocks_signer.config import Settings, get_settings
from fireblocks_signer.errors import VaultAddressError
from fireblocks_signer.models import TransactionResponse
from fireblocks_signer.signing.poll import PollConfig, log_status
from fireblocks_signer.signing.signer import FireblocksSigner
from fireblocks_signer.transport.base import TransportPort
from fireblocks_signer.transport.http import FireblocksTransport

logger = logging.getLogger(__name__)


def build_transport(settings: Settings, auth: Optional[httpx.Auth] = None) -> FireblocksTransport:
    """Create the HTTP transport described by `settings`."""
    return FireblocksTransport(
        base_url=settings.endpoint,
        auth=auth,
        timeout=settings.client_timeout,
        connect_timeout=settings.connect_timeout,
        user_agent=settings.user_agent,
    )


async def resolve_pubkey(settings: Settings, transport: TransportPort) -> Pubkey:
    """Configured pubkey, or the vault's first address for the asset.

    Raises:
        VaultAddressError: If the configured pubkey is invalid or the vault
            has no address
    """
    if settings.pubkey:
        try:
            return Pubkey.from_string(settings.pubkey)
        except ValueError as e:
            raise VaultAddressError(f"Invalid FIREBLOCKS_PUBKEY {settings.pubkey!r}") from e

    pubkey = await transport.vault_address(settings.vault, settings.asset)
    logger.info(f"Resolved vault {settings.vault} {settings.asset.value} address {pubkey}")
    return pubkey


async def build_signer(
    settings: Optional[Settings] = None,
    auth: Optional[httpx.Auth] = None,
    transport: Optional[TransportPort] = None,
    callback: Optional[Callable[[TransactionResponse], None]] = None,
    note: Optional[str] = None,
) -> FireblocksSigner:
    """Create a signer from configuration.

    Args:
        settings: Settings (defaults to environment)
        auth: Fireblocks request authenticator for the HTTP transport
        transport: Pre-built transport (skips HTTP transport creation)
        callback: Called with every in-flight status while polling
        note: Note attached to every Fireblocks transaction

    Returns:
        FireblocksSigner with its public key resolved

    Raises:
        ValueError: If no vault is configured
        VaultAddressError: If the public key cannot be resolved
    """
    settings = settings or get_settings()
    if not settings.vault:
        raise ValueError("FIREBLOCKS_VAULT is not set")

    transport = transport or build_transport(settings, auth)
    pubkey = await resolve_pubkey(settings, transport)

    poll_config = PollConfig(
        timeout=settings.poll_timeout,
        interval=settings.poll_interval,
        callback=callback or log_status,
    )
    logger.info(f"Initializing Fireblocks signer: {settings.get_safe_dict()}")

    return FireblocksSigner(
        pubkey=pubkey,
        vault_id=settings.vault,
        transport=transport,
        asset=settings.asset,
        poll_config=poll_config,
        note=note,
    )


_signer_instance: Optional[FireblocksSigner] = None


async def get_signer(auth: Optional[httpx.Auth] = None) -> FireblocksSigner:
    """Get the configured signer instance (built once per process).

    Not guarded by a lock: concurrent first calls may each build a signer
    and look up the vault address; the last one built is kept. Await it
    once at startup when that matters.
    """
    global _signer_instance

    if _signer_instance is None:
        _signer_instance = await build_signer(auth=auth)
    return _signer_instance


def reset_signer():
    """Reset the signer instance (for testing)."""
    global _signer_instance
    _signer_instance = None
    get_settings.cache_clear()
