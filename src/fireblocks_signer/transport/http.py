"""Fireblocks REST transport over httpx.

Request authentication (the Fireblocks JWT scheme) is not implemented here:
pass an `httpx.Auth` that adds the Authorization and X-API-KEY headers.

Endpoints used:
- POST /v1/transactions
- GET  /v1/transactions/{txid}
- GET  /v1/vault/accounts/{vault}/{asset}/addresses_paginated

Reference:
- https://developers.fireblocks.com/reference/api-overview
"""

import asyncio
import logging
from typing import Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from solders.pubkey import Pubkey

from fireblocks_signer.asset import Asset
from fireblocks_signer.errors import TransportError, VaultAddressError
from fireblocks_signer.models import (
    CreateTransactionResponse,
    TransactionResponse,
    VaultAddressesResponse,
)
from fireblocks_signer.transport.base import TransportPort

logger = logging.getLogger(__name__)

FIREBLOCKS_API = "https://api.fireblocks.io"
FIREBLOCKS_SANDBOX_API = "https://sandbox-api.fireblocks.io"

DEFAULT_TIMEOUT = 10.0
DEFAULT_CONNECT_TIMEOUT = 7.0
DEFAULT_USER_AGENT = "fireblocks-solana-signer"

M = TypeVar("M", bound=BaseModel)


class FireblocksTransport(TransportPort):
    """Async Fireblocks API client.

    One instance can serve concurrent signing calls; httpx.AsyncClient
    pools connections and carries no per-request state.
    """

    def __init__(
        self,
        base_url: str = FIREBLOCKS_API,
        auth: Optional[httpx.Auth] = None,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize transport.

        Args:
            base_url: API endpoint (production or sandbox)
            auth: Request authenticator supplied by the integrator
            timeout: Total request timeout in seconds
            connect_timeout: Connect timeout in seconds
            user_agent: User-Agent header
            client: Pre-built client (tests inject one with a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._client_kwargs = {
            "base_url": self.base_url,
            "auth": auth,
            "timeout": httpx.Timeout(timeout, connect=connect_timeout),
            "headers": {"User-Agent": user_agent},
        }
        self._injected = client is not None
        self._client = client
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Return the client, rebuilding it when the event loop changed.

        Pooled connections belong to the loop that opened them, and the
        blocking signer API runs each call in a fresh loop.
        """
        if self._injected:
            return self._client

        loop = asyncio.get_running_loop()
        if self._client is None or self._loop is not loop:
            if self._client is not None:
                logger.debug("Event loop changed, rebuilding Fireblocks HTTP client")
            self._client = httpx.AsyncClient(**self._client_kwargs)
            self._loop = loop
        return self._client

    async def _send(self, method: str, path: str, model: Type[M], json: Optional[dict] = None) -> M:
        try:
            response = await self._get_client().request(method, path, json=json)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        body = response.text
        if not response.is_success:
            raise TransportError(
                f"{method} {path} returned {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )

        logger.debug(f"{method} {path} -> {body}")
        try:
            return model.model_validate_json(body)
        except ValidationError as e:
            raise TransportError(
                f"Failed to parse {method} {path} response: {e}",
                status_code=response.status_code,
                body=body,
            ) from e

    async def submit(self, request) -> str:
        body = request.to_transaction_request().to_wire()
        created = await self._send("POST", "/v1/transactions", CreateTransactionResponse, json=body)
        logger.info(f"Created Fireblocks transaction {created.id} ({created.status})")
        return created.id

    async def query(self, request_id: str) -> TransactionResponse:
        return await self._send("GET", f"/v1/transactions/{request_id}", TransactionResponse)

    async def vault_address(self, vault_id: str, asset: Asset) -> Pubkey:
        path = f"/v1/vault/accounts/{vault_id}/{asset.value}/addresses_paginated"
        result = await self._send("GET", path, VaultAddressesResponse)
        if not result.addresses:
            raise VaultAddressError(f"No pubkey for vault {vault_id}")

        address = result.addresses[0].address
        try:
            return Pubkey.from_string(address)
        except ValueError as e:
            raise VaultAddressError(f"Vault {vault_id} returned invalid address {address!r}") from e

    async def aclose(self) -> None:
        """Close the HTTP client; a later call on a new loop builds a fresh one."""
        if self._client is not None:
            await self._client.aclose()
        if not self._injected:
            self._client = None
            self._loop = None

    async def __aenter__(self) -> "FireblocksTransport":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"FireblocksTransport(url={self.base_url})"
