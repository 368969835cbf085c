"""Crossmint API client (mint + wallet transfers).

Crossmint API Reference:
- Minting: POST /v1/mint {to, metadata}
- Wallet transactions: POST /v1/wallets/transactions {from, to, amount, asset}

The mint call has a bounded timeout and is never retried: a retry after an
ambiguous failure could mint twice.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

import httpx

from trackmint_api.config.env import DEFAULT_CROSSMINT_TIMEOUT_SECONDS
from trackmint_api.gateway.base import (
    MintGateway,
    MintResult,
    TransferResult,
    extract_transaction_id,
)
from trackmint_api.gateway.errors import (
    GatewayError,
    GatewayErrorKind,
    classify_transport_error,
)
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)

PAYMENT_ASSET = "USDXM"


class CrossmintGateway(MintGateway):
    """Real Crossmint gateway over httpx.

    Environment Variables (resolved by the factory):
    - CROSSMINT_API_KEY: server API key (a missing key fails each call with
      CONFIGURATION, so request validation still runs first)
    - CROSSMINT_BASE_URL / CROSSMINT_MINT_ENDPOINT: endpoints
    - CROSSMINT_TIMEOUT_SECONDS: per-call timeout
    """

    name = "crossmint"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str,
        mint_endpoint: Optional[str] = None,
        timeout: float = DEFAULT_CROSSMINT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.mint_endpoint = mint_endpoint or f"{self.base_url}/v1/mint"
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def _post(self, operation: str, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise GatewayError(
                GatewayErrorKind.CONFIGURATION,
                f"{operation} failed: Crossmint API key is not configured",
            )
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    url, headers=self._headers(), json=payload, timeout=self.timeout
                )
        except httpx.HTTPError as e:
            raise classify_transport_error(e, operation) from e

        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text[:500]}

        if response.is_error:
            message = body.get("message") or body.get("error") if isinstance(body, dict) else None
            raise GatewayError(
                GatewayErrorKind.UPSTREAM_STATUS,
                f"{operation} failed: {response.status_code} {message or response.reason_phrase}",
                status_code=response.status_code,
                details=body,
            )

        if not isinstance(body, dict):
            raise GatewayError(
                GatewayErrorKind.INVALID_RESPONSE,
                f"{operation} returned a non-object body",
                status_code=response.status_code,
            )
        return body

    async def mint(self, to_wallet: str, metadata_url: str) -> MintResult:
        """Mint to ``to_wallet``.

        Raises:
            GatewayError: CONFIGURATION / TRANSPORT / CERTIFICATE_EXPIRED /
                TIMEOUT / UPSTREAM_STATUS / INVALID_RESPONSE
        """
        body = await self._post(
            "crossmint.mint",
            self.mint_endpoint,
            {"to": to_wallet, "metadata": metadata_url},
        )
        transaction_id = extract_transaction_id(body, "transactionId", "txId")

        logger.info(
            "gateway.crossmint.minted",
            extra={
                "wallet_ref": short_ref(to_wallet, 10),
                "transaction_id": transaction_id,
                "has_transaction_id": transaction_id is not None,
            },
        )
        return MintResult(transaction_id=transaction_id, raw=body)

    async def transfer(
        self,
        from_wallet: str,
        to_wallet: str,
        amount: Decimal,
        description: str,
    ) -> TransferResult:
        """Move USDXM from buyer to seller.

        Raises:
            GatewayError: UPSTREAM_STATUS when the provider rejects the payment
        """
        body = await self._post(
            "crossmint.transfer",
            f"{self.base_url}/v1/wallets/transactions",
            {
                "from": from_wallet,
                "to": to_wallet,
                "amount": str(amount),
                "asset": PAYMENT_ASSET,
                "description": description,
            },
        )
        transaction_id = extract_transaction_id(body, "id", "transactionId")

        logger.info(
            "gateway.crossmint.transferred",
            extra={
                "from_ref": short_ref(from_wallet, 10),
                "to_ref": short_ref(to_wallet, 10),
                "amount": str(amount),
                "transaction_id": transaction_id,
            },
        )
        return TransferResult(transaction_id=transaction_id, raw=body)
