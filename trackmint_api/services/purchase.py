"""Purchase saga: resolve → gate → (pay) → mint → record ownership."""

import logging
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from trackmint_api.errors import ValidationError
from trackmint_api.gateway.base import MintGateway
from trackmint_api.gateway.errors import GatewayError
from trackmint_api.models import Track
from trackmint_api.services.item_resolution import (
    TrackResolver,
    ensure_purchasable,
    parse_track_identifier,
)
from trackmint_api.services.ownership import OwnershipLedgerWriter
from trackmint_api.services.payments import PaymentResult, PaymentService
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)


class PurchaseResult(BaseModel):
    transaction_id: Optional[str] = None
    crossmint_data: dict[str, Any] = Field(default_factory=dict)
    track: Track
    edition_number: Optional[int] = None
    clone_track_id: Optional[int] = None
    payment: Optional[PaymentResult] = None
    simulated: bool = False


class PurchaseService:
    """Orchestrates one purchase.

    A gateway failure aborts before anything is written. Once the mint
    succeeded only the ownership record insert can still fail the request.
    """

    def __init__(
        self,
        resolver: TrackResolver,
        gateway: MintGateway,
        ledger: OwnershipLedgerWriter,
        payments: Optional[PaymentService] = None,
    ):
        self.resolver = resolver
        self.gateway = gateway
        self.ledger = ledger
        self.payments = payments

    async def purchase(
        self,
        track_id: Union[int, str, None],
        buyer_wallet: Optional[str],
        user_id: Optional[str] = None,
    ) -> PurchaseResult:
        """Buy ``track_id`` for ``buyer_wallet``.

        Raises:
            ValidationError: trackId or buyerWallet missing
            NotFoundError / NotForSaleError / MissingMetadataError: resolution gates
            PaymentFailedError: payment step rejected (payments enabled only)
            GatewayError: mint failed without a configured fallback
            OwnershipWriteFailed: minted, but the ownership record was not written
        """
        if not track_id or not buyer_wallet:
            raise ValidationError("Missing trackId or buyerWallet")
        identifier = parse_track_identifier(track_id)

        track = await self.resolver.resolve(identifier)
        metadata_url = ensure_purchasable(track)

        payment = None
        if self.payments is not None:
            payment = await self.payments.process_payment(track, buyer_wallet)

        try:
            mint = await self.gateway.mint(buyer_wallet, metadata_url)
        except GatewayError as e:
            if payment is not None:
                # Buyer was charged; the id lets the transfer be reconciled
                e.extra["paymentTransactionId"] = payment.transaction_id
            logger.error(
                "purchase.mint_failed",
                extra={
                    "track_id": track.id,
                    "kind": e.kind.value,
                    "error": e.error,
                    "payment_transaction_id": payment.transaction_id if payment else None,
                },
            )
            raise

        if mint.simulated:
            logger.info("purchase.mint.simulated", extra={"track_id": track.id})

        ownership = self.ledger.record_ownership(
            track, buyer_wallet, user_id, mint.transaction_id
        )
        logger.info(
            "purchase.completed",
            extra={
                "track_id": track.id,
                "buyer_ref": short_ref(buyer_wallet, 10),
                "transaction_id": mint.transaction_id,
                "edition_number": ownership.record.edition_number if ownership.record else None,
            },
        )
        return PurchaseResult(
            transaction_id=mint.transaction_id,
            crossmint_data=mint.raw,
            track=track,
            edition_number=ownership.record.edition_number if ownership.record else None,
            clone_track_id=ownership.clone_track_id,
            payment=payment,
            simulated=mint.simulated,
        )
