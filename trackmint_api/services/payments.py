"""USDXM payment step ahead of a purchase mint."""

import logging
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from trackmint_api.db.repo_payments import PaymentRepository
from trackmint_api.errors import PaymentFailedError, PersistenceError
from trackmint_api.gateway.base import MintGateway
from trackmint_api.gateway.errors import GatewayError
from trackmint_api.models import PaymentStatus, PaymentTransaction, Track
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)


def price_in_usdxm(price_cents: int) -> Decimal:
    return (Decimal(price_cents) / Decimal(100)).quantize(Decimal("0.01"))


class PaymentResult(BaseModel):
    transaction_id: Optional[str] = None
    amount_usdxm: Decimal
    simulated: bool = False


class PaymentService:
    def __init__(self, gateway: MintGateway, payments: PaymentRepository):
        self.gateway = gateway
        self.payments = payments

    def _record(self, payment: PaymentTransaction) -> None:
        try:
            self.payments.insert(payment)
        except PersistenceError as e:
            logger.warning(
                "payment.ledger_write_failed",
                extra={"track_id": payment.track_id, "status": payment.status, "error": str(e)},
            )

    async def process_payment(self, track: Track, buyer_wallet: str) -> Optional[PaymentResult]:
        """Transfer the track price from buyer to seller.

        Returns:
            PaymentResult, or None when the track has no seller wallet

        Raises:
            PaymentFailedError: The provider rejected or failed the transfer
        """
        seller_wallet = track.owner_wallet_address
        if not seller_wallet:
            logger.info("payment.skipped_no_seller", extra={"track_id": track.id})
            return None

        amount = price_in_usdxm(track.price_cents or 0)
        description = f'Purchase of "{track.title}" NFT'
        try:
            transfer = await self.gateway.transfer(buyer_wallet, seller_wallet, amount, description)
        except GatewayError as e:
            self._record(
                PaymentTransaction(
                    buyer_wallet=buyer_wallet,
                    seller_wallet=seller_wallet,
                    amount_usdxm=amount,
                    track_id=track.id,
                    status=PaymentStatus.FAILED,
                    error_message=e.error,
                )
            )
            logger.warning(
                "payment.failed",
                extra={"track_id": track.id, "kind": e.kind.value, "error": e.error},
            )
            raise PaymentFailedError("Payment failed", extra={"details": e.details or e.error}) from e

        self._record(
            PaymentTransaction(
                buyer_wallet=buyer_wallet,
                seller_wallet=seller_wallet,
                amount_usdxm=amount,
                track_id=track.id,
                status=PaymentStatus.COMPLETED,
                transaction_id=transfer.transaction_id,
            )
        )
        logger.info(
            "payment.completed",
            extra={
                "track_id": track.id,
                "amount": str(amount),
                "buyer_ref": short_ref(buyer_wallet, 10),
                "transaction_id": transfer.transaction_id,
            },
        )
        return PaymentResult(
            transaction_id=transfer.transaction_id,
            amount_usdxm=amount,
            simulated=transfer.simulated,
        )
