"""Purchase endpoint."""

import logging

from fastapi import APIRouter, Depends

from trackmint_api.context import user_ref_var
from trackmint_api.deps import get_purchase_service
from trackmint_api.schemas import PurchaseRequest, PurchaseResponse
from trackmint_api.services.purchase import PurchaseService
from trackmint_api.utils.sanitize import short_ref

router = APIRouter(prefix="/api", tags=["purchase"])
logger = logging.getLogger(__name__)

# Error bodies on these routes carry {"ok": false, ...}
ENVELOPE = "ok"


@router.post("/purchase-track", response_model=PurchaseResponse)
async def purchase_track(
    body: PurchaseRequest,
    purchases: PurchaseService = Depends(get_purchase_service),
) -> PurchaseResponse:
    """Resolve a track, mint it to the buyer and record ownership.

    trackId may be a number, a numeric string or a title.
    """
    if body.user_id:
        user_ref_var.set(short_ref(body.user_id))

    result = await purchases.purchase(body.track_id, body.buyer_wallet, body.user_id)
    return PurchaseResponse(
        transaction_id=result.transaction_id,
        crossmint_data=result.crossmint_data,
        track=result.track.model_dump(mode="json"),
        edition_number=result.edition_number,
        payment_transaction_id=result.payment.transaction_id if result.payment else None,
    )
