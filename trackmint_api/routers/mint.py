"""Artist mint endpoint."""

from fastapi import APIRouter, Depends

from trackmint_api.deps import get_minting_service
from trackmint_api.errors import ValidationError
from trackmint_api.schemas import MintTrackRequest, MintTrackResponse
from trackmint_api.services.minting import NewTrack, TrackMintingService

router = APIRouter(prefix="/api", tags=["mint"])

ENVELOPE = "ok"

_REQUIRED = ("title", "artist", "cover_art_url", "audio_file_url", "wallet_address")


@router.post("/mint-track", response_model=MintTrackResponse)
async def mint_track(
    body: MintTrackRequest,
    minting: TrackMintingService = Depends(get_minting_service),
) -> MintTrackResponse:
    if any(not getattr(body, field) for field in _REQUIRED):
        raise ValidationError("Missing required fields")
    if body.price_cents is not None and body.price_cents < 0:
        raise ValidationError("priceCents must be zero or positive")

    result = await minting.mint_new_track(
        NewTrack(
            title=body.title,
            artist=body.artist,
            album=body.album or None,
            cover_art_url=body.cover_art_url,
            audio_file_url=body.audio_file_url,
            release_date=body.release_date or None,
            wallet_address=body.wallet_address,
            price_cents=body.price_cents,
        )
    )
    return MintTrackResponse(
        track_id=result.track_id,
        metadata_url=result.metadata_url,
        transaction_id=result.transaction_id,
        crossmint_data=result.crossmint_data,
    )
