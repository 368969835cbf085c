"""Artist mint: create a track, publish its metadata, mint to the artist wallet."""

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from trackmint_api.db.repo_tracks import TrackRepository
from trackmint_api.db.storage import MetadataStorage
from trackmint_api.errors import PersistenceError
from trackmint_api.gateway.base import MintGateway
from trackmint_api.gateway.errors import GatewayError
from trackmint_api.models import MintStatus
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)


class NewTrack(BaseModel):
    title: str
    artist: str
    album: Optional[str] = None
    cover_art_url: str
    audio_file_url: str
    release_date: Optional[str] = None
    wallet_address: str
    price_cents: Optional[int] = Field(default=None, ge=0)


class MintTrackResult(BaseModel):
    track_id: int
    metadata_url: str
    transaction_id: Optional[str] = None
    crossmint_data: dict[str, Any] = Field(default_factory=dict)


def metadata_key(track_id: int) -> str:
    return f"metadata/track-{track_id}.json"


def build_metadata(track_id: int, new: NewTrack) -> dict[str, Any]:
    """NFT metadata document for a freshly created track."""
    return {
        "name": new.title,
        "description": f"{new.title} by {new.artist}",
        "attributes": {
            "artist": new.artist,
            "album": new.album,
            "releaseDate": new.release_date,
        },
        "image": new.cover_art_url,
        "animation_url": new.audio_file_url,
        "external_url": None,
        "properties": {},
        "trackId": track_id,
    }


class TrackMintingService:
    def __init__(self, tracks: TrackRepository, storage: MetadataStorage, gateway: MintGateway):
        self.tracks = tracks
        self.storage = storage
        self.gateway = gateway

    def _mark_error(self, track_id: int) -> None:
        try:
            self.tracks.update(track_id, {"mint_status": MintStatus.ERROR.value})
        except PersistenceError as e:
            logger.warning("mint.mark_error_failed", extra={"track_id": track_id, "error": str(e)})

    async def mint_new_track(self, new: NewTrack) -> MintTrackResult:
        """Insert a pending track, upload metadata, mint, store the outcome.

        Raises:
            PersistenceError: track insert, metadata upload or final update failed
            GatewayError: mint failed (the track is marked ``error``)
        """
        track = self.tracks.insert(
            {
                "title": new.title,
                "artist": new.artist,
                "album": new.album,
                "cover_art_url": new.cover_art_url,
                "audio_file_url": new.audio_file_url,
                "release_date": new.release_date,
                "mint_status": MintStatus.PENDING.value,
                "owner_wallet_address": None,
                "price_cents": new.price_cents,
            }
        )
        logger.info("mint.track_created", extra={"track_id": track.id})

        try:
            metadata_url = self.storage.upload_json(
                metadata_key(track.id), build_metadata(track.id, new)
            )
        except PersistenceError:
            self._mark_error(track.id)
            raise

        try:
            self.tracks.update(track.id, {"metadata_url": metadata_url})
        except PersistenceError as e:
            logger.warning("mint.metadata_url_update_failed", extra={"track_id": track.id, "error": str(e)})

        try:
            mint = await self.gateway.mint(new.wallet_address, metadata_url)
        except GatewayError as e:
            logger.error(
                "mint.gateway_failed",
                extra={"track_id": track.id, "kind": e.kind.value, "error": e.error},
            )
            self._mark_error(track.id)
            raise

        self.tracks.update(
            track.id,
            {
                "mint_status": mint.mint_status,
                "owner_wallet_address": new.wallet_address,
                "transaction_id": mint.transaction_id,
            },
        )
        logger.info(
            "mint.completed",
            extra={
                "track_id": track.id,
                "wallet_ref": short_ref(new.wallet_address, 10),
                "transaction_id": mint.transaction_id,
                "mint_status": mint.mint_status,
            },
        )
        return MintTrackResult(
            track_id=track.id,
            metadata_url=metadata_url,
            transaction_id=mint.transaction_id,
            crossmint_data=mint.raw,
        )
