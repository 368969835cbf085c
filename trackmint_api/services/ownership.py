"""Ownership ledger writer.

The ``user_nfts`` row is the record of truth for ownership; the buyer-owned
clone in ``tracks`` is denormalization.

Edition numbers and ``minted_count`` use optimistic concurrency:
  - edition = count(user_nfts for track) + 1, inserted; a unique violation on
    (track_id, edition_number) triggers a recount and retry
  - minted_count is a conditional update on the value last read; a lost race
    re-reads and retries
"""

import logging
from typing import Optional

from pydantic import BaseModel

from trackmint_api.context import track_id_var
from trackmint_api.db.repo_tracks import TrackRepository
from trackmint_api.db.repo_user_nfts import OwnershipRepository
from trackmint_api.db.repo_users import UserRepository
from trackmint_api.errors import DuplicateKeyError, OwnershipWriteFailed, PersistenceError
from trackmint_api.models import MintStatus, OwnershipRecord, Track
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)

MAX_EDITION_ATTEMPTS = 5
MAX_COUNTER_ATTEMPTS = 5


class OwnershipResult(BaseModel):
    record: Optional[OwnershipRecord] = None
    clone_track_id: Optional[int] = None
    minted_count: Optional[int] = None


class OwnershipLedgerWriter:
    def __init__(
        self,
        tracks: TrackRepository,
        ownership: OwnershipRepository,
        users: UserRepository,
    ):
        self.tracks = tracks
        self.ownership = ownership
        self.users = users

    def record_ownership(
        self,
        track: Track,
        buyer_wallet: str,
        user_id: Optional[str],
        transaction_id: Optional[str],
    ) -> OwnershipResult:
        """Record a completed mint.

        The clone row is written in every case (status ``error`` without a
        transaction id). The ownership record and the counter are written only
        when the mint produced a transaction id.

        Raises:
            OwnershipWriteFailed: The ownership record could not be inserted
        """
        track_id_var.set(str(track.id))
        result = OwnershipResult(clone_track_id=self._insert_clone(track, buyer_wallet, transaction_id))
        if not transaction_id:
            logger.warning("ownership.skipped_no_transaction", extra={"track_id": track.id})
            return result

        owner_id = self._verified_user(user_id, buyer_wallet)
        result.record = self._insert_record(track, buyer_wallet, owner_id, transaction_id)
        result.minted_count = self._increment_minted_count(track)
        return result

    def _insert_clone(
        self, track: Track, buyer_wallet: str, transaction_id: Optional[str]
    ) -> Optional[int]:
        fields = track.clone_fields()
        fields.update(
            {
                "mint_status": MintStatus.MINTED.value if transaction_id else MintStatus.ERROR.value,
                "owner_wallet_address": buyer_wallet,
                "transaction_id": transaction_id,
                "price_cents": None,
                "parent_track_id": track.id,
            }
        )
        try:
            clone = self.tracks.insert(fields)
        except PersistenceError as e:
            logger.warning("ownership.clone_failed", extra={"track_id": track.id, "error": str(e)})
            return None
        logger.info("ownership.clone_created", extra={"track_id": track.id, "clone_id": clone.id})
        return clone.id

    def _verified_user(self, user_id: Optional[str], buyer_wallet: str) -> Optional[str]:
        """The user id to store, or None when the profile does not exist."""
        if not user_id:
            return None
        try:
            exists = self.users.exists(user_id)
        except PersistenceError as e:
            logger.warning(
                "ownership.user_lookup_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e)},
            )
            return None
        if not exists:
            logger.info("ownership.user_unknown", extra={"user_ref": short_ref(user_id)})
            return None

        try:
            self.users.update(user_id, {"wallet_address": buyer_wallet})
        except PersistenceError as e:
            logger.warning(
                "ownership.wallet_refresh_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e)},
            )
        return user_id

    def _insert_record(
        self,
        track: Track,
        buyer_wallet: str,
        owner_id: Optional[str],
        transaction_id: str,
    ) -> OwnershipRecord:
        last_error: Optional[PersistenceError] = None
        for attempt in range(1, MAX_EDITION_ATTEMPTS + 1):
            try:
                edition = self.ownership.count_for_track(track.id) + 1
                record = self.ownership.insert(
                    OwnershipRecord(
                        user_id=owner_id,
                        track_id=track.id,
                        wallet_address=buyer_wallet,
                        edition_number=edition,
                        transaction_id=transaction_id,
                    )
                )
            except DuplicateKeyError as e:
                last_error = e
                logger.info(
                    "ownership.edition_conflict",
                    extra={"track_id": track.id, "attempt": attempt},
                )
                continue
            except PersistenceError as e:
                last_error = e
                break
            logger.info(
                "ownership.recorded",
                extra={
                    "track_id": track.id,
                    "edition_number": record.edition_number,
                    "orphan": owner_id is None,
                },
            )
            return record

        logger.error(
            "ownership.record_failed",
            extra={
                "track_id": track.id,
                "transaction_id": transaction_id,
                "error": str(last_error),
            },
        )
        raise OwnershipWriteFailed(
            f"Failed to record ownership: {last_error.error if last_error else 'unknown error'}",
            code=last_error.code if last_error else None,
            extra={"transactionId": transaction_id},
        )

    def _increment_minted_count(self, track: Track) -> Optional[int]:
        """Compare-and-set minted_count + 1. Best effort."""
        seen = track.minted_count
        try:
            for attempt in range(1, MAX_COUNTER_ATTEMPTS + 1):
                new_value = (seen or 0) + 1
                if self.tracks.compare_and_set_minted_count(track.id, seen, new_value):
                    return new_value
                logger.info(
                    "ownership.counter_conflict",
                    extra={"track_id": track.id, "attempt": attempt},
                )
                current = self.tracks.get_by_id(track.id)
                if current is None:
                    break
                seen = current.minted_count
        except PersistenceError as e:
            logger.warning("ownership.counter_failed", extra={"track_id": track.id, "error": str(e)})
            return None

        logger.warning("ownership.counter_gave_up", extra={"track_id": track.id})
        return None
