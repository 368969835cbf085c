"""Orphan reconciliation: attach wallet-only ownership records to a user."""

import logging

from pydantic import BaseModel

from trackmint_api.db.repo_user_nfts import OwnershipRepository
from trackmint_api.db.repo_users import UserRepository
from trackmint_api.errors import PersistenceError, ProfileNotFoundError
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)


class OrphanSweepResult(BaseModel):
    updated_wallet: bool
    orphans_found: int
    orphans_reassociated: int


class OrphanReconciliationSweep:
    def __init__(self, users: UserRepository, ownership: OwnershipRepository):
        self.users = users
        self.ownership = ownership

    def reconcile(self, user_id: str, wallet_address: str) -> OrphanSweepResult:
        """Refresh the profile wallet and claim orphaned records for the user.

        Idempotent: a second run with the same inputs finds no orphans.

        Raises:
            ProfileNotFoundError: The profile could not be fetched
        """
        try:
            profile = self.users.get_by_id(user_id)
        except PersistenceError as e:
            logger.error(
                "orphans.profile_fetch_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e)},
            )
            raise ProfileNotFoundError("Failed to fetch user data", code=e.code) from e
        if profile is None:
            logger.error("orphans.profile_missing", extra={"user_ref": short_ref(user_id)})
            raise ProfileNotFoundError("Failed to fetch user data")

        updated_wallet = profile.wallet_address != wallet_address
        if updated_wallet:
            try:
                self.users.update(user_id, {"wallet_address": wallet_address})
            except PersistenceError as e:
                logger.warning(
                    "orphans.wallet_update_failed",
                    extra={"user_ref": short_ref(user_id), "error": str(e)},
                )

        try:
            orphans = self.ownership.find_orphans(wallet_address)
        except PersistenceError as e:
            logger.warning("orphans.lookup_failed", extra={"error": str(e)})
            return OrphanSweepResult(updated_wallet=updated_wallet, orphans_found=0, orphans_reassociated=0)

        reassociated = 0
        if orphans:
            try:
                reassociated = self.ownership.assign_orphans(wallet_address, user_id)
            except PersistenceError as e:
                logger.error(
                    "orphans.assign_failed",
                    extra={"user_ref": short_ref(user_id), "count": len(orphans), "error": str(e)},
                )

        logger.info(
            "orphans.reconciled",
            extra={
                "user_ref": short_ref(user_id),
                "found": len(orphans),
                "reassociated": reassociated,
            },
        )
        return OrphanSweepResult(
            updated_wallet=updated_wallet,
            orphans_found=len(orphans),
            orphans_reassociated=reassociated,
        )
