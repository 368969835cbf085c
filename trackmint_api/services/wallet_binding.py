"""Wallet binding: associate a wallet address with a user profile.

Two tiers:
  1. ``update_user_wallet`` RPC (SECURITY DEFINER, bypasses RLS)
  2. direct ``users`` update with the service-role client

The RPC may not be migrated in every deployment, so any RPC failure falls
through to the direct update. Only a failure of both tiers is fatal.
"""

import logging
from typing import Literal, Optional

from pydantic import BaseModel

from trackmint_api.db.repo_users import UserRepository
from trackmint_api.errors import PersistenceError, WalletBindFailed
from trackmint_api.models import UserProfile
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)

BindMethod = Literal["rpc", "direct"]


class WalletBindResult(BaseModel):
    updated: bool
    method: Optional[BindMethod] = None


class WalletBindingService:
    def __init__(self, users: UserRepository):
        self.users = users

    def lookup_profile(self, user_id: str) -> Optional[UserProfile]:
        """Current profile, or None when absent or the lookup failed."""
        try:
            return self.users.get_by_id(user_id)
        except PersistenceError as e:
            logger.warning(
                "wallet.bind.profile_lookup_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e)},
            )
            return None

    def bind_wallet(
        self,
        user_id: str,
        wallet_address: str,
        provider_wallet_id: Optional[str] = None,
        profile: Optional[UserProfile] = None,
    ) -> WalletBindResult:
        """Bind ``wallet_address`` (and provider wallet id) to the profile.

        Args:
            user_id: Profile id
            wallet_address: Wallet to bind
            provider_wallet_id: Provider-side wallet id, may be None
            profile: Already-fetched profile; looked up when omitted

        Returns:
            WalletBindResult: ``updated=False`` when the profile already holds
            the identical wallet fields (no write issued)

        Raises:
            WalletBindFailed: Both the RPC and the direct update failed
        """
        if profile is None:
            profile = self.lookup_profile(user_id)

        if profile is not None and profile.has_wallet(wallet_address, provider_wallet_id):
            logger.info("wallet.bind.unchanged", extra={"user_ref": short_ref(user_id)})
            return WalletBindResult(updated=False)

        try:
            self.users.update_wallet_rpc(user_id, wallet_address, provider_wallet_id)
            logger.info("wallet.bind.updated", extra={"user_ref": short_ref(user_id), "method": "rpc"})
            return WalletBindResult(updated=True, method="rpc")
        except PersistenceError as e:
            logger.warning(
                "wallet.bind.rpc_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e), "code": e.code},
            )

        try:
            self.users.update(
                user_id,
                {"wallet_address": wallet_address, "crossmint_wallet_id": provider_wallet_id},
            )
        except PersistenceError as e:
            logger.error(
                "wallet.bind.direct_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e), "code": e.code},
            )
            raise WalletBindFailed(f"Failed to update wallet: {e.error}", code=e.code) from e

        logger.info("wallet.bind.updated", extra={"user_ref": short_ref(user_id), "method": "direct"})
        return WalletBindResult(updated=True, method="direct")
