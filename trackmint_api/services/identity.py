"""Identity reconciliation across the auth store and the profile table.

Ensures an auth identity and a profile row exist for an (id, email) pair,
creating whichever is missing. The steps are read-then-write; concurrent
calls for the same id can race, which the dedup guard in front of the
endpoint narrows but does not eliminate.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from trackmint_api.context import user_ref_var
from trackmint_api.db.repo_auth import AuthAdminRepository
from trackmint_api.db.repo_users import UserRepository
from trackmint_api.db.repo_wallets import WalletRepository
from trackmint_api.errors import (
    AuthIdentityCreationFailed,
    PersistenceError,
    ProfileCreationFailed,
)
from trackmint_api.models import AuthIdentity, UserProfile, WalletRecord
from trackmint_api.services.wallet_binding import WalletBindingService
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)


class IdentitySyncResult(BaseModel):
    """Outcome of a reconcile call.

    ``auth_user``/``public_user`` report that the record is present after the
    call; ``*_created`` report that this call created it.
    """

    auth_user: bool
    public_user: bool
    auth_created: bool = False
    profile_created: bool = False
    wallet_updated: bool = False


class IdentityReconciliationService:
    def __init__(
        self,
        auth: AuthAdminRepository,
        users: UserRepository,
        wallets: WalletRepository,
        wallet_binding: WalletBindingService,
    ):
        self.auth = auth
        self.users = users
        self.wallets = wallets
        self.wallet_binding = wallet_binding

    def _find_identity(self, user_id: str) -> Optional[AuthIdentity]:
        # A lookup error is treated as "not found"; creation decides
        try:
            return self.auth.get_by_id(user_id)
        except PersistenceError as e:
            logger.warning(
                "identity.auth_lookup_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e)},
            )
            return None

    def _find_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            return self.users.get_by_id(user_id)
        except PersistenceError as e:
            logger.warning(
                "identity.profile_lookup_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e)},
            )
            return None

    def reconcile(
        self,
        user_id: str,
        email: str,
        wallet_address: Optional[str] = None,
        provider_wallet_id: Optional[str] = None,
    ) -> IdentitySyncResult:
        """Ensure the identity, the profile and the wallet mirror exist.

        Raises:
            AuthIdentityCreationFailed: Auth identity was missing and could not be created
            ProfileCreationFailed: Profile was missing and could not be inserted
            WalletBindFailed: Stored wallet differs and both binding tiers failed
        """
        user_ref_var.set(short_ref(user_id))
        logger.info("identity.reconcile.started", extra={"has_wallet": bool(wallet_address)})

        identity = self._find_identity(user_id)
        auth_created = False
        if identity is None:
            try:
                identity = self.auth.create(user_id, email)
            except PersistenceError as e:
                logger.error("identity.reconcile.auth_create_failed", extra={"error": str(e)})
                raise AuthIdentityCreationFailed(
                    f"Failed to create auth user: {e.error}", code=e.code
                ) from e
            auth_created = True
            logger.info("identity.reconcile.auth_created")

        profile = self._find_profile(user_id)
        profile_created = False
        wallet_updated = False
        if profile is None:
            try:
                profile = self.users.insert(
                    UserProfile(
                        id=user_id,
                        email=email,
                        wallet_address=wallet_address,
                        crossmint_wallet_id=provider_wallet_id,
                    )
                )
            except PersistenceError as e:
                logger.error("identity.reconcile.profile_create_failed", extra={"error": str(e)})
                raise ProfileCreationFailed(
                    f"Failed to create public user: {e.error}", code=e.code
                ) from e
            profile_created = True
            logger.info("identity.reconcile.profile_created")
        elif wallet_address and profile.wallet_address != wallet_address:
            result = self.wallet_binding.bind_wallet(
                user_id, wallet_address, provider_wallet_id, profile=profile
            )
            wallet_updated = result.updated

        if wallet_address:
            self.ensure_wallet_record(user_id, wallet_address)

        return IdentitySyncResult(
            auth_user=identity is not None,
            public_user=profile is not None,
            auth_created=auth_created,
            profile_created=profile_created,
            wallet_updated=wallet_updated,
        )

    def ensure_wallet_record(self, user_id: str, wallet_address: str) -> bool:
        """Insert the user_wallets mirror row when absent. Best effort.

        Returns:
            bool: True when the row exists after the call
        """
        try:
            if self.wallets.find(user_id, wallet_address) is not None:
                return True
            self.wallets.insert(WalletRecord(user_id=user_id, wallet_address=wallet_address))
            logger.info("identity.wallet_record.created", extra={"user_ref": short_ref(user_id)})
            return True
        except PersistenceError as e:
            logger.warning(
                "identity.wallet_record.failed",
                extra={"user_ref": short_ref(user_id), "error": str(e)},
            )
            return False

    def ensure_identity(self, user_id: str, email: str) -> None:
        """Create the auth identity and a bare profile when missing. Best effort.

        Used ahead of a wallet update that carries an email; failures are
        logged and the binding proceeds.
        """
        if self._find_identity(user_id) is None:
            try:
                self.auth.create(user_id, email)
                logger.info("identity.ensure.auth_created", extra={"user_ref": short_ref(user_id)})
            except PersistenceError as e:
                logger.warning(
                    "identity.ensure.auth_create_failed",
                    extra={"user_ref": short_ref(user_id), "error": str(e)},
                )

        try:
            if self.users.exists(user_id):
                return
            self.users.insert(UserProfile(id=user_id, email=email))
            logger.info("identity.ensure.profile_created", extra={"user_ref": short_ref(user_id)})
        except PersistenceError as e:
            logger.warning(
                "identity.ensure.profile_create_failed",
                extra={"user_ref": short_ref(user_id), "error": str(e)},
            )
