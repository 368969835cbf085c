"""Onboarding endpoints: identity sync, wallet binding, orphan refresh.

Both mutating sync endpoints are wrapped by a fingerprint dedup guard. The
fingerprint is marked seen before any store is touched, so a near-duplicate
arriving while the first call is still running is suppressed as well.
"""

import logging

from fastapi import APIRouter, Depends

from trackmint_api.context import user_ref_var
from trackmint_api.dedup import DedupGuard, auth_sync_fingerprint, wallet_update_fingerprint
from trackmint_api.deps import (
    get_auth_sync_guard,
    get_identity_service,
    get_orphan_sweep,
    get_wallet_binding_service,
    get_wallet_update_guard,
)
from trackmint_api.errors import ValidationError
from trackmint_api.schemas import (
    AuthSyncRequest,
    AuthSyncResponse,
    RefreshUserDataRequest,
    RefreshUserDataResponse,
    UpdateWalletRequest,
    UpdateWalletResponse,
)
from trackmint_api.services.identity import IdentityReconciliationService
from trackmint_api.services.orphans import OrphanReconciliationSweep
from trackmint_api.services.wallet_binding import WalletBindingService
from trackmint_api.utils.sanitize import short_ref

router = APIRouter(prefix="/api", tags=["users"])
logger = logging.getLogger(__name__)

# Error bodies on these routes carry {"success": false, ...}
ENVELOPE = "success"


@router.post("/auth-sync", response_model=AuthSyncResponse, response_model_exclude_none=True)
async def auth_sync(
    body: AuthSyncRequest,
    guard: DedupGuard = Depends(get_auth_sync_guard),
    identity: IdentityReconciliationService = Depends(get_identity_service),
) -> AuthSyncResponse:
    """Ensure auth identity, profile and wallet mirror exist for a signed-in user."""
    if not body.id or not body.email:
        raise ValidationError("Missing required user information: id and email")
    user_ref_var.set(short_ref(body.id))

    if guard.check_and_mark(auth_sync_fingerprint(body.id, body.wallet_address)):
        return AuthSyncResponse(
            duplicate_request=True,
            message="Duplicate request, already processed",
        )

    result = identity.reconcile(
        body.id,
        body.email,
        wallet_address=body.wallet_address,
        provider_wallet_id=body.crossmint_wallet_id,
    )
    return AuthSyncResponse(
        auth_user=result.auth_user,
        public_user=result.public_user,
        message="User synchronized successfully",
    )


@router.post(
    "/update-user-wallet",
    response_model=UpdateWalletResponse,
    response_model_exclude_none=True,
)
async def update_user_wallet(
    body: UpdateWalletRequest,
    guard: DedupGuard = Depends(get_wallet_update_guard),
    identity: IdentityReconciliationService = Depends(get_identity_service),
    binding: WalletBindingService = Depends(get_wallet_binding_service),
) -> UpdateWalletResponse:
    """Bind a wallet to a profile (RPC first, direct update as fallback)."""
    if not body.user_id or not body.wallet_address:
        raise ValidationError("Missing required fields: userId and walletAddress")
    user_ref_var.set(short_ref(body.user_id))

    if guard.check_and_mark(wallet_update_fingerprint(body.user_id, body.wallet_address)):
        return UpdateWalletResponse(
            updated=False,
            duplicate=True,
            message="Duplicate request detected, already processed recently",
        )

    profile = binding.lookup_profile(body.user_id)

    if profile is not None and profile.has_wallet(body.wallet_address, body.crossmint_wallet_id):
        logger.info("wallet.update.unchanged")
        return UpdateWalletResponse(
            updated=False,
            message="User wallet information already up to date",
        )

    if body.email:
        identity.ensure_identity(body.user_id, body.email)

    result = binding.bind_wallet(
        body.user_id,
        body.wallet_address,
        body.crossmint_wallet_id,
        profile=profile,
    )
    return UpdateWalletResponse(
        updated=result.updated,
        method=result.method,
        message="User wallet information updated successfully"
        if result.updated
        else "User wallet information already up to date",
    )


@router.post("/refresh-user-data", response_model=RefreshUserDataResponse)
async def refresh_user_data(
    body: RefreshUserDataRequest,
    sweep: OrphanReconciliationSweep = Depends(get_orphan_sweep),
) -> RefreshUserDataResponse:
    """Refresh the profile wallet and claim orphaned ownership records."""
    if not body.user_id or not body.wallet_address:
        raise ValidationError("Missing userId or walletAddress")
    user_ref_var.set(short_ref(body.user_id))

    result = sweep.reconcile(body.user_id, body.wallet_address)
    return RefreshUserDataResponse(
        updated_wallet=result.updated_wallet,
        orphaned_nfts_count=result.orphans_found,
        orphans_reassociated=result.orphans_reassociated,
    )
