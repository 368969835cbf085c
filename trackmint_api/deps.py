"""FastAPI dependency providers.

Repositories are built per request from the cached admin client; tests
replace the repository providers through ``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends
from supabase import Client

from trackmint_api.config.env import is_payments_enabled
from trackmint_api.db.public_rest import PublicRestClient
from trackmint_api.db.repo_auth import AuthAdminRepository
from trackmint_api.db.repo_payments import PaymentRepository
from trackmint_api.db.repo_tracks import TrackRepository
from trackmint_api.db.repo_user_nfts import OwnershipRepository
from trackmint_api.db.repo_users import UserRepository
from trackmint_api.db.repo_wallets import WalletRepository
from trackmint_api.db.storage import MetadataStorage
from trackmint_api.dedup import AUTH_SYNC_GUARD, WALLET_UPDATE_GUARD, DedupGuard, get_dedup_guard
from trackmint_api.gateway import get_mint_gateway
from trackmint_api.gateway.base import MintGateway
from trackmint_api.services.identity import IdentityReconciliationService
from trackmint_api.services.item_resolution import TrackResolver
from trackmint_api.services.minting import TrackMintingService
from trackmint_api.services.orphans import OrphanReconciliationSweep
from trackmint_api.services.ownership import OwnershipLedgerWriter
from trackmint_api.services.payments import PaymentService
from trackmint_api.services.purchase import PurchaseService
from trackmint_api.services.wallet_binding import WalletBindingService
from trackmint_api.supabase_client import (
    get_supabase_admin_client,
    get_supabase_public_key,
    get_supabase_url,
)

# ============================================================================
# Stores
# ============================================================================


def get_supabase() -> Client:
    return get_supabase_admin_client()


def get_user_repo(client: Client = Depends(get_supabase)) -> UserRepository:
    return UserRepository(client)


def get_auth_repo(client: Client = Depends(get_supabase)) -> AuthAdminRepository:
    return AuthAdminRepository(client)


def get_wallet_repo(client: Client = Depends(get_supabase)) -> WalletRepository:
    return WalletRepository(client)


def get_track_repo(client: Client = Depends(get_supabase)) -> TrackRepository:
    return TrackRepository(client)


def get_ownership_repo(client: Client = Depends(get_supabase)) -> OwnershipRepository:
    return OwnershipRepository(client)


def get_payment_repo(client: Client = Depends(get_supabase)) -> PaymentRepository:
    return PaymentRepository(client)


def get_metadata_storage(client: Client = Depends(get_supabase)) -> MetadataStorage:
    return MetadataStorage(client)


def get_public_rest_client() -> PublicRestClient:
    return PublicRestClient(get_supabase_url(), get_supabase_public_key())


def get_gateway() -> MintGateway:
    return get_mint_gateway()


# ============================================================================
# Dedup guards
# ============================================================================


def get_auth_sync_guard() -> DedupGuard:
    return get_dedup_guard(AUTH_SYNC_GUARD)


def get_wallet_update_guard() -> DedupGuard:
    return get_dedup_guard(WALLET_UPDATE_GUARD)


# ============================================================================
# Services
# ============================================================================


def get_wallet_binding_service(
    users: UserRepository = Depends(get_user_repo),
) -> WalletBindingService:
    return WalletBindingService(users)


def get_identity_service(
    auth: AuthAdminRepository = Depends(get_auth_repo),
    users: UserRepository = Depends(get_user_repo),
    wallets: WalletRepository = Depends(get_wallet_repo),
    binding: WalletBindingService = Depends(get_wallet_binding_service),
) -> IdentityReconciliationService:
    return IdentityReconciliationService(auth, users, wallets, binding)


def get_orphan_sweep(
    users: UserRepository = Depends(get_user_repo),
    ownership: OwnershipRepository = Depends(get_ownership_repo),
) -> OrphanReconciliationSweep:
    return OrphanReconciliationSweep(users, ownership)


def get_payment_service(
    gateway: MintGateway = Depends(get_gateway),
    payments: PaymentRepository = Depends(get_payment_repo),
) -> Optional[PaymentService]:
    if not is_payments_enabled():
        return None
    return PaymentService(gateway, payments)


def get_purchase_service(
    tracks: TrackRepository = Depends(get_track_repo),
    ownership: OwnershipRepository = Depends(get_ownership_repo),
    users: UserRepository = Depends(get_user_repo),
    public: PublicRestClient = Depends(get_public_rest_client),
    gateway: MintGateway = Depends(get_gateway),
    payments: Optional[PaymentService] = Depends(get_payment_service),
) -> PurchaseService:
    return PurchaseService(
        resolver=TrackResolver.default(tracks, public),
        gateway=gateway,
        ledger=OwnershipLedgerWriter(tracks, ownership, users),
        payments=payments,
    )


def get_minting_service(
    tracks: TrackRepository = Depends(get_track_repo),
    storage: MetadataStorage = Depends(get_metadata_storage),
    gateway: MintGateway = Depends(get_gateway),
) -> TrackMintingService:
    return TrackMintingService(tracks, storage, gateway)
