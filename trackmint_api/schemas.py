"""Pydantic schemas for API requests/responses.

Wire names are camelCase (``walletAddress``); Python attributes are
snake_case. Required request fields are declared Optional so a missing field
yields the endpoint's own 400 message instead of a generic validation error.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# POST /api/auth-sync
# ============================================================================


class AuthSyncRequest(CamelModel):
    id: Optional[str] = None
    email: Optional[str] = None
    wallet_address: Optional[str] = None
    crossmint_wallet_id: Optional[str] = None


class AuthSyncResponse(CamelModel):
    success: bool = True
    auth_user: Optional[bool] = None
    public_user: Optional[bool] = None
    duplicate_request: Optional[bool] = None
    message: str


# ============================================================================
# POST /api/update-user-wallet
# ============================================================================


class UpdateWalletRequest(CamelModel):
    user_id: Optional[str] = None
    wallet_address: Optional[str] = None
    crossmint_wallet_id: Optional[str] = None
    email: Optional[str] = None
    nonce: Optional[str] = None


class UpdateWalletResponse(CamelModel):
    success: bool = True
    updated: bool
    method: Optional[str] = None
    duplicate: Optional[bool] = None
    message: str


# ============================================================================
# POST /api/refresh-user-data
# ============================================================================


class RefreshUserDataRequest(CamelModel):
    user_id: Optional[str] = None
    wallet_address: Optional[str] = None


class RefreshUserDataResponse(CamelModel):
    success: bool = True
    message: str = "User data refreshed successfully"
    updated_wallet: bool
    orphaned_nfts_count: int
    orphans_reassociated: int


# ============================================================================
# POST /api/purchase-track
# ============================================================================


class PurchaseRequest(CamelModel):
    track_id: Optional[Union[int, str]] = None
    buyer_wallet: Optional[str] = None
    user_id: Optional[str] = None
    payment_token: Optional[str] = None


class PurchaseResponse(CamelModel):
    ok: bool = True
    transaction_id: Optional[str] = None
    crossmint_data: dict[str, Any]
    track: dict[str, Any]
    edition_number: Optional[int] = None
    payment_transaction_id: Optional[str] = None


# ============================================================================
# POST /api/mint-track
# ============================================================================


class MintTrackRequest(CamelModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    cover_art_url: Optional[str] = None
    audio_file_url: Optional[str] = None
    release_date: Optional[str] = None
    wallet_address: Optional[str] = None
    price_cents: Optional[int] = None


class MintTrackResponse(CamelModel):
    ok: bool = True
    track_id: int
    metadata_url: str
    transaction_id: Optional[str] = None
    crossmint_data: dict[str, Any]


# ============================================================================
# GET /health
# ============================================================================


class HealthResponse(BaseModel):
    status: str
    version: str
    services: dict[str, str]
