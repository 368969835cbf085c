"""Domain models mirroring the backing-store tables.

Field names are the column names so rows returned by PostgREST validate
directly (``Track.model_validate(row)``).
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MintStatus(str, Enum):
    """Lifecycle of a track row."""

    PENDING = "pending"
    LISTED = "listed"
    MINTED = "minted"
    ERROR = "error"


class WalletKind(str, Enum):
    """Chain family of a bound wallet."""

    EVM = "evm"
    SOLANA = "solana"


class PaymentStatus(str, Enum):
    """Outcome of a recorded payment attempt."""

    COMPLETED = "completed"
    FAILED = "failed"


class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)


class AuthIdentity(_Row):
    """Auth-provider identity (auth.users)."""

    id: str
    email: Optional[str] = None


class UserProfile(_Row):
    """Application profile (public.users); id equals the auth identity id."""

    id: str
    email: Optional[str] = None
    wallet_address: Optional[str] = None
    crossmint_wallet_id: Optional[str] = None

    def has_wallet(self, wallet_address: str, provider_wallet_id: Optional[str]) -> bool:
        return (
            self.wallet_address == wallet_address
            and self.crossmint_wallet_id == provider_wallet_id
        )


class WalletRecord(_Row):
    """Denormalized wallet mirror (user_wallets)."""

    user_id: Optional[str] = None
    wallet_address: str
    is_primary: bool = True
    wallet_type: WalletKind = WalletKind.EVM


class Track(_Row):
    """Sellable catalog item (tracks), including buyer-owned clones."""

    id: int
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    cover_art_url: Optional[str] = None
    audio_file_url: Optional[str] = None
    release_date: Optional[str] = None
    price_cents: Optional[int] = None
    mint_status: Optional[str] = None
    metadata_url: Optional[str] = None
    owner_wallet_address: Optional[str] = None
    transaction_id: Optional[str] = None
    minted_count: Optional[int] = 0
    parent_track_id: Optional[int] = None

    @property
    def is_priced(self) -> bool:
        return self.price_cents is not None and self.price_cents > 0

    def listing_summary(self) -> dict[str, Any]:
        """Public listing fields only."""
        return {
            "id": self.id,
            "title": self.title,
            "price_cents": self.price_cents,
            "mint_status": self.mint_status,
        }

    def clone_fields(self) -> dict[str, Any]:
        """Descriptive fields copied onto a buyer-owned clone."""
        return {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "cover_art_url": self.cover_art_url,
            "audio_file_url": self.audio_file_url,
            "release_date": self.release_date,
            "metadata_url": self.metadata_url,
        }


class OwnershipRecord(_Row):
    """Authoritative ownership of one minted edition (user_nfts)."""

    id: Optional[int] = None
    user_id: Optional[str] = None
    track_id: int
    wallet_address: str
    edition_number: int = Field(..., ge=1)
    transaction_id: Optional[str] = None


class PaymentTransaction(_Row):
    """Payment ledger row (payment_transactions)."""

    buyer_wallet: str
    seller_wallet: str
    amount_usdxm: Decimal
    track_id: int
    status: PaymentStatus
    transaction_id: Optional[str] = None
    error_message: Optional[str] = None
