"""Pytest configuration and fixtures.

In-memory stand-ins for the Supabase repositories share one ``FakeStore`` so a
test can seed rows, inject failures and inspect writes. The API client wires
them in through ``app.dependency_overrides``; nothing talks to Supabase, Redis
or Crossmint.
"""

from types import SimpleNamespace
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from trackmint_api.context import request_id_var, track_id_var, user_ref_var
from trackmint_api.db.postgrest import UNIQUE_VIOLATION
from trackmint_api.db.public_rest import PublicRestClient
from trackmint_api.dedup import FingerprintDedupGuard, reset_dedup_guards
from trackmint_api.deps import (
    get_auth_repo,
    get_auth_sync_guard,
    get_gateway,
    get_metadata_storage,
    get_ownership_repo,
    get_payment_repo,
    get_public_rest_client,
    get_track_repo,
    get_user_repo,
    get_wallet_repo,
    get_wallet_update_guard,
)
from trackmint_api.errors import DuplicateKeyError, PersistenceError
from trackmint_api.gateway import reset_mint_gateway
from trackmint_api.gateway.simulated import SimulatedMintGateway
from trackmint_api.main import app
from trackmint_api.models import (
    AuthIdentity,
    OwnershipRecord,
    PaymentTransaction,
    Track,
    UserProfile,
    WalletRecord,
)


class FakeStore:
    """Tables as plain Python containers plus failure injection."""

    def __init__(self):
        self.auth: dict[str, AuthIdentity] = {}
        self.users: dict[str, UserProfile] = {}
        self.wallets: list[WalletRecord] = []
        self.tracks: dict[int, Track] = {}
        self.nfts: list[OwnershipRecord] = []
        self.payments: list[PaymentTransaction] = []
        self.uploads: dict[str, dict] = {}
        self.calls: list[str] = []
        # Operation names ("users.update_wallet_rpc", ...) that raise PersistenceError
        self.failures: set[str] = set()
        # Rows another writer commits between our count and our insert
        self.concurrent_nfts: list[OwnershipRecord] = []
        self._next_track_id = 1000
        self._next_nft_id = 1

    def touch(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise PersistenceError(f"{operation}: injected failure", code="XX000")

    def add_track(self, **fields: Any) -> Track:
        track = Track(**fields)
        self.tracks[track.id] = track
        return track

    def add_user(self, user_id: str, **fields: Any) -> UserProfile:
        profile = UserProfile(id=user_id, **fields)
        self.users[user_id] = profile
        self.auth[user_id] = AuthIdentity(id=user_id, email=profile.email)
        return profile

    def add_nft(self, **fields: Any) -> OwnershipRecord:
        record = OwnershipRecord(id=self._next_nft_id, **fields)
        self._next_nft_id += 1
        self.nfts.append(record)
        return record

    def clones_of(self, track_id: int) -> list[Track]:
        return [t for t in self.tracks.values() if t.parent_track_id == track_id]

    def write_calls(self, table: str) -> list[str]:
        return [
            c for c in self.calls
            if c.startswith(f"{table}.") and c.split(".", 1)[1].startswith(("insert", "update"))
        ]


class FakeAuthAdminRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def get_by_id(self, user_id: str) -> Optional[AuthIdentity]:
        self.store.touch("auth.get_user_by_id")
        return self.store.auth.get(user_id)

    def create(self, user_id: str, email: str) -> AuthIdentity:
        self.store.touch("auth.create_user")
        identity = AuthIdentity(id=user_id, email=email)
        self.store.auth[user_id] = identity
        return identity


class FakeUserRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        self.store.touch("users.get_by_id")
        return self.store.users.get(user_id)

    def exists(self, user_id: str) -> bool:
        self.store.touch("users.exists")
        return user_id in self.store.users

    def insert(self, profile: UserProfile) -> UserProfile:
        self.store.touch("users.insert")
        if profile.id in self.store.users:
            raise DuplicateKeyError("users.insert: duplicate", code=UNIQUE_VIOLATION)
        self.store.users[profile.id] = profile
        return profile

    def update(self, user_id: str, fields: dict[str, Any]) -> int:
        self.store.touch("users.update")
        current = self.store.users.get(user_id)
        if current is None:
            return 0
        self.store.users[user_id] = current.model_copy(update=fields)
        return 1

    def update_wallet_rpc(
        self, user_id: str, wallet_address: str, provider_wallet_id: Optional[str]
    ) -> None:
        self.store.touch("users.update_wallet_rpc")
        current = self.store.users.get(user_id)
        if current is not None:
            self.store.users[user_id] = current.model_copy(
                update={"wallet_address": wallet_address, "crossmint_wallet_id": provider_wallet_id}
            )


class FakeWalletRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def find(self, user_id: str, wallet_address: str) -> Optional[WalletRecord]:
        self.store.touch("user_wallets.find")
        for record in self.store.wallets:
            if record.user_id == user_id and record.wallet_address == wallet_address:
                return record
        return None

    def insert(self, record: WalletRecord) -> WalletRecord:
        self.store.touch("user_wallets.insert")
        self.store.wallets.append(record)
        return record


class FakeTrackRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def get_by_id(self, track_id: int) -> Optional[Track]:
        self.store.touch("tracks.get_by_id")
        return self.store.tracks.get(track_id)

    def find_by_title(self, title: str) -> Optional[Track]:
        self.store.touch("tracks.find_by_title")
        for track in self.store.tracks.values():
            if track.title and track.title.lower() == title.lower():
                return track
        return None

    def find_by_parent(self, parent_track_id: int) -> Optional[Track]:
        self.store.touch("tracks.find_by_parent")
        for track in self.store.tracks.values():
            if track.parent_track_id == parent_track_id:
                return track
        return None

    def insert(self, fields: dict[str, Any]) -> Track:
        self.store.touch("tracks.insert")
        track = Track(id=self.store._next_track_id, **fields)
        self.store._next_track_id += 1
        self.store.tracks[track.id] = track
        return track

    def update(self, track_id: int, fields: dict[str, Any]) -> None:
        self.store.touch("tracks.update")
        current = self.store.tracks.get(track_id)
        if current is not None:
            self.store.tracks[track_id] = current.model_copy(update=fields)

    def compare_and_set_minted_count(
        self, track_id: int, expected: Optional[int], new_value: int
    ) -> bool:
        self.store.touch("tracks.compare_and_set_minted_count")
        current = self.store.tracks.get(track_id)
        if current is None or current.minted_count != expected:
            return False
        self.store.tracks[track_id] = current.model_copy(update={"minted_count": new_value})
        return True


class FakeOwnershipRepository:
    """Enforces the (track_id, edition_number) unique index."""

    def __init__(self, store: FakeStore):
        self.store = store

    def count_for_track(self, track_id: int) -> int:
        self.store.touch("user_nfts.count_for_track")
        return sum(1 for r in self.store.nfts if r.track_id == track_id)

    def insert(self, record: OwnershipRecord) -> OwnershipRecord:
        self.store.touch("user_nfts.insert")
        if self.store.concurrent_nfts:
            self.store.add_nft(**self.store.concurrent_nfts.pop(0).model_dump(exclude={"id"}))
        for existing in self.store.nfts:
            if (existing.track_id, existing.edition_number) == (record.track_id, record.edition_number):
                raise DuplicateKeyError("user_nfts.insert: duplicate edition", code=UNIQUE_VIOLATION)
        return self.store.add_nft(**record.model_dump(exclude={"id"}))

    def find_orphans(self, wallet_address: str) -> list[OwnershipRecord]:
        self.store.touch("user_nfts.find_orphans")
        return [r for r in self.store.nfts if r.wallet_address == wallet_address and r.user_id is None]

    def assign_orphans(self, wallet_address: str, user_id: str) -> int:
        self.store.touch("user_nfts.assign_orphans")
        updated = 0
        for index, record in enumerate(self.store.nfts):
            if record.wallet_address == wallet_address and record.user_id is None:
                self.store.nfts[index] = record.model_copy(update={"user_id": user_id})
                updated += 1
        return updated


class FakePaymentRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def insert(self, payment: PaymentTransaction) -> None:
        self.store.touch("payment_transactions.insert")
        self.store.payments.append(payment)


class FakeMetadataStorage:
    BASE_URL = "https://storage.test/v1/object/public/metadata"

    def __init__(self, store: FakeStore):
        self.store = store

    def upload_json(self, key: str, document: dict[str, Any]) -> str:
        self.store.touch("storage.upload")
        self.store.uploads[key] = document
        return f"{self.BASE_URL}/{key}"


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_log_context():
    """Reset request context vars that services set outside a request."""
    tokens = [var.set("") for var in (request_id_var, user_ref_var, track_id_var)]
    yield
    for var, token in zip((request_id_var, user_ref_var, track_id_var), tokens):
        var.reset(token)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep gateway/payment env flags out of tests unless a test sets them."""
    for name in (
        "CROSSMINT_MOCK_MINT",
        "CROSSMINT_DEV_CERT_FALLBACK",
        "CROSSMINT_PAYMENTS_ENABLED",
        "TRACKMINT_ENV",
        "APP_ENV",
        "DEDUP_BACKEND",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_dedup_guards()
    reset_mint_gateway()
    yield
    reset_dedup_guards()
    reset_mint_gateway()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def gateway() -> SimulatedMintGateway:
    return SimulatedMintGateway(delay=0)


@pytest.fixture
def clock():
    """Mutable monotonic clock for dedup guards."""

    class Clock:
        now = 1_000.0

        def __call__(self) -> float:
            return self.now

        def advance(self, seconds: float) -> None:
            self.now += seconds

    return Clock()


@pytest.fixture
def client(store: FakeStore, gateway, clock):
    """TestClient with in-memory repositories, simulated gateway, fresh guards."""
    auth_guard = FingerprintDedupGuard("auth-sync", clock=clock)
    wallet_guard = FingerprintDedupGuard("update-user-wallet", clock=clock)

    app.dependency_overrides[get_auth_repo] = lambda: FakeAuthAdminRepository(store)
    app.dependency_overrides[get_user_repo] = lambda: FakeUserRepository(store)
    app.dependency_overrides[get_wallet_repo] = lambda: FakeWalletRepository(store)
    app.dependency_overrides[get_track_repo] = lambda: FakeTrackRepository(store)
    app.dependency_overrides[get_ownership_repo] = lambda: FakeOwnershipRepository(store)
    app.dependency_overrides[get_payment_repo] = lambda: FakePaymentRepository(store)
    app.dependency_overrides[get_metadata_storage] = lambda: FakeMetadataStorage(store)
    app.dependency_overrides[get_public_rest_client] = lambda: PublicRestClient(
        "https://public.test", None
    )
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_auth_sync_guard] = lambda: auth_guard
    app.dependency_overrides[get_wallet_update_guard] = lambda: wallet_guard

    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def repos(store: FakeStore) -> SimpleNamespace:
    """One fake repository per table, all over ``store``."""
    return SimpleNamespace(
        auth=FakeAuthAdminRepository(store),
        users=FakeUserRepository(store),
        wallets=FakeWalletRepository(store),
        tracks=FakeTrackRepository(store),
        ownership=FakeOwnershipRepository(store),
        payments=FakePaymentRepository(store),
        storage=FakeMetadataStorage(store),
    )
