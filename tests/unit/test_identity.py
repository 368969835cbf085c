"""Tests for identity reconciliation."""

import pytest

from trackmint_api.errors import (
    AuthIdentityCreationFailed,
    ProfileCreationFailed,
    WalletBindFailed,
)
from trackmint_api.services.identity import IdentityReconciliationService
from trackmint_api.services.wallet_binding import WalletBindingService


@pytest.fixture
def service(repos) -> IdentityReconciliationService:
    return IdentityReconciliationService(
        repos.auth, repos.users, repos.wallets, WalletBindingService(repos.users)
    )


def test_creates_missing_identity_and_profile(service, store):
    result = service.reconcile("user-1", "a@example.com", wallet_address="0xabc", provider_wallet_id="cm-1")

    assert result.auth_user is True
    assert result.public_user is True
    assert result.auth_created is True
    assert result.profile_created is True
    assert store.auth["user-1"].email == "a@example.com"
    profile = store.users["user-1"]
    assert profile.wallet_address == "0xabc"
    assert profile.crossmint_wallet_id == "cm-1"
    assert [(w.user_id, w.wallet_address, w.is_primary, w.wallet_type) for w in store.wallets] == [
        ("user-1", "0xabc", True, "evm")
    ]


def test_reconcile_is_idempotent(service, store):
    service.reconcile("user-1", "a@example.com", wallet_address="0xabc")
    second = service.reconcile("user-1", "a@example.com", wallet_address="0xabc")

    assert second.auth_created is False
    assert second.profile_created is False
    assert len(store.auth) == 1
    assert len(store.users) == 1
    assert len(store.wallets) == 1


def test_auth_lookup_error_is_treated_as_missing(service, store):
    store.failures.add("auth.get_user_by_id")

    result = service.reconcile("user-1", "a@example.com")

    assert result.auth_created is True
    assert "auth.create_user" in store.calls


def test_auth_creation_failure_is_fatal(service, store):
    store.failures.add("auth.create_user")

    with pytest.raises(AuthIdentityCreationFailed) as exc_info:
        service.reconcile("user-1", "a@example.com")

    assert exc_info.value.status_code == 500
    assert exc_info.value.error.startswith("Failed to create auth user")
    assert store.users == {}


def test_profile_creation_failure_is_fatal(service, store):
    store.failures.add("users.insert")

    with pytest.raises(ProfileCreationFailed) as exc_info:
        service.reconcile("user-1", "a@example.com")

    assert exc_info.value.error.startswith("Failed to create public user")


def test_existing_profile_with_new_wallet_is_rebound(service, store):
    store.add_user("user-1", email="a@example.com", wallet_address="0xold")

    result = service.reconcile("user-1", "a@example.com", wallet_address="0xnew", provider_wallet_id="cm-2")

    assert result.wallet_updated is True
    assert store.users["user-1"].wallet_address == "0xnew"
    assert "users.update_wallet_rpc" in store.calls


def test_existing_profile_same_wallet_is_not_rebound(service, store):
    store.add_user("user-1", email="a@example.com", wallet_address="0xabc")

    result = service.reconcile("user-1", "a@example.com", wallet_address="0xabc")

    assert result.wallet_updated is False
    assert store.write_calls("users") == []


def test_wallet_bind_failure_is_fatal(service, store):
    store.add_user("user-1", email="a@example.com", wallet_address="0xold")
    store.failures.update({"users.update_wallet_rpc", "users.update"})

    with pytest.raises(WalletBindFailed):
        service.reconcile("user-1", "a@example.com", wallet_address="0xnew")


def test_wallet_mirror_failure_is_not_fatal(service, store):
    store.failures.add("user_wallets.insert")

    result = service.reconcile("user-1", "a@example.com", wallet_address="0xabc")

    assert result.public_user is True
    assert store.wallets == []


def test_existing_wallet_record_is_not_duplicated(service, store):
    assert service.ensure_wallet_record("user-1", "0xabc") is True
    assert service.ensure_wallet_record("user-1", "0xabc") is True
    assert len(store.wallets) == 1


def test_ensure_identity_swallows_failures(service, store):
    store.failures.update({"auth.create_user", "users.insert"})

    service.ensure_identity("user-1", "a@example.com")

    assert store.auth == {}
    assert store.users == {}


def test_ensure_identity_creates_bare_profile(service, store):
    service.ensure_identity("user-1", "a@example.com")

    assert "user-1" in store.auth
    assert store.users["user-1"].wallet_address is None
