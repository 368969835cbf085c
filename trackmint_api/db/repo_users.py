"""Repository for user profiles (public.users)."""

from typing import Any, Optional

from supabase import Client

from trackmint_api.db.postgrest import all_rows, first_row, persistence_errors
from trackmint_api.models import UserProfile

# SECURITY DEFINER function installed by migration; may be absent in older deployments
UPDATE_WALLET_RPC = "update_user_wallet"


class UserRepository:
    """User profile reads and writes through the privileged client."""

    TABLE = "users"

    def __init__(self, client: Client):
        self.client = client

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Fetch a profile; None when no row exists.

        Raises:
            PersistenceError: If the query itself fails
        """
        with persistence_errors("users.get_by_id"):
            response = (
                self.client.table(self.TABLE)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        row = first_row(response)
        return UserProfile.model_validate(row) if row else None

    def exists(self, user_id: str) -> bool:
        with persistence_errors("users.exists"):
            response = (
                self.client.table(self.TABLE)
                .select("id")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        return first_row(response) is not None

    def insert(self, profile: UserProfile) -> UserProfile:
        with persistence_errors("users.insert"):
            response = (
                self.client.table(self.TABLE)
                .insert(profile.model_dump(mode="json"))
                .execute()
            )
        row = first_row(response)
        return UserProfile.model_validate(row) if row else profile

    def update(self, user_id: str, fields: dict[str, Any]) -> int:
        """Direct update; returns the number of rows touched."""
        with persistence_errors("users.update"):
            response = (
                self.client.table(self.TABLE)
                .update(fields)
                .eq("id", user_id)
                .execute()
            )
        return len(all_rows(response))

    def update_wallet_rpc(
        self,
        user_id: str,
        wallet_address: str,
        provider_wallet_id: Optional[str],
    ) -> None:
        """Bind a wallet through the SECURITY DEFINER function."""
        with persistence_errors("users.update_wallet_rpc"):
            self.client.rpc(
                UPDATE_WALLET_RPC,
                {
                    "p_user_id": user_id,
                    "p_wallet_address": wallet_address,
                    "p_wallet_id": provider_wallet_id,
                },
            ).execute()
