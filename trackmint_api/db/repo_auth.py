"""Repository over the Supabase Auth admin API (auth.users)."""

from typing import Any, Optional

from supabase import Client

from trackmint_api.db.postgrest import persistence_errors
from trackmint_api.models import AuthIdentity

IDENTITY_PROVIDER = "crossmint"


def _to_identity(user: Any) -> AuthIdentity:
    return AuthIdentity(id=str(user.id), email=getattr(user, "email", None))


class AuthAdminRepository:
    """Auth identity lookups and creation with the service-role client."""

    def __init__(self, client: Client):
        self.client = client

    def get_by_id(self, user_id: str) -> Optional[AuthIdentity]:
        """Fetch an auth identity.

        The admin API reports an unknown id as an error, so callers must treat
        PersistenceError here as "possibly not found".
        """
        with persistence_errors("auth.get_user_by_id"):
            response = self.client.auth.admin.get_user_by_id(user_id)
        user = getattr(response, "user", None)
        return _to_identity(user) if user else None

    def create(self, user_id: str, email: str) -> AuthIdentity:
        """Create a pre-verified identity with a caller-chosen id."""
        with persistence_errors("auth.create_user"):
            response = self.client.auth.admin.create_user(
                {
                    "id": user_id,
                    "email": email,
                    "email_confirm": True,
                    "user_metadata": {"provider": IDENTITY_PROVIDER},
                }
            )
        user = getattr(response, "user", None)
        if user is None:
            return AuthIdentity(id=user_id, email=email)
        return _to_identity(user)
