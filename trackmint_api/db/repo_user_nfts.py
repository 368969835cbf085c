"""Repository for ownership records (user_nfts)."""

from supabase import Client

from trackmint_api.db.postgrest import all_rows, first_row, persistence_errors
from trackmint_api.models import OwnershipRecord


class OwnershipRepository:
    """Ownership record writes and orphan queries.

    A unique index on (track_id, edition_number) turns a concurrent duplicate
    edition into DuplicateKeyError on insert.
    """

    TABLE = "user_nfts"

    def __init__(self, client: Client):
        self.client = client

    def count_for_track(self, track_id: int) -> int:
        with persistence_errors("user_nfts.count_for_track"):
            response = (
                self.client.table(self.TABLE)
                .select("id", count="exact")
                .eq("track_id", track_id)
                .execute()
            )
        count = getattr(response, "count", None)
        return count if count is not None else len(all_rows(response))

    def insert(self, record: OwnershipRecord) -> OwnershipRecord:
        with persistence_errors("user_nfts.insert"):
            response = (
                self.client.table(self.TABLE)
                .insert(record.model_dump(mode="json", exclude={"id"}))
                .execute()
            )
        row = first_row(response)
        return OwnershipRecord.model_validate(row) if row else record

    def find_orphans(self, wallet_address: str) -> list[OwnershipRecord]:
        """Records for a wallet that have no user id yet."""
        with persistence_errors("user_nfts.find_orphans"):
            response = (
                self.client.table(self.TABLE)
                .select("*")
                .eq("wallet_address", wallet_address)
                .is_("user_id", "null")
                .execute()
            )
        return [OwnershipRecord.model_validate(row) for row in all_rows(response)]

    def assign_orphans(self, wallet_address: str, user_id: str) -> int:
        """Bulk-set user_id on orphaned records; returns rows updated."""
        with persistence_errors("user_nfts.assign_orphans"):
            response = (
                self.client.table(self.TABLE)
                .update({"user_id": user_id})
                .eq("wallet_address", wallet_address)
                .is_("user_id", "null")
                .execute()
            )
        return len(all_rows(response))
