"""Repository for the denormalized wallet mirror (user_wallets)."""

from typing import Optional

from supabase import Client

from trackmint_api.db.postgrest import first_row, persistence_errors
from trackmint_api.models import WalletRecord


class WalletRepository:
    TABLE = "user_wallets"

    def __init__(self, client: Client):
        self.client = client

    def find(self, user_id: str, wallet_address: str) -> Optional[WalletRecord]:
        with persistence_errors("user_wallets.find"):
            response = (
                self.client.table(self.TABLE)
                .select("*")
                .eq("user_id", user_id)
                .eq("wallet_address", wallet_address)
                .limit(1)
                .execute()
            )
        row = first_row(response)
        return WalletRecord.model_validate(row) if row else None

    def insert(self, record: WalletRecord) -> WalletRecord:
        with persistence_errors("user_wallets.insert"):
            self.client.table(self.TABLE).insert(record.model_dump(mode="json")).execute()
        return record
