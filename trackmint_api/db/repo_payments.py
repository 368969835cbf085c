"""Repository for the payment ledger (payment_transactions)."""

from supabase import Client

from trackmint_api.db.postgrest import persistence_errors
from trackmint_api.models import PaymentTransaction


class PaymentRepository:
    TABLE = "payment_transactions"

    def __init__(self, client: Client):
        self.client = client

    def insert(self, payment: PaymentTransaction) -> None:
        with persistence_errors("payment_transactions.insert"):
            self.client.table(self.TABLE).insert(payment.model_dump(mode="json")).execute()
