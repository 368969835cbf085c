"""Mint/payment gateway contract."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from trackmint_api.models import MintStatus


def extract_transaction_id(payload: Any, *fields: str) -> Optional[str]:
    """First non-empty id among ``fields`` in a provider response."""
    if not isinstance(payload, dict):
        return None
    for field in fields:
        value = payload.get(field)
        if value:
            return str(value)
    return None


class MintResult(BaseModel):
    """Provider mint response.

    A missing transaction id is a soft failure: the purchase continues and
    the clone row is marked ``error``.
    """

    transaction_id: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)
    simulated: bool = False

    @property
    def mint_status(self) -> str:
        return MintStatus.MINTED.value if self.transaction_id else MintStatus.ERROR.value


class TransferResult(BaseModel):
    """Provider value-transfer response."""

    transaction_id: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)
    simulated: bool = False


class MintGateway(ABC):
    """Capability interface: issue a collectible and move value."""

    name: str = "gateway"

    @abstractmethod
    async def mint(self, to_wallet: str, metadata_url: str) -> MintResult:
        """Mint the collectible described by ``metadata_url`` to ``to_wallet``.

        Raises:
            GatewayError: On any provider failure
        """

    @abstractmethod
    async def transfer(
        self,
        from_wallet: str,
        to_wallet: str,
        amount: Decimal,
        description: str,
    ) -> TransferResult:
        """Transfer ``amount`` USDXM between wallets.

        Raises:
            GatewayError: On any provider failure, including rejected payments
        """
