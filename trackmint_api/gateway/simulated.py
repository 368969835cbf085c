"""Simulated gateway for development and mock mode. Never touches the network."""

import asyncio
import logging
import time
from decimal import Decimal
from typing import Callable

from trackmint_api.config.env import MOCK_MINT_DELAY_SECONDS
from trackmint_api.gateway.base import MintGateway, MintResult, TransferResult
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)


class SimulatedMintGateway(MintGateway):
    """Deterministic provider stand-in.

    Transaction ids are ``mock_tx_<epoch millis>`` / ``mock_pay_<epoch millis>``.
    """

    name = "simulated"

    def __init__(
        self,
        delay: float = MOCK_MINT_DELAY_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.delay = delay
        self._clock = clock

    def _millis(self) -> int:
        return int(self._clock() * 1000)

    async def mint(self, to_wallet: str, metadata_url: str) -> MintResult:
        logger.info(
            "gateway.simulated.mint",
            extra={"wallet_ref": short_ref(to_wallet, 10), "metadata_url": metadata_url},
        )
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        transaction_id = f"mock_tx_{self._millis()}"
        return MintResult(
            transaction_id=transaction_id,
            raw={
                "transactionId": transaction_id,
                "status": "pending",
                "to": to_wallet,
                "metadata": metadata_url,
            },
            simulated=True,
        )

    async def transfer(
        self,
        from_wallet: str,
        to_wallet: str,
        amount: Decimal,
        description: str,
    ) -> TransferResult:
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        transaction_id = f"mock_pay_{self._millis()}"
        return TransferResult(
            transaction_id=transaction_id,
            raw={
                "id": transaction_id,
                "status": "completed",
                "from": from_wallet,
                "to": to_wallet,
                "amount": str(amount),
                "asset": "USDXM",
            },
            simulated=True,
        )
