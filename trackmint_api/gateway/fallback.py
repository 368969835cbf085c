"""Development-only certificate fallback around the real gateway."""

import logging
from decimal import Decimal

from trackmint_api.gateway.base import MintGateway, MintResult, TransferResult
from trackmint_api.gateway.errors import GatewayError, GatewayErrorKind

logger = logging.getLogger(__name__)


class DevFallbackMintGateway(MintGateway):
    """Mint through ``primary``; on a certificate-class failure use ``fallback``.

    Only built when the dev certificate fallback capability is enabled, which
    is never the case in production. Every other failure propagates, and
    transfers are never simulated.
    """

    name = "dev-fallback"

    def __init__(self, primary: MintGateway, fallback: MintGateway):
        self.primary = primary
        self.fallback = fallback

    async def mint(self, to_wallet: str, metadata_url: str) -> MintResult:
        try:
            return await self.primary.mint(to_wallet, metadata_url)
        except GatewayError as e:
            if e.kind is not GatewayErrorKind.CERTIFICATE_EXPIRED:
                raise
            logger.warning(
                "gateway.mint.fallback_to_simulated",
                extra={"primary": self.primary.name, "error": str(e)},
            )
            return await self.fallback.mint(to_wallet, metadata_url)

    async def transfer(
        self,
        from_wallet: str,
        to_wallet: str,
        amount: Decimal,
        description: str,
    ) -> TransferResult:
        return await self.primary.transfer(from_wallet, to_wallet, amount, description)
