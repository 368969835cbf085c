"""Mint/payment gateway selection.

The gateway is chosen by configuration, never by inspecting errors at call
sites:
- CROSSMINT_MOCK_MINT=true → SimulatedMintGateway
- otherwise CrossmintGateway, wrapped in DevFallbackMintGateway when the dev
  certificate fallback capability is enabled (never in production)

Building never fails on configuration: a missing key or bad timeout surfaces
at call time, after request validation and item resolution have run.
"""

import logging
from typing import Optional

from trackmint_api.config.env import (
    DEFAULT_CROSSMINT_TIMEOUT_SECONDS,
    get_crossmint_api_key,
    get_crossmint_base_url,
    get_crossmint_mint_endpoint,
    get_crossmint_timeout,
    is_dev_cert_fallback_enabled,
    is_mock_mint_enabled,
)
from trackmint_api.gateway.base import MintGateway, MintResult, TransferResult
from trackmint_api.gateway.crossmint import CrossmintGateway
from trackmint_api.gateway.errors import GatewayError, GatewayErrorKind
from trackmint_api.gateway.fallback import DevFallbackMintGateway
from trackmint_api.gateway.simulated import SimulatedMintGateway

logger = logging.getLogger(__name__)

__all__ = [
    "CrossmintGateway",
    "DevFallbackMintGateway",
    "GatewayError",
    "GatewayErrorKind",
    "MintGateway",
    "MintResult",
    "SimulatedMintGateway",
    "TransferResult",
    "build_mint_gateway",
    "get_mint_gateway",
]


def build_mint_gateway() -> MintGateway:
    """Build the gateway described by the environment."""
    if is_mock_mint_enabled():
        logger.info("gateway.selected", extra={"gateway": SimulatedMintGateway.name})
        return SimulatedMintGateway()

    api_key = get_crossmint_api_key()
    if not api_key:
        logger.warning("gateway.crossmint.key_missing")
    try:
        timeout = get_crossmint_timeout()
    except ValueError as e:
        logger.warning("gateway.crossmint.timeout_invalid", extra={"error": str(e)})
        timeout = DEFAULT_CROSSMINT_TIMEOUT_SECONDS

    live = CrossmintGateway(
        api_key,
        base_url=get_crossmint_base_url(),
        mint_endpoint=get_crossmint_mint_endpoint(),
        timeout=timeout,
    )
    if is_dev_cert_fallback_enabled():
        logger.info("gateway.selected", extra={"gateway": DevFallbackMintGateway.name})
        return DevFallbackMintGateway(live, SimulatedMintGateway())

    logger.info("gateway.selected", extra={"gateway": live.name})
    return live


_gateway: Optional[MintGateway] = None


def get_mint_gateway() -> MintGateway:
    """Get global gateway instance (singleton)."""
    global _gateway
    if _gateway is None:
        _gateway = build_mint_gateway()
    return _gateway


def reset_mint_gateway() -> None:
    """Drop the cached gateway (for testing)."""
    global _gateway
    _gateway = None
