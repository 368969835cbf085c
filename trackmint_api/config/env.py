"""Environment variable resolution utilities.

Canonical env names with legacy fallbacks, plus the deployment guardrails that
decide which mint gateway capabilities are allowed to run.
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

# Dedup windows (seconds)
DEDUP_SUPPRESS_WINDOW_SECONDS = 30.0
DEDUP_RETENTION_WINDOW_SECONDS = 120.0

# Purchase diagnostics
NOT_FOUND_SAMPLE_LIMIT = 20

# Gateway defaults
DEFAULT_CROSSMINT_BASE_URL = "https://api.crossmint.com"
DEFAULT_CROSSMINT_TIMEOUT_SECONDS = 30.0
MOCK_MINT_DELAY_SECONDS = 0.5

# Health checks
HEALTH_CHECK_TIMEOUT_SECONDS = 3.0

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_flag(name: str) -> Optional[bool]:
    """Parse a boolean env var; None when unset or unrecognised."""
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    logger.warning("config.flag.unrecognised", extra={"env_var": name, "value": raw})
    return None


def get_trackmint_env() -> str:
    """Get deployment environment name.

    Priority:
    1. TRACKMINT_ENV (canonical)
    2. APP_ENV (legacy)
    3. Default: "local"

    Returns:
        Environment name (lowercase)
    """
    return (os.getenv("TRACKMINT_ENV") or os.getenv("APP_ENV") or "local").lower()


def is_production_env() -> bool:
    """True when running in a production deployment."""
    return get_trackmint_env() in {"prod", "production"}


def is_mock_mint_enabled() -> bool:
    """CROSSMINT_MOCK_MINT=true selects the simulated gateway."""
    return _env_flag("CROSSMINT_MOCK_MINT") is True


def is_dev_cert_fallback_enabled() -> bool:
    """Whether a certificate-class mint failure may fall back to simulation.

    Defaults to enabled outside production. In production the capability is
    refused even when CROSSMINT_DEV_CERT_FALLBACK=true is set.
    """
    flag = _env_flag("CROSSMINT_DEV_CERT_FALLBACK")

    if is_production_env():
        if flag:
            logger.warning(
                "config.dev_cert_fallback.refused",
                extra={"env": get_trackmint_env()},
            )
        return False

    return True if flag is None else flag


def is_payments_enabled() -> bool:
    """CROSSMINT_PAYMENTS_ENABLED=true charges the buyer before minting."""
    return _env_flag("CROSSMINT_PAYMENTS_ENABLED") is True


def get_crossmint_api_key() -> Optional[str]:
    """Get Crossmint server API key.

    Canonical: CROSSMINT_API_KEY
    Fallback (legacy): NEXT_PUBLIC_CROSSMINT_API_KEY

    Returns:
        The key, or None when neither env var is set. The live gateway then
        fails each call with a CONFIGURATION error.
    """
    return os.getenv("CROSSMINT_API_KEY") or os.getenv("NEXT_PUBLIC_CROSSMINT_API_KEY") or None


def get_crossmint_base_url() -> str:
    """Get Crossmint API base URL (no trailing slash)."""
    return os.getenv("CROSSMINT_BASE_URL", DEFAULT_CROSSMINT_BASE_URL).rstrip("/")


def get_crossmint_mint_endpoint() -> str:
    """Get Crossmint mint endpoint (CROSSMINT_MINT_ENDPOINT or <base>/v1/mint)."""
    return os.getenv("CROSSMINT_MINT_ENDPOINT") or f"{get_crossmint_base_url()}/v1/mint"


def get_crossmint_timeout() -> float:
    """Get mint/payment call timeout in seconds.

    Raises:
        ValueError: If CROSSMINT_TIMEOUT_SECONDS is not a positive number
    """
    raw = os.getenv("CROSSMINT_TIMEOUT_SECONDS")
    if not raw:
        return DEFAULT_CROSSMINT_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError:
        raise ValueError(f"CROSSMINT_TIMEOUT_SECONDS must be a number, got {raw!r}")
    if timeout <= 0:
        raise ValueError(f"CROSSMINT_TIMEOUT_SECONDS must be positive, got {raw!r}")
    return timeout


def get_dedup_backend() -> str:
    """Get dedup backend: "memory" (default) or "redis".

    Raises:
        ValueError: If DEDUP_BACKEND names an unknown backend
    """
    backend = os.getenv("DEDUP_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "redis"}:
        raise ValueError(f"DEDUP_BACKEND must be 'memory' or 'redis', got {backend!r}")
    return backend


def get_cors_allowed_origins() -> list[str]:
    """Explicit CORS allowlist (comma-separated), localhost variants by default."""
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
