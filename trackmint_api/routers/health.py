"""Health check endpoint.

Each dependency check runs in a worker thread under a short timeout and
degrades to a "down: <reason>" string; the endpoint itself always answers.
"""

import asyncio
import logging
from typing import Callable

from fastapi import APIRouter

from trackmint_api import __version__
from trackmint_api.config.env import HEALTH_CHECK_TIMEOUT_SECONDS, get_dedup_backend
from trackmint_api.db.redis_client import RedisClient
from trackmint_api.schemas import HealthResponse
from trackmint_api.supabase_client import get_secret_key_source, get_supabase_admin_client

router = APIRouter()
logger = logging.getLogger(__name__)


def check_supabase() -> str:
    """Check Supabase connectivity with a one-row select.

    Returns:
        str: "up" if healthy, error message otherwise
    """
    try:
        get_supabase_admin_client().table("tracks").select("id").limit(1).execute()
        return "up"
    except RuntimeError as e:
        # Config error (missing env var)
        logger.error("health.supabase.config_error", extra={"error": str(e)})
        return f"down: config error - {str(e)[:40]}"
    except Exception as e:
        logger.error("health.supabase.failed", extra={"error": str(e)})
        return f"down: {str(e)[:50]}"


def check_redis() -> str:
    """Check Redis connectivity.

    Returns:
        str: "up" if healthy, error message otherwise
    """
    try:
        RedisClient.ping()
        return "up"
    except Exception as e:
        logger.error("health.redis.failed", extra={"error": str(e)})
        return f"down: {str(e)[:50]}"


async def _bounded(check: Callable[[], str]) -> str:
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(check), timeout=HEALTH_CHECK_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        logger.error("health.check.timeout", extra={"check": check.__name__})
        return f"down: timeout after {HEALTH_CHECK_TIMEOUT_SECONDS:g}s"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Service status and dependency health. Always 200."""
    services = {
        "api": "up",
        "supabase": await _bounded(check_supabase),
        "supabase_key": get_secret_key_source() or "missing",
    }
    try:
        dedup_backend = get_dedup_backend()
    except ValueError as e:
        logger.error("health.dedup.config_error", extra={"error": str(e)})
        services["dedup"] = f"down: config error - {str(e)[:40]}"
    else:
        services["dedup"] = dedup_backend
        if dedup_backend == "redis":
            services["redis"] = await _bounded(check_redis)

    any_down = any(value.startswith("down") for value in services.values())
    return HealthResponse(
        status="degraded" if any_down else "healthy",
        version=__version__,
        services=services,
    )
