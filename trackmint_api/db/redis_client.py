"""Redis connection for the shared dedup store and the health check.

Only used when DEDUP_BACKEND=redis. Timeouts match the health check budget so
a stalled Redis degrades a request instead of hanging it.
"""

import os
from typing import Any, Optional
from urllib.parse import urlparse

import redis

from trackmint_api.config.env import HEALTH_CHECK_TIMEOUT_SECONDS

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def connection_kwargs(redis_url: str) -> dict[str, Any]:
    """Keyword arguments for ``redis.from_url``.

    REDIS_PASSWORD is applied only when the URL carries no password.
    """
    kwargs: dict[str, Any] = {
        "decode_responses": True,
        "socket_connect_timeout": HEALTH_CHECK_TIMEOUT_SECONDS,
        "socket_timeout": HEALTH_CHECK_TIMEOUT_SECONDS,
        "health_check_interval": 30,
    }
    password = os.getenv("REDIS_PASSWORD")
    if password and not urlparse(redis_url).password:
        kwargs["password"] = password
    return kwargs


class RedisClient:
    """Lazily built, process-wide Redis client (REDIS_URL, rediss:// for TLS)."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    def get_client(cls) -> redis.Redis:
        if cls._instance is None:
            redis_url = os.getenv("REDIS_URL", DEFAULT_REDIS_URL)
            cls._instance = redis.from_url(redis_url, **connection_kwargs(redis_url))
        return cls._instance

    @classmethod
    def ping(cls) -> bool:
        """Raises redis.RedisError when the server is unreachable."""
        return bool(cls.get_client().ping())

    @classmethod
    def reset(cls) -> None:
        """Drop the cached client (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None
