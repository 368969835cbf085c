"""Fingerprint dedup guard for mutating endpoints.

A request is suppressed when the same fingerprint was marked seen within the
suppression window (30 s). The fingerprint is marked seen *before* the
mutating work runs, so a near-duplicate arriving while the first call is still
in flight is suppressed too.

Two backends share one contract:

- FingerprintDedupGuard: process-local dict, amortized sweep on every call
  (entries older than the 120 s retention window are evicted). Holds only
  under a single-threaded event loop in one process; across instances it is
  best effort, never authoritative.
- RedisDedupGuard: ``SET key NX PX <window>`` on a shared Redis, so the
  guarantee holds across instances. Retention is native key expiry.
"""

import logging
import time
from typing import Callable, Optional, Protocol

import redis

from trackmint_api.config.env import (
    DEDUP_RETENTION_WINDOW_SECONDS,
    DEDUP_SUPPRESS_WINDOW_SECONDS,
    get_dedup_backend,
)
from trackmint_api.db.redis_client import RedisClient
from trackmint_api.utils.sanitize import short_ref

logger = logging.getLogger(__name__)

AUTH_SYNC_GUARD = "auth-sync"
WALLET_UPDATE_GUARD = "update-user-wallet"


# ---------------------------------------------------------------------------
# Fingerprint derivation
# ---------------------------------------------------------------------------


def auth_sync_fingerprint(user_id: str, wallet_address: Optional[str]) -> str:
    return f"{user_id}:{wallet_address or 'no-wallet'}"


def wallet_update_fingerprint(user_id: str, wallet_address: str) -> str:
    return f"{user_id}:{wallet_address}"


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


class DedupGuard(Protocol):
    name: str

    def should_suppress(self, fingerprint: str, now: Optional[float] = None) -> bool: ...

    def record_seen(self, fingerprint: str, now: Optional[float] = None) -> None: ...

    def sweep(self, now: Optional[float] = None) -> int: ...

    def check_and_mark(self, fingerprint: str) -> bool: ...


class FingerprintDedupGuard:
    """Process-local dedup map with amortized eviction."""

    def __init__(
        self,
        name: str,
        *,
        suppress_window: float = DEDUP_SUPPRESS_WINDOW_SECONDS,
        retention_window: float = DEDUP_RETENTION_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.suppress_window = suppress_window
        self.retention_window = retention_window
        self._clock = clock
        self._last_seen: dict[str, float] = {}

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._last_seen

    def __len__(self) -> int:
        return len(self._last_seen)

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def should_suppress(self, fingerprint: str, now: Optional[float] = None) -> bool:
        now = self._now(now)
        self.sweep(now)
        last_seen = self._last_seen.get(fingerprint)
        return last_seen is not None and now - last_seen < self.suppress_window

    def record_seen(self, fingerprint: str, now: Optional[float] = None) -> None:
        self._last_seen[fingerprint] = self._now(now)

    def sweep(self, now: Optional[float] = None) -> int:
        """Evict entries older than the retention window; returns evicted count."""
        cutoff = self._now(now) - self.retention_window
        stale = [fp for fp, seen in self._last_seen.items() if seen < cutoff]
        for fp in stale:
            del self._last_seen[fp]
        return len(stale)

    def check_and_mark(self, fingerprint: str) -> bool:
        """True when the call is a duplicate; otherwise marks it seen."""
        now = self._clock()
        if self.should_suppress(fingerprint, now):
            logger.info(
                "dedup.suppressed",
                extra={"guard": self.name, "fingerprint_ref": short_ref(fingerprint)},
            )
            return True
        self.record_seen(fingerprint, now)
        return False


class RedisDedupGuard:
    """Shared dedup store with native per-key expiry.

    Redis failures fail open: the call proceeds and a warning is logged.
    """

    KEY_PREFIX = "trackmint:dedup"

    def __init__(
        self,
        name: str,
        client: redis.Redis,
        *,
        suppress_window: float = DEDUP_SUPPRESS_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.client = client
        self.suppress_window = suppress_window
        self._clock = clock

    def _key(self, fingerprint: str) -> str:
        return f"{self.KEY_PREFIX}:{self.name}:{fingerprint}"

    @property
    def _ttl_ms(self) -> int:
        return int(self.suppress_window * 1000)

    def should_suppress(self, fingerprint: str, now: Optional[float] = None) -> bool:
        try:
            return bool(self.client.exists(self._key(fingerprint)))
        except redis.RedisError as e:
            logger.warning("dedup.redis.unavailable", extra={"guard": self.name, "error": str(e)})
            return False

    def record_seen(self, fingerprint: str, now: Optional[float] = None) -> None:
        seen_at = self._clock() if now is None else now
        try:
            self.client.set(self._key(fingerprint), str(seen_at), px=self._ttl_ms)
        except redis.RedisError as e:
            logger.warning("dedup.redis.unavailable", extra={"guard": self.name, "error": str(e)})

    def sweep(self, now: Optional[float] = None) -> int:
        # Expiry is handled by Redis
        return 0

    def check_and_mark(self, fingerprint: str) -> bool:
        try:
            acquired = self.client.set(
                self._key(fingerprint), str(self._clock()), nx=True, px=self._ttl_ms
            )
        except redis.RedisError as e:
            logger.warning("dedup.redis.unavailable", extra={"guard": self.name, "error": str(e)})
            return False
        if not acquired:
            logger.info(
                "dedup.suppressed",
                extra={"guard": self.name, "fingerprint_ref": short_ref(fingerprint)},
            )
            return True
        return False


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_guards: dict[str, DedupGuard] = {}


def get_dedup_guard(name: str) -> DedupGuard:
    """Get the named guard for the configured backend (singleton per name)."""
    guard = _guards.get(name)
    if guard is None:
        try:
            backend = get_dedup_backend()
        except ValueError as e:
            # Unknown backend: keep suppressing duplicates in-process
            logger.warning("dedup.backend.invalid", extra={"guard": name, "error": str(e)})
            backend = "memory"
        if backend == "redis":
            guard = RedisDedupGuard(name, RedisClient.get_client())
        else:
            guard = FingerprintDedupGuard(name)
        _guards[name] = guard
    return guard


def reset_dedup_guards() -> None:
    """Drop all guards (for testing)."""
    _guards.clear()
