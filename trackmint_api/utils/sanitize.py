"""Log sanitizer: secrets, PII keys and tracebacks.

Strings are handled by size:
  - longer than MAX_STR_LOG: replaced by a length + sha256 summary
  - longer than MAX_STR_FOR_REGEX: only auth-header prefixes are checked
  - otherwise: every secret pattern is replaced with [REDACTED]

Wallet addresses and track ids are public and pass through untouched; user
ids are shortened with ``short_ref`` at the call site.
"""

import hashlib
import re
import traceback
from typing import Any, Optional

from pydantic import BaseModel

MAX_STR_LOG = 2048
MAX_STR_FOR_REGEX = 512
MAX_DEPTH = 6

REDACTED = "[REDACTED]"

# Compared lower-cased
SENSITIVE_KEYS = frozenset({
    "authorization",
    "apikey",
    "api_key",
    "x-api-key",
    "token",
    "access_token",
    "refresh_token",
    "payment_token",
    "secret",
    "secret_key",
    "service_role_key",
    "publishable_key",
    "password",
    "email",
    "phone",
})

_SECRET_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"Bearer \S+",
        r"Basic \S+",
        r"(?:apikey|api_key|token)=\S+",
        # Crossmint keys: sk_production_..., ck_staging_...
        r"\b[sc]k_(?:production|staging|development)_\S+",
        # Supabase keys are JWTs
        r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+",
    )
)
_AUTH_PREFIXES = ("Bearer ", "Basic ")


def short_ref(value: Optional[str], length: int = 8) -> str:
    """Log-safe prefix of an identifier (user id, wallet)."""
    if not value:
        return "unknown"
    return value[:length]


def _summary(s: str) -> str:
    digest = hashlib.sha256(s.encode("utf-8", errors="replace")).hexdigest()[:16]
    return f"[TRUNCATED len={len(s)} sha256={digest}]"


def sanitize_str(s: str) -> str:
    """Redact or summarize a string; never returns a matched secret."""
    if not isinstance(s, str):
        return s  # type: ignore[return-value]
    if len(s) > MAX_STR_LOG:
        return _summary(s)
    if len(s) > MAX_STR_FOR_REGEX:
        return REDACTED if s.startswith(_AUTH_PREFIXES) else s
    for pattern in _SECRET_PATTERNS:
        s = pattern.sub(REDACTED, s)
    return s


def sanitize_obj(obj: Any, depth: int = 0) -> Any:
    """Recursively sanitize a log ``extra`` value.

    Pydantic models are dumped first so row models can be logged directly.
    """
    if depth >= MAX_DEPTH:
        return "[DEPTH_LIMIT]"
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json")
    if isinstance(obj, dict):
        return {
            key: REDACTED
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS
            else sanitize_obj(value, depth + 1)
            for key, value in obj.items()
        }
    if isinstance(obj, (list, tuple, set)):
        return [sanitize_obj(item, depth + 1) for item in obj]
    if isinstance(obj, str):
        return sanitize_str(obj)
    return obj


def sanitize_exc(exc_info: tuple) -> str:
    """Sanitized traceback text for an exc_info tuple (locals never captured)."""
    _type, value, _tb = exc_info
    if value is None:
        return ""
    try:
        formatted = "".join(
            traceback.TracebackException.from_exception(value, capture_locals=False).format()
        )
    except Exception:
        return "[TRACEBACK_FORMAT_ERROR]"
    return sanitize_str(formatted)
