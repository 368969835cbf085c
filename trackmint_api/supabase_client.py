"""Supabase client configuration.

Two credential tiers:
- SB_SECRET_KEY (privileged, bypasses RLS): every server-initiated read and
  write goes through the admin client. NEVER exposed to clients.
- SB_PUBLISHABLE_KEY (public, respects RLS): used only by the public REST
  fallback transport for last-resort reads.

KEY NAMING TRANSITION:
- New Supabase UI (2024+): SB_PUBLISHABLE_KEY / SB_SECRET_KEY
- Legacy: SUPABASE_ANON_KEY / SUPABASE_SERVICE_ROLE_KEY (and the frontend-era
  NEXT_PUBLIC_* names)
"""

import logging
import os
from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

logger = logging.getLogger(__name__)

# Ordered by preference; first set variable wins
_SECRET_KEY_VARS = ("SB_SECRET_KEY", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY")
_PUBLIC_KEY_VARS = ("SB_PUBLISHABLE_KEY", "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")


def _first_set(names: tuple[str, ...]) -> tuple[Optional[str], Optional[str]]:
    for name in names:
        value = os.getenv(name)
        if value:
            return name, value
    return None, None


@lru_cache(maxsize=1)
def get_supabase_url() -> str:
    """Get Supabase project URL from environment.

    Returns:
        str: Supabase URL (https://[project_ref].supabase.co), no trailing slash

    Raises:
        RuntimeError: If neither SUPABASE_URL nor NEXT_PUBLIC_SUPABASE_URL is set
    """
    url = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
    if not url:
        raise RuntimeError(
            "SUPABASE_URL environment variable not set. "
            "Required for server-side Supabase access."
        )
    return url.rstrip("/")


def get_secret_key_source() -> Optional[str]:
    """Name of the env var the privileged key is read from (never the value)."""
    name, _ = _first_set(_SECRET_KEY_VARS)
    return name


@lru_cache(maxsize=1)
def get_supabase_secret_key() -> str:
    """Get Supabase secret (service role) key from environment.

    SECRET_KEY bypasses RLS and is for server-side operations only.

    Raises:
        RuntimeError: If no privileged key variable is set
    """
    name, key = _first_set(_SECRET_KEY_VARS)
    if not key:
        raise RuntimeError(
            "Neither SB_SECRET_KEY nor SUPABASE_SERVICE_ROLE_KEY environment variable is set. "
            "Required for server-side writes. Set SB_SECRET_KEY (recommended)."
        )
    if name != _SECRET_KEY_VARS[0]:
        logger.info(
            "supabase.key.legacy_name",
            extra={"env_var": name, "preferred": _SECRET_KEY_VARS[0]},
        )
    return key


@lru_cache(maxsize=1)
def get_supabase_public_key() -> Optional[str]:
    """Get Supabase publishable (anon) key, or None when not configured.

    The public tier is optional: without it the REST fallback is disabled.
    """
    _, key = _first_set(_PUBLIC_KEY_VARS)
    return key


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """Get Supabase admin client for server-side operations.

    Uses SECRET_KEY which bypasses RLS.

    Raises:
        RuntimeError: If environment variables not set
    """
    url = get_supabase_url()
    secret_key = get_supabase_secret_key()

    # Log initialization (without exposing keys)
    logger.info(
        "supabase.admin_client.init",
        extra={
            "supabase_url": url,
            "key_source": get_secret_key_source(),
        },
    )

    return create_client(url, secret_key)
