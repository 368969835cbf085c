"""Public (RLS-scoped) PostgREST transport.

Last-resort read path used when the privileged client fails, and the source of
the listing sample attached to not-found purchase responses. Only already
public listing fields are requested for the sample.
"""

import logging
from typing import Any, Optional

import httpx

from trackmint_api.config.env import HEALTH_CHECK_TIMEOUT_SECONDS, NOT_FOUND_SAMPLE_LIMIT
from trackmint_api.models import Track

logger = logging.getLogger(__name__)

LISTING_FIELDS = "id,title,price_cents,mint_status"


class PublicRestClient:
    """Minimal async PostgREST client authenticated with the publishable key.

    A client built without a key is disabled: lookups return None / [] without
    any network call.
    """

    def __init__(
        self,
        base_url: str,
        public_key: Optional[str],
        *,
        timeout: float = HEALTH_CHECK_TIMEOUT_SECONDS * 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.public_key = public_key
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.public_key)

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.public_key or "",
            "Authorization": f"Bearer {self.public_key}",
            "Accept": "application/json",
        }

    async def _get(self, params: dict[str, str]) -> list[dict[str, Any]]:
        url = f"{self.base_url}/rest/v1/tracks"
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.get(
                url, params=params, headers=self._headers(), timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        return data if isinstance(data, list) else []

    async def fetch_track_by_id(self, track_id: int) -> Optional[Track]:
        """Exact-id lookup. Raises httpx errors to the caller."""
        if not self.enabled:
            return None
        rows = await self._get({"id": f"eq.{track_id}", "select": "*"})
        for row in rows:
            if row.get("id") == track_id:
                return Track.model_validate(row)
        return None

    async def fetch_listed_sample(self, limit: int = NOT_FOUND_SAMPLE_LIMIT) -> list[dict[str, Any]]:
        """Up to ``limit`` listed/minted tracks with a price.

        Diagnostic only: every failure degrades to an empty list.
        """
        if not self.enabled:
            return []
        try:
            return await self._get(
                {
                    "price_cents": "not.is.null",
                    "mint_status": "in.(listed,minted)",
                    "select": LISTING_FIELDS,
                    "limit": str(limit),
                }
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "public_rest.listing_sample.failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return []
