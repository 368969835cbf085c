"""Repository for catalog tracks (tracks)."""

import re
from typing import Any, Optional

from supabase import Client

from trackmint_api.db.postgrest import all_rows, first_row, persistence_errors
from trackmint_api.errors import PersistenceError
from trackmint_api.models import Track

TITLE_CANDIDATE_LIMIT = 20


def escape_like(value: str) -> str:
    """Escape LIKE metacharacters (backslash is the default escape)."""
    return re.sub(r"([\\%_])", r"\\\1", value)


class TrackRepository:
    """Track lookups and writes through the privileged client."""

    TABLE = "tracks"

    def __init__(self, client: Client):
        self.client = client

    def _one(self, operation: str, query) -> Optional[Track]:
        with persistence_errors(operation):
            response = query.limit(1).execute()
        row = first_row(response)
        return Track.model_validate(row) if row else None

    def get_by_id(self, track_id: int) -> Optional[Track]:
        return self._one(
            "tracks.get_by_id",
            self.client.table(self.TABLE).select("*").eq("id", track_id),
        )

    def find_by_title(self, title: str) -> Optional[Track]:
        """Case-insensitive exact title match.

        LIKE metacharacters in ``title`` are escaped. PostgREST also reads `*`
        as a wildcard, so candidates are re-checked for an exact match here.
        """
        with persistence_errors("tracks.find_by_title"):
            response = (
                self.client.table(self.TABLE)
                .select("*")
                .ilike("title", escape_like(title))
                .limit(TITLE_CANDIDATE_LIMIT)
                .execute()
            )
        wanted = title.lower()
        for row in all_rows(response):
            if str(row.get("title") or "").lower() == wanted:
                return Track.model_validate(row)
        return None

    def find_by_parent(self, parent_track_id: int) -> Optional[Track]:
        return self._one(
            "tracks.find_by_parent",
            self.client.table(self.TABLE).select("*").eq("parent_track_id", parent_track_id),
        )

    def insert(self, fields: dict[str, Any]) -> Track:
        with persistence_errors("tracks.insert"):
            response = self.client.table(self.TABLE).insert(fields).execute()
        row = first_row(response)
        if row is None:
            raise PersistenceError("tracks.insert: no row returned")
        return Track.model_validate(row)

    def update(self, track_id: int, fields: dict[str, Any]) -> None:
        with persistence_errors("tracks.update"):
            self.client.table(self.TABLE).update(fields).eq("id", track_id).execute()

    def compare_and_set_minted_count(
        self, track_id: int, expected: Optional[int], new_value: int
    ) -> bool:
        """Conditional update of minted_count; False when another writer won."""
        with persistence_errors("tracks.compare_and_set_minted_count"):
            query = (
                self.client.table(self.TABLE)
                .update({"minted_count": new_value})
                .eq("id", track_id)
            )
            if expected is None:
                query = query.is_("minted_count", "null")
            else:
                query = query.eq("minted_count", expected)
            response = query.execute()
        return len(all_rows(response)) > 0
