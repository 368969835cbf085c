"""Supabase Storage access for NFT metadata documents."""

import json
from typing import Any

from supabase import Client

from trackmint_api.db.postgrest import persistence_errors

METADATA_BUCKET = "metadata"


class MetadataStorage:
    """Uploads metadata JSON and resolves its public URL."""

    def __init__(self, client: Client, bucket: str = METADATA_BUCKET):
        self.client = client
        self.bucket = bucket

    def upload_json(self, key: str, document: dict[str, Any]) -> str:
        """Upload (upsert) a JSON document; returns its public URL."""
        body = json.dumps(document).encode("utf-8")
        with persistence_errors("storage.upload"):
            bucket = self.client.storage.from_(self.bucket)
            bucket.upload(
                path=key,
                file=body,
                file_options={"content-type": "application/json", "upsert": "true"},
            )
            return bucket.get_public_url(key)
