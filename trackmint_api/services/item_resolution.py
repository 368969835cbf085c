"""Item resolution chain for purchase requests.

An ordered list of lookup strategies, each returning a found / not-found /
error outcome, composed by ``TrackResolver``:

  1. ById      - numeric identifier, primary key, privileged client
  2. ByTitle   - non-numeric identifier, case-insensitive title, privileged client
  3. ByParent  - numeric identifier, clone whose parent_track_id matches
  4. PublicById - numeric identifier over the public REST transport; only
     consulted when a privileged strategy reported an error

The first "found" wins. Errors are aggregated for the not-found diagnostics.
"""

import logging
import re
from enum import Enum
from typing import Any, Optional, Protocol, Union

import httpx
from pydantic import BaseModel, ConfigDict

from trackmint_api.config.env import NOT_FOUND_SAMPLE_LIMIT
from trackmint_api.db.public_rest import PublicRestClient
from trackmint_api.db.repo_tracks import TrackRepository
from trackmint_api.errors import (
    MissingMetadataError,
    NotForSaleError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from trackmint_api.models import Track

logger = logging.getLogger(__name__)

# Whole-string match: "7abc" is a title, never id 7 with a trailing suffix
_INTEGER_RE = re.compile(r"^[+-]?\d+$")

NOT_FOUND_NOTE = (
    "If you expected an id to exist, re-run the seed or verify the tracks table. "
    f"This response includes up to {NOT_FOUND_SAMPLE_LIMIT} listed items "
    "(public fallback) for debugging."
)


# ============================================================================
# Identifier parsing
# ============================================================================


class TrackIdentifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw: str
    numeric_id: Optional[int] = None

    @property
    def is_numeric(self) -> bool:
        return self.numeric_id is not None


def parse_track_identifier(value: Union[int, str, None]) -> TrackIdentifier:
    """Normalize a trackId (number or string) into an identifier.

    Only whole integer strings count as numeric ("7", " 42 "); anything else
    ("7abc", "Echoes") is a title.

    Raises:
        ValidationError: Missing, empty or unsupported identifier
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError("Missing trackId or buyerWallet")
    if isinstance(value, int):
        return TrackIdentifier(raw=str(value), numeric_id=value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError("Missing trackId or buyerWallet")
        numeric_id = int(text) if _INTEGER_RE.match(text) else None
        return TrackIdentifier(raw=text, numeric_id=numeric_id)
    raise ValidationError(f"Unsupported trackId type: {type(value).__name__}")


# ============================================================================
# Strategies
# ============================================================================


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


class ResolutionOutcome(BaseModel):
    status: LookupStatus
    strategy: str
    track: Optional[Track] = None
    error: Optional[str] = None

    @classmethod
    def found(cls, strategy: str, track: Track) -> "ResolutionOutcome":
        return cls(status=LookupStatus.FOUND, strategy=strategy, track=track)

    @classmethod
    def not_found(cls, strategy: str) -> "ResolutionOutcome":
        return cls(status=LookupStatus.NOT_FOUND, strategy=strategy)

    @classmethod
    def failed(cls, strategy: str, error: str) -> "ResolutionOutcome":
        return cls(status=LookupStatus.ERROR, strategy=strategy, error=error)


class ResolutionStrategy(Protocol):
    name: str

    def applies_to(self, identifier: TrackIdentifier) -> bool: ...

    async def lookup(self, identifier: TrackIdentifier) -> ResolutionOutcome: ...


class _PrivilegedStrategy:
    name = "privileged"

    def __init__(self, tracks: TrackRepository):
        self.tracks = tracks

    def applies_to(self, identifier: TrackIdentifier) -> bool:
        return identifier.is_numeric

    def _query(self, identifier: TrackIdentifier) -> Optional[Track]:
        raise NotImplementedError

    async def lookup(self, identifier: TrackIdentifier) -> ResolutionOutcome:
        try:
            track = self._query(identifier)
        except PersistenceError as e:
            return ResolutionOutcome.failed(self.name, e.error)
        if track is None:
            return ResolutionOutcome.not_found(self.name)
        return ResolutionOutcome.found(self.name, track)


class ByIdStrategy(_PrivilegedStrategy):
    name = "by_id"

    def _query(self, identifier: TrackIdentifier) -> Optional[Track]:
        return self.tracks.get_by_id(identifier.numeric_id)


class ByTitleStrategy(_PrivilegedStrategy):
    name = "by_title"

    def applies_to(self, identifier: TrackIdentifier) -> bool:
        return not identifier.is_numeric

    def _query(self, identifier: TrackIdentifier) -> Optional[Track]:
        return self.tracks.find_by_title(identifier.raw)


class ByParentStrategy(_PrivilegedStrategy):
    name = "by_parent"

    def _query(self, identifier: TrackIdentifier) -> Optional[Track]:
        return self.tracks.find_by_parent(identifier.numeric_id)


class PublicByIdStrategy:
    name = "public_by_id"

    def __init__(self, public: PublicRestClient):
        self.public = public

    def applies_to(self, identifier: TrackIdentifier) -> bool:
        return identifier.is_numeric and self.public.enabled

    async def lookup(self, identifier: TrackIdentifier) -> ResolutionOutcome:
        try:
            track = await self.public.fetch_track_by_id(identifier.numeric_id)
        except (httpx.HTTPError, ValueError) as e:
            return ResolutionOutcome.failed(self.name, str(e))
        if track is None:
            return ResolutionOutcome.not_found(self.name)
        return ResolutionOutcome.found(self.name, track)


# ============================================================================
# Coordinator
# ============================================================================


class TrackResolver:
    """Runs the primary chain, then the fallback chain if the primary errored."""

    def __init__(
        self,
        primary: list[ResolutionStrategy],
        fallback: list[ResolutionStrategy],
        public: PublicRestClient,
    ):
        self.primary = primary
        self.fallback = fallback
        self.public = public

    @classmethod
    def default(cls, tracks: TrackRepository, public: PublicRestClient) -> "TrackResolver":
        return cls(
            primary=[ByIdStrategy(tracks), ByTitleStrategy(tracks), ByParentStrategy(tracks)],
            fallback=[PublicByIdStrategy(public)],
            public=public,
        )

    async def _run(
        self,
        strategies: list[ResolutionStrategy],
        identifier: TrackIdentifier,
        errors: list[dict[str, Any]],
    ) -> Optional[Track]:
        for strategy in strategies:
            if not strategy.applies_to(identifier):
                continue
            outcome = await strategy.lookup(identifier)
            if outcome.status is LookupStatus.FOUND:
                logger.info(
                    "resolution.found",
                    extra={"strategy": outcome.strategy, "track_id": outcome.track.id},
                )
                return outcome.track
            if outcome.status is LookupStatus.ERROR:
                logger.warning(
                    "resolution.strategy_failed",
                    extra={"strategy": outcome.strategy, "error": outcome.error},
                )
                errors.append({"strategy": outcome.strategy, "error": outcome.error})
        return None

    async def resolve(self, identifier: TrackIdentifier) -> Track:
        """Resolve to a track.

        Raises:
            NotFoundError: Every strategy came back empty; carries up to 20
                public listings as diagnostics
        """
        errors: list[dict[str, Any]] = []
        track = await self._run(self.primary, identifier, errors)
        if track is None and errors:
            track = await self._run(self.fallback, identifier, errors)
        if track is not None:
            return track

        available = await self.public.fetch_listed_sample(NOT_FOUND_SAMPLE_LIMIT)
        extra: dict[str, Any] = {
            "available": available,
            "note": NOT_FOUND_NOTE,
            "totalTracksSampleCount": len(available),
        }
        if errors:
            extra["lookupErrors"] = errors
        logger.info(
            "resolution.not_found",
            extra={"identifier": identifier.raw, "sample_count": len(available), "errors": len(errors)},
        )
        raise NotFoundError("Track not found", extra=extra)


def ensure_purchasable(track: Track) -> str:
    """Gate a resolved track for sale; returns its metadata URL.

    Raises:
        NotForSaleError: price is null or not positive (regardless of mint status)
        MissingMetadataError: priced but no metadata URL
    """
    if not track.is_priced:
        raise NotForSaleError(
            "Track found but is not listed for sale",
            extra={"track": track.listing_summary()},
        )
    if not track.metadata_url:
        raise MissingMetadataError(
            "Metadata URL missing on track",
            extra={"track": track.model_dump(mode="json")},
        )
    return track.metadata_url
