"""Error taxonomy for the onboarding and purchase flows.

Every error carries an HTTP status and a human-readable ``error`` string.
Optional ``extra`` fields are merged into the JSON error body (for example the
listing sample attached to a not-found purchase).

Fatal vs. best effort:
  Fatal (request aborted): auth identity creation, profile creation, wallet
  bind (all tiers), ownership record insert, upstream gateway failure.
  Best effort (logged, swallowed by callers): wallet-table mirror, buyer clone
  row, counters, profile wallet refresh during purchase.
"""

from typing import Any, Optional


class TrackmintError(Exception):
    """Base exception for all request-level failures."""

    status_code: int = 500

    def __init__(self, error: str, *, extra: Optional[dict[str, Any]] = None):
        super().__init__(error)
        self.error = error
        self.extra = extra or {}


class ValidationError(TrackmintError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(TrackmintError):
    """Resolution chain exhausted; carries a diagnostic sample of listings."""

    status_code = 404


class NotForSaleError(TrackmintError):
    """Track exists but has no positive price."""

    status_code = 400


class MissingMetadataError(TrackmintError):
    """Track is priced but has no metadata URL to mint from."""

    status_code = 400


class PaymentFailedError(TrackmintError):
    """The buyer payment step was rejected by the provider."""

    status_code = 400


class UpstreamGatewayError(TrackmintError):
    """Mint/payment provider call failed without a recognised fallback."""

    status_code = 500


# The mint path raises this name; kept as an alias of the generic gateway error
MintGatewayFailed = UpstreamGatewayError


class PersistenceError(TrackmintError):
    """Backing-store read or write failed."""

    status_code = 500

    def __init__(
        self,
        error: str,
        *,
        code: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ):
        super().__init__(error, extra=extra)
        self.code = code


class DuplicateKeyError(PersistenceError):
    """Unique constraint violation (Postgres 23505)."""


class AuthIdentityCreationFailed(PersistenceError):
    """Creating the auth identity failed."""


class ProfileCreationFailed(PersistenceError):
    """Inserting the user profile row failed."""


class WalletBindFailed(PersistenceError):
    """Both the RPC and the direct update failed to bind the wallet."""


class OwnershipWriteFailed(PersistenceError):
    """The ownership record could not be written after a successful mint."""


class ProfileNotFoundError(PersistenceError):
    """Profile lookup failed or returned no row."""
