"""Request context management for observability.

Context variables carry per-request identifiers across async boundaries so
that every log line emitted while handling a request can be correlated.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# User reference - 8-char prefix of the acting user id (never the full id)
user_ref_var: ContextVar[str] = ContextVar("user_ref", default="")

# Track ID - track being purchased or minted in this request
track_id_var: ContextVar[str] = ContextVar("track_id", default="")
