"""Shared PostgREST error translation for repositories."""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from trackmint_api.errors import DuplicateKeyError, PersistenceError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def first_row(response: Any) -> Optional[dict]:
    """First row of a PostgREST response, or None when there is no row."""
    data = getattr(response, "data", None) if response is not None else None
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


def all_rows(response: Any) -> list[dict]:
    data = getattr(response, "data", None) if response is not None else None
    if isinstance(data, list):
        return data
    return [data] if data else []


@contextmanager
def persistence_errors(operation: str) -> Iterator[None]:
    """Translate any client/PostgREST failure into PersistenceError.

    Unique violations become DuplicateKeyError so callers can retry.
    """
    try:
        yield
    except PersistenceError:
        raise
    except Exception as exc:
        code = getattr(exc, "code", None)
        message = getattr(exc, "message", None) or str(exc)
        if code == UNIQUE_VIOLATION:
            raise DuplicateKeyError(f"{operation}: {message}", code=code) from exc
        raise PersistenceError(f"{operation}: {message}", code=code) from exc
