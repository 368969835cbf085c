"""Utility functions and helpers."""

from trackmint_api.utils.logging import JSONFormatter, configure_json_logging
from trackmint_api.utils.sanitize import sanitize_obj, sanitize_str, short_ref

__all__ = [
    "JSONFormatter",
    "configure_json_logging",
    "sanitize_obj",
    "sanitize_str",
    "short_ref",
]
