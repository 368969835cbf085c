"""Tagged gateway errors, classified once at the adapter boundary.

Callers branch on ``GatewayError.kind`` and never inspect transport
internals themselves.
"""

import ssl
from enum import Enum
from typing import Any, Optional

import httpx

from trackmint_api.errors import UpstreamGatewayError

# OpenSSL X509_V_ERR_CERT_HAS_EXPIRED
_X509_CERT_HAS_EXPIRED = 10
_CERT_SIGNATURES = ("cert_has_expired", "certificate has expired", "certificate")


class GatewayErrorKind(str, Enum):
    """Discriminant for gateway failures."""

    TRANSPORT = "transport"
    CERTIFICATE_EXPIRED = "certificate_expired"
    TIMEOUT = "timeout"
    UPSTREAM_STATUS = "upstream_status"
    INVALID_RESPONSE = "invalid_response"
    CONFIGURATION = "configuration"


class GatewayError(UpstreamGatewayError):
    """Provider call failure carrying an explicit kind."""

    def __init__(
        self,
        kind: GatewayErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        extra: dict[str, Any] = {"gatewayErrorKind": kind.value}
        if details is not None:
            extra["details"] = details
        super().__init__(message, extra=extra)
        self.kind = kind
        self.upstream_status = status_code
        self.details = details


def _exception_chain(exc: BaseException):
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def is_certificate_error(exc: BaseException) -> bool:
    """Detect certificate-class TLS failures anywhere in the exception chain."""
    for link in _exception_chain(exc):
        if isinstance(link, ssl.SSLCertVerificationError):
            if getattr(link, "verify_code", None) == _X509_CERT_HAS_EXPIRED:
                return True
        code = str(getattr(link, "code", "") or "").lower()
        if code == "cert_has_expired":
            return True
        message = str(link).lower()
        if any(signature in message for signature in _CERT_SIGNATURES):
            return True
    return False


def classify_transport_error(exc: httpx.HTTPError, operation: str) -> GatewayError:
    """Map an httpx failure to a tagged GatewayError."""
    if isinstance(exc, httpx.TimeoutException):
        kind = GatewayErrorKind.TIMEOUT
    elif is_certificate_error(exc):
        kind = GatewayErrorKind.CERTIFICATE_EXPIRED
    else:
        kind = GatewayErrorKind.TRANSPORT
    return GatewayError(kind, f"{operation} failed: {exc}")
