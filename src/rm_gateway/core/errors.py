"""
Error types raised by the gateway client and the classifier that maps
non-success HTTP responses onto them.
"""

from __future__ import annotations

import enum
import json
from typing import Any, Dict, Optional

__all__ = [
    "ApiError",
    "AuthError",
    "AuthorizationError",
    "DeadlineExceeded",
    "DecodingError",
    "EncodingError",
    "ErrorKind",
    "GatewayClientError",
    "GatewayError",
    "NotFoundError",
    "RateLimitError",
    "RequestCancelled",
    "ServerError",
    "SigningError",
    "TransportError",
    "ValidationError",
    "classify_error",
]


class GatewayClientError(Exception):
    """Base class for every error raised while talking to the gateway."""


class EncodingError(GatewayClientError):
    """The request body could not be turned into a canonical form."""


class SigningError(GatewayClientError):
    """The signing primitive rejected the key or the input."""


class AuthError(GatewayClientError):
    """An access token could not be obtained."""


class TransportError(GatewayClientError):
    """
    Connection-level failure, or a response that could not be understood.

    ``status_code`` and ``body`` are populated when the server did answer but
    the error envelope was unreadable.
    """

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[bytes] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.body = body


class RequestCancelled(TransportError):
    """The call context was cancelled before the exchange completed."""


class DeadlineExceeded(RequestCancelled):
    """The call context deadline passed before the exchange completed."""


class GatewayError(GatewayClientError):
    """The gateway answered with 502 Bad Gateway."""

    def __init__(self, method: str, url: str) -> None:
        super().__init__(f"rm: bad gateway on {method}: {url}")
        self.method = method
        self.url = url


class DecodingError(GatewayClientError):
    """The response body did not match the expected shape."""


class ErrorKind(str, enum.Enum):
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    NOT_FOUND = "not_found"
    SERVER = "server"
    UNKNOWN = "unknown"


class ApiError(GatewayClientError):
    """
    Structured business error returned by the gateway.

    Callers branch on :attr:`kind` (or on the subclass) rather than on the
    message text.
    """

    kind = ErrorKind.UNKNOWN

    def __init__(
        self,
        *,
        code: str,
        message: str,
        url: str,
        status_code: Optional[int] = None,
        debug: Optional[str] = None,
        request_body: Optional[bytes] = None,
        response_body: Optional[bytes] = None,
    ) -> None:
        super().__init__(f"rm: {code}: {message} ({url})")
        self.code = code
        self.message = message
        self.url = url
        self.status_code = status_code
        self.debug = debug
        self.request_body = request_body
        self.response_body = response_body


class AuthorizationError(ApiError):
    kind = ErrorKind.AUTHORIZATION


class ValidationError(ApiError):
    kind = ErrorKind.VALIDATION


class RateLimitError(ApiError):
    kind = ErrorKind.RATE_LIMIT


class NotFoundError(ApiError):
    kind = ErrorKind.NOT_FOUND


class ServerError(ApiError):
    kind = ErrorKind.SERVER


_STATUS_TO_ERROR = {
    400: ValidationError,
    401: AuthorizationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ValidationError,
    422: ValidationError,
    429: RateLimitError,
}

_CODE_MARKERS = (
    ("RATE_LIMIT", RateLimitError),
    ("TOO_MANY", RateLimitError),
    ("SIGNATURE", AuthorizationError),
    ("TOKEN", AuthorizationError),
    ("UNAUTHORI", AuthorizationError),
    ("PERMISSION", AuthorizationError),
    ("FORBIDDEN", AuthorizationError),
    ("NOT_FOUND", NotFoundError),
    ("INVALID", ValidationError),
    ("VALIDATION", ValidationError),
    ("REQUIRED", ValidationError),
    ("INTERNAL", ServerError),
    ("SERVER", ServerError),
)


def _error_type(code: str, status_code: Optional[int]) -> type:
    upper = code.upper()
    for marker, error_type in _CODE_MARKERS:
        if marker in upper:
            return error_type
    if status_code is not None:
        if status_code in _STATUS_TO_ERROR:
            return _STATUS_TO_ERROR[status_code]
        if status_code >= 500:
            return ServerError
    return ApiError


def _extract_envelope(payload: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("code"):
        return error
    if payload.get("code") and payload.get("message") is not None:
        return payload
    return None


def classify_error(
    url: str,
    request_body: Optional[bytes],
    response_body: bytes,
    status_code: Optional[int] = None,
) -> GatewayClientError:
    """
    Map a non-success response onto a typed error.

    The gateway wraps failures as ``{"error": {"code", "message", "debug"}}``.
    Bodies that do not parse into that envelope come back as a
    :class:`TransportError` that keeps the raw bytes.
    """
    try:
        payload = json.loads(response_body)
    except (ValueError, TypeError):
        payload = None

    envelope = _extract_envelope(payload)
    if envelope is None:
        return TransportError(
            f"rm: unexpected response from {url}: {response_body!r}",
            url=url,
            status_code=status_code,
            body=response_body,
        )

    code = str(envelope["code"])
    debug = envelope.get("debug")
    error_type = _error_type(code, status_code)
    return error_type(
        code=code,
        message=str(envelope.get("message") or ""),
        url=url,
        status_code=status_code,
        debug=str(debug) if debug is not None else None,
        request_body=request_body,
        response_body=response_body,
    )
