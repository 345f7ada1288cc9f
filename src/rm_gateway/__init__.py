"""
Public facade for the Revenue Monster gateway transport.

The most useful pieces are re-exported so integrators can
``from rm_gateway import ...`` without navigating the package.
"""

from .api import create_client
from .core import (
    ApiError,
    ApiResponse,
    AuthError,
    AuthorizationError,
    CallContext,
    Client,
    ConfigError,
    DeadlineExceeded,
    DecodingError,
    EncodingError,
    ErrorKind,
    GatewayClientError,
    GatewayConfig,
    GatewayError,
    GatewayParameters,
    HttpMethod,
    LoggingTracer,
    NoopTracer,
    NotFoundError,
    OAuthTokenProvider,
    RESPONSE_SUCCESS,
    RateLimitError,
    Request,
    RequestCancelled,
    ServerError,
    SigningError,
    Span,
    StaticTokenProvider,
    Token,
    TokenProvider,
    Tracer,
    TransportError,
    ValidationError,
    background,
    canonicalize,
    load_gateway_config,
)

__all__ = (
    "ApiError",
    "ApiResponse",
    "AuthError",
    "AuthorizationError",
    "CallContext",
    "Client",
    "ConfigError",
    "DeadlineExceeded",
    "DecodingError",
    "EncodingError",
    "ErrorKind",
    "GatewayClientError",
    "GatewayConfig",
    "GatewayError",
    "GatewayParameters",
    "HttpMethod",
    "LoggingTracer",
    "NoopTracer",
    "NotFoundError",
    "OAuthTokenProvider",
    "RESPONSE_SUCCESS",
    "RateLimitError",
    "Request",
    "RequestCancelled",
    "ServerError",
    "SigningError",
    "Span",
    "StaticTokenProvider",
    "Token",
    "TokenProvider",
    "Tracer",
    "TransportError",
    "ValidationError",
    "background",
    "canonicalize",
    "create_client",
    "load_gateway_config",
)
