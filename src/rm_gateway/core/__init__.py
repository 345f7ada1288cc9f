"""
Core primitives of the signed gateway transport.
"""

from .canonical import canonicalize, is_empty_body
from .client import ApiResponse, Client, RESPONSE_SUCCESS, generate_nonce
from .config import (
    ConfigError,
    GatewayConfig,
    GatewayParameters,
    load_gateway_config,
)
from .context import CallContext, background
from .environment import GatewayEnvironment, build_environment, load_env_file
from .errors import (
    ApiError,
    AuthError,
    AuthorizationError,
    DeadlineExceeded,
    DecodingError,
    EncodingError,
    ErrorKind,
    GatewayClientError,
    GatewayError,
    NotFoundError,
    RateLimitError,
    RequestCancelled,
    ServerError,
    SigningError,
    TransportError,
    ValidationError,
    classify_error,
)
from .request import HttpMethod, Request
from .signing import (
    build_sign_params,
    load_private_key,
    load_public_key,
    sign_data,
    verify_signature,
)
from .tokens import OAuthTokenProvider, StaticTokenProvider, Token, TokenProvider
from .tracing import LoggingTracer, NoopTracer, Span, Tracer

__all__ = [
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
    "GatewayEnvironment",
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
    "build_environment",
    "build_sign_params",
    "canonicalize",
    "classify_error",
    "generate_nonce",
    "is_empty_body",
    "load_env_file",
    "load_gateway_config",
    "load_private_key",
    "load_public_key",
    "sign_data",
    "verify_signature",
]
