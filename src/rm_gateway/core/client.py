"""
Signed HTTP transport for the Revenue Monster open API.
"""

from __future__ import annotations

import base64
import json
import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from .canonical import canonicalize
from .config import ConfigError, GatewayConfig
from .context import CallContext, background
from .errors import (
    DeadlineExceeded,
    DecodingError,
    GatewayError,
    TransportError,
    classify_error,
)
from .request import HttpMethod, Request
from .signing import (
    SIGN_TYPE,
    build_sign_params,
    load_private_key,
    load_public_key,
    sign_data,
)
from .tokens import OAuthTokenProvider, Token, TokenProvider, TokenSourceCell
from .tracing import COMPONENT, NoopTracer, Span, Tracer

__all__ = [
    "API_VERSION",
    "ApiResponse",
    "Client",
    "NONCE_LENGTH",
    "RESPONSE_SUCCESS",
    "generate_nonce",
]

RESPONSE_SUCCESS = "SUCCESS"
API_VERSION = "v3"
NONCE_LENGTH = 25

_NONCE_ALPHABET = string.ascii_letters + string.digits


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    return "".join(secrets.choice(_NONCE_ALPHABET) for _ in range(length))


def _close_response(response: requests.Response) -> None:
    response.close()


@dataclass(frozen=True)
class ApiResponse:
    """The gateway's standard ``{"item": ..., "code": ...}`` envelope."""

    code: Optional[str]
    item: Any
    raw: Dict[str, Any]

    @property
    def success(self) -> bool:
        return self.code == RESPONSE_SUCCESS

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "ApiResponse":
        if not isinstance(payload, dict):
            raise TypeError(f"expected a JSON object, got {type(payload).__name__}")
        return cls(code=payload.get("code"), item=payload.get("item"), raw=payload)


Decoder = Callable[[Any], Any]


class Client:
    """
    Signs, sends and classifies requests against the gateway.

    A single instance is safe to share between threads: the only shared
    mutable state is the token source, which lives behind a lock.
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        session: Optional[requests.Session] = None,
        token_provider: Optional[TokenProvider] = None,
        tracer: Optional[Tracer] = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.tracer = tracer or NoopTracer()
        self.oauth_endpoint = config.oauth_endpoint
        self.open_endpoint = config.open_endpoint
        self.store_id = config.store_id

        try:
            self._private_key = load_private_key(config.private_key)
        except ValueError as exc:
            raise ConfigError(f"rm: {exc}") from exc

        self.public_key = None
        if config.public_key:
            try:
                self.public_key = load_public_key(config.public_key)
            except ValueError as exc:
                raise ConfigError(f"rm: {exc}") from exc

        if token_provider is None:
            token_provider = OAuthTokenProvider(
                client_id=config.client_id,
                client_secret=config.client_secret,
                oauth_endpoint=self.oauth_endpoint,
                session=self.session,
                timeout=config.timeout_seconds,
            )
        self._tokens = TokenSourceCell(token_provider)

    def set_token_provider(self, provider: TokenProvider) -> None:
        """Swap the token source; waits for any in-flight token fetch."""
        self._tokens.set(provider)

    def token(self, ctx: Optional[CallContext] = None) -> Token:
        return self._tokens.get(ctx)

    def url(self, path: str) -> str:
        return f"{self.open_endpoint}/{API_VERSION}/{path.lstrip('/')}"

    def get(
        self,
        ctx: Optional[CallContext],
        path: str,
        *,
        decoder: Optional[Decoder] = None,
        operation_name: Optional[str] = None,
    ) -> Any:
        return self.execute(ctx, operation_name, HttpMethod.GET, self.url(path), None, decoder)

    def post(
        self,
        ctx: Optional[CallContext],
        path: str,
        body: Any = None,
        *,
        decoder: Optional[Decoder] = None,
        operation_name: Optional[str] = None,
    ) -> Any:
        return self.execute(ctx, operation_name, HttpMethod.POST, self.url(path), body, decoder)

    def put(
        self,
        ctx: Optional[CallContext],
        path: str,
        body: Any = None,
        *,
        decoder: Optional[Decoder] = None,
        operation_name: Optional[str] = None,
    ) -> Any:
        return self.execute(ctx, operation_name, HttpMethod.PUT, self.url(path), body, decoder)

    def delete(
        self,
        ctx: Optional[CallContext],
        path: str,
        *,
        decoder: Optional[Decoder] = None,
        operation_name: Optional[str] = None,
    ) -> Any:
        return self.execute(ctx, operation_name, HttpMethod.DELETE, self.url(path), None, decoder)

    def execute(
        self,
        ctx: Optional[CallContext],
        operation_name: Optional[str],
        method: HttpMethod | str,
        url: str,
        body: Any = None,
        decoder: Optional[Decoder] = None,
    ) -> Any:
        """
        Run one signed request/response cycle.

        Returns the decoded JSON body (passed through ``decoder`` when given,
        or through ``decoder.from_response`` when it has one), or ``None`` for
        a 204 response.
        """
        request = Request.build(method, url, body, operation_name=operation_name)
        return self.send(ctx, request, decoder)

    def send(
        self,
        ctx: Optional[CallContext],
        request: Request,
        decoder: Optional[Decoder] = None,
    ) -> Any:
        ctx = ctx or background()
        with self.tracer.start_span(request.operation_name, child_of=ctx.parent_span) as span:
            return self._do(ctx, span, request, decoder)

    def _do(
        self,
        ctx: CallContext,
        span: Span,
        request: Request,
        decoder: Optional[Decoder],
    ) -> Any:
        method = request.method.value.lower()
        url = request.url

        span.set_tag("http.url", url)
        span.set_tag("http.method", method)
        span.set_tag("component", COMPONENT)

        canonical = canonicalize(request.body)
        data = None
        if canonical is not None:
            data = base64.b64encode(canonical).decode("ascii")
        if self.config.log_bodies:
            span.log_fields(**{"http.request.body": (canonical or b"").decode("utf-8")})

        token = self._tokens.get(ctx)

        nonce = generate_nonce()
        timestamp = str(int(time.time()))
        params = build_sign_params(
            method=method,
            nonce=nonce,
            request_url=url,
            timestamp=timestamp,
            data=data,
        )
        signature = sign_data(params, self._private_key, SIGN_TYPE)

        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": "Bearer " + token.access_token,
            "X-Nonce-Str": nonce,
            "X-Signature": f"{SIGN_TYPE} {signature}",
            "X-Timestamp": timestamp,
        }

        logging.debug("Sending %s %s", request.method.value, url)
        response = self._exchange(ctx, request.method.value, url, canonical, headers)
        try:
            status = response.status_code
            span.set_tag("http.status_code", status)

            # no body to decode
            if status == 204:
                return None

            content = response.content
        finally:
            response.close()

        if self.config.log_bodies:
            span.log_fields(**{"http.response.body": content.decode("utf-8", errors="replace")})

        if status == 502:
            raise GatewayError(method, url)

        if status < 200 or status >= 400:
            raise classify_error(url, canonical, content, status)

        return self._decode(url, content, decoder)

    def _exchange(
        self,
        ctx: CallContext,
        method: str,
        url: str,
        body: Optional[bytes],
        headers: Dict[str, str],
    ) -> requests.Response:
        timeout = self.config.timeout_seconds
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        try:
            return ctx.run(
                self.session.request,
                method,
                url,
                data=body,
                headers=headers,
                timeout=timeout,
                on_abandon=_close_response,
            )
        except requests.RequestException as exc:
            deadline_bound = (
                isinstance(exc, requests.Timeout)
                and remaining is not None
                and remaining <= self.config.timeout_seconds
            )
            if deadline_bound or ctx.expired():
                raise DeadlineExceeded(f"rm: deadline exceeded on {method} {url}", url=url) from exc
            raise TransportError(f"rm: {method} {url} failed: {exc}", url=url) from exc

    def _decode(self, url: str, content: bytes, decoder: Optional[Decoder]) -> Any:
        try:
            payload = json.loads(content)
        except ValueError as exc:
            raise DecodingError(
                f"rm: failed to parse JSON from {url}: {content!r}"
            ) from exc
        if decoder is None:
            return payload

        build = getattr(decoder, "from_response", decoder)
        try:
            return build(payload)
        except (TypeError, ValueError, KeyError, AttributeError) as exc:
            raise DecodingError(f"rm: unexpected response shape from {url}: {exc}") from exc
