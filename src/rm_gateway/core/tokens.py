"""
Access-token providers and the lock-guarded cell the client reads them from.
"""

from __future__ import annotations

import abc
import base64
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from .context import CallContext, background
from .errors import AuthError, GatewayClientError

__all__ = [
    "EXPIRY_LEEWAY_SECONDS",
    "OAuthTokenProvider",
    "StaticTokenProvider",
    "Token",
    "TokenProvider",
    "TokenSourceCell",
]

# seconds before expiry at which a token counts as stale
EXPIRY_LEEWAY_SECONDS = 10


@dataclass(frozen=True)
class Token:
    access_token: str
    token_type: str = "Bearer"
    expires_at: Optional[float] = None
    refresh_token: Optional[str] = None

    def valid(self, now: Optional[float] = None) -> bool:
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        now = time.time() if now is None else now
        return now < self.expires_at - EXPIRY_LEEWAY_SECONDS

    @classmethod
    def from_response(
        cls, payload: Dict[str, Any], *, now: Optional[float] = None
    ) -> "Token":
        access_token = payload.get("accessToken")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("token response is missing accessToken")
        now = time.time() if now is None else now
        expires_in = payload.get("expiresIn")
        expires_at = now + float(expires_in) if expires_in else None
        return cls(
            access_token=access_token,
            token_type=payload.get("tokenType") or "Bearer",
            expires_at=expires_at,
            refresh_token=payload.get("refreshToken"),
        )


class TokenProvider(abc.ABC):
    """Anything able to hand out a currently usable bearer token."""

    @abc.abstractmethod
    def token(self, ctx: Optional[CallContext] = None) -> Token:
        ...


class StaticTokenProvider(TokenProvider):
    """Wraps a token obtained elsewhere, e.g. from a shared token service."""

    def __init__(self, token: Token | str) -> None:
        self._token = Token(access_token=token) if isinstance(token, str) else token

    def token(self, ctx: Optional[CallContext] = None) -> Token:
        if not self._token.valid():
            raise AuthError("rm: static access token has expired")
        return self._token


class OAuthTokenProvider(TokenProvider):
    """
    OAuth2 client-credentials exchange with a cached result.

    Refreshes are single-flight: concurrent callers that find the cached token
    stale queue on one lock and the first of them performs the exchange.
    """

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        oauth_endpoint: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client_id = client_id
        self.token_url = f"{oauth_endpoint.rstrip('/')}/v1/token"
        self.session = session or requests.Session()
        self.timeout = timeout
        self._clock = clock
        self._secret = client_secret
        self._lock = threading.Lock()
        self._token: Optional[Token] = None

    def _basic_auth(self) -> str:
        raw = f"{self.client_id}:{self._secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def _exchange(self, ctx: CallContext) -> Token:
        timeout = self.timeout
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)

        logging.info("Requesting access token from %s", self.token_url)
        try:
            response = ctx.run(
                self.session.post,
                self.token_url,
                data=json.dumps({"grantType": "client_credentials"}),
                headers={
                    "Authorization": self._basic_auth(),
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=timeout,
                on_abandon=self._adopt_late_response,
            )
        except GatewayClientError:
            raise
        except requests.RequestException as exc:
            raise AuthError(f"rm: token request to {self.token_url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise AuthError(
                f"rm: token endpoint responded with {response.status_code}: {response.text}"
            )
        try:
            return Token.from_response(response.json(), now=self._clock())
        except (ValueError, TypeError, AttributeError) as exc:
            raise AuthError(
                f"rm: failed to parse token response from {self.token_url}: {response.text}"
            ) from exc

    def _adopt_late_response(self, response: requests.Response) -> None:
        """Cache a token that arrived after its caller stopped waiting."""
        try:
            if response.status_code >= 400:
                return
            fresh = Token.from_response(response.json(), now=self._clock())
        except (ValueError, TypeError, AttributeError) as exc:
            logging.debug("Ignoring unusable late token response: %s", exc)
            return
        finally:
            response.close()

        with self._lock:
            current = self._token
            if current is None or not current.valid(self._clock()):
                self._token = fresh
        logging.debug("Cached access token that arrived after cancellation")

    def token(self, ctx: Optional[CallContext] = None) -> Token:
        ctx = ctx or background()
        ctx.acquire(self._lock)
        try:
            current = self._token
            if current is not None and current.valid(self._clock()):
                return current
            fresh = self._exchange(ctx)
            self._token = fresh
            return fresh
        finally:
            self._lock.release()

    def invalidate(self) -> None:
        """Drop the cached token so the next call re-exchanges."""
        with self._lock:
            self._token = None


class TokenSourceCell:
    """
    Holds the client's current :class:`TokenProvider`.

    Fetching a token and swapping the provider share one lock, so a swap waits
    for any in-flight fetch on the old provider and callers never see a
    half-replaced source.
    """

    def __init__(self, provider: TokenProvider) -> None:
        self._provider = provider
        self._lock = threading.Lock()

    def get(self, ctx: Optional[CallContext] = None) -> Token:
        ctx = ctx or background()
        ctx.acquire(self._lock)
        try:
            token = self._provider.token(ctx)
        except GatewayClientError:
            raise
        except Exception as exc:
            raise AuthError(f"rm: token provider failed: {exc}") from exc
        finally:
            self._lock.release()
        if token is None or not token.access_token:
            raise AuthError("rm: token provider returned an empty access token")
        return token

    def set(self, provider: TokenProvider) -> None:
        with self._lock:
            self._provider = provider
