from __future__ import annotations

import io
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from rm_gateway.core.config import GatewayConfig
from rm_gateway.core.tracing import Span, Tracer

TOKEN_URL_SUFFIX = "/v1/token"


def make_response(status: int, body: bytes | str | dict = b"", url: str = "") -> requests.Response:
    if isinstance(body, dict):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    response = requests.Response()
    response.status_code = status
    response._content = body
    response._content_consumed = True
    response.raw = io.BytesIO(body)
    response.encoding = "utf-8"
    response.url = url
    response.headers["Content-Type"] = "application/json"
    return response


@dataclass
class RecordedCall:
    method: str
    url: str
    data: Optional[bytes]
    headers: Dict[str, str]
    timeout: Any


class FakeSession:
    """
    Stand-in for :class:`requests.Session`.

    Token requests are answered from ``token_payload``; every other request
    goes to ``handler``.
    """

    def __init__(
        self,
        handler: Optional[Callable[[RecordedCall], requests.Response]] = None,
        *,
        token_payload: Optional[dict] = None,
        token_status: int = 200,
        token_delay: float = 0.0,
    ) -> None:
        self.handler = handler or (lambda call: make_response(200, {"code": "SUCCESS"}))
        self.token_payload = token_payload or {
            "accessToken": "access-1",
            "tokenType": "Bearer",
            "expiresIn": 3600,
            "refreshToken": "refresh-1",
        }
        self.token_status = token_status
        self.token_delay = token_delay
        self.calls: List[RecordedCall] = []
        self.token_calls: List[RecordedCall] = []
        self._lock = threading.Lock()

    @property
    def api_calls(self) -> List[RecordedCall]:
        return [call for call in self.calls if not call.url.endswith(TOKEN_URL_SUFFIX)]

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    def request(
        self,
        method: str,
        url: str,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Any = None,
    ) -> requests.Response:
        if isinstance(data, str):
            data = data.encode("utf-8")
        call = RecordedCall(method, url, data, dict(headers or {}), timeout)
        with self._lock:
            self.calls.append(call)
        if url.endswith(TOKEN_URL_SUFFIX):
            with self._lock:
                self.token_calls.append(call)
            if self.token_delay:
                threading.Event().wait(self.token_delay)
            return make_response(self.token_status, self.token_payload, url)
        return self.handler(call)


class RecordingSpan(Span):
    def __init__(self, operation_name: str, parent: Optional[Span]) -> None:
        self.operation_name = operation_name
        self.parent = parent
        self.tags: Dict[str, Any] = {}
        self.fields: List[Dict[str, Any]] = []
        self.finished = 0

    def set_tag(self, key: str, value: Any) -> None:
        self.tags[key] = value

    def log_fields(self, **fields: Any) -> None:
        self.fields.append(fields)

    def finish(self) -> None:
        self.finished += 1

    def field(self, key: str) -> Any:
        for entry in self.fields:
            if key in entry:
                return entry[key]
        return None


@dataclass
class RecordingTracer(Tracer):
    spans: List[RecordingSpan] = field(default_factory=list)

    def start_span(self, operation_name: str, child_of: Optional[Span] = None) -> Span:
        span = RecordingSpan(operation_name, child_of)
        self.spans.append(span)
        return span


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_pem(rsa_key: rsa.RSAPrivateKey) -> bytes:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def public_pem(rsa_key: rsa.RSAPrivateKey) -> bytes:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def config(private_pem: bytes, public_pem: bytes) -> GatewayConfig:
    return GatewayConfig(
        client_id="client-123",
        client_secret="secret-456",
        private_key=private_pem,
        public_key=public_pem,
        store_id="store-1",
        sandbox=True,
        timeout_seconds=5.0,
    )


@pytest.fixture
def tracer() -> RecordingTracer:
    return RecordingTracer()
