"""Cancellation and deadlines against a slow local HTTP server."""

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests

from conftest import RecordingTracer
from rm_gateway.core.client import Client
from rm_gateway.core.context import CallContext
from rm_gateway.core.errors import DeadlineExceeded, RequestCancelled
from rm_gateway.core.tokens import StaticTokenProvider


@pytest.fixture
def slow_server():
    release = threading.Event()

    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            length = int(self.headers.get("Content-Length") or 0)
            self.rfile.read(length)
            release.wait(10)
            body = b'{"status":"SUCCESS"}'
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/v3/orders", release
    finally:
        release.set()
        server.shutdown()
        server.server_close()


def _client(config, tracer):
    return Client(
        config,
        session=requests.Session(),
        token_provider=StaticTokenProvider("token"),
        tracer=tracer,
    )


def test_cancel_returns_promptly_and_closes_span(config, slow_server) -> None:
    url, _ = slow_server
    tracer = RecordingTracer()
    client = _client(config, tracer)
    ctx = CallContext()
    timer = threading.Timer(0.2, ctx.cancel)
    timer.start()

    started = time.monotonic()
    with pytest.raises(RequestCancelled):
        client.execute(ctx, "slow-order", "POST", url, {"amount": 1})
    elapsed = time.monotonic() - started
    timer.cancel()

    assert elapsed < 2.0
    (span,) = tracer.spans
    assert span.finished == 1
    assert span.tags["error"] is True


def test_deadline_exceeded(config, slow_server) -> None:
    url, _ = slow_server
    tracer = RecordingTracer()
    started = time.monotonic()
    with pytest.raises(DeadlineExceeded):
        _client(config, tracer).execute(CallContext(timeout=0.3), "slow-order", "POST", url, {"amount": 1})
    assert time.monotonic() - started < 2.0
    assert tracer.spans[0].finished == 1


def test_completes_when_server_answers_in_time(config, slow_server) -> None:
    url, release = slow_server
    release.set()
    result = _client(config, RecordingTracer()).execute(
        CallContext(timeout=5), "fast-order", "POST", url, {"amount": 1}
    )
    assert result == {"status": "SUCCESS"}


def test_cancelled_parent_cancels_derived_context(config, slow_server) -> None:
    url, _ = slow_server
    parent = CallContext()
    child = parent.with_timeout(30)
    threading.Timer(0.2, parent.cancel).start()
    with pytest.raises(RequestCancelled):
        _client(config, RecordingTracer()).execute(child, "slow-order", "POST", url, {"amount": 1})
    assert child.cancelled


def test_already_cancelled_context_never_sends(config) -> None:
    ctx = CallContext()
    ctx.cancel()

    class Exploding(requests.Session):
        def request(self, *args, **kwargs):
            raise AssertionError("no request expected")

    client = Client(config, session=Exploding(), token_provider=StaticTokenProvider("t"))
    with pytest.raises(RequestCancelled):
        client.execute(ctx, "op", "POST", "http://127.0.0.1:9/never", {"amount": 1})
