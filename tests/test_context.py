"""CallContext helpers and the logging tracer."""

import logging
import threading

import pytest

from rm_gateway.core.context import CallContext, background
from rm_gateway.core.errors import DeadlineExceeded, RequestCancelled
from rm_gateway.core.tracing import LoggingTracer, NoopTracer


def test_background_context_runs_to_completion() -> None:
    ctx = background()
    assert ctx.remaining() is None
    assert ctx.run(lambda a, b: a + b, 2, 3) == 5


def test_errors_from_the_worker_are_reraised() -> None:
    def boom():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        background().run(boom)


def test_late_results_are_handed_to_on_abandon() -> None:
    release = threading.Event()
    abandoned = []
    finished = threading.Event()

    def slow():
        release.wait(5)
        return "late"

    def on_abandon(value):
        abandoned.append(value)
        finished.set()

    ctx = CallContext(timeout=0.1)
    with pytest.raises(DeadlineExceeded):
        ctx.run(slow, on_abandon=on_abandon)
    release.set()
    assert finished.wait(5)
    assert abandoned == ["late"]


def test_acquire_gives_up_when_cancelled() -> None:
    lock = threading.Lock()
    lock.acquire()
    ctx = CallContext()
    threading.Timer(0.1, ctx.cancel).start()
    try:
        with pytest.raises(RequestCancelled):
            ctx.acquire(lock)
    finally:
        lock.release()


def test_child_inherits_the_tighter_deadline() -> None:
    parent = CallContext(timeout=1)
    child = parent.with_timeout(60)
    assert child.deadline == parent.deadline
    span = NoopTracer().start_span("op")
    assert parent.with_span(span).parent_span is span


def test_logging_tracer_reports_spans(caplog) -> None:
    tracer = LoggingTracer()
    with caplog.at_level(logging.DEBUG, logger="rm_gateway.trace"):
        parent = tracer.start_span("checkout")
        with pytest.raises(ValueError):
            with tracer.start_span("create-order", child_of=parent) as span:
                span.set_tag("http.status_code", 400)
                raise ValueError("rejected")
        parent.finish()

    messages = [record.getMessage() for record in caplog.records]
    assert any("create-order started (child of checkout)" in msg for msg in messages)
    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "create-order" in warnings[0].getMessage()
