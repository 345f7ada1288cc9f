"""
Minimal tracer abstraction the pipeline reports into.

Integrators adapt their tracing system by implementing :class:`Tracer` and
:class:`Span`. :class:`NoopTracer` is used when nothing is configured and
:class:`LoggingTracer` writes spans through :mod:`logging`.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

__all__ = [
    "COMPONENT",
    "LoggingSpan",
    "LoggingTracer",
    "NoopSpan",
    "NoopTracer",
    "Span",
    "Tracer",
]

COMPONENT = "rm-python-client"


class Span:
    """Interface of a single traced operation."""

    operation_name: str = ""

    def set_tag(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def log_fields(self, **fields: Any) -> None:
        raise NotImplementedError

    def log_error(self, error: BaseException) -> None:
        self.set_tag("error", True)
        self.log_fields(event="error", **{"error.kind": type(error).__name__, "message": str(error)})

    def finish(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "Span":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_val is not None:
            self.log_error(exc_val)
        self.finish()


class Tracer:
    def start_span(self, operation_name: str, child_of: Optional[Span] = None) -> Span:
        raise NotImplementedError


class NoopSpan(Span):
    def __init__(self, operation_name: str = "") -> None:
        self.operation_name = operation_name

    def set_tag(self, key: str, value: Any) -> None:
        pass

    def log_fields(self, **fields: Any) -> None:
        pass

    def log_error(self, error: BaseException) -> None:
        pass

    def finish(self) -> None:
        pass


class NoopTracer(Tracer):
    def start_span(self, operation_name: str, child_of: Optional[Span] = None) -> Span:
        return NoopSpan(operation_name)


class LoggingSpan(Span):
    def __init__(
        self,
        operation_name: str,
        logger: logging.Logger,
        parent: Optional[Span] = None,
    ) -> None:
        self.operation_name = operation_name
        self.parent = parent
        self.tags: Dict[str, Any] = {}
        self._logger = logger
        self._started = time.monotonic()
        self._finished = False

    def set_tag(self, key: str, value: Any) -> None:
        self.tags[key] = value

    def log_fields(self, **fields: Any) -> None:
        self._logger.debug("span %s fields %s", self.operation_name, fields)

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        elapsed_ms = (time.monotonic() - self._started) * 1000
        level = logging.WARNING if self.tags.get("error") else logging.INFO
        self._logger.log(
            level,
            "span %s finished in %.1fms tags=%s",
            self.operation_name,
            elapsed_ms,
            self.tags,
        )


class LoggingTracer(Tracer):
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("rm_gateway.trace")

    def start_span(self, operation_name: str, child_of: Optional[Span] = None) -> Span:
        if child_of is not None:
            self._logger.debug(
                "span %s started (child of %s)", operation_name, child_of.operation_name
            )
        else:
            self._logger.debug("span %s started", operation_name)
        return LoggingSpan(operation_name, self._logger, parent=child_of)
