"""
Immutable description of a single gateway call.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional

__all__ = ["HttpMethod", "Request"]


class HttpMethod(str, enum.Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: "HttpMethod | str") -> "HttpMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise ValueError(f"unsupported HTTP method '{value}'") from exc


@dataclass(frozen=True)
class Request:
    method: HttpMethod
    url: str
    body: Optional[Any] = None
    operation_name: str = ""

    @classmethod
    def build(
        cls,
        method: HttpMethod | str,
        url: str,
        body: Optional[Any] = None,
        *,
        operation_name: Optional[str] = None,
    ) -> "Request":
        parsed = HttpMethod.parse(method)
        return cls(
            method=parsed,
            url=url,
            body=body,
            operation_name=operation_name or f"{parsed.value} {url}",
        )
