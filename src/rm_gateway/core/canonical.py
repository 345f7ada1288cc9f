"""
Deterministic request-body encoding used both as the HTTP body and as the
``data`` component of the signature input.
"""

from __future__ import annotations

import dataclasses
import json
import math
from decimal import Decimal
from typing import Any, Mapping, Optional

from .errors import EncodingError

__all__ = ["canonicalize", "is_empty_body"]

_EMPTY_SENTINELS = ("", "null", "{}")


def is_empty_body(body: Any) -> bool:
    """Return ``True`` when ``body`` must not produce a ``data`` parameter."""
    if body is None:
        return True
    if isinstance(body, (bytes, bytearray)):
        body = bytes(body).decode("utf-8", errors="replace")
    if isinstance(body, str):
        return body.strip() in _EMPTY_SENTINELS
    if isinstance(body, Mapping):
        return len(body) == 0
    return False


# characters the gateway's reference encoder writes as \uXXXX escapes
_STRING_ESCAPES = (
    ("&", "\\u0026"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _encode_string(value: str) -> str:
    text = json.dumps(value, ensure_ascii=False)
    for raw, escaped in _STRING_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def _encode_number(value: float, path: str) -> str:
    """
    Write a number the way a float64 JSON encoder does.

    Integral values below 1e21 have no fractional part, other values in
    ``[1e-6, 1e21)`` use plain decimal notation, and the rest use the
    shortest exponent form (``1e+21``, ``1e-7``).
    """
    if not math.isfinite(value):
        raise EncodingError(f"{path}: non-finite number cannot be encoded")
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    magnitude = abs(value)
    if magnitude < 1e21 and value.is_integer():
        return str(int(value))

    digits = Decimal(repr(value)).normalize()
    if 1e-6 <= magnitude < 1e21:
        return format(digits, "f")

    sign, numerals, exponent = digits.as_tuple()
    head = str(numerals[0])
    tail = "".join(str(d) for d in numerals[1:])
    mantissa = head + ("." + tail if tail else "")
    power = len(numerals) - 1 + exponent
    suffix = f"e+{power:02d}" if power >= 0 else f"e-{-power}"
    return ("-" if sign else "") + mantissa + suffix


def _encode(value: Any, path: str) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, (int, float)):
        # numbers are carried as float64 end to end
        try:
            number = float(value)
        except OverflowError as exc:
            raise EncodingError(f"{path}: number {value} is out of range") from exc
        return _encode_number(number, path)
    if isinstance(value, Mapping):
        members = []
        for key in sorted(value, key=str):
            if not isinstance(key, str):
                raise EncodingError(f"{path}: object keys must be strings, got {key!r}")
            members.append(_encode_string(key) + ":" + _encode(value[key], f"{path}.{key}"))
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(item, f"{path}[{idx}]") for idx, item in enumerate(value)) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _encode(dataclasses.asdict(value), path)
    raise EncodingError(f"{path}: unsupported value of type {type(value).__name__}")


def _to_structure(body: Any) -> Any:
    if isinstance(body, (bytes, bytearray, str)):
        try:
            return json.loads(body)
        except ValueError as exc:
            raise EncodingError(f"request body is not valid JSON: {exc}") from exc
    if dataclasses.is_dataclass(body) and not isinstance(body, type):
        return dataclasses.asdict(body)
    return body


def canonicalize(body: Any) -> Optional[bytes]:
    """
    Encode ``body`` as compact JSON with keys sorted at every level.

    Non-ASCII text is written as UTF-8, while ``&``, ``<``, ``>``, U+2028 and
    U+2029 are escaped as ``\\uXXXX``. Returns ``None`` for an absent or empty
    body (``None``, ``{}``, ``"null"`` and ``"{}"``), meaning the request
    carries no ``data`` parameter. Structurally equal bodies always produce
    identical bytes.
    """
    if is_empty_body(body):
        return None

    structure = _to_structure(body)
    if not isinstance(structure, Mapping):
        raise EncodingError(
            f"request body must be a JSON object, got {type(structure).__name__}"
        )
    if not structure:
        return None

    return _encode(structure, "$").encode("utf-8")
