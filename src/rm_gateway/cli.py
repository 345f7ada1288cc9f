"""
Command-line interface for sending a single signed gateway request.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Iterable, Sequence, Tuple

import requests

from .api import create_client
from .core.config import ConfigError, load_gateway_config
from .core.context import CallContext
from .core.errors import ApiError, GatewayClientError
from .core.tracing import LoggingTracer


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _json_body(value: str) -> object:
    try:
        return json.loads(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"--data must be valid JSON: {exc}") from exc


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rm-gateway",
        description="Send one signed request to the Revenue Monster open API",
    )
    parser.add_argument("method", help="HTTP method, e.g. GET or POST")
    parser.add_argument(
        "path",
        help="API path relative to /v3 (e.g. merchant) or an absolute URL",
    )
    parser.add_argument(
        "--data",
        type=_json_body,
        default=None,
        help="JSON request body",
    )
    parser.add_argument(
        "--operation",
        default=None,
        help="Operation name recorded on the trace span",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing RM_* settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--sandbox",
        action="store_true",
        default=None,
        help="Use the sandbox hosts instead of production",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort the call after this many seconds",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    try:
        config = load_gateway_config(
            env_file=args.env_file,
            overrides=overrides,
            sandbox=args.sandbox,
        )
        client = create_client(
            config=config,
            session=requests.Session(),
            tracer=LoggingTracer(),
        )
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    url = args.path if "://" in args.path else client.url(args.path)
    ctx = CallContext(timeout=args.timeout)

    try:
        result = client.execute(ctx, args.operation, args.method, url, args.data)
    except ApiError as exc:
        logging.error("Gateway rejected request (%s): %s", exc.kind.value, exc)
        return 1
    except (GatewayClientError, ValueError) as exc:
        logging.error("Request failed: %s", exc)
        return 1

    if result is not None:
        json.dump(result, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
    return 0
