"""
Minimal script that uses the public API to fetch the merchant profile.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, Tuple

from rm_gateway import (
    ApiResponse,
    CallContext,
    ConfigError,
    GatewayClientError,
    LoggingTracer,
    create_client,
    load_gateway_config,
)


def _override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _build_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    return {key: value for key, value in pairs}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch the merchant profile using the SDK API")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing RM_* settings",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--sandbox",
        action="store_true",
        help="Talk to the sandbox hosts",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=15.0,
        help="Seconds before the call is abandoned (default: 15)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = load_gateway_config(
            env_file=args.env_file,
            overrides=_build_overrides(args.set or ()),
            sandbox=args.sandbox or None,
        )
        client = create_client(config=config, tracer=LoggingTracer())
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    tracer = client.tracer
    with tracer.start_span("fetch-merchant-script") as root:
        ctx = CallContext(timeout=args.timeout, parent_span=root)
        try:
            response = client.get(
                ctx,
                "merchant",
                decoder=ApiResponse,
                operation_name="get-merchant",
            )
        except GatewayClientError as exc:
            logging.error("Merchant lookup failed: %s", exc)
            return 1

    if not response.success:
        logging.error("Gateway returned %s: %s", response.code, response.raw)
        return 1

    item = response.item or {}
    logging.info("Merchant %s (%s)", item.get("companyName"), item.get("id"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
