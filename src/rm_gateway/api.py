"""
Public, high-level helpers for building a gateway client.
"""

from __future__ import annotations

from typing import Mapping, Optional

import requests

from .core.client import Client
from .core.config import GatewayConfig, GatewayParameters, load_gateway_config
from .core.tokens import TokenProvider
from .core.tracing import Tracer

__all__ = ["create_client"]


def create_client(
    *,
    config: Optional[GatewayConfig] = None,
    session: Optional[requests.Session] = None,
    token_provider: Optional[TokenProvider] = None,
    tracer: Optional[Tracer] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[GatewayParameters] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    private_key: Optional[str | bytes] = None,
    private_key_file: Optional[str] = None,
    public_key: Optional[str | bytes] = None,
    public_key_file: Optional[str] = None,
    store_id: Optional[str] = None,
    sandbox: Optional[bool | str] = None,
    timeout_seconds: Optional[float | str] = None,
    log_bodies: Optional[bool | str] = None,
) -> Client:
    """
    Construct a :class:`Client`.

    Callers either supply a ready-made :class:`GatewayConfig` or let the helper
    assemble one from environment data and keyword arguments.
    """
    if config is not None:
        extras = (
            overrides,
            base,
            parameters,
            client_id,
            client_secret,
            private_key,
            private_key_file,
            public_key,
            public_key_file,
            store_id,
            sandbox,
            timeout_seconds,
            log_bodies,
        )
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built GatewayConfig or individual parameters, not both."
            )
        cfg = config
    else:
        cfg = load_gateway_config(
            env_file=env_file,
            overrides=overrides,
            base=base,
            parameters=parameters,
            client_id=client_id,
            client_secret=client_secret,
            private_key=private_key,
            private_key_file=private_key_file,
            public_key=public_key,
            public_key_file=public_key_file,
            store_id=store_id,
            sandbox=sandbox,
            timeout_seconds=timeout_seconds,
            log_bodies=log_bodies,
        )
    return Client(cfg, session=session, token_provider=token_provider, tracer=tracer)
