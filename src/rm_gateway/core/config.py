"""
Configuration objects for the gateway client.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .environment import build_environment

__all__ = [
    "ConfigError",
    "GatewayConfig",
    "GatewayParameters",
    "OAUTH_ENDPOINT",
    "OPEN_ENDPOINT",
    "SANDBOX_OAUTH_ENDPOINT",
    "SANDBOX_OPEN_ENDPOINT",
    "load_gateway_config",
]

OAUTH_ENDPOINT = "https://oauth.revenuemonster.my"
OPEN_ENDPOINT = "https://open.revenuemonster.my"
SANDBOX_OAUTH_ENDPOINT = "https://sb-oauth.revenuemonster.my"
SANDBOX_OPEN_ENDPOINT = "https://sb-open.revenuemonster.my"

_PARAMETER_TO_ENV_KEY = {
    "client_id": "RM_CLIENT_ID",
    "client_secret": "RM_CLIENT_SECRET",
    "private_key": "RM_PRIVATE_KEY",
    "private_key_file": "RM_PRIVATE_KEY_FILE",
    "public_key": "RM_PUBLIC_KEY",
    "public_key_file": "RM_PUBLIC_KEY_FILE",
    "store_id": "RM_STORE_ID",
    "sandbox": "RM_SANDBOX",
    "timeout_seconds": "RM_TIMEOUT_SECONDS",
    "log_bodies": "RM_LOG_BODIES",
}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


@dataclass(frozen=True)
class GatewayParameters:
    """
    Keyword bundle accepted by :func:`load_gateway_config`.

    Every field maps onto one ``RM_*`` variable and, when set, overrides it.
    """

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    private_key: Optional[str | bytes] = None
    private_key_file: Optional[str] = None
    public_key: Optional[str | bytes] = None
    public_key_file: Optional[str] = None
    store_id: Optional[str] = None
    sandbox: Optional[bool | str] = None
    timeout_seconds: Optional[float | str] = None
    log_bodies: Optional[bool | str] = None

    def as_overrides(self) -> Dict[str, str]:
        overrides: Dict[str, str] = {}
        for field_name, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = getattr(self, field_name)
            if value is None:
                continue
            overrides[env_key] = _stringify(value)
        return overrides


def _parse_flag(raw: Optional[str], field_name: str, default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{field_name} must be a boolean, got '{raw}'")


def _require(values: Mapping[str, str], key: str) -> str:
    value = (values.get(key) or "").strip()
    if not value:
        raise ConfigError(f"{key} must be provided")
    return value


def _read_pem(
    values: Mapping[str, str], inline_key: str, file_key: str
) -> Optional[bytes]:
    inline = values.get(inline_key)
    if inline and inline.strip():
        # single-line env values carry escaped newlines
        return inline.strip().replace("\\n", "\n").encode("utf-8")

    path = values.get(file_key)
    if path and path.strip():
        try:
            return Path(path.strip()).expanduser().read_bytes()
        except OSError as exc:
            raise ConfigError(f"{file_key} could not be read: {exc}") from exc
    return None


@dataclass(frozen=True)
class GatewayConfig:
    client_id: str
    client_secret: str
    private_key: bytes
    public_key: Optional[bytes] = None
    store_id: str = ""
    sandbox: bool = False
    timeout_seconds: float = 30.0
    log_bodies: bool = True

    def __repr__(self) -> str:
        return (
            f"GatewayConfig(client_id={self.client_id!r}, store_id={self.store_id!r}, "
            f"sandbox={self.sandbox!r}, timeout_seconds={self.timeout_seconds!r})"
        )

    @property
    def oauth_endpoint(self) -> str:
        return SANDBOX_OAUTH_ENDPOINT if self.sandbox else OAUTH_ENDPOINT

    @property
    def open_endpoint(self) -> str:
        return SANDBOX_OPEN_ENDPOINT if self.sandbox else OPEN_ENDPOINT

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "GatewayConfig":
        client_id = _require(values, "RM_CLIENT_ID")
        client_secret = _require(values, "RM_CLIENT_SECRET")

        private_key = _read_pem(values, "RM_PRIVATE_KEY", "RM_PRIVATE_KEY_FILE")
        if private_key is None:
            raise ConfigError("RM_PRIVATE_KEY or RM_PRIVATE_KEY_FILE must be provided")
        public_key = _read_pem(values, "RM_PUBLIC_KEY", "RM_PUBLIC_KEY_FILE")

        timeout_raw = values.get("RM_TIMEOUT_SECONDS", "30")
        try:
            timeout_seconds = float(timeout_raw)
        except ValueError as exc:
            raise ConfigError(
                f"RM_TIMEOUT_SECONDS must be a number, got '{timeout_raw}'"
            ) from exc
        if timeout_seconds <= 0:
            raise ConfigError("RM_TIMEOUT_SECONDS must be greater than zero")

        return cls(
            client_id=client_id,
            client_secret=client_secret,
            private_key=private_key,
            public_key=public_key,
            store_id=(values.get("RM_STORE_ID") or "").strip(),
            sandbox=_parse_flag(values.get("RM_SANDBOX"), "RM_SANDBOX", False),
            timeout_seconds=timeout_seconds,
            log_bodies=_parse_flag(values.get("RM_LOG_BODIES"), "RM_LOG_BODIES", True),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[GatewayParameters] = None,
        **explicit: Any,
    ) -> "GatewayConfig":
        merged_overrides = dict(overrides or {})
        if parameters is not None:
            merged_overrides.update(parameters.as_overrides())
        for key, value in explicit.items():
            if value is None:
                continue
            try:
                env_key = _PARAMETER_TO_ENV_KEY[key]
            except KeyError as exc:
                raise TypeError(f"Unknown gateway parameter '{key}'") from exc
            merged_overrides[env_key] = _stringify(value)

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_gateway_config(
    *,
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
) -> GatewayConfig:
    """
    Convenience wrapper that mirrors :meth:`GatewayConfig.from_env`.

    Values may come from the environment, a ``.env`` file, keyword arguments,
    or any combination; keyword arguments win.
    """
    return GatewayConfig.from_env(
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
