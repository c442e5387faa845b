"""Shared configuration loader for ortty."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".ortty.yaml"
DEFAULT_RPC_HOST = "127.0.0.1"
DEFAULT_RPC_PORT = 8332


@dataclass
class RPCConfig:
    """Connection details for a Bitcoin Core JSON-RPC endpoint."""

    host: str = DEFAULT_RPC_HOST
    port: int = DEFAULT_RPC_PORT
    user: str | None = None
    password: str | None = None
    cookie_file: Path | None = None
    use_https: bool = False

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.host}:{self.port}"

    def auth(self) -> tuple[str, str]:
        """Return ``(user, password)``, reading the cookie file when configured."""

        if self.cookie_file is not None:
            try:
                content = Path(self.cookie_file).expanduser().read_text().strip()
            except OSError as exc:
                raise ConfigurationError(f"Could not read RPC cookie file {self.cookie_file}: {exc}") from exc
            user, sep, password = content.partition(":")
            if not sep:
                raise ConfigurationError(f"RPC cookie file {self.cookie_file} is not in user:password form")
            return user, password
        if self.user is None or self.password is None:
            raise ConfigurationError("RPC credentials are not configured")
        return self.user, self.password


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with an 'rpc' section")
    return loaded


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "no", "n", "off"}:
            return False
    return None


def _coerce_port(raw: Any, *, source: str) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid port in {source}: {raw}") from exc


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _parse_endpoint(raw: str | None) -> tuple[str | None, int | None, bool | None]:
    if not raw:
        return None, None, None
    parsed = urlparse(raw)
    if not parsed.scheme or not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL: {raw}")
    use_https = parsed.scheme.lower() == "https"
    return parsed.hostname, parsed.port, use_https


def _split_host(raw: str | None) -> tuple[str | None, str | None]:
    """Separate a full URL given as a host into ``(host, endpoint)``."""

    if raw and "://" in raw:
        return None, raw
    return raw, None


def load_rpc_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RPCConfig:
    """Load RPC configuration from overrides, environment and optional YAML.

    Precedence is overrides, then ``BITCOIN_*`` environment variables, then
    the ``rpc`` section of the YAML config file, then defaults.
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None
    path = Path(config_path).expanduser() if config_path is not None else DEFAULT_CONFIG_PATH

    file_config = _load_config_file(path, required=explicit_path)
    rpc_section = file_config.get("rpc") or {}
    if not isinstance(rpc_section, dict):
        raise ConfigurationError(f"Expected 'rpc' to be a mapping in {path}")

    override_map = {key: value for key, value in (overrides or {}).items() if value is not None}

    env_host, env_host_endpoint = _split_host(env_map.get("BITCOIN_HOST"))
    env_endpoint = env_map.get("BITCOIN_RPC_URL") or env_host_endpoint
    env_port = _coerce_port(env_map.get("BITCOIN_PORT"), source="environment")
    env_use_https = _coerce_bool(env_map.get("BITCOIN_USE_HTTPS"))

    override_host, override_host_endpoint = _split_host(override_map.get("host"))
    override_ep_host, override_ep_port, override_ep_https = _parse_endpoint(
        _first_value(override_map.get("endpoint"), override_host_endpoint)
    )
    env_ep_host, env_ep_port, env_ep_https = _parse_endpoint(env_endpoint)
    file_ep_host, file_ep_port, file_ep_https = _parse_endpoint(rpc_section.get("endpoint"))

    # Each source is exhausted before the next one is consulted.
    resolved_host = _first_value(
        override_host,
        override_ep_host,
        env_ep_host,
        env_host,
        file_ep_host,
        rpc_section.get("host"),
        DEFAULT_RPC_HOST,
    )
    resolved_port = _first_value(
        _coerce_port(override_map.get("port"), source="overrides"),
        override_ep_port,
        env_ep_port,
        env_port,
        file_ep_port,
        _coerce_port(rpc_section.get("port"), source=f"{path} rpc.port"),
        DEFAULT_RPC_PORT,
    )
    resolved_use_https = _first_value(
        _coerce_bool(override_map.get("use_https")),
        override_ep_https,
        env_ep_https,
        env_use_https,
        file_ep_https,
        _coerce_bool(rpc_section.get("use_https")),
        False,
    )

    resolved_cookie = _first_value(
        override_map.get("cookie"), env_map.get("BITCOIN_COOKIE"), rpc_section.get("cookie")
    )
    resolved_user = _first_value(override_map.get("user"), env_map.get("BITCOIN_USER"), rpc_section.get("user"))
    resolved_password = _first_value(
        override_map.get("password"), env_map.get("BITCOIN_PASS"), rpc_section.get("password")
    )

    if not resolved_cookie and not (resolved_user and resolved_password):
        raise ConfigurationError(
            "RPC credentials must be provided via BITCOIN_COOKIE or BITCOIN_USER/BITCOIN_PASS "
            f"environment variables, or the rpc section of {path}"
        )

    return RPCConfig(
        host=resolved_host,
        port=resolved_port,
        user=resolved_user,
        password=resolved_password,
        cookie_file=Path(resolved_cookie).expanduser() if resolved_cookie else None,
        use_https=bool(resolved_use_https),
    )
