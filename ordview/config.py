"""Shared configuration loader for ordview."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

from .chain import Chain


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".ordview.yaml"
DEFAULT_RPC_PORT = 8332
ORIGINAL_OWNER_KEYS = ("vout", "offset")
_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass
class RPCConfig:
    """Configuration container for Bitcoin RPC connection details."""

    user: str
    password: str
    host: str = "127.0.0.1"
    port: int = DEFAULT_RPC_PORT
    use_https: bool = False
    timeout: float = 30.0

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.host}:{self.port}"


@dataclass
class ViewConfig:
    """Settings that shape how inscription views are assembled."""

    chain: Chain = Chain.MAINNET
    index_path: Path | None = None
    original_owner_key: str = "vout"


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _resolve_config_path(config_path: str | Path | None) -> tuple[Path, bool]:
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )
    return path, explicit_path


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
        raise ConfigurationError(f"Expected {path} to contain a YAML object with 'rpc'/'view' sections")
    return loaded


def _section(file_config: dict[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = file_config.get(name, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected '{name}' to be a mapping in {path}")
    return section


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


def _env(env_map: Mapping[str, str], suffix: str) -> str | None:
    return env_map.get(f"BTC_RPC_{suffix}") or env_map.get(f"ORDVIEW_RPC_{suffix}")


def _parse_endpoint(raw: str | None) -> tuple[str | None, int | None, bool | None]:
    if not raw:
        return None, None, None
    parsed = urlparse(raw)
    if not parsed.scheme and not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL: {raw}")
    host = parsed.hostname or None
    port = parsed.port
    use_https = parsed.scheme.lower() == "https" if parsed.scheme else None
    return host, port, use_https


def load_rpc_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RPCConfig:
    """Load RPC configuration from environment variables and optional YAML."""

    env_map = os.environ if env is None else env
    path, explicit_path = _resolve_config_path(config_path)
    file_config = _load_config_file(path, required=explicit_path)
    rpc_section = _section(file_config, "rpc", path)
    override_map = dict(overrides or {})

    env_port = _coerce_port(_env(env_map, "PORT"), source="environment")
    env_endpoint = _env(env_map, "ENDPOINT") or _env(env_map, "URL")
    endpoint_host, endpoint_port, endpoint_use_https = _parse_endpoint(
        _first_value(override_map.get("endpoint"), env_endpoint, rpc_section.get("endpoint"))
    )

    resolved_user = _first_value(override_map.get("user"), _env(env_map, "USER"), rpc_section.get("user"))
    resolved_password = _first_value(
        override_map.get("password"), _env(env_map, "PASSWORD"), rpc_section.get("password")
    )
    if not resolved_user or not resolved_password:
        raise ConfigurationError(
            "RPC credentials must be provided via BTC_RPC_* environment variables or a config file"
        )

    resolved_host = _first_value(
        override_map.get("host"), endpoint_host, _env(env_map, "HOST"), rpc_section.get("host"), "127.0.0.1"
    )
    resolved_port = _first_value(
        _coerce_port(override_map.get("port"), source="overrides"),
        endpoint_port,
        env_port,
        _coerce_port(rpc_section.get("port"), source=f"{path} rpc.port"),
        DEFAULT_RPC_PORT,
    )
    resolved_use_https = _first_value(
        _coerce_bool(override_map.get("use_https")),
        endpoint_use_https,
        _coerce_bool(_env(env_map, "USE_HTTPS")),
        _coerce_bool(rpc_section.get("use_https")),
        False,
    )
    raw_timeout = _first_value(override_map.get("timeout"), _env(env_map, "TIMEOUT"), rpc_section.get("timeout"), 30)
    try:
        resolved_timeout = float(raw_timeout)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid RPC timeout: {raw_timeout}") from exc

    return RPCConfig(
        user=resolved_user,
        password=resolved_password,
        host=resolved_host,
        port=resolved_port,
        use_https=bool(resolved_use_https),
        timeout=resolved_timeout,
    )


def load_view_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ViewConfig:
    """Load view settings (chain, index location, original-owner join key)."""

    env_map = os.environ if env is None else env
    path, explicit_path = _resolve_config_path(config_path)
    file_config = _load_config_file(path, required=explicit_path)
    view_section = _section(file_config, "view", path)
    override_map = dict(overrides or {})

    raw_chain = _first_value(override_map.get("chain"), env_map.get("ORDVIEW_CHAIN"), view_section.get("chain"), "mainnet")
    try:
        chain = raw_chain if isinstance(raw_chain, Chain) else Chain.parse(str(raw_chain))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    raw_index_path = _first_value(
        override_map.get("index_path"), env_map.get("ORDVIEW_INDEX_PATH"), view_section.get("index_path")
    )
    index_path = Path(raw_index_path).expanduser() if raw_index_path else None

    owner_key = str(
        _first_value(
            override_map.get("original_owner_key"),
            env_map.get("ORDVIEW_ORIGINAL_OWNER_KEY"),
            view_section.get("original_owner_key"),
            "vout",
        )
    ).lower()
    if owner_key not in ORIGINAL_OWNER_KEYS:
        raise ConfigurationError(
            f"original_owner_key must be one of {', '.join(ORIGINAL_OWNER_KEYS)}; got {owner_key}"
        )

    return ViewConfig(chain=chain, index_path=index_path, original_owner_key=owner_key)
