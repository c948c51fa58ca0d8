"""Probe configuration.

Values are resolved with the precedence CLI flag > environment > YAML config
file > default. Environment variables:

- RPC_URL / ETH_RPC_URL
- ADDRESS
- PROBE_TIMEOUT_SECONDS

The optional YAML file may set ``rpc_url``, ``address``, ``timeout_seconds``
and a ``rules`` mapping of rule id to ``weight``/``threshold`` overrides.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

import yaml

from chain_client import DEFAULT_TIMEOUT_SECONDS
from error_map import ConfigError

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

RPC_URL_ENV_KEYS = ["RPC_URL", "ETH_RPC_URL"]
ADDRESS_ENV_KEYS = ["ADDRESS"]
TIMEOUT_ENV_KEYS = ["PROBE_TIMEOUT_SECONDS"]

USAGE = "usage: RPC_URL=<rpc> ADDRESS=<0x..> wallet-probe  (or --rpc-url/--address/--config)"


@dataclass
class ProbeConfig:
    rpc_url: str
    address: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    rule_overrides: dict[str, Any] = field(default_factory=dict)


def _get_env_any(env: Mapping[str, str], keys: list[str]) -> Optional[str]:
    for k in keys:
        v = env.get(k)
        if v is not None and v.strip():
            return v.strip()
    return None


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def load_config_file(path: str | Path) -> dict[str, Any]:
    file = Path(path)
    try:
        text = file.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigError(f"cannot read config file {file}: {err.strerror or err}") from err
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise ConfigError(f"config file {file} is not valid YAML: {err}") from err
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"config file {file} must contain a mapping")
    return payload


def _parse_timeout(raw: Any) -> float:
    if isinstance(raw, bool):
        raise ConfigError("timeout_seconds must be a positive number")
    try:
        value = float(raw)
    except (TypeError, ValueError) as err:
        raise ConfigError("timeout_seconds must be a positive number") from err
    if not math.isfinite(value) or not value > 0:
        raise ConfigError("timeout_seconds must be a finite positive number")
    return value


def validate_rpc_url(rpc_url: str) -> str:
    parsed = urlparse(rpc_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"rpc url must be an http(s) url: {rpc_url!r}")
    return rpc_url


def validate_address(address: str) -> str:
    if not ADDRESS_RE.fullmatch(address):
        raise ConfigError(f"address must be a 20-byte 0x-prefixed hex address: {address!r}")
    return address


def resolve_config(
    *,
    rpc_url: str | None = None,
    address: str | None = None,
    timeout_seconds: float | None = None,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ProbeConfig:
    env = os.environ if env is None else env
    file_values = load_config_file(config_path) if config_path else {}
    for key in ("rpc_url", "address"):
        if file_values.get(key) is not None and not isinstance(file_values[key], str):
            # YAML reads an unquoted 0x... address as an int.
            raise ConfigError(f"config file {key} must be a string; quote the value, e.g. {key}: '0x...'")

    resolved_url = _first(rpc_url, _get_env_any(env, RPC_URL_ENV_KEYS), file_values.get("rpc_url"))
    resolved_address = _first(address, _get_env_any(env, ADDRESS_ENV_KEYS), file_values.get("address"))
    if not resolved_url or not resolved_address:
        missing = [name for name, value in (("rpc url", resolved_url), ("address", resolved_address)) if not value]
        raise ConfigError(f"missing required configuration: {', '.join(missing)}")

    timeout_raw = _first(timeout_seconds, _get_env_any(env, TIMEOUT_ENV_KEYS), file_values.get("timeout_seconds"))
    rules = file_values.get("rules") or {}
    if not isinstance(rules, dict):
        raise ConfigError("rules must be a mapping of rule id to overrides")

    return ProbeConfig(
        rpc_url=validate_rpc_url(str(resolved_url).strip()),
        address=validate_address(str(resolved_address).strip()),
        timeout_seconds=DEFAULT_TIMEOUT_SECONDS if timeout_raw is None else _parse_timeout(timeout_raw),
        rule_overrides=rules,
    )
