"""Error codes and exception types shared by the probe modules."""

from __future__ import annotations

ERR_RPC_TRANSPORT = "RPC_TRANSPORT"
ERR_RPC_TIMEOUT = "RPC_TIMEOUT"
ERR_RPC_REMOTE = "RPC_REMOTE"
ERR_RPC_DECODE = "RPC_DECODE"
ERR_CONFIG_INVALID = "CONFIG_INVALID"
ERR_INTERNAL = "INTERNAL"


class ProbeError(Exception):
    error_code = ERR_INTERNAL

    def __init__(self, message: str, *, error_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class TransportError(ProbeError):
    """The endpoint could not be reached or answered with a non-2xx status."""

    error_code = ERR_RPC_TRANSPORT


class ProtocolError(ProbeError):
    """The endpoint answered with a JSON-RPC error envelope."""

    error_code = ERR_RPC_REMOTE

    def __init__(self, code: int | None, message: str) -> None:
        super().__init__(f"rpc error {code}: {message}")
        self.rpc_code = code
        self.rpc_message = message


class DecodeError(ProbeError):
    error_code = ERR_RPC_DECODE


class ConfigError(ProbeError):
    error_code = ERR_CONFIG_INVALID
