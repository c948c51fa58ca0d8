"""Typed JSON-RPC reads used by the wallet probe.

Every method issues exactly one request and decodes the result into a native
value before returning it. Failures are raised as ``ProbeError`` subclasses:

* ``TransportError`` when the endpoint cannot be reached,
* ``ProtocolError`` when the endpoint answers with an ``error`` envelope,
* ``DecodeError`` when the body or its ``result`` has an unexpected shape.

There is no retry and no caching; the caller decides what a failure means.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Union

from error_map import ERR_RPC_DECODE, ERR_RPC_TIMEOUT, DecodeError, ProtocolError, TransportError
from quantity import decode_hex, decode_hex_bytes, encode_hex
from rpc_transport import invoke_rpc

logger = logging.getLogger(__name__)

LATEST = "latest"
DEFAULT_TIMEOUT_SECONDS = 20.0

BlockTag = Union[str, int]
Transport = Callable[..., dict[str, Any]]

# One decoder per method: block number, balance and tx count are quantities,
# code is a byte string.
RESULT_DECODERS: dict[str, Callable[[Any], Any]] = {
    "eth_blockNumber": decode_hex,
    "eth_getBalance": decode_hex,
    "eth_getTransactionCount": decode_hex,
    "eth_getCode": decode_hex_bytes,
}


def format_block_tag(tag: BlockTag) -> str:
    if isinstance(tag, str):
        if tag != LATEST:
            raise ValueError(f"unsupported block tag: {tag!r}")
        return tag
    return encode_hex(tag)


class ChainClient:
    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Transport = invoke_rpc,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._ids = itertools.count(1)

    def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": next(self._ids)}
        logger.debug("rpc request id=%s method=%s params=%s", payload["id"], method, params)
        outcome = self._transport(
            rpc_url=self.rpc_url,
            payload=payload,
            timeout_seconds=self.timeout_seconds,
        )
        if not outcome.get("ok"):
            code = outcome.get("error_code")
            message = f"{method}: {outcome.get('error_message')}"
            if code == ERR_RPC_DECODE:
                raise DecodeError(message)
            raise TransportError(message, error_code=ERR_RPC_TIMEOUT if code == ERR_RPC_TIMEOUT else None)

        rpc_response = outcome["rpc_response"]
        error = rpc_response.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise ProtocolError(error.get("code"), str(error.get("message", "")))
            raise ProtocolError(None, str(error))
        if "result" not in rpc_response:
            raise DecodeError(f"{method}: response has neither result nor error")

        try:
            return RESULT_DECODERS[method](rpc_response["result"])
        except DecodeError as err:
            raise DecodeError(f"{method}: {err.message}") from err

    def get_block_number(self) -> int:
        return self._call("eth_blockNumber", [])

    def get_balance(self, address: str, tag: BlockTag = LATEST) -> int:
        return self._call("eth_getBalance", [address, format_block_tag(tag)])

    def get_transaction_count(self, address: str, tag: BlockTag = LATEST) -> int:
        return self._call("eth_getTransactionCount", [address, format_block_tag(tag)])

    def get_code(self, address: str, tag: BlockTag = LATEST) -> bytes:
        return self._call("eth_getCode", [address, format_block_tag(tag)])

    def has_code(self, address: str, tag: BlockTag = LATEST) -> bool:
        return len(self.get_code(address, tag)) > 0
