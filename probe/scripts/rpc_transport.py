"""Single-shot HTTP JSON-RPC transport."""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from socket import timeout as SocketTimeout
from typing import Any

from error_map import ERR_RPC_DECODE, ERR_RPC_TIMEOUT, ERR_RPC_TRANSPORT

logger = logging.getLogger(__name__)


def _failure(code: str, message: str, rpc_response: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "ok": False,
        "error_code": code,
        "error_message": message,
        "rpc_response": rpc_response,
    }


def invoke_rpc(
    *,
    rpc_url: str,
    payload: dict[str, Any],
    timeout_seconds: float,
) -> dict[str, Any]:
    body = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        rpc_url,
        data=body,
        method="POST",
        headers={"Content-Type": "application/json"},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout_seconds) as resp:
            text = resp.read().decode("utf-8", errors="replace")
    except SocketTimeout as err:
        return _failure(ERR_RPC_TIMEOUT, str(err) or "request timed out")
    except urllib.error.HTTPError as err:
        text = err.read().decode("utf-8", errors="replace")
        logger.debug("http error %s from %s: %s", err.code, rpc_url, text[:200])
        return _failure(ERR_RPC_TRANSPORT, f"http error {err.code}", {"status": err.code, "raw": text})
    except urllib.error.URLError as err:
        if isinstance(err.reason, SocketTimeout):
            return _failure(ERR_RPC_TIMEOUT, str(err.reason) or "request timed out")
        return _failure(ERR_RPC_TRANSPORT, str(err.reason))
    except (OSError, http.client.HTTPException) as err:
        return _failure(ERR_RPC_TRANSPORT, str(err))

    try:
        rpc_response = json.loads(text)
    except json.JSONDecodeError:
        return _failure(ERR_RPC_DECODE, "rpc endpoint returned non-json response", {"raw": text})
    if not isinstance(rpc_response, dict):
        return _failure(ERR_RPC_DECODE, "rpc endpoint returned a non-object response", {"raw": text})
    return {
        "ok": True,
        "error_code": None,
        "error_message": None,
        "rpc_response": rpc_response,
    }
