"""Output documents for the wallet probe."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from error_map import ProbeError, ProtocolError
from heuristics import Evaluation
from quantity import encode_hex, wei_to_ether


def _json_dump(payload: Any, pretty: bool = True) -> str:
    return json.dumps(payload, indent=2 if pretty else None, sort_keys=False)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def build_probe_result(address: str, evaluation: Evaluation) -> dict[str, Any]:
    return {
        "address": address,
        "latestBlock": encode_hex(evaluation.latest_block),
        "riskScore": evaluation.score,
        "reasons": list(evaluation.reasons),
        "balanceEth": wei_to_ether(evaluation.balance_latest),
    }


def render_probe_result(result: dict[str, Any], pretty: bool = True) -> str:
    return _json_dump(result, pretty=pretty)


def build_error_payload(
    *,
    code: str,
    message: str,
    address: str | None = None,
    rpc_error: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "timestamp_utc": _timestamp(),
        "status": "error",
        "ok": False,
        "error_code": code,
        "error_message": message,
    }
    if address is not None:
        payload["address"] = address
    if rpc_error is not None:
        payload["rpc_error"] = rpc_error
    return payload


def error_payload_for(err: ProbeError, *, address: str | None = None) -> dict[str, Any]:
    rpc_error = None
    if isinstance(err, ProtocolError):
        rpc_error = {"code": err.rpc_code, "message": err.rpc_message}
    return build_error_payload(code=err.error_code, message=err.message, address=address, rpc_error=rpc_error)
