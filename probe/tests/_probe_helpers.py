from __future__ import annotations

import json
import os
import subprocess
import sys
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any


ROOT = Path(__file__).resolve().parents[1]
SCRIPTS = ROOT / "scripts"
if str(SCRIPTS) not in sys.path:
    sys.path.insert(0, str(SCRIPTS))

ADDRESS = "0x1111111111111111111111111111111111111111"
ETHER = 10**18


def _run_probe(
    args: list[str] | None = None,
    extra_env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    cmd = [
        sys.executable,
        str(SCRIPTS / "wallet_probe.py"),
        *(args or []),
    ]
    env = os.environ.copy()
    for key in ("RPC_URL", "ETH_RPC_URL", "ADDRESS", "PROBE_TIMEOUT_SECONDS", "PROBE_LOG_LEVEL"):
        env.pop(key, None)
    if extra_env:
        env.update(extra_env)
    return subprocess.run(cmd, capture_output=True, text=True, check=False, env=env)


def _rpc_ok(result: Any, rpc_id: int = 1) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def _rpc_error(code: int, message: str, rpc_id: int = 1) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}}


class _RPCHandler(BaseHTTPRequestHandler):
    responses: list[Any] = []
    calls: list[dict[str, Any]] = []

    def do_POST(self) -> None:  # noqa: N802
        length = int(self.headers.get("Content-Length", "0"))
        body = self.rfile.read(length).decode("utf-8")
        try:
            payload = json.loads(body)
        except Exception:  # noqa: BLE001
            payload = {"raw": body}
        _RPCHandler.calls.append(payload)

        status_code = 200
        if _RPCHandler.responses:
            next_response = _RPCHandler.responses.pop(0)
            if isinstance(next_response, tuple) and len(next_response) == 2:
                status_code = int(next_response[0])
                response_payload = next_response[1]
            else:
                response_payload = next_response
        else:
            response_payload = _rpc_ok("0x1", payload.get("id", 1))

        if isinstance(response_payload, str):
            encoded = response_payload.encode("utf-8")
        else:
            encoded = json.dumps(response_payload).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def log_message(self, format: str, *args) -> None:  # noqa: A003
        return


def _serve(responses: list[Any]) -> tuple[HTTPServer, str]:
    _RPCHandler.responses = list(responses)
    _RPCHandler.calls = []
    server = HTTPServer(("127.0.0.1", 0), _RPCHandler)
    url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server, url


def _stop(server: HTTPServer) -> None:
    server.shutdown()
    server.server_close()


class _ChainStub:
    """In-process transport answering probe reads from fixed per-block state."""

    def __init__(
        self,
        *,
        latest: int,
        balances: dict[int, int],
        nonces: dict[int, int],
        code: str = "0x",
        fail_method: str | None = None,
    ) -> None:
        self.latest = latest
        self.balances = balances
        self.nonces = nonces
        self.code = code
        self.fail_method = fail_method
        self.calls: list[dict[str, Any]] = []

    @property
    def methods(self) -> list[str]:
        return [call["method"] for call in self.calls]

    def __call__(self, *, rpc_url: str, payload: dict[str, Any], timeout_seconds: float) -> dict[str, Any]:
        self.calls.append(payload)
        method = payload["method"]
        params = payload["params"]
        if method == self.fail_method:
            response = _rpc_error(-32000, "missing trie node", payload["id"])
        elif method == "eth_blockNumber":
            response = _rpc_ok(hex(self.latest), payload["id"])
        elif method == "eth_getBalance":
            response = _rpc_ok(hex(self.balances[int(params[1], 16)]), payload["id"])
        elif method == "eth_getTransactionCount":
            response = _rpc_ok(hex(self.nonces[int(params[1], 16)]), payload["id"])
        elif method == "eth_getCode":
            response = _rpc_ok(self.code, payload["id"])
        else:
            raise AssertionError(f"unexpected method {method}")
        return {"ok": True, "error_code": None, "error_message": None, "rpc_response": response}
