#!/usr/bin/env python3
"""Point-in-time wallet anomaly probe over Ethereum JSON-RPC.

Compares an address's balance, nonce and code between the latest block and
the block 100 back, and prints a JSON risk report (score 0-100 plus reasons).
Exit status: 0 report printed, 1 remote call failed, 2 bad configuration.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

# Local imports for script execution (python3 scripts/wallet_probe.py ...)
SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from chain_client import ChainClient  # noqa: E402
from error_map import ConfigError, ProbeError  # noqa: E402
from heuristics import DEFAULT_RULES, evaluate_wallet, rules_with_overrides  # noqa: E402
from probe_config import USAGE, resolve_config  # noqa: E402
from report import build_probe_result, error_payload_for, render_probe_result  # noqa: E402

logger = logging.getLogger("wallet_probe")

EXIT_OK = 0
EXIT_RPC_FAILURE = 1
EXIT_USAGE = 2

LOG_LEVEL_ENV = "PROBE_LOG_LEVEL"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def cmd_probe(args: argparse.Namespace) -> int:
    pretty = not args.compact
    try:
        config = resolve_config(
            rpc_url=args.rpc_url,
            address=args.address,
            timeout_seconds=args.timeout_seconds,
            config_path=args.config,
        )
        rules = rules_with_overrides(DEFAULT_RULES, config.rule_overrides)
    except ConfigError as err:
        print(USAGE, file=sys.stderr)
        print(render_probe_result(error_payload_for(err), pretty=pretty))
        return EXIT_USAGE

    client = ChainClient(config.rpc_url, timeout_seconds=config.timeout_seconds)
    try:
        evaluation = evaluate_wallet(client, config.address, rules)
    except ProbeError as err:
        logger.error("probe of %s aborted: %s", config.address, err.message)
        print(render_probe_result(error_payload_for(err, address=config.address), pretty=pretty))
        return EXIT_RPC_FAILURE

    print(render_probe_result(build_probe_result(config.address, evaluation), pretty=pretty))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint (default: $RPC_URL or $ETH_RPC_URL)")
    parser.add_argument("--address", help="address to probe (default: $ADDRESS)")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--timeout-seconds", type=float, help="per-request timeout")
    parser.add_argument("--compact", action="store_true", help="print single-line JSON")
    parser.add_argument(
        "--log-level",
        default=os.environ.get(LOG_LEVEL_ENV, "WARNING"),
        choices=LOG_LEVELS,
        type=str.upper,
        help="stderr log level (default: $PROBE_LOG_LEVEL or WARNING)",
    )
    parser.set_defaults(func=cmd_probe)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    # argparse does not check the $PROBE_LOG_LEVEL default against choices.
    if args.log_level not in LOG_LEVELS:
        err = ConfigError(f"log level must be one of {', '.join(LOG_LEVELS)}: {args.log_level!r}")
        print(USAGE, file=sys.stderr)
        print(render_probe_result(error_payload_for(err), pretty=not args.compact))
        return EXIT_USAGE
    _configure_logging(args.log_level)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
