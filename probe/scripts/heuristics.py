"""Two-point wallet snapshot and the heuristic rules scored against it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable

from chain_client import BlockTag, ChainClient
from error_map import ConfigError
from quantity import parse_nonnegative_quantity, wei_to_ether

logger = logging.getLogger(__name__)

WINDOW_BLOCKS = 100
MIN_RISK_SCORE = 0
MAX_RISK_SCORE = 100


@dataclass(frozen=True)
class ChainSnapshot:
    block: BlockTag
    balance: int
    nonce: int
    # None where code was not fetched (the reference point).
    has_code: bool | None = None


@dataclass(frozen=True)
class HeuristicRule:
    """A rule fires when ``measure(latest, reference) > threshold``.

    The reason is ``template`` formatted with ``value=render(measure)``.
    """

    rule_id: str
    weight: int
    threshold: int
    measure: Callable[[ChainSnapshot, ChainSnapshot], int]
    template: str
    render: Callable[[int], str] = str

    def reason(self, value: int) -> str:
        return self.template.format(value=self.render(value))


@dataclass(frozen=True)
class Evaluation:
    score: int
    reasons: tuple[str, ...]
    latest_block: int
    balance_latest: int
    triggered: tuple[str, ...] = ()


def _balance_drained(latest: ChainSnapshot, reference: ChainSnapshot) -> int:
    return reference.balance - latest.balance


def _nonce_delta(latest: ChainSnapshot, reference: ChainSnapshot) -> int:
    return latest.nonce - reference.nonce


def _code_present(latest: ChainSnapshot, reference: ChainSnapshot) -> int:
    return int(bool(latest.has_code))


BALANCE_DRAIN = HeuristicRule(
    rule_id="balance_drain",
    weight=35,
    threshold=0,
    measure=_balance_drained,
    template="balance drop ~{value} ETH/%d blocks" % WINDOW_BLOCKS,
    render=wei_to_ether,
)
ACTIVITY_SPIKE = HeuristicRule(
    rule_id="activity_spike",
    weight=25,
    threshold=20,
    measure=_nonce_delta,
    template="high tx activity: +{value} nonce/%d blocks" % WINDOW_BLOCKS,
)
CODE_PRESENCE = HeuristicRule(
    rule_id="code_presence",
    weight=10,
    threshold=0,
    measure=_code_present,
    template="address has code (smart wallet or contract)",
)

DEFAULT_RULES: tuple[HeuristicRule, ...] = (BALANCE_DRAIN, ACTIVITY_SPIKE, CODE_PRESENCE)


def clamp_score(score: int) -> int:
    return max(MIN_RISK_SCORE, min(MAX_RISK_SCORE, score))


def reference_block(latest: int) -> int:
    # Chains shorter than the window compare the latest block with itself.
    if latest > WINDOW_BLOCKS:
        return latest - WINDOW_BLOCKS
    return latest


def rules_with_overrides(
    rules: tuple[HeuristicRule, ...],
    overrides: dict[str, Any] | None,
) -> tuple[HeuristicRule, ...]:
    """Return a copy of ``rules`` with per-rule ``weight``/``threshold`` replaced."""
    if not overrides:
        return tuple(rules)
    if not isinstance(overrides, dict):
        raise ConfigError("rules must be a mapping of rule id to overrides")

    known = {rule.rule_id for rule in rules}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigError(f"unknown rule id(s): {', '.join(map(str, unknown))}")

    out: list[HeuristicRule] = []
    for rule in rules:
        override = overrides.get(rule.rule_id)
        if override is None:
            out.append(rule)
            continue
        if not isinstance(override, dict):
            raise ConfigError(f"rules.{rule.rule_id} must be a mapping")
        extra = sorted(set(override) - {"weight", "threshold"})
        if extra:
            raise ConfigError(f"rules.{rule.rule_id}: unsupported field(s): {', '.join(map(str, extra))}")
        changes: dict[str, int] = {}
        for field in ("weight", "threshold"):
            if field not in override:
                continue
            ok, value, err = parse_nonnegative_quantity(override[field])
            if not ok:
                raise ConfigError(f"rules.{rule.rule_id}.{field}: {err}")
            changes[field] = value
        out.append(replace(rule, **changes))
    return tuple(out)


def evaluate_snapshots(
    latest: ChainSnapshot,
    reference: ChainSnapshot,
    rules: tuple[HeuristicRule, ...] = DEFAULT_RULES,
) -> tuple[int, tuple[str, ...], tuple[str, ...]]:
    score = 0
    reasons: list[str] = []
    triggered: list[str] = []
    for rule in rules:
        value = rule.measure(latest, reference)
        if value <= rule.threshold:
            continue
        score += rule.weight
        reasons.append(rule.reason(value))
        triggered.append(rule.rule_id)
        logger.debug("rule %s triggered: value=%s threshold=%s weight=%s", rule.rule_id, value, rule.threshold, rule.weight)
    return clamp_score(score), tuple(reasons), tuple(triggered)


def evaluate_wallet(
    client: ChainClient,
    address: str,
    rules: tuple[HeuristicRule, ...] = DEFAULT_RULES,
) -> Evaluation:
    """Fetch both snapshot points for ``address`` and score them.

    Remote reads are sequential (block number, balances, nonces, code) and
    any failure propagates unchanged; no partial evaluation is returned.
    """
    latest_block = client.get_block_number()
    ref_block = reference_block(latest_block)
    logger.info("evaluating %s over blocks %s..%s", address, ref_block, latest_block)

    balance_latest = client.get_balance(address, latest_block)
    balance_ref = client.get_balance(address, ref_block)
    nonce_latest = client.get_transaction_count(address, latest_block)
    nonce_ref = client.get_transaction_count(address, ref_block)
    has_code = client.has_code(address, latest_block)

    latest = ChainSnapshot(block=latest_block, balance=balance_latest, nonce=nonce_latest, has_code=has_code)
    reference = ChainSnapshot(block=ref_block, balance=balance_ref, nonce=nonce_ref)

    score, reasons, triggered = evaluate_snapshots(latest, reference, rules)
    logger.info("risk score for %s: %s (%s)", address, score, ", ".join(triggered) or "no rules triggered")
    return Evaluation(
        score=score,
        reasons=reasons,
        latest_block=latest_block,
        balance_latest=balance_latest,
        triggered=triggered,
    )
