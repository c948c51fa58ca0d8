"""Shared codecs for Ethereum quantity-like values.

Quantities are kept as Python ints end to end. Ether amounts are rendered
from exact Decimal arithmetic with banker's rounding (ROUND_HALF_EVEN) to
six fractional digits, so the same wei value always yields the same string.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_EVEN, Decimal, localcontext
from typing import Any

from error_map import DecodeError

HEX_DIGITS_RE = re.compile(r"^[0-9a-fA-F]+$")
HEX_BYTES_RE = re.compile(r"^0x(?:[0-9a-fA-F]{2})*$")
DECIMAL_RE = re.compile(r"^[0-9]+$")

WEI_PER_ETHER = 10**18
ETHER_DECIMALS = 6
_ETHER_QUANTUM = Decimal(1).scaleb(-ETHER_DECIMALS)


def decode_hex(raw: Any) -> int:
    if not isinstance(raw, str):
        raise DecodeError(f"expected hex quantity string, got {type(raw).__name__}")
    digits = raw[2:] if raw.startswith(("0x", "0X")) else raw
    if not HEX_DIGITS_RE.fullmatch(digits):
        raise DecodeError(f"invalid hex quantity: {raw!r}")
    return int(digits, 16)


def encode_hex(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("quantity must be an int")
    if value < 0:
        raise ValueError("quantity must be non-negative")
    return f"0x{value:x}"


def decode_hex_bytes(raw: Any) -> bytes:
    if not isinstance(raw, str) or not HEX_BYTES_RE.fullmatch(raw):
        raise DecodeError(f"expected 0x-prefixed hex bytes, got {raw!r}")
    return bytes.fromhex(raw[2:])


def wei_to_ether(wei: int) -> str:
    with localcontext() as ctx:
        ctx.prec = len(str(abs(wei))) + 2 * ETHER_DECIMALS + 18
        ether = Decimal(wei) / WEI_PER_ETHER
        return f"{ether.quantize(_ETHER_QUANTUM, rounding=ROUND_HALF_EVEN):f}"


def parse_nonnegative_quantity(value: Any) -> tuple[bool, int, str]:
    if isinstance(value, bool):
        return False, 0, "value cannot be boolean"
    if isinstance(value, int):
        if value < 0:
            return False, 0, "value must be non-negative"
        return True, value, ""
    if not isinstance(value, str):
        return False, 0, "value must be int or string"

    raw = value.strip()
    if not raw:
        return False, 0, "value cannot be empty"
    if raw.startswith("0x"):
        try:
            return True, decode_hex(raw), ""
        except DecodeError:
            return False, 0, "value must be a decimal integer or 0x-prefixed hex quantity"
    if DECIMAL_RE.fullmatch(raw):
        return True, int(raw, 10), ""
    return False, 0, "value must be a decimal integer or 0x-prefixed hex quantity"
