"""
Hex normalizers shared by the translators and formatters.
"""

import asyncio
import secrets
from typing import Any

from eth_utils import add_0x_prefix, is_0x_prefixed, remove_0x_prefix

from ..constants import VALID_HEX_PATTERN


def is_hex_strict(value: Any) -> bool:
    """True for a ``0x``-prefixed string with at least one hex digit."""
    return isinstance(value, str) and VALID_HEX_PATTERN.match(value) is not None


def to_bytes32(hex_str: str) -> str:
    """
    Left-pad a hex string to 32 bytes with zero nibbles.

    Raises:
        ValueError: if the unpadded value is longer than 64 hex characters.
    """
    digits = remove_0x_prefix(hex_str)
    if len(digits) > 64:
        raise ValueError(f"Hex value exceeds 32 bytes: {hex_str}")
    return add_0x_prefix(digits.rjust(64, "0"))


def hex_to_number(hex_str: str) -> int:
    if not is_0x_prefixed(hex_str):
        raise ValueError(f"Not a 0x-prefixed hex string: {hex_str!r}")
    return int(hex_str, 16)


def to_hex(value: int) -> str:
    """Integer → 0x-prefixed quantity."""
    return hex(value)


def rand_addr() -> str:
    """Random 20-byte address, used where an identity is required but irrelevant."""
    return "0x" + secrets.token_hex(20)


async def wait(ms: int) -> bool:
    """Best-effort delay for polling loops."""
    await asyncio.sleep(ms / 1000)
    return True
