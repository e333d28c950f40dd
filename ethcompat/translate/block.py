"""
Block specifier resolution.

Ethereum clients name blocks by hash, by hex number or by one of the tags
``earliest``, ``latest`` and ``pending``. The chain client looks blocks up
by *revision*: a 32-byte block id, a block number, or nothing at all for
the current head. ``pending`` has no counterpart because the chain has no
mempool block, so it is reported as unsupported rather than approximated.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..constants import (
    BLOCK_TAG_EARLIEST,
    BLOCK_TAG_LATEST,
    VALID_BYTES32_PATTERN,
)
from ..exceptions import UnsupportedBlockSpecifier
from .hexutil import is_hex_strict


class BlockRefKind(str, Enum):
    ID = "id"
    NUMBER = "number"
    HEAD = "head"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class BlockRef:
    """Resolved block specifier. ``value`` is the id or number, else None."""

    kind: BlockRefKind
    value: Union[str, int, None] = None

    @property
    def is_supported(self) -> bool:
        return self.kind is not BlockRefKind.UNSUPPORTED

    @property
    def lookup_key(self) -> Union[str, int, None]:
        """
        Revision accepted by the chain client.

        Raises:
            UnsupportedBlockSpecifier: for an unsupported reference.
        """
        if self.kind is BlockRefKind.UNSUPPORTED:
            raise UnsupportedBlockSpecifier(self.value)
        return self.value


HEAD = BlockRef(BlockRefKind.HEAD)


def resolve_block_specifier(value: Any) -> BlockRef:
    """
    Resolve an Ethereum block reference.

    A 66-character hex string is always an id, even when it would parse as
    a small number.
    """
    if isinstance(value, bool):
        return BlockRef(BlockRefKind.UNSUPPORTED, value)

    if isinstance(value, int):
        if value < 0:
            return BlockRef(BlockRefKind.UNSUPPORTED, value)
        return BlockRef(BlockRefKind.NUMBER, value)

    if isinstance(value, str):
        if VALID_BYTES32_PATTERN.match(value):
            return BlockRef(BlockRefKind.ID, value)
        if is_hex_strict(value):
            return BlockRef(BlockRefKind.NUMBER, int(value, 16))
        if value == BLOCK_TAG_EARLIEST:
            return BlockRef(BlockRefKind.NUMBER, 0)
        if value == BLOCK_TAG_LATEST:
            return HEAD

    return BlockRef(BlockRefKind.UNSUPPORTED, value)


def parse_block_number(value: Any) -> Optional[Union[str, int]]:
    """Shortcut returning the chain revision directly."""
    return resolve_block_specifier(value).lookup_key
