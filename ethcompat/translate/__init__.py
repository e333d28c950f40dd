"""
ethcompat Translators

Pure functions reconciling the Ethereum JSON-RPC model with the chain model:
block specifiers, log filter criteria, revert payloads and subscription
envelopes.
"""

from .block import BlockRef, BlockRefKind, parse_block_number, resolve_block_specifier
from .filters import build_filter_criteria, criteria_match, validate_filter_request
from .hexutil import hex_to_number, rand_addr, to_bytes32, wait
from .revert import FailureSource, VMOutput, decode_revert_message, encode_revert_message
from .subscription import format_subscription_envelope

__all__ = [
    "BlockRef",
    "BlockRefKind",
    "parse_block_number",
    "resolve_block_specifier",
    "build_filter_criteria",
    "criteria_match",
    "validate_filter_request",
    "hex_to_number",
    "rand_addr",
    "to_bytes32",
    "wait",
    "FailureSource",
    "VMOutput",
    "decode_revert_message",
    "encode_revert_message",
    "format_subscription_envelope",
]
