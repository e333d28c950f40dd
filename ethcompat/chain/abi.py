"""
ABI encoding capability.

Thin wrapper over ``eth_abi``; the provider never implements ABI itself.
"""

from typing import Any

from eth_abi import decode, encode
from eth_utils import decode_hex, encode_hex


class AbiCodec:
    """Encode and decode single values under Solidity types."""

    def encode_parameter(self, abi_type: str, value: Any) -> str:
        return encode_hex(encode([abi_type], [value]))

    def decode_parameter(self, abi_type: str, data: str) -> Any:
        return decode([abi_type], decode_hex(data))[0]


default_codec = AbiCodec()


def encode_string(message: str) -> str:
    return default_codec.encode_parameter("string", message)


def decode_string(data: str) -> str:
    return default_codec.decode_parameter("string", data)
