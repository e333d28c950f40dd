"""
External collaborators: chain queries and ABI encoding.
"""

from .abi import AbiCodec
from .base import ChainQuery, Revision
from .types import VMOutput

__all__ = [
    "AbiCodec",
    "ChainQuery",
    "Revision",
    "VMOutput",
]
