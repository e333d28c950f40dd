"""
ethcompat RPC Modules

Web3-compatible JSON-RPC method implementations.
"""

from .eth import EthModule
from .net import NetModule
from .web3 import Web3Module

__all__ = [
    "EthModule",
    "NetModule",
    "Web3Module",
]
