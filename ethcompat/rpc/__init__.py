"""
ethcompat RPC Module

Provides JSON-RPC 2.0 interfaces over the chain-query capability:
- HTTP JSON-RPC server (Web3 compatible)
- WebSocket JSON-RPC server (with subscriptions)
"""

from .server import RPCServer
from .config import RPCConfig

__all__ = [
    "RPCServer",
    "RPCConfig",
]
