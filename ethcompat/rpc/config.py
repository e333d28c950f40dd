"""
ethcompat RPC Configuration
"""

from dataclasses import dataclass, field
from typing import List

from ..constants import ETHCOMPAT_HOST, ETHCOMPAT_PORT


@dataclass
class HTTPConfig:
    """HTTP RPC configuration."""

    enabled: bool = True

    host: str = str(ETHCOMPAT_HOST)

    port: int = int(ETHCOMPAT_PORT)

    cors_enabled: bool = True

    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Rate limit (requests per minute per client address)
    rate_limit: int = 1000


@dataclass
class WebSocketConfig:
    """WebSocket RPC configuration."""

    enabled: bool = True

    # Path of the WebSocket endpoint on the HTTP server
    path: str = "/ws"

    max_connections: int = 100

    subscriptions_enabled: bool = True

    max_subscriptions: int = 100


@dataclass
class ModulesConfig:
    """RPC namespaces to expose."""

    eth: bool = True

    net: bool = True

    web3: bool = True


@dataclass
class RPCConfig:
    """RPC configuration."""

    enabled: bool = True

    http: HTTPConfig = field(default_factory=HTTPConfig)

    websocket: WebSocketConfig = field(default_factory=WebSocketConfig)

    modules: ModulesConfig = field(default_factory=ModulesConfig)

    @classmethod
    def from_dict(cls, config: dict) -> "RPCConfig":
        """Create from dictionary."""
        config = dict(config)
        http_dict = config.pop("http", {})
        websocket_dict = config.pop("websocket", {})
        modules_dict = config.pop("modules", {})

        return cls(
            **config,
            http=HTTPConfig(**http_dict),
            websocket=WebSocketConfig(**websocket_dict),
            modules=ModulesConfig(**modules_dict),
        )
