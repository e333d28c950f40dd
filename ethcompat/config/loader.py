"""
ethcompat TOML Configuration Loader

Loads every section of config.toml at startup with environment variable overrides.

Environment variable mapping:
    [provider] chain_id        → ETHCOMPAT_CHAIN_ID
    [provider] network_name    → ETHCOMPAT_NETWORK_NAME
    [provider] log_level       → ETHCOMPAT_LOG_LEVEL
    [filters] max_criteria     → ETHCOMPAT_MAX_FILTER_CRITERIA
    [filters] max_logs         → ETHCOMPAT_MAX_LOGS
    [subscriptions] enabled    → ETHCOMPAT_SUBSCRIPTIONS_ENABLED
    [subscriptions] poll_interval_ms → ETHCOMPAT_POLL_INTERVAL_MS
    [rpc.http] host            → ETHCOMPAT_RPC_HTTP_HOST
    [rpc.http] port            → ETHCOMPAT_RPC_HTTP_PORT
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

from ..constants import (
    ETHCOMPAT_NETWORK_NAME,
    HEAD_POLL_INTERVAL_MS,
    LOG_LEVEL,
    MAX_FILTER_CRITERIA,
    MAX_LOGS_PER_QUERY,
)
from ..exceptions import ConfigurationError
from ..logger import get_logger
from ..rpc.config import RPCConfig

logger = get_logger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

@dataclass
class ProviderSectionConfig:
    """[provider] section."""
    chain_id: Optional[int] = None  # None: derived from the genesis block id
    network_name: str = str(ETHCOMPAT_NETWORK_NAME)
    log_level: str = str(LOG_LEVEL)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderSectionConfig":
        return cls(
            chain_id=data.get("chain_id"),
            network_name=data.get("network_name", str(ETHCOMPAT_NETWORK_NAME)),
            log_level=data.get("log_level", str(LOG_LEVEL)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("ETHCOMPAT_CHAIN_ID"):
            self.chain_id = int(v)
        if v := os.environ.get("ETHCOMPAT_NETWORK_NAME"):
            self.network_name = v
        if v := os.environ.get("ETHCOMPAT_LOG_LEVEL"):
            self.log_level = v


@dataclass
class FiltersConfig:
    """[filters] section."""
    max_criteria: int = MAX_FILTER_CRITERIA
    max_logs: int = MAX_LOGS_PER_QUERY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FiltersConfig":
        return cls(
            max_criteria=data.get("max_criteria", MAX_FILTER_CRITERIA),
            max_logs=data.get("max_logs", MAX_LOGS_PER_QUERY),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("ETHCOMPAT_MAX_FILTER_CRITERIA"):
            self.max_criteria = int(v)
        if v := os.environ.get("ETHCOMPAT_MAX_LOGS"):
            self.max_logs = int(v)


@dataclass
class SubscriptionsConfig:
    """[subscriptions] section."""
    enabled: bool = True
    poll_interval_ms: int = HEAD_POLL_INTERVAL_MS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubscriptionsConfig":
        return cls(
            enabled=data.get("enabled", True),
            poll_interval_ms=data.get("poll_interval_ms", HEAD_POLL_INTERVAL_MS),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("ETHCOMPAT_SUBSCRIPTIONS_ENABLED"):
            self.enabled = _env_bool(v)
        if v := os.environ.get("ETHCOMPAT_POLL_INTERVAL_MS"):
            self.poll_interval_ms = int(v)


# ---------------------------------------------------------------------------
# Top-level
# ---------------------------------------------------------------------------

@dataclass
class ProviderConfig:
    """
    Unified provider configuration.

    Loads every section of config.toml and applies environment variable
    overrides. This is the single source of truth at runtime.
    """
    provider: ProviderSectionConfig = field(default_factory=ProviderSectionConfig)
    filters: FiltersConfig = field(default_factory=FiltersConfig)
    subscriptions: SubscriptionsConfig = field(default_factory=SubscriptionsConfig)
    rpc: RPCConfig = field(default_factory=RPCConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderConfig":
        """Create ProviderConfig from a parsed TOML dict."""
        try:
            return cls(
                provider=ProviderSectionConfig.from_dict(data.get("provider", {})),
                filters=FiltersConfig.from_dict(data.get("filters", {})),
                subscriptions=SubscriptionsConfig.from_dict(data.get("subscriptions", {})),
                rpc=RPCConfig.from_dict(data.get("rpc", {})),
            )
        except TypeError as e:
            # Unknown keys in an [rpc.*] table
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_file(cls, config_path: str) -> "ProviderConfig":
        """
        Load configuration from a TOML file.

        A missing file is not an error: defaults are used, with environment
        overrides still applied.
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Malformed config file {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        logger.info("Loaded configuration from %s", config_path)
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.provider.apply_env()
        self.filters.apply_env()
        self.subscriptions.apply_env()

        if v := os.environ.get("ETHCOMPAT_RPC_HTTP_HOST"):
            self.rpc.http.host = v
        if v := os.environ.get("ETHCOMPAT_RPC_HTTP_PORT"):
            self.rpc.http.port = int(v)

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        if self.provider.chain_id is not None and self.provider.chain_id < 0:
            raise ConfigurationError("chain_id must be >= 0")
        if self.provider.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log_level: {self.provider.log_level}")
        if self.filters.max_criteria < 1:
            raise ConfigurationError("filters.max_criteria must be >= 1")
        if self.filters.max_logs < 1:
            raise ConfigurationError("filters.max_logs must be >= 1")
        if self.subscriptions.poll_interval_ms < 1:
            raise ConfigurationError("subscriptions.poll_interval_ms must be >= 1")
        if not 0 < self.rpc.http.port < 65536:
            raise ConfigurationError(f"Invalid rpc.http.port: {self.rpc.http.port}")
        if not self.rpc.websocket.path.startswith("/"):
            raise ConfigurationError("rpc.websocket.path must start with '/'")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "provider": {
                "chain_id": self.provider.chain_id,
                "network_name": self.provider.network_name,
                "log_level": self.provider.log_level,
            },
            "filters": {
                "max_criteria": self.filters.max_criteria,
                "max_logs": self.filters.max_logs,
            },
            "subscriptions": {
                "enabled": self.subscriptions.enabled,
                "poll_interval_ms": self.subscriptions.poll_interval_ms,
            },
            "rpc": {
                "enabled": self.rpc.enabled,
                "http": {
                    "host": self.rpc.http.host,
                    "port": self.rpc.http.port,
                    "rate_limit": self.rpc.http.rate_limit,
                },
                "websocket": {
                    "enabled": self.rpc.websocket.enabled,
                    "path": self.rpc.websocket.path,
                },
                "modules": {
                    "eth": self.rpc.modules.eth,
                    "net": self.rpc.modules.net,
                    "web3": self.rpc.modules.web3,
                },
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> ProviderConfig:
    """
    Load provider configuration.

    Resolution order:
        1. Explicit *path* argument
        2. ETHCOMPAT_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("ETHCOMPAT_CONFIG", "config.toml")

    return ProviderConfig.from_file(path)
