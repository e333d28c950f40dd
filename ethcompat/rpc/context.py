"""
Shared state handed to every RPC module.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..chain.abi import AbiCodec
from ..chain.base import ChainQuery
from ..config.loader import ProviderConfig
from ..constants import DEFAULT_CHAIN_ID


@dataclass
class ProviderContext:
    chain: Optional[ChainQuery] = None
    codec: AbiCodec = field(default_factory=AbiCodec)
    config: ProviderConfig = field(default_factory=ProviderConfig)

    def chain_id(self) -> int:
        """Configured chain id, else the chain tag (last byte of the genesis id)."""
        if self.config.provider.chain_id is not None:
            return self.config.provider.chain_id
        if self.chain is not None:
            return int(self.chain.genesis_id[-2:], 16)
        return DEFAULT_CHAIN_ID
