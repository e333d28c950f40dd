"""
Chain-query capability.

The provider talks to the chain exclusively through this interface. A
concrete implementation wraps the chain SDK or REST client; transport,
retries and timeouts are its business, not the provider's.

Record shapes (chain model, camelCase as the chain client returns them):

    block:     id, number, parentID, timestamp, gasLimit, gasUsed,
               beneficiary, size, stateRoot, receiptsRoot, txsRoot,
               transactions (list of tx ids)
    tx:        id, origin, clauses [{to, value, data}], gas, nonce,
               meta {blockID, blockNumber, blockTimestamp}
    receipt:   gasUsed, reverted, outputs [{contractAddress, events}],
               meta {blockID, blockNumber, txID, txOrigin}
    event:     address, topics, data,
               meta {blockID, blockNumber, txID, txOrigin, clauseIndex}
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union

from .types import VMOutput

Revision = Union[str, int, None]


class ChainQuery(ABC):
    """Abstract, asynchronous view of the chain."""

    @property
    @abstractmethod
    def genesis_id(self) -> str:
        """Id of block 0."""

    @abstractmethod
    async def get_head(self) -> Dict[str, Any]:
        """Return ``{"id", "number"}`` of the best block."""

    @abstractmethod
    async def get_block(self, revision: Revision) -> Optional[Dict[str, Any]]:
        """
        Fetch a block by id or number; ``None`` revision means the head.

        Returns:
            Block record, or None if no such block exists
        """

    @abstractmethod
    async def get_transaction(self, tx_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a transaction by id, or None."""

    @abstractmethod
    async def get_receipt(self, tx_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a transaction receipt by id, or None."""

    @abstractmethod
    async def filter_events(
        self,
        criteria: List[Dict[str, str]],
        from_block: int,
        to_block: int,
        offset: int = 0,
        limit: int = 256,
    ) -> List[Dict[str, Any]]:
        """
        Evaluate event criteria over an inclusive block range.

        Criteria entries are OR-ed; populated fields inside an entry are
        AND-ed. An empty criteria list matches every event.
        """

    @abstractmethod
    async def explain(
        self,
        clause: Dict[str, Any],
        caller: Optional[str] = None,
        gas: Optional[int] = None,
        revision: Revision = None,
    ) -> VMOutput:
        """Simulate one clause and return its VM output."""

    async def get_block_receipts(self, revision: Revision) -> List[Tuple[str, Optional[Dict[str, Any]]]]:
        """
        Receipts of a block's transactions in block order, paired with their ids.

        Implementations whose client has a bulk endpoint may override this.
        """
        block = await self.get_block(revision)
        if not block:
            return []
        return [(tx_id, await self.get_receipt(tx_id)) for tx_id in block.get("transactions") or []]
