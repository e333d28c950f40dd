"""
Shared fixtures: an in-memory chain standing in for the chain client.
"""

from typing import Any, Dict, List, Optional

import pytest

from ethcompat.chain.base import ChainQuery, Revision
from ethcompat.chain.types import VMOutput
from ethcompat.config.loader import ProviderConfig
from ethcompat.rpc.context import ProviderContext
from ethcompat.translate.filters import criteria_match

GENESIS_ID = "0x00000000851caf3cfdb6e899cf5958bfb1ac3413d346d43539627e6be7ec1b4a"

TOKEN = "0x0000000000000000000000000000456e65726779"
OTHER_CONTRACT = "0x7567d83b7b8d80addcb281a71d54fc7b3364ffed"
ORIGIN = "0x7567d83b7b8d80addcb281a71d54fc7b3364ffed"
RECIPIENT = "0xd3ae78222beadb038203be21ed5ce7c9b1bff602"

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
APPROVAL_TOPIC = "0x8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925"
FROM_TOPIC = "0x0000000000000000000000007567d83b7b8d80addcb281a71d54fc7b3364ffed"


def block_id(number: int) -> str:
    if number == 0:
        return GENESIS_ID
    return "0x" + f"{number:08x}" + "ab" * 28


def tx_id(n: int) -> str:
    return "0x" + "cd" * 31 + f"{n:02x}"


class MemoryChain(ChainQuery):
    """ChainQuery over plain dicts, recording the calls it receives."""

    def __init__(self):
        self.blocks: List[Dict[str, Any]] = []
        self.txs: Dict[str, Dict[str, Any]] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.events: List[Dict[str, Any]] = []
        self.explain_result = VMOutput(data="0x" + "00" * 31 + "2a", gas_used=21_000)

        self.filter_calls: List[tuple] = []
        self.explain_calls: List[dict] = []

        self.add_block()

    # -- building ---------------------------------------------------------

    def add_block(self, txs: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        number = len(self.blocks)
        bid = block_id(number)
        block = {
            "id": bid,
            "number": number,
            "parentID": block_id(number - 1) if number else "0xffffffff" + "00" * 28,
            "timestamp": 1_530_316_800 + 10 * number,
            "gasLimit": 10_000_000,
            "gasUsed": 0,
            "beneficiary": "0x0000000000000000000000000000000000000000",
            "size": 170,
            "stateRoot": "0x" + "11" * 32,
            "receiptsRoot": "0x" + "22" * 32,
            "txsRoot": "0x" + "33" * 32,
            "transactions": [],
        }
        for tx in txs or []:
            meta = {"blockID": bid, "blockNumber": number, "blockTimestamp": block["timestamp"]}
            tx["tx"]["meta"] = meta
            self.txs[tx["tx"]["id"]] = tx["tx"]
            block["transactions"].append(tx["tx"]["id"])
            receipt = tx["receipt"]
            receipt["meta"] = {**meta, "txID": tx["tx"]["id"], "txOrigin": tx["tx"]["origin"]}
            self.receipts[tx["tx"]["id"]] = receipt
            for clause_index, output in enumerate(receipt.get("outputs") or []):
                for event in output.get("events") or []:
                    self.events.append({**event, "meta": {**receipt["meta"], "clauseIndex": clause_index}})
        self.blocks.append(block)
        return block

    # -- ChainQuery -------------------------------------------------------

    @property
    def genesis_id(self) -> str:
        return GENESIS_ID

    async def get_head(self) -> Dict[str, Any]:
        head = self.blocks[-1]
        return {"id": head["id"], "number": head["number"]}

    async def get_block(self, revision: Revision) -> Optional[Dict[str, Any]]:
        if revision is None:
            return self.blocks[-1]
        if isinstance(revision, int):
            return self.blocks[revision] if 0 <= revision < len(self.blocks) else None
        for block in self.blocks:
            if block["id"].lower() == revision.lower():
                return block
        return None

    async def get_transaction(self, tx_id: str) -> Optional[Dict[str, Any]]:
        return self.txs.get(tx_id)

    async def get_receipt(self, tx_id: str) -> Optional[Dict[str, Any]]:
        return self.receipts.get(tx_id)

    async def filter_events(self, criteria, from_block, to_block, offset=0, limit=256):
        self.filter_calls.append((criteria, from_block, to_block, offset, limit))
        matched = [
            e for e in self.events
            if from_block <= e["meta"]["blockNumber"] <= to_block and criteria_match(e, criteria)
        ]
        return matched[offset:offset + limit]

    async def explain(self, clause, caller=None, gas=None, revision=None) -> VMOutput:
        self.explain_calls.append({"clause": clause, "caller": caller, "gas": gas, "revision": revision})
        return self.explain_result


def transfer_tx(n: int, reverted: bool = False) -> Dict[str, Any]:
    """A token transfer with one Transfer event."""
    event = {
        "address": TOKEN,
        "topics": [TRANSFER_TOPIC, FROM_TOPIC],
        "data": "0x" + "00" * 31 + "64",
    }
    return {
        "tx": {
            "id": tx_id(n),
            "origin": ORIGIN,
            "gas": 80_000,
            "nonce": "0x1234",
            "clauses": [{"to": TOKEN, "value": "0x0", "data": "0xa9059cbb"}],
        },
        "receipt": {
            "gasUsed": 36_518,
            "reverted": reverted,
            "outputs": [] if reverted else [{"contractAddress": None, "events": [event]}],
        },
    }


def deploy_tx(n: int) -> Dict[str, Any]:
    """A contract creation emitting an Approval event from the new contract."""
    return {
        "tx": {
            "id": tx_id(n),
            "origin": ORIGIN,
            "gas": 500_000,
            "nonce": "0x1",
            "clauses": [
                {"to": None, "value": "1000", "data": "0x6080"},
                {"to": RECIPIENT, "value": "0x10", "data": "0x"},
            ],
        },
        "receipt": {
            "gasUsed": 120_000,
            "reverted": False,
            "outputs": [
                {
                    "contractAddress": OTHER_CONTRACT,
                    "events": [{"address": OTHER_CONTRACT, "topics": [APPROVAL_TOPIC], "data": "0x"}],
                },
                {"contractAddress": None, "events": []},
            ],
        },
    }


@pytest.fixture
def chain():
    """Genesis, then block 1 with a transfer, block 2 with a deploy and a second transfer."""
    c = MemoryChain()
    c.add_block([transfer_tx(1)])
    c.add_block([deploy_tx(2), transfer_tx(3)])
    return c


@pytest.fixture
def config():
    return ProviderConfig()


@pytest.fixture
def context(chain, config):
    return ProviderContext(chain=chain, config=config)
