"""
Chain record → Ethereum response formatting.

Fields the chain has no notion of are filled with the zero sentinel of the
width Ethereum clients expect, so that decoders never see a missing key.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..constants import ZERO_ADDRESS, ZERO_BYTES8, ZERO_BYTES32, ZERO_BYTES256
from ..translate.hexutil import hex_to_number, to_bytes32, to_hex


def quantity(value: Any) -> str:
    """Chain numeric (int, hex or decimal string) → 0x quantity."""
    if value is None or value == "":
        return "0x0"
    if isinstance(value, bool):
        return to_hex(int(value))
    if isinstance(value, int):
        return to_hex(value)
    if isinstance(value, str):
        if value.startswith(("0x", "0X")):
            return to_hex(hex_to_number(value))
        return to_hex(int(value))
    raise ValueError(f"Not a numeric value: {value!r}")


def _first_clause(tx: Dict[str, Any]) -> Dict[str, Any]:
    # Multi-clause transactions expose their first clause only.
    clauses = tx.get("clauses") or []
    return clauses[0] if clauses else {}


def format_block(
    block: Dict[str, Any],
    transactions: Optional[Sequence[Union[str, Dict[str, Any]]]] = None,
) -> Dict[str, Any]:
    """
    Format a chain block.

    Args:
        block: Chain block record
        transactions: Formatted transaction objects when the caller asked
            for full transactions; defaults to the block's tx ids
    """
    return {
        "number": quantity(block.get("number")),
        "hash": block["id"],
        "parentHash": block.get("parentID") or ZERO_BYTES32,
        "nonce": ZERO_BYTES8,
        "sha3Uncles": ZERO_BYTES32,
        "logsBloom": ZERO_BYTES256,
        "transactionsRoot": block.get("txsRoot") or ZERO_BYTES32,
        "stateRoot": block.get("stateRoot") or ZERO_BYTES32,
        "receiptsRoot": block.get("receiptsRoot") or ZERO_BYTES32,
        "miner": block.get("beneficiary") or ZERO_ADDRESS,
        "difficulty": "0x0",
        "totalDifficulty": "0x0",
        "extraData": "0x",
        "size": quantity(block.get("size")),
        "gasLimit": quantity(block.get("gasLimit")),
        "gasUsed": quantity(block.get("gasUsed")),
        "timestamp": quantity(block.get("timestamp")),
        "transactions": list(transactions if transactions is not None else block.get("transactions") or []),
        "uncles": [],
        "mixHash": ZERO_BYTES32,
    }


def format_head(block: Dict[str, Any]) -> Dict[str, Any]:
    """Header shape pushed to ``newHeads`` subscribers."""
    header = format_block(block)
    del header["transactions"]
    del header["uncles"]
    return header


def format_transaction(tx: Dict[str, Any], index: int = 0) -> Dict[str, Any]:
    clause = _first_clause(tx)
    meta = tx.get("meta") or {}
    return {
        "hash": tx["id"],
        "nonce": "0x0",
        "blockHash": meta.get("blockID"),
        "blockNumber": quantity(meta["blockNumber"]) if meta.get("blockNumber") is not None else None,
        "transactionIndex": to_hex(index) if meta else None,
        "from": tx.get("origin"),
        "to": clause.get("to"),
        "value": quantity(clause.get("value")),
        "gasPrice": "0x0",
        "gas": quantity(tx.get("gas")),
        "input": clause.get("data") or "0x",
        "v": "0x0",
        "r": ZERO_BYTES32,
        "s": ZERO_BYTES32,
        "type": "0x0",
    }


def format_log(
    event: Dict[str, Any],
    log_index: int = 0,
    transaction_index: int = 0,
) -> Dict[str, Any]:
    meta = event.get("meta") or {}
    return {
        "address": event.get("address"),
        "topics": [to_bytes32(t) for t in event.get("topics") or []],
        "data": event.get("data") or "0x",
        "blockNumber": quantity(meta.get("blockNumber")),
        "blockHash": meta.get("blockID") or ZERO_BYTES32,
        "transactionHash": meta.get("txID") or ZERO_BYTES32,
        "transactionIndex": to_hex(transaction_index),
        "logIndex": to_hex(log_index),
        "removed": False,
    }


def format_receipt(
    receipt: Dict[str, Any],
    tx: Optional[Dict[str, Any]] = None,
    index: int = 0,
    first_log_index: int = 0,
) -> Dict[str, Any]:
    """
    Format a chain receipt.

    Events from every clause output are flattened into one log list.
    ``first_log_index`` is the number of logs emitted earlier in the block,
    so indices match the ones ``eth_getLogs`` reports.
    """
    meta = receipt.get("meta") or {}
    outputs = receipt.get("outputs") or []

    logs: List[Dict[str, Any]] = []
    for output in outputs:
        for event in output.get("events") or []:
            logs.append(format_log({**event, "meta": meta}, first_log_index + len(logs), index))

    contract_address = next(
        (o.get("contractAddress") for o in outputs if o.get("contractAddress")),
        None,
    )
    clause = _first_clause(tx) if tx else {}

    return {
        "transactionHash": meta.get("txID"),
        "transactionIndex": to_hex(index),
        "blockHash": meta.get("blockID"),
        "blockNumber": quantity(meta.get("blockNumber")),
        "from": meta.get("txOrigin") or (tx or {}).get("origin"),
        "to": clause.get("to"),
        "cumulativeGasUsed": "0x0",
        "gasUsed": quantity(receipt.get("gasUsed")),
        "effectiveGasPrice": "0x0",
        "contractAddress": contract_address,
        "logs": logs,
        "logsBloom": ZERO_BYTES256,
        "status": "0x0" if receipt.get("reverted") else "0x1",
        "type": "0x0",
    }


# (tx id, clause index, address, topics, data) of one event
LogKey = Tuple[str, int, str, Tuple[str, ...], str]
# (logIndex, transactionIndex) within the block
LogPosition = Tuple[int, int]


def _log_key(tx_id: Any, clause_index: Any, event: Dict[str, Any]) -> LogKey:
    return (
        str(tx_id or "").lower(),
        int(clause_index or 0),
        str(event.get("address") or "").lower(),
        tuple(str(t).lower() for t in event.get("topics") or []),
        str(event.get("data") or "0x").lower(),
    )


def count_logs(receipt: Optional[Dict[str, Any]]) -> int:
    return sum(len(o.get("events") or []) for o in (receipt or {}).get("outputs") or [])


def index_block_logs(
    tx_receipts: Sequence[Tuple[str, Optional[Dict[str, Any]]]],
) -> Dict[LogKey, List[LogPosition]]:
    """
    Position of every event of one block.

    The chain keeps no log index, so events are numbered across the whole
    block: by transaction, then clause, then emission order. The result does
    not depend on which events a filter selected.

    Args:
        tx_receipts: ``(tx id, receipt)`` pairs in block order
    """
    positions: Dict[LogKey, List[LogPosition]] = {}
    log_index = 0
    for tx_index, (tx_id, receipt) in enumerate(tx_receipts):
        for clause_index, output in enumerate((receipt or {}).get("outputs") or []):
            for event in output.get("events") or []:
                positions.setdefault(_log_key(tx_id, clause_index, event), []).append((log_index, tx_index))
                log_index += 1
    return positions


def format_logs(
    events: Sequence[Dict[str, Any]],
    block_positions: Dict[str, Dict[LogKey, List[LogPosition]]],
) -> List[Dict[str, Any]]:
    """
    Format a chain event list.

    Args:
        events: Chain events, in chain order
        block_positions: ``index_block_logs`` of every block the events
            belong to, keyed by block id

    Raises:
        ValueError: if an event is missing from its block's receipts.
    """
    # Identical events of one clause take their positions in order.
    remaining = {
        block_id: {key: list(queue) for key, queue in positions.items()}
        for block_id, positions in block_positions.items()
    }
    logs: List[Dict[str, Any]] = []
    for event in events:
        meta = event.get("meta") or {}
        key = _log_key(meta.get("txID"), meta.get("clauseIndex"), event)
        queue = remaining.get(meta.get("blockID"), {}).get(key)
        if not queue:
            raise ValueError(f"Event of tx {meta.get('txID')} not found in block {meta.get('blockID')}")
        log_index, tx_index = queue.pop(0)
        logs.append(format_log(event, log_index, tx_index))
    return logs
