"""
ethcompat eth_* RPC Methods

Ethereum JSON-RPC namespace served on top of the chain-query capability.

Every method follows the same path: translate the Ethereum arguments into
the chain's lookup form, await the chain, and format the result back into
the Ethereum shape. Inputs with no chain counterpart (the ``pending`` tag,
more than four topic slots, ...) are rejected with INVALID_PARAMS naming
the method and parameter; lookups that find nothing return null or an
empty list.

Architecture:
    - self.context.chain  → ChainQuery (blocks, txs, receipts, events, explain)
    - self.context.codec  → AbiCodec (revert payload encoding)
    - self.context.config → ProviderConfig (chain id, filter limits)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from eth_utils import decode_hex

from ...chain.base import ChainQuery, Revision
from ...chain.types import VMOutput
from ...constants import (
    CLAUSE_GAS,
    CLAUSE_GAS_CONTRACT_CREATION,
    TX_BASE_GAS,
    TX_DATA_NON_ZERO_GAS,
    TX_DATA_ZERO_GAS,
    VALID_BYTES32_PATTERN,
)
from ...exceptions import InvalidFilterError
from ...logger import get_logger
from ...translate.block import BlockRefKind, resolve_block_specifier
from ...translate.filters import build_filter_criteria, validate_filter_request
from ...translate.hexutil import to_hex
from ...translate.revert import FailureSource, encode_revert_message, select_failure_message
from ..formatters import (
    count_logs,
    format_block,
    format_logs,
    format_receipt,
    format_transaction,
    index_block_logs,
    quantity,
)
from ..server import RPCError, RPCErrorCode, RPCModule, rpc_method

logger = get_logger(__name__)


def _revert_text(source: FailureSource, message: str) -> str:
    # Raw data is only ever reported through the error payload.
    if source in (FailureSource.REVERT_REASON, FailureSource.VM_ERROR) and message != "execution reverted":
        return f"execution reverted: {message}"
    return "execution reverted"


def _intrinsic_gas(to: Optional[str], data: str) -> int:
    gas = TX_BASE_GAS + (CLAUSE_GAS if to else CLAUSE_GAS_CONTRACT_CREATION)
    for byte in decode_hex(data or "0x"):
        gas += TX_DATA_NON_ZERO_GAS if byte else TX_DATA_ZERO_GAS
    return gas


class EthModule(RPCModule):
    """
    Ethereum-compatible read and simulation methods (eth_* namespace).

    Signing and broadcasting are left to the wallet layer; this module only
    reads chain state and simulates calls.
    """

    namespace = "eth"

    # ── internal accessors (raise clean RPC errors) ──

    def _chain(self) -> ChainQuery:
        chain = getattr(self.context, "chain", None) if self.context else None
        if chain is None:
            raise RPCError(RPCErrorCode.INTERNAL_ERROR, "Chain query not configured")
        return chain

    def _encode_string(self, message: str) -> str:
        return self.context.codec.encode_parameter("string", message)

    def _revision(self, method: str, param: str, value: Any) -> Revision:
        """Block specifier → chain revision, rejecting what has no counterpart."""
        ref = resolve_block_specifier(value)
        if not ref.is_supported:
            raise RPCError.argument_missing_or_invalid(method, param)
        return ref.lookup_key

    async def _block_height(self, method: str, param: str, value: Any) -> Optional[int]:
        """Block specifier → concrete block number, or None if the block is unknown."""
        ref = resolve_block_specifier(value)
        if not ref.is_supported:
            raise RPCError.argument_missing_or_invalid(method, param)
        if ref.kind is BlockRefKind.NUMBER:
            return ref.value
        if ref.kind is BlockRefKind.HEAD:
            head = await self._chain().get_head()
            return int(head["number"])
        block = await self._chain().get_block(ref.value)
        return int(block["number"]) if block else None

    async def _tx_index(self, tx_id: str, block_id: Optional[str]) -> int:
        """Position of a transaction in its block; 0 when it cannot be determined."""
        if not block_id:
            return 0
        block = await self._chain().get_block(block_id)
        if not block:
            return 0
        ids = [t.lower() for t in block.get("transactions") or []]
        try:
            return ids.index(tx_id.lower())
        except ValueError:
            return 0

    async def _block_log_positions(self, events: List[Dict]) -> Dict[str, Dict]:
        """``index_block_logs`` of every block the events belong to."""
        chain = self._chain()
        positions: Dict[str, Dict] = {}
        for event in events:
            block_id = (event.get("meta") or {}).get("blockID")
            if block_id and block_id not in positions:
                positions[block_id] = index_block_logs(await chain.get_block_receipts(block_id))
        return positions

    async def _build_block_response(self, block: Dict, include_full: bool) -> Dict:
        if not include_full:
            return format_block(block)
        chain = self._chain()
        txs: List[Dict] = []
        for i, tx_id in enumerate(block.get("transactions") or []):
            tx = await chain.get_transaction(tx_id)
            if tx:
                txs.append(format_transaction(tx, i))
        return format_block(block, txs)

    # ══════════════════════════════════════════════════════════════════════════
    #  CHAIN INFO
    # ══════════════════════════════════════════════════════════════════════════

    @rpc_method
    async def chainId(self) -> str:
        """Returns the chain ID (EIP-695)."""
        return to_hex(self.context.chain_id())

    @rpc_method
    async def blockNumber(self) -> str:
        """Returns the number of the best block."""
        head = await self._chain().get_head()
        return quantity(head["number"])

    @rpc_method
    async def syncing(self) -> bool:
        return False

    @rpc_method
    async def accounts(self) -> List[str]:
        """No keys are held by the provider."""
        return []

    @rpc_method
    async def gasPrice(self) -> str:
        """Gas is priced by the chain's own coefficient model; report zero."""
        return "0x0"

    # ══════════════════════════════════════════════════════════════════════════
    #  BLOCKS
    # ══════════════════════════════════════════════════════════════════════════

    @rpc_method
    async def getBlockByNumber(
        self,
        block_number: Union[str, int],
        include_transactions: bool = False,
    ) -> Optional[Dict]:
        """Returns block by number, tag or id; ``pending`` is rejected."""
        revision = self._revision("eth_getBlockByNumber", "blockNumber", block_number)
        block = await self._chain().get_block(revision)
        if not block:
            return None
        return await self._build_block_response(block, include_transactions)

    @rpc_method
    async def getBlockByHash(
        self,
        block_hash: str,
        include_transactions: bool = False,
    ) -> Optional[Dict]:
        """Returns block by id."""
        if not isinstance(block_hash, str) or not VALID_BYTES32_PATTERN.match(block_hash):
            raise RPCError.argument_missing_or_invalid("eth_getBlockByHash", "blockHash")
        block = await self._chain().get_block(block_hash)
        if not block:
            return None
        return await self._build_block_response(block, include_transactions)

    @rpc_method
    async def getBlockTransactionCountByHash(self, block_hash: str) -> Optional[str]:
        if not isinstance(block_hash, str) or not VALID_BYTES32_PATTERN.match(block_hash):
            raise RPCError.argument_missing_or_invalid("eth_getBlockTransactionCountByHash", "blockHash")
        block = await self._chain().get_block(block_hash)
        if not block:
            return None
        return to_hex(len(block.get("transactions") or []))

    @rpc_method
    async def getBlockTransactionCountByNumber(self, block_number: Union[str, int]) -> Optional[str]:
        revision = self._revision("eth_getBlockTransactionCountByNumber", "blockNumber", block_number)
        block = await self._chain().get_block(revision)
        if not block:
            return None
        return to_hex(len(block.get("transactions") or []))

    @rpc_method
    async def getUncleCountByBlockHash(self, block_hash: str) -> str:
        """No uncles on this chain."""
        return "0x0"

    @rpc_method
    async def getUncleCountByBlockNumber(self, block_number: str) -> str:
        """No uncles on this chain."""
        return "0x0"

    # ══════════════════════════════════════════════════════════════════════════
    #  TRANSACTIONS
    # ══════════════════════════════════════════════════════════════════════════

    @rpc_method
    async def getTransactionByHash(self, tx_hash: str) -> Optional[Dict]:
        """Returns transaction by id, exposing its first clause as to/value/input."""
        if not isinstance(tx_hash, str) or not VALID_BYTES32_PATTERN.match(tx_hash):
            raise RPCError.argument_missing_or_invalid("eth_getTransactionByHash", "transactionHash")
        tx = await self._chain().get_transaction(tx_hash)
        if not tx:
            return None
        meta = tx.get("meta") or {}
        index = await self._tx_index(tx["id"], meta.get("blockID"))
        return format_transaction(tx, index)

    @rpc_method
    async def getTransactionReceipt(self, tx_hash: str) -> Optional[Dict]:
        """
        Returns the receipt of a transaction by id.

        ``status`` is 0x0 for a reverted transaction; cumulative gas and
        bloom are not tracked by the chain and come back as zero values.
        """
        if not isinstance(tx_hash, str) or not VALID_BYTES32_PATTERN.match(tx_hash):
            raise RPCError.argument_missing_or_invalid("eth_getTransactionReceipt", "transactionHash")
        chain = self._chain()
        receipt = await chain.get_receipt(tx_hash)
        if not receipt:
            return None
        tx = await chain.get_transaction(tx_hash)
        meta = receipt.get("meta") or {}
        tx_receipts = await chain.get_block_receipts(meta["blockID"]) if meta.get("blockID") else []
        ids = [t.lower() for t, _ in tx_receipts]
        index = ids.index(tx_hash.lower()) if tx_hash.lower() in ids else 0
        first_log_index = sum(count_logs(r) for _, r in tx_receipts[:index])
        return format_receipt(receipt, tx, index, first_log_index)

    # ══════════════════════════════════════════════════════════════════════════
    #  EXECUTION
    # ══════════════════════════════════════════════════════════════════════════

    async def _explain(self, method: str, transaction: Dict, block_number: Any) -> VMOutput:
        if not isinstance(transaction, dict):
            raise RPCError.argument_missing_or_invalid(method, "transaction")
        revision = self._revision(method, "blockNumber", block_number)

        clause = {
            "to": transaction.get("to"),
            "value": transaction.get("value") or "0x0",
            "data": transaction.get("data") or transaction.get("input") or "0x",
        }
        gas = transaction.get("gas")
        output = await self._chain().explain(
            clause,
            caller=transaction.get("from"),
            gas=int(quantity(gas), 16) if gas is not None else None,
            revision=revision,
        )
        if output.reverted:
            source, message = select_failure_message(output)
            logger.debug("%s reverted (message from %s)", method, source.value)
            raise RPCError(
                RPCErrorCode.EXECUTION_ERROR,
                _revert_text(source, message),
                data=encode_revert_message(output, self._encode_string),
            )
        return output

    @rpc_method
    async def call(
        self,
        transaction: Dict,
        block_number: Union[str, int] = "latest",
    ) -> str:
        """
        Simulate a call and return its output data.

        A revert surfaces as EXECUTION_ERROR whose ``data`` is an
        ``Error(string)`` payload, whatever form the chain reported it in.
        """
        output = await self._explain("eth_call", transaction, block_number)
        return output.data or "0x"

    @rpc_method
    async def estimateGas(
        self,
        transaction: Dict,
        block_number: Union[str, int] = "latest",
    ) -> str:
        """Execution gas of a simulation plus the chain's intrinsic gas."""
        output = await self._explain("eth_estimateGas", transaction, block_number)
        data = transaction.get("data") or transaction.get("input") or "0x"
        return to_hex(output.gas_used + _intrinsic_gas(transaction.get("to"), data))

    # ══════════════════════════════════════════════════════════════════════════
    #  LOGS
    # ══════════════════════════════════════════════════════════════════════════

    @rpc_method
    async def getLogs(self, filter_params: Dict) -> List[Dict]:
        """
        Returns logs matching the given filter.

        ``blockHash`` takes precedence over ``fromBlock``/``toBlock``, which
        default to ``latest``.
        A range holding more than ``[filters] max_logs`` matching events is
        refused with LIMIT_EXCEEDED rather than truncated.
        """
        method = "eth_getLogs"
        if not isinstance(filter_params, dict):
            raise RPCError.argument_missing_or_invalid(method, "filter")

        chain = self._chain()
        config = self.context.config.filters

        block_hash = filter_params.get("blockHash")
        if block_hash is not None:
            if not isinstance(block_hash, str) or not VALID_BYTES32_PATTERN.match(block_hash):
                raise RPCError.argument_missing_or_invalid(method, "blockHash")
            block = await chain.get_block(block_hash)
            if not block:
                return []
            from_block = to_block = int(block["number"])
        else:
            from_block = await self._block_height(method, "fromBlock", filter_params.get("fromBlock", "latest"))
            to_block = await self._block_height(method, "toBlock", filter_params.get("toBlock", "latest"))
            if from_block is None or to_block is None or from_block > to_block:
                return []

        address = filter_params.get("address")
        topics = filter_params.get("topics")
        try:
            validate_filter_request(address, topics, config.max_criteria)
        except InvalidFilterError as e:
            logger.debug("eth_getLogs rejected: %s", e)
            raise RPCError.argument_missing_or_invalid(method, e.field)

        criteria = build_filter_criteria(address, topics)
        # One extra event tells a complete result from a truncated one.
        events = await chain.filter_events(criteria, from_block, to_block, 0, config.max_logs + 1)
        if len(events) > config.max_logs:
            raise RPCError(
                RPCErrorCode.LIMIT_EXCEEDED,
                f"query returned more than {config.max_logs} results",
            )

        return format_logs(events, await self._block_log_positions(events))
