"""
ethcompat RPC namespace tests

Tests for:
  - eth_* block, transaction, receipt and log methods over an in-memory chain
  - eth_call / eth_estimateGas revert handling
  - net_* and web3_* methods
"""

import json

import pytest

from ethcompat.chain.types import VMOutput
from ethcompat.constants import ZERO_BYTES8, ZERO_BYTES32, ZERO_BYTES256
from ethcompat.rpc.context import ProviderContext
from ethcompat.rpc.modules import EthModule, NetModule, Web3Module
from ethcompat.rpc.server import RPCError, RPCErrorCode, RPCServer
from ethcompat.translate import decode_revert_message

from conftest import (
    APPROVAL_TOPIC,
    GENESIS_ID,
    ORIGIN,
    OTHER_CONTRACT,
    TOKEN,
    TRANSFER_TOPIC,
    block_id,
    transfer_tx,
    tx_id,
)


@pytest.fixture
def eth(context):
    return EthModule(context)


def assert_invalid(exc_info, method, param):
    assert exc_info.value.code == RPCErrorCode.INVALID_PARAMS
    assert exc_info.value.message == f"Method {method}: argument '{param}' missing or invalid"


# ===================================================================
# SECTION 1: Chain info
# ===================================================================

class TestChainInfo:

    @pytest.mark.asyncio
    async def test_chain_id(self, eth):
        assert await eth.chainId() == "0x4a"

    @pytest.mark.asyncio
    async def test_chain_id_from_config(self, eth, config):
        config.provider.chain_id = 39
        assert await eth.chainId() == "0x27"

    @pytest.mark.asyncio
    async def test_chain_id_from_genesis_tag(self, eth, chain, monkeypatch):
        monkeypatch.setattr(type(chain), "genesis_id", property(lambda self: "0x" + "00" * 31 + "27"))
        assert await eth.chainId() == "0x27"

    @pytest.mark.asyncio
    async def test_block_number(self, eth):
        assert await eth.blockNumber() == "0x2"

    @pytest.mark.asyncio
    async def test_static_answers(self, eth):
        assert await eth.syncing() is False
        assert await eth.accounts() == []
        assert await eth.gasPrice() == "0x0"

    @pytest.mark.asyncio
    async def test_chain_not_configured(self):
        eth = EthModule(ProviderContext())
        with pytest.raises(RPCError) as exc:
            await eth.blockNumber()
        assert exc.value.code == RPCErrorCode.INTERNAL_ERROR


# ===================================================================
# SECTION 2: Blocks
# ===================================================================

class TestGetBlock:

    @pytest.mark.asyncio
    async def test_by_number_fields(self, eth):
        block = await eth.getBlockByNumber("0x1")
        assert block["number"] == "0x1"
        assert block["hash"] == block_id(1)
        assert block["parentHash"] == GENESIS_ID
        assert block["transactions"] == [tx_id(1)]
        assert block["gasLimit"] == hex(10_000_000)
        assert block["size"] == "0xaa"

    @pytest.mark.asyncio
    async def test_zero_sentinels(self, eth):
        block = await eth.getBlockByNumber("0x1")
        assert block["difficulty"] == "0x0"
        assert block["totalDifficulty"] == "0x0"
        assert block["extraData"] == "0x"
        assert block["nonce"] == ZERO_BYTES8
        assert block["sha3Uncles"] == ZERO_BYTES32
        assert block["logsBloom"] == ZERO_BYTES256
        assert len(block["logsBloom"]) == 2 + 512
        assert block["uncles"] == []

    @pytest.mark.asyncio
    async def test_earliest(self, eth):
        block = await eth.getBlockByNumber("earliest")
        assert block["hash"] == GENESIS_ID

    @pytest.mark.asyncio
    async def test_latest(self, eth):
        block = await eth.getBlockByNumber("latest")
        assert block["number"] == "0x2"

    @pytest.mark.asyncio
    async def test_by_id_through_number_method(self, eth):
        block = await eth.getBlockByNumber(GENESIS_ID)
        assert block["number"] == "0x0"

    @pytest.mark.asyncio
    async def test_pending_rejected(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.getBlockByNumber("pending")
        assert_invalid(exc, "eth_getBlockByNumber", "blockNumber")

    @pytest.mark.asyncio
    async def test_unknown_number(self, eth):
        assert await eth.getBlockByNumber("0x10") is None

    @pytest.mark.asyncio
    async def test_full_transactions(self, eth):
        block = await eth.getBlockByNumber("0x2", True)
        assert [t["hash"] for t in block["transactions"]] == [tx_id(2), tx_id(3)]
        assert block["transactions"][1]["transactionIndex"] == "0x1"

    @pytest.mark.asyncio
    async def test_by_hash(self, eth):
        block = await eth.getBlockByHash(block_id(2))
        assert block["number"] == "0x2"

    @pytest.mark.asyncio
    async def test_by_hash_unknown(self, eth):
        assert await eth.getBlockByHash("0x" + "ee" * 32) is None

    @pytest.mark.asyncio
    async def test_by_hash_malformed(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.getBlockByHash("0x12")
        assert_invalid(exc, "eth_getBlockByHash", "blockHash")

    @pytest.mark.asyncio
    async def test_transaction_counts(self, eth):
        assert await eth.getBlockTransactionCountByNumber("0x2") == "0x2"
        assert await eth.getBlockTransactionCountByHash(GENESIS_ID) == "0x0"
        assert await eth.getBlockTransactionCountByNumber("0x99") is None

    @pytest.mark.asyncio
    async def test_uncle_counts(self, eth):
        assert await eth.getUncleCountByBlockHash(GENESIS_ID) == "0x0"
        assert await eth.getUncleCountByBlockNumber("latest") == "0x0"


# ===================================================================
# SECTION 3: Transactions and receipts
# ===================================================================

class TestTransactions:

    @pytest.mark.asyncio
    async def test_transfer(self, eth):
        tx = await eth.getTransactionByHash(tx_id(3))
        assert tx["hash"] == tx_id(3)
        assert tx["nonce"] == "0x0"
        assert tx["from"] == ORIGIN
        assert tx["to"] == TOKEN
        assert tx["input"] == "0xa9059cbb"
        assert tx["value"] == "0x0"
        assert tx["gas"] == hex(80_000)
        assert tx["blockHash"] == block_id(2)
        assert tx["blockNumber"] == "0x2"
        assert tx["transactionIndex"] == "0x1"

    @pytest.mark.asyncio
    async def test_multi_clause_exposes_first(self, eth):
        tx = await eth.getTransactionByHash(tx_id(2))
        assert tx["to"] is None
        assert tx["value"] == hex(1000)
        assert tx["input"] == "0x6080"

    @pytest.mark.asyncio
    async def test_unknown(self, eth):
        assert await eth.getTransactionByHash("0x" + "ee" * 32) is None

    @pytest.mark.asyncio
    async def test_malformed(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.getTransactionByHash("pending")
        assert_invalid(exc, "eth_getTransactionByHash", "transactionHash")


class TestReceipts:

    @pytest.mark.asyncio
    async def test_transfer_receipt(self, eth):
        receipt = await eth.getTransactionReceipt(tx_id(1))
        assert receipt["transactionHash"] == tx_id(1)
        assert receipt["status"] == "0x1"
        assert receipt["from"] == ORIGIN
        assert receipt["to"] == TOKEN
        assert receipt["gasUsed"] == hex(36_518)
        assert receipt["cumulativeGasUsed"] == "0x0"
        assert receipt["logsBloom"] == ZERO_BYTES256
        assert receipt["contractAddress"] is None
        assert len(receipt["logs"]) == 1
        log = receipt["logs"][0]
        assert log["address"] == TOKEN
        assert log["topics"][0] == TRANSFER_TOPIC
        assert log["logIndex"] == "0x0"
        assert log["transactionHash"] == tx_id(1)
        assert log["blockHash"] == block_id(1)

    @pytest.mark.asyncio
    async def test_deploy_receipt(self, eth):
        receipt = await eth.getTransactionReceipt(tx_id(2))
        assert receipt["contractAddress"] == OTHER_CONTRACT
        assert receipt["to"] is None
        assert receipt["transactionIndex"] == "0x0"

    @pytest.mark.asyncio
    async def test_reverted_receipt(self, eth, chain):
        chain.add_block([transfer_tx(9, reverted=True)])
        receipt = await eth.getTransactionReceipt(tx_id(9))
        assert receipt["status"] == "0x0"
        assert receipt["logs"] == []

    @pytest.mark.asyncio
    async def test_unknown(self, eth):
        assert await eth.getTransactionReceipt("0x" + "ee" * 32) is None


# ===================================================================
# SECTION 4: Execution
# ===================================================================

class TestCall:

    CALL = {"from": ORIGIN, "to": TOKEN, "data": "0xa9059cbb"}

    @pytest.mark.asyncio
    async def test_returns_output_data(self, eth, chain):
        assert await eth.call(self.CALL) == "0x" + "00" * 31 + "2a"
        sent = chain.explain_calls[0]
        assert sent["clause"] == {"to": TOKEN, "value": "0x0", "data": "0xa9059cbb"}
        assert sent["caller"] == ORIGIN
        assert sent["revision"] is None

    @pytest.mark.asyncio
    async def test_revision_and_gas(self, eth, chain):
        await eth.call({**self.CALL, "gas": "0x5208"}, "0x1")
        assert chain.explain_calls[0]["revision"] == 1
        assert chain.explain_calls[0]["gas"] == 21_000

    @pytest.mark.asyncio
    async def test_input_alias(self, eth, chain):
        await eth.call({"to": TOKEN, "input": "0x1234"})
        assert chain.explain_calls[0]["clause"]["data"] == "0x1234"

    @pytest.mark.asyncio
    async def test_revert_reason(self, eth, chain):
        chain.explain_result = VMOutput(reverted=True, revert_reason="Insufficient balance")
        with pytest.raises(RPCError) as exc:
            await eth.call(self.CALL)
        assert exc.value.code == RPCErrorCode.EXECUTION_ERROR
        assert exc.value.message == "execution reverted: Insufficient balance"
        assert exc.value.data.startswith("0x08c379a0")
        assert decode_revert_message(exc.value.data) == "Insufficient balance"

    @pytest.mark.asyncio
    async def test_revert_message_follows_payload_source(self, eth, chain):
        chain.explain_result = VMOutput(reverted=True, vm_error="out of gas", data="0x1234")
        with pytest.raises(RPCError) as exc:
            await eth.call(self.CALL)
        assert exc.value.message == "execution reverted: out of gas"
        assert decode_revert_message(exc.value.data) == "out of gas"

    @pytest.mark.asyncio
    async def test_revert_with_encoded_data(self, eth, chain):
        first = VMOutput(reverted=True, revert_reason="Not owner")
        chain.explain_result = first
        with pytest.raises(RPCError) as exc:
            await eth.call(self.CALL)
        payload = exc.value.data

        chain.explain_result = VMOutput(reverted=True, data=payload)
        with pytest.raises(RPCError) as exc:
            await eth.call(self.CALL)
        assert exc.value.data == payload
        assert exc.value.message == "execution reverted"

    @pytest.mark.asyncio
    async def test_pending_rejected(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.call(self.CALL, "pending")
        assert_invalid(exc, "eth_call", "blockNumber")

    @pytest.mark.asyncio
    async def test_non_object_rejected(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.call("0x1234")
        assert_invalid(exc, "eth_call", "transaction")


class TestEstimateGas:

    @pytest.mark.asyncio
    async def test_call_plus_intrinsic(self, eth):
        # 5000 base + 16000 clause + 4 non-zero bytes * 68
        gas = await eth.estimateGas({"to": TOKEN, "data": "0xa9059cbb"})
        assert gas == hex(21_000 + 5_000 + 16_000 + 4 * 68)

    @pytest.mark.asyncio
    async def test_contract_creation(self, eth):
        # 5000 base + 48000 creation + 2 zero bytes * 4
        gas = await eth.estimateGas({"data": "0x0000"})
        assert gas == hex(21_000 + 5_000 + 48_000 + 2 * 4)

    @pytest.mark.asyncio
    async def test_revert(self, eth, chain):
        chain.explain_result = VMOutput(reverted=True, vm_error="insufficient energy")
        with pytest.raises(RPCError) as exc:
            await eth.estimateGas({"to": TOKEN})
        assert exc.value.code == RPCErrorCode.EXECUTION_ERROR
        assert decode_revert_message(exc.value.data) == "insufficient energy"


# ===================================================================
# SECTION 5: Logs
# ===================================================================

class TestGetLogs:

    @pytest.mark.asyncio
    async def test_address_and_topics(self, eth, chain):
        logs = await eth.getLogs({
            "fromBlock": "earliest",
            "address": TOKEN,
            "topics": [TRANSFER_TOPIC],
        })
        assert [l["transactionHash"] for l in logs] == [tx_id(1), tx_id(3)]
        assert chain.filter_calls[0][0] == [{"address": TOKEN, "topic0": TRANSFER_TOPIC}]

    @pytest.mark.asyncio
    async def test_address_only(self, eth):
        logs = await eth.getLogs({"fromBlock": "0x0", "toBlock": "latest", "address": OTHER_CONTRACT})
        assert len(logs) == 1
        assert logs[0]["topics"] == [APPROVAL_TOPIC]

    @pytest.mark.asyncio
    async def test_topics_only(self, eth):
        logs = await eth.getLogs({"fromBlock": "earliest", "topics": [APPROVAL_TOPIC]})
        assert [l["address"] for l in logs] == [OTHER_CONTRACT]

    @pytest.mark.asyncio
    async def test_address_list_with_per_address_topics(self, eth, chain):
        logs = await eth.getLogs({
            "fromBlock": "earliest",
            "address": [TOKEN, OTHER_CONTRACT],
            "topics": [[TRANSFER_TOPIC], [APPROVAL_TOPIC]],
        })
        assert len(logs) == 3
        assert chain.filter_calls[0][0] == [
            {"address": TOKEN, "topic0": TRANSFER_TOPIC},
            {"address": OTHER_CONTRACT, "topic0": APPROVAL_TOPIC},
        ]

    @pytest.mark.asyncio
    async def test_log_index_per_block(self, eth):
        logs = await eth.getLogs({"fromBlock": "earliest"})
        assert [(l["blockNumber"], l["logIndex"]) for l in logs] == [
            ("0x1", "0x0"),
            ("0x2", "0x0"),
            ("0x2", "0x1"),
        ]

    @pytest.mark.asyncio
    async def test_default_range_is_head(self, eth, chain):
        await eth.getLogs({})
        criteria, from_block, to_block, offset, limit = chain.filter_calls[0]
        assert (from_block, to_block, offset) == (2, 2, 0)
        assert limit == 10_001

    @pytest.mark.asyncio
    async def test_block_hash(self, eth, chain):
        logs = await eth.getLogs({"blockHash": block_id(1)})
        assert len(logs) == 1
        assert chain.filter_calls[0][1:3] == (1, 1)

    @pytest.mark.asyncio
    async def test_block_hash_unknown(self, eth, chain):
        assert await eth.getLogs({"blockHash": "0x" + "ee" * 32}) == []
        assert chain.filter_calls == []

    @pytest.mark.asyncio
    async def test_inverted_range(self, eth, chain):
        assert await eth.getLogs({"fromBlock": "0x2", "toBlock": "0x1"}) == []
        assert chain.filter_calls == []

    @pytest.mark.asyncio
    async def test_unknown_block_id_range(self, eth):
        assert await eth.getLogs({"fromBlock": "0x" + "ee" * 32}) == []

    @pytest.mark.asyncio
    async def test_pending_rejected(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.getLogs({"fromBlock": "pending"})
        assert_invalid(exc, "eth_getLogs", "fromBlock")

    @pytest.mark.asyncio
    async def test_five_topics_rejected(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.getLogs({"topics": [TRANSFER_TOPIC] * 5})
        assert_invalid(exc, "eth_getLogs", "topics")

    @pytest.mark.asyncio
    async def test_topics_longer_than_address_list(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.getLogs({"address": [TOKEN], "topics": [[TRANSFER_TOPIC], [APPROVAL_TOPIC]]})
        assert_invalid(exc, "eth_getLogs", "topics")

    @pytest.mark.asyncio
    async def test_too_many_results_refused(self, eth, chain, config):
        config.filters.max_logs = 2
        with pytest.raises(RPCError) as exc:
            await eth.getLogs({"fromBlock": "earliest"})
        assert exc.value.code == RPCErrorCode.LIMIT_EXCEEDED
        assert exc.value.message == "query returned more than 2 results"
        assert chain.filter_calls[0][4] == 3

    @pytest.mark.asyncio
    async def test_results_at_limit(self, eth, config):
        config.filters.max_logs = 3
        assert len(await eth.getLogs({"fromBlock": "earliest"})) == 3

    @pytest.mark.asyncio
    async def test_filter_not_object(self, eth):
        with pytest.raises(RPCError) as exc:
            await eth.getLogs([])
        assert_invalid(exc, "eth_getLogs", "filter")


class TestLogPositions:

    def pair(self, log):
        return log["logIndex"], log["transactionIndex"]

    @pytest.mark.asyncio
    async def test_same_log_same_position_everywhere(self, eth):
        unfiltered = [l for l in await eth.getLogs({"fromBlock": "earliest"}) if l["transactionHash"] == tx_id(3)]
        filtered = [l for l in await eth.getLogs({"fromBlock": "earliest", "address": TOKEN})
                    if l["transactionHash"] == tx_id(3)]
        receipt = await eth.getTransactionReceipt(tx_id(3))

        assert self.pair(unfiltered[0]) == ("0x1", "0x1")
        assert self.pair(filtered[0]) == ("0x1", "0x1")
        assert self.pair(receipt["logs"][0]) == ("0x1", "0x1")

    @pytest.mark.asyncio
    async def test_block_hash_query_matches_receipts(self, eth):
        logs = await eth.getLogs({"blockHash": block_id(2)})
        receipts = [await eth.getTransactionReceipt(tx_id(n)) for n in (2, 3)]
        from_receipts = [self.pair(l) for r in receipts for l in r["logs"]]
        assert [self.pair(l) for l in logs] == from_receipts == [("0x0", "0x0"), ("0x1", "0x1")]

    @pytest.mark.asyncio
    async def test_repeated_identical_events(self, eth, chain):
        tx = transfer_tx(7)
        event = tx["receipt"]["outputs"][0]["events"][0]
        tx["receipt"]["outputs"][0]["events"] = [event, dict(event)]
        chain.add_block([transfer_tx(6), tx])

        logs = await eth.getLogs({"fromBlock": "0x3", "address": TOKEN})
        assert [self.pair(l) for l in logs] == [("0x0", "0x0"), ("0x1", "0x1"), ("0x2", "0x1")]

    @pytest.mark.asyncio
    async def test_event_missing_from_receipts(self, eth, chain):
        chain.events.append({**chain.events[0], "data": "0xdead"})
        with pytest.raises(ValueError):
            await eth.getLogs({"blockHash": block_id(1)})


# ===================================================================
# SECTION 6: net_* / web3_*
# ===================================================================

class TestNetModule:

    @pytest.mark.asyncio
    async def test_version(self, context):
        assert await NetModule(context).version() == "74"

    @pytest.mark.asyncio
    async def test_listening_and_peers(self, context):
        net = NetModule(context)
        assert await net.listening() is True
        assert await net.peerCount() == "0x0"


class TestWeb3Module:

    @pytest.mark.asyncio
    async def test_client_version(self, context):
        version = await Web3Module(context).clientVersion()
        assert version == "ethcompat/1.2.0/thor-main/python"

    @pytest.mark.asyncio
    async def test_sha3(self, context):
        digest = await Web3Module(context).sha3("0x68656c6c6f20776f726c64")
        assert digest == "0x47173285a8d7341e5e972fc677286384f802f8ef42a5ec5f03bbfa254cb01fad"

    @pytest.mark.asyncio
    async def test_sha3_invalid(self, context):
        with pytest.raises(RPCError) as exc:
            await Web3Module(context).sha3("0xzz")
        assert_invalid(exc, "web3_sha3", "data")


# ===================================================================
# SECTION 7: Through the server
# ===================================================================

class TestDispatch:

    @pytest.fixture
    def server(self, context):
        server = RPCServer()
        for module in (EthModule(context), NetModule(context), Web3Module(context)):
            server.register_module(module)
        return server

    @pytest.mark.asyncio
    async def test_pending_error_shape(self, server):
        raw = await server.handle_request({
            "jsonrpc": "2.0", "id": 1,
            "method": "eth_getBlockByNumber", "params": ["pending", False],
        })
        error = json.loads(raw)["error"]
        assert error["code"] == -32602
        assert "eth_getBlockByNumber" in error["message"]
        assert "blockNumber" in error["message"]

    @pytest.mark.asyncio
    async def test_not_found_is_null(self, server):
        raw = await server.handle_request({
            "jsonrpc": "2.0", "id": 2,
            "method": "eth_getTransactionByHash", "params": ["0x" + "ee" * 32],
        })
        assert json.loads(raw) == {"jsonrpc": "2.0", "id": 2, "result": None}

    @pytest.mark.asyncio
    async def test_revert_error_shape(self, server, chain):
        chain.explain_result = VMOutput(reverted=True, revert_reason="nope")
        raw = await server.handle_request({
            "jsonrpc": "2.0", "id": 3,
            "method": "eth_call", "params": [{"to": TOKEN}, "latest"],
        })
        error = json.loads(raw)["error"]
        assert error["code"] == 3
        assert decode_revert_message(error["data"]) == "nope"

    @pytest.mark.asyncio
    async def test_wrong_arity(self, server):
        raw = await server.handle_request({
            "jsonrpc": "2.0", "id": 4, "method": "eth_blockNumber", "params": ["extra"],
        })
        assert json.loads(raw)["error"]["code"] == -32602

    @pytest.mark.asyncio
    async def test_all_namespaces_registered(self, server):
        methods = server.get_methods()
        for name in ("eth_chainId", "eth_getLogs", "net_version", "web3_sha3"):
            assert name in methods
