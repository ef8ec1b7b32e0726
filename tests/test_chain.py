"""Offline tests for the web3-backed chain client."""

from __future__ import annotations

import time
from types import SimpleNamespace
from typing import Any

import pytest
from hexbytes import HexBytes
from web3 import Web3

from fakes import FakeChain, RecordingChannel
from pumpwatch.chain import ChainClient
from pumpwatch.chain.abi import DEPLOYED_EVENT_SIGNATURE
from pumpwatch.config import ChainConfig
from pumpwatch.core.errors import ChainReadError
from pumpwatch.notifier.fanout import NotificationFanout
from pumpwatch.pipeline import Deduplicator, EventIngestor, MetadataEnricher
from pumpwatch.storage import SubscriberRegistry

DEPLOYED = "0xabababababababababababababababababababab"
FACTORY = "0xC4cEBDf3D4bBF14812DcCB1ccB20AB26EA547f44"


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------


def _factory_log(
    address: str = DEPLOYED,
    amount: int = 10**18,
    block: int = 123,
    signature: str = DEPLOYED_EVENT_SIGNATURE,
) -> dict[str, Any]:
    return {
        "address": Web3.to_checksum_address(FACTORY),
        "topics": [
            HexBytes(Web3.keccak(text=signature)),
            HexBytes(bytes(12) + bytes.fromhex(address[2:])),
        ],
        "data": HexBytes(amount.to_bytes(32, "big")),
        "blockNumber": block,
        "blockHash": HexBytes(b"\x01" * 32),
        "transactionHash": HexBytes(b"\x02" * 32),
        "transactionIndex": 0,
        "logIndex": 0,
    }


class _StubContract:
    """Zero-argument getters answering from *values*; names in *failing* raise."""

    def __init__(self, values: dict[str, Any], failing: tuple[str, ...] = ()) -> None:
        self.called: list[str] = []
        self._values = values
        self._failing = failing
        self.functions = SimpleNamespace(**{name: self._getter(name) for name in values})

    def _getter(self, name: str):
        def call() -> Any:
            self.called.append(name)
            if name in self._failing:
                raise ValueError(f"{name}: execution reverted")
            return self._values[name]

        return lambda: SimpleNamespace(call=call)


class _StubWeb3:
    def __init__(self, contract: _StubContract) -> None:
        self.log_params: list[dict[str, Any]] = []
        self.eth = SimpleNamespace(
            contract=lambda address, abi: contract,
            get_logs=self._get_logs,
            block_number=77,
        )

    def _get_logs(self, params: dict[str, Any]) -> list[Any]:
        self.log_params.append(params)
        return []


class _CannedLogClient(ChainClient):
    """Real decoding over a fixed set of raw logs."""

    def __init__(self, logs: list[dict[str, Any]]) -> None:
        super().__init__(ChainConfig(), w3=Web3())
        self.logs = logs

    async def get_deployment_logs(self, from_block: int, to_block: int) -> list[Any]:
        return [log for log in self.logs if from_block <= log["blockNumber"] <= to_block]


@pytest.fixture
def client() -> ChainClient:
    return ChainClient(ChainConfig(), w3=Web3())


# ---------------------------------------------------------------
# Log decoding
# ---------------------------------------------------------------


class TestDecodeDeployment:
    def test_factory_log(self, client: ChainClient) -> None:
        event = client.decode_deployment(_factory_log(), 120, 125)

        assert event.address == Web3.to_checksum_address(DEPLOYED)
        assert event.amount == 10**18
        assert event.block_number == 123
        assert (event.from_block, event.to_block) == (120, 125)

    def test_zero_amount(self, client: ChainClient) -> None:
        event = client.decode_deployment(_factory_log(amount=0), 1, 1)
        assert event.amount == 0

    def test_foreign_topic_raises(self, client: ChainClient) -> None:
        log = _factory_log(signature="Transfer(address,address,uint256)")
        with pytest.raises(Exception):
            client.decode_deployment(log, 1, 1)

    @pytest.mark.asyncio
    async def test_ingestor_counts_foreign_log_as_malformed(
        self, chain: FakeChain, fanout: NotificationFanout,
        subscribers: SubscriberRegistry, channel: RecordingChannel,
    ) -> None:
        subscribers.subscribe(1)
        source = _CannedLogClient(
            [
                _factory_log(signature="Transfer(address,address,uint256)", block=101),
                _factory_log(block=101),
            ]
        )
        ingestor = EventIngestor(source, Deduplicator(), MetadataEnricher(chain), fanout)

        await ingestor.on_block(100)
        report = await ingestor.on_block(101)

        assert report is not None
        assert report.malformed == 1
        assert report.processed == 1
        assert Web3.to_checksum_address(DEPLOYED) in channel.sent_to(1)[0]


# ---------------------------------------------------------------
# RPC calls
# ---------------------------------------------------------------


class TestChainCalls:
    @pytest.mark.asyncio
    async def test_slow_call_times_out(self) -> None:
        client = ChainClient(ChainConfig(rpc_timeout_seconds=0.05), w3=Web3())
        with pytest.raises(ChainReadError, match="timed out"):
            await client._call("slow", time.sleep, 0.5)

    @pytest.mark.asyncio
    async def test_rpc_error_is_wrapped(self, client: ChainClient) -> None:
        def boom() -> None:
            raise ConnectionError("connection refused")

        with pytest.raises(ChainReadError) as excinfo:
            await client._call("eth_blockNumber", boom)
        assert isinstance(excinfo.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_log_query_filters_on_factory_and_topic(self) -> None:
        w3 = _StubWeb3(_StubContract({}))
        client = ChainClient(ChainConfig(factory_address=FACTORY.lower()), w3=w3)

        assert await client.get_deployment_logs(10, 12) == []

        (params,) = w3.log_params
        assert params["address"] == Web3.to_checksum_address(FACTORY)
        assert (params["fromBlock"], params["toBlock"]) == (10, 12)
        assert params["topics"] == [Web3.to_hex(Web3.keccak(text="Deployed(address,uint256)"))]

    @pytest.mark.asyncio
    async def test_block_number(self) -> None:
        client = ChainClient(ChainConfig(), w3=_StubWeb3(_StubContract({})))
        assert await client.get_block_number() == 77

    @pytest.mark.asyncio
    async def test_pool_state_maps_reserves(self) -> None:
        pool = _StubContract(
            {
                "token0": "0x1111111111111111111111111111111111111111",
                "token1": "0x2222222222222222222222222222222222222222",
                "getReserves": (1_000, 500, 1_700_000_000),
            }
        )
        client = ChainClient(ChainConfig(), w3=_StubWeb3(pool))

        state = await client.get_pool_state(DEPLOYED)

        assert state.token0 == "0x1111111111111111111111111111111111111111"
        assert state.token1 == "0x2222222222222222222222222222222222222222"
        assert (state.reserve0, state.reserve1) == (1_000, 500)

    @pytest.mark.asyncio
    async def test_pool_failure_waits_for_sibling_reads(self) -> None:
        pool = _StubContract(
            {"token0": DEPLOYED, "token1": DEPLOYED, "getReserves": (1, 1, 0)},
            failing=("token0", "getReserves"),
        )
        client = ChainClient(ChainConfig(), w3=_StubWeb3(pool))

        with pytest.raises(ChainReadError, match="token0"):
            await client.get_pool_state(DEPLOYED)
        assert sorted(pool.called) == ["getReserves", "token0", "token1"]

    @pytest.mark.asyncio
    async def test_unknown_getter_rejected(self, client: ChainClient) -> None:
        with pytest.raises(ValueError):
            await client.read_token(DEPLOYED, "owner")
