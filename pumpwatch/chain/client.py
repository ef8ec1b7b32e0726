"""Async facade over a synchronous web3 HTTP provider.

Every RPC runs in a worker thread under an explicit ``asyncio.wait_for``
timeout, so a hung node can never stall the event loop. Failures surface as
:class:`ChainReadError`; callers decide whether that means "unset", "skip"
or "retry next block".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from web3 import Web3
from web3.types import LogReceipt

from pumpwatch.chain.abi import (
    DEPLOYED_EVENT_SIGNATURE,
    FACTORY_ABI,
    TOKEN_ABI,
    TOKEN_READ_FIELDS,
)
from pumpwatch.config import ChainConfig
from pumpwatch.core.errors import ChainReadError
from pumpwatch.core.models import DeploymentEvent, PoolState

logger = logging.getLogger(__name__)


class ChainClient:
    """Reads factory logs, token getters and pool state."""

    def __init__(self, config: ChainConfig, w3: Web3 | None = None) -> None:
        self._config = config
        self._timeout = config.rpc_timeout_seconds
        self._w3 = w3 or Web3(
            Web3.HTTPProvider(
                config.rpc_url,
                request_kwargs={"timeout": config.rpc_timeout_seconds},
            )
        )
        self._factory_address = Web3.to_checksum_address(config.factory_address)
        self._factory = self._w3.eth.contract(
            address=self._factory_address, abi=FACTORY_ABI
        )
        self._deployed_topic = Web3.to_hex(Web3.keccak(text=DEPLOYED_EVENT_SIGNATURE))

    @property
    def factory_address(self) -> str:
        return self._factory_address

    async def _call(self, call: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run blocking call in thread with timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            raise ChainReadError(f"{call} timed out after {self._timeout}s", exc) from exc
        except Exception as exc:
            raise ChainReadError(call, exc) from exc

    def _token(self, address: str) -> Any:
        return self._w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=TOKEN_ABI
        )

    # ------------------------------------------------------------------
    # Blocks and logs
    # ------------------------------------------------------------------

    async def get_block_number(self) -> int:
        return await self._call("eth_blockNumber", lambda: self._w3.eth.block_number)

    async def get_deployment_logs(
        self, from_block: int, to_block: int
    ) -> list[LogReceipt]:
        """One batched ``eth_getLogs`` over the whole inclusive range."""
        params = {
            "address": self._factory_address,
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": [self._deployed_topic],
        }
        logs = await self._call(
            f"eth_getLogs[{from_block}-{to_block}]", self._w3.eth.get_logs, params
        )
        return list(logs)

    def decode_deployment(
        self, log: LogReceipt, from_block: int, to_block: int
    ) -> DeploymentEvent:
        """Decode a factory log; raises on a log that does not match the ABI."""
        parsed = self._factory.events.Deployed().process_log(log)
        address = parsed["args"]["addr"]
        amount = parsed["args"].get("amount") or 0
        if not Web3.is_address(address):
            raise ValueError(f"Deployed log carries invalid address {address!r}")
        return DeploymentEvent(
            address=Web3.to_checksum_address(address),
            amount=int(amount),
            block_number=int(parsed["blockNumber"]),
            from_block=from_block,
            to_block=to_block,
        )

    # ------------------------------------------------------------------
    # Token and pool reads
    # ------------------------------------------------------------------

    async def read_token(self, address: str, name: str) -> Any:
        """Call one zero-argument getter on a factory-deployed token."""
        if name not in TOKEN_READ_FIELDS:
            raise ValueError(f"Unsupported token getter: {name}")
        fn = getattr(self._token(address).functions, name)()
        return await self._call(f"{name}@{address[:10]}", fn.call)

    async def get_pool_state(self, pool_address: str) -> PoolState:
        """Read both token slots and reserves of a V2-style pool."""
        pool = self._token(pool_address)
        results = await asyncio.gather(
            self._call(f"token0@{pool_address[:10]}", pool.functions.token0().call),
            self._call(f"token1@{pool_address[:10]}", pool.functions.token1().call),
            self._call(
                f"getReserves@{pool_address[:10]}", pool.functions.getReserves().call
            ),
            return_exceptions=True,
        )
        # All three have settled; surface the first failure
        for result in results:
            if isinstance(result, BaseException):
                raise result
        token0, token1, reserves = results
        return PoolState(
            token0=str(token0),
            token1=str(token1),
            reserve0=int(reserves[0]),
            reserve1=int(reserves[1]),
        )
