"""In-memory stand-ins for the chain client and the notification channel."""

from __future__ import annotations

import asyncio
from typing import Any

from pumpwatch.core.errors import ChainReadError, DeliveryError
from pumpwatch.core.models import DeploymentEvent, PoolState
from pumpwatch.notifier.channels import NotificationChannel

TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x2222222222222222222222222222222222222222"
TOKEN_C = "0x3333333333333333333333333333333333333333"
WOKB = "0xe538905cf8410324e03a5a23c1c177a474d59b2b"

ONE_ETHER = 10**18


def make_log(addr: str, amount: int, block: int) -> dict[str, Any]:
    return {"addr": addr, "amount": amount, "blockNumber": block}


class FakeChain:
    """Scriptable stand-in for ``ChainClient``."""

    def __init__(self) -> None:
        self.head = 0
        self.logs: list[dict[str, Any]] = []
        self.log_queries: list[tuple[int, int]] = []
        self.fail_log_queries = 0
        self.token_fields: dict[str, dict[str, Any]] = {}
        self.failing_fields: set[tuple[str, str]] = set()
        self.pools: dict[str, PoolState] = {}
        self.failing_pools: set[str] = set()
        self.read_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_block_number(self) -> int:
        return self.head

    async def get_deployment_logs(self, from_block: int, to_block: int) -> list[Any]:
        self.log_queries.append((from_block, to_block))
        if self.fail_log_queries:
            self.fail_log_queries -= 1
            raise ChainReadError("eth_getLogs", TimeoutError("rpc timeout"))
        return [
            log for log in self.logs if from_block <= log["blockNumber"] <= to_block
        ]

    def decode_deployment(
        self, log: Any, from_block: int, to_block: int
    ) -> DeploymentEvent:
        return DeploymentEvent(
            address=log["addr"],
            amount=int(log["amount"]),
            block_number=log["blockNumber"],
            from_block=from_block,
            to_block=to_block,
        )

    async def _track(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.read_delay)
        finally:
            self.in_flight -= 1

    async def read_token(self, address: str, name: str) -> Any:
        await self._track()
        if (address.lower(), name) in self.failing_fields:
            raise ChainReadError(f"{name}@{address}", RuntimeError("execution reverted"))
        fields = self.token_fields.get(address.lower(), {})
        if name not in fields:
            raise ChainReadError(f"{name}@{address}", RuntimeError("execution reverted"))
        return fields[name]

    async def get_pool_state(self, pool_address: str) -> PoolState:
        # token0, token1 and getReserves go out together
        await asyncio.gather(self._track(), self._track(), self._track())
        key = pool_address.lower()
        if key in self.failing_pools or key not in self.pools:
            raise ChainReadError(f"getReserves@{pool_address}", RuntimeError("revert"))
        return self.pools[key]


class RecordingChannel(NotificationChannel):
    """Collects sent messages; ids in ``failing`` raise, ids in ``hanging`` never return."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []
        self.failing: set[int] = set()
        self.hanging: set[int] = set()

    async def send(self, subscriber_id: int, text: str) -> None:
        if subscriber_id in self.hanging:
            await asyncio.sleep(3600)
        if subscriber_id in self.failing:
            raise DeliveryError(f"Bot API 403: blocked by user {subscriber_id}")
        self.sent.append((subscriber_id, text))

    def sent_to(self, subscriber_id: int) -> list[str]:
        return [text for sid, text in self.sent if sid == subscriber_id]
