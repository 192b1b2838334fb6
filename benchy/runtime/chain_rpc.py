"""
Chain RPC capability and its JSON-RPC-over-HTTP implementation.

Only the handful of read-only calls the orchestrator needs are exposed:
client version (as a connectivity check), head block, peer count, pending
transactions and balances. Every failure surfaces as
:class:`~benchy.core.errors.ChainRPCError`.
"""

from __future__ import annotations

import itertools
from decimal import Decimal
from typing import Any, Protocol

import aiohttp
from loguru import logger

from benchy.core.errors import ChainRPCError
from benchy.datastructures.identity import Address
from benchy.datastructures.type_aliases import (
    BlockNumber,
    EtherAmount,
    GweiAmount,
    PeerCount,
    PendingTxCount,
    UrlString,
    WeiAmount,
)

rpc_log = logger

WEI_PER_ETHER = Decimal(10) ** 18
WEI_PER_GWEI = Decimal(10) ** 9


def wei_to_ether(wei: WeiAmount) -> EtherAmount:
    return float(Decimal(wei) / WEI_PER_ETHER)


def wei_to_gwei(wei: WeiAmount) -> GweiAmount:
    return float(Decimal(wei) / WEI_PER_GWEI)


def parse_quantity(value: Any) -> int:
    """Decode a JSON-RPC hex quantity (``"0x1a"``)."""
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError(f"Not a hex quantity: {value!r}")
    return int(value, 16) if len(value) > 2 else 0


class ChainRPC(Protocol):
    """Read-only chain queries against one node endpoint."""

    async def connect(self, endpoint: UrlString) -> None: ...

    async def latest_block_number(self, endpoint: UrlString) -> BlockNumber: ...

    async def peer_count(self, endpoint: UrlString) -> PeerCount: ...

    async def pending_tx_count(self, endpoint: UrlString) -> PendingTxCount: ...

    async def balance(self, endpoint: UrlString, address: Address) -> WeiAmount: ...


class JsonRpcClient:
    """ChainRPC implementation over aiohttp.

    One ``ClientSession`` is opened lazily and shared across endpoints;
    call :meth:`close` (or use ``async with``) when done.
    """

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> JsonRpcClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def call(self, endpoint: UrlString, method: str, *params: Any) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }
        try:
            async with self._get_session().post(endpoint, json=payload) as response:
                if response.status != 200:
                    raise ChainRPCError(
                        f"{endpoint} answered HTTP {response.status}",
                        operation=method,
                    )
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise ChainRPCError(
                f"Request to {endpoint} failed: {exc}", operation=method
            ) from exc
        except ValueError as exc:
            raise ChainRPCError(
                f"Invalid JSON from {endpoint}: {exc}", operation=method
            ) from exc

        if not isinstance(body, dict):
            raise ChainRPCError(f"Malformed response from {endpoint}", operation=method)
        error = body.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ChainRPCError(f"{endpoint}: {message}", operation=method)
        rpc_log.trace("{} {} -> {}", endpoint, method, body.get("result"))
        return body.get("result")

    async def _quantity(self, endpoint: UrlString, method: str, *params: Any) -> int:
        result = await self.call(endpoint, method, *params)
        try:
            return parse_quantity(result)
        except ValueError as exc:
            raise ChainRPCError(str(exc), operation=method) from exc

    async def connect(self, endpoint: UrlString) -> None:
        version = await self.call(endpoint, "web3_clientVersion")
        rpc_log.debug("Connected to {} ({})", endpoint, version)

    async def latest_block_number(self, endpoint: UrlString) -> BlockNumber:
        return await self._quantity(endpoint, "eth_blockNumber")

    async def peer_count(self, endpoint: UrlString) -> PeerCount:
        return await self._quantity(endpoint, "net_peerCount")

    async def pending_tx_count(self, endpoint: UrlString) -> PendingTxCount:
        result = await self.call(endpoint, "txpool_status")
        if not isinstance(result, dict):
            raise ChainRPCError(
                f"Malformed txpool_status from {endpoint}", operation="txpool_status"
            )
        try:
            return parse_quantity(result.get("pending", "0x0"))
        except ValueError as exc:
            raise ChainRPCError(str(exc), operation="txpool_status") from exc

    async def balance(self, endpoint: UrlString, address: Address) -> WeiAmount:
        return await self._quantity(
            endpoint, "eth_getBalance", address.checksum(), "latest"
        )
