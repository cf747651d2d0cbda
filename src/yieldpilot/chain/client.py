"""Read-only chain access plus the one signed call the agent makes."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, TypeVar

from eth_account import Account
from web3 import AsyncWeb3, Web3

from ..errors import ChainError
from .abis import ORACLE_ABI, POOL_ABI, TASK_REGISTRY_ABI

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ReserveData:
    """Fields of a pool reserve that the market provider consumes.

    Rates are ray-scaled (10^27) per-second values.
    """

    configuration: int
    liquidity_index: int
    current_liquidity_rate: int
    variable_borrow_index: int
    current_variable_borrow_rate: int
    current_stable_borrow_rate: int
    last_update_timestamp: int
    id: int
    a_token_address: str
    stable_debt_token_address: str
    variable_debt_token_address: str
    interest_rate_strategy_address: str

    @classmethod
    def from_tuple(cls, raw: Any) -> "ReserveData":
        """Build from the tuple web3 returns for ``getReserveData``."""
        configuration = raw[0]
        if isinstance(configuration, (tuple, list)):
            configuration = configuration[0]
        return cls(
            configuration=int(configuration),
            liquidity_index=int(raw[1]),
            current_liquidity_rate=int(raw[2]),
            variable_borrow_index=int(raw[3]),
            current_variable_borrow_rate=int(raw[4]),
            current_stable_borrow_rate=int(raw[5]),
            last_update_timestamp=int(raw[6]),
            id=int(raw[7]),
            a_token_address=str(raw[8]),
            stable_debt_token_address=str(raw[9]),
            variable_debt_token_address=str(raw[10]),
            interest_rate_strategy_address=str(raw[11]),
        )


class ChainClient:
    """Thin wrapper over AsyncWeb3 with a timeout on every call.

    Every failure surfaces as ChainError so handlers have a single type
    to catch.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str | None = None,
        timeout: float = 15.0,
        web3: AsyncWeb3 | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            rpc_url: JSON-RPC endpoint.
            private_key: Agent key used for the agent address and signing.
            timeout: Seconds allowed for any single RPC call.
            web3: Preconfigured AsyncWeb3 instance (tests).
        """
        self.rpc_url = rpc_url
        self._timeout = timeout
        self._w3 = web3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self._account = None
        if private_key:
            try:
                self._account = Account.from_key(private_key)
            except Exception as e:
                logger.error("Invalid EVM private key: %s", e)
                self._account = None

    @property
    def agent_address(self) -> str | None:
        """Address derived from the configured private key."""
        return self._account.address if self._account else None

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ChainError(f"{operation} timed out after {self._timeout}s") from e
        except Exception as e:
            raise ChainError(f"{operation} failed: {e}") from e

    def _contract(self, address: str, abi: list[dict[str, Any]]):
        return self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def get_reserve_data(self, pool_address: str, asset_address: str) -> ReserveData:
        """Read ``getReserveData(asset)`` from the lending pool."""
        contract = self._contract(pool_address, POOL_ABI)
        raw = await self._call(
            "getReserveData",
            contract.functions.getReserveData(Web3.to_checksum_address(asset_address)).call(),
        )
        try:
            return ReserveData.from_tuple(raw)
        except (IndexError, TypeError, ValueError) as e:
            raise ChainError(f"Unexpected getReserveData result: {e}") from e

    async def get_oracle_price(self, oracle_address: str) -> float:
        """Read ``latestAnswer`` scaled by ``decimals`` from a price feed."""
        contract = self._contract(oracle_address, ORACLE_ABI)
        decimals = await self._call("decimals", contract.functions.decimals().call())
        answer = await self._call("latestAnswer", contract.functions.latestAnswer().call())
        return int(answer) / 10 ** int(decimals)

    async def get_native_balance(self, address: str) -> Decimal:
        """Native-token balance of an address, in whole units."""
        wei = await self._call(
            "get_balance", self._w3.eth.get_balance(Web3.to_checksum_address(address))
        )
        return Decimal(Web3.from_wei(wei, "ether"))

    async def register_task(
        self,
        registry_address: str,
        task_id: str,
        target: str,
        data: str,
    ) -> str:
        """Sign and send ``registerTask(taskId, target, data)``.

        Returns:
            The transaction hash as a hex string.

        Raises:
            ChainError: No signing key is configured or the call failed.
        """
        if self._account is None:
            raise ChainError("No private key configured for task registration")

        sender = self._account.address
        contract = self._contract(registry_address, TASK_REGISTRY_ABI)
        nonce = await self._call("get_transaction_count", self._w3.eth.get_transaction_count(sender))
        chain_id = await self._call("chain_id", self._w3.eth.chain_id)
        tx = await self._call(
            "build_transaction",
            contract.functions.registerTask(
                task_id, Web3.to_checksum_address(target), bytes.fromhex(data.removeprefix("0x"))
            ).build_transaction({"from": sender, "nonce": nonce, "chainId": chain_id}),
        )

        signed = self._account.sign_transaction(tx)
        raw = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction")
        tx_hash = await self._call("send_raw_transaction", self._w3.eth.send_raw_transaction(raw))
        logger.info("Registered task %s in tx %s", task_id, Web3.to_hex(tx_hash))
        return Web3.to_hex(tx_hash)
