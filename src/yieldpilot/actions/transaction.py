"""Deposit transaction proposal.

Two delivery modes: ``payload`` returns the raw ``{to, data, value}``
object for an external signer; ``handoff`` registers the call with the
task registry contract and asks the executor service to run it.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any

from web3 import Web3

from ..chain import ChainClient, encode_deposit_eth, encode_supply
from ..config import AgentSettings
from ..errors import ChainError, RetryExhaustedError, ServiceError
from ..markets import Asset, PriceFeedProvider, find_asset
from ..memory import ActionTag, RoomState
from ..retry import RetryPolicy, retry_async
from ..services import CustodyClient, ExecutorClient
from . import guards
from .base import Action, ActionContext, ActionResult, Message

logger = logging.getLogger(__name__)

NEEDS_MULTISIG = (
    "You need a multisig wallet before I can propose a transaction. "
    "Say 'create multisig' and I'll set one up for you."
)


def token_amount(allocation_usd: float, price_usd: float, decimals: int) -> int:
    """Convert a USD allocation into token base units at the given price."""
    if price_usd <= 0:
        raise ValueError("price must be positive")
    units = Decimal(str(allocation_usd)) / Decimal(str(price_usd)) * (Decimal(10) ** decimals)
    return int(units)


class ProposeTransactionAction(Action):
    """Builds the deposit call for the current plan, gated on multisig and balance."""

    def __init__(
        self,
        settings: AgentSettings,
        custody: CustodyClient,
        chain: ChainClient,
        prices: PriceFeedProvider,
        executor: ExecutorClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.custody = custody
        self.chain = chain
        self.prices = prices
        self.executor = executor
        self._sleep = sleep

    @property
    def name(self) -> ActionTag:
        return ActionTag.PROPOSE_TRANSACTION

    @property
    def description(self) -> str:
        return "Propose the deposit transaction that carries out the current plan."

    def validate(self, message: Message, state: RoomState) -> bool:
        return guards.wants_transaction(message, state)

    async def handle(self, ctx: ActionContext) -> ActionResult:
        plan = ctx.state.plan
        if plan is None:
            return ActionResult(
                handled=True,
                replies=[self.reply("There's no investment plan yet. Tell me what you'd like to invest in first.")],
            )
        wallet = ctx.state.wallet
        if wallet is None:
            return ActionResult(
                handled=True,
                replies=[self.reply("Please share your wallet address before we continue.")],
            )
        asset = find_asset(plan.get("chosenAsset"))
        if asset is None:
            return ActionResult(
                handled=True,
                replies=[self.reply("Your plan's asset is no longer supported. Please ask for a new plan.")],
            )

        agent_address = self.chain.agent_address
        if agent_address is None:
            return self._failure("Sorry, this agent has no signing key configured.", "no agent key")

        try:
            multisig = await self.custody.get_multisig(agent_address, wallet)
        except ServiceError as e:
            logger.error("Multisig lookup failed: %s", e)
            return self._failure("Sorry, I couldn't reach the wallet service. Please try again.", str(e))
        if multisig is None:
            return ActionResult(handled=True, replies=[self.reply(NEEDS_MULTISIG)])

        try:
            balance = await self.chain.get_native_balance(multisig)
        except ChainError as e:
            logger.error("Balance check failed for %s: %s", multisig, e)
            return self._failure("Sorry, I couldn't check your multisig balance. Please try again.", str(e))

        minimum = Decimal(str(self.settings.min_native_balance))
        if balance < minimum:
            return ActionResult(
                handled=True,
                replies=[
                    self.reply(
                        f"Your multisig {multisig} holds {balance.normalize():f} ETH. "
                        f"Please top it up to at least {minimum.normalize():f} ETH so the "
                        "transaction can be executed, then say 'proceed' again.",
                        multisig_address=multisig,
                        balance=str(balance),
                    )
                ],
            )

        try:
            transaction = await self._build_transaction(asset, float(plan.get("allocationAmount") or 0), multisig)
        except (ChainError, ValueError) as e:
            logger.error("Could not build %s deposit: %s", asset.symbol, e)
            return self._failure("Sorry, I couldn't prepare the deposit transaction. Please try again.", str(e))

        if self.settings.execution_mode == "handoff":
            return await self._hand_off(ctx, asset, transaction, multisig)

        ctx.record(
            self.name,
            {"transaction": transaction, "multisig_address": multisig, "chosenAsset": asset.symbol},
        )
        ctx.mark_processed(self.name)
        text = (
            f"Here is the transaction to deposit {asset.symbol} into Aave on behalf of "
            f"your multisig {multisig}. Sign and submit it to complete the investment."
        )
        return ActionResult(handled=True, replies=[self.reply(text, transaction=transaction)])

    async def _build_transaction(self, asset: Asset, allocation_usd: float, multisig: str) -> dict[str, Any]:
        if asset.is_native:
            value = Web3.to_wei(Decimal(str(self.settings.native_deposit_amount)), "ether")
            return {
                "to": self.settings.gateway_address,
                "data": encode_deposit_eth(self.settings.pool_address, multisig),
                "value": int(value),
            }

        price = await self.prices.get_price(asset)
        amount = token_amount(allocation_usd, price, asset.decimals)
        return {
            "to": self.settings.pool_address,
            "data": encode_supply(asset.address, amount, multisig),
            "value": 0,
        }

    async def _hand_off(
        self, ctx: ActionContext, asset: Asset, transaction: dict[str, Any], multisig: str
    ) -> ActionResult:
        if self.executor is None:
            return self._failure("Sorry, no executor is configured for hand-off.", "no executor")

        task_id = str(uuid.uuid4())
        try:
            tx_hash = await self.chain.register_task(
                self.settings.task_registry_address, task_id, transaction["to"], transaction["data"]
            )
        except ChainError as e:
            logger.error("Task registration failed: %s", e)
            return self._failure("Sorry, I couldn't register the transaction task. Please try again.", str(e))

        await self._sleep(self.settings.handoff_initial_wait)
        policy = RetryPolicy(
            attempts=self.settings.handoff_attempts, base_delay=self.settings.handoff_base_delay
        )
        content = {
            "task_id": task_id,
            "registration_tx": tx_hash,
            "transaction": transaction,
            "multisig_address": multisig,
            "chosenAsset": asset.symbol,
        }
        try:
            await retry_async(
                lambda: self.executor.execute_task(task_id, self.settings.agent_id),
                policy,
                retry_on=(ServiceError,),
                label="execute_task",
                sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            logger.warning("Task %s registered but not executed: %s", task_id, e)
            ctx.record(self.name, {**content, "executed": False})
            ctx.mark_processed(self.name)
            return ActionResult(
                handled=False,
                replies=[
                    self.reply(
                        f"Task {task_id} was registered but not yet executed. "
                        "You can execute it explicitly once the executor is available.",
                        task_id=task_id,
                    )
                ],
                error=str(e),
            )

        ctx.record(self.name, {**content, "executed": True})
        ctx.mark_processed(self.name)
        return ActionResult(
            handled=True,
            replies=[
                self.reply(
                    f"Task {task_id} was registered and submitted for execution "
                    f"(registration tx {tx_hash}).",
                    task_id=task_id,
                    transaction=transaction,
                )
            ],
        )

    def _failure(self, text: str, error: str) -> ActionResult:
        return ActionResult(handled=False, replies=[self.reply(text)], error=error)
