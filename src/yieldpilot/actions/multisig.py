"""Multisig provisioning."""

import logging

from ..chain import ChainClient
from ..errors import ServiceError
from ..memory import ActionTag, RoomState
from ..services import CustodyClient
from . import guards
from .base import Action, ActionContext, ActionResult, Message

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE = (
    "Sorry, I couldn't reach the wallet service to set up your multisig. "
    "Please try again in a moment."
)
NO_AGENT_KEY = "Sorry, this agent has no signing key configured, so I can't set up a multisig wallet."


class CreateMultisigAction(Action):
    """Looks up, or creates, the multisig bound to this agent and the user's wallet."""

    def __init__(self, custody: CustodyClient, chain: ChainClient, agent_id: str) -> None:
        self.custody = custody
        self.chain = chain
        self.agent_id = agent_id

    @property
    def name(self) -> ActionTag:
        return ActionTag.CREATE_MULTISIG

    @property
    def description(self) -> str:
        return "Provision a multisig custody wallet shared by the agent and the user."

    def validate(self, message: Message, state: RoomState) -> bool:
        return guards.wants_multisig(message, state)

    async def handle(self, ctx: ActionContext) -> ActionResult:
        wallet = ctx.state.wallet
        if wallet is None:
            return ActionResult(
                handled=True,
                replies=[self.reply("I need your wallet address before I can set up a multisig. Please share it.")],
            )

        agent_address = self.chain.agent_address
        if agent_address is None:
            return ActionResult(handled=False, replies=[self.reply(NO_AGENT_KEY)], error="no agent key")

        try:
            multisig = await self.custody.get_multisig(agent_address, wallet)
            created = multisig is None
            if created:
                multisig = await self.custody.create_multisig(self.agent_id, agent_address, wallet)
        except ServiceError as e:
            logger.error("Multisig provisioning failed for %s: %s", wallet, e)
            return ActionResult(handled=False, replies=[self.reply(SERVICE_UNAVAILABLE)], error=str(e))

        ctx.record(
            self.name,
            {
                "multisig_address": multisig,
                "userAddress": wallet,
                "agentAddress": agent_address,
                "created": created,
            },
        )
        ctx.state.multisig = multisig
        ctx.state.multisig_owner = wallet

        if created:
            text = f"I've created a new multisig wallet for you: {multisig}"
        else:
            text = f"You already have a multisig wallet: {multisig}"
        return ActionResult(
            handled=True,
            replies=[self.reply(text, multisig_address=multisig, created=created)],
            follow_up=ActionTag.PROPOSE_TRANSACTION if ctx.state.has_plan else None,
        )
