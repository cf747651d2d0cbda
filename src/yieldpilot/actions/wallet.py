"""Wallet capture and wallet change actions."""

import logging

from ..errors import LLMError
from ..extractors import WalletExtractor, format_conversation
from ..memory import ActionTag, RoomState
from . import guards
from .base import Action, ActionContext, ActionResult, Message

logger = logging.getLogger(__name__)

ASK_FOR_WALLET = (
    "I couldn't find a valid wallet address. Please share your Ethereum wallet "
    "address (it starts with 0x followed by 40 hexadecimal characters)."
)
EXTRACTION_FAILED = "Sorry, I had trouble reading your wallet address. Please try again."


class GetUserWalletAction(Action):
    """Records the user's wallet address the first time it is mentioned."""

    def __init__(self, extractor: WalletExtractor) -> None:
        self.extractor = extractor

    @property
    def name(self) -> ActionTag:
        return ActionTag.GET_USER_WALLET

    @property
    def description(self) -> str:
        return "Find the user's wallet address in the conversation and remember it."

    def validate(self, message: Message, state: RoomState) -> bool:
        return guards.needs_wallet(message, state)

    async def handle(self, ctx: ActionContext) -> ActionResult:
        if ctx.state.has_wallet:
            return ActionResult(
                handled=True,
                replies=[self.reply(f"Your wallet address is {ctx.state.wallet}.", userAddress=ctx.state.wallet)],
            )

        try:
            address = await self.extractor.extract(format_conversation(ctx.recent))
        except LLMError as e:
            logger.warning("Wallet extraction failed: %s", e)
            return ActionResult(handled=False, replies=[self.reply(EXTRACTION_FAILED)], error=str(e))

        if address is None:
            return ActionResult(handled=True, replies=[self.reply(ASK_FOR_WALLET)])

        ctx.record(self.name, {"userAddress": address})
        text = f"Got it! I've saved your wallet address: {address}"
        if ctx.state.has_plan:
            text += "\n\nYour investment plan is ready. Reply 'yes' to proceed with the transaction."
        return ActionResult(handled=True, replies=[self.reply(text, userAddress=address)])


class ChangeUserWalletAction(Action):
    """Replaces a previously recorded wallet address."""

    def __init__(self, extractor: WalletExtractor) -> None:
        self.extractor = extractor

    @property
    def name(self) -> ActionTag:
        return ActionTag.CHANGE_USER_WALLET

    @property
    def description(self) -> str:
        return "Replace the user's recorded wallet address with a new one."

    def validate(self, message: Message, state: RoomState) -> bool:
        return guards.wants_wallet_change(message, state)

    async def handle(self, ctx: ActionContext) -> ActionResult:
        previous = ctx.state.wallet
        if previous is None:
            return ActionResult(handled=True, replies=[self.reply(ASK_FOR_WALLET)])

        try:
            address = await self.extractor.extract(format_conversation(ctx.recent))
        except LLMError as e:
            logger.warning("Wallet extraction failed: %s", e)
            return ActionResult(handled=False, replies=[self.reply(EXTRACTION_FAILED)], error=str(e))

        if address is None or address.lower() == previous.lower():
            return ActionResult(
                handled=True,
                replies=[
                    self.reply(
                        f"Your current wallet address is {previous}. "
                        "Please send the new address you'd like to use."
                    )
                ],
            )

        ctx.record(self.name, {"userAddress": address, "previousAddress": previous})
        return ActionResult(
            handled=True,
            replies=[
                self.reply(
                    f"I've updated your wallet address from {previous} to {address}.",
                    userAddress=address,
                    previousAddress=previous,
                )
            ],
        )
