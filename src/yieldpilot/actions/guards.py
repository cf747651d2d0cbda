"""Intent guards.

Pure functions over the incoming message and the derived room state.
Keywords match whole words or phrases, case-insensitively, so "ok" does
not fire on "token".
"""

import re
from functools import lru_cache

from ..memory import RoomState
from .base import Message

WALLET_NOUNS = ("wallet", "address")
CHANGE_WORDS = ("change", "update", "correct", "wrong", "new", "different", "switch", "replace")
INVESTMENT_KEYWORDS = (
    "plan",
    "invest",
    "investing",
    "investment",
    "strategy",
    "recommend",
    "recommendation",
    "suggestion",
    "advice",
    "portfolio",
    "deposit",
    "lend",
    "yield",
)
REPLAN_PHRASES = (
    "different asset",
    "another asset",
    "new plan",
    "change plan",
    "change my plan",
    "change the plan",
    "instead",
)
ASSET_KEYWORDS = (
    "usdc",
    "dai",
    "eth",
    "wbtc",
    "usdt",
    "weth",
    "bitcoin",
    "ethereum",
    "stablecoin",
)
AGREEMENT_KEYWORDS = ("yes", "sounds good", "like the plan", "ok", "okay", "sure")
TRANSACTION_KEYWORDS = (
    "transaction",
    "proceed",
    "confirm",
    "execute",
    "yes",
    "ok",
    "okay",
    "sure",
    "go ahead",
)
MULTISIG_KEYWORDS = ("multisig", "multi-sig", "safe wallet", "gnosis safe", "custody wallet")

_ADDRESS_TOKEN = re.compile(r"\b0x[a-fA-F0-9]{40}\b")


@lru_cache(maxsize=None)
def _pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"(?<![\w-])(?:{alternatives})(?![\w-])", re.IGNORECASE)


def has_any(text: str, keywords: tuple[str, ...]) -> bool:
    """True if any keyword appears in text as a whole word or phrase."""
    return bool(text) and _pattern(keywords).search(text) is not None


def address_tokens(text: str) -> list[str]:
    """Address-shaped tokens appearing in text."""
    return _ADDRESS_TOKEN.findall(text or "")


def wants_wallet_change(message: Message, state: RoomState) -> bool:
    """A wallet is recorded and the user is correcting or replacing it."""
    if message.is_pass_through or not state.has_wallet:
        return False
    text = message.text
    # "new safe wallet" asks for a multisig, not a different user wallet
    if has_any(text, WALLET_NOUNS) and has_any(text, CHANGE_WORDS) and not has_any(text, MULTISIG_KEYWORDS):
        return True
    current = state.wallet.lower()
    return any(token.lower() != current for token in address_tokens(text))


def needs_wallet(message: Message, state: RoomState) -> bool:
    """No wallet yet, and the user mentions one or a plan is waiting on it."""
    if message.is_pass_through or state.has_wallet:
        return False
    text = message.text
    return has_any(text, WALLET_NOUNS) or bool(address_tokens(text)) or state.has_plan


def wants_multisig(message: Message, state: RoomState) -> bool:
    """The user asks for a multisig, or confirms a plan while none is cached for their wallet."""
    if message.is_pass_through:
        return False
    text = message.text
    if has_any(text, MULTISIG_KEYWORDS):
        return True
    return state.multisig is None and state.has_plan and has_any(text, TRANSACTION_KEYWORDS)


def wants_transaction(message: Message, state: RoomState) -> bool:
    """A plan exists, the user confirms it, and the message is fresh."""
    if message.is_pass_through or state.is_processed(message.id):
        return False
    return state.has_plan and has_any(message.text, TRANSACTION_KEYWORDS)


def wants_plan(message: Message, state: RoomState) -> bool:
    """Investment intent with no plan yet, a re-plan request, or an answer to our question."""
    if message.is_pass_through or state.is_processed(message.id):
        return False
    text = message.text
    if has_any(text, INVESTMENT_KEYWORDS):
        if not state.has_plan or has_any(text, REPLAN_PHRASES):
            return True
    if state.clarification_pending:
        return has_any(text, ASSET_KEYWORDS) or has_any(text, AGREEMENT_KEYWORDS)
    return False
