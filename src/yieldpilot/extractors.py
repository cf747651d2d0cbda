"""LLM-backed extraction of typed values from conversation text.

Model output is treated as semi-structured: every parser here tolerates
prose, quotes and code fences, and falls back to a documented default
instead of raising.
"""

import asyncio
import json
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

from .errors import LLMError, RetryExhaustedError
from .llm import LLMClient, SizeClass
from .memory import ActionTag, MemoryRecord, is_valid_address
from .retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)

NO_WALLET_FOUND = "NO_WALLET_FOUND"

WALLET_PROMPT = """You are an AI assistant helping to extract Ethereum wallet addresses from conversations.

CONVERSATION:
{conversation}

TASK:
Extract any Ethereum wallet address from the conversation. Ethereum addresses start with "0x" followed by 40 hexadecimal characters.
If multiple addresses are found, return the most recently mentioned one.
If no valid Ethereum address is found, return "NO_WALLET_FOUND".

RESPONSE FORMAT:
Return only the wallet address or "NO_WALLET_FOUND" with no additional text.
"""

CRITERIA_PROMPT = """You are analyzing a conversation to extract the user's investment criteria for Aave.
Extract the following information:
1. Which asset does the user want to invest in? (USDC, DAI, ETH, WBTC, etc.)
2. How much does the user want to allocate? (in USD)
3. What is the user's risk tolerance? (low, medium, high)

Format your response as a JSON object with the following structure:
{{
  "asset": string or null,
  "allocationAmountUSD": number or null,
  "riskTolerance": "low" | "medium" | "high" or null
}}

Recent conversation:
{conversation}
"""

APR_PROMPT = """Here is the current Aave market data:

{market_data}

Return the deposit APR for {asset} as a plain number in percent. Do not include any quotes, units or other characters, just the number."""

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_RISK_LEVELS = ("low", "medium", "high")


def format_conversation(records: list[MemoryRecord]) -> str:
    """Render MESSAGE/REPLY records as a transcript for prompts."""
    lines = []
    for record in records:
        if record.action == ActionTag.MESSAGE:
            lines.append(f"User: {record.text}")
        elif record.action == ActionTag.REPLY:
            lines.append(f"Agent: {record.text}")
    return "\n".join(lines)


def _strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'`":
        return text[1:-1].strip()
    return text


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Find and decode the first JSON object in model output.

    Accepts ```json fenced blocks, bare fences, or an object embedded in
    prose. Returns None when nothing decodes to a dict.
    """
    candidates = [m.group(1) for m in _FENCED_JSON.finditer(text)]
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])
    candidates.append(text.strip())

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(data, dict):
            return data
    return None


def parse_number(text: str) -> float | None:
    """Read a number out of model output.

    Tries the text with quotes and non-numeric characters removed first,
    then the first number-like token. Returns None when neither works.
    """
    cleaned = re.sub(r"[^0-9.\-]", "", _strip_quotes(text))
    try:
        return float(cleaned)
    except ValueError:
        pass

    match = _NUMBER.search(text)
    if match:
        return float(match.group(0))
    return None


def _coerce_amount(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    amount = parse_number(str(value).replace(",", ""))
    return amount if amount and amount > 0 else None


@dataclass(frozen=True)
class InvestmentCriteria:
    """What the user wants to invest in; every field may be unresolved."""

    asset: str | None = None
    allocation_amount_usd: float | None = None
    risk_tolerance: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InvestmentCriteria":
        asset = data.get("asset", data.get("chosenAsset"))
        amount = data.get("allocationAmountUSD", data.get("allocationAmount"))
        risk = data.get("riskTolerance")
        risk = str(risk).lower() if risk else None
        return cls(
            asset=str(asset).strip() if asset else None,
            allocation_amount_usd=_coerce_amount(amount),
            risk_tolerance=risk if risk in _RISK_LEVELS else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


NEUTRAL_CRITERIA = InvestmentCriteria()


class WalletExtractor:
    """Pulls the most recently mentioned wallet address out of a conversation."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def extract(self, conversation: str) -> str | None:
        """Return a validated address, or None when none was found.

        Raises:
            LLMError: The completion itself failed.
        """
        response = await self.llm.complete(
            WALLET_PROMPT.format(conversation=conversation), SizeClass.SMALL
        )
        candidate = _strip_quotes(response)
        logger.debug("Wallet extraction result: %s", candidate)

        if candidate == NO_WALLET_FOUND:
            return None
        if is_valid_address(candidate):
            return candidate

        logger.info("Wallet extraction returned a non-address: %r", candidate[:80])
        return None


class InvestmentCriteriaExtractor:
    """Pulls asset, amount and risk tolerance out of a conversation."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def extract(self, conversation: str) -> InvestmentCriteria:
        """Return the extracted criteria, or the neutral default on parse failure.

        Raises:
            LLMError: The completion itself failed.
        """
        response = await self.llm.complete(
            CRITERIA_PROMPT.format(conversation=conversation), SizeClass.SMALL
        )
        data = extract_json_object(response)
        if data is None:
            logger.warning("Failed to parse investment criteria from: %r", response[:200])
            return NEUTRAL_CRITERIA
        return InvestmentCriteria.from_dict(data)


class AprExtractor:
    """Asks the model to read one asset's deposit APR out of a market report."""

    def __init__(
        self,
        llm: LLMClient,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.llm = llm
        self.policy = policy or RetryPolicy(attempts=3, base_delay=1.0)
        self._sleep = sleep

    async def extract(self, market_data: str, asset: str) -> float | None:
        """Return the APR in percent, or None if the model gave no usable number."""
        prompt = APR_PROMPT.format(market_data=market_data, asset=asset)
        try:
            response = await retry_async(
                lambda: self.llm.complete(prompt, SizeClass.SMALL),
                self.policy,
                retry_on=(LLMError,),
                label="apr_extraction",
                sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            logger.warning("APR extraction gave up: %s", e)
            return None

        apr = parse_number(response)
        if apr is None or apr < 0:
            logger.warning("Could not read an APR from: %r", response[:80])
            return None
        return apr
