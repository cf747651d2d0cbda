"""Investment plan proposal."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..errors import ChainError, LLMError
from ..extractors import AprExtractor, InvestmentCriteriaExtractor, format_conversation
from ..markets import (
    SUPPORTED_SYMBOLS,
    AaveMarketProvider,
    ReserveMarketData,
    fallback_rates,
    find_asset,
    format_markets,
    risk_level,
)
from ..markets.assets import ASSET_DESCRIPTIONS, RISK_DESCRIPTIONS
from ..memory import ActionTag, RoomState
from . import guards
from .base import Action, ActionContext, ActionResult, Message

logger = logging.getLogger(__name__)

DEFAULT_ALLOCATION_USD = 1000.0
HORIZON_DAYS = (30, 90, 180)


def project_returns(amount: float, apr: float, horizons: tuple[int, ...] = HORIZON_DAYS) -> dict[int, float]:
    """Simple-interest returns for each horizon, rounded to cents.

    Args:
        amount: Principal in USD.
        apr: Annual rate as a decimal (0.0036 for 0.36%).
        horizons: Holding periods in days.
    """
    daily_rate = apr / 365
    return {days: round(amount * daily_rate * days, 2) for days in horizons}


@dataclass(frozen=True)
class ResolvedRates:
    apr: float
    ltv: float
    liquidation_threshold: float
    source: str


class ProposePlanAction(Action):
    """Turns the user's stated preferences into a lending plan with projected returns."""

    def __init__(
        self,
        criteria_extractor: InvestmentCriteriaExtractor,
        markets: AaveMarketProvider,
        apr_extractor: AprExtractor,
        default_allocation: float = DEFAULT_ALLOCATION_USD,
    ) -> None:
        self.criteria_extractor = criteria_extractor
        self.markets = markets
        self.apr_extractor = apr_extractor
        self.default_allocation = default_allocation

    @property
    def name(self) -> ActionTag:
        return ActionTag.PROPOSE_PLAN

    @property
    def description(self) -> str:
        return "Propose an Aave lending plan for the user's chosen asset and amount."

    def validate(self, message: Message, state: RoomState) -> bool:
        return guards.wants_plan(message, state)

    async def handle(self, ctx: ActionContext) -> ActionResult:
        try:
            criteria = await self.criteria_extractor.extract(format_conversation(ctx.recent))
        except LLMError as e:
            logger.warning("Criteria extraction failed: %s", e)
            return ActionResult(
                handled=False,
                replies=[self.reply("Sorry, I couldn't work out your investment preferences. Please try again.")],
                error=str(e),
            )

        asset = find_asset(criteria.asset)
        if asset is None:
            text = (
                "Which asset would you like to invest in? "
                f"I can build a plan for: {', '.join(SUPPORTED_SYMBOLS)}."
            )
            if criteria.asset:
                text = f"{criteria.asset} is not supported yet. " + text
            ctx.record(self.name, {"clarification": True, "requestedAsset": criteria.asset, "text": text})
            ctx.mark_processed(self.name)
            return ActionResult(handled=True, replies=[self.reply(text)])

        amount = criteria.allocation_amount_usd or self.default_allocation
        rates = await self._resolve_rates(asset.symbol)
        returns = project_returns(amount, rates.apr)
        now = datetime.now(timezone.utc).isoformat()

        details: dict[str, Any] = {
            "chosenAsset": asset.symbol,
            "allocationAmount": amount,
            "assetAddress": asset.address,
            "apr": rates.apr,
            "ltv": rates.ltv,
            "liquidationThreshold": rates.liquidation_threshold,
            "riskLevel": risk_level(asset.symbol),
            "riskTolerance": criteria.risk_tolerance,
            "projectedReturns": {str(days): value for days, value in returns.items()},
            "rateSource": rates.source,
            "createdAt": now,
            "updatedAt": now,
        }
        text = format_plan(details)

        ctx.record(self.name, {"investmentDetails": details, "text": text})
        ctx.mark_processed(self.name)
        ctx.state.plan = details
        return ActionResult(handled=True, replies=[self.reply(text, investmentDetails=details)])

    async def _resolve_rates(self, symbol: str) -> ResolvedRates:
        """Live structured data first, then the model's reading of the report, then the fixed table."""
        fallback = fallback_rates(symbol)
        try:
            markets = await self.markets.get_markets()
        except ChainError as e:
            logger.warning("Market data unavailable: %s", e)
            markets = []

        entry = _entry_for(markets, symbol)
        if entry is not None and entry.deposit_apr is not None:
            ltv, threshold = fallback.ltv, fallback.liquidation_threshold
            if entry.config is not None:
                ltv = entry.config.ltv / 100
                threshold = entry.config.liquidation_threshold / 100
            return ResolvedRates(entry.deposit_apr / 100, ltv, threshold, "market")

        if any(item.ok for item in markets):
            apr_percent = await self.apr_extractor.extract(format_markets(markets), symbol)
            if apr_percent is not None:
                return ResolvedRates(
                    apr_percent / 100, fallback.ltv, fallback.liquidation_threshold, "market_report"
                )

        logger.info("Using fallback rates for %s", symbol)
        return ResolvedRates(fallback.apr, fallback.ltv, fallback.liquidation_threshold, "fallback")


def _entry_for(markets: list[ReserveMarketData], symbol: str) -> ReserveMarketData | None:
    for item in markets:
        if item.ok and item.asset.upper() == symbol.upper():
            return item
    return None


def format_plan(details: dict[str, Any]) -> str:
    """Render a plan as the message shown to the user."""
    symbol = details["chosenAsset"]
    amount = details["allocationAmount"]
    returns = details["projectedReturns"]
    lines = [
        "📊 Your Aave Investment Plan",
        "",
        f"Asset: {symbol}",
        f"Allocation: ${amount:,.2f}",
        f"Current APR: {details['apr'] * 100:.2f}%",
        f"Loan-to-Value: {details['ltv'] * 100:.0f}%",
        f"Liquidation Threshold: {details['liquidationThreshold'] * 100:.1f}%",
        f"Risk Level: {details['riskLevel']}",
        "",
        "Projected returns:",
    ]
    for days, value in returns.items():
        lines.append(f"- {days} days: ${value:,.2f}")

    description = ASSET_DESCRIPTIONS.get(symbol)
    if description:
        lines += ["", f"Why {symbol}?", description]
    risk = RISK_DESCRIPTIONS.get(symbol)
    if risk:
        lines += ["", "Risk considerations:", risk]

    lines += ["", "Reply 'yes' or 'proceed' to continue with this plan."]
    return "\n".join(lines)
