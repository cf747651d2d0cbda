"""Oracle price feeds for the supported assets."""

import logging
from dataclasses import dataclass

from ..chain import ChainClient
from ..errors import ChainError
from .assets import ASSETS, Asset

logger = logging.getLogger(__name__)


@dataclass
class PriceQuote:
    asset: str
    price: float | None = None
    error: str | None = None


class PriceFeedProvider:
    """Reads USD prices from each asset's oracle."""

    def __init__(self, chain: ChainClient, assets: tuple[Asset, ...] = ASSETS) -> None:
        self.chain = chain
        self.assets = tuple(a for a in assets if a.oracle_address)

    async def get_price(self, asset: Asset) -> float:
        """Price of a single asset.

        Raises:
            ChainError: The asset has no oracle or the read failed.
        """
        if not asset.oracle_address:
            raise ChainError(f"No price feed configured for {asset.symbol}")
        return await self.chain.get_oracle_price(asset.oracle_address)

    async def get_prices(self) -> list[PriceQuote]:
        """Prices for every asset with a feed; failures are reported per asset."""
        quotes = []
        for asset in self.assets:
            try:
                quotes.append(PriceQuote(asset=asset.symbol, price=await self.get_price(asset)))
            except ChainError as e:
                logger.warning("Price feed for %s failed: %s", asset.symbol, e)
                quotes.append(PriceQuote(asset=asset.symbol, error=str(e)))
        return quotes


def format_prices(quotes: list[PriceQuote]) -> str:
    """Render quotes as text."""
    lines = ["Current asset prices from oracle feeds:", ""]
    for quote in quotes:
        if quote.error:
            lines.append(f"{quote.asset}: unavailable ({quote.error})")
        else:
            lines.append(f"{quote.asset}: ${quote.price:.2f}")
    return "\n".join(lines) + "\n"
