"""Aave-style market data computed from on-chain reserve state."""

import logging
from dataclasses import dataclass

from ..chain import ChainClient
from ..errors import ChainError
from .assets import RESERVE_ASSETS, Asset

logger = logging.getLogger(__name__)

RAY = 10**27
SECONDS_PER_YEAR = 31_536_000


@dataclass(frozen=True)
class ReserveConfig:
    """Decoded reserve configuration bitfield.

    Percentages are whole percents (the chain stores them x100).
    """

    ltv: int
    liquidation_threshold: int
    liquidation_bonus: int
    decimals: int
    is_active: bool
    is_frozen: bool
    borrowing_enabled: bool
    stable_borrowing_enabled: bool
    reserve_factor: int


def decode_reserve_configuration(data: int) -> ReserveConfig:
    """Unpack the reserve configuration bitmap.

    Layout: bits 0-15 LTV, 16-31 liquidation threshold, 32-47 liquidation
    bonus, 48-55 decimals, 56 active, 57 frozen, 58 borrowing enabled,
    59 stable borrowing enabled, 64-79 reserve factor.
    """
    data = int(data)
    return ReserveConfig(
        ltv=(data & 0xFFFF) // 100,
        liquidation_threshold=((data >> 16) & 0xFFFF) // 100,
        liquidation_bonus=((data >> 32) & 0xFFFF) // 100,
        decimals=(data >> 48) & 0xFF,
        is_active=bool((data >> 56) & 1),
        is_frozen=bool((data >> 57) & 1),
        borrowing_enabled=bool((data >> 58) & 1),
        stable_borrowing_enabled=bool((data >> 59) & 1),
        reserve_factor=((data >> 64) & 0xFFFF) // 100,
    )


def apy_from_ray(ray_rate: int) -> float:
    """Compounded yearly percentage from a ray-scaled per-second rate.

    ``apy = (1 + rate / secondsPerYear) ^ secondsPerYear - 1``, as a
    percentage rounded to two decimals.
    """
    rate = int(ray_rate) / RAY
    apy = (1 + rate / SECONDS_PER_YEAR) ** SECONDS_PER_YEAR - 1
    return round(apy * 100, 2)


def apr_from_ray(ray_rate: int) -> float:
    """Simple yearly percentage from a ray-scaled rate, rounded to two decimals."""
    return round(int(ray_rate) / RAY * 100, 2)


@dataclass
class ReserveMarketData:
    """Market figures for one asset, or the error that prevented reading them."""

    asset: str
    address: str | None
    deposit_apy: float | None = None
    variable_borrow_apy: float | None = None
    stable_borrow_apy: float | None = None
    deposit_apr: float | None = None
    variable_borrow_apr: float | None = None
    stable_borrow_apr: float | None = None
    config: ReserveConfig | None = None
    last_update_timestamp: int | None = None
    a_token_address: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AaveMarketProvider:
    """Reads every configured reserve and reports yields and risk parameters."""

    def __init__(
        self,
        chain: ChainClient,
        pool_address: str,
        assets: tuple[Asset, ...] = RESERVE_ASSETS,
    ) -> None:
        self.chain = chain
        self.pool_address = pool_address
        self.assets = assets

    async def get_markets(self) -> list[ReserveMarketData]:
        """Read all reserves; one asset's failure never fails the batch."""
        results: list[ReserveMarketData] = []
        for asset in self.assets:
            try:
                reserve = await self.chain.get_reserve_data(self.pool_address, asset.address)
            except ChainError as e:
                logger.warning("Error processing %s: %s", asset.symbol, e)
                results.append(
                    ReserveMarketData(asset=asset.symbol, address=asset.address, error=str(e))
                )
                continue

            results.append(
                ReserveMarketData(
                    asset=asset.symbol,
                    address=asset.address,
                    deposit_apy=apy_from_ray(reserve.current_liquidity_rate),
                    variable_borrow_apy=apy_from_ray(reserve.current_variable_borrow_rate),
                    stable_borrow_apy=apy_from_ray(reserve.current_stable_borrow_rate),
                    deposit_apr=apr_from_ray(reserve.current_liquidity_rate),
                    variable_borrow_apr=apr_from_ray(reserve.current_variable_borrow_rate),
                    stable_borrow_apr=apr_from_ray(reserve.current_stable_borrow_rate),
                    config=decode_reserve_configuration(reserve.configuration),
                    last_update_timestamp=reserve.last_update_timestamp,
                    a_token_address=reserve.a_token_address,
                )
            )
        return results


def format_markets(markets: list[ReserveMarketData]) -> str:
    """Render market data as the text report shown to users and the LLM."""
    lines = ["Here's the current Aave market data:", ""]
    for item in markets:
        if not item.ok:
            continue
        lines.append(f"{item.asset}:")
        lines.append(f"- Deposit: {item.deposit_apy}% APY ({item.deposit_apr}% APR)")
        lines.append(
            f"- Variable Borrow: {item.variable_borrow_apy}% APY ({item.variable_borrow_apr}% APR)"
        )
        lines.append(
            f"- Stable Borrow: {item.stable_borrow_apy}% APY ({item.stable_borrow_apr}% APR)"
        )
        if item.config:
            lines.append(f"- LTV: {item.config.ltv}%")
            lines.append(f"- Liquidation Threshold: {item.config.liquidation_threshold}%")
        lines.append("")

    failed = [item for item in markets if not item.ok]
    if failed:
        lines.append("Failed to fetch data for:")
        for item in failed:
            lines.append(f"{item.asset}: {item.error}")

    return "\n".join(lines).rstrip() + "\n"
