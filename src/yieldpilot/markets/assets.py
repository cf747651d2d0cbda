"""Lending assets supported by the agent and their static metadata."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Asset:
    """A lending-pool asset.

    Attributes:
        symbol: Ticker shown to the user.
        address: ERC20 token address, None for the native asset.
        oracle_address: Price feed address, None if no feed is configured.
        decimals: Token decimals used to express amounts in base units.
    """

    symbol: str
    address: str | None
    oracle_address: str | None
    decimals: int

    @property
    def is_native(self) -> bool:
        return self.address is None


ASSETS: tuple[Asset, ...] = (
    Asset(
        symbol="WBTC",
        address="0x5EA79f3190ff37418d42F9B2618688494dBD9693",
        oracle_address="0x87dce67002e66C17BC0d723Fe20D736b80CAaFda",
        decimals=8,
    ),
    Asset(
        symbol="USDC",
        address="0x2C9678042D52B97D27f2bD2947F7111d93F3dD0D",
        oracle_address="0xFadA8b0737D4A3AE7118918B7E69E689034c0127",
        decimals=6,
    ),
    Asset(
        symbol="DAI",
        address="0x7984E363c38b590bB4CA35aEd5133Ef2c6619C40",
        oracle_address="0x9388954B816B2030B003c81A779316394b3f3f11",
        decimals=18,
    ),
    Asset(symbol="ETH", address=None, oracle_address=None, decimals=18),
)

# Reserves that can be read from the pool (the native asset has none)
RESERVE_ASSETS: tuple[Asset, ...] = tuple(a for a in ASSETS if not a.is_native)

SUPPORTED_SYMBOLS: tuple[str, ...] = tuple(a.symbol for a in ASSETS)


def find_asset(symbol: str | None) -> Asset | None:
    """Look up a supported asset by symbol, case-insensitively."""
    if not symbol:
        return None
    wanted = symbol.strip().upper()
    for asset in ASSETS:
        if asset.symbol == wanted:
            return asset
    return None


@dataclass(frozen=True)
class FallbackRates:
    """Rates used when live market data is unavailable (decimals, not %)."""

    apr: float
    ltv: float
    liquidation_threshold: float


FALLBACK_RATES: dict[str, FallbackRates] = {
    "USDC": FallbackRates(apr=0.0036, ltv=0.8, liquidation_threshold=0.85),
    "DAI": FallbackRates(apr=0.0037, ltv=0.75, liquidation_threshold=0.8),
    "ETH": FallbackRates(apr=0.0052, ltv=0.8, liquidation_threshold=0.825),
    "WBTC": FallbackRates(apr=0.0017, ltv=0.7, liquidation_threshold=0.75),
    "USDT": FallbackRates(apr=0.0035, ltv=0.75, liquidation_threshold=0.8),
    "WETH": FallbackRates(apr=0.0052, ltv=0.8, liquidation_threshold=0.825),
}

GENERIC_FALLBACK = FallbackRates(apr=0.003, ltv=0.75, liquidation_threshold=0.8)


def fallback_rates(symbol: str) -> FallbackRates:
    """Return the fixed fallback rates for a symbol."""
    return FALLBACK_RATES.get(symbol.upper(), GENERIC_FALLBACK)


VOLATILE_SYMBOLS = frozenset({"ETH", "WBTC", "WETH"})
STABLE_SYMBOLS = frozenset({"USDC", "USDT", "DAI"})


def risk_level(symbol: str) -> str:
    """Fixed risk label for an asset."""
    if symbol.upper() in VOLATILE_SYMBOLS:
        return "Medium to High"
    return "Low"


ASSET_DESCRIPTIONS: dict[str, str] = {
    "USDC": "USDC is a regulated stablecoin backed by US Dollar reserves, providing security and stability.",
    "DAI": "DAI is a decentralized stablecoin that maintains its value through a system of smart contracts and collateralization.",
    "ETH": "ETH is the native cryptocurrency of the Ethereum blockchain and the foundation of many DeFi applications.",
    "WBTC": "WBTC (Wrapped Bitcoin) allows you to use Bitcoin in Ethereum-based DeFi applications while maintaining exposure to BTC price movements.",
    "USDT": "USDT (Tether) is a stablecoin pegged to the US Dollar, offering stability for your investment.",
    "WETH": "WETH is a wrapped version of ETH that conforms to the ERC-20 standard, making it compatible with all Ethereum dApps.",
}

RISK_DESCRIPTIONS: dict[str, str] = {
    "USDC": "This is a relatively low-risk investment as stablecoins maintain their peg to the US Dollar. However, smart contract risks still exist.",
    "DAI": "While DAI is designed to maintain its peg to the US Dollar, it relies on over-collateralization which introduces some systemic risk.",
    "ETH": "ETH price can be volatile, which affects your principal investment. Consider your risk tolerance before proceeding.",
    "WBTC": "Bitcoin price volatility directly affects WBTC value. This is a higher risk option with potential for greater returns or losses.",
    "USDT": "While USDT is a stablecoin, it has faced questions about its reserves. It carries slightly more risk than other stablecoins.",
    "WETH": "As a wrapped version of ETH, WETH carries the same price volatility risks as ETH, plus smart contract risks.",
}
