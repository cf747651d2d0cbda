"""Market data providers and the supported-asset table."""

from .aave import (
    AaveMarketProvider,
    ReserveConfig,
    ReserveMarketData,
    apr_from_ray,
    apy_from_ray,
    decode_reserve_configuration,
    format_markets,
)
from .assets import (
    ASSETS,
    SUPPORTED_SYMBOLS,
    Asset,
    FallbackRates,
    fallback_rates,
    find_asset,
    risk_level,
)
from .prices import PriceFeedProvider, PriceQuote, format_prices

__all__ = [
    "ASSETS",
    "SUPPORTED_SYMBOLS",
    "AaveMarketProvider",
    "Asset",
    "FallbackRates",
    "PriceFeedProvider",
    "PriceQuote",
    "ReserveConfig",
    "ReserveMarketData",
    "apr_from_ray",
    "apy_from_ray",
    "decode_reserve_configuration",
    "fallback_rates",
    "find_asset",
    "format_markets",
    "format_prices",
    "risk_level",
]
