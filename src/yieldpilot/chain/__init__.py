"""Chain access and call-data encoding."""

from .client import ChainClient, ReserveData
from .encoding import encode_deposit_eth, encode_supply

__all__ = ["ChainClient", "ReserveData", "encode_deposit_eth", "encode_supply"]
