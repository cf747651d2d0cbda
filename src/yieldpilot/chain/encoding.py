"""Call-data encoding for lending-pool deposits."""

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

DEPOSIT_ETH_SIGNATURE = "depositETH(address,address,uint16)"
SUPPLY_SIGNATURE = "supply(address,uint256,address,uint16)"

REFERRAL_CODE = 0


def _encode_call(signature: str, types: list[str], args: list) -> str:
    selector = function_signature_to_4byte_selector(signature)
    return "0x" + (selector + encode(types, args)).hex()


def encode_deposit_eth(pool: str, on_behalf_of: str, referral_code: int = REFERRAL_CODE) -> str:
    """Encode ``depositETH(pool, onBehalfOf, referralCode)`` for the native gateway."""
    return _encode_call(
        DEPOSIT_ETH_SIGNATURE,
        ["address", "address", "uint16"],
        [to_checksum_address(pool), to_checksum_address(on_behalf_of), referral_code],
    )


def encode_supply(
    asset: str,
    amount: int,
    on_behalf_of: str,
    referral_code: int = REFERRAL_CODE,
) -> str:
    """Encode ``supply(asset, amount, onBehalfOf, referralCode)`` for the pool."""
    if amount < 0:
        raise ValueError("amount must not be negative")
    return _encode_call(
        SUPPLY_SIGNATURE,
        ["address", "uint256", "address", "uint16"],
        [to_checksum_address(asset), amount, to_checksum_address(on_behalf_of), referral_code],
    )
