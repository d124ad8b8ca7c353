"""
Protocol constants for the CLDX ledger.

All token amounts are integers in the token's smallest unit (18 decimals).
"""

from __future__ import annotations

TOKEN_NAME = "Cloudax"
TOKEN_SYMBOL = "CLDX"
ECO_TOKEN_NAME = "Cloudax Eco"
ECO_TOKEN_SYMBOL = "ECO"
TOKEN_DECIMALS = 18
ONE_TOKEN = 10**TOKEN_DECIMALS

UINT256_MAX = 2**256 - 1

ZERO_ADDRESS = "0x" + "0" * 40
DEAD_ADDRESS = "0x000000000000000000000000000000000000dead"

# Owner address passed to the treasury vesting wallet by the deployment script
DEFAULT_TREASURY_OWNER = "0x675de4cec6c8123e1c7d6d801fe5d0c05f815b9a"

SECONDS_PER_DAY = 86_400
SECONDS_PER_MONTH = 30 * SECONDS_PER_DAY

# Release units per vesting month; 12 months -> 84 sub-schedules
DEFAULT_UNITS_PER_MONTH = 7

BPS_DENOMINATOR = 10_000


def to_wei(tokens: int | str) -> int:
    """Convert a whole/decimal token amount string to 18-decimal base units."""
    text = str(tokens).strip()
    if "." in text:
        whole, frac = text.split(".", 1)
        if len(frac) > TOKEN_DECIMALS:
            raise ValueError(f"Too many decimal places in {text!r}")
        frac = frac.ljust(TOKEN_DECIMALS, "0")
        return int(whole or "0") * ONE_TOKEN + int(frac or "0")
    return int(text) * ONE_TOKEN


def from_wei(amount: int) -> str:
    """Render base units as a decimal token string without float rounding."""
    whole, frac = divmod(int(amount), ONE_TOKEN)
    if not frac:
        return str(whole)
    return f"{whole}.{str(frac).rjust(TOKEN_DECIMALS, '0').rstrip('0')}"
