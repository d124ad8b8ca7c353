"""
CLDX Ledger Configuration

All tunables are read from ``CLDX_*`` environment variables with safe
defaults. Module-level constants reflect the environment at import time;
``LedgerConfig.from_env()`` re-reads the environment so tests and the CLI
can build an isolated configuration snapshot.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    BPS_DENOMINATOR,
    DEAD_ADDRESS,
    DEFAULT_UNITS_PER_MONTH,
    SECONDS_PER_MONTH,
)

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_int(env_var: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{env_var} must be >= {minimum}, got {value}")
    return value


NETWORK = os.getenv("CLDX_NETWORK", "testnet")
LOG_LEVEL = os.getenv("CLDX_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("CLDX_LOG_FILE", "").strip() or None
STATE_DB_PATH = Path(
    os.getenv("CLDX_STATE_DB", str(Path.home() / ".cldx" / "ledger.db"))
)


@dataclass(frozen=True)
class LedgerConfig:
    """Configuration snapshot consumed by the vesting wallet and swap ledger."""

    units_per_month: int = DEFAULT_UNITS_PER_MONTH
    seconds_per_month: int = SECONDS_PER_MONTH
    swap_rate_numerator: int = 1
    swap_rate_denominator: int = 1
    swap_fee_bps: int = 0
    burn_address: str = DEAD_ADDRESS

    def __post_init__(self) -> None:
        if self.units_per_month <= 0:
            raise ConfigurationError("units_per_month must be positive")
        if self.seconds_per_month < self.units_per_month:
            raise ConfigurationError("seconds_per_month must be at least units_per_month")
        if self.swap_rate_numerator <= 0 or self.swap_rate_denominator <= 0:
            raise ConfigurationError("Swap rate terms must be positive")
        if not 0 <= self.swap_fee_bps < BPS_DENOMINATOR:
            raise ConfigurationError(
                f"swap_fee_bps must be in [0, {BPS_DENOMINATOR}), got {self.swap_fee_bps}"
            )
        if not self.burn_address:
            raise ConfigurationError("burn_address cannot be empty")

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        config = cls(
            units_per_month=_get_int("CLDX_UNITS_PER_MONTH", DEFAULT_UNITS_PER_MONTH, minimum=1),
            seconds_per_month=_get_int("CLDX_SECONDS_PER_MONTH", SECONDS_PER_MONTH, minimum=1),
            swap_rate_numerator=_get_int("CLDX_SWAP_RATE_NUMERATOR", 1, minimum=1),
            swap_rate_denominator=_get_int("CLDX_SWAP_RATE_DENOMINATOR", 1, minimum=1),
            swap_fee_bps=_get_int("CLDX_SWAP_FEE_BPS", 0),
            burn_address=os.getenv("CLDX_BURN_ADDRESS", DEAD_ADDRESS).strip().lower(),
        )
        logger.debug(
            "Ledger configuration loaded",
            extra={"event": "config.loaded", "network": NETWORK, "units_per_month": config.units_per_month},
        )
        return config

    def to_dict(self) -> dict:
        return {
            "units_per_month": self.units_per_month,
            "seconds_per_month": self.seconds_per_month,
            "swap_rate_numerator": self.swap_rate_numerator,
            "swap_rate_denominator": self.swap_rate_denominator,
            "swap_fee_bps": self.swap_fee_bps,
            "burn_address": self.burn_address,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerConfig":
        return cls(**data)
