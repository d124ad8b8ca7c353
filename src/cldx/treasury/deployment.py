"""
Deployment of the CLDX token, the ECO token and the treasury vesting wallet.

Mirrors the deployment script: the vesting wallet is constructed with the
treasury owner address, which also becomes its initial beneficiary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.clock import TimeProvider
from ..core.config import LedgerConfig
from ..core.constants import DEFAULT_TREASURY_OWNER, ECO_TOKEN_NAME, ECO_TOKEN_SYMBOL
from ..core.contracts.cloudax import DEFAULT_CLDX_SUPPLY, CloudaxToken
from ..core.contracts.erc20 import ERC20Factory, ERC20Token
from ..core.contracts.native import NativeCurrency
from .vesting_wallet import CloudaxTreasuryVestingWallet

logger = logging.getLogger(__name__)


@dataclass
class Deployment:
    """Everything one deployment owns, sharing one token registry and native ledger."""

    registry: ERC20Factory
    native: NativeCurrency
    cldx: CloudaxToken
    eco: ERC20Token
    wallet: CloudaxTreasuryVestingWallet

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cldx": self.cldx.to_dict(),
            "eco": self.eco.to_dict(),
            "native": self.native.to_dict(),
            "wallet": self.wallet.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], time_provider: Optional[TimeProvider] = None) -> "Deployment":
        registry = ERC20Factory()
        native = NativeCurrency.from_dict(data["native"])
        cldx = CloudaxToken.from_dict(data["cldx"], registry=registry, native=native)
        eco = registry.register(ERC20Token.from_dict(data["eco"]))
        wallet = CloudaxTreasuryVestingWallet.from_dict(
            data["wallet"],
            token=cldx,
            eco_token=eco,
            native=native,
            time_provider=time_provider,
            registry=registry,
        )
        return cls(registry=registry, native=native, cldx=cldx, eco=eco, wallet=wallet)


def deploy_treasury(
    owner: str = DEFAULT_TREASURY_OWNER,
    cldx_supply: int = DEFAULT_CLDX_SUPPLY,
    eco_supply: int = DEFAULT_CLDX_SUPPLY,
    wallet_funding: int = 0,
    eco_reserve: int = 0,
    enable_trading: bool = True,
    config: Optional[LedgerConfig] = None,
    time_provider: Optional[TimeProvider] = None,
) -> Deployment:
    """
    Deploy CLDX, ECO and the treasury vesting wallet for ``owner``.

    Args:
        owner: Treasury owner; receives both token supplies
        cldx_supply: CLDX minted to the owner
        eco_supply: ECO minted to the owner
        wallet_funding: CLDX moved from the owner into the wallet
        eco_reserve: ECO moved from the owner into the wallet's swap reserve
        enable_trading: Open CLDX trading so the wallet can pay out
    """
    registry = ERC20Factory()
    native = NativeCurrency()
    cldx = CloudaxToken.deploy(owner, initial_supply=cldx_supply, registry=registry, native=native)
    eco = registry.create_token(owner, ECO_TOKEN_NAME, ECO_TOKEN_SYMBOL, initial_supply=eco_supply)
    wallet = CloudaxTreasuryVestingWallet(
        owner=owner,
        token=cldx,
        eco_token=eco,
        native=native,
        config=config or LedgerConfig.from_env(),
        time_provider=time_provider,
        registry=registry,
    )

    if enable_trading:
        cldx.set_trading_enabled(owner, True)
    if wallet_funding:
        cldx.transfer(owner, wallet.address, wallet_funding)
    if eco_reserve:
        eco.transfer(owner, wallet.address, eco_reserve)

    logger.info(
        "cloudaxTreasury deployed to %s",
        wallet.address,
        extra={"event": "deployment.completed", "cldx": cldx.address, "eco": eco.address},
    )
    return Deployment(registry=registry, native=native, cldx=cldx, eco=eco, wallet=wallet)
