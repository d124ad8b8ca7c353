"""
CLDX <-> ECO swap ledger.

CLDX -> ECO: the caller's CLDX is moved to the burn sink and ECO is paid
from the wallet's ECO reserve. ECO -> CLDX: the caller's ECO is pulled into
the wallet and CLDX is paid from the wallet's unreserved CLDX. Both legs
use ``transfer_from``, so the caller must first approve the wallet as
spender on the token being sold.

Only wallets on the eco allowlist (and the owner) may swap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..core import ledger_metrics
from ..core.access import is_owner, normalize_address, require_nonzero, require_owner
from ..core.clock import TimeProvider, resolve_time, system_time
from ..core.constants import BPS_DENOMINATOR
from ..core.contracts.token_interface import TokenService
from ..core.exceptions import (
    InsufficientBalance,
    InsufficientContractBalance,
    InvalidAmount,
    NotApprovedWallet,
    TransferFailed,
)

logger = logging.getLogger(__name__)

CLDX_TO_ECO = "cldx_to_eco"
ECO_TO_CLDX = "eco_to_cldx"


@dataclass(frozen=True)
class SwapRate:
    """ECO per CLDX as an exact fraction, plus a fee in basis points."""

    numerator: int = 1
    denominator: int = 1
    fee_bps: int = 0

    def __post_init__(self) -> None:
        if self.numerator <= 0 or self.denominator <= 0:
            raise InvalidAmount("Swap rate terms must be positive")
        if not 0 <= self.fee_bps < BPS_DENOMINATOR:
            raise InvalidAmount("Swap fee out of range")

    def _after_fee(self, amount: int) -> int:
        return amount - amount * self.fee_bps // BPS_DENOMINATOR

    def cldx_to_eco(self, amount: int) -> int:
        return self._after_fee(amount * self.numerator // self.denominator)

    def eco_to_cldx(self, amount: int) -> int:
        return self._after_fee(amount * self.denominator // self.numerator)


class SwapAllowlist:
    """Address -> approval marker. Zero (or absent) means not approved."""

    def __init__(self) -> None:
        self.approvals: Dict[str, int] = {}

    def approve(self, address: str, marker: int) -> int:
        address = require_nonzero(address, "eco wallet")
        self.approvals[address] = max(1, int(marker))
        return self.approvals[address]

    def remove(self, address: str) -> None:
        self.approvals.pop(normalize_address(address), None)

    def marker(self, address: str) -> int:
        return self.approvals.get(normalize_address(address), 0)

    def is_approved(self, address: str) -> bool:
        return self.marker(address) != 0

    def snapshot(self) -> Dict[str, Any]:
        return {"approvals": dict(self.approvals)}

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.approvals = dict(snapshot["approvals"])


class SwapLedger:
    def __init__(
        self,
        holder: str,
        cldx: TokenService,
        eco: TokenService,
        owner_provider: Callable[[], str],
        rate: Optional[SwapRate] = None,
        burn_address: str = "",
        cldx_available: Optional[Callable[[], int]] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        """
        Args:
            holder: The wallet address holding the swap reserves
            cldx: CLDX token as seen by the wallet
            eco: ECO token as seen by the wallet
            owner_provider: Returns the current owner
            rate: Exchange rate and fee (1:1, no fee by default)
            burn_address: Sink receiving CLDX sold for ECO
            cldx_available: CLDX the wallet may pay out (excludes vesting reserve)
        """
        self.holder = holder.lower()
        self.cldx = cldx
        self.eco = eco
        self.rate = rate or SwapRate()
        self.burn_address = require_nonzero(burn_address, "burn address")
        self.allowlist = SwapAllowlist()
        self._owner_provider = owner_provider
        self._cldx_available = cldx_available or (lambda: cldx.balance_of(self.holder))
        self._time_provider = time_provider or system_time

    # ==================== Allowlist ====================

    def aprove_eco_wallet(self, caller: str, wallet: str) -> int:
        require_owner(self._owner_provider(), caller)
        marker = self.allowlist.approve(wallet, resolve_time(self._time_provider))
        logger.info(
            "Eco wallet approved",
            extra={"event": "swap.wallet_approved", "wallet": wallet[:10], "marker": marker},
        )
        return marker

    def remove_eco_wallet(self, caller: str, wallet: str) -> None:
        require_owner(self._owner_provider(), caller)
        self.allowlist.remove(wallet)
        logger.info("Eco wallet removed", extra={"event": "swap.wallet_removed", "wallet": wallet[:10]})

    def eco_approval_wallet(self, wallet: str) -> int:
        return self.allowlist.marker(wallet)

    # ==================== Swaps ====================

    def swap_cldx_to_eco(self, caller: str, amount: int) -> int:
        """
        Sell ``amount`` CLDX for ECO.

        Returns:
            ECO paid to the caller
        """
        caller = self._require_swapper(caller)
        _require_positive(amount)
        payout = self.rate.cldx_to_eco(amount)
        if payout <= 0:
            raise InvalidAmount("Swap amount too small")

        balance = self.cldx.balance_of(caller)
        if balance < amount:
            raise InsufficientBalance(
                f"Insufficient CLDX balance ({balance} < {amount})",
                details={"token": self.cldx.symbol, "balance": balance, "amount": amount},
            )
        reserve = self.eco.balance_of(self.holder)
        if reserve < payout:
            raise InsufficientContractBalance(
                f"Insufficient ECO reserve ({reserve} < {payout})",
                details={"token": self.eco.symbol, "available": reserve, "requested": payout},
            )

        if not self.cldx.transfer_from(caller, self.burn_address, amount):
            raise TransferFailed(details={"token": self.cldx.symbol, "from": caller, "amount": amount})
        if not self.eco.transfer(caller, payout):
            raise TransferFailed(details={"token": self.eco.symbol, "to": caller, "amount": payout})

        self._record(CLDX_TO_ECO, caller, amount, payout)
        return payout

    def swap_eco_to_cldx(self, caller: str, amount: int) -> int:
        """
        Sell ``amount`` ECO for CLDX.

        Returns:
            CLDX paid to the caller
        """
        caller = self._require_swapper(caller)
        _require_positive(amount)
        payout = self.rate.eco_to_cldx(amount)
        if payout <= 0:
            raise InvalidAmount("Swap amount too small")

        balance = self.eco.balance_of(caller)
        if balance < amount:
            raise InsufficientBalance(
                f"Insufficient ECO balance ({balance} < {amount})",
                details={"token": self.eco.symbol, "balance": balance, "amount": amount},
            )
        available = self._cldx_available()
        if available < payout:
            raise InsufficientContractBalance(
                f"Insufficient CLDX reserve ({available} < {payout})",
                details={"token": self.cldx.symbol, "available": available, "requested": payout},
            )

        if not self.eco.transfer_from(caller, self.holder, amount):
            raise TransferFailed(details={"token": self.eco.symbol, "from": caller, "amount": amount})
        if not self.cldx.transfer(caller, payout):
            raise TransferFailed(details={"token": self.cldx.symbol, "to": caller, "amount": payout})

        self._record(ECO_TO_CLDX, caller, amount, payout)
        return payout

    def _require_swapper(self, caller: str) -> str:
        caller = require_nonzero(caller, "caller")
        if not (self.allowlist.is_approved(caller) or is_owner(self._owner_provider(), caller)):
            raise NotApprovedWallet(details={"wallet": caller})
        return caller

    def _record(self, direction: str, caller: str, amount: int, payout: int) -> None:
        ledger_metrics.record_swap(direction, amount)
        logger.info(
            "Swap settled",
            extra={
                "event": "swap.settled",
                "direction": direction,
                "wallet": caller[:10],
                "amount_in": amount,
                "amount_out": payout,
            },
        )


def _require_positive(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidAmount()
