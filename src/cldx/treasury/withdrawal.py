"""
Owner-only withdrawals of ERC20 tokens and native currency held by a
contract.

A token may carry a reserve (the vesting wallet reserves every unreleased
allocation of its vesting token); only the balance above the reserve can
leave through this controller.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..core import ledger_metrics
from ..core.access import require_nonzero, require_owner
from ..core.contracts.native import NativeCurrency
from ..core.contracts.token_interface import TokenService
from ..core.exceptions import InsufficientContractBalance, InvalidAmount, TransferFailed

logger = logging.getLogger(__name__)


class TreasuryWithdrawalController:
    def __init__(
        self,
        holder: str,
        owner_provider: Callable[[], str],
        native: NativeCurrency,
        reserve_provider: Optional[Callable[[TokenService], int]] = None,
    ):
        """
        Args:
            holder: Address of the contract whose balances are withdrawn
            owner_provider: Returns the current owner (ownership can move)
            native: Native currency ledger
            reserve_provider: Returns the untouchable part of a token balance
        """
        self.holder = holder.lower()
        self._owner_provider = owner_provider
        self.native = native
        self._reserve_provider = reserve_provider or (lambda token: 0)

    def available(self, token: TokenService) -> int:
        balance = token.balance_of(self.holder)
        return max(0, balance - self._reserve_provider(token))

    def withdraw_tokens(self, caller: str, token: TokenService, to: str, amount: int) -> int:
        """
        Transfer ``amount`` of ``token`` from the contract to ``to``.

        Raises:
            Unauthorized: Caller is not the owner
            InsufficientContractBalance: Holding (above any reserve) < amount
            TransferFailed: The token rejected the transfer
        """
        require_owner(self._owner_provider(), caller)
        to = require_nonzero(to, "recipient")
        _require_positive(amount)

        available = self.available(token)
        if available < amount:
            raise InsufficientContractBalance(
                f"Insufficient contract balance ({available} < {amount})",
                details={"token": token.address, "available": available, "requested": amount},
            )
        if not token.transfer(to, amount):
            raise TransferFailed(details={"token": token.address, "to": to, "amount": amount})

        ledger_metrics.record_withdrawal(token.symbol, amount)
        logger.info(
            "Tokens withdrawn",
            extra={"event": "treasury.withdraw_tokens", "token": token.symbol, "to": to[:10], "amount": amount},
        )
        return amount

    def withdraw_ether(self, caller: str, to: str, amount: int) -> int:
        require_owner(self._owner_provider(), caller)
        to = require_nonzero(to, "recipient")
        _require_positive(amount)

        balance = self.native.balance_of(self.holder)
        if balance < amount:
            raise InsufficientContractBalance(
                f"Insufficient contract balance ({balance} < {amount})",
                details={"asset": "native", "available": balance, "requested": amount},
            )
        self.native.send(self.holder, to, amount)

        ledger_metrics.record_withdrawal("native", amount)
        logger.info(
            "Native currency withdrawn",
            extra={"event": "treasury.withdraw_ether", "to": to[:10], "amount": amount},
        )
        return amount


def _require_positive(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidAmount()
