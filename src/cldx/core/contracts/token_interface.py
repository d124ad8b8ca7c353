"""
Narrow token capability used by the ledger.

The vesting wallet, swap ledger and withdrawal controller only ever see a
``TokenService``: the view of a token from one holder's address. Transfer
methods report success as a boolean; callers turn ``False`` into
``TransferFailed``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol, runtime_checkable

from ..exceptions import LedgerError
from .erc20 import ERC20Token

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenService(Protocol):
    address: str
    symbol: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, to: str, amount: int) -> bool: ...

    def transfer_from(self, from_addr: str, to: str, amount: int) -> bool: ...

    def snapshot(self) -> Dict[str, Any]: ...

    def restore(self, snapshot: Dict[str, Any]) -> None: ...


class ERC20TokenAdapter:
    """Binds an ``ERC20Token`` to the contract address acting as msg.sender."""

    def __init__(self, token: ERC20Token, holder: str):
        self.token = token
        self.holder = holder.lower()

    @property
    def address(self) -> str:
        return self.token.address

    @property
    def symbol(self) -> str:
        return self.token.symbol

    @property
    def lock(self):
        return self.token.lock

    def balance_of(self, account: str) -> int:
        return self.token.balance_of(account)

    def transfer(self, to: str, amount: int) -> bool:
        try:
            return self.token.transfer(self.holder, to, amount)
        except LedgerError as exc:
            self._log_failure("transfer", exc)
            return False

    def transfer_from(self, from_addr: str, to: str, amount: int) -> bool:
        try:
            return self.token.transfer_from(self.holder, from_addr, to, amount)
        except LedgerError as exc:
            self._log_failure("transfer_from", exc)
            return False

    def snapshot(self) -> Dict[str, Any]:
        return self.token.snapshot()

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.token.restore(snapshot)

    def _log_failure(self, method: str, exc: LedgerError) -> None:
        logger.warning(
            "Token %s rejected %s: %s",
            self.token.symbol,
            method,
            exc,
            extra={"event": "token.call_failed", "token": self.token.symbol, "method": method},
        )
