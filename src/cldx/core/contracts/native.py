"""
Native currency balances (the chain's ether-equivalent).
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict

from ..access import normalize_address
from ..exceptions import InsufficientBalance, InvalidAmount

logger = logging.getLogger(__name__)


class NativeCurrency:
    """Account -> wei mapping with plain value transfers."""

    def __init__(self) -> None:
        self.balances: Dict[str, int] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def balance_of(self, account: str) -> int:
        return self.balances.get(normalize_address(account), 0)

    def credit(self, account: str, amount: int) -> None:
        """Fund an account from outside the ledger (faucet / genesis)."""
        if amount <= 0:
            raise InvalidAmount()
        account = normalize_address(account)
        with self._lock:
            self.balances[account] = self.balances.get(account, 0) + amount

    def send(self, sender: str, recipient: str, amount: int) -> bool:
        if not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount()
        sender = normalize_address(sender, "sender")
        recipient = normalize_address(recipient, "recipient")
        with self._lock:
            balance = self.balances.get(sender, 0)
            if balance < amount:
                raise InsufficientBalance(
                    f"Insufficient native balance ({balance} < {amount})",
                    details={"account": sender},
                )
            self.balances[sender] = balance - amount
            self.balances[recipient] = self.balances.get(recipient, 0) + amount
        logger.debug(
            "Native transfer",
            extra={"event": "native.transfer", "from": sender[:10], "to": recipient[:10], "amount": amount},
        )
        return True

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {"balances": dict(self.balances)}

    def restore(self, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            self.balances = dict(snapshot["balances"])

    def to_dict(self) -> Dict[str, Any]:
        return {"balances": {k: str(v) for k, v in self.balances.items()}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NativeCurrency":
        native = cls()
        native.balances = {k: int(v) for k, v in data.get("balances", {}).items()}
        return native
