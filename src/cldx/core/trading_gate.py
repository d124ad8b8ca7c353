"""
Blacklist and trading gate consulted before every CLDX transfer.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Set

from .access import normalize_address
from .exceptions import Blacklisted, TradingDisabled

logger = logging.getLogger(__name__)


class TradingGate:
    """
    Per-address block list plus a global trading switch.

    Owner checks are the caller's responsibility; the gate only holds state
    and evaluates transfers.
    """

    def __init__(self, trading_enabled: bool = False, blacklist: Optional[Iterable[str]] = None):
        self.trading_enabled = trading_enabled
        self.blacklist: Set[str] = {normalize_address(a) for a in (blacklist or ())}

    def set_blacklisted(self, address: str, flag: bool) -> None:
        address = normalize_address(address)
        if flag:
            self.blacklist.add(address)
        else:
            self.blacklist.discard(address)
        logger.info(
            "Blacklist updated",
            extra={"event": "gate.blacklist", "address": address[:10], "blacklisted": flag},
        )

    def is_blacklisted(self, address: str) -> bool:
        return normalize_address(address) in self.blacklist

    def set_trading_enabled(self, flag: bool) -> None:
        self.trading_enabled = bool(flag)
        logger.info("Trading enabled set to %s", self.trading_enabled, extra={"event": "gate.trading"})

    def check_transfer(self, sender: str, recipient: str, exempt: Iterable[str] = ()) -> None:
        """
        Reject a transfer from/to a blacklisted address, or a non-exempt
        sender while trading is disabled.
        """
        sender = normalize_address(sender, "sender")
        recipient = normalize_address(recipient, "recipient")
        if sender in self.blacklist or recipient in self.blacklist:
            raise Blacklisted()
        if not self.trading_enabled and sender not in {normalize_address(a) for a in exempt if a}:
            raise TradingDisabled()

    def snapshot(self) -> Dict[str, Any]:
        return {"trading_enabled": self.trading_enabled, "blacklist": sorted(self.blacklist)}

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.trading_enabled = snapshot["trading_enabled"]
        self.blacklist = set(snapshot["blacklist"])
