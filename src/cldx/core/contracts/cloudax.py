"""
The Cloudax (CLDX) token.

An ERC20 token with:
- an owner-managed blacklist (blocked addresses can neither send nor receive)
- a trading switch; before trading opens only the owner, the presale
  address and the token contract itself can send tokens
- owner withdrawals of any ERC20 token or native currency sent to the
  token contract by mistake
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ...treasury.withdrawal import TreasuryWithdrawalController
from ..access import normalize_address, require_nonzero, require_owner
from ..atomic import atomic
from ..constants import ONE_TOKEN, TOKEN_DECIMALS, TOKEN_NAME, TOKEN_SYMBOL
from ..exceptions import InvalidAddress
from ..trading_gate import TradingGate
from .erc20 import ERC20Factory, ERC20Token
from .native import NativeCurrency
from .token_interface import ERC20TokenAdapter

logger = logging.getLogger(__name__)

DEFAULT_CLDX_SUPPLY = 1_000_000_000 * ONE_TOKEN


@dataclass
class CloudaxToken(ERC20Token):
    name: str = TOKEN_NAME
    symbol: str = TOKEN_SYMBOL
    decimals: int = TOKEN_DECIMALS
    presale_address: str = ""
    gate: TradingGate = field(default_factory=TradingGate)
    native: NativeCurrency = field(default_factory=NativeCurrency)
    registry: Optional[ERC20Factory] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self.owner = require_nonzero(self.owner, "owner")
        self._withdrawals = TreasuryWithdrawalController(
            holder=self.address,
            owner_provider=lambda: self.owner,
            native=self.native,
        )
        if self.registry is not None:
            self.registry.register(self)

    @classmethod
    def deploy(
        cls,
        owner: str,
        initial_supply: int = DEFAULT_CLDX_SUPPLY,
        registry: Optional[ERC20Factory] = None,
        native: Optional[NativeCurrency] = None,
    ) -> "CloudaxToken":
        """Deploy the token, minting the initial supply to the owner."""
        token = cls(owner=owner, registry=registry, native=native or NativeCurrency())
        if initial_supply:
            token.mint(owner, owner, initial_supply)
        return token

    # ==================== Transfer Policy ====================

    def _before_token_transfer(self, sender: str, recipient: str, amount: int) -> None:
        self.gate.check_transfer(
            sender,
            recipient,
            exempt=(self.owner, self.presale_address, self.address),
        )

    def _require_owner(self, caller: str) -> None:
        require_owner(self.owner, caller)

    # ==================== Owner Administration ====================

    def set_blacklisted(self, caller: str, account: str, flag: bool) -> None:
        with self._lock:
            self._require_owner(caller)
            self.gate.set_blacklisted(account, flag)

    def is_blacklisted(self, account: str) -> bool:
        return self.gate.is_blacklisted(account)

    def setup_presale_address(self, caller: str, presale_address: str) -> None:
        with self._lock:
            self._require_owner(caller)
            self.presale_address = require_nonzero(presale_address, "presale address")
            logger.info(
                "Presale address configured",
                extra={"event": "cldx.presale_address", "address": self.presale_address[:10]},
            )

    def set_trading_enabled(self, caller: str, flag: bool) -> None:
        with self._lock:
            self._require_owner(caller)
            self.gate.set_trading_enabled(flag)

    def is_trading_enabled(self) -> bool:
        return self.gate.trading_enabled

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._lock:
            self._require_owner(caller)
            self.owner = require_nonzero(new_owner, "new owner")

    # ==================== Native Currency & Withdrawals ====================

    def receive(self, sender: str, value: int) -> None:
        """Accept native currency sent to the token contract."""
        with self._lock:
            self.native.send(sender, self.address, value)

    def native_balance(self) -> int:
        return self.native.balance_of(self.address)

    def withdraw_tokens(self, caller: str, token_address: str, to: str, amount: int) -> int:
        with self._lock:
            token = self._resolve_token(token_address)
            with atomic("withdraw_tokens", self, token):
                return self._withdrawals.withdraw_tokens(
                    caller, ERC20TokenAdapter(token, self.address), to, amount
                )

    def withdraw_ether(self, caller: str, to: str, amount: int) -> int:
        with self._lock:
            with atomic("withdraw_ether", self.native):
                return self._withdrawals.withdraw_ether(caller, to, amount)

    def _resolve_token(self, token_address: str) -> ERC20Token:
        token_address = normalize_address(token_address, "token")
        if token_address == self.address:
            return self
        if self.registry is None:
            raise InvalidAddress(f"Unknown token {token_address}")
        return self.registry.get_token(token_address)

    # ==================== Snapshots & Serialization ====================

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            state = super().snapshot()
            state["presale_address"] = self.presale_address
            state["gate"] = self.gate.snapshot()
            return state

    def restore(self, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            super().restore(snapshot)
            self.presale_address = snapshot["presale_address"]
            self.gate.restore(snapshot["gate"])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["presale_address"] = self.presale_address
        data["gate"] = self.gate.snapshot()
        return data

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        registry: Optional[ERC20Factory] = None,
        native: Optional[NativeCurrency] = None,
    ) -> "CloudaxToken":
        gate = TradingGate()
        gate.restore(data.get("gate", {"trading_enabled": False, "blacklist": []}))
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", TOKEN_DECIMALS),
            total_supply=int(data.get("total_supply", 0)),
            address=data["address"],
            owner=data["owner"],
            presale_address=data.get("presale_address", ""),
            gate=gate,
            native=native or NativeCurrency(),
            registry=registry,
        )
        token._load_state(data)
        return token
