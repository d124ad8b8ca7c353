"""
In-memory ERC20 token.

Balances and allowances are plain integer mappings (18-decimal base units).
Subclasses hook ``_before_token_transfer`` to add transfer policy, the way
the CLDX token adds its blacklist and trading gate.

Security considerations:
- 256-bit range checks on every amount
- Zero address checks on recipients
- Balance and allowance underflow prevention
"""

from __future__ import annotations

import copy
import hashlib
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict

from ..constants import UINT256_MAX, ZERO_ADDRESS
from ..exceptions import TokenError

logger = logging.getLogger(__name__)


@dataclass
class TokenEvent:
    """Represents an ERC20 event."""

    event_type: str  # "Transfer" or "Approval"
    from_address: str
    to_address: str
    value: int


@dataclass
class ERC20Token:
    """
    ERC20 token with owner minting and holder burning.

    State-changing methods take the acting address (msg.sender) as their
    first argument.
    Writers serialize on the token's ``lock``; an ``atomic`` block holding it
    keeps other writers out until the block commits or rolls back.
    """

    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0
    address: str = ""
    owner: str = ""

    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.address:
            addr_input = f"{self.name}{self.symbol}{time.time_ns()}".encode()
            addr_hash = hashlib.sha3_256(addr_input).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.address = self._normalize(self.address)
        self.owner = self._normalize(self.owner) if self.owner else ""
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        return self.balances.get(self._normalize(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(self._normalize(owner), {}).get(self._normalize(spender), 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Raises:
            TokenError: If the transfer is invalid
            LedgerError: If a transfer policy hook rejects it
        """
        sender_norm = self._normalize(sender)
        recipient_norm = self._normalize(recipient)
        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        with self._lock:
            self._before_token_transfer(sender_norm, recipient_norm, amount)
            self._move(sender_norm, recipient_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        owner_norm = self._normalize(owner)
        spender_norm = self._normalize(spender)
        self._validate_address(spender_norm, "spender")
        self._validate_amount(amount)

        with self._lock:
            self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
            self._emit("Approval", owner_norm, spender_norm, amount)
        return True

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """
        Transfer tokens using an allowance.

        Raises:
            TokenError: If allowance or balance is insufficient
        """
        spender_norm = self._normalize(spender)
        from_norm = self._normalize(from_addr)
        to_norm = self._normalize(to_addr)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        with self._lock:
            current_allowance = self.allowance(from_norm, spender_norm)
            if current_allowance < amount:
                raise TokenError(f"ERC20: insufficient allowance ({current_allowance} < {amount})")

            self._before_token_transfer(from_norm, to_norm, amount)
            self._move(from_norm, to_norm, amount)

            if current_allowance != UINT256_MAX:
                self.allowances[from_norm][spender_norm] = current_allowance - amount
        return True

    # ==================== Minting & Burning ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """Mint new tokens (owner only)."""
        self._require_owner(minter)
        to_norm = self._normalize(to)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)
        with self._lock:
            if self.total_supply + amount > UINT256_MAX:
                raise TokenError("ERC20: mint would overflow total supply")

            self.total_supply += amount
            self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
            self._emit("Transfer", ZERO_ADDRESS, to_norm, amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )
        return True

    def burn(self, holder: str, amount: int) -> bool:
        holder_norm = self._normalize(holder)
        self._validate_amount(amount)

        with self._lock:
            balance = self.balances.get(holder_norm, 0)
            if balance < amount:
                raise TokenError(f"ERC20: burn amount exceeds balance ({amount} > {balance})")

            self.balances[holder_norm] = balance - amount
            self.total_supply -= amount
            self._emit("Transfer", holder_norm, ZERO_ADDRESS, amount)
        return True

    # ==================== Hooks & Helpers ====================

    def _before_token_transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Transfer policy hook; the base token allows everything."""

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        sender_balance = self.balances.get(sender, 0)
        if sender_balance < amount:
            raise TokenError(
                f"ERC20: transfer amount exceeds balance ({amount} > {sender_balance})"
            )
        self.balances[sender] = sender_balance - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        self._emit("Transfer", sender, recipient, amount)

    def _normalize(self, address: str) -> str:
        return address.lower()

    def _validate_address(self, address: str, field: str) -> None:
        if address == ZERO_ADDRESS or not address:
            raise TokenError(f"ERC20: {field} is zero address")

    def _validate_amount(self, amount: int) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TokenError("ERC20: amount must be an integer")
        if amount < 0:
            raise TokenError("ERC20: amount cannot be negative")
        if amount > UINT256_MAX:
            raise TokenError("ERC20: amount exceeds uint256")

    def _require_owner(self, caller: str) -> None:
        if not self.owner or self._normalize(caller) != self.owner:
            raise TokenError("ERC20: caller is not owner")

    def _emit(self, event_type: str, from_addr: str, to_addr: str, amount: int) -> None:
        self.events.append(TokenEvent(event_type, from_addr, to_addr, amount))

    # ==================== Snapshots & Serialization ====================

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_supply": self.total_supply,
                "owner": self.owner,
                "balances": dict(self.balances),
                "allowances": copy.deepcopy(self.allowances),
                "event_count": len(self.events),
            }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            self.total_supply = snapshot["total_supply"]
            self.owner = snapshot["owner"]
            self.balances = dict(snapshot["balances"])
            self.allowances = copy.deepcopy(snapshot["allowances"])
            del self.events[snapshot["event_count"]:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "address": self.address,
            "owner": self.owner,
            # JSON cannot hold 256-bit ints portably
            "balances": {k: str(v) for k, v in self.balances.items()},
            "allowances": {
                k: {s: str(v) for s, v in inner.items()} for k, inner in self.allowances.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ERC20Token":
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=int(data.get("total_supply", 0)),
            address=data["address"],
            owner=data.get("owner", ""),
        )
        token._load_state(data)
        return token

    def _load_state(self, data: Dict[str, Any]) -> None:
        self.balances = {k: int(v) for k, v in data.get("balances", {}).items()}
        self.allowances = {
            k: {s: int(v) for s, v in inner.items()}
            for k, inner in data.get("allowances", {}).items()
        }


class ERC20Factory:
    """
    Deploys ERC20 tokens and resolves them by address.
    """

    def __init__(self) -> None:
        self.deployed_tokens: dict[str, ERC20Token] = {}

    def create_token(
        self,
        creator: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        initial_supply: int = 0,
        mint_to: str | None = None,
    ) -> ERC20Token:
        if not name:
            raise TokenError("ERC20Factory: name cannot be empty")
        if not symbol:
            raise TokenError("ERC20Factory: symbol cannot be empty")

        token = ERC20Token(name=name, symbol=symbol, decimals=decimals, owner=creator)
        if initial_supply > 0:
            token.mint(creator, mint_to or creator, initial_supply)
        self.register(token)
        return token

    def register(self, token: ERC20Token) -> ERC20Token:
        self.deployed_tokens[token.address] = token
        logger.info(
            "ERC20 token registered",
            extra={"event": "erc20.registered", "symbol": token.symbol, "address": token.address},
        )
        return token

    def get_token(self, address: str) -> ERC20Token:
        token = self.deployed_tokens.get(address.lower())
        if token is None:
            raise TokenError(f"ERC20Factory: unknown token {address}")
        return token
