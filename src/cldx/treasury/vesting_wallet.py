"""
Cloudax treasury vesting wallet.

Holds CLDX for vesting grants, ECO for the swap reserve and native
currency. Every entry point takes the acting address (msg.sender) as its
first argument, runs under the wallet's writer lock and inside an
``atomic`` block: a rejected call leaves wallet and token state untouched.

Read-only queries take the same lock and return copies.

Lock order is wallet, then CLDX, then ECO or any other token, then
native currency. Token and native locks are taken by ``atomic`` and held
until the call commits or rolls back.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional

from ..core import ledger_metrics
from ..core.access import OwnerGuard, normalize_address, require_nonzero
from ..core.atomic import atomic
from ..core.clock import TimeProvider, resolve_time, system_time
from ..core.config import LedgerConfig
from ..core.contracts.erc20 import ERC20Factory, ERC20Token
from ..core.contracts.native import NativeCurrency
from ..core.contracts.token_interface import ERC20TokenAdapter, TokenService
from ..core.exceptions import InsufficientContractBalance, InvalidAddress, Unauthorized
from ..swap.ledger import SwapLedger, SwapRate
from ..vesting.engine import VestingReleaseEngine, compute_releasable_amount, decompose_grant
from ..vesting.schedule import ScheduleStore, VestingSchedule
from .withdrawal import TreasuryWithdrawalController

logger = logging.getLogger(__name__)


class CloudaxTreasuryVestingWallet:
    def __init__(
        self,
        owner: str,
        token: ERC20Token,
        eco_token: ERC20Token,
        native: Optional[NativeCurrency] = None,
        config: Optional[LedgerConfig] = None,
        time_provider: Optional[TimeProvider] = None,
        registry: Optional[ERC20Factory] = None,
        address: str = "",
    ):
        self.address = normalize_address(address) if address else _derive_address(owner)
        self.config = config or LedgerConfig()
        self.native = native or NativeCurrency()
        self.registry = registry
        self._guard = OwnerGuard(owner)
        # The deployment passes the owner, who is also the initial beneficiary
        self.beneficiary_address = self._guard.owner
        self._time_provider = time_provider or system_time
        self._lock = threading.RLock()

        self._token = token
        self._eco_token = eco_token
        self._cldx = ERC20TokenAdapter(token, self.address)
        self._eco = ERC20TokenAdapter(eco_token, self.address)

        self.store = ScheduleStore()
        self.engine = VestingReleaseEngine(
            self.store, self._cldx, owner_provider=self.owner, time_provider=self._time_provider
        )
        self.swap = SwapLedger(
            holder=self.address,
            cldx=self._cldx,
            eco=self._eco,
            owner_provider=self.owner,
            rate=SwapRate(
                self.config.swap_rate_numerator,
                self.config.swap_rate_denominator,
                self.config.swap_fee_bps,
            ),
            burn_address=self.config.burn_address,
            cldx_available=self.get_withdrawable_amount,
            time_provider=self._time_provider,
        )
        self.withdrawals = TreasuryWithdrawalController(
            holder=self.address,
            owner_provider=self.owner,
            native=self.native,
            reserve_provider=self._reserve_for,
        )
        logger.info(
            "Treasury vesting wallet deployed",
            extra={"event": "treasury.deployed", "address": self.address, "owner": self._guard.owner[:10]},
        )

    # ==================== Ownership & Beneficiary ====================

    def owner(self) -> str:
        return self._guard.owner

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._lock, atomic("transfer_ownership", self):
            self._guard.transfer_ownership(caller, new_owner)

    def set_beneficiary_address(self, caller: str, beneficiary: str) -> None:
        with self._lock, atomic("set_beneficiary_address", self):
            self._guard.require_owner(caller)
            self.beneficiary_address = require_nonzero(beneficiary, "beneficiary")
            logger.info(
                "Beneficiary updated",
                extra={"event": "treasury.beneficiary", "beneficiary": self.beneficiary_address[:10]},
            )

    def get_beneficiary_address(self) -> str:
        return self.beneficiary_address

    # ==================== Vesting Schedules ====================

    def initialize(
        self,
        caller: str,
        vesting_duration_months: int,
        beneficiary: str,
        total_allocation: int,
        start_time: Optional[int] = None,
        cliff_duration: int = 0,
    ) -> int:
        """
        Create a grant for ``beneficiary``, decomposed into
        ``months * units_per_month`` release units.

        Returns:
            Number of schedules appended
        """
        with self._lock, atomic("initialize", self):
            self._guard.require_owner(caller)
            beneficiary = require_nonzero(beneficiary, "beneficiary")
            start = self.get_current_time() if start_time is None else int(start_time)
            schedules = decompose_grant(
                beneficiary,
                vesting_duration_months,
                total_allocation,
                start,
                units_per_month=self.config.units_per_month,
                seconds_per_month=self.config.seconds_per_month,
                cliff_duration=cliff_duration,
            )
            self._require_unreserved(total_allocation)
            for schedule in schedules:
                self.store.append(schedule)

            logger.info(
                "Vesting grant initialized",
                extra={
                    "event": "vesting.initialized",
                    "beneficiary": beneficiary[:10],
                    "months": vesting_duration_months,
                    "units": len(schedules),
                    "amount": total_allocation,
                },
            )
            self._publish_withdrawable()
            return len(schedules)

    def add_vesting_schedule(
        self,
        caller: str,
        beneficiary: str,
        total_allocation: int,
        start_time: int,
        cliff_duration: int,
        vesting_duration: int,
    ) -> int:
        """Append a single schedule. Returns its index."""
        with self._lock, atomic("add_vesting_schedule", self):
            self._guard.require_owner(caller)
            schedule = VestingSchedule(
                beneficiary=require_nonzero(beneficiary, "beneficiary"),
                total_allocation=total_allocation,
                start_time=int(start_time),
                cliff_duration=cliff_duration,
                vesting_duration=vesting_duration,
            )
            self._require_unreserved(total_allocation)
            index = self.store.append(schedule)
            logger.info(
                "Vesting schedule added",
                extra={"event": "vesting.schedule_added", "index": index, "beneficiary": schedule.beneficiary[:10]},
            )
            self._publish_withdrawable()
            return index

    def get_vesting_schedules_count(self) -> int:
        with self._lock:
            return len(self.store)

    def get_vesting_schedule(self, index: int) -> VestingSchedule:
        with self._lock:
            return self.store.copy_of(index)

    def get_vesting_schedules_for(self, beneficiary: str) -> List[VestingSchedule]:
        with self._lock:
            beneficiary = normalize_address(beneficiary, "beneficiary")
            return [replace(s) for s in self.store.for_beneficiary(beneficiary)]

    def compute_releasable_amount(self, beneficiary: Optional[str] = None) -> int:
        with self._lock:
            target = normalize_address(beneficiary) if beneficiary else self.beneficiary_address
            return self.engine.releasable_amount(target)

    def compute_schedule_releasable_amount(self, index: int) -> int:
        with self._lock:
            return compute_releasable_amount(self.store.get(index), self.get_current_time())

    # ==================== Release Control ====================

    def pause(self, caller: str) -> None:
        with self._lock, atomic("pause", self):
            self.engine.pause(caller)

    def unpause(self, caller: str) -> None:
        with self._lock, atomic("unpause", self):
            self.engine.unpause(caller)

    def paused(self) -> bool:
        return self.engine.paused

    def release(self, caller: str, beneficiary: Optional[str] = None) -> int:
        """
        Release vested tokens of one beneficiary.

        The target is ``beneficiary`` when given, otherwise the caller if
        they hold schedules, otherwise the wallet's beneficiary address.
        Only the target itself or the owner may trigger the release.
        """
        with self._lock, atomic("release", self, self._cldx):
            caller = require_nonzero(caller, "caller")
            if beneficiary:
                target = require_nonzero(beneficiary, "beneficiary")
            elif self.store.for_beneficiary(caller):
                target = caller
            else:
                target = self.beneficiary_address
            if caller != target and not self._guard.is_owner(caller):
                raise Unauthorized("Only the beneficiary or the owner can release")

            released = self.engine.release(target)
            self._publish_withdrawable()
            return released

    # ==================== Treasury ====================

    def receive(self, sender: str, value: int) -> None:
        """Accept native currency sent to the wallet."""
        with self._lock, atomic("receive", self, self.native):
            self.native.send(sender, self.address, value)

    def get_withdrawable_amount(self) -> int:
        """CLDX held by the wallet that no vesting schedule still claims."""
        with self._lock:
            return self.withdrawals.available(self._cldx)

    def withdraw(self, caller: str, amount: int) -> int:
        """Send unreserved CLDX to the owner."""
        with self._lock, atomic("withdraw", self, self._cldx):
            withdrawn = self.withdrawals.withdraw_tokens(caller, self._cldx, self.owner(), amount)
            self._publish_withdrawable()
            return withdrawn

    def withdraw_tokens(self, caller: str, token_address: str, to: str, amount: int) -> int:
        with self._lock:
            token = self._resolve_token(token_address)
            with atomic("withdraw_tokens", self, token):
                withdrawn = self.withdrawals.withdraw_tokens(caller, token, to, amount)
                self._publish_withdrawable()
                return withdrawn

    def withdraw_ether(self, caller: str, to: str, amount: int) -> int:
        with self._lock, atomic("withdraw_ether", self, self.native):
            return self.withdrawals.withdraw_ether(caller, to, amount)

    # ==================== Swap ====================

    def swap_cldx_to_eco(self, caller: str, amount: int) -> int:
        with self._lock, atomic("swap_cldx_to_eco", self, self._cldx, self._eco):
            return self.swap.swap_cldx_to_eco(caller, amount)

    def swap_eco_to_cldx(self, caller: str, amount: int) -> int:
        with self._lock, atomic("swap_eco_to_cldx", self, self._cldx, self._eco):
            paid = self.swap.swap_eco_to_cldx(caller, amount)
            self._publish_withdrawable()
            return paid

    def aprove_eco_wallet(self, caller: str, wallet: str) -> int:
        with self._lock, atomic("aprove_eco_wallet", self):
            return self.swap.aprove_eco_wallet(caller, wallet)

    def remove_eco_wallet(self, caller: str, wallet: str) -> None:
        with self._lock, atomic("remove_eco_wallet", self):
            self.swap.remove_eco_wallet(caller, wallet)

    def eco_approval_wallet(self, wallet: str) -> int:
        with self._lock:
            return self.swap.eco_approval_wallet(wallet)

    # ==================== Accessors ====================

    def get_current_time(self) -> int:
        return resolve_time(self._time_provider)

    def get_token(self) -> ERC20Token:
        return self._token

    def get_eco_token(self) -> ERC20Token:
        return self._eco_token

    # ==================== Internals ====================

    def _reserve_for(self, token: TokenService) -> int:
        if token.address == self._token.address:
            return self.store.total_unreleased()
        return 0

    def _require_unreserved(self, amount: int) -> None:
        available = self.withdrawals.available(self._cldx)
        if available < amount:
            raise InsufficientContractBalance(
                f"Unreserved CLDX {available} cannot cover allocation {amount}",
                details={"available": available, "requested": amount},
            )

    def _resolve_token(self, token_address: str) -> TokenService:
        token_address = normalize_address(token_address, "token")
        if token_address == self._token.address:
            return self._cldx
        if token_address == self._eco_token.address:
            return self._eco
        if self.registry is None:
            raise InvalidAddress(f"Unknown token {token_address}")
        return ERC20TokenAdapter(self.registry.get_token(token_address), self.address)

    def _publish_withdrawable(self) -> None:
        ledger_metrics.update_withdrawable(self.address, self.withdrawals.available(self._cldx))

    # ==================== Snapshots & Serialization ====================

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def snapshot(self) -> Dict[str, Any]:
        return {
            "guard": self._guard.snapshot(),
            "beneficiary_address": self.beneficiary_address,
            "paused": self.engine.paused,
            "store": self.store.snapshot(),
            "allowlist": self.swap.allowlist.snapshot(),
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self._guard.restore(snapshot["guard"])
        self.beneficiary_address = snapshot["beneficiary_address"]
        self.engine.paused = snapshot["paused"]
        self.store.restore(snapshot["store"])
        self.swap.allowlist.restore(snapshot["allowlist"])

    def to_dict(self) -> Dict[str, Any]:
        """ContractState: everything the wallet owns (token state lives with the tokens)."""
        with self._lock:
            return {
                "address": self.address,
                "owner": self.owner(),
                "beneficiary_address": self.beneficiary_address,
                "paused": self.engine.paused,
                "token": self._token.address,
                "eco_token": self._eco_token.address,
                "config": self.config.to_dict(),
                "schedules": self.store.to_list(),
                "eco_approvals": dict(self.swap.allowlist.approvals),
            }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        token: ERC20Token,
        eco_token: ERC20Token,
        native: Optional[NativeCurrency] = None,
        time_provider: Optional[TimeProvider] = None,
        registry: Optional[ERC20Factory] = None,
    ) -> "CloudaxTreasuryVestingWallet":
        wallet = cls(
            owner=data["owner"],
            token=token,
            eco_token=eco_token,
            native=native,
            config=LedgerConfig.from_dict(data["config"]),
            time_provider=time_provider,
            registry=registry,
            address=data["address"],
        )
        wallet.beneficiary_address = data["beneficiary_address"]
        wallet.engine.paused = bool(data.get("paused", False))
        for item in data.get("schedules", []):
            wallet.store.append(VestingSchedule.from_dict(item))
        wallet.swap.allowlist.approvals = {k: int(v) for k, v in data.get("eco_approvals", {}).items()}
        return wallet


def _derive_address(owner: str) -> str:
    digest = hashlib.sha3_256(f"vesting-wallet:{owner}:{time.time_ns()}".encode()).digest()
    return f"0x{digest[-20:].hex()}"
