"""
Ledger exception hierarchy for the CLDX vesting and swap engine.

Every rejection raised by a contract entry point is a subclass of
LedgerError. Each class carries a stable ``reason`` string so callers
(and tests) can assert on the exact revert reason, mirroring the revert
strings of the deployed contracts.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for all ledger rejections.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        reason: Stable revert reason for this error class
    """

    reason: str = "Ledger operation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        message = message or self.reason
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ==================== Access Errors ====================


class Unauthorized(LedgerError):
    """Raised when a privileged operation is invoked by a non-owner."""

    reason = "Ownable: caller is not the owner"


class Blacklisted(LedgerError):
    """Raised when the sender or recipient of a transfer is blacklisted."""

    reason = "An address is blacklisted"


class TradingDisabled(LedgerError):
    """Raised when a non-exempt transfer is attempted before trading opens."""

    reason = "Trading is not enabled yet"


class Paused(LedgerError):
    """Raised when releases are attempted while the wallet is paused."""

    reason = "Pausable: paused"


class NotApprovedWallet(LedgerError):
    """Raised when a swap is attempted from a wallet not on the allowlist."""

    reason = "Wallet not approved for swap"


# ==================== Validation Errors ====================


class InvalidDuration(LedgerError):
    """Raised when a vesting duration is zero."""

    reason = "Vesting duration must be greater than zero"


class InvalidAmount(LedgerError):
    """Raised when an amount is zero, negative or out of range."""

    reason = "Amount must be greater than zero"


class InvalidAddress(LedgerError):
    """Raised when an address is empty or the zero address."""

    reason = "Invalid address"


class IndexOutOfRange(LedgerError):
    """Raised when a schedule index is outside the store."""

    reason = "Index out of range"


# ==================== Accounting Errors ====================


class NothingToRelease(LedgerError):
    """Raised when a release finds no vested-but-unreleased tokens."""

    reason = "No tokens available for release"


class InsufficientBalance(LedgerError):
    """Raised when a caller lacks the balance an operation needs."""

    reason = "Insufficient balance"


class InsufficientContractBalance(LedgerError):
    """Raised when the contract holds less than a withdrawal or payout needs."""

    reason = "Insufficient contract balance"


class TransferFailed(LedgerError):
    """Raised when the external token service reports a failed transfer."""

    reason = "Token transfer failed"


class TokenError(LedgerError):
    """Raised by the in-memory ERC20 token for standard-level failures."""

    reason = "ERC20: operation failed"


__all__ = [
    "LedgerError",
    "Unauthorized",
    "Blacklisted",
    "TradingDisabled",
    "Paused",
    "NotApprovedWallet",
    "InvalidDuration",
    "InvalidAmount",
    "InvalidAddress",
    "IndexOutOfRange",
    "NothingToRelease",
    "InsufficientBalance",
    "InsufficientContractBalance",
    "TransferFailed",
    "TokenError",
]
