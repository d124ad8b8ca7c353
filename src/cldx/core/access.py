"""
Owner-based access control.

Contracts hold an ``OwnerGuard`` and call ``require_owner(caller)`` as the
first statement of every privileged entry point.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from .constants import ZERO_ADDRESS
from .exceptions import InvalidAddress, Unauthorized

logger = logging.getLogger(__name__)


def normalize_address(address: str, field: str = "address") -> str:
    """Lowercase an address, rejecting empty values."""
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddress(f"{field} cannot be empty")
    return address.strip().lower()


def require_nonzero(address: str, field: str = "address") -> str:
    normalized = normalize_address(address, field)
    if normalized == ZERO_ADDRESS:
        raise InvalidAddress(f"{field} is the zero address")
    return normalized


def is_owner(owner: str, caller: str) -> bool:
    return bool(owner) and isinstance(caller, str) and caller.strip().lower() == owner


def require_owner(owner: str, caller: str) -> None:
    """Raise ``Unauthorized`` unless ``caller`` is ``owner``."""
    if not is_owner(owner, caller):
        logger.warning(
            "Access denied for non-owner caller",
            extra={"event": "access.denied", "caller": str(caller)[:10]},
        )
        raise Unauthorized()


class OwnerGuard:
    """Single-owner guard with ownership transfer."""

    def __init__(self, owner: str):
        self.owner = require_nonzero(owner, "owner")

    def is_owner(self, caller: str) -> bool:
        return is_owner(self.owner, caller)

    def require_owner(self, caller: str) -> None:
        require_owner(self.owner, caller)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.require_owner(caller)
        new_owner = require_nonzero(new_owner, "new owner")
        previous, self.owner = self.owner, new_owner
        logger.info(
            "Ownership transferred",
            extra={"event": "access.ownership_transferred", "from": previous[:10], "to": new_owner[:10]},
        )

    def snapshot(self) -> Dict[str, Any]:
        return {"owner": self.owner}

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.owner = snapshot["owner"]
