"""
CLDX - Cloudax Vesting & Swap Ledger

Treasury vesting wallet for the Cloudax (CLDX) token, with linear vesting
schedules, a CLDX <-> ECO swap ledger and owner treasury withdrawals.

Main Components:
- Core: ERC20 tokens, the CLDX trading gate, access control, configuration
- Vesting: Schedule store and release engine
- Swap: Eco wallet allowlist and swap settlement
- Treasury: The vesting wallet, withdrawals, deployment and persistence
"""

__version__ = "0.1.0"
__author__ = "Cloudax Development Team"

__all__ = []
