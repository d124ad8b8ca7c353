"""
CLDX <-> ECO swap ledger.
"""

from .ledger import CLDX_TO_ECO, ECO_TO_CLDX, SwapAllowlist, SwapLedger, SwapRate

__all__ = ["CLDX_TO_ECO", "ECO_TO_CLDX", "SwapAllowlist", "SwapLedger", "SwapRate"]
