"""
Treasury vesting wallet, withdrawals, deployment and state persistence.
"""
