"""
Ledger instrumentation for the CLDX treasury.

Prometheus metrics tracking releases, swaps and withdrawals, with helper
functions that are safe to call from the settlement path.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

release_counter = Counter(
    "cldx_vesting_released_total", "Total CLDX base units released to beneficiaries"
)

release_events = Counter(
    "cldx_vesting_release_events_total", "Number of successful release calls"
)

swap_counter = Counter(
    "cldx_swap_volume_total", "Total base units swapped, by direction", ["direction"]
)

withdrawal_counter = Counter(
    "cldx_treasury_withdrawn_total", "Total base units withdrawn from the treasury", ["asset"]
)

withdrawable_gauge = Gauge(
    "cldx_treasury_withdrawable", "Unreserved CLDX held by the treasury vesting wallet", ["address"]
)


def record_release(amount: int) -> None:
    """Count a settled release."""
    if amount <= 0:
        return
    release_counter.inc(amount)
    release_events.inc()


def record_swap(direction: str, amount: int) -> None:
    if amount <= 0:
        return
    swap_counter.labels(direction=direction).inc(amount)


def record_withdrawal(asset: str, amount: int) -> None:
    if amount <= 0:
        return
    withdrawal_counter.labels(asset=asset).inc(amount)


def update_withdrawable(address: str, amount: int) -> None:
    """Refresh the withdrawable gauge for a wallet."""
    if not address:
        return
    withdrawable_gauge.labels(address=address).set(amount)
