"""Shared numeric and concurrency helpers."""
from .amounts import (
    U64_MAX,
    BPS_DENOMINATOR,
    apply_bps,
    checked_add,
    checked_mul,
    checked_sub,
    ensure_amount,
    min_output_with_slippage,
    slippage_bps,
)
from .auth import authorize
from .counters import AtomicCounter, CounterSet

__all__ = [
    "U64_MAX",
    "BPS_DENOMINATOR",
    "apply_bps",
    "checked_add",
    "checked_mul",
    "checked_sub",
    "ensure_amount",
    "min_output_with_slippage",
    "slippage_bps",
    "AtomicCounter",
    "CounterSet",
    "authorize",
]
