"""
Checked integer arithmetic for token amounts.

Amounts are raw integer token units bounded by the unsigned 64-bit range.
Any result outside that range raises ArithmeticOverflow instead of wrapping
or saturating.
"""
from arbitrage_router.errors import ArithmeticOverflow

U64_MAX = 2**64 - 1
BPS_DENOMINATOR = 10_000


def ensure_amount(value: int, name: str = "amount") -> int:
    """Validate that ``value`` fits in the unsigned 64-bit range."""
    if value < 0 or value > U64_MAX:
        raise ArithmeticOverflow(f"{name} out of range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    return ensure_amount(a + b, "sum")


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow(f"subtraction underflow: {a} - {b}")
    return a - b


def checked_mul(a: int, b: int) -> int:
    return ensure_amount(a * b, "product")


def apply_bps(amount: int, rate_bps: int) -> int:
    """
    Calculate ``amount * rate_bps / 10000`` with floor division.

    The intermediate product is overflow-checked the same way the settlement
    layer checks it.
    """
    return checked_mul(amount, rate_bps) // BPS_DENOMINATOR


def min_output_with_slippage(expected: int, slippage_bps: int) -> int:
    """Minimum acceptable output given a slippage tolerance in bps."""
    if slippage_bps > BPS_DENOMINATOR:
        raise ArithmeticOverflow(f"slippage above 100%: {slippage_bps} bps")
    return apply_bps(expected, BPS_DENOMINATOR - slippage_bps)


def slippage_bps(expected: int, actual: int) -> int:
    """Realized slippage of ``actual`` against ``expected`` in bps (0 if better)."""
    if actual >= expected or expected == 0:
        return 0
    return (expected - actual) * BPS_DENOMINATOR // expected
