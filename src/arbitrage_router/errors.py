"""
Exception hierarchy for the arbitrage router.

Every failure raised by the router core derives from ArbitrageRouterError and
carries a stable ``code`` that the HTTP layer maps to a status code.
"""
from typing import Any, Dict, Optional


class ArbitrageRouterError(Exception):
    """Base exception for all router errors."""

    code = "router_error"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        """
        Initialize router error.

        Args:
            message: Human readable error message
            details: Optional structured context for logging and audit
        """
        self.details = details or {}
        super().__init__(message or self.__class__.__doc__ or self.code)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses."""
        return {
            "error": self.code,
            "message": str(self),
            "details": self.details,
        }


# Validation

class ValidationError(ArbitrageRouterError):
    """Invalid request parameters."""
    code = "validation_error"


class InvalidAmount(ValidationError):
    """Invalid amount."""
    code = "invalid_amount"


class InvalidVenueName(ValidationError):
    """Invalid venue name."""
    code = "invalid_venue_name"


class FeeTooHigh(ValidationError):
    """Fee rate too high."""
    code = "fee_too_high"


class VenueNotActive(ValidationError):
    """Venue is not active."""
    code = "venue_not_active"


class DuplicateVenue(ValidationError):
    """Venue is already registered."""
    code = "duplicate_venue"


class SlippageTooHigh(ValidationError):
    """Slippage too high."""
    code = "slippage_too_high"


class TooManyHops(ValidationError):
    """Too many hops."""
    code = "too_many_hops"


class EmptyRoutes(ValidationError):
    """No arbitrage routes provided."""
    code = "empty_routes"


class TooManyRoutes(ValidationError):
    """Too many routes (maximum 5)."""
    code = "too_many_routes"


class AmountTooLarge(ValidationError):
    """Amount too large."""
    code = "amount_too_large"


class InvalidConfig(ValidationError):
    """Invalid configuration."""
    code = "invalid_config"


class InvalidTimeDelay(ValidationError):
    """Invalid time delay."""
    code = "invalid_time_delay"


class PriceImpactTooHigh(ValidationError):
    """Price impact too high."""
    code = "price_impact_too_high"


# Routing and execution

class NoRouteFound(ArbitrageRouterError):
    """No route found."""
    code = "no_route_found"


class RouteNotProfitable(ArbitrageRouterError):
    """Route not profitable."""
    code = "route_not_profitable"


class SlippageExceeded(ArbitrageRouterError):
    """Slippage exceeds maximum allowed."""
    code = "slippage_exceeded"

    def __init__(
        self,
        message: str = "",
        hop_index: Optional[int] = None,
        expected_min: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        self.hop_index = hop_index
        self.expected_min = expected_min
        self.actual = actual
        super().__init__(message, details={
            "hop_index": hop_index,
            "min_output": expected_min,
            "actual_output": actual,
        })


class InsufficientFunds(ArbitrageRouterError):
    """Insufficient funds for operation."""
    code = "insufficient_funds"


class ProfitTooLow(ArbitrageRouterError):
    """Profit below minimum threshold."""
    code = "profit_too_low"


class UnsupportedVenue(ArbitrageRouterError):
    """Unsupported venue."""
    code = "unsupported_venue"


class FlashLoanFailed(ArbitrageRouterError):
    """Flash loan failed."""
    code = "flash_loan_failed"


class CapitalDenied(FlashLoanFailed):
    """Capital provider denied the loan."""
    code = "capital_denied"


class ArithmeticOverflow(ArbitrageRouterError):
    """Arithmetic overflow."""
    code = "arithmetic_overflow"


# Service state and authorization

class RouterInactive(ArbitrageRouterError):
    """Router is inactive."""
    code = "router_inactive"


class ProgramPaused(ArbitrageRouterError):
    """Flash execution is currently paused."""
    code = "program_paused"


class ProtectionInactive(ArbitrageRouterError):
    """MEV protection is inactive."""
    code = "protection_inactive"


class Unauthorized(ArbitrageRouterError):
    """Unauthorized access."""
    code = "unauthorized"


# Protected transaction lifecycle

class TransactionNotFound(ArbitrageRouterError):
    """Protected transaction not found."""
    code = "transaction_not_found"


class ReportNotFound(ArbitrageRouterError):
    """Attack report not found."""
    code = "report_not_found"


class InvalidTransactionStatus(ArbitrageRouterError):
    """Invalid transaction status."""
    code = "invalid_transaction_status"


class CancellationWindowClosed(InvalidTransactionStatus):
    """Execution deadline has passed; the transaction can no longer be cancelled."""
    code = "cancellation_window_closed"


class ExecutionTooEarly(ArbitrageRouterError):
    """Execution too early."""
    code = "execution_too_early"


class ExecutionDeferred(ExecutionTooEarly):
    """MEV risk too high; execution deadline was extended."""
    code = "execution_deferred"


class SandwichAttackDetected(ArbitrageRouterError):
    """Sandwich attack detected."""
    code = "sandwich_attack_detected"
