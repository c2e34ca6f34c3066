"""
Capital Provider interface and simulated implementation.

Flash-funded execution borrows capital that must be repaid inside the same
operation. Providers hand out a LoanHandle on borrow; the coordinator either
repays the handle in full or rolls it back when the operation aborts.
"""
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from arbitrage_router.errors import CapitalDenied, InsufficientFunds, InvalidAmount
from arbitrage_router.utils.amounts import apply_bps, checked_add, checked_sub, ensure_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoanHandle:
    """Outstanding loan issued by a capital provider."""
    loan_id: str
    amount: int
    fee: int

    @property
    def repay_amount(self) -> int:
        return checked_add(self.amount, self.fee)


class CapitalProvider(ABC):
    """Abstract base class for flash capital sources."""

    @abstractmethod
    async def borrow(self, amount: int, fee_bps: int) -> LoanHandle:
        """
        Borrow ``amount`` for the duration of one operation.

        Raises:
            CapitalDenied: If the provider refuses the loan
        """
        pass

    @abstractmethod
    async def repay(self, handle: LoanHandle, amount: int) -> None:
        """
        Repay an outstanding loan.

        Raises:
            InsufficientFunds: If ``amount`` is below the handle's repay amount
        """
        pass

    @abstractmethod
    async def rollback(self, handle: LoanHandle) -> None:
        """Unwind a loan whose operation aborted before repayment."""
        pass


class SimulatedCapitalProvider(CapitalProvider):
    """In-process provider with a fixed liquidity ceiling."""

    def __init__(self, liquidity: Optional[int] = None, name: str = "simulated"):
        """
        Initialize simulated provider.

        Args:
            liquidity: Maximum capital outstanding at once (None is unlimited)
            name: Provider name used in loan ids and logs
        """
        self.name = name
        self.liquidity = liquidity
        self._outstanding: Dict[str, LoanHandle] = {}
        self._ids = itertools.count(1)

        self.stats = {
            "loans_issued": 0,
            "loans_repaid": 0,
            "loans_rolled_back": 0,
            "loans_denied": 0,
            "fees_earned": 0,
        }

    @property
    def outstanding_amount(self) -> int:
        return sum(handle.amount for handle in self._outstanding.values())

    @property
    def available_liquidity(self) -> Optional[int]:
        if self.liquidity is None:
            return None
        return max(self.liquidity - self.outstanding_amount, 0)

    async def borrow(self, amount: int, fee_bps: int) -> LoanHandle:
        if amount <= 0:
            raise InvalidAmount(f"Loan amount must be positive, got {amount}")
        ensure_amount(amount, "loan amount")

        available = self.available_liquidity
        if available is not None and amount > available:
            self.stats["loans_denied"] += 1
            logger.warning(f"{self.name}: denied loan of {amount}, available {available}")
            raise CapitalDenied(
                f"{self.name} cannot lend {amount}: available liquidity {available}",
                details={"requested": amount, "available": available},
            )

        handle = LoanHandle(
            loan_id=f"{self.name}-{next(self._ids)}",
            amount=amount,
            fee=apply_bps(amount, fee_bps),
        )
        self._outstanding[handle.loan_id] = handle
        self.stats["loans_issued"] += 1
        logger.debug(f"{self.name}: issued {handle.loan_id} for {amount} (fee {handle.fee})")
        return handle

    async def repay(self, handle: LoanHandle, amount: int) -> None:
        if handle.loan_id not in self._outstanding:
            raise CapitalDenied(f"Unknown or settled loan {handle.loan_id}")
        if amount < handle.repay_amount:
            raise InsufficientFunds(
                f"Repayment {amount} below required {handle.repay_amount} for {handle.loan_id}"
            )

        del self._outstanding[handle.loan_id]
        self.stats["loans_repaid"] += 1
        self.stats["fees_earned"] = checked_add(
            self.stats["fees_earned"], checked_sub(amount, handle.amount)
        )

    async def rollback(self, handle: LoanHandle) -> None:
        if self._outstanding.pop(handle.loan_id, None) is None:
            return
        self.stats["loans_rolled_back"] += 1
        logger.info(f"{self.name}: rolled back {handle.loan_id}")
