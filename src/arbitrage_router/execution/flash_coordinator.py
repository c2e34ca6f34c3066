"""
Flash-Capital Coordinator.

Funds a sequence of routes with borrowed capital that must be repaid within
the same operation. The loan is repaid before any profit is recognised, and
every side effect (program fee, counters, venue metrics, events) is committed
only once the loan has been repaid. Any failure before repayment rolls the
loan back with the capital provider.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from arbitrage_router.errors import (
    AmountTooLarge, EmptyRoutes, FeeTooHigh, InsufficientFunds, InvalidAmount,
    ProgramPaused, ProfitTooLow, SlippageTooHigh, TooManyRoutes
)
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.execution.capital_provider import CapitalProvider, LoanHandle
from arbitrage_router.execution.execution_coordinator import (
    ExecutionCoordinator, StagedExecution, emit_hop_executed
)
from arbitrage_router.pathfinding.route_models import Route
from arbitrage_router.utils.amounts import (
    apply_bps, checked_add, checked_sub, ensure_amount
)
from arbitrage_router.utils.auth import authorize
from arbitrage_router.utils.counters import CounterSet

logger = logging.getLogger(__name__)


FLASH_COUNTERS = ("arbitrages_executed", "total_volume", "total_fees_collected", "fees_withdrawn")

MAX_ROUTES = 5
MAX_FLASH_AMOUNT = 1_000_000_000_000
FLASH_LOAN_FEE_BPS = 30
MAX_PROGRAM_FEE_BPS = 1_000
MAX_SLIPPAGE_BPS = 5_000


class ArbitrageStatus(str, Enum):
    """Flash arbitrage lifecycle."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class FlashConfig:
    """Flash execution configuration."""
    authority: str
    fee_rate_bps: int = 50           # Program fee on gross profit
    max_slippage_bps: int = 300      # Per-hop tolerance
    is_paused: bool = False
    loan_fee_bps: int = FLASH_LOAN_FEE_BPS
    max_flash_amount: int = MAX_FLASH_AMOUNT
    max_routes: int = MAX_ROUTES

    def __post_init__(self):
        if self.fee_rate_bps > MAX_PROGRAM_FEE_BPS or self.fee_rate_bps < 0:
            raise FeeTooHigh(f"Program fee {self.fee_rate_bps} bps exceeds {MAX_PROGRAM_FEE_BPS}")
        if self.max_slippage_bps > MAX_SLIPPAGE_BPS or self.max_slippage_bps < 0:
            raise SlippageTooHigh(f"Max slippage {self.max_slippage_bps} bps exceeds {MAX_SLIPPAGE_BPS}")


@dataclass
class FlashLedger:
    """Accounting for one flash-funded execution."""
    flash_amount: int
    min_profit: int
    routes_count: int
    status: ArbitrageStatus = ArbitrageStatus.IN_PROGRESS
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    flash_fee: int = 0
    repay_amount: int = 0
    final_balance: int = 0
    gross_profit: int = 0
    program_fee: int = 0
    net_profit: int = 0
    route_fees: int = 0
    error: Optional[str] = None

    @property
    def total_fees(self) -> int:
        return self.route_fees + self.flash_fee + self.program_fee

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flash_amount": self.flash_amount,
            "flash_fee": self.flash_fee,
            "repay_amount": self.repay_amount,
            "final_balance": self.final_balance,
            "gross_profit": self.gross_profit,
            "program_fee": self.program_fee,
            "net_profit": self.net_profit,
            "route_fees": self.route_fees,
            "total_fees": self.total_fees,
            "routes_count": self.routes_count,
            "status": self.status.value,
            "error": self.error,
        }


class FlashCoordinator:
    """
    Executes routes funded by a flash loan.

    Accounting per execution:
        flash_fee    = flash_amount * loan_fee_bps / 10000
        repay_amount = flash_amount + flash_fee
        gross_profit = final_balance - repay_amount
        program_fee  = gross_profit * fee_rate_bps / 10000
        net_profit   = gross_profit - program_fee
    """

    def __init__(
        self,
        executor: ExecutionCoordinator,
        capital_provider: CapitalProvider,
        config: FlashConfig,
        event_log: Optional[EventLog] = None,
        counters: Optional[CounterSet] = None
    ):
        """
        Initialize flash coordinator.

        Args:
            executor: Coordinator used to run hops without committing them
            capital_provider: Source of the borrowed capital
            config: Flash execution configuration
            event_log: Event log for route and arbitrage events
            counters: Flash counters; a fresh set is created when omitted
        """
        self.executor = executor
        self.capital_provider = capital_provider
        self.config = config
        self.event_log = event_log if event_log is not None else EventLog()
        self.counters = counters or CounterSet("flash", FLASH_COUNTERS)
        self._withdraw_lock = asyncio.Lock()

    async def execute_flash(
        self,
        routes: Sequence[Route],
        flash_amount: int,
        min_profit: int
    ) -> FlashLedger:
        """
        Borrow, run every route in order, repay and collect the program fee.

        Args:
            routes: One to five routes executed back to back
            flash_amount: Amount borrowed and fed into the first route
            min_profit: Minimum gross profit after repayment

        Returns:
            Completed flash ledger

        Raises:
            ProgramPaused: If flash execution is paused
            EmptyRoutes: If no routes were given
            TooManyRoutes: If more than five routes were given
            InvalidAmount: If flash_amount is not positive
            AmountTooLarge: If flash_amount exceeds the ceiling
            FlashLoanFailed: If the capital provider refuses the loan
            InsufficientFunds: If the final balance cannot repay the loan
            ProfitTooLow: If gross profit is below min_profit
        """
        self._validate(routes, flash_amount, min_profit)

        ledger = FlashLedger(
            flash_amount=flash_amount,
            min_profit=min_profit,
            routes_count=len(routes),
        )

        handle = await self.capital_provider.borrow(flash_amount, self.config.loan_fee_bps)
        logger.info(f"Borrowed {flash_amount} ({handle.loan_id}) for {len(routes)} route(s)")

        try:
            staged_routes = await self._run_routes(routes, flash_amount)
            self._settle(ledger, staged_routes)
            await self._repay_and_commit(handle, ledger, staged_routes)
        except Exception as e:
            await self._abort(handle, ledger, e)
            raise

        self._emit_executed(ledger, staged_routes)

        ledger.status = ArbitrageStatus.COMPLETED
        ledger.end_time = time.time()
        logger.info(
            f"Flash arbitrage completed: borrowed={flash_amount} final={ledger.final_balance} "
            f"gross={ledger.gross_profit} net={ledger.net_profit}"
        )
        return ledger

    def _validate(self, routes: Sequence[Route], flash_amount: int, min_profit: int) -> None:
        if self.config.is_paused:
            raise ProgramPaused()
        if not routes:
            raise EmptyRoutes()
        if len(routes) > self.config.max_routes:
            raise TooManyRoutes(f"{len(routes)} routes given, maximum {self.config.max_routes}")
        if flash_amount <= 0:
            raise InvalidAmount(f"Flash amount must be positive, got {flash_amount}")
        if flash_amount > self.config.max_flash_amount:
            raise AmountTooLarge(
                f"Flash amount {flash_amount} exceeds {self.config.max_flash_amount}"
            )
        ensure_amount(min_profit, "min_profit")

    async def _run_routes(self, routes: Sequence[Route], flash_amount: int) -> List[StagedExecution]:
        current_amount = flash_amount
        staged_routes: List[StagedExecution] = []
        for index, route in enumerate(routes):
            staged = await self.executor.execute_hops(
                route, current_amount, self.config.max_slippage_bps
            )
            logger.debug(f"Flash route {index}: {current_amount} -> {staged.output_amount}")
            staged_routes.append(staged)
            current_amount = staged.output_amount
        return staged_routes

    def _settle(self, ledger: FlashLedger, staged_routes: List[StagedExecution]) -> None:
        route_fees = 0
        for staged in staged_routes:
            route_fees = checked_add(route_fees, staged.total_fees)

        ledger.route_fees = route_fees
        ledger.final_balance = staged_routes[-1].output_amount
        ledger.flash_fee = apply_bps(ledger.flash_amount, self.config.loan_fee_bps)
        ledger.repay_amount = checked_add(ledger.flash_amount, ledger.flash_fee)

        if ledger.final_balance < ledger.repay_amount:
            raise InsufficientFunds(
                f"Final balance {ledger.final_balance} cannot repay {ledger.repay_amount}",
                details={"final_balance": ledger.final_balance, "repay_amount": ledger.repay_amount},
            )

        ledger.gross_profit = checked_sub(ledger.final_balance, ledger.repay_amount)
        if ledger.gross_profit < ledger.min_profit:
            raise ProfitTooLow(
                f"Gross profit {ledger.gross_profit} below minimum {ledger.min_profit}",
                details={"gross_profit": ledger.gross_profit, "min_profit": ledger.min_profit},
            )

        ledger.program_fee = apply_bps(ledger.gross_profit, self.config.fee_rate_bps)
        ledger.net_profit = checked_sub(ledger.gross_profit, ledger.program_fee)

    async def _abort(self, handle: LoanHandle, ledger: FlashLedger, error: Exception) -> None:
        await self.capital_provider.rollback(handle)
        ledger.status = ArbitrageStatus.FAILED
        ledger.error = str(error)
        ledger.end_time = time.time()
        logger.warning(f"Flash arbitrage aborted, loan {handle.loan_id} rolled back: {error}")

    @staticmethod
    def _counter_increments(ledger: FlashLedger) -> Dict[str, int]:
        return {
            "arbitrages_executed": 1,
            "total_volume": ledger.flash_amount,
            "total_fees_collected": ledger.program_fee,
        }

    async def _repay_and_commit(
        self,
        handle: LoanHandle,
        ledger: FlashLedger,
        staged_routes: List[StagedExecution]
    ) -> None:
        """Repay the loan and apply venue metrics and counters as one unit."""
        updates = [update for staged in staged_routes for update in staged.metrics_updates()]

        async def repay() -> None:
            await self.capital_provider.repay(handle, ledger.repay_amount)

        async with self.counters.lock:
            new_values = self.counters.validate(self._counter_increments(ledger))
            await self.executor.registry.apply_metrics_batch(updates, before_apply=repay)
            self.counters.store(new_values)

    def _emit_executed(self, ledger: FlashLedger, staged_routes: List[StagedExecution]) -> None:
        for index, staged in enumerate(staged_routes):
            for hop in staged.hops:
                emit_hop_executed(self.event_log, hop)
            self.event_log.emit(
                EventType.ROUTE_EXECUTED,
                route_index=index,
                venues=staged.route.venues,
                input_amount=staged.input_amount,
                output_amount=staged.output_amount,
                fees_paid=staged.total_fees,
            )

        self.event_log.emit(
            EventType.ARBITRAGE_EXECUTED,
            flash_loan_amount=ledger.flash_amount,
            gross_profit=ledger.gross_profit,
            net_profit=ledger.net_profit,
            total_fees=ledger.total_fees,
            routes_count=ledger.routes_count,
        )

    # Administrative operations

    def update_config(
        self,
        caller: str,
        fee_rate_bps: Optional[int] = None,
        max_slippage_bps: Optional[int] = None,
        is_paused: Optional[bool] = None
    ) -> FlashConfig:
        """Update flash configuration (authority only)."""
        authorize(caller, self.config.authority)

        # Validate everything before applying anything
        if fee_rate_bps is not None and not 0 <= fee_rate_bps <= MAX_PROGRAM_FEE_BPS:
            raise FeeTooHigh(f"Program fee {fee_rate_bps} bps exceeds {MAX_PROGRAM_FEE_BPS}")
        if max_slippage_bps is not None and not 0 <= max_slippage_bps <= MAX_SLIPPAGE_BPS:
            raise SlippageTooHigh(f"Max slippage {max_slippage_bps} bps exceeds {MAX_SLIPPAGE_BPS}")

        if fee_rate_bps is not None:
            self.config.fee_rate_bps = fee_rate_bps
        if max_slippage_bps is not None:
            self.config.max_slippage_bps = max_slippage_bps
        if is_paused is not None:
            self.config.is_paused = is_paused

        self.event_log.emit(
            EventType.CONFIG_UPDATED,
            component="flash",
            authority=caller,
            fee_rate_bps=self.config.fee_rate_bps,
            max_slippage_bps=self.config.max_slippage_bps,
            is_paused=self.config.is_paused,
        )
        return self.config

    def pause(self, caller: str) -> None:
        """Emergency pause of flash execution (authority only)."""
        authorize(caller, self.config.authority)
        self.config.is_paused = True
        logger.warning(f"Flash execution paused by {caller}")
        self.event_log.emit(
            EventType.EMERGENCY_PAUSE_ACTIVATED,
            authority=caller,
            timestamp=int(time.time()),
        )

    def resume(self, caller: str) -> None:
        """Resume flash execution after a pause (authority only)."""
        self.update_config(caller, is_paused=False)
        logger.info(f"Flash execution resumed by {caller}")

    @property
    def available_fees(self) -> int:
        return checked_sub(
            self.counters.get("total_fees_collected"), self.counters.get("fees_withdrawn")
        )

    async def withdraw_fees(self, caller: str, amount: int, destination: str = "") -> int:
        """
        Withdraw collected program fees (authority only).

        Returns:
            Fees still available after the withdrawal
        """
        authorize(caller, self.config.authority)
        if amount <= 0:
            raise InvalidAmount(f"Withdrawal amount must be positive, got {amount}")
        async with self._withdraw_lock:
            if amount > self.available_fees:
                raise InsufficientFunds(
                    f"Cannot withdraw {amount}: only {self.available_fees} available"
                )
            await self.counters.apply({"fees_withdrawn": amount})

        self.event_log.emit(
            EventType.FEES_WITHDRAWN,
            authority=caller,
            amount=amount,
            destination=destination or caller,
        )
        return self.available_fees
