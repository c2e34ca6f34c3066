"""
Execution Coordinator for atomic multi-hop swaps.

Executes a computed route hop by hop through the venue adapter, chaining the
realized output of each hop into the next. Every side effect (venue metrics,
router counters, hop events) is staged while hops run and committed in a
single step once the whole route has succeeded. A failing hop discards the
staged effects, so a failed route leaves no trace apart from its record.
"""
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from arbitrage_router.errors import InvalidTransactionStatus, SlippageExceeded, SlippageTooHigh
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.pathfinding.route_models import Route
from arbitrage_router.utils.amounts import (
    BPS_DENOMINATOR, apply_bps, checked_add, checked_sub, ensure_amount,
    min_output_with_slippage, slippage_bps
)
from arbitrage_router.utils.counters import CounterSet
from arbitrage_router.venues.adapter import VenueAdapter
from arbitrage_router.venues.models import VenueMetricsUpdate
from arbitrage_router.venues.registry import VenueRegistry

logger = logging.getLogger(__name__)


ROUTER_COUNTERS = ("routes_executed", "total_volume", "total_fees_collected")


class ExecutionStatus(str, Enum):
    """Execution status for tracking."""
    FINDING = "finding"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class HopResult:
    """Realized outcome of one hop, staged until commit."""
    hop_index: int
    venue_id: str
    input_token: str
    output_token: str
    amount_in: int
    amount_out: int
    fee: int
    expected_output: int
    min_output: int

    @property
    def slippage_bps(self) -> int:
        return slippage_bps(self.expected_output, self.amount_out)


@dataclass
class StagedExecution:
    """Side-effect free result of running a route's hops."""
    route: Route
    input_amount: int
    output_amount: int
    total_fees: int
    hops: List[HopResult] = field(default_factory=list)

    def metrics_updates(self) -> List[VenueMetricsUpdate]:
        return [
            VenueMetricsUpdate(
                venue_id=hop.venue_id,
                volume=hop.amount_in,
                swap_count=1,
                avg_slippage_bps=hop.slippage_bps,
            )
            for hop in self.hops
        ]


@dataclass
class ExecutionRecord:
    """Record of a single route execution."""
    execution_id: str
    route: Route
    input_amount: int
    status: ExecutionStatus = ExecutionStatus.FINDING
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    actual_output: int = 0
    total_fees: int = 0
    routing_fee: int = 0
    actual_slippage_bps: int = 0
    hops_executed: int = 0

    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)

    def finalize(self, status: ExecutionStatus, error: Optional[str] = None) -> None:
        """Move the record to a terminal status exactly once."""
        if self.is_terminal:
            raise InvalidTransactionStatus(
                f"Execution {self.execution_id} already finalized as {self.status.value}"
            )
        if status not in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED):
            raise InvalidTransactionStatus(f"{status.value} is not a terminal status")
        self.status = status
        self.error = error
        self.end_time = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "status": self.status.value,
            "input_amount": self.input_amount,
            "actual_output": self.actual_output,
            "total_fees": self.total_fees,
            "routing_fee": self.routing_fee,
            "actual_slippage_bps": self.actual_slippage_bps,
            "hops_executed": self.hops_executed,
            "venues": self.route.venues,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "error": self.error,
        }


class ExecutionCoordinator:
    """
    Runs routes atomically against the venue adapter.

    Key features:
    - Per-hop minimum output derived from the slippage tolerance
    - Realized output of each hop feeds the next
    - Staged venue metrics, counters and events committed together
    """

    def __init__(
        self,
        adapter: VenueAdapter,
        registry: VenueRegistry,
        event_log: Optional[EventLog] = None,
        counters: Optional[CounterSet] = None
    ):
        """
        Initialize execution coordinator.

        Args:
            adapter: Venue adapter used to fill swaps
            registry: Venue registry receiving metric updates on commit
            event_log: Event log for hop and route events
            counters: Router counters; a fresh set is created when omitted
        """
        self.adapter = adapter
        self.registry = registry
        self.event_log = event_log if event_log is not None else EventLog()
        self.counters = counters or CounterSet("router", ROUTER_COUNTERS)

        self.stats = {
            "executions_started": 0,
            "executions_completed": 0,
            "executions_failed": 0,
        }

    async def execute(
        self,
        route: Route,
        input_amount: int,
        max_slippage_bps: int,
        routing_fee_bps: int = 0,
        min_output_amount: int = 0
    ) -> ExecutionRecord:
        """
        Execute a route atomically.

        Args:
            route: Route to execute
            input_amount: Amount fed into the first hop
            max_slippage_bps: Per-hop slippage tolerance
            routing_fee_bps: Router fee taken from the final output
            min_output_amount: Floor on the output left after the routing fee

        Returns:
            Completed execution record

        Raises:
            SlippageExceeded: If any hop fills below its minimum output, or the
                output after the routing fee is below min_output_amount
            ArbitrageRouterError: Any other routing failure; nothing is committed
        """
        if not 0 <= max_slippage_bps <= BPS_DENOMINATOR:
            raise SlippageTooHigh(f"Slippage tolerance {max_slippage_bps} bps out of range")
        ensure_amount(input_amount, "input_amount")

        record = ExecutionRecord(
            execution_id=str(uuid.uuid4()),
            route=route,
            input_amount=input_amount,
        )
        self.stats["executions_started"] += 1

        try:
            record.status = ExecutionStatus.EXECUTING
            staged = await self.execute_hops(route, input_amount, max_slippage_bps)

            routing_fee = apply_bps(staged.output_amount, routing_fee_bps)
            final_output = checked_sub(staged.output_amount, routing_fee)
            total_fees = checked_add(staged.total_fees, routing_fee)
            if final_output < min_output_amount:
                raise SlippageExceeded(
                    f"Route output {final_output} after fees is below minimum {min_output_amount}",
                    expected_min=min_output_amount,
                    actual=final_output,
                )

            await self._commit(staged, routing_fee, total_fees)
        except Exception as e:
            self.stats["executions_failed"] += 1
            record.finalize(ExecutionStatus.FAILED, error=str(e))
            logger.warning(f"Execution {record.execution_id} failed: {e}")
            raise

        record.actual_output = final_output
        record.total_fees = total_fees
        record.routing_fee = routing_fee
        record.actual_slippage_bps = slippage_bps(route.expected_output, final_output)
        record.hops_executed = len(staged.hops)
        record.finalize(ExecutionStatus.COMPLETED)
        self.stats["executions_completed"] += 1

        logger.info(
            f"Executed route {record.execution_id}: {input_amount} -> {final_output} "
            f"via {route.venues} (fees={total_fees}, slippage={record.actual_slippage_bps}bps)"
        )
        return record

    async def execute_hops(
        self,
        route: Route,
        input_amount: int,
        max_slippage_bps: int
    ) -> StagedExecution:
        """
        Run every hop of ``route`` without committing anything.

        Used directly by the flash coordinator, which commits on its own terms.
        """
        current_amount = input_amount
        total_fees = 0
        results: List[HopResult] = []

        for index, hop in enumerate(route.hops):
            min_output = min_output_with_slippage(hop.expected_output, max_slippage_bps)
            try:
                fill = await self.adapter.execute_swap(
                    hop.venue_id,
                    current_amount,
                    min_output,
                    token_in=hop.input_token,
                    token_out=hop.output_token,
                )
            except SlippageExceeded as e:
                raise SlippageExceeded(
                    f"Hop {index} on {hop.venue_id} filled {e.actual}, minimum {min_output}",
                    hop_index=index,
                    expected_min=min_output,
                    actual=e.actual,
                ) from e

            # Adapters are not trusted to enforce the minimum themselves
            if fill.amount_out < min_output:
                raise SlippageExceeded(
                    f"Hop {index} on {hop.venue_id} filled {fill.amount_out}, minimum {min_output}",
                    hop_index=index,
                    expected_min=min_output,
                    actual=fill.amount_out,
                )

            total_fees = checked_add(total_fees, fill.fee)
            results.append(HopResult(
                hop_index=index,
                venue_id=hop.venue_id,
                input_token=hop.input_token,
                output_token=hop.output_token,
                amount_in=current_amount,
                amount_out=fill.amount_out,
                fee=fill.fee,
                expected_output=hop.expected_output,
                min_output=min_output,
            ))
            current_amount = fill.amount_out

        return StagedExecution(
            route=route,
            input_amount=input_amount,
            output_amount=current_amount,
            total_fees=total_fees,
            hops=results,
        )

    async def _commit(self, staged: StagedExecution, routing_fee: int, total_fees: int) -> None:
        increments = {
            "routes_executed": 1,
            "total_volume": staged.input_amount,
            "total_fees_collected": routing_fee,
        }
        async with self.counters.lock:
            new_values = self.counters.validate(increments)
            await self.registry.apply_metrics_batch(staged.metrics_updates())
            self.counters.store(new_values)

        for hop in staged.hops:
            emit_hop_executed(self.event_log, hop)
        self.event_log.emit(
            EventType.ROUTE_EXECUTED,
            input_token=staged.route.input_token,
            output_token=staged.route.output_token,
            input_amount=staged.input_amount,
            output_amount=checked_sub(staged.output_amount, routing_fee),
            routing_fee=routing_fee,
            total_fees=total_fees,
            hops_count=len(staged.hops),
        )

    def get_stats(self) -> Dict[str, Any]:
        return {**self.stats, "counters": self.counters.snapshot()}


def emit_hop_executed(event_log: EventLog, hop: HopResult) -> None:
    event_log.emit(
        EventType.HOP_EXECUTED,
        hop_index=hop.hop_index,
        venue_name=hop.venue_id,
        input_token=hop.input_token,
        output_token=hop.output_token,
        input_amount=hop.amount_in,
        output_amount=hop.amount_out,
        fees=hop.fee,
    )
