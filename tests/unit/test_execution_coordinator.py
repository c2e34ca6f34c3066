"""Unit tests for the atomic execution coordinator."""
import asyncio

import pytest

from arbitrage_router.errors import ArithmeticOverflow, InvalidTransactionStatus, SlippageExceeded
from arbitrage_router.events import EventType
from arbitrage_router.execution import ExecutionCoordinator, ExecutionRecord, ExecutionStatus
from arbitrage_router.utils.amounts import U64_MAX

from tests.conftest import BONK, SOL, USDC, TableVenueAdapter, make_route


@pytest.fixture
def adapter():
    return TableVenueAdapter({
        ("alpha", SOL, USDC): (10_000, 0, 10),
        ("beta", USDC, BONK): (20_000, 0, 10),
    })


@pytest.fixture
def route():
    return make_route(
        ("alpha", SOL, USDC, 1_000_000, 1_000_000, 0),
        ("beta", USDC, BONK, 1_000_000, 2_000_000, 0),
    )


@pytest.fixture
def executor(adapter, registry, event_log):
    return ExecutionCoordinator(adapter, registry, event_log)


class TestExecutionCoordinator:
    """Test suite for ExecutionCoordinator."""

    @pytest.mark.asyncio
    async def test_execute_two_hop_route(self, executor, route, adapter):
        record = await executor.execute(route, 1_000_000, max_slippage_bps=50)

        assert record.status == ExecutionStatus.COMPLETED
        assert record.actual_output == 2_000_000
        assert record.hops_executed == 2
        assert record.routing_fee == 0
        assert record.actual_slippage_bps == 0
        assert [swap[0] for swap in adapter.swaps] == ["alpha", "beta"]

    @pytest.mark.asyncio
    async def test_routing_fee_taken_from_output(self, executor, route):
        record = await executor.execute(route, 1_000_000, max_slippage_bps=50, routing_fee_bps=10)

        assert record.routing_fee == 2_000
        assert record.actual_output == 1_998_000
        assert record.total_fees == 2_000
        assert record.actual_slippage_bps == 10
        assert executor.counters.get("total_fees_collected") == 2_000

    @pytest.mark.asyncio
    async def test_commit_updates_metrics_counters_and_events(
        self, executor, route, registry, event_log
    ):
        await executor.execute(route, 1_000_000, max_slippage_bps=50)

        alpha = registry.get("alpha")
        assert alpha.total_volume == 1_000_000
        assert alpha.total_swaps == 1
        assert registry.get("beta").total_swaps == 1

        assert executor.counters.snapshot() == {
            "routes_executed": 1,
            "total_volume": 1_000_000,
            "total_fees_collected": 0,
        }

        hop_events = event_log.events(EventType.HOP_EXECUTED)
        assert [e.payload["hop_index"] for e in hop_events] == [0, 1]
        assert hop_events[1].payload["input_amount"] == 1_000_000
        assert len(event_log.events(EventType.ROUTE_EXECUTED)) == 1

    @pytest.mark.asyncio
    async def test_realized_output_chains_into_next_hop(self, adapter, registry, event_log, route):
        adapter.fill_rates[("alpha", SOL, USDC)] = 9_980
        executor = ExecutionCoordinator(adapter, registry, event_log)

        record = await executor.execute(route, 1_000_000, max_slippage_bps=50)

        # 998,000 USDC feeds the second hop
        assert adapter.swaps[1] == ("beta", 998_000, 1_996_000)
        assert record.actual_output == 1_996_000
        assert registry.get("alpha").average_slippage_bps == 20

    @pytest.mark.asyncio
    async def test_slippage_failure_commits_nothing(self, adapter, registry, event_log, route):
        adapter.fill_rates[("beta", USDC, BONK)] = 19_000
        executor = ExecutionCoordinator(adapter, registry, event_log)

        with pytest.raises(SlippageExceeded) as exc_info:
            await executor.execute(route, 1_000_000, max_slippage_bps=50)

        assert exc_info.value.hop_index == 1
        assert exc_info.value.expected_min == 1_990_000
        assert exc_info.value.actual == 1_900_000

        assert registry.get("alpha").total_volume == 0
        assert registry.get("beta").total_swaps == 0
        assert executor.counters.get("routes_executed") == 0
        assert event_log.events(EventType.HOP_EXECUTED) == []
        assert event_log.events(EventType.ROUTE_EXECUTED) == []
        assert executor.stats["executions_failed"] == 1

    @pytest.mark.asyncio
    async def test_counter_overflow_commits_nothing(self, executor, route, registry, event_log):
        await executor.counters["total_volume"].add(U64_MAX)

        with pytest.raises(ArithmeticOverflow):
            await executor.execute(route, 1_000_000, max_slippage_bps=50)

        assert registry.get("alpha").total_volume == 0
        assert executor.counters.get("routes_executed") == 0
        assert event_log.events(EventType.ROUTE_EXECUTED) == []

    @pytest.mark.asyncio
    async def test_output_below_request_minimum_commits_nothing(
        self, adapter, registry, event_log, route
    ):
        # Both hops fill inside tolerance but the route ends short of the floor
        adapter.fill_rates[("beta", USDC, BONK)] = 19_950
        executor = ExecutionCoordinator(adapter, registry, event_log)

        with pytest.raises(SlippageExceeded) as exc_info:
            await executor.execute(
                route, 1_000_000, max_slippage_bps=50, routing_fee_bps=10, min_output_amount=1_995_000
            )

        # 1,995,000 less the 1,995 routing fee
        assert exc_info.value.hop_index is None
        assert exc_info.value.actual == 1_993_005
        assert registry.get("alpha").total_swaps == 0
        assert registry.get("beta").total_swaps == 0
        assert executor.counters.get("routes_executed") == 0
        assert event_log.events(EventType.ROUTE_EXECUTED) == []
        assert executor.stats["executions_failed"] == 1

    @pytest.mark.asyncio
    async def test_output_at_request_minimum_completes(self, executor, route):
        record = await executor.execute(route, 1_000_000, max_slippage_bps=50, min_output_amount=2_000_000)
        assert record.status == ExecutionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_concurrent_commits_never_half_apply(self, executor, route, registry):
        await executor.counters["total_volume"].add(U64_MAX - 1_500_000)

        # Hold a venue lock so both executions reach the commit before either lands
        venue_lock = registry._locks["alpha"]
        await venue_lock.acquire()
        tasks = [
            asyncio.create_task(executor.execute(route, 1_000_000, max_slippage_bps=50))
            for _ in range(2)
        ]
        for _ in range(5):
            await asyncio.sleep(0)
        venue_lock.release()

        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert sum(isinstance(r, ArithmeticOverflow) for r in results) == 1
        assert registry.get("alpha").total_swaps == 1
        assert registry.get("beta").total_swaps == 1
        assert executor.counters.get("routes_executed") == 1

    @pytest.mark.asyncio
    async def test_zero_slippage_tolerance_requires_exact_fill(self, executor, route):
        record = await executor.execute(route, 1_000_000, max_slippage_bps=0)
        assert record.actual_output == 2_000_000

    def test_record_finalizes_once(self, route):
        record = ExecutionRecord(execution_id="e-1", route=route, input_amount=1)

        with pytest.raises(InvalidTransactionStatus):
            record.finalize(ExecutionStatus.EXECUTING)

        record.finalize(ExecutionStatus.FAILED, error="boom")
        assert record.to_dict()["error"] == "boom"
        with pytest.raises(InvalidTransactionStatus):
            record.finalize(ExecutionStatus.COMPLETED)
