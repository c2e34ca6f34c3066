"""Unit tests for the router service, admin surface and engine wiring."""
import pytest

from arbitrage_router.config.settings import Settings
from arbitrage_router.engine import ArbitrageEngine
from arbitrage_router.errors import (
    FeeTooHigh, InsufficientFunds, InvalidAmount, NoRouteFound, ProgramPaused, RouteNotProfitable,
    RouterInactive, SlippageExceeded, SlippageTooHigh, TooManyHops, Unauthorized
)
from arbitrage_router.events import EventType
from arbitrage_router.execution import ExecutionCoordinator
from arbitrage_router.mev_protection import AttackDetails, AttackType, ReportStatus
from arbitrage_router.pathfinding import ArbitrageRequest, RouteOptimizer
from arbitrage_router.router_service import RouterConfig, RouterService
from arbitrage_router.venues import SimulatedVenueAdapter, VenueInfo

from tests.conftest import SOL, USDC, TableVenueAdapter

AUTHORITY = "authority-1"


def _request(**overrides) -> ArbitrageRequest:
    values = dict(
        input_token=SOL,
        output_token=USDC,
        input_amount=1_000_000_000,
        min_output_amount=990_000_000,
    )
    values.update(overrides)
    return ArbitrageRequest(**values)


@pytest.fixture
def router(registry, event_log):
    adapter = SimulatedVenueAdapter(registry)
    executor = ExecutionCoordinator(adapter, registry, event_log)
    return RouterService(
        RouteOptimizer(adapter, event_log=event_log),
        executor,
        RouterConfig(authority=AUTHORITY),
        event_log,
    )


class TestRouterConfig:
    """Test router configuration validation."""

    def test_defaults(self):
        config = RouterConfig(authority=AUTHORITY)
        assert config.max_hops == 3
        assert config.default_slippage_bps == 50
        assert config.routing_fee_bps == 10

    def test_rejects_out_of_range_values(self):
        with pytest.raises(TooManyHops):
            RouterConfig(authority=AUTHORITY, max_hops=11)
        with pytest.raises(TooManyHops):
            RouterConfig(authority=AUTHORITY, max_hops=0)
        with pytest.raises(SlippageTooHigh):
            RouterConfig(authority=AUTHORITY, default_slippage_bps=5_001)
        with pytest.raises(FeeTooHigh):
            RouterConfig(authority=AUTHORITY, routing_fee_bps=1_001)


class TestRouterService:
    """Test suite for RouterService."""

    @pytest.mark.asyncio
    async def test_execute_optimal_route(self, router):
        record = await router.execute_optimal_route(_request())

        # orca 994,009,000 less 994,009 routing fee
        assert record.route.venues == ["orca"]
        assert record.routing_fee == 994_009
        assert record.actual_output == 993_014_991

        stats = router.get_stats()
        assert stats["routes_executed"] == 1
        assert stats["total_volume"] == 1_000_000_000
        assert stats["total_fees_collected"] == 994_009

    @pytest.mark.asyncio
    async def test_route_below_minimum_output(self, router, registry):
        with pytest.raises(RouteNotProfitable):
            await router.execute_optimal_route(_request(min_output_amount=994_009_001))
        assert registry.get("orca").total_swaps == 0

    @pytest.mark.asyncio
    async def test_realized_output_below_minimum_commits_nothing(self, registry, event_log):
        adapter = TableVenueAdapter(
            {("orca", SOL, USDC): (10_000, 0, 10)},
            fill_rates={("orca", SOL, USDC): 9_950},
        )
        executor = ExecutionCoordinator(adapter, registry, event_log)
        router = RouterService(
            RouteOptimizer(adapter, event_log=event_log),
            executor,
            RouterConfig(authority=AUTHORITY),
            event_log,
        )

        # Quoted 1,000,000 clears the floor; the 995,000 fill less routing fee does not
        with pytest.raises(SlippageExceeded) as exc_info:
            await router.execute_optimal_route(
                _request(input_amount=1_000_000, min_output_amount=999_000, max_slippage_bps=100)
            )

        assert exc_info.value.actual == 994_005
        assert registry.get("orca").total_swaps == 0
        assert router.get_stats()["routes_executed"] == 0
        assert event_log.events(EventType.ROUTE_EXECUTED) == []

    @pytest.mark.asyncio
    async def test_same_token_request_has_no_route(self, router, registry):
        with pytest.raises(NoRouteFound):
            await router.execute_optimal_route(_request(output_token=SOL))
        assert all(venue.total_swaps == 0 for venue in registry.list_venues())

    @pytest.mark.asyncio
    async def test_request_validation(self, router):
        with pytest.raises(InvalidAmount):
            await router.execute_optimal_route(_request(min_output_amount=0))
        with pytest.raises(InvalidAmount):
            await router.execute_optimal_route(_request(input_amount=0))
        with pytest.raises(SlippageTooHigh):
            await router.execute_optimal_route(_request(max_slippage_bps=5_001))
        with pytest.raises(TooManyHops):
            await router.execute_optimal_route(_request(max_hops=4))

    @pytest.mark.asyncio
    async def test_inactive_router(self, router):
        router.update_config(AUTHORITY, is_active=False)

        with pytest.raises(RouterInactive):
            await router.execute_optimal_route(_request())
        with pytest.raises(RouterInactive):
            await router.get_quote(_request())

    @pytest.mark.asyncio
    async def test_get_quote_does_not_execute(self, router, registry):
        quote = await router.get_quote(_request(preferred_venues=["raydium"]))

        assert quote.expected_output == 992_512_500
        assert registry.get("raydium").total_swaps == 0
        assert router.get_stats()["routes_executed"] == 0

    def test_update_config(self, router, event_log):
        config = router.update_config(AUTHORITY, max_hops=5, routing_fee_bps=0)

        assert config.max_hops == 5
        assert config.routing_fee_bps == 0
        event = event_log.events(EventType.CONFIG_UPDATED)[0]
        assert event.payload["component"] == "router"

    def test_update_config_rejects_intruder_and_bad_values(self, router):
        with pytest.raises(Unauthorized):
            router.update_config("mallory", max_hops=1)
        with pytest.raises(FeeTooHigh):
            router.update_config(AUTHORITY, max_hops=1, routing_fee_bps=2_000)
        assert router.config.max_hops == 3


class TestEngineAndAdmin:
    """Test engine wiring and the admin service."""

    @pytest.fixture
    def engine(self):
        return ArbitrageEngine(Settings(authority_id="admin-1", min_time_delay_seconds=0))

    @pytest.mark.asyncio
    async def test_initialize_registers_default_venues(self, engine):
        await engine.initialize()
        await engine.initialize()

        assert engine.is_initialized
        assert len(engine.registry) == 4
        assert len(engine.event_log.events(EventType.ROUTER_INITIALIZED)) == 1

        status = engine.get_status()
        assert status["initialized"]
        assert {venue["name"] for venue in status["venues"]} == {
            "raydium", "orca", "meteora", "jupiter"
        }
        assert status["flash"]["is_paused"] is False

    @pytest.mark.asyncio
    async def test_components_share_the_engine_event_log(self, engine):
        for component in (
            engine.registry, engine.optimizer, engine.executor, engine.router,
            engine.flash, engine.scheduler, engine.scheduler.reports, engine.admin,
        ):
            assert component.event_log is engine.event_log

        await engine.initialize()
        await engine.router.execute_optimal_route(_request())

        event_types = {event.event_type for event in engine.event_log.events()}
        assert {
            EventType.VENUE_REGISTERED, EventType.ROUTER_INITIALIZED,
            EventType.HOP_EXECUTED, EventType.ROUTE_EXECUTED,
        } <= event_types
        assert engine.get_status()["events_recorded"] == len(engine.event_log)

    @pytest.mark.asyncio
    async def test_admin_operations_require_authority(self, engine):
        await engine.initialize()
        admin = engine.admin
        venue = VenueInfo(name="phoenix", fee_rate_bps=10, base_slippage_bps=10)

        with pytest.raises(Unauthorized):
            admin.register_venue("mallory", venue)
        with pytest.raises(Unauthorized):
            admin.update_config("mallory", max_hops=2)
        with pytest.raises(Unauthorized):
            admin.pause("mallory")
        with pytest.raises(Unauthorized):
            admin.update_protection_config("mallory", is_active=False)
        with pytest.raises(Unauthorized):
            await admin.withdraw_fees("mallory", 1)
        with pytest.raises(Unauthorized):
            await admin.update_venue_metrics("mallory", "orca", 1, 1, 10_000, 0)

        assert len(engine.registry) == 4

    @pytest.mark.asyncio
    async def test_admin_operations(self, engine):
        await engine.initialize()
        admin = engine.admin

        admin.register_venue("admin-1", VenueInfo(name="phoenix", fee_rate_bps=10, base_slippage_bps=10))
        venue = await admin.update_venue_metrics("admin-1", "phoenix", 500, 2, 9_900, 12)
        assert venue.total_volume == 500

        assert admin.update_config("admin-1", max_hops=2).max_hops == 2
        assert admin.update_flash_config("admin-1", fee_rate_bps=100).fee_rate_bps == 100
        assert admin.update_protection_config("admin-1", min_time_delay=20).min_time_delay == 20

        admin.pause("admin-1")
        with pytest.raises(ProgramPaused):
            await engine.flash.execute_flash([], 1, 0)
        admin.resume("admin-1")
        assert not engine.flash.config.is_paused

        with pytest.raises(InsufficientFunds):
            await admin.withdraw_fees("admin-1", 1)

    @pytest.mark.asyncio
    async def test_admin_resolves_reports(self, engine):
        report = engine.scheduler.report_attack(
            "reporter-1",
            AttackDetails(AttackType.BACKRUN, "5xVictim", 10),
        )

        resolved = engine.admin.resolve_report("admin-1", report.report_id, ReportStatus.VERIFIED)
        assert resolved.status == ReportStatus.VERIFIED
