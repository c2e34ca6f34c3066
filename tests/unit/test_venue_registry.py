"""Unit tests for the venue registry."""
import asyncio

import pytest

from arbitrage_router.errors import (
    ArithmeticOverflow, DuplicateVenue, FeeTooHigh, InvalidVenueName, UnsupportedVenue,
    ValidationError, VenueNotActive
)
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.utils.amounts import U64_MAX
from arbitrage_router.venues import (
    DEFAULT_VENUE_CATALOGUE, VenueInfo, VenueMetricsUpdate, VenueRegistry, default_venue_infos
)


class TestVenueRegistry:
    """Test suite for VenueRegistry."""

    @pytest.fixture
    def event_log(self):
        return EventLog()

    @pytest.fixture
    def registry(self, event_log):
        registry = VenueRegistry(event_log)
        for info in default_venue_infos():
            registry.register(info)
        return registry

    def test_default_catalogue(self, registry):
        """Default venues carry the catalogue fee and slippage models."""
        assert len(registry) == 4
        raydium = registry.get("raydium")
        assert raydium.fee_rate_bps == 25
        assert raydium.base_slippage_bps == 50
        assert DEFAULT_VENUE_CATALOGUE["jupiter"] == (15, 20)

    def test_new_venue_starts_with_zero_stats(self, registry):
        venue = registry.get("orca")
        assert venue.total_volume == 0
        assert venue.total_swaps == 0
        assert venue.success_rate_bps == 10_000
        assert venue.average_slippage_bps == 0

    def test_register_emits_event(self, registry, event_log):
        events = event_log.events(EventType.VENUE_REGISTERED)
        assert [e.payload["venue_name"] for e in events] == ["raydium", "orca", "meteora", "jupiter"]

    def test_register_rejects_empty_name(self, registry):
        with pytest.raises(InvalidVenueName):
            registry.register(VenueInfo(name="", fee_rate_bps=10, base_slippage_bps=10))

    def test_register_rejects_fee_above_100_percent(self, registry):
        with pytest.raises(FeeTooHigh):
            registry.register(VenueInfo(name="phoenix", fee_rate_bps=10_001, base_slippage_bps=10))

    def test_register_rejects_inactive_venue(self, registry):
        with pytest.raises(VenueNotActive):
            registry.register(
                VenueInfo(name="phoenix", fee_rate_bps=10, base_slippage_bps=10, is_active=False)
            )

    def test_register_rejects_duplicate(self, registry):
        with pytest.raises(DuplicateVenue):
            registry.register(VenueInfo(name="orca", fee_rate_bps=10, base_slippage_bps=10))

    def test_get_unknown_venue(self, registry):
        with pytest.raises(UnsupportedVenue):
            registry.get("lifinity")
        assert not registry.contains("lifinity")

    def test_get_returns_copy(self, registry):
        venue = registry.get("orca")
        venue.total_volume = 999
        assert registry.get("orca").total_volume == 0

    @pytest.mark.asyncio
    async def test_update_metrics_accumulates_and_overwrites(self, registry, event_log):
        await registry.update_metrics("orca", 1_000, 2, 9_900, 15)
        venue = await registry.update_metrics("orca", 500, 1, 9_800, 25)

        assert venue.total_volume == 1_500
        assert venue.total_swaps == 3
        assert venue.success_rate_bps == 9_800
        assert venue.average_slippage_bps == 25
        assert len(event_log.events(EventType.VENUE_METRICS_UPDATED)) == 2

    @pytest.mark.asyncio
    async def test_update_metrics_rejects_bad_rate(self, registry):
        with pytest.raises(ValidationError):
            await registry.update_metrics("orca", 1, 1, 10_001, 0)

    @pytest.mark.asyncio
    async def test_update_metrics_overflow(self, registry):
        await registry.update_metrics("orca", U64_MAX, 0, 10_000, 0)
        with pytest.raises(ArithmeticOverflow):
            await registry.update_metrics("orca", 1, 0, 10_000, 0)
        assert registry.get("orca").total_volume == U64_MAX

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self, registry):
        await asyncio.gather(*(
            registry.update_metrics("raydium", 10, 1, 10_000, 0) for _ in range(50)
        ))
        venue = registry.get("raydium")
        assert venue.total_volume == 500
        assert venue.total_swaps == 50

    @pytest.mark.asyncio
    async def test_batch_applies_all_updates(self, registry):
        await registry.apply_metrics_batch([
            VenueMetricsUpdate("orca", volume=100, swap_count=1, avg_slippage_bps=5),
            VenueMetricsUpdate("raydium", volume=200, swap_count=1),
            VenueMetricsUpdate("orca", volume=50, swap_count=1, avg_slippage_bps=7),
        ])

        orca = registry.get("orca")
        assert orca.total_volume == 150
        assert orca.total_swaps == 2
        assert orca.average_slippage_bps == 7
        assert orca.success_rate_bps == 10_000
        assert registry.get("raydium").total_volume == 200

    @pytest.mark.asyncio
    async def test_batch_with_invalid_update_changes_nothing(self, registry):
        with pytest.raises(UnsupportedVenue):
            await registry.apply_metrics_batch([
                VenueMetricsUpdate("orca", volume=100, swap_count=1),
                VenueMetricsUpdate("unknown", volume=100, swap_count=1),
            ])
        assert registry.get("orca").total_volume == 0

    @pytest.mark.asyncio
    async def test_batch_overflow_changes_nothing(self, registry):
        await registry.update_metrics("raydium", U64_MAX, 0, 10_000, 0)
        with pytest.raises(ArithmeticOverflow):
            await registry.apply_metrics_batch([
                VenueMetricsUpdate("orca", volume=100, swap_count=1),
                VenueMetricsUpdate("raydium", volume=1, swap_count=1),
            ])
        assert registry.get("orca").total_volume == 0
        assert registry.get("raydium").total_swaps == 0

    @pytest.mark.asyncio
    async def test_batch_hook_runs_under_locks_and_can_veto(self, registry):
        calls = []

        async def hook():
            calls.append(registry._locks["orca"].locked())

        await registry.apply_metrics_batch([VenueMetricsUpdate("orca", volume=10, swap_count=1)], hook)
        assert calls == [True]
        assert registry.get("orca").total_volume == 10

        async def failing_hook():
            raise ValidationError("settlement failed")

        with pytest.raises(ValidationError):
            await registry.apply_metrics_batch(
                [VenueMetricsUpdate("orca", volume=10, swap_count=1)], failing_hook
            )
        assert registry.get("orca").total_volume == 10
        assert not registry._locks["orca"].locked()
