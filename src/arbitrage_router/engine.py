"""Engine wiring: builds every router component from settings."""
import logging
from typing import Any, Dict, Optional

from arbitrage_router.admin import AdminService
from arbitrage_router.config.settings import Settings
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.execution.capital_provider import CapitalProvider, SimulatedCapitalProvider
from arbitrage_router.execution.execution_coordinator import ExecutionCoordinator
from arbitrage_router.execution.flash_coordinator import FlashConfig, FlashCoordinator
from arbitrage_router.mev_protection.protection_scheduler import ProtectionConfig, ProtectionScheduler
from arbitrage_router.mev_protection.risk_engine import MEVRiskEngine
from arbitrage_router.pathfinding.route_optimizer import RouteOptimizer, RouteOptimizerConfig
from arbitrage_router.router_service import RouterConfig, RouterService
from arbitrage_router.venues.adapter import SimulatedVenueAdapter, VenueAdapter
from arbitrage_router.venues.models import default_venue_infos
from arbitrage_router.venues.registry import VenueRegistry

logger = logging.getLogger(__name__)


class ArbitrageEngine:
    """Owns one instance of every component for the lifetime of the process."""

    def __init__(
        self,
        settings: Settings,
        adapter: Optional[VenueAdapter] = None,
        capital_provider: Optional[CapitalProvider] = None
    ):
        """
        Initialize engine.

        Args:
            settings: Application settings
            adapter: Venue adapter (simulated from the registry when omitted)
            capital_provider: Flash capital source (simulated when omitted)
        """
        self.settings = settings
        self.event_log = EventLog()
        self.registry = VenueRegistry(self.event_log)
        self.adapter = adapter or SimulatedVenueAdapter(self.registry)
        self.capital_provider = capital_provider or SimulatedCapitalProvider(
            liquidity=settings.capital_provider_liquidity
        )

        self.optimizer = RouteOptimizer(
            self.adapter,
            RouteOptimizerConfig(default_venues=tuple(settings.default_venue_list)),
            self.event_log,
        )
        self.executor = ExecutionCoordinator(self.adapter, self.registry, self.event_log)
        self.router = RouterService(
            self.optimizer,
            self.executor,
            RouterConfig(
                authority=settings.authority_id,
                max_hops=settings.max_hops,
                default_slippage_bps=settings.default_slippage_bps,
                routing_fee_bps=settings.routing_fee_bps,
            ),
            self.event_log,
        )
        self.flash = FlashCoordinator(
            self.executor,
            self.capital_provider,
            FlashConfig(
                authority=settings.authority_id,
                fee_rate_bps=settings.flash_program_fee_bps,
                max_slippage_bps=settings.flash_max_slippage_bps,
                loan_fee_bps=settings.flash_loan_fee_bps,
                max_flash_amount=settings.flash_max_amount,
            ),
            self.event_log,
        )
        self.risk_engine = MEVRiskEngine()
        self.scheduler = ProtectionScheduler(
            self.router,
            ProtectionConfig(
                authority=settings.authority_id,
                max_price_impact_bps=settings.max_price_impact_bps,
                min_time_delay=settings.min_time_delay_seconds,
                max_slippage_protection_bps=settings.max_slippage_protection_bps,
            ),
            risk_engine=self.risk_engine,
            event_log=self.event_log,
        )
        self.admin = AdminService(
            settings.authority_id,
            self.registry,
            self.router,
            self.flash,
            self.scheduler,
            self.event_log,
        )
        self.is_initialized = False

    async def initialize(self) -> "ArbitrageEngine":
        """Register the default venue catalogue and mark the engine ready."""
        if self.is_initialized:
            return self

        for venue_info in default_venue_infos():
            self.admin.register_venue(self.settings.authority_id, venue_info)

        self.is_initialized = True
        self.event_log.emit(
            EventType.ROUTER_INITIALIZED,
            authority=self.settings.authority_id,
            max_hops=self.router.config.max_hops,
            default_slippage_bps=self.router.config.default_slippage_bps,
            routing_fee_bps=self.router.config.routing_fee_bps,
        )
        logger.info(f"Arbitrage engine initialized with {len(self.registry)} venues")
        return self

    def get_status(self) -> Dict[str, Any]:
        return {
            "initialized": self.is_initialized,
            "venues": [
                {
                    "name": venue.name,
                    "fee_rate_bps": venue.fee_rate_bps,
                    "base_slippage_bps": venue.base_slippage_bps,
                    "total_volume": venue.total_volume,
                    "total_swaps": venue.total_swaps,
                    "success_rate_bps": venue.success_rate_bps,
                }
                for venue in self.registry.list_venues()
            ],
            "router": self.router.get_stats(),
            "flash": {
                "is_paused": self.flash.config.is_paused,
                "fee_rate_bps": self.flash.config.fee_rate_bps,
                **self.flash.counters.snapshot(),
            },
            "protection": self.scheduler.get_stats(),
            "events_recorded": len(self.event_log),
        }

    async def shutdown(self) -> None:
        self.is_initialized = False
        logger.info("Arbitrage engine shut down")


async def build_engine(settings: Settings) -> ArbitrageEngine:
    """Create and initialize an engine from settings."""
    return await ArbitrageEngine(settings).initialize()
