"""
Administrative surface.

Every mutating operation outside the client request path goes through
AdminService, which checks the caller against the single deployment
authority before delegating to the owning component.
"""
import logging
from typing import Optional

from arbitrage_router.events import EventLog
from arbitrage_router.execution.flash_coordinator import FlashConfig, FlashCoordinator
from arbitrage_router.mev_protection.attack_reports import AttackReport, ReportStatus
from arbitrage_router.mev_protection.protection_scheduler import ProtectionConfig, ProtectionScheduler
from arbitrage_router.router_service import RouterConfig, RouterService
from arbitrage_router.utils.auth import authorize
from arbitrage_router.venues.models import Venue, VenueInfo
from arbitrage_router.venues.registry import VenueRegistry

logger = logging.getLogger(__name__)


class AdminService:
    """Authority-gated configuration and maintenance operations."""

    def __init__(
        self,
        authority: str,
        registry: VenueRegistry,
        router: RouterService,
        flash: FlashCoordinator,
        scheduler: ProtectionScheduler,
        event_log: Optional[EventLog] = None
    ):
        self.authority = authority
        self.registry = registry
        self.router = router
        self.flash = flash
        self.scheduler = scheduler
        self.event_log = event_log if event_log is not None else EventLog()

    def register_venue(self, caller: str, venue_info: VenueInfo) -> Venue:
        authorize(caller, self.authority)
        return self.registry.register(venue_info)

    async def update_venue_metrics(
        self,
        caller: str,
        venue_id: str,
        volume: int,
        swap_count: int,
        success_rate_bps: int,
        avg_slippage_bps: int
    ) -> Venue:
        authorize(caller, self.authority)
        return await self.registry.update_metrics(
            venue_id, volume, swap_count, success_rate_bps, avg_slippage_bps
        )

    def update_config(
        self,
        caller: str,
        max_hops: Optional[int] = None,
        default_slippage_bps: Optional[int] = None,
        routing_fee_bps: Optional[int] = None,
        is_active: Optional[bool] = None
    ) -> RouterConfig:
        authorize(caller, self.authority)
        return self.router.update_config(
            caller,
            max_hops=max_hops,
            default_slippage_bps=default_slippage_bps,
            routing_fee_bps=routing_fee_bps,
            is_active=is_active,
        )

    def update_flash_config(
        self,
        caller: str,
        fee_rate_bps: Optional[int] = None,
        max_slippage_bps: Optional[int] = None,
        is_paused: Optional[bool] = None
    ) -> FlashConfig:
        authorize(caller, self.authority)
        return self.flash.update_config(
            caller,
            fee_rate_bps=fee_rate_bps,
            max_slippage_bps=max_slippage_bps,
            is_paused=is_paused,
        )

    def pause(self, caller: str) -> None:
        """Emergency pause of flash execution."""
        authorize(caller, self.authority)
        self.flash.pause(caller)

    def resume(self, caller: str) -> None:
        authorize(caller, self.authority)
        self.flash.resume(caller)

    def update_protection_config(
        self,
        caller: str,
        max_price_impact_bps: Optional[int] = None,
        min_time_delay: Optional[int] = None,
        max_slippage_protection_bps: Optional[int] = None,
        is_active: Optional[bool] = None
    ) -> ProtectionConfig:
        authorize(caller, self.authority)
        return self.scheduler.update_config(
            caller,
            max_price_impact_bps=max_price_impact_bps,
            min_time_delay=min_time_delay,
            max_slippage_protection_bps=max_slippage_protection_bps,
            is_active=is_active,
        )

    async def withdraw_fees(self, caller: str, amount: int, destination: str = "") -> int:
        """Withdraw collected flash program fees; returns the remaining balance."""
        authorize(caller, self.authority)
        return await self.flash.withdraw_fees(caller, amount, destination)

    def resolve_report(self, caller: str, report_id: str, status: ReportStatus) -> AttackReport:
        authorize(caller, self.authority)
        return self.scheduler.resolve_report(caller, report_id, status)
