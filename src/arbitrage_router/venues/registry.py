"""
Venue Registry.

Catalog of tradable venues, their fee/slippage models and rolling performance
statistics. Reads are lock-free; metric updates take a per-venue lock so
concurrent writers never lose an update and unrelated venues never contend.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from arbitrage_router.errors import (
    DuplicateVenue, FeeTooHigh, InvalidVenueName, UnsupportedVenue, ValidationError, VenueNotActive
)
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.utils.amounts import BPS_DENOMINATOR, checked_add
from arbitrage_router.venues.models import Venue, VenueInfo, VenueMetricsUpdate

logger = logging.getLogger(__name__)


class VenueRegistry:
    """Keyed store of venues, one lock per venue."""

    def __init__(self, event_log: Optional[EventLog] = None):
        self.event_log = event_log if event_log is not None else EventLog()
        self._venues: Dict[str, Venue] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def register(self, venue_info: VenueInfo) -> Venue:
        """
        Register a new venue.

        Args:
            venue_info: Venue description

        Returns:
            Copy of the registered venue

        Raises:
            InvalidVenueName: If the name is empty
            FeeTooHigh: If the fee rate exceeds 100%
            VenueNotActive: If the venue is flagged inactive
            DuplicateVenue: If a venue with the same name exists
        """
        if not venue_info.name or not venue_info.name.strip():
            raise InvalidVenueName("Venue name must not be empty")
        if venue_info.fee_rate_bps < 0 or venue_info.fee_rate_bps > BPS_DENOMINATOR:
            raise FeeTooHigh(f"Fee rate {venue_info.fee_rate_bps} bps exceeds 100%")
        if venue_info.base_slippage_bps < 0 or venue_info.base_slippage_bps > BPS_DENOMINATOR:
            raise ValidationError(f"Base slippage {venue_info.base_slippage_bps} bps out of range")
        if not venue_info.is_active:
            raise VenueNotActive(f"Venue {venue_info.name} is not active")

        venue_id = venue_info.name
        if venue_id in self._venues:
            raise DuplicateVenue(f"Venue {venue_id} already registered")

        venue = Venue(venue_id=venue_id, info=venue_info)
        self._venues[venue_id] = venue
        self._locks[venue_id] = asyncio.Lock()

        logger.info(
            f"Registered venue {venue_id}: fee={venue_info.fee_rate_bps}bps "
            f"slippage={venue_info.base_slippage_bps}bps"
        )
        self.event_log.emit(
            EventType.VENUE_REGISTERED,
            venue_name=venue_id,
            program_id=venue_info.program_id,
            fee_rate_bps=venue_info.fee_rate_bps,
        )
        return venue.copy()

    def get(self, venue_id: str) -> Venue:
        """
        Get a venue's current model for simulation.

        Raises:
            UnsupportedVenue: If unknown or inactive
        """
        venue = self._venues.get(venue_id)
        if venue is None or not venue.is_active:
            raise UnsupportedVenue(f"Unsupported venue: {venue_id}")
        return venue.copy()

    def contains(self, venue_id: str) -> bool:
        venue = self._venues.get(venue_id)
        return venue is not None and venue.is_active

    def list_venues(self) -> List[Venue]:
        return [venue.copy() for venue in self._venues.values()]

    async def update_metrics(
        self,
        venue_id: str,
        volume: int,
        swap_count: int,
        success_rate_bps: int,
        avg_slippage_bps: int
    ) -> Venue:
        """
        Update rolling statistics for a venue.

        Volume and swap count accumulate. Success rate and average slippage are
        overwritten with the supplied values; callers pre-aggregate them.
        """
        update = VenueMetricsUpdate(
            venue_id=venue_id,
            volume=volume,
            swap_count=swap_count,
            success_rate_bps=success_rate_bps,
            avg_slippage_bps=avg_slippage_bps,
        )
        self._validate_update(update)

        async with self._locks[venue_id]:
            venue = self._venues[venue_id]
            new_volume, new_swaps = self._accumulate(venue, update)
            self._apply(venue, [update], new_volume, new_swaps)

        self._emit_metrics(venue)
        return venue.copy()

    async def apply_metrics_batch(
        self,
        updates: Iterable[VenueMetricsUpdate],
        before_apply: Optional[Callable[[], Awaitable[None]]] = None
    ) -> None:
        """
        Apply several metric updates as one unit.

        Every update is validated and every new total computed before any
        venue is touched. Locks are acquired in sorted venue order.

        Args:
            updates: Metric increments, possibly several per venue
            before_apply: Awaited with every venue lock held, once all new
                totals are known. If it raises, no venue is updated.
        """
        merged: Dict[str, List[VenueMetricsUpdate]] = {}
        for update in updates:
            self._validate_update(update)
            merged.setdefault(update.venue_id, []).append(update)

        if not merged:
            if before_apply is not None:
                await before_apply()
            return

        venue_ids = sorted(merged)
        locks = [self._locks[venue_id] for venue_id in venue_ids]
        for lock in locks:
            await lock.acquire()
        try:
            staged = []
            for venue_id in venue_ids:
                venue = self._venues[venue_id]
                volume, swaps = venue.total_volume, venue.total_swaps
                for update in merged[venue_id]:
                    volume = checked_add(volume, update.volume)
                    swaps = checked_add(swaps, update.swap_count)
                staged.append((venue, merged[venue_id], volume, swaps))

            if before_apply is not None:
                await before_apply()

            for venue, venue_updates, volume, swaps in staged:
                self._apply(venue, venue_updates, volume, swaps)
        finally:
            for lock in reversed(locks):
                lock.release()

        for venue_id in venue_ids:
            self._emit_metrics(self._venues[venue_id])

    def _validate_update(self, update: VenueMetricsUpdate) -> None:
        if update.venue_id not in self._venues:
            raise UnsupportedVenue(f"Unsupported venue: {update.venue_id}")
        if update.volume < 0 or update.swap_count < 0:
            raise ValidationError("Metric increments must be non-negative")
        for value in (update.success_rate_bps, update.avg_slippage_bps):
            if value is not None and not 0 <= value <= BPS_DENOMINATOR:
                raise ValidationError(f"Rate {value} bps out of range")

    @staticmethod
    def _accumulate(venue: Venue, update: VenueMetricsUpdate):
        return (
            checked_add(venue.total_volume, update.volume),
            checked_add(venue.total_swaps, update.swap_count),
        )

    @staticmethod
    def _apply(venue: Venue, updates: List[VenueMetricsUpdate], volume: int, swaps: int) -> None:
        venue.total_volume = volume
        venue.total_swaps = swaps
        # Latest wins for overwritten rates
        for update in updates:
            if update.success_rate_bps is not None:
                venue.success_rate_bps = update.success_rate_bps
            if update.avg_slippage_bps is not None:
                venue.average_slippage_bps = update.avg_slippage_bps
        venue.last_updated = time.time()

    def _emit_metrics(self, venue: Venue) -> None:
        self.event_log.emit(
            EventType.VENUE_METRICS_UPDATED,
            venue_name=venue.venue_id,
            total_volume=venue.total_volume,
            total_swaps=venue.total_swaps,
            success_rate_bps=venue.success_rate_bps,
            average_slippage_bps=venue.average_slippage_bps,
        )

    def __len__(self) -> int:
        return len(self._venues)
