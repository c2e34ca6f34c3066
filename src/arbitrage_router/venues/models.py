"""Data models for trading venues."""
import time
from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass(frozen=True)
class VenueInfo:
    """Registration payload describing a venue's fee and slippage model."""
    name: str
    fee_rate_bps: int                # Trading fee in basis points
    base_slippage_bps: int           # Expected slippage in basis points
    is_active: bool = True
    program_id: str = ""             # On-chain program / router address
    supported_tokens: int = 0


@dataclass
class Venue:
    """
    A registered venue with rolling performance statistics.

    Instances are owned by the VenueRegistry; callers receive copies.
    """
    venue_id: str
    info: VenueInfo

    total_volume: int = 0
    total_swaps: int = 0
    success_rate_bps: int = 10_000   # 100% initially
    average_slippage_bps: int = 0
    last_updated: float = field(default_factory=time.time)

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def fee_rate_bps(self) -> int:
        return self.info.fee_rate_bps

    @property
    def base_slippage_bps(self) -> int:
        return self.info.base_slippage_bps

    @property
    def is_active(self) -> bool:
        return self.info.is_active

    def copy(self) -> "Venue":
        return replace(self)


@dataclass(frozen=True)
class VenueMetricsUpdate:
    """Metrics delta for a single venue."""
    venue_id: str
    volume: int
    swap_count: int
    success_rate_bps: Optional[int] = None    # None keeps the current value
    avg_slippage_bps: Optional[int] = None


# Deterministic fallback catalogue: (fee bps, base slippage bps)
DEFAULT_VENUE_CATALOGUE = {
    "raydium": (25, 50),
    "orca": (30, 30),
    "meteora": (20, 40),
    "jupiter": (15, 20),
}


def default_venue_infos():
    """VenueInfo records for the built-in venue catalogue."""
    return [
        VenueInfo(name=name, fee_rate_bps=fee, base_slippage_bps=slippage)
        for name, (fee, slippage) in DEFAULT_VENUE_CATALOGUE.items()
    ]
