"""Shared data models for route finding and execution."""
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from arbitrage_router.errors import ValidationError


@dataclass(frozen=True)
class RouteHop:
    """One venue-level swap within a route."""
    venue_id: str
    input_token: str
    output_token: str
    input_amount: int
    expected_output: int
    fees: int
    price_impact_bps: int
    pool_address: str = ""


@dataclass(frozen=True)
class Route:
    """Ordered, non-empty sequence of hops with aggregate figures."""
    hops: Tuple[RouteHop, ...]
    expected_output: int
    total_fees: int
    total_price_impact_bps: int

    def __post_init__(self):
        if not self.hops:
            raise ValidationError("Route must contain at least one hop")
        for previous, current in zip(self.hops, self.hops[1:]):
            if previous.output_token != current.input_token:
                raise ValidationError(
                    f"Broken route: {previous.output_token} does not feed {current.input_token}"
                )

    @classmethod
    def from_hops(cls, hops: List[RouteHop]) -> "Route":
        """Build a route, deriving the aggregates from its hops."""
        hops = tuple(hops)
        return cls(
            hops=hops,
            expected_output=hops[-1].expected_output if hops else 0,
            total_fees=sum(hop.fees for hop in hops),
            total_price_impact_bps=sum(hop.price_impact_bps for hop in hops),
        )

    @property
    def input_token(self) -> str:
        return self.hops[0].input_token

    @property
    def output_token(self) -> str:
        return self.hops[-1].output_token

    @property
    def input_amount(self) -> int:
        return self.hops[0].input_amount

    @property
    def hop_count(self) -> int:
        return len(self.hops)

    @property
    def venues(self) -> List[str]:
        return [hop.venue_id for hop in self.hops]


@dataclass
class ArbitrageRequest:
    """Swap intent submitted by a client."""
    input_token: str
    output_token: str
    input_amount: int
    min_output_amount: int
    max_slippage_bps: Optional[int] = None    # None uses the router default
    max_hops: Optional[int] = None            # None uses the router default
    preferred_venues: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RouteQuote:
    """Route quote returned without executing."""
    input_token: str
    output_token: str
    input_amount: int
    route: Route
    expected_output: int
    estimated_fees: int
    price_impact_bps: int
    timestamp: float = field(default_factory=time.time)
