"""Shared fixtures and test doubles."""
from typing import Dict, List, Optional, Tuple

import pytest

from arbitrage_router.errors import SlippageExceeded, UnsupportedVenue
from arbitrage_router.events import EventLog
from arbitrage_router.pathfinding.route_models import Route, RouteHop
from arbitrage_router.venues import (
    SwapFill, SwapQuote, VenueAdapter, VenueInfo, VenueRegistry, default_venue_infos
)

SOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"

PairKey = Tuple[str, str, str]


class TableVenueAdapter(VenueAdapter):
    """
    Venue adapter driven by a fixed rate table.

    ``rates`` maps (venue, token_in, token_out) to (rate_bps, fee_bps, impact_bps):
    the fee is taken from the input, and the remainder is converted at
    rate_bps / 10000. ``fill_rates`` overrides the rate used at fill time.
    """

    def __init__(
        self,
        rates: Dict[PairKey, Tuple[int, int, int]],
        fill_rates: Optional[Dict[PairKey, int]] = None
    ):
        self.rates = dict(rates)
        self.fill_rates = dict(fill_rates or {})
        self.swaps: List[Tuple[str, int, int]] = []

    @staticmethod
    def _convert(amount: int, rate_bps: int, fee_bps: int) -> Tuple[int, int]:
        fee = amount * fee_bps // 10_000
        return fee, (amount - fee) * rate_bps // 10_000

    async def simulate(self, venue_id, token_in, token_out, amount_in):
        entry = self.rates.get((venue_id, token_in, token_out))
        if entry is None:
            return None
        rate_bps, fee_bps, impact_bps = entry
        fee, amount_out = self._convert(amount_in, rate_bps, fee_bps)
        return SwapQuote(venue_id, amount_in, amount_out, fee, impact_bps)

    async def execute_swap(self, venue_id, amount_in, min_amount_out, token_in="", token_out=""):
        key = (venue_id, token_in, token_out)
        if key not in self.rates:
            raise UnsupportedVenue(f"No pool for {key}")
        rate_bps, fee_bps, _ = self.rates[key]
        fee, amount_out = self._convert(amount_in, self.fill_rates.get(key, rate_bps), fee_bps)
        if amount_out < min_amount_out:
            raise SlippageExceeded("below minimum", expected_min=min_amount_out, actual=amount_out)
        self.swaps.append((venue_id, amount_in, amount_out))
        return SwapFill(venue_id, amount_in, amount_out, fee)


def make_route(*hops: Tuple[str, str, str, int, int, int]) -> Route:
    """Build a route from (venue, token_in, token_out, amount_in, expected_out, fees) tuples."""
    return Route.from_hops([
        RouteHop(
            venue_id=venue,
            input_token=token_in,
            output_token=token_out,
            input_amount=amount_in,
            expected_output=expected_out,
            fees=fees,
            price_impact_bps=0,
        )
        for venue, token_in, token_out, amount_in, expected_out, fees in hops
    ])


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def registry(event_log):
    """Registry with the default catalogue plus the table venues used in tests."""
    registry = VenueRegistry(event_log)
    for info in default_venue_infos():
        registry.register(info)
    for name in ("alpha", "beta"):
        registry.register(VenueInfo(name=name, fee_rate_bps=0, base_slippage_bps=0))
    return registry
