"""
Route optimizer for cross-venue swaps.

Finds the best path for swapping one token into another across the registered
venues. The search is bounded: every venue is tried for the direct swap, and
two-hop routes are only considered through a fixed set of high-liquidity
intermediate tokens. Cost is therefore constant in the size of the venue/token
graph and results are deterministic for a given set of quotes.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from arbitrage_router.errors import InvalidAmount, NoRouteFound, TooManyHops, UnsupportedVenue
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.pathfinding.route_models import Route, RouteHop, RouteQuote
from arbitrage_router.utils.amounts import checked_add, ensure_amount
from arbitrage_router.venues.adapter import VenueAdapter

logger = logging.getLogger(__name__)


# Popular intermediate tokens: USDC, WSOL, USDT
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
WSOL_MINT = "So11111111111111111111111111111111111111112"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

DEFAULT_INTERMEDIATE_TOKENS = (USDC_MINT, WSOL_MINT, USDT_MINT)
DEFAULT_VENUES = ("raydium", "orca", "meteora")
MAX_HOPS_LIMIT = 10


@dataclass
class RouteOptimizerConfig:
    """Configuration for route search."""
    default_venues: Sequence[str] = DEFAULT_VENUES
    intermediate_tokens: Sequence[str] = DEFAULT_INTERMEDIATE_TOKENS
    max_hops_limit: int = MAX_HOPS_LIMIT


class RouteOptimizer:
    """
    Bounded best-route search across venues.

    Candidate selection rules:
    - the best direct hop is the venue with the greatest expected output
      (the first venue wins a tie);
    - a two-hop route replaces the direct route only when its output is
      strictly greater, so ties favour fewer hops;
    - price impact of a multi-hop route is the sum of its hops' impacts.
    """

    def __init__(
        self,
        adapter: VenueAdapter,
        config: Optional[RouteOptimizerConfig] = None,
        event_log: Optional[EventLog] = None
    ):
        self.adapter = adapter
        self.config = config or RouteOptimizerConfig()
        self.event_log = event_log if event_log is not None else EventLog()

    async def find_best_route(
        self,
        input_token: str,
        output_token: str,
        input_amount: int,
        max_hops: int = 1,
        preferred_venues: Optional[Sequence[str]] = None
    ) -> Route:
        """
        Find the best available route.

        Args:
            input_token: Token being sold
            output_token: Token being bought
            input_amount: Raw input amount
            max_hops: Hop budget (1 disables multi-hop search)
            preferred_venues: Venues to consider; the default set when empty

        Returns:
            Best route found

        Raises:
            InvalidAmount: If input_amount is not positive
            TooManyHops: If max_hops is outside 1..max_hops_limit
            NoRouteFound: If no route could be constructed or both tokens are the same
        """
        if input_amount <= 0:
            raise InvalidAmount(f"Input amount must be positive, got {input_amount}")
        ensure_amount(input_amount, "input_amount")
        if max_hops < 1 or max_hops > self.config.max_hops_limit:
            raise TooManyHops(f"max_hops must be within 1..{self.config.max_hops_limit}, got {max_hops}")
        if input_token == output_token:
            raise NoRouteFound(f"Input and output token are both {input_token}")

        venues = self._venues_for(preferred_venues)

        best_route: Optional[Route] = None

        direct_hop = await self.find_direct_hop(input_token, output_token, input_amount, venues)
        if direct_hop is not None:
            best_route = Route.from_hops([direct_hop])

        if max_hops > 1:
            multi_hop_route = await self.find_multi_hop_route(
                input_token, output_token, input_amount, venues
            )
            if multi_hop_route is not None and (
                best_route is None or multi_hop_route.expected_output > best_route.expected_output
            ):
                best_route = multi_hop_route

        if best_route is None:
            raise NoRouteFound(
                f"No route found from {input_token} to {output_token} via {list(venues)}"
            )

        logger.debug(
            f"Best route {input_token[:8]}->{output_token[:8]}: {best_route.hop_count} hop(s) "
            f"via {best_route.venues}, output={best_route.expected_output}"
        )
        self.event_log.emit(
            EventType.ROUTE_COMPUTED,
            input_token=input_token,
            output_token=output_token,
            input_amount=input_amount,
            expected_output=best_route.expected_output,
            hops_count=best_route.hop_count,
            venues=best_route.venues,
            total_fees=best_route.total_fees,
            price_impact_bps=best_route.total_price_impact_bps,
        )
        return best_route

    async def find_direct_hop(
        self,
        input_token: str,
        output_token: str,
        input_amount: int,
        venues: Sequence[str]
    ) -> Optional[RouteHop]:
        """Best single-hop swap across ``venues``, or None."""
        if input_token == output_token:
            return None

        best_hop: Optional[RouteHop] = None
        for venue_id in venues:
            try:
                quote = await self.adapter.simulate(venue_id, input_token, output_token, input_amount)
            except UnsupportedVenue:
                quote = None

            if quote is None:
                continue

            if best_hop is None or quote.amount_out > best_hop.expected_output:
                best_hop = RouteHop(
                    venue_id=venue_id,
                    input_token=input_token,
                    output_token=output_token,
                    input_amount=input_amount,
                    expected_output=quote.amount_out,
                    fees=quote.fee,
                    price_impact_bps=quote.price_impact_bps,
                    pool_address=quote.pool_address,
                )

        return best_hop

    async def find_multi_hop_route(
        self,
        input_token: str,
        output_token: str,
        input_amount: int,
        venues: Sequence[str]
    ) -> Optional[Route]:
        """Best two-hop route through the intermediate token set, or None."""
        best_route: Optional[Route] = None

        for intermediate in self.config.intermediate_tokens:
            if intermediate in (input_token, output_token):
                continue

            hop1 = await self.find_direct_hop(input_token, intermediate, input_amount, venues)
            if hop1 is None:
                continue

            hop2 = await self.find_direct_hop(intermediate, output_token, hop1.expected_output, venues)
            if hop2 is None:
                continue

            # Overflow-check the aggregates before accepting the candidate
            checked_add(hop1.fees, hop2.fees)
            if best_route is None or hop2.expected_output > best_route.expected_output:
                best_route = Route.from_hops([hop1, hop2])

        return best_route

    async def get_quote(
        self,
        input_token: str,
        output_token: str,
        input_amount: int,
        max_hops: int = 1,
        preferred_venues: Optional[Sequence[str]] = None
    ) -> RouteQuote:
        """Quote the best route without executing it."""
        route = await self.find_best_route(
            input_token, output_token, input_amount, max_hops, preferred_venues
        )
        quote = RouteQuote(
            input_token=input_token,
            output_token=output_token,
            input_amount=input_amount,
            route=route,
            expected_output=route.expected_output,
            estimated_fees=route.total_fees,
            price_impact_bps=route.total_price_impact_bps,
        )
        self.event_log.emit(
            EventType.QUOTE_GENERATED,
            input_token=input_token,
            output_token=output_token,
            input_amount=input_amount,
            expected_output=quote.expected_output,
            hops_count=route.hop_count,
            estimated_fees=quote.estimated_fees,
            price_impact_bps=quote.price_impact_bps,
        )
        return quote

    def _venues_for(self, preferred_venues: Optional[Sequence[str]]) -> List[str]:
        if preferred_venues:
            return list(preferred_venues)
        return list(self.config.default_venues)
