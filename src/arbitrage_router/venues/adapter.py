"""
Venue adapter interface and the deterministic simulated implementation.

The router never talks to a venue directly; it quotes and fills swaps through a
VenueAdapter. Live integrations subclass VenueAdapter. SimulatedVenueAdapter
prices swaps from the registry's fee/slippage model and serves as the
deterministic fallback and test table.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from arbitrage_router.errors import SlippageExceeded, UnsupportedVenue
from arbitrage_router.utils.amounts import apply_bps, checked_sub
from arbitrage_router.venues.registry import VenueRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapQuote:
    """Simulated swap result."""
    venue_id: str
    amount_in: int
    amount_out: int
    fee: int
    price_impact_bps: int
    pool_address: str = ""


@dataclass(frozen=True)
class SwapFill:
    """Realized swap result."""
    venue_id: str
    amount_in: int
    amount_out: int
    fee: int


class VenueAdapter(ABC):
    """
    Abstract base class for venue integrations.

    Implementations must be side-effect free until a fill is returned: a
    raised exception means nothing happened on the venue.
    """

    @abstractmethod
    async def simulate(
        self,
        venue_id: str,
        token_in: str,
        token_out: str,
        amount_in: int
    ) -> Optional[SwapQuote]:
        """
        Quote a swap.

        Returns:
            SwapQuote, or None if the venue does not support the pair
        """
        pass

    @abstractmethod
    async def execute_swap(
        self,
        venue_id: str,
        amount_in: int,
        min_amount_out: int,
        token_in: str = "",
        token_out: str = ""
    ) -> SwapFill:
        """
        Execute a swap.

        Raises:
            SlippageExceeded: If the realized output is below min_amount_out
            UnsupportedVenue: If the venue is unknown or inactive
        """
        pass


class SimulatedVenueAdapter(VenueAdapter):
    """Prices swaps from the registry's fee and base-slippage model."""

    def __init__(
        self,
        registry: VenueRegistry,
        realized_slippage_bps: Optional[Dict[str, int]] = None
    ):
        """
        Initialize simulated adapter.

        Args:
            registry: Venue registry providing fee/slippage models
            realized_slippage_bps: Optional per-venue slippage applied at fill
                time instead of the quoted base slippage (models market moves)
        """
        self.registry = registry
        self.realized_slippage_bps = dict(realized_slippage_bps or {})
        self.stats = {
            "quotes": 0,
            "fills": 0,
            "rejected_fills": 0,
        }

    async def simulate(
        self,
        venue_id: str,
        token_in: str,
        token_out: str,
        amount_in: int
    ) -> Optional[SwapQuote]:
        if token_in == token_out:
            return None
        if not self.registry.contains(venue_id):
            return None

        venue = self.registry.get(venue_id)
        fee, amount_out = self._price(amount_in, venue.fee_rate_bps, venue.base_slippage_bps)
        self.stats["quotes"] += 1

        return SwapQuote(
            venue_id=venue_id,
            amount_in=amount_in,
            amount_out=amount_out,
            fee=fee,
            price_impact_bps=venue.base_slippage_bps,
        )

    async def execute_swap(
        self,
        venue_id: str,
        amount_in: int,
        min_amount_out: int,
        token_in: str = "",
        token_out: str = ""
    ) -> SwapFill:
        venue = self.registry.get(venue_id)  # raises UnsupportedVenue
        if token_in and token_in == token_out:
            raise UnsupportedVenue(f"{venue_id} cannot swap {token_in} into itself")

        slippage = self.realized_slippage_bps.get(venue_id, venue.base_slippage_bps)
        fee, amount_out = self._price(amount_in, venue.fee_rate_bps, slippage)

        if amount_out < min_amount_out:
            self.stats["rejected_fills"] += 1
            logger.debug(f"{venue_id} fill {amount_out} below minimum {min_amount_out}")
            raise SlippageExceeded(
                f"{venue_id} output {amount_out} below minimum {min_amount_out}",
                expected_min=min_amount_out,
                actual=amount_out,
            )

        self.stats["fills"] += 1
        return SwapFill(venue_id=venue_id, amount_in=amount_in, amount_out=amount_out, fee=fee)

    @staticmethod
    def _price(amount_in: int, fee_rate_bps: int, slippage_bps: int):
        fee = apply_bps(amount_in, fee_rate_bps)
        amount_after_fees = checked_sub(amount_in, fee)
        slippage_amount = apply_bps(amount_after_fees, slippage_bps)
        return fee, checked_sub(amount_after_fees, slippage_amount)
