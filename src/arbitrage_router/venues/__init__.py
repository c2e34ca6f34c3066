"""
Venue catalogue and venue adapters.

Holds the registry of tradable venues with their fee/slippage models and the
adapter interface used to quote and fill swaps.
"""
from .models import (
    Venue,
    VenueInfo,
    VenueMetricsUpdate,
    DEFAULT_VENUE_CATALOGUE,
    default_venue_infos,
)
from .registry import VenueRegistry
from .adapter import (
    VenueAdapter,
    SimulatedVenueAdapter,
    SwapQuote,
    SwapFill,
)

__all__ = [
    "Venue",
    "VenueInfo",
    "VenueMetricsUpdate",
    "DEFAULT_VENUE_CATALOGUE",
    "default_venue_infos",
    "VenueRegistry",
    "VenueAdapter",
    "SimulatedVenueAdapter",
    "SwapQuote",
    "SwapFill",
]
