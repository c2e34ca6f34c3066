"""
Pathfinding package for cross-venue routing.

Provides the route data model and the bounded route optimizer.
"""
from .route_models import (
    ArbitrageRequest,
    Route,
    RouteHop,
    RouteQuote,
)
from .route_optimizer import (
    RouteOptimizer,
    RouteOptimizerConfig,
    DEFAULT_INTERMEDIATE_TOKENS,
    DEFAULT_VENUES,
    USDC_MINT,
    USDT_MINT,
    WSOL_MINT,
)

__all__ = [
    "ArbitrageRequest",
    "Route",
    "RouteHop",
    "RouteQuote",
    "RouteOptimizer",
    "RouteOptimizerConfig",
    "DEFAULT_INTERMEDIATE_TOKENS",
    "DEFAULT_VENUES",
    "USDC_MINT",
    "USDT_MINT",
    "WSOL_MINT",
]
