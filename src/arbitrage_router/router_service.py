"""
Router service.

Entry point for swap intents: resolves the request against the router
configuration, finds the optimal route, checks it against the caller's
minimum output and executes it atomically with the routing fee applied.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from arbitrage_router.errors import (
    FeeTooHigh, InvalidAmount, RouteNotProfitable, RouterInactive, SlippageTooHigh, TooManyHops
)
from arbitrage_router.events import EventLog, EventType
from arbitrage_router.execution.execution_coordinator import ExecutionCoordinator, ExecutionRecord
from arbitrage_router.pathfinding.route_models import ArbitrageRequest, RouteQuote
from arbitrage_router.pathfinding.route_optimizer import MAX_HOPS_LIMIT, RouteOptimizer
from arbitrage_router.utils.auth import authorize

logger = logging.getLogger(__name__)


MAX_SLIPPAGE_BPS = 5_000
MAX_ROUTING_FEE_BPS = 1_000


@dataclass
class RouterConfig:
    """Router configuration."""
    authority: str
    max_hops: int = 3
    default_slippage_bps: int = 50
    routing_fee_bps: int = 10
    is_active: bool = True

    def __post_init__(self):
        validate_router_settings(self.max_hops, self.default_slippage_bps, self.routing_fee_bps)


def validate_router_settings(
    max_hops: Optional[int] = None,
    default_slippage_bps: Optional[int] = None,
    routing_fee_bps: Optional[int] = None
) -> None:
    if max_hops is not None and not 1 <= max_hops <= MAX_HOPS_LIMIT:
        raise TooManyHops(f"max_hops must be within 1..{MAX_HOPS_LIMIT}, got {max_hops}")
    if default_slippage_bps is not None and not 0 <= default_slippage_bps <= MAX_SLIPPAGE_BPS:
        raise SlippageTooHigh(f"Default slippage {default_slippage_bps} bps exceeds {MAX_SLIPPAGE_BPS}")
    if routing_fee_bps is not None and not 0 <= routing_fee_bps <= MAX_ROUTING_FEE_BPS:
        raise FeeTooHigh(f"Routing fee {routing_fee_bps} bps exceeds {MAX_ROUTING_FEE_BPS}")


class RouterService:
    """Quotes and executes swap intents against the configured router."""

    def __init__(
        self,
        optimizer: RouteOptimizer,
        executor: ExecutionCoordinator,
        config: RouterConfig,
        event_log: Optional[EventLog] = None
    ):
        self.optimizer = optimizer
        self.executor = executor
        self.config = config
        self.event_log = event_log if event_log is not None else EventLog()

    async def execute_optimal_route(self, request: ArbitrageRequest) -> ExecutionRecord:
        """
        Find and execute the best route for a swap intent.

        Args:
            request: Swap intent

        Returns:
            Completed execution record

        Raises:
            RouterInactive: If the router is disabled
            InvalidAmount: If input or minimum output is not positive
            SlippageTooHigh: If the tolerance exceeds 50%
            TooManyHops: If the request asks for more hops than configured
            RouteNotProfitable: If the best route misses min_output_amount
            SlippageExceeded: If the realized output after fees misses it
        """
        self._ensure_active()
        if request.min_output_amount <= 0:
            raise InvalidAmount(f"Minimum output must be positive, got {request.min_output_amount}")

        slippage = self._resolve_slippage(request)
        max_hops = self._resolve_max_hops(request)

        route = await self.optimizer.find_best_route(
            request.input_token,
            request.output_token,
            request.input_amount,
            max_hops,
            request.preferred_venues,
        )

        if route.expected_output < request.min_output_amount:
            raise RouteNotProfitable(
                f"Best route yields {route.expected_output}, minimum is {request.min_output_amount}",
                details={"expected_output": route.expected_output, "min_output": request.min_output_amount},
            )

        return await self.executor.execute(
            route,
            request.input_amount,
            slippage,
            routing_fee_bps=self.config.routing_fee_bps,
            min_output_amount=request.min_output_amount,
        )

    async def get_quote(self, request: ArbitrageRequest) -> RouteQuote:
        """Quote the best route for a swap intent without executing it."""
        self._ensure_active()
        return await self.optimizer.get_quote(
            request.input_token,
            request.output_token,
            request.input_amount,
            self._resolve_max_hops(request),
            request.preferred_venues,
        )

    def update_config(
        self,
        caller: str,
        max_hops: Optional[int] = None,
        default_slippage_bps: Optional[int] = None,
        routing_fee_bps: Optional[int] = None,
        is_active: Optional[bool] = None
    ) -> RouterConfig:
        """Update router configuration (authority only)."""
        authorize(caller, self.config.authority)
        validate_router_settings(max_hops, default_slippage_bps, routing_fee_bps)

        if max_hops is not None:
            self.config.max_hops = max_hops
        if default_slippage_bps is not None:
            self.config.default_slippage_bps = default_slippage_bps
        if routing_fee_bps is not None:
            self.config.routing_fee_bps = routing_fee_bps
        if is_active is not None:
            self.config.is_active = is_active

        logger.info(f"Router config updated by {caller}: {self.config}")
        self.event_log.emit(
            EventType.CONFIG_UPDATED,
            component="router",
            authority=caller,
            max_hops=self.config.max_hops,
            default_slippage_bps=self.config.default_slippage_bps,
            routing_fee_bps=self.config.routing_fee_bps,
            is_active=self.config.is_active,
        )
        return self.config

    def get_stats(self) -> Dict[str, Any]:
        return {
            "is_active": self.config.is_active,
            "max_hops": self.config.max_hops,
            "default_slippage_bps": self.config.default_slippage_bps,
            "routing_fee_bps": self.config.routing_fee_bps,
            **self.executor.counters.snapshot(),
        }

    def _ensure_active(self) -> None:
        if not self.config.is_active:
            raise RouterInactive()

    def _resolve_slippage(self, request: ArbitrageRequest) -> int:
        slippage = request.max_slippage_bps
        if slippage is None:
            slippage = self.config.default_slippage_bps
        if not 0 <= slippage <= MAX_SLIPPAGE_BPS:
            raise SlippageTooHigh(f"Slippage {slippage} bps exceeds {MAX_SLIPPAGE_BPS}")
        return slippage

    def _resolve_max_hops(self, request: ArbitrageRequest) -> int:
        if request.max_hops is None:
            return self.config.max_hops
        if request.max_hops > self.config.max_hops:
            raise TooManyHops(
                f"Requested {request.max_hops} hops, router allows {self.config.max_hops}"
            )
        return request.max_hops
