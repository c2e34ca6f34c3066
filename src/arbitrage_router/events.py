"""
Structured event log.

Events are append-only audit records for observers (dashboards, alerting).
Core decision logic never reads them back.
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event kinds emitted by the router."""
    ROUTER_INITIALIZED = "RouterInitialized"
    VENUE_REGISTERED = "VenueRegistered"
    VENUE_METRICS_UPDATED = "VenueMetricsUpdated"
    CONFIG_UPDATED = "ConfigUpdated"
    ROUTE_COMPUTED = "RouteComputed"
    QUOTE_GENERATED = "QuoteGenerated"
    HOP_EXECUTED = "HopExecuted"
    ROUTE_EXECUTED = "RouteExecuted"
    ARBITRAGE_EXECUTED = "ArbitrageExecuted"
    FEES_WITHDRAWN = "FeesWithdrawn"
    EMERGENCY_PAUSE_ACTIVATED = "EmergencyPauseActivated"
    PROTECTED_TRANSACTION_CREATED = "ProtectedTransactionCreated"
    PROTECTED_TRANSACTION_EXECUTED = "ProtectedTransactionExecuted"
    PROTECTED_TRANSACTION_CANCELLED = "ProtectedTransactionCancelled"
    SANDWICH_ATTACK_DETECTED = "SandwichAttackDetected"
    PROTECTION_CONFIG_UPDATED = "ProtectionConfigUpdated"
    ATTACK_REPORTED = "AttackReported"


@dataclass(frozen=True)
class Event:
    """A single emitted event."""
    event_type: EventType
    payload: Dict[str, Any]
    sequence: int
    timestamp: float = field(default_factory=time.time)


class EventLog:
    """Append-only in-process event sink with optional subscribers."""

    def __init__(self, max_events: Optional[int] = 10_000):
        self.max_events = max_events
        self._events: List[Event] = []
        self._sequence = 0
        self._subscribers: List[Callable[[Event], None]] = []

    def emit(self, event_type: EventType, **payload: Any) -> Event:
        """Append an event and notify subscribers."""
        self._sequence += 1
        event = Event(event_type=event_type, payload=payload, sequence=self._sequence)
        self._events.append(event)

        if self.max_events and len(self._events) > self.max_events:
            del self._events[: len(self._events) - self.max_events]

        logger.info(f"event={event_type.value} {payload}")

        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception as e:
                logger.warning(f"Event subscriber failed for {event_type.value}: {e}")

        return event

    def subscribe(self, callback: Callable[[Event], None]) -> None:
        self._subscribers.append(callback)

    def events(self, event_type: Optional[EventType] = None) -> List[Event]:
        """Return recorded events, optionally filtered by type."""
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if e.event_type == event_type]

    def __len__(self) -> int:
        return len(self._events)
