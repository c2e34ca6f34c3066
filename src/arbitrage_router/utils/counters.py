"""Per-entity atomic counters for running totals (volume, fees, executions)."""
import asyncio
import logging
from typing import Dict, Mapping

from arbitrage_router.utils.amounts import checked_add

logger = logging.getLogger(__name__)


class AtomicCounter:
    """An overflow-checked counter guarded by its own lock."""

    def __init__(self, name: str, value: int = 0):
        self.name = name
        self._value = value
        self._lock = asyncio.Lock()

    @property
    def value(self) -> int:
        return self._value

    async def add(self, amount: int) -> int:
        async with self._lock:
            self._value = checked_add(self._value, amount)
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter(name={self.name!r}, value={self._value})"


class CounterSet:
    """
    Named group of counters owned by a single entity (router, flash program, ...).

    ``apply`` validates every increment before touching any counter so a batch
    either lands completely or not at all.
    """

    def __init__(self, owner: str, names):
        self.owner = owner
        self._counters: Dict[str, AtomicCounter] = {
            name: AtomicCounter(f"{owner}.{name}") for name in names
        }
        self._lock = asyncio.Lock()

    def __getitem__(self, name: str) -> AtomicCounter:
        return self._counters[name]

    def get(self, name: str) -> int:
        return self._counters[name].value

    def validate(self, increments: Mapping[str, int]) -> Dict[str, int]:
        """
        Compute the values a batch would produce without applying it.

        Raises:
            KeyError: If a counter name is unknown
            ArithmeticOverflow: If any counter would overflow
        """
        return {
            name: checked_add(self._counters[name].value, amount)
            for name, amount in increments.items()
        }

    @property
    def lock(self) -> asyncio.Lock:
        """Lock serializing batch updates; hold it to commit alongside other state."""
        return self._lock

    async def apply(self, increments: Mapping[str, int]) -> None:
        """Apply a batch of increments atomically."""
        async with self._lock:
            # Validate the whole batch first
            new_values = self.validate(increments)
            self.store(new_values)

        logger.debug(f"Counters {self.owner} updated: {dict(increments)}")

    def store(self, new_values: Mapping[str, int]) -> None:
        """
        Write values previously computed by ``validate``.

        Callers must hold ``lock`` between the validation and the store.
        """
        for name, value in new_values.items():
            self._counters[name]._value = value

    def snapshot(self) -> Dict[str, int]:
        return {name: counter.value for name, counter in self._counters.items()}
