"""Execution of computed routes, directly or funded by flash capital."""
from .execution_coordinator import (
    ExecutionCoordinator,
    ExecutionRecord,
    ExecutionStatus,
    HopResult,
    StagedExecution,
)
from .capital_provider import (
    CapitalProvider,
    LoanHandle,
    SimulatedCapitalProvider,
)
from .flash_coordinator import (
    ArbitrageStatus,
    FlashConfig,
    FlashCoordinator,
    FlashLedger,
)

__all__ = [
    "ExecutionCoordinator",
    "ExecutionRecord",
    "ExecutionStatus",
    "HopResult",
    "StagedExecution",
    "CapitalProvider",
    "LoanHandle",
    "SimulatedCapitalProvider",
    "ArbitrageStatus",
    "FlashConfig",
    "FlashCoordinator",
    "FlashLedger",
]
