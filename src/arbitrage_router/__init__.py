"""Cross-venue arbitrage router with atomic execution and MEV protection."""

__version__ = "0.1.0"
