"""
Toolchain module - Adapters that run STA, repair and verification tools.
"""

from tapeout.toolchain.adapter import (
    REPAIR_FAILURE_SENTINEL_NS,
    CheckOutcome,
    RepairOptions,
    RepairOutcome,
    ToolchainAdapter,
)

__all__ = [
    "REPAIR_FAILURE_SENTINEL_NS",
    "CheckOutcome",
    "RepairOptions",
    "RepairOutcome",
    "ToolchainAdapter",
]
