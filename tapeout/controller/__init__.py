"""
Controller module - ECO convergence, signoff orchestration and tapeout readiness.

Only leaf modules are re-exported here. The stage modules (violations,
eco_optimizer, signoff, readiness) depend on the parsers and toolchain
packages and are imported from their own modules.
"""

from tapeout.controller.eco import (
    estimate_timing_closure_effort,
    generate_eco_recommendations,
)
from tapeout.controller.exceptions import (
    ConfigurationError,
    ParsingError,
    TapeoutError,
    ToolchainError,
    YAMLConfigError,
)
from tapeout.controller.failure import (
    FailureClassification,
    FailureClassifier,
    FailureSeverity,
    FailureType,
)
from tapeout.controller.types import (
    CheckCategory,
    ChecklistConfig,
    ChecklistStatus,
    CheckStatus,
    CheckType,
    DesignSnapshot,
    ECOConfig,
    ECOResult,
    FixPriority,
    FixType,
    LoopState,
    SignoffConfig,
    SignoffReport,
    TapeoutChecklist,
    TimingViolation,
    ViolationType,
)

__all__ = [
    "CheckCategory",
    "CheckStatus",
    "CheckType",
    "ChecklistConfig",
    "ChecklistStatus",
    "ConfigurationError",
    "DesignSnapshot",
    "ECOConfig",
    "ECOResult",
    "FailureClassification",
    "FailureClassifier",
    "FailureSeverity",
    "FailureType",
    "FixPriority",
    "FixType",
    "LoopState",
    "ParsingError",
    "SignoffConfig",
    "SignoffReport",
    "TapeoutChecklist",
    "TapeoutError",
    "TimingViolation",
    "ToolchainError",
    "ViolationType",
    "YAMLConfigError",
    "estimate_timing_closure_effort",
    "generate_eco_recommendations",
]
