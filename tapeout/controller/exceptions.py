"""
Custom exception classes with error codes for the tapeout engine.

Error codes follow the format: TO-{SEVERITY}-{NUMBER}
- Severity: E (Error), W (Warning)
- Number: Three-digit sequence number

Configuration errors are raised before any toolchain call is made. Tool
and parse failures are normally absorbed into result records; the
exceptions below exist for callers that need to raise them explicitly
(adapters, loaders, the CLI).
"""

from typing import Optional


class TapeoutError(Exception):
    """Base exception class for all tapeout engine errors with error codes."""

    def __init__(self, message: str, error_code: str, details: Optional[dict] = None):
        """
        Initialize tapeout exception with error code.

        Args:
            message: Human-readable error message
            error_code: Unique error code (e.g., "TO-E-001")
            details: Optional dict with additional context
        """
        self.error_code = error_code
        self.details = details or {}
        full_message = f"[{error_code}] {message}"
        super().__init__(full_message)


# =============================================================================
# Configuration Errors (TO-E-001 to TO-E-099)
# =============================================================================


class ConfigurationError(TapeoutError):
    """Raised when ECO, signoff or checklist configuration is invalid."""

    def __init__(self, message: str, error_code: str, details: Optional[dict] = None):
        super().__init__(message, error_code, details)


class IterationBudgetError(ConfigurationError):
    """Raised when max_iterations is not a positive integer."""

    def __init__(self, max_iterations: int):
        msg = f"max_iterations must be >= 1, got {max_iterations}"
        super().__init__(msg, "TO-E-001", {"max_iterations": max_iterations})


class MarginRangeError(ConfigurationError):
    """Raised when a repair margin is negative."""

    def __init__(self, field_name: str, value: float):
        msg = f"{field_name} must be non-negative, got {value}"
        super().__init__(msg, "TO-E-002", {"field": field_name, "value": value})


class UtilizationRangeError(ConfigurationError):
    """Raised when max_utilization is outside (0, 100]."""

    def __init__(self, value: float):
        msg = f"max_utilization must be in (0, 100], got {value}"
        super().__init__(msg, "TO-E-003", {"max_utilization": value})


class NoChecksEnabledError(ConfigurationError):
    """Raised when a signoff run has every check disabled."""

    def __init__(self, message: str = "At least one signoff check must be enabled"):
        super().__init__(message, "TO-E-004")


class SignoffLimitError(ConfigurationError):
    """Raised when a signoff limit is out of range."""

    def __init__(self, field_name: str, value: float):
        msg = f"Signoff limit {field_name} is invalid: {value}"
        super().__init__(msg, "TO-E-005", {"field": field_name, "value": value})


class CategoryWeightError(ConfigurationError):
    """Raised when readiness category weights are malformed."""

    def __init__(self, message: str, weights: Optional[dict] = None):
        super().__init__(message, "TO-E-006", {"weights": weights or {}})


class ChecklistWeightError(ConfigurationError):
    """Raised when a checklist item weight is outside [0, 10]."""

    def __init__(self, item_id: str, weight: float):
        msg = f"Checklist item '{item_id}' weight must be in [0, 10], got {weight}"
        super().__init__(msg, "TO-E-007", {"item_id": item_id, "weight": weight})


class YAMLConfigError(ConfigurationError):
    """Raised when a YAML configuration file is malformed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, "TO-E-008", details)


class TimeoutConfigError(ConfigurationError):
    """Raised when a timeout setting is not positive."""

    def __init__(self, field_name: str, value: float):
        msg = f"{field_name} must be positive, got {value}"
        super().__init__(msg, "TO-E-009", {"field": field_name, "value": value})


class ContradictoryFlagsError(ConfigurationError):
    """Raised when configuration flags cannot be satisfied together."""

    def __init__(self, message: str):
        super().__init__(message, "TO-E-010")


class MissingRunDirError(ConfigurationError):
    """Raised when no run directory is configured for a design command."""

    def __init__(self):
        super().__init__(
            "No run directory: pass --run-dir or set design.run_dir in the configuration",
            "TO-E-011",
        )


# =============================================================================
# Toolchain Errors (TO-E-200 to TO-E-249)
# =============================================================================


class ToolchainError(TapeoutError):
    """Base class for failures talking to the EDA toolchain."""

    def __init__(self, message: str, error_code: str, details: Optional[dict] = None):
        super().__init__(message, error_code, details)


class ToolInvocationError(ToolchainError):
    """Raised when a tool exits abnormally or produces no usable output."""

    def __init__(self, tool: str, return_code: int, reason: str = ""):
        msg = f"{tool} failed with exit code {return_code}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(
            msg, "TO-E-200", {"tool": tool, "return_code": return_code}
        )


class ToolTimeoutError(ToolchainError):
    """Raised when a tool invocation exceeds its time limit."""

    def __init__(self, tool: str, timeout_seconds: float):
        msg = f"{tool} exceeded timeout of {timeout_seconds}s"
        super().__init__(
            msg, "TO-E-201", {"tool": tool, "timeout_seconds": timeout_seconds}
        )


class AdapterUnavailableError(ToolchainError):
    """Raised when the toolchain adapter cannot be set up at all."""

    def __init__(self, message: str):
        super().__init__(message, "TO-E-202")


# =============================================================================
# Parsing Errors (TO-E-250 to TO-E-299)
# =============================================================================


class ParsingError(TapeoutError):
    """Base class for report parsing errors."""

    def __init__(self, message: str, error_code: str, details: Optional[dict] = None):
        super().__init__(message, error_code, details)


class TimingReportParseError(ParsingError):
    """Raised when a timing report does not have the expected shape."""

    def __init__(self, message: str = "Timing report could not be parsed"):
        super().__init__(message, "TO-E-250")


class CheckReportParseError(ParsingError):
    """Raised when a DRC/LVS/antenna/IR report cannot be parsed."""

    def __init__(self, check: str, message: Optional[str] = None):
        msg = message or f"{check} report could not be parsed"
        super().__init__(msg, "TO-E-251", {"check": check})


# =============================================================================
# Error Code Registry
# =============================================================================

ERROR_CODE_REGISTRY = {
    # Configuration
    "TO-E-001": "max_iterations must be >= 1",
    "TO-E-002": "Repair margin must be non-negative",
    "TO-E-003": "max_utilization must be in (0, 100]",
    "TO-E-004": "At least one signoff check must be enabled",
    "TO-E-005": "Signoff limit out of range",
    "TO-E-006": "Readiness category weights invalid",
    "TO-E-007": "Checklist item weight out of range",
    "TO-E-008": "Malformed YAML configuration",
    "TO-E-009": "Timeout must be positive",
    "TO-E-010": "Contradictory configuration flags",
    "TO-E-011": "No run directory configured",
    # Toolchain
    "TO-E-200": "Tool invocation failed",
    "TO-E-201": "Tool invocation timed out",
    "TO-E-202": "Toolchain adapter unavailable",
    # Parsing
    "TO-E-250": "Timing report parse failure",
    "TO-E-251": "Check report parse failure",
}


def get_error_code_description(error_code: str) -> str:
    """
    Get human-readable description of an error code.

    Args:
        error_code: Error code (e.g., "TO-E-001")

    Returns:
        Description of the error code, or "Unknown error code" if not found
    """
    return ERROR_CODE_REGISTRY.get(error_code, "Unknown error code")
