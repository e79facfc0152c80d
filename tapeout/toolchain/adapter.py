"""Toolchain adapter interface.

Every engine component receives an adapter instance explicitly; there is
no module-level toolchain. Adapters return raw report text and failure
classifications. Interpretation happens in the engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from tapeout.controller.failure import FailureClassification
from tapeout.controller.types import CheckType, DesignSnapshot, SignoffLimits

# WNS/TNS value reported for a repair that could not run. Never a measurement.
REPAIR_FAILURE_SENTINEL_NS = -999.0


@dataclass
class RepairOptions:
    """Options for one ``repair_timing`` (or ``repair_design``) invocation."""

    setup: bool = True
    hold: bool = True
    setup_margin_ns: float = 0.1
    hold_margin_ns: float = 0.05
    max_utilization: float = 90.0
    skip_vt_swap: bool = False
    skip_pin_swap: bool = False
    repair_design: bool = False  # DRV repair instead of timing repair
    timeout_seconds: float | None = None

    @property
    def measure_only(self) -> bool:
        """True when no repair is requested and only WNS/TNS are reported."""
        return not (self.setup or self.hold or self.repair_design)


@dataclass
class RepairOutcome:
    """Result of one repair invocation."""

    success: bool
    wns_ns: float
    tns_ns: float
    changes: int = 0
    log: str = ""
    failure: FailureClassification | None = None
    duration_seconds: float = 0.0

    @classmethod
    def failed(
        cls,
        failure: FailureClassification,
        log: str = "",
        duration_seconds: float = 0.0,
    ) -> "RepairOutcome":
        """Build a failed outcome carrying the sentinel WNS/TNS."""
        return cls(
            success=False,
            wns_ns=REPAIR_FAILURE_SENTINEL_NS,
            tns_ns=REPAIR_FAILURE_SENTINEL_NS,
            changes=0,
            log=log,
            failure=failure,
            duration_seconds=duration_seconds,
        )

    @property
    def has_measurement(self) -> bool:
        return self.success and self.wns_ns != REPAIR_FAILURE_SENTINEL_NS


@dataclass
class CheckOutcome:
    """Raw output of one verification tool run."""

    check_type: CheckType
    output: str = ""
    report_path: str | None = None
    failure: FailureClassification | None = None
    duration_seconds: float = 0.0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.failure is None


class ToolchainAdapter(ABC):
    """Interface to the EDA toolchain (STA, repair, verification tools)."""

    @abstractmethod
    def run_timing_analysis(
        self,
        snapshot: DesignSnapshot,
        path_type: str,
        max_paths: int = 100,
    ) -> str:
        """
        Produce a path report for the design.

        Args:
            snapshot: Design to analyze
            path_type: "max" (setup) or "min" (hold)
            max_paths: Maximum number of paths to report

        Returns:
            Raw report text

        Raises:
            ToolInvocationError: If the STA tool failed
            ToolTimeoutError: If the STA tool timed out
        """

    @abstractmethod
    def apply_repair(self, snapshot: DesignSnapshot, options: RepairOptions) -> RepairOutcome:
        """
        Run repair on the design and report resulting WNS/TNS.

        With ``options.measure_only`` the design is not changed. Tool
        failures and timeouts are returned as ``RepairOutcome.failed``,
        never raised.
        """

    @abstractmethod
    def run_check(
        self,
        check_type: CheckType,
        snapshot: DesignSnapshot,
        limits: SignoffLimits,
        timeout_seconds: float | None = None,
    ) -> CheckOutcome:
        """
        Run one verification tool. Failures are reported in the outcome.
        """

    def close(self) -> None:
        """Release adapter resources. Default: nothing to release."""
        return None
