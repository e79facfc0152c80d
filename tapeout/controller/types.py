"""Core type definitions for the tapeout controller."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .exceptions import (
    CategoryWeightError,
    ChecklistWeightError,
    ContradictoryFlagsError,
    IterationBudgetError,
    MarginRangeError,
    NoChecksEnabledError,
    SignoffLimitError,
    TimeoutConfigError,
    UtilizationRangeError,
)
from .failure import FailureClassification


# =============================================================================
# Enumerations
# =============================================================================


class ViolationType(str, Enum):
    """Timing violation class, keyed by STA path group."""

    SETUP = "setup"  # max paths
    HOLD = "hold"  # min paths


class FixType(str, Enum):
    """Kinds of ECO fix the recommender can emit."""

    BUFFER_INSERT = "buffer_insert"
    GATE_RESIZE = "gate_resize"
    VT_SWAP = "vt_swap"
    PIN_SWAP = "pin_swap"
    CLONE_GATE = "clone_gate"


class FixPriority(str, Enum):
    """Recommendation priority. Lower rank sorts first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    FixPriority.CRITICAL: 0,
    FixPriority.HIGH: 1,
    FixPriority.MEDIUM: 2,
    FixPriority.LOW: 3,
}


class LoopState(str, Enum):
    """States of the ECO convergence loop."""

    INIT = "init"
    ITERATING = "iterating"
    CONVERGED = "converged"
    TARGET_MET = "target_met"
    MAX_ITERS_REACHED = "max_iters_reached"
    ABORTED = "aborted"  # baseline failed or too many failed iterations
    DONE = "done"


class TimingDifficulty(str, Enum):
    """Estimated difficulty of closing timing."""

    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"
    VERY_HARD = "very_hard"


class AnalysisStatus(str, Enum):
    """Outcome of a violation analysis."""

    OK = "ok"
    UNAVAILABLE = "unavailable"  # report could not be produced
    ERROR = "error"  # report produced but not understood


class CheckType(str, Enum):
    """Signoff verification checks."""

    DRC = "drc"
    LVS = "lvs"
    ANTENNA = "antenna"
    IR_DROP = "ir_drop"
    TIMING = "timing"

    @property
    def display_name(self) -> str:
        return _CHECK_DISPLAY_NAMES[self]


_CHECK_DISPLAY_NAMES = {
    CheckType.DRC: "DRC",
    CheckType.LVS: "LVS",
    CheckType.ANTENNA: "Antenna",
    CheckType.IR_DROP: "IR Drop",
    CheckType.TIMING: "Timing",
}


class CheckStatus(str, Enum):
    """Status of a single signoff check (and of the report overall)."""

    PASS = "pass"
    FAIL = "fail"
    WARNING = "warning"
    SKIPPED = "skipped"
    ERROR = "error"


class ChecklistStatus(str, Enum):
    """Status of a tapeout checklist item."""

    PASS = "pass"
    FAIL = "fail"
    WARNING = "warning"
    SKIPPED = "skipped"
    NOT_RUN = "not_run"


class CheckCategory(str, Enum):
    """Tapeout checklist categories."""

    DESIGN_FILES = "design_files"
    DRC_LVS = "drc_lvs"
    TIMING = "timing"
    POWER = "power"
    PHYSICAL = "physical"
    DOCUMENTATION = "documentation"

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY_NAMES[self]


_CATEGORY_DISPLAY_NAMES = {
    CheckCategory.DESIGN_FILES: "Design Files",
    CheckCategory.DRC_LVS: "DRC/LVS Verification",
    CheckCategory.TIMING: "Timing Analysis",
    CheckCategory.POWER: "Power Analysis",
    CheckCategory.PHYSICAL: "Physical Design",
    CheckCategory.DOCUMENTATION: "Documentation",
}


# Contribution of each category to the overall readiness score.
# Documentation is scored and displayed but does not contribute.
DEFAULT_CATEGORY_WEIGHTS: dict[CheckCategory, float] = {
    CheckCategory.DESIGN_FILES: 0.15,
    CheckCategory.DRC_LVS: 0.30,
    CheckCategory.TIMING: 0.25,
    CheckCategory.POWER: 0.15,
    CheckCategory.PHYSICAL: 0.15,
}


# =============================================================================
# Design snapshot
# =============================================================================


@dataclass
class DesignSnapshot:
    """A placed-and-routed design on disk that the toolchain operates on."""

    run_dir: Path
    platform: str = "sky130hd"
    design: str = "top"
    odb_file: str = "results/final.odb"
    sdc_file: str = "results/final.sdc"
    def_file: str = "results/final.def"
    gds_file: str = "results/final.gds"
    netlist_file: str = "results/final.v"
    spef_file: str = "results/final.spef"

    def __post_init__(self) -> None:
        self.run_dir = Path(self.run_dir)

    def resolve(self, relative: str) -> Path:
        """Resolve a run-directory relative path."""
        return self.run_dir / relative

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_dir": str(self.run_dir),
            "platform": self.platform,
            "design": self.design,
            "odb_file": self.odb_file,
            "sdc_file": self.sdc_file,
            "def_file": self.def_file,
            "gds_file": self.gds_file,
            "netlist_file": self.netlist_file,
            "spef_file": self.spef_file,
        }


# =============================================================================
# Violations and ECO fixes
# =============================================================================


@dataclass(frozen=True)
class TimingViolation:
    """A single failing timing path."""

    violation_type: ViolationType
    startpoint: str
    endpoint: str
    slack_ns: float  # negative for a violation
    clock: str = "clk"
    required_time_ns: float = 0.0
    arrival_time_ns: float = 0.0

    @property
    def path(self) -> str:
        return f"{self.startpoint} -> {self.endpoint}"

    @property
    def severity_ns(self) -> float:
        return abs(self.slack_ns)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.violation_type.value,
            "startpoint": self.startpoint,
            "endpoint": self.endpoint,
            "path": self.path,
            "slack_ns": self.slack_ns,
            "clock": self.clock,
            "required_time_ns": self.required_time_ns,
            "arrival_time_ns": self.arrival_time_ns,
        }


@dataclass
class ViolationAnalysis:
    """
    Tri-state result of violation analysis.

    ``status`` tells apart "no violations" (ok, empty list) from "timing
    report could not be produced" (unavailable) and "report not understood"
    (error). In the last two cases ``violations`` is always empty.
    """

    status: AnalysisStatus
    violations: list[TimingViolation] = field(default_factory=list)
    failure: FailureClassification | None = None

    @property
    def setup_violations(self) -> list[TimingViolation]:
        return [v for v in self.violations if v.violation_type == ViolationType.SETUP]

    @property
    def hold_violations(self) -> list[TimingViolation]:
        return [v for v in self.violations if v.violation_type == ViolationType.HOLD]

    @property
    def worst_slack_ns(self) -> float | None:
        if not self.violations:
            return None
        return min(v.slack_ns for v in self.violations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "violations": [v.to_dict() for v in self.violations],
            "failure": self.failure.to_dict() if self.failure else None,
        }


@dataclass
class ECOFix:
    """A recommended ECO fix, derived fresh from the current violations."""

    fix_type: FixType
    location: str
    expected_improvement_ps: float
    priority: FixPriority
    command: str
    current_cell: str | None = None
    suggested_cell: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.fix_type.value,
            "location": self.location,
            "expected_improvement_ps": self.expected_improvement_ps,
            "priority": self.priority.value,
            "command": self.command,
            "current_cell": self.current_cell,
            "suggested_cell": self.suggested_cell,
        }


@dataclass
class ECOIterationResult:
    """Record of one iteration of the convergence loop."""

    iteration: int  # 1-based
    before_wns_ns: float
    after_wns_ns: float
    before_tns_ns: float
    after_tns_ns: float
    fixes_applied: int = 0
    duration_seconds: float = 0.0
    converged: bool = False
    failure: FailureClassification | None = None

    @property
    def failed(self) -> bool:
        return self.failure is not None

    @property
    def wns_improvement_ns(self) -> float:
        """Positive when WNS got better. Negative values are regressions."""
        return self.after_wns_ns - self.before_wns_ns

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "before": {"wns_ns": self.before_wns_ns, "tns_ns": self.before_tns_ns},
            "after": {"wns_ns": self.after_wns_ns, "tns_ns": self.after_tns_ns},
            "fixes_applied": self.fixes_applied,
            "duration_seconds": self.duration_seconds,
            "converged": self.converged,
            "failure": self.failure.to_dict() if self.failure else None,
        }


@dataclass
class ECOResult:
    """Complete result of an ECO convergence run."""

    success: bool
    iterations: list[ECOIterationResult]
    total_fixes_applied: int
    initial_wns_ns: float
    final_wns_ns: float
    initial_tns_ns: float
    final_tns_ns: float
    timing_met: bool
    converged: bool
    duration_seconds: float
    recommendations: list[ECOFix] = field(default_factory=list)
    final_state: LoopState = LoopState.DONE
    error: str = ""  # set when the baseline measurement failed

    @property
    def wns_improvement_ns(self) -> float:
        return self.final_wns_ns - self.initial_wns_ns

    @property
    def tns_improvement_ns(self) -> float:
        return self.final_tns_ns - self.initial_tns_ns

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "iterations": [it.to_dict() for it in self.iterations],
            "total_fixes_applied": self.total_fixes_applied,
            "initial": {"wns_ns": self.initial_wns_ns, "tns_ns": self.initial_tns_ns},
            "final": {"wns_ns": self.final_wns_ns, "tns_ns": self.final_tns_ns},
            "improvement": {"wns_ns": self.wns_improvement_ns, "tns_ns": self.tns_improvement_ns},
            "timing_met": self.timing_met,
            "converged": self.converged,
            "duration_seconds": self.duration_seconds,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "final_state": self.final_state.value,
            "error": self.error,
        }


@dataclass
class QuickFixResult:
    """Result of a single-shot repair."""

    improved: bool
    before_wns_ns: float
    after_wns_ns: float
    failure: FailureClassification | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "improved": self.improved,
            "before_wns_ns": self.before_wns_ns,
            "after_wns_ns": self.after_wns_ns,
            "failure": self.failure.to_dict() if self.failure else None,
        }


@dataclass
class ClosureEffortEstimate:
    """Rough estimate of how much ECO work timing closure will take."""

    difficulty: TimingDifficulty
    estimated_iterations: int
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "difficulty": self.difficulty.value,
            "estimated_iterations": self.estimated_iterations,
            "recommendations": list(self.recommendations),
        }


# =============================================================================
# Signoff
# =============================================================================


@dataclass
class SignoffCheckResult:
    """Result of one signoff check."""

    check_type: CheckType
    status: CheckStatus
    violation_count: int = 0  # -1 when the check could not be run
    details: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    report_path: str | None = None
    metrics: dict[str, float] = field(default_factory=dict)
    failure: FailureClassification | None = None

    @property
    def name(self) -> str:
        return self.check_type.display_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "check_type": self.check_type.value,
            "name": self.name,
            "status": self.status.value,
            "violations": self.violation_count,
            "details": list(self.details),
            "duration_seconds": self.duration_seconds,
            "report_path": self.report_path,
            "metrics": dict(self.metrics),
            "failure": self.failure.to_dict() if self.failure else None,
        }


@dataclass
class SignoffReport:
    """
    Aggregated signoff result.

    ``overall_status``, ``tapeout_ready``, ``blockers`` and ``warnings`` are
    derived from ``checks`` every time they are read.
    """

    design: str
    timestamp: str
    checks: list[SignoffCheckResult] = field(default_factory=list)

    def get_check(self, check_type: CheckType) -> SignoffCheckResult | None:
        for check in self.checks:
            if check.check_type == check_type:
                return check
        return None

    @property
    def overall_status(self) -> CheckStatus:
        statuses = {c.status for c in self.checks}
        if CheckStatus.FAIL in statuses or CheckStatus.ERROR in statuses:
            return CheckStatus.FAIL
        if CheckStatus.WARNING in statuses:
            return CheckStatus.WARNING
        return CheckStatus.PASS

    @property
    def tapeout_ready(self) -> bool:
        return self.overall_status == CheckStatus.PASS

    @property
    def blockers(self) -> list[str]:
        return [
            _blocker_message(c)
            for c in self.checks
            if c.status in (CheckStatus.FAIL, CheckStatus.ERROR)
        ]

    @property
    def warnings(self) -> list[str]:
        return [_warning_message(c) for c in self.checks if c.status == CheckStatus.WARNING]

    def to_dict(self) -> dict[str, Any]:
        return {
            "design": self.design,
            "timestamp": self.timestamp,
            "overall_status": self.overall_status.value,
            "tapeout_ready": self.tapeout_ready,
            "checks": [c.to_dict() for c in self.checks],
            "blockers": self.blockers,
            "warnings": self.warnings,
        }


def _blocker_message(check: SignoffCheckResult) -> str:
    if check.status == CheckStatus.ERROR:
        reason = check.failure.reason if check.failure else "check could not be run"
        return f"{check.name}: {reason}"
    if check.check_type == CheckType.DRC:
        return f"DRC: {check.violation_count} violations"
    if check.check_type == CheckType.LVS:
        return "LVS: Circuits do not match"
    if check.check_type == CheckType.ANTENNA:
        return f"Antenna: {check.violation_count} violations"
    if check.check_type == CheckType.IR_DROP:
        return "IR Drop exceeds limit"
    return "Timing violations"


def _warning_message(check: SignoffCheckResult) -> str:
    if check.check_type == CheckType.DRC:
        return f"DRC: {check.violation_count} warnings"
    detail = check.details[0] if check.details else "warning"
    return f"{check.name}: {detail}"


# =============================================================================
# Tapeout checklist and readiness
# =============================================================================


@dataclass(frozen=True)
class ChecklistItemTemplate:
    """Fixed catalog entry. Weight and requiredness never vary per run."""

    id: str
    category: CheckCategory
    name: str
    description: str
    required: bool
    weight: float
    fix_suggestion: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.weight <= 10:
            raise ChecklistWeightError(self.id, self.weight)


@dataclass
class ChecklistItem:
    """A catalog entry resolved against the evidence of one run."""

    template: ChecklistItemTemplate
    status: ChecklistStatus = ChecklistStatus.NOT_RUN
    details: str = ""

    @property
    def id(self) -> str:
        return self.template.id

    @property
    def category(self) -> CheckCategory:
        return self.template.category

    @property
    def name(self) -> str:
        return self.template.name

    @property
    def required(self) -> bool:
        return self.template.required

    @property
    def weight(self) -> float:
        return self.template.weight

    @property
    def fix_suggestion(self) -> str:
        return self.template.fix_suggestion

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category.value,
            "name": self.name,
            "description": self.template.description,
            "required": self.required,
            "weight": self.weight,
            "status": self.status.value,
            "details": self.details,
            "fix_suggestion": self.fix_suggestion,
        }


@dataclass
class ReadinessScore:
    """Weighted readiness score with per-category breakdown."""

    overall: float  # 0-100
    breakdown: dict[CheckCategory, float]  # category -> percent
    grade: str
    tapeout_ready: bool
    missing_critical: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall,
            "breakdown": {k.value: v for k, v in self.breakdown.items()},
            "grade": self.grade,
            "tapeout_ready": self.tapeout_ready,
            "missing_critical": list(self.missing_critical),
        }


@dataclass
class FoundryDeliverable:
    """A file the foundry expects in the submission package."""

    name: str
    path: str
    required: bool
    present: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "required": self.required,
            "present": self.present,
        }


@dataclass
class GDSChecks:
    """Basic sanity checks on the final GDSII stream."""

    file_exists: bool = False
    valid_format: bool = False
    cell_name_valid: bool = False
    layer_map_valid: bool = False
    density_met: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_exists": self.file_exists,
            "valid_format": self.valid_format,
            "cell_name_valid": self.cell_name_valid,
            "layer_map_valid": self.layer_map_valid,
            "density_met": self.density_met,
        }


@dataclass
class FoundryReadiness:
    """Foundry submission package status."""

    gds_ready: bool
    gds_checks: GDSChecks
    deliverables: list[FoundryDeliverable] = field(default_factory=list)

    @property
    def missing_required(self) -> list[str]:
        return [d.name for d in self.deliverables if d.required and not d.present]

    def to_dict(self) -> dict[str, Any]:
        return {
            "gds_ready": self.gds_ready,
            "gds_checks": self.gds_checks.to_dict(),
            "deliverables": [d.to_dict() for d in self.deliverables],
        }


@dataclass
class TapeoutChecklist:
    """Full tapeout checklist run."""

    design: str
    platform: str
    timestamp: str
    items: list[ChecklistItem]
    score: ReadinessScore
    blockers: list[str]
    recommendations: list[str]
    foundry: FoundryReadiness

    @property
    def summary(self) -> dict[str, int]:
        def count(status: ChecklistStatus) -> int:
            return sum(1 for i in self.items if i.status == status)

        return {
            "total": len(self.items),
            "passed": count(ChecklistStatus.PASS),
            "failed": count(ChecklistStatus.FAIL),
            "warnings": count(ChecklistStatus.WARNING),
            "skipped": count(ChecklistStatus.SKIPPED),
            "not_run": count(ChecklistStatus.NOT_RUN),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "design": self.design,
            "platform": self.platform,
            "timestamp": self.timestamp,
            "items": [i.to_dict() for i in self.items],
            "score": self.score.to_dict(),
            "summary": self.summary,
            "blockers": list(self.blockers),
            "recommendations": list(self.recommendations),
            "foundry": self.foundry.to_dict(),
        }


@dataclass
class QuickReadiness:
    """Result of the three-file quick readiness check."""

    ready: bool
    score: int
    blockers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"ready": self.ready, "score": self.score, "blockers": self.blockers}


# =============================================================================
# Configuration
# =============================================================================


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


@dataclass
class ECOConfig:
    """Configuration for the ECO convergence loop."""

    max_iterations: int = 5
    setup_margin_ns: float = 0.1
    hold_margin_ns: float = 0.05
    max_utilization: float = 90.0  # percent
    enable_buffer_insertion: bool = True
    enable_gate_sizing: bool = True
    enable_vt_swap: bool = True
    enable_pin_swap: bool = True
    target_wns_ns: float = 0.0
    stop_on_convergence: bool = True
    iteration_timeout_seconds: float = 900.0
    fix_setup: bool = True
    fix_hold: bool = True
    max_consecutive_failures: int = 3

    def validate(self) -> None:
        """
        Validate ECO configuration.

        Raises:
            ConfigurationError subclass describing the first problem found
        """
        if not _positive_int(self.max_iterations):
            raise IterationBudgetError(self.max_iterations)
        if self.setup_margin_ns < 0:
            raise MarginRangeError("setup_margin_ns", self.setup_margin_ns)
        if self.hold_margin_ns < 0:
            raise MarginRangeError("hold_margin_ns", self.hold_margin_ns)
        if not 0 < self.max_utilization <= 100:
            raise UtilizationRangeError(self.max_utilization)
        if self.iteration_timeout_seconds <= 0:
            raise TimeoutConfigError(
                "iteration_timeout_seconds", self.iteration_timeout_seconds
            )
        if not (self.fix_setup or self.fix_hold):
            raise ContradictoryFlagsError(
                "At least one of fix_setup or fix_hold must be enabled"
            )
        if not _positive_int(self.max_consecutive_failures):
            raise IterationBudgetError(self.max_consecutive_failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_iterations": self.max_iterations,
            "setup_margin_ns": self.setup_margin_ns,
            "hold_margin_ns": self.hold_margin_ns,
            "max_utilization": self.max_utilization,
            "enable_buffer_insertion": self.enable_buffer_insertion,
            "enable_gate_sizing": self.enable_gate_sizing,
            "enable_vt_swap": self.enable_vt_swap,
            "enable_pin_swap": self.enable_pin_swap,
            "target_wns_ns": self.target_wns_ns,
            "stop_on_convergence": self.stop_on_convergence,
            "iteration_timeout_seconds": self.iteration_timeout_seconds,
            "fix_setup": self.fix_setup,
            "fix_hold": self.fix_hold,
            "max_consecutive_failures": self.max_consecutive_failures,
        }


@dataclass
class SignoffChecks:
    """Which signoff checks to run."""

    drc: bool = True
    lvs: bool = True
    antenna: bool = True
    ir_drop: bool = True
    timing: bool = True

    def enabled(self) -> list[CheckType]:
        """Enabled checks in canonical order."""
        flags = {
            CheckType.DRC: self.drc,
            CheckType.LVS: self.lvs,
            CheckType.ANTENNA: self.antenna,
            CheckType.IR_DROP: self.ir_drop,
            CheckType.TIMING: self.timing,
        }
        return [check for check, on in flags.items() if on]


@dataclass
class SignoffLimits:
    """Pass/fail limits for signoff checks."""

    max_ir_drop_mv: float = 50.0
    min_slack_ns: float = 0.0
    max_drc_violations: int | None = None  # None: any violation fails DRC


@dataclass
class SignoffConfig:
    """Configuration for a signoff run."""

    checks: SignoffChecks = field(default_factory=SignoffChecks)
    limits: SignoffLimits = field(default_factory=SignoffLimits)
    check_timeout_seconds: float = 600.0
    parallel: bool = False

    def validate(self) -> None:
        """
        Validate signoff configuration.

        Raises:
            ConfigurationError subclass describing the first problem found
        """
        if not self.checks.enabled():
            raise NoChecksEnabledError()
        if self.limits.max_ir_drop_mv <= 0:
            raise SignoffLimitError("max_ir_drop_mv", self.limits.max_ir_drop_mv)
        if self.limits.max_drc_violations is not None and self.limits.max_drc_violations < 0:
            raise SignoffLimitError("max_drc_violations", self.limits.max_drc_violations)
        if self.check_timeout_seconds <= 0:
            raise TimeoutConfigError("check_timeout_seconds", self.check_timeout_seconds)


@dataclass
class ChecklistRequirements:
    """Optional design targets consulted by checklist evidence checks."""

    min_density: float | None = None  # percent
    max_density: float | None = None  # percent
    target_frequency_mhz: float | None = None
    max_power_mw: float | None = None
    max_area_um2: float | None = None


@dataclass
class ChecklistConfig:
    """Configuration for a tapeout checklist run."""

    signoff_report: SignoffReport | None = None
    requirements: ChecklistRequirements = field(default_factory=ChecklistRequirements)
    category_weights: dict[CheckCategory, float] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_WEIGHTS)
    )

    def validate(self) -> None:
        """
        Validate checklist configuration.

        Raises:
            CategoryWeightError: If weights do not cover exactly the scored
                categories, are negative, or do not sum to 1.0
        """
        expected = set(DEFAULT_CATEGORY_WEIGHTS)
        raw = {k.value: v for k, v in self.category_weights.items()}
        if set(self.category_weights) != expected:
            raise CategoryWeightError(
                "category_weights must cover exactly: "
                + ", ".join(c.value for c in DEFAULT_CATEGORY_WEIGHTS),
                raw,
            )
        if any(w < 0 for w in self.category_weights.values()):
            raise CategoryWeightError("category weights must be non-negative", raw)
        if abs(sum(self.category_weights.values()) - 1.0) > 1e-6:
            raise CategoryWeightError("category weights must sum to 1.0", raw)
        req = self.requirements
        if (
            req.min_density is not None
            and req.max_density is not None
            and req.min_density > req.max_density
        ):
            raise ContradictoryFlagsError("min_density cannot exceed max_density")
