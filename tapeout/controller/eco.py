"""ECO fix recommendation and timing closure effort estimation.

Both are pure functions over violations / slack numbers. Thresholds live in
ordered ``(predicate, outcome)`` rule tables; the first matching rule wins.
"""

import math
from typing import Callable, TypeVar

from .types import (
    ClosureEffortEstimate,
    ECOConfig,
    ECOFix,
    FixPriority,
    FixType,
    TimingDifficulty,
    TimingViolation,
    ViolationType,
)

T = TypeVar("T")
Rule = tuple[Callable[[float], bool], T]


def first_match(rules: list[Rule], value: float) -> T:
    """
    Return the outcome of the first rule whose predicate accepts value.

    Raises:
        ValueError: If no rule matches (tables end with a catch-all)
    """
    for predicate, outcome in rules:
        if predicate(value):
            return outcome
    raise ValueError(f"No rule matched value {value}")


# Severity is |slack| in ns.
GATE_RESIZE_PRIORITY_RULES: list[Rule] = [
    (lambda severity: severity > 0.5, FixPriority.CRITICAL),
    (lambda severity: severity > 0.2, FixPriority.HIGH),
    (lambda severity: True, FixPriority.MEDIUM),
]

HOLD_BUFFER_PRIORITY_RULES: list[Rule] = [
    (lambda severity: severity > 0.1, FixPriority.CRITICAL),
    (lambda severity: True, FixPriority.HIGH),
]

VT_SWAP_MIN_SEVERITY_NS = 0.1

# Expected improvement caps, in ps.
GATE_RESIZE_FACTOR, GATE_RESIZE_CAP = 0.3, 100.0
VT_SWAP_FACTOR, VT_SWAP_CAP = 0.2, 50.0
PIN_SWAP_FACTOR, PIN_SWAP_CAP = 0.1, 20.0


def setup_repair_command(margin_ns: float) -> str:
    return f"repair_timing -setup -setup_margin {margin_ns}"


def hold_repair_command(margin_ns: float) -> str:
    return f"repair_timing -hold -hold_margin {margin_ns}"


def generate_eco_recommendations(
    violations: list[TimingViolation],
    config: ECOConfig,
) -> list[ECOFix]:
    """
    Generate ECO fix recommendations for a set of violations.

    Setup violations may yield gate resize, VT swap and pin swap fixes at the
    endpoint; hold violations yield buffer insertion on the path. A disabled
    fix class never appears in the output.

    Args:
        violations: Current violations
        config: ECO configuration (fix class enables and margins)

    Returns:
        Recommendations stable-sorted by priority (critical first)
    """
    fixes: list[ECOFix] = []

    for violation in violations:
        severity = violation.severity_ns

        if violation.violation_type == ViolationType.SETUP:
            fixes.extend(_setup_fixes(violation, severity, config))
        elif config.enable_buffer_insertion:
            fixes.append(
                ECOFix(
                    fix_type=FixType.BUFFER_INSERT,
                    location=violation.path,
                    expected_improvement_ps=severity,
                    priority=first_match(HOLD_BUFFER_PRIORITY_RULES, severity),
                    command=hold_repair_command(config.hold_margin_ns),
                )
            )

    return sorted(fixes, key=lambda fix: fix.priority.rank)


def _setup_fixes(
    violation: TimingViolation, severity: float, config: ECOConfig
) -> list[ECOFix]:
    command = setup_repair_command(config.setup_margin_ns)
    fixes = []

    if config.enable_gate_sizing:
        fixes.append(
            ECOFix(
                fix_type=FixType.GATE_RESIZE,
                location=violation.endpoint,
                expected_improvement_ps=min(severity * GATE_RESIZE_FACTOR, GATE_RESIZE_CAP),
                priority=first_match(GATE_RESIZE_PRIORITY_RULES, severity),
                command=command,
            )
        )

    if config.enable_vt_swap and severity > VT_SWAP_MIN_SEVERITY_NS:
        fixes.append(
            ECOFix(
                fix_type=FixType.VT_SWAP,
                location=violation.endpoint,
                expected_improvement_ps=min(severity * VT_SWAP_FACTOR, VT_SWAP_CAP),
                priority=FixPriority.MEDIUM,
                command=command,
            )
        )

    if config.enable_pin_swap:
        fixes.append(
            ECOFix(
                fix_type=FixType.PIN_SWAP,
                location=violation.endpoint,
                expected_improvement_ps=min(severity * PIN_SWAP_FACTOR, PIN_SWAP_CAP),
                priority=FixPriority.LOW,
                command=command,
            )
        )

    return fixes


# =============================================================================
# Closure effort estimation
# =============================================================================

# WNS (ns) -> (difficulty, iterations, advice)
DIFFICULTY_RULES: list[Rule] = [
    (
        lambda wns: wns >= 0,
        (TimingDifficulty.EASY, 0, ["Timing already met - no ECO needed"]),
    ),
    (
        lambda wns: wns >= -0.5,
        (
            TimingDifficulty.EASY,
            2,
            [
                "Minor timing violations - should close easily",
                "Try buffer insertion and gate sizing",
            ],
        ),
    ),
    (
        lambda wns: wns >= -2.0,
        (
            TimingDifficulty.MODERATE,
            5,
            [
                "Moderate timing violations",
                "Consider relaxing clock period by 10-20%",
                "Enable VT swap for critical paths",
            ],
        ),
    ),
    (
        lambda wns: wns >= -5.0,
        (
            TimingDifficulty.HARD,
            10,
            [
                "Significant timing violations",
                "Relax clock period or re-run placement",
                "Check for long wire paths",
                "Consider reducing utilization",
            ],
        ),
    ),
    (
        lambda wns: True,
        (
            TimingDifficulty.VERY_HARD,
            20,
            [
                "Severe timing violations - ECO may not be sufficient",
                "Re-evaluate clock constraints",
                "Consider architectural changes",
                "May need to re-run entire flow",
            ],
        ),
    ),
]

LARGE_DESIGN_CELL_COUNT = 100_000
LARGE_DESIGN_ITERATION_FACTOR = 1.5


def estimate_timing_closure_effort(
    wns_ns: float,
    tns_ns: float,
    cell_count: int,
) -> ClosureEffortEstimate:
    """
    Estimate how hard timing closure will be.

    Args:
        wns_ns: Current worst negative slack
        tns_ns: Current total negative slack (informational)
        cell_count: Number of standard cells in the design

    Returns:
        ClosureEffortEstimate with difficulty, iteration estimate and advice
    """
    difficulty, iterations, advice = first_match(DIFFICULTY_RULES, wns_ns)
    recommendations = list(advice)

    if cell_count > LARGE_DESIGN_CELL_COUNT:
        iterations = math.ceil(iterations * LARGE_DESIGN_ITERATION_FACTOR)
        recommendations.append("Large design - expect longer optimization time")

    return ClosureEffortEstimate(
        difficulty=difficulty,
        estimated_iterations=iterations,
        recommendations=recommendations,
    )
