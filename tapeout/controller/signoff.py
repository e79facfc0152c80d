"""Signoff verification orchestration.

Runs the enabled physical verification checks (DRC, LVS, antenna, IR drop,
timing) against one design snapshot and derives a status for each. A tool
or parse failure in one check gives that check ``error`` status and never
stops the others.
"""

import logging
import time
from datetime import datetime
from typing import Callable

from tapeout.parsers.signoff import (
    parse_antenna_report,
    parse_drc_report,
    parse_ir_drop_report,
    parse_lvs_report,
)
from tapeout.parsers.timing import parse_violating_paths, parse_wns_tns
from tapeout.toolchain.adapter import CheckOutcome, ToolchainAdapter

from .exceptions import CheckReportParseError, ParsingError, ToolchainError
from .failure import FailureClassification, FailureClassifier
from .types import (
    CheckStatus,
    CheckType,
    DesignSnapshot,
    SignoffCheckResult,
    SignoffChecks,
    SignoffConfig,
    SignoffLimits,
    SignoffReport,
    ViolationType,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Status derivation
# =============================================================================


def derive_drc_status(violation_count: int, max_violations: int | None) -> CheckStatus:
    """Pass on zero; warning when a tolerance is configured and not exceeded."""
    if violation_count == 0:
        return CheckStatus.PASS
    if max_violations is not None and violation_count <= max_violations:
        return CheckStatus.WARNING
    return CheckStatus.FAIL


def derive_lvs_status(matched: bool) -> CheckStatus:
    return CheckStatus.PASS if matched else CheckStatus.FAIL


def derive_antenna_status(violation_count: int) -> CheckStatus:
    return CheckStatus.PASS if violation_count == 0 else CheckStatus.FAIL


def derive_ir_drop_status(worst_mv: float, max_mv: float) -> CheckStatus:
    return CheckStatus.PASS if worst_mv <= max_mv else CheckStatus.FAIL


def derive_timing_status(wns_ns: float, min_slack_ns: float) -> CheckStatus:
    return CheckStatus.PASS if wns_ns >= min_slack_ns else CheckStatus.FAIL


# =============================================================================
# Per-check evaluation of raw tool output
# =============================================================================

# (status, violation_count, details, metrics)
Evaluation = tuple[CheckStatus, int, list[str], dict[str, float]]


def _evaluate_drc(output: str, limits: SignoffLimits) -> Evaluation:
    summary = parse_drc_report(output)
    details = [f"{rule}: {count} errors" for rule, count in summary.by_rule.items()]
    return (
        derive_drc_status(summary.total, limits.max_drc_violations),
        summary.total,
        details,
        {"drc_violations": float(summary.total)},
    )


def _evaluate_lvs(output: str, limits: SignoffLimits) -> Evaluation:
    summary = parse_lvs_report(output)
    mismatches = summary.device_mismatches + summary.net_mismatches
    details = ["Circuits match" if summary.matched else "Circuits do not match"]
    if summary.device_mismatches:
        details.append(f"Device mismatches: {summary.device_mismatches}")
    if summary.net_mismatches:
        details.append(f"Net mismatches: {summary.net_mismatches}")
    count = 0 if summary.matched else max(mismatches, 1)
    return (
        derive_lvs_status(summary.matched),
        count,
        details,
        {
            "device_mismatches": float(summary.device_mismatches),
            "net_mismatches": float(summary.net_mismatches),
        },
    )


def _evaluate_antenna(output: str, limits: SignoffLimits) -> Evaluation:
    summary = parse_antenna_report(output)
    details = [f"Net {net}" for net in summary.nets[:10]]
    if len(summary.nets) > 10:
        details.append(f"... and {len(summary.nets) - 10} more nets")
    return (
        derive_antenna_status(summary.violations),
        summary.violations,
        details,
        {"antenna_violations": float(summary.violations)},
    )


def _evaluate_ir_drop(output: str, limits: SignoffLimits) -> Evaluation:
    summary = parse_ir_drop_report(output)
    status = derive_ir_drop_status(summary.worst_mv, limits.max_ir_drop_mv)
    details = [f"Worst IR drop: {summary.worst_mv:.2f} mV (limit {limits.max_ir_drop_mv} mV)"]
    metrics = {"worst_ir_drop_mv": summary.worst_mv}
    if summary.average_mv is not None:
        details.append(f"Average IR drop: {summary.average_mv:.2f} mV")
        metrics["average_ir_drop_mv"] = summary.average_mv
    return status, 0 if status == CheckStatus.PASS else 1, details, metrics


def _evaluate_timing(output: str, limits: SignoffLimits) -> Evaluation:
    wns, tns = parse_wns_tns(output)
    if wns is None:
        raise CheckReportParseError("Timing", "Timing report has no WNS")
    violating = parse_violating_paths(output, ViolationType.SETUP)
    metrics = {"wns_ns": wns}
    details = [f"WNS: {wns:.3f} ns"]
    if tns is not None:
        metrics["tns_ns"] = tns
        details.append(f"TNS: {tns:.3f} ns")
    return derive_timing_status(wns, limits.min_slack_ns), len(violating), details, metrics


_EVALUATORS: dict[CheckType, Callable[[str, SignoffLimits], Evaluation]] = {
    CheckType.DRC: _evaluate_drc,
    CheckType.LVS: _evaluate_lvs,
    CheckType.ANTENNA: _evaluate_antenna,
    CheckType.IR_DROP: _evaluate_ir_drop,
    CheckType.TIMING: _evaluate_timing,
}


def evaluate_check_outcome(outcome: CheckOutcome, limits: SignoffLimits) -> SignoffCheckResult:
    """
    Turn raw tool output into a SignoffCheckResult.

    Invocation failures and unparseable output both yield ``error`` status
    with ``violation_count == -1``.
    """
    if outcome.failure is not None:
        return _error_result(outcome, outcome.failure)

    try:
        status, count, details, metrics = _EVALUATORS[outcome.check_type](outcome.output, limits)
    except ParsingError as e:
        logger.warning(f"{outcome.check_type.display_name} output not understood: {e}")
        failure = FailureClassifier.classify_parse_failure(
            f"{outcome.check_type.display_name} report", outcome.output
        )
        return _error_result(outcome, failure)

    return SignoffCheckResult(
        check_type=outcome.check_type,
        status=status,
        violation_count=count,
        details=details,
        duration_seconds=outcome.duration_seconds,
        report_path=outcome.report_path,
        metrics=metrics,
    )


def _error_result(outcome: CheckOutcome, failure: FailureClassification) -> SignoffCheckResult:
    return SignoffCheckResult(
        check_type=outcome.check_type,
        status=CheckStatus.ERROR,
        violation_count=-1,
        details=[failure.reason],
        duration_seconds=outcome.duration_seconds,
        report_path=outcome.report_path,
        failure=failure,
    )


# =============================================================================
# Orchestrator
# =============================================================================


class SignoffOrchestrator:
    """
    Run signoff checks and aggregate them into a SignoffReport.

    Args:
        adapter: Toolchain adapter used to run the checks
        config: Signoff configuration (validated at the start of ``run``)
        executor: Optional parallel executor with a ``run_checks`` method;
            a RaySignoffExecutor is created when ``config.parallel`` is set
            and none is given
    """

    def __init__(
        self,
        adapter: ToolchainAdapter,
        config: SignoffConfig | None = None,
        executor=None,
    ) -> None:
        self.adapter = adapter
        self.config = config or SignoffConfig()
        self.executor = executor

    def run(self, snapshot: DesignSnapshot) -> SignoffReport:
        """
        Run every enabled check.

        Args:
            snapshot: Design to verify (not modified)

        Returns:
            SignoffReport with one result per enabled check, in canonical order

        Raises:
            ConfigurationError: If the configuration is invalid (raised
                before any toolchain call)
        """
        self.config.validate()
        check_types = self.config.checks.enabled()
        logger.info(
            f"Running signoff on {snapshot.design}: "
            + ", ".join(c.display_name for c in check_types)
        )

        if self.config.parallel:
            outcomes = self._parallel_executor().run_checks(
                check_types, snapshot, self.config.limits, self.config.check_timeout_seconds
            )
        else:
            outcomes = [self._run_outcome(check_type, snapshot) for check_type in check_types]

        results = [evaluate_check_outcome(o, self.config.limits) for o in outcomes]
        for result in results:
            logger.info(f"{result.name}: {result.status.value}")

        return SignoffReport(
            design=snapshot.design,
            timestamp=datetime.now().isoformat(),
            checks=results,
        )

    def run_check(self, check_type: CheckType, snapshot: DesignSnapshot) -> SignoffCheckResult:
        """Run and evaluate a single check."""
        return evaluate_check_outcome(
            self._run_outcome(check_type, snapshot), self.config.limits
        )

    def _run_outcome(self, check_type: CheckType, snapshot: DesignSnapshot) -> CheckOutcome:
        start_time = time.time()
        try:
            return self.adapter.run_check(
                check_type, snapshot, self.config.limits, self.config.check_timeout_seconds
            )
        except ToolchainError as e:
            logger.warning(f"{check_type.display_name} could not be run: {e}")
            return CheckOutcome(
                check_type=check_type,
                failure=FailureClassifier.classify_toolchain_error(e),
                duration_seconds=time.time() - start_time,
            )

    def _parallel_executor(self):
        if self.executor is None:
            from tapeout.toolchain.ray_executor import RaySignoffExecutor

            self.executor = RaySignoffExecutor(self.adapter)
        return self.executor


def run_signoff_checks(
    adapter: ToolchainAdapter,
    snapshot: DesignSnapshot,
    config: SignoffConfig | None = None,
) -> SignoffReport:
    """Run all enabled signoff checks with a fresh orchestrator."""
    return SignoffOrchestrator(adapter, config).run(snapshot)


def quick_drc_check(adapter: ToolchainAdapter, snapshot: DesignSnapshot) -> SignoffCheckResult:
    """Run DRC only."""
    config = SignoffConfig(checks=SignoffChecks(drc=True, lvs=False, antenna=False, ir_drop=False, timing=False))
    return SignoffOrchestrator(adapter, config).run_check(CheckType.DRC, snapshot)


def quick_timing_check(
    adapter: ToolchainAdapter,
    snapshot: DesignSnapshot,
    min_slack_ns: float = 0.0,
) -> SignoffCheckResult:
    """Run the timing check only."""
    config = SignoffConfig(
        checks=SignoffChecks(drc=False, lvs=False, antenna=False, ir_drop=False, timing=True),
        limits=SignoffLimits(min_slack_ns=min_slack_ns),
    )
    return SignoffOrchestrator(adapter, config).run_check(CheckType.TIMING, snapshot)
