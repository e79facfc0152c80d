"""Iterative ECO timing optimization.

The convergence loop repeatedly invokes timing repair until WNS stops
moving, the target WNS is reached, or the iteration budget runs out:

    INIT -> ITERATING -> {CONVERGED | TARGET_MET | MAX_ITERS_REACHED} -> DONE

A baseline that cannot be measured, or too many consecutive failed repair
invocations, end the run in ABORTED instead.

Note on ``ECOResult.success``: it is ``timing_met or converged``. A run that
stalls short of the target still reports success because no further
automatic progress is possible; callers gating on timing must use
``timing_met``.
"""

import logging
import math
import time
from typing import Callable

from tapeout.toolchain.adapter import RepairOptions, RepairOutcome, ToolchainAdapter

from .eco import generate_eco_recommendations
from .exceptions import AdapterUnavailableError, ToolchainError
from .failure import FailureClassification, FailureClassifier, FailureSeverity, FailureType
from .types import (
    DesignSnapshot,
    ECOConfig,
    ECOFix,
    ECOIterationResult,
    ECOResult,
    LoopState,
    QuickFixResult,
)
from .violations import ViolationAnalyzer

logger = logging.getLogger(__name__)

# |WNS change| below this (ns) counts as no progress.
CONVERGENCE_EPSILON_NS = 0.001

ProgressCallback = Callable[[int, float], None]


class ECOOptimizer:
    """
    Run the ECO convergence loop against one design snapshot.

    Args:
        adapter: Toolchain adapter used for repair and analysis
        config: ECO configuration (validated at the start of ``run``)
        analyzer: Violation analyzer for final recommendations (built from
            the adapter if None)
        on_progress: Optional callback ``(iteration, wns_ns)`` invoked after
            each measured iteration
    """

    def __init__(
        self,
        adapter: ToolchainAdapter,
        config: ECOConfig | None = None,
        analyzer: ViolationAnalyzer | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.adapter = adapter
        self.config = config or ECOConfig()
        self.analyzer = analyzer or ViolationAnalyzer(adapter)
        self.on_progress = on_progress
        self.state = LoopState.INIT

    def _repair_options(self, setup: bool, hold: bool) -> RepairOptions:
        return RepairOptions(
            setup=setup,
            hold=hold,
            setup_margin_ns=self.config.setup_margin_ns,
            hold_margin_ns=self.config.hold_margin_ns,
            max_utilization=self.config.max_utilization,
            skip_vt_swap=not self.config.enable_vt_swap,
            skip_pin_swap=not self.config.enable_pin_swap,
            timeout_seconds=self.config.iteration_timeout_seconds,
        )

    def run(self, snapshot: DesignSnapshot) -> ECOResult:
        """
        Run the convergence loop.

        Args:
            snapshot: Design to optimize

        Returns:
            ECOResult; always well-formed, even when the baseline fails

        Raises:
            ConfigurationError: If the configuration is invalid (raised
                before any toolchain call)
        """
        self.config.validate()
        start_time = time.time()
        self.state = LoopState.INIT

        baseline = guarded_repair(self.adapter, snapshot, self._repair_options(False, False))
        if not baseline.has_measurement:
            reason = baseline.failure.reason if baseline.failure else "no measurement"
            logger.error(f"Baseline timing measurement failed: {reason}")
            self.state = LoopState.ABORTED
            return ECOResult(
                success=False,
                iterations=[],
                total_fixes_applied=0,
                initial_wns_ns=math.nan,
                final_wns_ns=math.nan,
                initial_tns_ns=math.nan,
                final_tns_ns=math.nan,
                timing_met=False,
                converged=False,
                duration_seconds=time.time() - start_time,
                final_state=LoopState.ABORTED,
                error=f"Baseline timing measurement failed: {reason}",
            )

        initial_wns, initial_tns = baseline.wns_ns, baseline.tns_ns
        logger.info(f"Initial timing: WNS = {initial_wns:.3f} ns, TNS = {initial_tns:.3f} ns")

        current_wns, current_tns = initial_wns, initial_tns
        iterations: list[ECOIterationResult] = []
        total_fixes = 0
        converged = False
        consecutive_failures = 0
        end_state = LoopState.MAX_ITERS_REACHED
        options = self._repair_options(self.config.fix_setup, self.config.fix_hold)

        self.state = LoopState.ITERATING
        for index in range(1, self.config.max_iterations + 1):
            logger.info(f"ECO iteration {index}/{self.config.max_iterations}")
            iter_start = time.time()
            outcome = guarded_repair(self.adapter, snapshot, options)
            duration = time.time() - iter_start

            if not outcome.has_measurement:
                iterations.append(
                    self._failed_iteration(index, current_wns, current_tns, outcome, duration)
                )
                consecutive_failures += 1
                logger.warning(
                    f"Iteration {index} failed ({consecutive_failures} in a row): "
                    f"{iterations[-1].failure.reason}"
                )
                if consecutive_failures >= self.config.max_consecutive_failures:
                    end_state = LoopState.ABORTED
                    break
                continue
            consecutive_failures = 0

            new_wns, new_tns = outcome.wns_ns, outcome.tns_ns
            delta = new_wns - current_wns
            stalled = abs(delta) < CONVERGENCE_EPSILON_NS or outcome.changes == 0
            target_met = new_wns >= self.config.target_wns_ns

            iterations.append(
                ECOIterationResult(
                    iteration=index,
                    before_wns_ns=current_wns,
                    after_wns_ns=new_wns,
                    before_tns_ns=current_tns,
                    after_tns_ns=new_tns,
                    fixes_applied=outcome.changes,
                    duration_seconds=duration,
                    converged=stalled or target_met,
                )
            )
            total_fixes += outcome.changes
            current_wns, current_tns = new_wns, new_tns

            logger.info(
                f"  WNS: {iterations[-1].before_wns_ns:.3f} -> {new_wns:.3f} ns, "
                f"fixes applied: {outcome.changes}"
            )
            if self.on_progress:
                self.on_progress(index, new_wns)

            # Reaching the target takes precedence over stalling for the end state.
            if target_met:
                converged = True
                if self.config.stop_on_convergence:
                    logger.info("Target WNS achieved")
                    end_state = LoopState.TARGET_MET
                    break

            if stalled:
                converged = True
                if self.config.stop_on_convergence:
                    logger.info("Converged - no further improvement possible")
                    end_state = LoopState.CONVERGED
                    break

        timing_met = current_wns >= self.config.target_wns_ns
        recommendations = [] if timing_met else self._recommendations(snapshot)

        self.state = LoopState.ABORTED if end_state == LoopState.ABORTED else LoopState.DONE
        return ECOResult(
            success=timing_met or converged,
            iterations=iterations,
            total_fixes_applied=total_fixes,
            initial_wns_ns=initial_wns,
            final_wns_ns=current_wns,
            initial_tns_ns=initial_tns,
            final_tns_ns=current_tns,
            timing_met=timing_met,
            converged=converged,
            duration_seconds=time.time() - start_time,
            recommendations=recommendations,
            final_state=end_state,
        )

    def _failed_iteration(
        self,
        index: int,
        wns_ns: float,
        tns_ns: float,
        outcome: RepairOutcome,
        duration: float,
    ) -> ECOIterationResult:
        failure = outcome.failure or FailureClassification(
            failure_type=FailureType.UNKNOWN,
            severity=FailureSeverity.HIGH,
            reason="Repair returned no measurement",
        )
        return ECOIterationResult(
            iteration=index,
            before_wns_ns=wns_ns,
            after_wns_ns=wns_ns,
            before_tns_ns=tns_ns,
            after_tns_ns=tns_ns,
            fixes_applied=0,
            duration_seconds=duration,
            converged=False,
            failure=failure,
        )

    def _recommendations(self, snapshot: DesignSnapshot) -> list[ECOFix]:
        violations = self.analyzer.analyze(snapshot)
        return generate_eco_recommendations(violations, self.config)


def guarded_repair(
    adapter: ToolchainAdapter,
    snapshot: DesignSnapshot,
    options: RepairOptions,
) -> RepairOutcome:
    """
    Invoke ``apply_repair`` and turn a raised toolchain error into a failed
    outcome, so one bad invocation does not end the loop.

    Raises:
        AdapterUnavailableError: The toolchain cannot be reached at all
    """
    start_time = time.time()
    try:
        return adapter.apply_repair(snapshot, options)
    except AdapterUnavailableError:
        raise
    except ToolchainError as e:
        logger.warning(f"Repair invocation raised: {e}")
        return RepairOutcome.failed(
            FailureClassifier.classify_toolchain_error(e),
            duration_seconds=time.time() - start_time,
        )


def run_iterative_eco(
    adapter: ToolchainAdapter,
    snapshot: DesignSnapshot,
    config: ECOConfig | None = None,
    on_progress: ProgressCallback | None = None,
) -> ECOResult:
    """
    Run the ECO convergence loop with a fresh optimizer.

    Args:
        adapter: Toolchain adapter
        snapshot: Design to optimize
        config: ECO configuration (defaults if None)
        on_progress: Optional ``(iteration, wns_ns)`` callback

    Returns:
        ECOResult
    """
    return ECOOptimizer(adapter, config, on_progress=on_progress).run(snapshot)


def quick_timing_fix(
    adapter: ToolchainAdapter,
    snapshot: DesignSnapshot,
    fix_setup: bool = True,
    fix_hold: bool = True,
    margin_ns: float | None = None,
) -> QuickFixResult:
    """
    Measure, run one repair pass, and report whether WNS improved.

    Args:
        adapter: Toolchain adapter
        snapshot: Design to repair
        fix_setup: Repair setup violations
        fix_hold: Repair hold violations
        margin_ns: Margin for both setup and hold (0.1 / 0.05 ns if None)

    Returns:
        QuickFixResult; ``failure`` is set if either invocation failed
    """
    options = RepairOptions(
        setup=fix_setup,
        hold=fix_hold,
        setup_margin_ns=margin_ns if margin_ns is not None else 0.1,
        hold_margin_ns=margin_ns if margin_ns is not None else 0.05,
        max_utilization=90.0,
    )

    before = guarded_repair(adapter, snapshot, RepairOptions(setup=False, hold=False))
    if not before.has_measurement:
        return QuickFixResult(False, math.nan, math.nan, before.failure)

    after = guarded_repair(adapter, snapshot, options)
    if not after.has_measurement:
        return QuickFixResult(False, before.wns_ns, math.nan, after.failure)

    return QuickFixResult(
        improved=after.wns_ns > before.wns_ns,
        before_wns_ns=before.wns_ns,
        after_wns_ns=after.wns_ns,
    )


def run_repair_design(adapter: ToolchainAdapter, snapshot: DesignSnapshot) -> RepairOutcome:
    """
    Run a DRV (slew/capacitance/wire length) repair pass.

    Returns:
        RepairOutcome whose ``changes`` counts inserted buffers
    """
    outcome = guarded_repair(
        adapter, snapshot, RepairOptions(setup=False, hold=False, repair_design=True)
    )
    if outcome.success:
        logger.info(f"repair_design applied {outcome.changes} changes")
    return outcome
