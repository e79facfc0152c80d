"""Ray-based parallel execution of signoff checks."""

import logging

import ray

from tapeout.controller.failure import (
    FailureClassification,
    FailureSeverity,
    FailureType,
)
from tapeout.controller.types import CheckType, DesignSnapshot, SignoffLimits
from tapeout.toolchain.adapter import CheckOutcome, ToolchainAdapter

logger = logging.getLogger(__name__)


@ray.remote
def run_check_remote(
    adapter: ToolchainAdapter,
    check_type: CheckType,
    snapshot: DesignSnapshot,
    limits: SignoffLimits,
    timeout_seconds: float | None = None,
) -> CheckOutcome:
    """
    Run one signoff check as a Ray remote function.

    The adapter is shipped to the worker by pickling, so it must be
    picklable (DockerToolchainAdapter reconnects from its config).
    """
    logger.info(f"[Ray Task] Running {check_type.display_name} for {snapshot.design}")
    return adapter.run_check(check_type, snapshot, limits, timeout_seconds)


class RaySignoffExecutor:
    """
    Run independent signoff checks concurrently as Ray tasks.

    Results are joined before being returned, in the order the checks were
    requested, so status derivation downstream is unaffected by scheduling.
    """

    def __init__(self, adapter: ToolchainAdapter, num_cpus_per_check: float = 1.0) -> None:
        """
        Initialize Ray signoff executor.

        Args:
            adapter: Toolchain adapter to run checks with
            num_cpus_per_check: CPUs reserved per check task

        Raises:
            RuntimeError: If Ray has not been initialized
        """
        if not ray.is_initialized():
            raise RuntimeError(
                "Ray is not initialized. Call ray.init() before using RaySignoffExecutor."
            )
        self.adapter = adapter
        self.num_cpus_per_check = num_cpus_per_check

    def submit_check(
        self,
        check_type: CheckType,
        snapshot: DesignSnapshot,
        limits: SignoffLimits,
        timeout_seconds: float | None = None,
    ) -> ray.ObjectRef:
        """Submit one check and return its object reference."""
        return run_check_remote.options(
            num_cpus=self.num_cpus_per_check,
            name=f"{snapshot.design}/{check_type.value}",
        ).remote(self.adapter, check_type, snapshot, limits, timeout_seconds)

    def run_checks(
        self,
        check_types: list[CheckType],
        snapshot: DesignSnapshot,
        limits: SignoffLimits,
        timeout_seconds: float | None = None,
    ) -> list[CheckOutcome]:
        """
        Run checks in parallel and wait for all of them.

        A task that dies in Ray (worker crash, adapter exception) becomes a
        failed CheckOutcome for that check only.

        Returns:
            One CheckOutcome per requested check, in request order
        """
        refs = [
            self.submit_check(check_type, snapshot, limits, timeout_seconds)
            for check_type in check_types
        ]

        outcomes: list[CheckOutcome] = []
        for check_type, ref in zip(check_types, refs):
            try:
                outcomes.append(ray.get(ref))
            except ray.exceptions.RayError as e:
                logger.warning(f"{check_type.display_name} task failed in Ray: {e}")
                outcomes.append(
                    CheckOutcome(
                        check_type=check_type,
                        failure=FailureClassification(
                            failure_type=FailureType.UNKNOWN,
                            severity=FailureSeverity.HIGH,
                            reason=f"Ray task failed: {type(e).__name__}",
                            log_excerpt=str(e)[-2000:],
                        ),
                    )
                )
        return outcomes
