"""Timing violation analysis.

Queries the toolchain for max-path (setup) and min-path (hold) reports and
turns them into TimingViolation records. Analysis never raises for tool or
parse problems; ``analyze_detailed`` reports which of the two happened.
"""

import logging

from tapeout.parsers.timing import parse_violating_paths, report_has_no_paths
from tapeout.toolchain.adapter import ToolchainAdapter

from .exceptions import TimingReportParseError, ToolchainError
from .failure import FailureClassifier
from .types import AnalysisStatus, DesignSnapshot, TimingViolation, ViolationAnalysis, ViolationType

logger = logging.getLogger(__name__)

_PATH_GROUPS = (
    ("max", ViolationType.SETUP),
    ("min", ViolationType.HOLD),
)


class ViolationAnalyzer:
    """
    Extract setup and hold violations from STA reports.

    Args:
        adapter: Toolchain adapter used to produce the path reports
        max_paths: Maximum number of paths requested per report
        tool: Report pattern set to parse with
    """

    def __init__(
        self,
        adapter: ToolchainAdapter,
        max_paths: int = 100,
        tool: str = "openroad",
    ) -> None:
        self.adapter = adapter
        self.max_paths = max_paths
        self.tool = tool

    def analyze(self, snapshot: DesignSnapshot) -> list[TimingViolation]:
        """
        Return all violating paths, setup paths first, in report order.

        An unavailable or unparseable report yields an empty list.
        """
        return self.analyze_detailed(snapshot).violations

    def analyze_detailed(self, snapshot: DesignSnapshot) -> ViolationAnalysis:
        """
        Analyze violations and say whether the result can be trusted.

        Returns:
            ViolationAnalysis with status OK, UNAVAILABLE (a report could not
            be produced) or ERROR (a report could not be parsed)
        """
        violations: list[TimingViolation] = []

        for path_type, violation_type in _PATH_GROUPS:
            try:
                report = self.adapter.run_timing_analysis(snapshot, path_type, self.max_paths)
            except ToolchainError as e:
                logger.warning(f"{path_type} path report unavailable: {e}")
                return ViolationAnalysis(
                    status=AnalysisStatus.UNAVAILABLE,
                    failure=FailureClassifier.classify_toolchain_error(e),
                )

            try:
                violations.extend(parse_violating_paths(report, violation_type, self.tool))
            except TimingReportParseError as e:
                logger.warning(f"{path_type} path report not understood: {e}")
                return ViolationAnalysis(
                    status=AnalysisStatus.ERROR,
                    failure=FailureClassifier.classify_parse_failure(
                        f"{path_type} path report", report
                    ),
                )

            if report_has_no_paths(report, self.tool):
                logger.debug(f"No {path_type} paths reported for {snapshot.design}")

        logger.info(
            f"Found {len(violations)} violating paths in {snapshot.design}"
        )
        return ViolationAnalysis(status=AnalysisStatus.OK, violations=violations)

