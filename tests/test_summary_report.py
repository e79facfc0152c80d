"""Tests for text and Markdown report formatting."""

import math

import pytest

from tapeout.controller.failure import FailureClassification, FailureSeverity, FailureType
from tapeout.controller.readiness import run_tapeout_checklist
from tapeout.controller.summary_report import (
    ReportConfig,
    ReportGenerator,
    format_checklist_markdown,
    format_checklist_summary,
    format_eco_result,
    format_signoff_report,
    write_checklist_markdown,
    write_signoff_report,
)
from tapeout.controller.types import (
    CheckStatus,
    CheckType,
    ECOFix,
    ECOIterationResult,
    ECOResult,
    FixPriority,
    FixType,
    LoopState,
    SignoffCheckResult,
    SignoffReport,
)


def make_eco_result(**overrides) -> ECOResult:
    fields = dict(
        success=True,
        iterations=[
            ECOIterationResult(1, -0.5, -0.2, -3.0, -1.0, fixes_applied=10),
            ECOIterationResult(2, -0.2, 0.05, -1.0, 0.0, fixes_applied=5, converged=True),
        ],
        total_fixes_applied=15,
        initial_wns_ns=-0.5,
        final_wns_ns=0.05,
        initial_tns_ns=-3.0,
        final_tns_ns=0.0,
        timing_met=True,
        converged=True,
        duration_seconds=90.0,
        final_state=LoopState.TARGET_MET,
    )
    fields.update(overrides)
    return ECOResult(**fields)


def make_fix(location: str) -> ECOFix:
    return ECOFix(
        fix_type=FixType.GATE_RESIZE,
        location=location,
        expected_improvement_ps=0.1,
        priority=FixPriority.HIGH,
        command="repair_timing -setup -setup_margin 0.1",
    )


@pytest.fixture
def signoff_report():
    return SignoffReport(
        design="gcd",
        timestamp="2026-01-01T00:00:00",
        checks=[
            SignoffCheckResult(
                CheckType.DRC,
                CheckStatus.FAIL,
                violation_count=3,
                details=["met1.1: 3 errors"],
                duration_seconds=12.34,
            ),
            SignoffCheckResult(CheckType.LVS, CheckStatus.PASS, details=["Circuits match"]),
        ],
    )


class TestECOSummary:
    def test_timing_met(self):
        text = format_eco_result(make_eco_result())

        assert text.startswith("=== ECO Optimization Results ===")
        assert "Status: TIMING MET" in text
        assert "Final state: target_met" in text
        assert "Duration: 1.5 minutes" in text
        assert "Iterations: 2" in text
        assert "Total fixes applied: 15" in text
        assert "  WNS: -0.500 -> 0.050 ns" in text
        assert "Failed iterations" not in text
        assert "Remaining recommendations" not in text

    def test_recommendations_are_truncated(self):
        result = make_eco_result(
            timing_met=False,
            recommendations=[make_fix(f"r{i}/D") for i in range(7)],
        )

        text = ReportGenerator(ReportConfig(max_recommendations=3)).format_eco_result(result)

        assert "Status: TIMING NOT MET" in text
        assert "  - gate_resize at r0/D (high)" in text
        assert "r3/D" not in text
        assert "  ... and 4 more" in text

    def test_failed_iterations_are_counted(self):
        failure = FailureClassification(FailureType.TIMEOUT, FailureSeverity.HIGH, "timed out")
        iterations = [ECOIterationResult(1, -0.5, -0.5, -3.0, -3.0, failure=failure)]

        text = format_eco_result(make_eco_result(iterations=iterations))

        assert "Failed iterations: 1" in text

    def test_baseline_failure_shows_na(self):
        result = make_eco_result(
            success=False,
            iterations=[],
            initial_wns_ns=math.nan,
            final_wns_ns=math.nan,
            initial_tns_ns=math.nan,
            final_tns_ns=math.nan,
            timing_met=False,
            error="Baseline timing measurement failed: openroad not found",
            final_state=LoopState.ABORTED,
        )

        text = format_eco_result(result)

        assert "  WNS: n/a -> n/a ns" in text
        assert "Error: Baseline timing measurement failed" in text


class TestSignoffReport:
    def test_markdown_sections(self, signoff_report):
        text = format_signoff_report(signoff_report)

        assert text.startswith("# Signoff Report")
        assert "Overall Status: FAIL" in text
        assert "Tapeout Ready: NO" in text
        assert "### DRC" in text
        assert "- Violations: 3" in text
        assert "- Duration: 12.3s" in text
        assert "- met1.1: 3 errors" in text
        assert "- DRC: 3 violations" in text

    def test_empty_warnings_show_none(self, signoff_report):
        text = format_signoff_report(signoff_report)

        warnings = text.split("## Warnings", 1)[1]
        assert warnings.strip() == "None"

    def test_write_creates_directories(self, tmp_path, signoff_report):
        path = write_signoff_report(signoff_report, tmp_path / "out" / "signoff.md")

        assert path.read_text() == format_signoff_report(signoff_report)


class TestChecklistReports:
    def test_console_summary_for_empty_run(self, snapshot):
        checklist = run_tapeout_checklist(snapshot)

        text = format_checklist_summary(checklist)

        assert "TAPEOUT CHECKLIST SUMMARY" in text
        assert "Design: gcd" in text
        assert "Platform: sky130hd" in text
        assert f"Total checks: {len(checklist.items)}" in text
        assert "TAPEOUT READY: NO" in text
        assert "  [X] GDS File Present" in text
        assert "(not scored)" in text
        assert "  [MISSING] GDS File" in text
        assert "  [N/A] DEF File" in text

    def test_console_summary_limits_recommendations(self, snapshot):
        checklist = run_tapeout_checklist(snapshot)

        text = format_checklist_summary(checklist)

        shown = [line for line in text.splitlines() if line.startswith("  -> ")]
        assert len(shown) == min(5, len(checklist.recommendations))

    def test_markdown_tables(self, complete_run):
        checklist = run_tapeout_checklist(complete_run)

        text = format_checklist_markdown(checklist)

        assert text.startswith("# Tapeout Checklist")
        assert "| Total Checks | 26 |" in text
        assert "## DRC/LVS Verification" in text
        assert "| GDS File Present | PASS | Yes |" in text
        assert "| ERC Clean |" in text
        assert "- Documentation: " in text
        assert "(not included in overall score)" in text
        assert "| GDS File | Yes | Present |" in text

    def test_write_markdown(self, tmp_path, complete_run):
        checklist = run_tapeout_checklist(complete_run)

        path = write_checklist_markdown(checklist, tmp_path / "docs" / "checklist.md")

        assert path.exists()
        assert "## Foundry Deliverables" in path.read_text()
